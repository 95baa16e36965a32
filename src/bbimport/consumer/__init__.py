"""Consumer side of the import queue: validation, persistence and retries."""

from .consumer import ImportConsumer, consume_import_queue
from .errors import ConsumeResult, ImportErrorType

__all__ = ["ConsumeResult", "ImportConsumer", "ImportErrorType", "consume_import_queue"]
