"""Push the records of an OpenLibrary dump onto the import queue."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from bbimport.models.entity import QueuedEntity
from bbimport.producer.openlibrary import parse_dump_line

LOGGER = logging.getLogger(__name__)


class EntitySink(Protocol):
    async def push(self, entity: QueuedEntity) -> bool:  # pragma: no cover - protocol
        ...


@dataclass(slots=True)
class DumpSummary:
    """Counters reported after a dump has been processed."""

    lines: int = 0
    pushed: int = 0
    skipped: int = 0
    failed: int = 0


async def import_dump(path: str | Path, queue: EntitySink, *, worker_id: int = 0) -> DumpSummary:
    """Parse ``path`` line by line and push every supported record onto ``queue``.

    Lines which cannot be parsed are logged and skipped; entities which the
    broker refuses, or which fail to publish, are counted as failed.
    """

    dump_path = Path(path)
    prefix = f"[WORKER::{worker_id}]"
    LOGGER.info("%s Processing dump file '%s'", prefix, dump_path.name)

    summary = DumpSummary()
    # undecodable bytes are replaced with U+FFFD
    with dump_path.open("r", encoding="utf-8", errors="replace") as handle:
        for line in handle:
            if not line.strip():
                continue
            summary.lines += 1
            try:
                entity = parse_dump_line(line)
            except ValueError as exc:
                LOGGER.error("Parsing error: %s\n at %s:%s", exc, dump_path.name, summary.lines)
                LOGGER.debug("Skipped: %s", line.rstrip())
                summary.skipped += 1
                continue
            except Exception:
                LOGGER.exception("Unexpected error while parsing %s:%s", dump_path.name, summary.lines)
                summary.skipped += 1
                continue

            try:
                pushed = await queue.push(entity)
            except Exception:
                LOGGER.exception("%s Error while pushing record #%s (%s)", prefix, summary.lines, entity.origin_id)
                pushed = False
            if pushed:
                LOGGER.debug("%s Pushing record #%s (%s)", prefix, summary.lines, entity.origin_id)
                summary.pushed += 1
            else:
                LOGGER.error("%s Failed to push record #%s (%s)", prefix, summary.lines, entity.origin_id)
                summary.failed += 1

    LOGGER.info(
        "%s Dump processed: %s lines, %s pushed, %s skipped, %s failed",
        prefix,
        summary.lines,
        summary.pushed,
        summary.skipped,
        summary.failed,
    )
    return summary


__all__ = ["DumpSummary", "EntitySink", "import_dump"]
