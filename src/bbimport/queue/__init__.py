"""AMQP import queue shared by producers and consumers."""

from .import_queue import ImportQueue, QueueInfo

__all__ = ["ImportQueue", "QueueInfo"]
