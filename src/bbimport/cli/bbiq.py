"""``bbiq``: BookBrainz import queue management.

Usage::

    bbiq [--connection URL] [--queue NAME] [--failure-queue NAME|none] [--test] [--update] <command>

Commands are ``consume``, ``info``, ``purge`` and ``push FILES...``.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import signal
import sys
from pathlib import Path
from typing import Awaitable, Callable, List, Sequence

from bbimport.consumer.consumer import consume_import_queue
from bbimport.models.entity import QueuedEntity
from bbimport.observability import configure_logging
from bbimport.queue.import_queue import ImportQueue
from bbimport.services.factories import build_consumer, build_import_store, create_import_queue
from bbimport.settings import Settings, get_settings

LOGGER = logging.getLogger(__name__)

QueueTask = Callable[[ImportQueue], Awaitable[None]]


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Return parsed CLI arguments.

    Args:
        argv: Optional list of CLI arguments. When ``None``, defaults to ``sys.argv``.
    """

    parser = argparse.ArgumentParser(prog="bbiq", description="BookBrainz Import Queue management")
    parser.add_argument("-c", "--connection", help="Connection URL to an AMQP server (overrides settings)")
    parser.add_argument("-q", "--queue", help="Name of the queue which stores pending imports")
    parser.add_argument(
        "-f",
        "--failure-queue",
        help='Name of the queue which stores failed imports ("none" to discard them)',
    )
    parser.add_argument("-t", "--test", action="store_true", help="Use the non-persistent test import queue")
    parser.add_argument("-u", "--update", action="store_true", help="Update existing imports which are still pending")

    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("consume", help="Await queued entities and store them as pending imports")
    commands.add_parser("info", help="Show information about the import queue")
    commands.add_parser("purge", help="Drop all entities from the import queue")
    push = commands.add_parser("push", help="Push JSON files into the import queue")
    push.add_argument("files", nargs="+", type=Path, help="JSON files containing one queued entity each")
    return parser.parse_args(argv)


async def use_queue(queue: ImportQueue, task: QueueTask, error_message: str = "Failed to use queue") -> int:
    """Open ``queue``, run ``task`` and always close the queue again.

    Returns:
        Process exit code, ``1`` when opening the queue or the task failed.
    """

    exit_code = 0
    try:
        queue_info = await queue.open()
        LOGGER.info("Import queue has been opened: %s", queue_info)
        await task(queue)
    except Exception:
        LOGGER.exception(error_message)
        exit_code = 1
    finally:
        if await queue.close():
            LOGGER.debug("Import queue has been closed")
    return exit_code


async def push_files(queue: ImportQueue, files: Sequence[Path]) -> int:
    """Push each JSON file as one entity; returns the number of queued entities."""

    pushed = 0
    for path in files:
        try:
            entity = QueuedEntity.model_validate(json.loads(Path(path).read_text(encoding="utf-8")))
        except (OSError, ValueError):
            LOGGER.exception("Failed to read %s", path)
            continue
        if await queue.push(entity):
            LOGGER.info("Queued %s", entity)
            pushed += 1
        else:
            LOGGER.error("Failed to push %s", entity)
    return pushed


async def purge_queue(queue: ImportQueue) -> int:
    removed = await queue.purge()
    LOGGER.info("Purged messages: %s", removed)
    return removed


def _install_stop_handlers(stop_event: asyncio.Event) -> List[signal.Signals]:
    loop = asyncio.get_running_loop()
    installed: List[signal.Signals] = []

    def _stop(signum: signal.Signals) -> None:
        LOGGER.info("Consumer has been terminated (%s)", signum.name)
        stop_event.set()

    for signum in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(signum, _stop, signum)
        except (NotImplementedError, RuntimeError):  # pragma: no cover - platform specific
            LOGGER.debug("Cannot install handler for %s", signum.name)
            continue
        installed.append(signum)
    return installed


async def run(
    args: argparse.Namespace,
    *,
    settings: Settings | None = None,
    stop_event: asyncio.Event | None = None,
) -> int:
    """Execute the selected command and return the exit code."""

    resolved = settings or get_settings()
    queue = create_import_queue(
        resolved,
        connection=args.connection,
        queue=args.queue,
        failure_queue=args.failure_queue,
        test=args.test,
    )

    if args.command == "consume":
        stop = stop_event or asyncio.Event()
        installed = _install_stop_handlers(stop) if stop_event is None else []

        async def consume(q: ImportQueue) -> None:
            store = build_import_store(resolved, existing_import_action="update pending" if args.update else None)
            consumer = build_consumer(store, resolved)
            await consume_import_queue(q, consumer, stop_event=stop)

        try:
            return await use_queue(queue, consume, "Failed to consume queue")
        finally:
            loop = asyncio.get_running_loop()
            for signum in installed:
                loop.remove_signal_handler(signum)

    if args.command == "info":
        return await use_queue(queue, _noop)

    if args.command == "purge":

        async def purge(q: ImportQueue) -> None:
            await purge_queue(q)

        return await use_queue(queue, purge, "Failed to purge queue")

    if args.command == "push":

        async def push(q: ImportQueue) -> None:
            await push_files(q, args.files)

        return await use_queue(queue, push, "Failed to push files")

    raise ValueError(f"unknown command {args.command!r}")


async def _noop(_queue: ImportQueue) -> None:
    return None


def main(argv: Sequence[str] | None = None) -> int:
    """CLI entry point."""

    args = parse_args(argv)
    settings = get_settings()
    configure_logging(settings)
    return asyncio.run(run(args, settings=settings))


if __name__ == "__main__":
    sys.exit(main())
