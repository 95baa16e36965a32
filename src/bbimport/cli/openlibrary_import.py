"""``bbimport-openlibrary``: push an OpenLibrary dump onto the import queue."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Sequence

from bbimport.cli.bbiq import use_queue
from bbimport.observability import configure_logging
from bbimport.producer.dump import import_dump
from bbimport.queue.import_queue import ImportQueue
from bbimport.services.factories import DISABLED_FAILURE_QUEUE, create_import_queue
from bbimport.settings import Settings, get_settings

LOGGER = logging.getLogger(__name__)


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="bbimport-openlibrary", description="Import an OpenLibrary dump")
    parser.add_argument("-d", "--dump", type=Path, required=True, help="Path to an OpenLibrary dump file")
    parser.add_argument("-c", "--connection", help="Connection URL to an AMQP server (overrides settings)")
    parser.add_argument("-t", "--test", action="store_true", help="Perform a non-persistent test import")
    return parser.parse_args(argv)


async def run(args: argparse.Namespace, *, settings: Settings | None = None) -> int:
    # producers run without a failure queue
    queue = create_import_queue(
        settings or get_settings(),
        connection=args.connection,
        failure_queue=DISABLED_FAILURE_QUEUE,
        test=args.test,
    )

    async def process_dump(q: ImportQueue) -> None:
        summary = await import_dump(args.dump, q)
        LOGGER.info("Dump has been processed: %s", summary)

    return await use_queue(queue, process_dump, "Failed to process dump")


def main(argv: Sequence[str] | None = None) -> int:
    """CLI entry point."""

    args = parse_args(argv)
    settings = get_settings()
    configure_logging(settings)
    return asyncio.run(run(args, settings=settings))


if __name__ == "__main__":
    sys.exit(main())
