"""Tests for the OpenLibrary dump import command."""

from __future__ import annotations

import pytest

from bbimport.cli import openlibrary_import
from bbimport.producer.dump import DumpSummary


class StubQueue:
    def __init__(self) -> None:
        self.closed = False

    async def open(self):
        return []

    async def close(self) -> bool:
        self.closed = True
        return True


@pytest.mark.anyio
async def test_run_imports_dump_without_failure_queue(monkeypatch, tmp_path) -> None:
    queue = StubQueue()
    captured: dict = {}
    dumps: list = []

    def fake_create_import_queue(settings, **kwargs):
        captured.update(kwargs)
        return queue

    async def fake_import_dump(path, q):
        dumps.append((path, q))
        return DumpSummary(lines=1, pushed=1)

    monkeypatch.setattr(openlibrary_import, "create_import_queue", fake_create_import_queue)
    monkeypatch.setattr(openlibrary_import, "import_dump", fake_import_dump)
    dump = tmp_path / "ol_dump_authors.txt"

    args = openlibrary_import.parse_args(["--dump", str(dump), "--test"])
    exit_code = await openlibrary_import.run(args, settings=object())

    assert exit_code == 0
    assert captured["failure_queue"] == "none"
    assert captured["test"] is True
    assert dumps == [(dump, queue)]
    assert queue.closed
