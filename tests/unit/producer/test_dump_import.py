"""Tests for pushing an OpenLibrary dump onto the queue."""

from __future__ import annotations

import json
import logging

import pytest

from bbimport.models.entity import QueuedEntity
from bbimport.producer import dump
from bbimport.producer.dump import import_dump


class StubQueue:
    def __init__(self, accept: bool = True) -> None:
        self.accept = accept
        self.pushed: list[QueuedEntity] = []

    async def push(self, entity: QueuedEntity) -> bool:
        self.pushed.append(entity)
        return self.accept


def _line(record_type: str, key: str, record: dict) -> str:
    return "\t".join([record_type, key, "1", "2020-01-01T00:00:00", json.dumps(record)])


def _write_dump(tmp_path):
    path = tmp_path / "ol_dump.txt"
    lines = [
        _line("/type/author", "/authors/OL1A", {"key": "/authors/OL1A", "name": "Mary Shelley"}),
        _line("/type/redirect", "/authors/OL2A", {"location": "/authors/OL1A"}),
        "",
        "not a dump line",
        _line("/type/work", "/works/OL1W", {"key": "/works/OL1W", "title": "Frankenstein"}),
    ]
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


@pytest.mark.anyio
async def test_import_dump_pushes_supported_records(tmp_path) -> None:
    queue = StubQueue()

    summary = await import_dump(_write_dump(tmp_path), queue)

    assert [entity.origin_id for entity in queue.pushed] == ["OL1A", "OL1W"]
    assert (summary.lines, summary.pushed, summary.skipped, summary.failed) == (4, 2, 2, 0)


@pytest.mark.anyio
async def test_import_dump_counts_refused_pushes(tmp_path) -> None:
    queue = StubQueue(accept=False)

    summary = await import_dump(_write_dump(tmp_path), queue)

    assert summary.pushed == 0
    assert summary.failed == 2


class ExplodingQueue(StubQueue):
    async def push(self, entity: QueuedEntity) -> bool:
        if not self.pushed:
            self.pushed.append(entity)
            raise ConnectionError("channel closed")
        return await super().push(entity)


@pytest.mark.anyio
async def test_undecodable_bytes_only_skip_their_line(tmp_path) -> None:
    path = tmp_path / "ol_dump.txt"
    work = _line("/type/work", "/works/OL1W", {"key": "/works/OL1W", "title": "Frankenstein"})
    path.write_bytes(b"/type/author\t\xff\xfe\n" + work.encode("utf-8") + b"\n")
    queue = StubQueue()

    summary = await import_dump(path, queue)

    assert [entity.origin_id for entity in queue.pushed] == ["OL1W"]
    assert (summary.lines, summary.pushed, summary.skipped) == (2, 1, 1)


@pytest.mark.anyio
async def test_non_string_title_prefix_does_not_stop_the_import(tmp_path) -> None:
    path = tmp_path / "ol_dump.txt"
    lines = [
        _line("/type/edition", "/books/OL1M", {"key": "/books/OL1M", "title": "Frankenstein", "title_prefix": 5}),
        _line("/type/work", "/works/OL1W", {"key": "/works/OL1W", "title": "Frankenstein"}),
    ]
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    queue = StubQueue()

    summary = await import_dump(path, queue)

    assert [entity.origin_id for entity in queue.pushed] == ["OL1M", "OL1W"]
    assert queue.pushed[0].data.default_alias().name == "Frankenstein"
    assert summary.pushed == 2


@pytest.mark.anyio
async def test_unexpected_parser_errors_skip_the_line(tmp_path, monkeypatch, caplog) -> None:
    real_parse = dump.parse_dump_line

    def flaky_parse(line: str) -> QueuedEntity:
        if "/authors/OL1A" in line:
            raise AttributeError("'int' object has no attribute 'strip'")
        return real_parse(line)

    monkeypatch.setattr(dump, "parse_dump_line", flaky_parse)
    queue = StubQueue()

    with caplog.at_level(logging.ERROR):
        summary = await import_dump(_write_dump(tmp_path), queue)

    assert [entity.origin_id for entity in queue.pushed] == ["OL1W"]
    assert (summary.lines, summary.pushed, summary.skipped) == (4, 1, 3)
    assert "Unexpected error while parsing" in caplog.text


@pytest.mark.anyio
async def test_push_errors_count_as_failed_and_continue(tmp_path) -> None:
    queue = ExplodingQueue()

    summary = await import_dump(_write_dump(tmp_path), queue)

    assert [entity.origin_id for entity in queue.pushed] == ["OL1A", "OL1W"]
    assert (summary.pushed, summary.failed) == (1, 1)


@pytest.mark.anyio
async def test_records_without_a_name_are_skipped(tmp_path) -> None:
    path = tmp_path / "ol_dump.txt"
    path.write_text(_line("/type/author", "/authors/OL9A", {"key": "/authors/OL9A"}) + "\n", encoding="utf-8")
    queue = StubQueue()

    summary = await import_dump(path, queue)

    assert queue.pushed == []
    assert (summary.lines, summary.skipped) == (1, 1)
