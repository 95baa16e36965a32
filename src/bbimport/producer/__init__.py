"""Producers which turn external dumps into queued entities."""

from .dump import DumpSummary, import_dump
from .names import sort_name
from .openlibrary import (
    OPENLIBRARY_SOURCE,
    map_entity_type,
    parse_author,
    parse_dump_line,
    parse_edition,
    parse_work,
)

__all__ = [
    "DumpSummary",
    "OPENLIBRARY_SOURCE",
    "import_dump",
    "map_entity_type",
    "parse_author",
    "parse_dump_line",
    "parse_edition",
    "parse_work",
    "sort_name",
]
