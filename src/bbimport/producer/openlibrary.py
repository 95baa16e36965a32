"""Parsers for OpenLibrary dump records.

OpenLibrary publishes tab-separated dumps with one record per line::

    type    key    revision    last_modified    JSON

e.g. ``/type/author  /authors/OL1A  3  2008-04-01T03:28:50.625462  {...}``.
Each supported record is mapped to the normalized entity ``data`` shape; the
first alias produced for a record becomes its default alias.
"""

from __future__ import annotations

import json
import re
from datetime import datetime
from typing import Any, Dict, Iterable, List

from bbimport.consumer.validators.base import is_date
from bbimport.core.exceptions import UnsupportedRecordError
from bbimport.models.entity import EntityData, EntityType, QueuedEntity
from bbimport.producer import reference_data as ref
from bbimport.producer.names import sort_name

OPENLIBRARY_SOURCE = "OPENLIBRARY"

_YEAR_PATTERN = re.compile(r"\b\d{3,4}\b")
_DATE_FORMATS = (
    ("%d %B %Y", "day"),
    ("%B %d, %Y", "day"),
    ("%B %d %Y", "day"),
    ("%d %b %Y", "day"),
    ("%B %Y", "month"),
    ("%b %Y", "month"),
)

_AUTHOR_IDENTIFIER_KEYS = {
    "id_librarything": ref.LIBRARYTHING_AUTHOR,
    "id_wikidata": ref.WIKIDATA_AUTHOR,
    "id_viaf": ref.VIAF_AUTHOR,
}
_AUTHOR_LINK_KEYS = ("wikipedia", "website")
_AUTHOR_METADATA_FIELDS = (
    "comment",
    "date",
    "photos",
    "remote_ids",
    "title",
    "location",
    "entity_type",
    "role",
    "numeration",
    "subjects",
    "tags",
)
_WORK_METADATA_FIELDS = (
    "subjects",
    "subject_places",
    "subject_people",
    "subject_times",
    "cover_edition",
    "lc_classifications",
    "first_publish_date",
    "dewey_number",
    "first_sentence",
    "excerpts",
    "remote_ids",
)
_EDITION_METADATA_FIELDS = (
    "publishers",
    "publish_places",
    "publish_date",
    "publish_country",
    "physical_format",
    "pagination",
    "by_statement",
    "edition_name",
    "lc_classifications",
    "dewey_decimal_class",
    "oclc_numbers",
    "lccn",
    "series",
    "covers",
)


def map_entity_type(source_type: str) -> EntityType | None:
    """Map an OpenLibrary record type (``author``, ``edition``, ``work``) to an entity type."""

    match source_type:
        case "author":
            return EntityType.AUTHOR
        case "edition":
            return EntityType.EDITION
        case "work":
            return EntityType.WORK
        case _:
            return None


def _key_id(key: Any) -> str | None:
    """Return ``OL1A`` for keys like ``/authors/OL1A``."""

    if not isinstance(key, str) or not key:
        return None
    return key.rstrip("/").rsplit("/", 1)[-1] or None


def _text_value(value: Any) -> str | None:
    # OpenLibrary stores long text either as a string or as {"type": "/type/text", "value": ...}
    if isinstance(value, dict):
        value = value.get("value")
    if isinstance(value, str) and value.strip():
        return value
    return None


def normalize_date(value: Any) -> str | None:
    """Convert free-form OpenLibrary dates into ``YYYY[-MM[-DD]]``.

    Returns ``None`` when no year can be recognized.
    """

    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip().rstrip(".")
    if is_date(text):
        return text
    for fmt, precision in _DATE_FORMATS:
        try:
            parsed = datetime.strptime(text, fmt)
        except ValueError:
            continue
        if precision == "month":
            return f"{parsed.year:04d}-{parsed.month:02d}"
        return f"{parsed.year:04d}-{parsed.month:02d}-{parsed.day:02d}"
    match = _YEAR_PATTERN.search(text)
    return match.group(0).zfill(4) if match else None


def language_ids(languages: Any) -> List[int]:
    """Map OpenLibrary language references (``{"key": "/languages/eng"}``) to language ids."""

    ids: List[int] = []
    for language in languages or []:
        code = _key_id(language.get("key") if isinstance(language, dict) else language)
        name = ref.OPENLIBRARY_LANGUAGES.get((code or "").lower())
        if name is None:
            continue
        language_id = ref.LANGUAGE_IDS[name]
        if language_id not in ids:
            ids.append(language_id)
    return ids


class _AliasBuilder:
    """Collect aliases, flagging the first one as default."""

    def __init__(self, language_id: int) -> None:
        self.language_id = language_id
        self.aliases: List[Dict[str, Any]] = []
        self._seen: set[str] = set()

    def add(self, name: Any, *, primary: bool = False) -> None:
        if not isinstance(name, str) or not name.strip() or name in self._seen:
            return
        self._seen.add(name)
        self.aliases.append(
            {
                "name": name,
                "sortName": sort_name(name),
                "languageId": self.language_id,
                "default": not self.aliases,
                "primary": primary,
            }
        )


def _links(record: Dict[str, Any]) -> List[Dict[str, str]]:
    links = []
    for link in record.get("links") or []:
        if isinstance(link, dict) and link.get("title") and link.get("url"):
            links.append({"title": link["title"], "url": link["url"]})
    return links


def _copy_fields(record: Dict[str, Any], fields: Iterable[str], target: Dict[str, Any]) -> None:
    for field in fields:
        if record.get(field) is not None:
            target[field] = record[field]


def _record_language(record: Dict[str, Any]) -> int:
    ids = language_ids(record.get("languages"))
    return ids[0] if ids else ref.DEFAULT_LANGUAGE_ID


def parse_author(record: Dict[str, Any]) -> Dict[str, Any]:
    """Map an OpenLibrary author record to author data."""

    aliases = _AliasBuilder(_record_language(record))
    aliases.add(record.get("name"))
    aliases.add(record.get("personal_name"))
    for name in record.get("alternate_names") or []:
        aliases.add(name)
    aliases.add(record.get("fuller_name"))

    metadata: Dict[str, Any] = {"links": _links(record), "relationships": [], "identifiers": [], "originId": []}
    data: Dict[str, Any] = {"alias": aliases.aliases, "identifiers": [], "metadata": metadata, "ended": False}

    author_id = _key_id(record.get("key"))
    if author_id:
        # BookBrainz has no identifier type for OpenLibrary authors
        metadata["identifiers"].append({"type": "openLibraryAuthorId", "value": author_id})

    for key, type_id in _AUTHOR_IDENTIFIER_KEYS.items():
        value = record.get(key) or (record.get("remote_ids") or {}).get(key.removeprefix("id_"))
        if isinstance(value, str) and value:
            data["identifiers"].append({"typeId": type_id, "value": value})

    birth = record.get("birth_date")
    death = record.get("death_date")
    if birth:
        data["beginDate"] = normalize_date(birth)
        data["type"] = "Person"
    if death:
        data["endDate"] = normalize_date(death)
        data["ended"] = True
        data["type"] = "Person"
    raw_dates = {key: value for key, value in (("birth_date", birth), ("death_date", death)) if value}
    if raw_dates:
        metadata["dates"] = raw_dates

    annotation = _text_value(record.get("bio"))
    if annotation:
        data["annotation"] = annotation

    for link_key in _AUTHOR_LINK_KEYS:
        if record.get(link_key):
            metadata["links"].append({"title": link_key, "url": record[link_key]})

    metadata["originId"].extend(record.get("source_records") or [])
    for work in record.get("works") or []:
        work_id = _key_id(work.get("key")) if isinstance(work, dict) else None
        if work_id:
            metadata["relationships"].append({"type": "hasAuthored", "value": work_id})

    _copy_fields(record, _AUTHOR_METADATA_FIELDS, metadata)
    return data


def parse_work(record: Dict[str, Any]) -> Dict[str, Any]:
    """Map an OpenLibrary work record to work data."""

    language_id = _record_language(record)
    aliases = _AliasBuilder(language_id)
    aliases.add(record.get("title"), primary=True)
    aliases.add(record.get("subtitle"))

    metadata: Dict[str, Any] = {"links": _links(record), "relationships": []}
    data: Dict[str, Any] = {"alias": aliases.aliases, "identifiers": [], "metadata": metadata}

    work_id = _key_id(record.get("key"))
    if work_id:
        data["identifiers"].append({"typeId": ref.OPENLIBRARY_WORK_ID, "value": work_id})

    for author in record.get("authors") or []:
        author_key = (author.get("author") or {}).get("key") if isinstance(author, dict) else None
        author_id = _key_id(author_key)
        if author_id:
            metadata["relationships"].append({"type": "authoredBy", "value": author_id})

    annotation = _text_value(record.get("description"))
    if annotation:
        data["annotation"] = annotation

    ids = language_ids(record.get("languages"))
    if ids:
        data["languages"] = [{"id": language} for language in ids]

    _copy_fields(record, _WORK_METADATA_FIELDS, metadata)
    return data


def parse_edition(record: Dict[str, Any]) -> Dict[str, Any]:
    """Map an OpenLibrary edition record to edition data."""

    language_id = _record_language(record)
    aliases = _AliasBuilder(language_id)
    title = record.get("title")
    title_prefix = _text_value(record.get("title_prefix"))
    if isinstance(title, str) and title_prefix:
        title = f"{title_prefix.strip()} {title}"
    aliases.add(title, primary=True)
    aliases.add(record.get("subtitle"))
    for other_title in record.get("other_titles") or []:
        aliases.add(other_title)

    metadata: Dict[str, Any] = {"links": _links(record), "relationships": []}
    data: Dict[str, Any] = {"alias": aliases.aliases, "identifiers": [], "metadata": metadata}

    edition_id = _key_id(record.get("key"))
    if edition_id:
        data["identifiers"].append({"typeId": ref.OPENLIBRARY_EDITION_ID, "value": edition_id})
    for field, type_id in (("isbn_13", ref.ISBN13_EDITION), ("isbn_10", ref.ISBN10_EDITION)):
        for isbn in record.get(field) or []:
            if isinstance(isbn, str) and isbn.strip():
                data["identifiers"].append({"typeId": type_id, "value": isbn.strip()})

    for work in record.get("works") or []:
        work_id = _key_id(work.get("key")) if isinstance(work, dict) else None
        if work_id:
            metadata["relationships"].append({"type": "editionOf", "value": work_id})
    for author in record.get("authors") or []:
        author_id = _key_id(author.get("key")) if isinstance(author, dict) else None
        if author_id:
            metadata["relationships"].append({"type": "authoredBy", "value": author_id})

    pages = record.get("number_of_pages")
    if isinstance(pages, int) and not isinstance(pages, bool) and pages > 0:
        data["pages"] = pages

    ids = language_ids(record.get("languages"))
    if ids:
        data["languages"] = [{"id": language} for language in ids]

    annotation = _text_value(record.get("description")) or _text_value(record.get("notes"))
    if annotation:
        data["annotation"] = annotation

    _copy_fields(record, _EDITION_METADATA_FIELDS, metadata)
    return data


def parse_record(entity_type: EntityType, record: Dict[str, Any]) -> Dict[str, Any]:
    match entity_type:
        case EntityType.AUTHOR:
            return parse_author(record)
        case EntityType.EDITION:
            return parse_edition(record)
        case EntityType.WORK:
            return parse_work(record)
        case _:
            raise UnsupportedRecordError(f"no OpenLibrary parser for entity type {entity_type.value}")


def parse_dump_line(line: str) -> QueuedEntity:
    """Turn one tab-separated dump line into a :class:`QueuedEntity`.

    Raises:
        UnsupportedRecordError: For record types which are not imported and
            for records without a name or title.
        ValueError: For malformed lines or invalid JSON.
    """

    fields = line.rstrip("\r\n").split("\t")
    if len(fields) < 5:
        raise ValueError(f"expected 5 tab-separated fields, got {len(fields)}")
    record_type, key, _revision, last_modified, payload = fields[:5]

    source_type = _key_id(record_type) or ""
    entity_type = map_entity_type(source_type)
    if entity_type is None:
        raise UnsupportedRecordError(f"Unsupported OpenLibrary entity type '{source_type}'")

    record = json.loads(payload)
    if not isinstance(record, dict):
        raise ValueError("record JSON is not an object")

    data = parse_record(entity_type, record)
    if not data["alias"]:
        raise UnsupportedRecordError(f"{entity_type.value} record {key!r} has no name or title")

    last_edited = last_modified or _text_value(record.get("last_modified"))
    return QueuedEntity(
        entity_type=entity_type.value,
        origin_id=_key_id(key) or _key_id(record.get("key")),
        source=OPENLIBRARY_SOURCE,
        last_edited=last_edited,
        data=EntityData.model_validate(data),
    )


__all__ = [
    "OPENLIBRARY_SOURCE",
    "language_ids",
    "map_entity_type",
    "normalize_date",
    "parse_author",
    "parse_dump_line",
    "parse_edition",
    "parse_record",
    "parse_work",
]
