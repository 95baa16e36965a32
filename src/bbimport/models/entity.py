"""Normalized entity records exchanged between producers and consumers.

Entities travel through the queue as UTF-8 JSON with camelCase keys. The
models are intentionally permissive about type-specific fields (kept as
model extras) because structural checks belong to the per-type validators in
:mod:`bbimport.consumer.validators`, not to message parsing.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class EntityType(str, Enum):
    """Entity kinds that the importer knows how to validate and persist."""

    AUTHOR = "Author"
    EDITION = "Edition"
    EDITION_GROUP = "EditionGroup"
    PUBLISHER = "Publisher"
    SERIES = "Series"
    WORK = "Work"

    @classmethod
    def parse(cls, value: Any) -> "EntityType | None":
        """Return the matching member or ``None`` for unsupported tags."""

        try:
            return cls(value)
        except ValueError:
            return None


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Alias(_WireModel):
    """Candidate name of an entity."""

    name: str | None = None
    sort_name: str | None = None
    language_id: int | None = None
    default: bool = False
    primary: bool = False


class Identifier(_WireModel):
    """External identifier attached to an entity."""

    type_id: int | None = None
    value: str | None = None


class EntityData(_WireModel):
    """Normalized payload of an entity.

    Type-specific fields such as ``beginDate`` or ``editionGroupBbid`` are
    accepted as extras and serialized back under their wire keys.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    alias: List[Alias] = Field(default_factory=list)
    identifiers: List[Identifier] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict)
    annotation: str | None = None
    disambiguation: str | None = None

    def default_alias(self) -> Alias | None:
        """Return the alias flagged as default, if any."""

        for alias in self.alias:
            if alias.default:
                return alias
        return None

    def as_dict(self) -> Dict[str, Any]:
        """Return the payload as a plain dictionary with wire (camelCase) keys."""

        return self.model_dump(by_alias=True)


class QueuedEntity(_WireModel):
    """Unit of work pushed onto the import queue."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    entity_type: str | None = None
    origin_id: str | None = None
    source: str | None = None
    last_edited: str | None = None
    data: EntityData

    @property
    def supported_type(self) -> EntityType | None:
        """EntityType | None: Parsed entity type, ``None`` when unsupported."""

        return EntityType.parse(self.entity_type)

    def to_json(self) -> bytes:
        """Serialize the entity into the UTF-8 JSON form used on the queue."""

        return self.model_dump_json(by_alias=True).encode("utf-8")

    @classmethod
    def from_json(cls, payload: bytes | str) -> "QueuedEntity":
        """Parse a queue message body; raises ``pydantic.ValidationError`` on bad input."""

        return cls.model_validate_json(payload)

    def __str__(self) -> str:
        return queued_entity_representation(self)


def queued_entity_representation(entity: QueuedEntity) -> str:
    """Return ``'<name>' (<type> <origin id>)`` for log messages."""

    alias = entity.data.default_alias()
    if alias is None and entity.data.alias:
        alias = entity.data.alias[0]
    name = alias.name if alias is not None and alias.name else "[unknown]"
    return f"'{name}' ({entity.entity_type} {entity.origin_id})"


__all__ = [
    "Alias",
    "EntityData",
    "EntityType",
    "Identifier",
    "QueuedEntity",
    "queued_entity_representation",
]
