"""Data models exchanged through the import queue."""

from .entity import Alias, EntityData, EntityType, Identifier, QueuedEntity, queued_entity_representation

__all__ = [
    "Alias",
    "EntityData",
    "EntityType",
    "Identifier",
    "QueuedEntity",
    "queued_entity_representation",
]
