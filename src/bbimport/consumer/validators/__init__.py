"""Validator lookup for queued entities.

``get_validator`` is the single place where entity types are bound to their
validators; the ``match`` is exhaustive over :class:`EntityType`, so adding a
member without a validator is reported by the type checker.
"""

from __future__ import annotations

from typing import Any, Callable, assert_never

from bbimport.consumer.validators.entities import (
    validate_author,
    validate_edition,
    validate_edition_group,
    validate_publisher,
    validate_series,
    validate_work,
)
from bbimport.models.entity import EntityType

Validator = Callable[[Any], bool]


def get_validator(entity_type: EntityType) -> Validator:
    """Return the structural validator for ``entity_type``."""

    match entity_type:
        case EntityType.AUTHOR:
            return validate_author
        case EntityType.EDITION:
            return validate_edition
        case EntityType.EDITION_GROUP:
            return validate_edition_group
        case EntityType.PUBLISHER:
            return validate_publisher
        case EntityType.SERIES:
            return validate_series
        case EntityType.WORK:
            return validate_work
        case _:
            assert_never(entity_type)


def validate(entity_type: EntityType, data: Any) -> bool:
    """Validate ``data`` for ``entity_type``; may raise ``ValidationError``."""

    return get_validator(entity_type)(data)


__all__ = ["Validator", "get_validator", "validate"]
