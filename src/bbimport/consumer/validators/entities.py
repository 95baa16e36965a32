"""Structural validators for each supported entity type.

Each validator receives the entity ``data`` as a plain dictionary with wire
(camelCase) keys, returns ``True`` when the data can be imported and raises
:class:`bbimport.core.exceptions.ValidationError` naming the offending field
otherwise.
"""

from __future__ import annotations

from typing import Any, Mapping

from bbimport.consumer.validators.base import (
    check_date,
    check_date_order,
    check_languages,
    check_optional_boolean,
    check_positive_integer,
    get,
    is_uuid,
    require,
)
from bbimport.consumer.validators.common import validate_common
from bbimport.models.entity import EntityType


def _check_area(data: Mapping[str, Any], field: str) -> None:
    check_positive_integer(data, field)


def validate_author(data: Any) -> bool:
    validate_common(data)
    _check_area(data, "beginAreaId")
    _check_area(data, "endAreaId")
    check_date(data, "beginDate")
    check_date(data, "endDate")
    check_date_order(data)
    check_optional_boolean(data, "ended")
    check_positive_integer(data, "typeId")
    check_positive_integer(data, "genderId")
    return True


def validate_edition(data: Any) -> bool:
    validate_common(data)
    edition_group = get(data, "editionGroupBbid")
    require(
        edition_group is None or is_uuid(edition_group),
        "editionGroupBbid",
        f"invalid edition group BBID {edition_group!r}",
    )
    for field in ("formatId", "statusId", "pages", "width", "height", "depth", "weight"):
        check_positive_integer(data, field)
    check_languages(data)
    return True


def validate_edition_group(data: Any) -> bool:
    validate_common(data)
    check_positive_integer(data, "typeId")
    return True


def validate_publisher(data: Any) -> bool:
    validate_common(data)
    _check_area(data, "areaId")
    check_date(data, "beginDate")
    check_date(data, "endDate")
    check_date_order(data)
    check_optional_boolean(data, "ended")
    check_positive_integer(data, "typeId")
    return True


def validate_series(data: Any) -> bool:
    validate_common(data)
    check_positive_integer(data, "orderingTypeId", required=True)
    # Series data carries the type of its items under ``entityType``.
    item_type = get(data, "entityType")
    require(EntityType.parse(item_type) is not None, "entityType", f"invalid series item type {item_type!r}")
    return True


def validate_work(data: Any) -> bool:
    validate_common(data)
    check_positive_integer(data, "typeId")
    check_languages(data)
    return True


__all__ = [
    "validate_author",
    "validate_edition",
    "validate_edition_group",
    "validate_publisher",
    "validate_series",
    "validate_work",
]
