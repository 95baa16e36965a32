"""Tests for the per-type structural validators."""

from __future__ import annotations

import copy

import pytest

from bbimport.consumer.validators import get_validator, validate
from bbimport.consumer.validators.base import is_date, is_positive_integer, parse_date
from bbimport.core.exceptions import ValidationError
from bbimport.models.entity import EntityType

BASE_DATA = {
    "alias": [
        {"name": "Ursula K. Le Guin", "sortName": "Le Guin, Ursula K.", "languageId": 120, "default": True},
        {"name": "Ursula Kroeber", "sortName": "Kroeber, Ursula", "languageId": 120, "default": False},
    ],
    "identifiers": [{"typeId": 18, "value": "Q181659"}],
    "disambiguation": None,
    "metadata": {},
}


def _data(**overrides) -> dict:
    data = copy.deepcopy(BASE_DATA)
    data.update(overrides)
    return data


@pytest.mark.parametrize("entity_type", list(EntityType))
def test_every_entity_type_has_a_validator(entity_type: EntityType) -> None:
    assert callable(get_validator(entity_type))


def test_valid_author_passes() -> None:
    data = _data(beginDate="1929-10-21", endDate="2018-01-22", ended=True, typeId=1)

    assert validate(EntityType.AUTHOR, data) is True


def test_empty_data_is_rejected() -> None:
    with pytest.raises(ValidationError) as excinfo:
        validate(EntityType.WORK, {})

    assert excinfo.value.field == "data"


def test_missing_default_alias_is_rejected() -> None:
    aliases = [dict(alias, default=False) for alias in BASE_DATA["alias"]]

    with pytest.raises(ValidationError) as excinfo:
        validate(EntityType.WORK, _data(alias=aliases))

    assert excinfo.value.field == "alias"


def test_alias_without_language_is_rejected() -> None:
    aliases = copy.deepcopy(BASE_DATA["alias"])
    aliases[1]["languageId"] = None

    with pytest.raises(ValidationError, match="languageId"):
        validate(EntityType.AUTHOR, _data(alias=aliases))


def test_identifier_requires_positive_type() -> None:
    with pytest.raises(ValidationError, match="typeId"):
        validate(EntityType.PUBLISHER, _data(identifiers=[{"typeId": 0, "value": "x"}]))


def test_author_end_date_before_begin_date_is_rejected() -> None:
    with pytest.raises(ValidationError) as excinfo:
        validate(EntityType.AUTHOR, _data(beginDate="2000", endDate="1999-12"))

    assert excinfo.value.field == "endDate"


def test_author_rejects_malformed_date() -> None:
    with pytest.raises(ValidationError, match="beginDate"):
        validate(EntityType.AUTHOR, _data(beginDate="21 October 1929"))


def test_edition_checks_edition_group_and_dimensions() -> None:
    assert validate(
        EntityType.EDITION,
        _data(editionGroupBbid="4ad4a7dd-3e2f-4a63-9a2b-3a0e4a1b2c3d", pages=320, languages=[{"id": 120}]),
    )
    with pytest.raises(ValidationError, match="editionGroupBbid"):
        validate(EntityType.EDITION, _data(editionGroupBbid="not-a-uuid"))
    with pytest.raises(ValidationError, match="pages"):
        validate(EntityType.EDITION, _data(pages=-3))


def test_series_requires_ordering_and_item_type() -> None:
    assert validate(EntityType.SERIES, _data(orderingTypeId=1, entityType="Work"))
    with pytest.raises(ValidationError, match="orderingTypeId"):
        validate(EntityType.SERIES, _data(entityType="Work"))
    with pytest.raises(ValidationError, match="entityType"):
        validate(EntityType.SERIES, _data(orderingTypeId=1, entityType="Bogus"))


def test_work_languages_must_be_positive_ids() -> None:
    with pytest.raises(ValidationError, match="languages"):
        validate(EntityType.WORK, _data(languages=[{"id": "eng"}]))


def test_edition_group_type() -> None:
    assert validate(EntityType.EDITION_GROUP, _data(typeId=2))
    with pytest.raises(ValidationError):
        validate(EntityType.EDITION_GROUP, _data(typeId="Book"))


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("2020", (2020, None, None)),
        ("-0300", (-300, None, None)),
        ("+1999-04", (1999, 4, None)),
        ("2020-02-29", (2020, 2, 29)),
        ("2019-02-29", None),
        ("2020-13", None),
        ("March 2020", None),
    ],
)
def test_parse_date(value: str, expected) -> None:
    assert parse_date(value) == expected


def test_primitive_checks() -> None:
    assert is_date(None) and is_date("")
    assert not is_date(2020)
    assert is_positive_integer(None)
    assert not is_positive_integer(None, required=True)
    assert not is_positive_integer(True)
