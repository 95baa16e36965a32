"""Primitive field checks shared by the entity validators."""

from __future__ import annotations

import calendar
import re
import uuid
from typing import Any, Mapping

from bbimport.core.exceptions import ValidationError

_DATE_PATTERN = re.compile(r"^(?P<sign>[+-])?(?P<year>\d{1,6})(?:-(?P<month>\d{2})(?:-(?P<day>\d{2}))?)?$")


def get(data: Any, key: str, default: Any = None) -> Any:
    """Return ``data[key]`` for mappings, ``default`` otherwise."""

    if isinstance(data, Mapping):
        return data.get(key, default)
    return default


def is_positive_integer(value: Any, required: bool = False) -> bool:
    if value is None:
        return not required
    # bool is an int subclass but never a valid id
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def is_required_string(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def is_optional_string(value: Any) -> bool:
    return value is None or isinstance(value, str)


def is_optional_boolean(value: Any) -> bool:
    return value is None or isinstance(value, bool)


def parse_date(value: str) -> tuple[int, int | None, int | None] | None:
    """Parse ``[+-]YYYY[-MM[-DD]]`` into ``(year, month, day)`` or ``None``."""

    match = _DATE_PATTERN.match(value.strip())
    if not match:
        return None
    year = int(match.group("year"))
    if match.group("sign") == "-":
        year = -year
    month = int(match.group("month")) if match.group("month") else None
    day = int(match.group("day")) if match.group("day") else None
    if month is not None and not 1 <= month <= 12:
        return None
    if day is not None:
        if month == 2 and calendar.isleap(year):
            days_in_month = 29
        else:
            days_in_month = calendar.monthrange(2001, month)[1]
        if not 1 <= day <= days_in_month:
            return None
    return year, month, day


def is_date(value: Any) -> bool:
    """Return True for ``None``/empty values and well-formed partial ISO dates."""

    if value is None or value == "":
        return True
    if not isinstance(value, str):
        return False
    return parse_date(value) is not None


def date_sort_key(value: str) -> tuple[int, int, int]:
    parsed = parse_date(value)
    if parsed is None:
        raise ValueError(f"invalid date {value!r}")
    year, month, day = parsed
    return year, month or 0, day or 0


def is_uuid(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    try:
        uuid.UUID(value)
    except ValueError:
        return False
    return True


def require(condition: bool, field: str, message: str) -> None:
    """Raise :class:`ValidationError` for ``field`` unless ``condition`` holds."""

    if not condition:
        raise ValidationError(message, field=field)


def check_positive_integer(data: Any, field: str, required: bool = False) -> None:
    value = get(data, field)
    require(is_positive_integer(value, required), field, f"expected a positive integer, got {value!r}")


def check_date(data: Any, field: str) -> None:
    value = get(data, field)
    require(is_date(value), field, f"invalid date {value!r}")


def check_optional_boolean(data: Any, field: str) -> None:
    value = get(data, field)
    require(is_optional_boolean(value), field, f"expected a boolean, got {value!r}")


def check_date_order(data: Any, begin_field: str = "beginDate", end_field: str = "endDate") -> None:
    """Reject an end date which lies before the begin date."""

    begin = get(data, begin_field)
    end = get(data, end_field)
    if not begin or not end:
        return
    require(
        date_sort_key(begin) <= date_sort_key(end),
        end_field,
        f"end date {end!r} is before begin date {begin!r}",
    )


def check_languages(data: Any, field: str = "languages") -> None:
    languages = get(data, field)
    if languages is None:
        return
    require(isinstance(languages, list), field, "expected a list of languages")
    for language in languages:
        require(
            is_positive_integer(get(language, "id"), required=True),
            field,
            f"invalid language {language!r}",
        )
