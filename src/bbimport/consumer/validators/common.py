"""Checks shared by every entity type: aliases, identifiers and the name section."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping

from bbimport.consumer.validators.base import (
    get,
    is_optional_string,
    is_positive_integer,
    is_required_string,
    require,
)

LOGGER = logging.getLogger(__name__)


def get_default_alias(data: Mapping[str, Any]) -> Dict[str, Any] | None:
    for alias in get(data, "alias") or []:
        if get(alias, "default"):
            return alias
    return None


def get_alias_section(data: Mapping[str, Any]) -> List[Dict[str, Any]]:
    """Return the aliases that are edited alongside the name section (non-primary ones)."""

    return [alias for alias in get(data, "alias") or [] if not get(alias, "primary")]


def get_name_section(data: Mapping[str, Any]) -> Dict[str, Any]:
    default_alias = get_default_alias(data)
    if default_alias is None:
        return {}
    return {**default_alias, "disambiguation": get(data, "disambiguation")}


def validate_alias(alias: Any, field: str = "alias") -> bool:
    require(isinstance(alias, Mapping), field, f"expected an object, got {alias!r}")
    name = get(alias, "name")
    require(is_required_string(name), f"{field}.name", f"invalid name {name!r}")
    require(is_required_string(get(alias, "sortName")), f"{field}.sortName", f"invalid sort name for {name!r}")
    language = get(alias, "languageId")
    require(is_positive_integer(language, required=True), f"{field}.languageId", f"invalid language {language!r}")
    require(isinstance(get(alias, "default"), bool), f"{field}.default", "default flag must be a boolean")
    return True


def validate_aliases(data: Mapping[str, Any]) -> bool:
    aliases = get(data, "alias")
    require(isinstance(aliases, list), "alias", "expected a list of aliases")
    defaults = sum(1 for alias in aliases if get(alias, "default"))
    require(defaults == 1, "alias", f"expected exactly one default alias, found {defaults}")
    for index, alias in enumerate(get_alias_section(data)):
        validate_alias(alias, field=f"alias[{index}]")
    return True


def validate_identifier(identifier: Any, field: str = "identifiers") -> bool:
    require(isinstance(identifier, Mapping), field, f"expected an object, got {identifier!r}")
    value = get(identifier, "value")
    require(is_required_string(value), f"{field}.value", f"invalid identifier value {value!r}")
    type_id = get(identifier, "typeId")
    require(is_positive_integer(type_id, required=True), f"{field}.typeId", f"invalid identifier type {type_id!r}")
    return True


def validate_identifiers(data: Mapping[str, Any]) -> bool:
    identifiers = get(data, "identifiers")
    if identifiers is None:
        return True
    require(isinstance(identifiers, list), "identifiers", "expected a list of identifiers")
    for index, identifier in enumerate(identifiers):
        validate_identifier(identifier, field=f"identifiers[{index}]")
    return True


def validate_name_section(data: Mapping[str, Any]) -> bool:
    """Validate the default alias as the entity's display name."""

    section = get_name_section(data)
    require(bool(section), "nameSection", "entity has no default alias")
    name = get(section, "name")
    require(is_required_string(name), "nameSection.name", f"invalid name {name!r}")
    require(is_required_string(get(section, "sortName")), "nameSection.sortName", f"invalid sort name for {name!r}")
    language = get(section, "languageId")
    require(
        is_positive_integer(language, required=True),
        "nameSection.languageId",
        f"invalid language {language!r}",
    )
    disambiguation = get(section, "disambiguation")
    require(
        is_optional_string(disambiguation),
        "nameSection.disambiguation",
        f"invalid disambiguation {disambiguation!r}",
    )
    return True


def validate_common(data: Any) -> bool:
    """Run the checks every entity type has to pass."""

    require(isinstance(data, Mapping) and bool(data), "data", "entity data is empty")
    LOGGER.debug("Validating alias, identifier and name sections")
    validate_aliases(data)
    validate_identifiers(data)
    validate_name_section(data)
    return True


__all__ = [
    "get_alias_section",
    "get_default_alias",
    "get_name_section",
    "validate_alias",
    "validate_aliases",
    "validate_common",
    "validate_identifier",
    "validate_identifiers",
    "validate_name_section",
]
