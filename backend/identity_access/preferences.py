"""
Parsing of the untyped `preferences` bag attached to a user record.

Why:
    Identity providers store preferences as a dict, as a JSON-encoded string,
    or not at all. Role resolution needs a predictable shape, so the bag is
    parsed once into an explicit variant instead of probing fields ad hoc.

Behavior:
    - A string is parsed as JSON. A parse failure yields `Unparsed`, which
      carries no structured fields and never raises.
    - Only JSON objects (mappings) contribute fields. Arrays, numbers and
      strings decode fine but expose nothing.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Union


@dataclass(frozen=True)
class Absent:
    """No usable role signal in the preferences."""


@dataclass(frozen=True)
class Scalar:
    value: str


@dataclass(frozen=True)
class Listed:
    values: tuple[str, ...]


@dataclass(frozen=True)
class Unparsed:
    raw: str


RoleSignal = Union[Absent, Scalar, Listed, Unparsed]

ABSENT = Absent()


@dataclass(frozen=True)
class ParsedPreferences:
    fields: Mapping[str, Any]
    unparsed: str | None = None


_EMPTY = ParsedPreferences(fields={})


def parse_preferences(raw: Any) -> ParsedPreferences:
    """Normalize a raw preferences value into a field mapping."""
    if raw is None or raw == "":
        return _EMPTY
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8", errors="replace")
    if isinstance(raw, str):
        try:
            decoded = json.loads(raw)
        except (ValueError, RecursionError):
            return ParsedPreferences(fields={}, unparsed=raw)
        raw = decoded
    if isinstance(raw, Mapping):
        return ParsedPreferences(fields=raw)
    return _EMPTY


def _is_scalar(value: Any) -> bool:
    return not isinstance(value, (Mapping, list, tuple, set, frozenset))


def role_signal(raw: Any) -> RoleSignal:
    """Classify the role information carried by a preferences value.

    `role` wins over `roles` when both are present. Falsy values (empty
    strings, zero, empty lists) count as missing. `None` entries inside
    `roles` are dropped; other entries are stringified.
    """
    parsed = parse_preferences(raw)
    if parsed.unparsed is not None:
        return Unparsed(parsed.unparsed)
    fields = parsed.fields
    role = fields.get("role")
    if role and _is_scalar(role):
        return Scalar(role if isinstance(role, str) else str(role))
    roles = fields.get("roles")
    if isinstance(roles, (list, tuple)):
        values = tuple(item if isinstance(item, str) else str(item) for item in roles if item is not None)
        if values:
            return Listed(values)
    return ABSENT


def preference_value(raw: Any, *keys: str) -> str | None:
    """Return the first non-empty string stored under one of `keys`."""
    fields = parse_preferences(raw).fields
    for key in keys:
        value = fields.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


__all__ = [
    "ABSENT",
    "Absent",
    "Listed",
    "ParsedPreferences",
    "RoleSignal",
    "Scalar",
    "Unparsed",
    "parse_preferences",
    "preference_value",
    "role_signal",
]
