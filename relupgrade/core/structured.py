"""Narrowing helpers for untyped data parsed from TOML.

Used by the config loader; they validate at runtime what the type checker
cannot see in ``tomllib`` output.
"""

from __future__ import annotations

from typing import Mapping, TypeGuard, cast

StrDict = dict[str, object]


def is_str_dict(obj: object) -> TypeGuard[StrDict]:
    """Return True if obj is a dict with string keys."""
    if not isinstance(obj, dict):
        return False
    d = cast(dict[object, object], obj)
    return all(isinstance(k, str) for k in d.keys())


def as_str_dict(obj: object) -> StrDict | None:
    if is_str_dict(obj):
        return obj
    return None


def get_str(table: Mapping[str, object], key: str) -> str | None:
    """Get a string value, stripped; None if missing, not a str, or blank."""
    value = table.get(key)
    if not isinstance(value, str):
        return None
    s = value.strip()
    return s or None


def get_number(table: Mapping[str, object], key: str) -> float | None:
    """Get an int or float value as float; booleans are rejected."""
    value = table.get(key)
    if isinstance(value, bool) or not isinstance(value, int | float):
        return None
    return float(value)


def get_table(table: Mapping[str, object], key: str) -> StrDict | None:
    """Get a nested table (dict with string keys)."""
    return as_str_dict(table.get(key))
