"""Schema-tolerant readers for untyped lockfile JSON.

Each reader returns an explicit ``None`` when the field is absent or has
the wrong shape, so callers never rely on truthiness of foreign values.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

NODE_MODULES = "node_modules/"


def as_mapping(value: Any) -> Mapping[str, Any] | None:
    return value if isinstance(value, Mapping) else None


def read_str(info: Mapping[str, Any], key: str) -> str | None:
    value = info.get(key)
    return value if isinstance(value, str) else None


def read_bool(info: Mapping[str, Any], key: str) -> bool | None:
    value = info.get(key)
    return value if isinstance(value, bool) else None


def read_key_set(info: Mapping[str, Any], key: str) -> list[str]:
    """Sorted keys of the sub-object at *key* (values are ignored)."""
    sub = as_mapping(info.get(key))
    if sub is None:
        return []
    return sorted(str(k) for k in sub)


def read_str_list(info: Mapping[str, Any], key: str, fallback: str | None = None) -> list[str]:
    """Sorted unique strings of the array at *key*, trying *fallback* if absent or empty."""
    value = info.get(key)
    items = sorted({v for v in value if isinstance(v, str)}) if isinstance(value, list) else []
    if not items and fallback is not None:
        return read_str_list(info, fallback)
    return items


def coerce_dependency(value: Any) -> Mapping[str, Any]:
    """Normalise one nested-tree value.

    A bare string is the legacy ``name: version`` shorthand; anything that
    is neither an object nor a string is treated as an empty object.
    """
    mapping = as_mapping(value)
    if mapping is not None:
        return mapping
    if isinstance(value, str):
        return {"version": value}
    return {}


def name_from_path(package_path: str | None) -> str | None:
    """Package name from an install path: the segment after the last ``node_modules/``.

    >>> name_from_path("node_modules/a/node_modules/@scope/b")
    '@scope/b'
    """
    if not package_path:
        return None
    segments = [s for s in package_path.split(NODE_MODULES) if s]
    if not segments:
        return None
    name = segments[-1]
    if name.endswith("/"):
        name = name[:-1]
    return name or None
