"""Dictionary helpers for nested configuration trees."""

from __future__ import annotations

from collections.abc import Mapping

__all__ = ["deep_merge", "get_path", "set_path", "split_path"]


def deep_merge(
    base: Mapping[str, object],
    override: Mapping[str, object],
) -> dict[str, object]:
    """Recursively merge two mappings, giving precedence to override."""
    result: dict[str, object] = dict(base)

    for key, override_value in override.items():
        if override_value is None:
            continue

        existing_value = result.get(key)

        if isinstance(override_value, Mapping):
            base_value = existing_value if isinstance(existing_value, Mapping) else {}
            result[key] = deep_merge(dict(base_value), dict(override_value))
        elif isinstance(override_value, list):
            result[key] = list(override_value)
        else:
            result[key] = override_value

    return result


def split_path(path: str) -> list[str] | None:
    """Split a dotted path into segments, or return None when it is malformed."""
    if not path:
        return None
    segments = path.split(".")
    if any(not segment for segment in segments):
        return None
    return segments


def get_path(data: Mapping[str, object], segments: list[str]) -> tuple[bool, object]:
    cursor: object = data
    for segment in segments:
        if not isinstance(cursor, Mapping) or segment not in cursor:
            return False, None
        cursor = cursor[segment]
    return True, cursor


def set_path(data: dict[str, object], segments: list[str], value: object) -> None:
    """Insert value at the segment path, replacing non-mapping intermediates."""
    cursor = data
    *parents, leaf = segments
    for segment in parents:
        child = cursor.get(segment)
        if not isinstance(child, dict):
            child = {}
            cursor[segment] = child
        cursor = child
    cursor[leaf] = value
