"""Validation helpers for cascade utilities."""

from __future__ import annotations

from pydantic import ValidationError

__all__ = ["first_validation_issue"]


def first_validation_issue(error: ValidationError) -> tuple[str | None, str]:
    """Return the dotted location and message of the first validation issue."""
    details = error.errors()
    if not details:
        return None, str(error)
    first = details[0]
    loc = first.get("loc") or ()
    field = ".".join(str(part) for part in loc) or None
    return field, first.get("msg", str(error))
