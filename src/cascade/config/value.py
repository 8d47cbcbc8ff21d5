"""Typed, hot-swappable accessor for a single resolved configuration node."""

from __future__ import annotations

import re
import threading
from datetime import timedelta
from typing import Any, Final

from pydantic import TypeAdapter, ValidationError
from result import Err, Ok, Result

from cascade.utils.validation import first_validation_issue

from .models import NotFoundError, ScanError, TypeAssertError, ValueAccessError

_MISSING: Final = object()

_TRUE = frozenset({"1", "t", "true", "y", "yes", "on"})
_FALSE = frozenset({"0", "f", "false", "n", "no", "off"})

_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")
_DURATION = re.compile(rf"[-+]?(?:{_DURATION_PART.pattern})+")
_UNIT_SECONDS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_TIMEDELTA_ADAPTER: TypeAdapter[timedelta] = TypeAdapter(timedelta)


class Value:
    """Accessor over one node of the resolved tree.

    The node can be swapped with ``store`` while callers keep holding the same
    Value, so references handed out earlier observe live updates.
    """

    __slots__ = ("_lock", "_node", "_path")

    def __init__(self, path: str, node: object = _MISSING) -> None:
        self._path = path
        self._node = node
        self._lock = threading.Lock()

    @classmethod
    def not_found(cls, path: str) -> Value:
        return cls(path)

    def __repr__(self) -> str:
        node = self.load()
        if node is _MISSING:
            return f"Value({self._path!r}, <not found>)"
        return f"Value({self._path!r}, {node!r})"

    @property
    def path(self) -> str:
        return self._path

    @property
    def found(self) -> bool:
        return self.load() is not _MISSING

    def load(self) -> object:
        """Return the current raw node (the not-found marker for sentinels)."""
        with self._lock:
            return self._node

    def store(self, node: object) -> None:
        with self._lock:
            self._node = node

    def raw(self) -> Result[object, NotFoundError]:
        node = self.load()
        if node is _MISSING:
            return Err(self._not_found())
        return Ok(node)

    def as_str(self) -> Result[str, ValueAccessError]:
        node = self.load()
        match node:
            case _ if node is _MISSING:
                return Err(self._not_found())
            case str():
                return Ok(node)
            case bool():
                return Ok("true" if node else "false")
            case int() | float():
                return Ok(str(node))
            case timedelta():
                return Ok(str(node))
        return Err(self._type_error("str", node))

    def as_int(self) -> Result[int, ValueAccessError]:
        node = self.load()
        match node:
            case _ if node is _MISSING:
                return Err(self._not_found())
            case bool():
                return Err(self._type_error("int", node))
            case int():
                return Ok(node)
            case float() if node.is_integer():
                return Ok(int(node))
            case str():
                try:
                    return Ok(int(node.strip(), 10))
                except ValueError:
                    pass
        return Err(self._type_error("int", node))

    def as_float(self) -> Result[float, ValueAccessError]:
        node = self.load()
        match node:
            case _ if node is _MISSING:
                return Err(self._not_found())
            case bool():
                return Err(self._type_error("float", node))
            case int() | float():
                return Ok(float(node))
            case str():
                try:
                    return Ok(float(node.strip()))
                except ValueError:
                    pass
        return Err(self._type_error("float", node))

    def as_bool(self) -> Result[bool, ValueAccessError]:
        node = self.load()
        match node:
            case _ if node is _MISSING:
                return Err(self._not_found())
            case bool():
                return Ok(node)
            case int() if node in (0, 1):
                return Ok(bool(node))
            case str() if node.strip().lower() in _TRUE:
                return Ok(True)
            case str() if node.strip().lower() in _FALSE:
                return Ok(False)
        return Err(self._type_error("bool", node))

    def as_duration(self) -> Result[timedelta, ValueAccessError]:
        """Interpret the node as a duration.

        Numbers are seconds. Strings may use Go-style units (``1h30m``, ``200ms``)
        or any form pydantic accepts for ``timedelta`` (ISO 8601, ``HH:MM:SS``).
        """
        node = self.load()
        match node:
            case _ if node is _MISSING:
                return Err(self._not_found())
            case bool():
                return Err(self._type_error("timedelta", node))
            case timedelta():
                return Ok(node)
            case int() | float():
                return Ok(timedelta(seconds=node))
            case str():
                parsed = _parse_duration(node.strip())
                if parsed is not None:
                    return Ok(parsed)
        return Err(self._type_error("timedelta", node))

    def scan[T](self, into: type[T]) -> Result[T, NotFoundError | ScanError]:
        """Validate the node into any type pydantic understands."""
        node = self.load()
        if node is _MISSING:
            return Err(self._not_found())
        try:
            return Ok(TypeAdapter(into).validate_python(node))
        except ValidationError as exc:
            return Err(scan_error(into, exc))

    def _not_found(self) -> NotFoundError:
        return NotFoundError(path=self._path, message=f"Key '{self._path}' not found.")

    def _type_error(self, expected: str, node: object) -> TypeAssertError:
        actual = type(node).__name__
        return TypeAssertError(
            path=self._path,
            expected=expected,
            actual=actual,
            message=f"Value at '{self._path}' of type {actual} cannot be read as {expected}.",
        )


def _parse_duration(text: str) -> timedelta | None:
    try:
        return timedelta(seconds=float(text))
    except (ValueError, OverflowError):
        pass
    if _DURATION.fullmatch(text):
        sign = -1 if text.startswith("-") else 1
        seconds = sum(float(amount) * _UNIT_SECONDS[unit] for amount, unit in _DURATION_PART.findall(text))
        return timedelta(seconds=sign * seconds)
    try:
        return _TIMEDELTA_ADAPTER.validate_python(text)
    except ValidationError:
        return None


def scan_error(into: Any, exc: ValidationError) -> ScanError:  # noqa: ANN401
    field, message = first_validation_issue(exc)
    return ScanError(target=getattr(into, "__name__", str(into)), field=field, message=message)
