"""Pydantic models for descriptors, source states and configuration errors."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict


class Descriptor(BaseModel):
    """A named, formatted raw configuration blob produced by a source.

    An empty ``format`` marks a single scalar leaf addressed by the dotted ``name``.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str
    format: str = ""
    data: bytes = b""


class SourceState(str, Enum):
    """Lifecycle of a source owned by a Config."""

    UNLOADED = "unloaded"
    LOADED = "loaded"
    WATCHING = "watching"
    CLOSED = "closed"


class UnsupportedFormatError(BaseModel):
    """No decoder is registered for the descriptor format."""

    model_config = ConfigDict(extra="forbid")

    name: str
    format: str
    message: str


class DecodeError(BaseModel):
    """Descriptor bytes are malformed for the claimed format."""

    model_config = ConfigDict(extra="forbid")

    name: str
    format: str
    message: str


class PathError(BaseModel):
    """A dotted path is empty or has empty segments."""

    model_config = ConfigDict(extra="forbid")

    path: str
    message: str


class NotFoundError(BaseModel):
    """No value exists at the requested path."""

    model_config = ConfigDict(extra="forbid")

    path: str
    message: str


class TypeAssertError(BaseModel):
    """A value cannot be converted to the requested type."""

    model_config = ConfigDict(extra="forbid")

    path: str
    expected: str
    actual: str
    message: str


class SourceError(BaseModel):
    """A source failed to produce descriptors."""

    model_config = ConfigDict(extra="forbid")

    source: str
    message: str


class WatchCancelledError(BaseModel):
    """The watcher was stopped."""

    model_config = ConfigDict(extra="forbid")

    source: str
    message: str = "watch cancelled"


class ScanError(BaseModel):
    """The merged tree does not fit the scan target."""

    model_config = ConfigDict(extra="forbid")

    target: str
    field: str | None = None
    message: str


type CodecError = UnsupportedFormatError | DecodeError | PathError
type ValueAccessError = NotFoundError | TypeAssertError
type WatchError = SourceError | WatchCancelledError | UnsupportedFormatError
type ConfigError = (
    UnsupportedFormatError
    | DecodeError
    | PathError
    | NotFoundError
    | TypeAssertError
    | SourceError
    | WatchCancelledError
    | ScanError
)
