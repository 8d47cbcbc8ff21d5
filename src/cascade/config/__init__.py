"""Public configuration API for cascade.

Sources produce descriptors, the Reader merges and resolves them into one
tree, and Config keeps that tree live and hands out typed Values.
"""

from __future__ import annotations

from .codecs import SUPPORTED_FORMATS, decode
from .manager import Config, Observer
from .models import (
    ConfigError,
    DecodeError,
    Descriptor,
    NotFoundError,
    PathError,
    ScanError,
    SourceError,
    SourceState,
    TypeAssertError,
    UnsupportedFormatError,
    WatchCancelledError,
)
from .protocol import Source, Watcher
from .reader import Reader
from .resolver import resolve_placeholders
from .value import Value

__all__ = [
    "SUPPORTED_FORMATS",
    "Config",
    "ConfigError",
    "DecodeError",
    "Descriptor",
    "NotFoundError",
    "Observer",
    "PathError",
    "Reader",
    "ScanError",
    "Source",
    "SourceError",
    "SourceState",
    "TypeAssertError",
    "UnsupportedFormatError",
    "Value",
    "WatchCancelledError",
    "Watcher",
    "decode",
    "resolve_placeholders",
]
