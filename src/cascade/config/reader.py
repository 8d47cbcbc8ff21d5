"""Owner of the merged configuration tree."""

from __future__ import annotations

import copy
import json
import threading

from result import Err, Ok, Result, is_err

from cascade.common import create_logger
from cascade.utils import deep_merge, get_path, set_path, split_path
from cascade.utils.types import Tree

from .codecs import Decoder, decode
from .models import CodecError, DecodeError, Descriptor, PathError
from .resolver import Resolver, resolve_placeholders
from .value import Value

logger = create_logger("config.reader")


class Reader:
    """Merges decoded descriptors into one tree and serves path lookups.

    The merged tree is kept as decoded; ``resolve`` expands a fresh copy of it
    into the tree that lookups are served from, so substituted text is never
    scanned for placeholders twice.

    Every public method takes the tree lock, so merges from watch loops can
    interleave with lookups from callers.
    """

    def __init__(
        self,
        decoder: Decoder = decode,
        resolver: Resolver = resolve_placeholders,
    ) -> None:
        self._decoder = decoder
        self._resolver = resolver
        self._raw: Tree = {}
        self._tree: Tree = {}
        self._lock = threading.RLock()

    def merge(self, *descriptors: Descriptor) -> Result[None, CodecError]:
        """Decode all descriptors, then fold them into the tree in order.

        Nothing is merged when any descriptor fails to decode.
        """
        decoded: list[Tree] = []
        for descriptor in descriptors:
            result = self.decode(descriptor)
            if is_err(result):
                return result
            decoded.append(result.ok_value)

        with self._lock:
            for descriptor, sub_tree in zip(descriptors, decoded, strict=True):
                self._raw = deep_merge(self._raw, sub_tree)
                # Served tree picks up new content now; placeholders expand on resolve.
                self._tree = deep_merge(self._tree, sub_tree)
                logger.debug("Merged descriptor", name=descriptor.name, format=descriptor.format)

        return Ok(None)

    def resolve(self) -> Result[None, DecodeError]:
        with self._lock:
            resolved = copy.deepcopy(self._raw)
            try:
                self._resolver(resolved)
            except (ValueError, TypeError) as exc:
                logger.error("Placeholder resolution failed", error=str(exc))
                return Err(DecodeError(name="*", format="", message=f"Failed to resolve placeholders: {exc}"))
            self._tree = resolved
        return Ok(None)

    def value(self, path: str) -> Value | None:
        """Return a Value holding a copy of the node at ``path``, or None."""
        segments = split_path(path)
        if segments is None:
            return None

        with self._lock:
            found, node = get_path(self._tree, segments)
            if not found:
                return None
            return Value(path, copy.deepcopy(node))

    def tree(self) -> Tree:
        """Return a deep copy of the merged tree."""
        with self._lock:
            return copy.deepcopy(self._tree)

    def raw_tree(self) -> Tree:
        """Return a deep copy of the merged tree before placeholder expansion."""
        with self._lock:
            return copy.deepcopy(self._raw)

    def source(self) -> Result[bytes, DecodeError]:
        """Serialize the merged tree as compact JSON with sorted keys."""
        with self._lock:
            try:
                data = json.dumps(self._tree, sort_keys=True, separators=(",", ":"), default=str)
            except (TypeError, ValueError) as exc:
                return Err(DecodeError(name="*", format="json", message=f"Failed to encode config: {exc}"))
        return Ok(data.encode("utf-8"))

    def decode(self, descriptor: Descriptor) -> Result[Tree, CodecError]:
        if descriptor.format:
            return self._decoder(descriptor)

        segments = split_path(descriptor.name)
        if segments is None:
            return Err(
                PathError(
                    path=descriptor.name,
                    message=f"Descriptor name '{descriptor.name}' is not a valid dotted path.",
                )
            )
        try:
            text = descriptor.data.decode("utf-8")
        except UnicodeDecodeError as exc:
            return Err(DecodeError(name=descriptor.name, format="", message=str(exc)))

        sub_tree: Tree = {}
        set_path(sub_tree, segments, text)
        return Ok(sub_tree)
