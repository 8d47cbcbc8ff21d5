"""Placeholder expansion for configuration trees.

Strings may reference other keys with ``${dotted.key}`` or ``${dotted.key:default}``.
A referenced key is itself fully expanded before substitution, so the outcome does
not depend on the order in which the tree is walked and a second pass is a no-op.
Missing keys without a default expand to an empty string.
"""

from __future__ import annotations

import json
import re
from collections.abc import Callable

from cascade.common import create_logger
from cascade.utils import split_path
from cascade.utils.types import Tree

logger = create_logger("config.resolver")

type Resolver = Callable[[Tree], None]

PLACEHOLDER = re.compile(r"\$\{([^{}:]*)(?::((?:[^{}]|\$\{[^{}]*\})*))?\}")


def resolve_placeholders(tree: Tree) -> None:
    """Expand every placeholder in ``tree`` in place."""
    _Resolution(tree).walk(tree)


def stringify(value: object) -> str:
    """Render a referenced value for textual substitution."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value, sort_keys=True, separators=(",", ":"), default=str)
    return str(value)


class _Resolution:
    def __init__(self, tree: Tree) -> None:
        self._tree = tree
        self._active: set[tuple[str, ...]] = set()

    def walk(self, node: object) -> None:
        if isinstance(node, dict):
            for key, value in node.items():
                if isinstance(value, str):
                    node[key] = self.expand(value)
                else:
                    self.walk(value)
        elif isinstance(node, list):
            for index, value in enumerate(node):
                if isinstance(value, str):
                    node[index] = self.expand(value)
                else:
                    self.walk(value)

    def expand(self, text: str) -> str:
        if "${" not in text:
            return text
        return PLACEHOLDER.sub(self._replace, text)

    def _replace(self, match: re.Match[str]) -> str:
        key, default = match.group(1), match.group(2)
        found, value = self._lookup(key.strip())
        if found:
            return stringify(value)
        if default is not None:
            return self.expand(default)
        logger.debug("Placeholder key not found", key=key)
        return ""

    def _lookup(self, key: str) -> tuple[bool, object]:
        segments = split_path(key)
        if segments is None:
            return False, None

        parent: object = None
        node: object = self._tree
        for segment in segments:
            if not isinstance(node, dict) or segment not in node:
                return False, None
            parent, node = node, node[segment]

        ident = tuple(segments)
        if ident in self._active:
            logger.warning("Cyclic placeholder reference", key=key)
            return False, None

        self._active.add(ident)
        try:
            if isinstance(node, str):
                node = self.expand(node)
                parent[segments[-1]] = node  # type: ignore[index]
            else:
                self.walk(node)
        finally:
            self._active.discard(ident)

        if node is None:
            return False, None
        return True, node
