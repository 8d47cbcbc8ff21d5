"""Reusable type aliases for configuration trees."""

from __future__ import annotations

from datetime import timedelta

type Scalar = str | int | float | bool | timedelta
type TreeNode = dict[str, object] | list[object] | Scalar
type Tree = dict[str, object]

__all__ = [
    "Scalar",
    "Tree",
    "TreeNode",
]
