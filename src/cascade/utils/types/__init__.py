"""Utilities for reusable typed annotations."""

from .fields import Scalar, Tree, TreeNode

__all__ = [
    "Scalar",
    "Tree",
    "TreeNode",
]
