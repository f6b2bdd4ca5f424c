"""Concrete addressable trees for the CFI addressor and resolver."""

from cfi.trees.soup import SoupTree, read_markup

__all__ = [
    "SoupTree",
    "read_markup",
]
