"""Capability interface for addressable content trees.

The addressor and resolver only need a handful of read operations on the
tree. Concrete document models (see ``cfi.trees``) implement
``AddressableTree``; nothing in the core imports a concrete tree type.

Node kinds:
  element — may carry an id and a tag name, has ordered children
  text    — a run of characters, no children
  other   — comments, processing instructions, doctypes (never addressed)

The document node itself is never returned: ``parent`` of the document
element is None, which is where upward walks stop.
"""
from __future__ import annotations

from collections.abc import Callable, Iterator, Sequence
from typing import TYPE_CHECKING, Any, Literal, Protocol, runtime_checkable

if TYPE_CHECKING:
    from cfi.types import Step

type NodeKind = Literal["element", "text", "other"]

# Marks nodes that are transparent for addressing (e.g. highlight wrappers)
type NodeFilter = Callable[[Any], bool]


@runtime_checkable
class AddressableTree(Protocol):
    """Read-only view of an ordered element/text tree."""

    supports_structural_query: bool

    def document_element(self) -> Any: ...

    def parent(self, node: Any) -> Any | None: ...

    def child_nodes(self, node: Any) -> Sequence[Any]: ...

    def node_kind(self, node: Any) -> NodeKind: ...

    def node_id(self, node: Any) -> str | None: ...

    def tag_name(self, node: Any) -> str | None: ...

    def text_length(self, node: Any) -> int: ...

    def element_by_id(self, element_id: str) -> Any | None: ...

    def iter_nodes(self) -> Iterator[Any]: ...

    def structural_query(self, steps: Sequence[Step]) -> Any | None: ...


def require_tree(tree: object) -> AddressableTree:
    if not isinstance(tree, AddressableTree):
        raise TypeError(f"expected an AddressableTree, got {type(tree).__name__}")
    return tree


def index_of(nodes: Sequence[Any], node: Any) -> int:
    """Identity-based index (tree nodes may compare equal by content)."""
    for i, candidate in enumerate(nodes):
        if candidate is node:
            return i
    return -1


def element_children(tree: AddressableTree, node: Any) -> list[Any]:
    return [c for c in tree.child_nodes(node) if tree.node_kind(c) == "element"]


def sibling(tree: AddressableTree, node: Any, delta: int) -> Any | None:
    """Previous (``delta=-1``) or next (``delta=1``) sibling of *node*."""
    parent = tree.parent(node)
    if parent is None:
        return None
    siblings = tree.child_nodes(parent)
    idx = index_of(siblings, node)
    target = idx + delta
    if idx < 0 or target < 0 or target >= len(siblings):
        return None
    return siblings[target]


def has_filtered_nodes(tree: AddressableTree, is_filtered: NodeFilter | None) -> bool:
    """True if any element of *tree* matches *is_filtered*."""
    if is_filtered is None:
        return False
    return any(
        tree.node_kind(node) == "element" and is_filtered(node)
        for node in tree.iter_nodes()
    )


def max_offset(tree: AddressableTree, node: Any) -> int:
    """Largest valid offset in *node*: characters for text, children otherwise."""
    if tree.node_kind(node) == "text":
        return tree.text_length(node)
    return len(tree.child_nodes(node))


def text_descendants(tree: AddressableTree, node: Any) -> list[Any]:
    """Text nodes under *node* in document order."""
    out: list[Any] = []
    for child in tree.child_nodes(node):
        kind = tree.node_kind(child)
        if kind == "text":
            out.append(child)
        elif kind == "element":
            out.extend(text_descendants(tree, child))
    return out
