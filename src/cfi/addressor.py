"""Tree addressor — live tree positions to CFI steps, bottom-up.

Steps are computed by walking from a node up to (not including) the
document element. Without a filter, ordinals come from plain enumeration:
element steps count element siblings, text steps count text siblings.

With a ``NodeFilter``, filtered elements are transparent. Ordinals then come
from a normalized sibling map in which a filtered element behaves like a
text node and every run of adjacent text-like children shares a single
position. A CFI computed while overlay markup is present therefore matches
the one computed after the overlay is removed (and vice versa).

Example — children of ``<p>``::

    "Some years ago, "  <span class=hl>...</span>  " precisely."   <em/>
    text map:   0                0                       0
    element map:                                                     0
"""
from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from cfi.tree import (
    AddressableTree,
    NodeFilter,
    NodeKind,
    element_children,
    index_of,
    sibling,
)
from cfi.types import Component, Step, Terminal


def text_nodes(
    tree: AddressableTree,
    container: Any,
    is_filtered: NodeFilter | None = None,
) -> list[Any]:
    """Text children of *container*, plus filtered elements when a filter is given."""
    out: list[Any] = []
    for child in tree.child_nodes(container):
        kind = tree.node_kind(child)
        if kind == "text":
            out.append(child)
        elif kind == "element" and is_filtered is not None and is_filtered(child):
            out.append(child)
    return out


def effective_kind(
    tree: AddressableTree,
    node: Any,
    is_filtered: NodeFilter | None,
) -> NodeKind:
    kind = tree.node_kind(node)
    if kind == "element" and is_filtered is not None and is_filtered(node):
        return "text"
    return kind


def normalized_map(
    tree: AddressableTree,
    children: Sequence[Any],
    kind: NodeKind,
    is_filtered: NodeFilter | None,
) -> dict[int, int]:
    """Map raw child index -> logical ordinal for children of type *kind*.

    Filtered elements count as text, and consecutive text-like children
    collapse onto the ordinal of the first one in the run.
    """
    output: dict[int, int] = {}
    prev_index = -1
    prev_kind: NodeKind | None = None

    for i, child in enumerate(children):
        curr_kind = effective_kind(tree, child, is_filtered)
        if i > 0 and curr_kind == "text" and prev_kind == "text":
            output[i] = prev_index
        elif curr_kind == kind:
            prev_index += 1
            output[i] = prev_index
        prev_kind = curr_kind

    return output


def position(tree: AddressableTree, node: Any) -> int:
    """Ordinal of *node* among same-type siblings (plain enumeration)."""
    parent = tree.parent(node)
    if parent is None:
        return 0
    if tree.node_kind(node) == "element":
        return index_of(element_children(tree, parent), node)
    return index_of(text_nodes(tree, parent), node)


def filtered_position(tree: AddressableTree, node: Any, is_filtered: NodeFilter) -> int:
    """Ordinal of *node* read through the normalized sibling map."""
    parent = tree.parent(node)
    if parent is None:
        return 0

    if tree.node_kind(node) == "element":
        children: Sequence[Any] = element_children(tree, parent)
        index_map = normalized_map(tree, children, "element", is_filtered)
    else:
        # Inside a filtered node: the wrapper stands in for the text
        if is_filtered(parent):
            node = parent
            parent = tree.parent(node)
            if parent is None:
                return 0
        children = tree.child_nodes(parent)
        index_map = normalized_map(tree, children, "text", is_filtered)

    return index_map[index_of(children, node)]


def filter_node(tree: AddressableTree, node: Any, is_filtered: NodeFilter) -> Any | None:
    """Node to address in place of *node* when filtering.

    Returns:
        * a text sibling of the wrapper, when *node* is text inside a
          filtered element (so split runs join back together);
        * *node* itself when no filtering applies (or no sibling exists);
        * None when *node* is a filtered element, which the walk skips.
    """
    if tree.node_kind(node) == "text":
        parent = tree.parent(node)
        if parent is None or not is_filtered(parent):
            return node
        previous = sibling(tree, parent, -1)
        if previous is not None and tree.node_kind(previous) == "text":
            return previous
        following = sibling(tree, parent, 1)
        if following is not None and tree.node_kind(following) == "text":
            return following
        # Parent will be skipped on the next step up
        return node

    if is_filtered(node):
        return None
    return node


def step_for(tree: AddressableTree, node: Any) -> Step:
    kind = tree.node_kind(node)
    return Step(
        type="text" if kind == "text" else "element",
        index=position(tree, node),
        id=tree.node_id(node),
        tag_name=tree.tag_name(node),
    )


def filtered_step(tree: AddressableTree, node: Any, is_filtered: NodeFilter) -> Step | None:
    target = filter_node(tree, node, is_filtered)
    if target is None:
        return None
    kind = tree.node_kind(target)
    return Step(
        type="text" if kind == "text" else "element",
        index=filtered_position(tree, target, is_filtered),
        id=tree.node_id(target),
        tag_name=tree.tag_name(target),
    )


def path_to(
    tree: AddressableTree,
    node: Any,
    offset: int | None,
    is_filtered: NodeFilter | None = None,
) -> Component:
    """Component addressing *node* (and *offset* inside it).

    Walks up from *node* to the document element, one step per level. When
    an offset is given and the last step is not a text step, an explicit
    first-text-run step is appended: offsets always land in text.
    """
    steps: list[Step] = []
    current = node
    while current is not None and tree.parent(current) is not None:
        if is_filtered is not None:
            step = filtered_step(tree, current, is_filtered)
        else:
            step = step_for(tree, current)
        if step is not None:
            steps.append(step)
        current = tree.parent(current)
    steps.reverse()

    terminal = Terminal()
    if offset is not None and offset >= 0:
        terminal = Terminal(offset=offset)
        if steps and steps[-1].type != "text":
            steps.append(Step(type="text", index=0))

    return Component(steps=tuple(steps), terminal=terminal)


def patch_offset(
    tree: AddressableTree,
    node: Any,
    offset: int,
    is_filtered: NodeFilter,
) -> int:
    """Rebase *offset* onto the start of the logical (merged) text run.

    Adds the text length of every preceding text sibling and filtered
    element, stopping at the first node that ends the run (an unfiltered
    element, a comment or a processing instruction), as ``normalized_map``
    does.
    """
    if tree.node_kind(node) != "text":
        raise ValueError("patch_offset anchor must be a text node")

    current = node
    total = offset
    parent = tree.parent(node)
    if parent is not None and is_filtered(parent):
        current = parent

    previous = sibling(tree, current, -1)
    while previous is not None:
        if effective_kind(tree, previous, is_filtered) != "text":
            break
        total += tree.text_length(previous)
        current = previous
        previous = sibling(tree, current, -1)

    return total


def equal_step(a: Step | None, b: Step | None) -> bool:
    """Same type, index and id (tag names are ignored)."""
    if a is None or b is None:
        return False
    return a.index == b.index and a.id == b.id and a.type == b.type


# ---------------------------------------------------------------------------
# Structural query rendering
# ---------------------------------------------------------------------------


def _css_string(value: str) -> str:
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


def steps_to_query_selector(steps: Sequence[Step]) -> str:
    """CSS selector for element *steps*, relative to the document element.

    Each step becomes ``*:nth-child(n)``, plus ``[id="..."]`` when the step
    carries an id, so a match must agree on both position and id::

        :scope > *:nth-child(2)[id="body01"] > *:nth-child(4)

    Raises:
        ValueError: if *steps* contains a text step (CSS cannot select text).
    """
    parts = [":scope"]
    for step in steps:
        if step.type != "element":
            raise ValueError("text steps cannot be rendered as a CSS selector")
        selector = f"*:nth-child({step.index + 1})"
        if step.id:
            selector += f"[id={_css_string(step.id)}]"
        parts.append(selector)
    return " > ".join(parts)
