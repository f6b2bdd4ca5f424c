"""Span resolver — CFI <-> live tree positions.

Two directions:

* tree -> CFI: ``from_position`` (a node, optionally with an offset) and
  ``from_span`` (start/end positions). Ranges factor the steps shared by
  both ends into ``path``.
* CFI -> tree: ``to_span`` resolves the start (and end) steps with
  ``find_node`` and applies the terminal offsets. When an offset no longer
  fits its container (the tree changed since the CFI was made, or overlay
  markup split the text run) ``fix_miss`` re-derives a position from the
  parent's normalized children.

A filter only takes effect when the tree actually contains a filtered
element; otherwise plain enumeration is used, which is what the CFI would
have been computed with.
"""
from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from cfi.addressor import (
    effective_kind,
    equal_step,
    normalized_map,
    patch_offset,
    path_to,
    text_nodes,
)
from cfi.codec import parse_component
from cfi.tree import (
    AddressableTree,
    NodeFilter,
    element_children,
    has_filtered_nodes,
    max_offset,
    require_tree,
    text_descendants,
)
from cfi.types import (
    Cfi,
    Component,
    Err,
    Ok,
    OffsetOutOfRangeError,
    Result,
    Span,
    Step,
    StepMiss,
    TreePosition,
)

log = logging.getLogger("cfi.resolver")


def _active_filter(tree: AddressableTree, is_filtered: NodeFilter | None) -> NodeFilter | None:
    return is_filtered if has_filtered_nodes(tree, is_filtered) else None


# ---------------------------------------------------------------------------
# Steps -> node
# ---------------------------------------------------------------------------


def _nth_child(
    tree: AddressableTree,
    container: Any,
    step: Step,
    is_filtered: NodeFilter | None,
) -> Any | None:
    if is_filtered is None:
        if step.type == "element":
            candidates = element_children(tree, container)
        else:
            candidates = text_nodes(tree, container)
        return candidates[step.index] if step.index < len(candidates) else None

    if step.type == "element":
        children: Sequence[Any] = element_children(tree, container)
    else:
        children = tree.child_nodes(container)
    index_map = normalized_map(tree, children, step.type, is_filtered)
    for raw_index, logical in index_map.items():
        child = children[raw_index]
        if logical == step.index and effective_kind(tree, child, is_filtered) == step.type:
            return child
    return None


def walk_to_node(
    steps: Sequence[Step],
    tree: AddressableTree,
    is_filtered: NodeFilter | None = None,
) -> Result[Any, StepMiss]:
    """Descend from the document element one step at a time.

    Element steps with an id are looked up by id (ordinals drift more often
    than ids); everything else goes by ordinal, read through the normalized
    map when a filter is active.
    """
    container = tree.document_element()
    for i, step in enumerate(steps):
        if step.type == "element" and step.id:
            found = tree.element_by_id(step.id)
        else:
            found = _nth_child(tree, container, step, is_filtered)
        if found is None:
            return Err(StepMiss(step_index=i, step=step, last_found=container))
        container = found
    return Ok(container)


def find_node(
    steps: Sequence[Step],
    tree: AddressableTree,
    is_filtered: NodeFilter | None = None,
) -> Any | None:
    """Resolve *steps* to a node, or None if any step cannot be resolved."""
    if is_filtered is None and tree.supports_structural_query:
        found = tree.structural_query(steps)
        if found is not None:
            return found
        log.debug("structural query missed, walking %d steps", len(steps))

    result = walk_to_node(steps, tree, is_filtered)
    if isinstance(result, Err):
        log.debug(
            "walk stopped at step %d (%s index %d)",
            result.error.step_index,
            result.error.step.type,
            result.error.step.index,
        )
        return None
    return result.value


def _position_in_wrapper(tree: AddressableTree, wrapper: Any, offset: int) -> TreePosition:
    """Place *offset* in the text nested inside a filtered *wrapper*."""
    texts = text_descendants(tree, wrapper)
    if not texts:
        return TreePosition(wrapper, min(offset, max_offset(tree, wrapper)))
    remaining = offset
    for text in texts:
        length = tree.text_length(text)
        if remaining <= length:
            return TreePosition(text, remaining)
        remaining -= length
    last = texts[-1]
    return TreePosition(last, tree.text_length(last))


def fix_miss(
    steps: Sequence[Step],
    offset: int,
    tree: AddressableTree,
    is_filtered: NodeFilter | None = None,
) -> TreePosition:
    """Recover a position whose offset does not fit the resolved node.

    Re-resolves the parent of the target, then walks the children sharing
    the target's logical text ordinal, consuming their text lengths until
    *offset* falls inside one of them. Never raises; when nothing fits the
    result is offset 0 in the best container found.
    """
    if not steps:
        return TreePosition(tree.document_element(), 0)

    parent = find_node(steps[:-1], tree, is_filtered)
    if parent is None:
        return TreePosition(tree.document_element(), 0)

    children = tree.child_nodes(parent)
    index_map = normalized_map(tree, children, "text", is_filtered)
    target = steps[-1].index

    remaining = offset
    for raw_index, logical in index_map.items():
        if logical != target:
            continue
        child = children[raw_index]
        length = tree.text_length(child)
        if remaining > length:
            remaining -= length
            continue
        log.debug("recovered offset %d as %d in a sibling run", offset, remaining)
        if tree.node_kind(child) == "element":
            return _position_in_wrapper(tree, child, remaining)
        return TreePosition(child, remaining)

    log.debug("offset %d does not fit text run %d, using offset 0", offset, target)
    return TreePosition(parent, 0)


def _position_at(
    tree: AddressableTree,
    node: Any,
    offset: int,
    expects_text: bool,
) -> TreePosition:
    if expects_text and tree.node_kind(node) != "text":
        raise OffsetOutOfRangeError("text step resolved to a non-text node")
    limit = max_offset(tree, node)
    if offset > limit:
        raise OffsetOutOfRangeError(f"offset {offset} exceeds {limit}")
    return TreePosition(node, offset)


def _resolve(
    tree: AddressableTree,
    node: Any,
    steps: Sequence[Step],
    component: Component,
    is_filtered: NodeFilter | None,
) -> TreePosition:
    offset = component.terminal.offset if component.terminal.offset is not None else 0
    expects_text = bool(steps) and steps[-1].type == "text"
    try:
        return _position_at(tree, node, offset, expects_text)
    except OffsetOutOfRangeError:
        return fix_miss(steps, offset, tree, is_filtered)


def to_span(
    cfi: Cfi,
    tree: AddressableTree,
    is_filtered: NodeFilter | None = None,
) -> Span | None:
    """Resolve *cfi* against *tree*.

    Returns:
        The start/end positions, or None when the start cannot be found. A
        range whose end cannot be found collapses onto its start.
    """
    tree = require_tree(tree)
    active = _active_filter(tree, is_filtered)

    if cfi.start is not None:
        start_component = cfi.start
        start_steps = cfi.path.steps + cfi.start.steps
    else:
        start_component = cfi.path
        start_steps = cfi.path.steps

    start_node = find_node(start_steps, tree, active)
    if start_node is None:
        log.warning("No start container found for %s", cfi)
        return None
    start = _resolve(tree, start_node, start_steps, start_component, active)

    end = start
    if cfi.end is not None:
        end_steps = cfi.path.steps + cfi.end.steps
        end_node = find_node(end_steps, tree, active)
        if end_node is not None:
            end = _resolve(tree, end_node, end_steps, cfi.end, active)
        else:
            log.info("No end container found for %s, collapsing to start", cfi)

    return Span(start=start, end=end)


# ---------------------------------------------------------------------------
# Tree -> CFI
# ---------------------------------------------------------------------------


def _base_component(base: str | Component) -> Component:
    if isinstance(base, Component):
        return base
    if isinstance(base, str):
        return parse_component(base)
    raise TypeError(f"base must be a component string or Component, got {type(base).__name__}")


def _patched(
    tree: AddressableTree,
    pos: TreePosition,
    is_filtered: NodeFilter | None,
    needs_patching: bool,
) -> int:
    if needs_patching and is_filtered is not None and tree.node_kind(pos.container) == "text":
        return patch_offset(tree, pos.container, pos.offset, is_filtered)
    return pos.offset


def from_span(
    tree: AddressableTree,
    start: TreePosition,
    end: TreePosition,
    base: str | Component,
    is_filtered: NodeFilter | None = None,
) -> Cfi:
    """Build a CFI for the span *start*..*end*.

    A collapsed span yields a point CFI. Otherwise both ends are addressed
    in full and their common leading steps (never including the last step
    of the start) move into ``path``.

    Args:
        tree: Tree both positions belong to.
        start: Start position.
        end: End position.
        base: Base component (``/6/4[chap01ref]``) of the content document.
        is_filtered: Transparent-node predicate.
    """
    tree = require_tree(tree)
    base_component = _base_component(base)
    needs_patching = has_filtered_nodes(tree, is_filtered)

    if Span(start, end).collapsed:
        offset = _patched(tree, start, is_filtered, needs_patching)
        return Cfi(base=base_component, path=path_to(tree, start.container, offset, is_filtered))

    start_component = path_to(
        tree, start.container, _patched(tree, start, is_filtered, needs_patching), is_filtered,
    )
    end_component = path_to(
        tree, end.container, _patched(tree, end, is_filtered, needs_patching), is_filtered,
    )

    shared: list[Step] = []
    for i in range(len(start_component.steps) - 1):
        other = end_component.steps[i] if i < len(end_component.steps) else None
        if not equal_step(start_component.steps[i], other):
            break
        shared.append(start_component.steps[i])

    n = len(shared)
    return Cfi(
        base=base_component,
        path=Component(steps=tuple(shared)),
        start=Component(steps=start_component.steps[n:], terminal=start_component.terminal),
        end=Component(steps=end_component.steps[n:], terminal=end_component.terminal),
    )


def from_position(
    tree: AddressableTree,
    node: Any,
    offset: int | None,
    base: str | Component,
    is_filtered: NodeFilter | None = None,
) -> Cfi:
    """Point CFI for *node*, or for *offset* inside it when given."""
    if offset is None:
        tree = require_tree(tree)
        return Cfi(base=_base_component(base), path=path_to(tree, node, None, is_filtered))
    pos = TreePosition(node, offset)
    return from_span(tree, pos, pos, base, is_filtered)


def collapse(cfi: Cfi, to_start: bool = False) -> Cfi:
    return cfi.collapse(to_start)
