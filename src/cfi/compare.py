"""Total ordering over CFIs plus sorted-collection helpers.

Order of precedence:
  1. spine position
  2. step indexes, pairwise over ``path`` (+ ``start`` for ranges);
     a shorter sequence with a matching prefix sorts first
  3. terminal offset, with a missing offset read as 0

Ranges are ordered by their start. The ``None -> 0`` offset coalescing is
part of the ordering contract, so ``.../1`` and ``.../1:0`` compare equal.
"""
from __future__ import annotations

import functools
from collections.abc import Callable, Sequence

from cfi.grammar import parse_or_raise
from cfi.types import Cfi, Step, Terminal

type CfiLike = Cfi | str


def _coerce(value: CfiLike) -> Cfi:
    if isinstance(value, Cfi):
        return value
    if isinstance(value, str):
        return parse_or_raise(value)
    raise TypeError(f"expected Cfi or str, got {type(value).__name__}")


def _effective(cfi: Cfi) -> tuple[tuple[Step, ...], Terminal]:
    if cfi.start is not None:
        return cfi.path.steps + cfi.start.steps, cfi.start.terminal
    return cfi.path.steps, cfi.path.terminal


def compare(a: CfiLike, b: CfiLike) -> int:
    """Compare two CFIs: -1 if *a* is earlier, 1 if later, 0 if equal.

    Strings are parsed first; an unparseable string raises
    ``InvalidCfiError`` since it has no place in the order.
    """
    cfi_a = _coerce(a)
    cfi_b = _coerce(b)

    if cfi_a.spine_pos > cfi_b.spine_pos:
        return 1
    if cfi_a.spine_pos < cfi_b.spine_pos:
        return -1

    steps_a, terminal_a = _effective(cfi_a)
    steps_b, terminal_b = _effective(cfi_b)

    for i, step_a in enumerate(steps_a):
        if i >= len(steps_b):
            return 1
        step_b = steps_b[i]
        if step_a.index > step_b.index:
            return 1
        if step_a.index < step_b.index:
            return -1

    if len(steps_a) < len(steps_b):
        return -1

    offset_a = terminal_a.offset if terminal_a.offset is not None else 0
    offset_b = terminal_b.offset if terminal_b.offset is not None else 0
    if offset_a > offset_b:
        return 1
    if offset_a < offset_b:
        return -1
    return 0


sort_key = functools.cmp_to_key(compare)


def sort_cfis(items: Sequence[CfiLike]) -> list[CfiLike]:
    """Return *items* in reading order (stable for equal CFIs)."""
    return sorted(items, key=sort_key)


# ---------------------------------------------------------------------------
# Binary search over sorted CFI collections
# ---------------------------------------------------------------------------


def location_of[T](
    item: T,
    items: Sequence[T],
    compare_fn: Callable[[T, T], int] = compare,  # type: ignore[assignment]
) -> int:
    """Insertion index of *item* in the sorted *items*.

    An exact hit returns that element's index; otherwise the index of the
    first element sorting after *item*. ``location_of(x, items) - 1`` is the
    nearest preceding location.
    """
    start = 0
    end = len(items)
    while True:
        pivot = start + (end - start) // 2
        if end - start <= 0:
            return pivot
        compared = compare_fn(items[pivot], item)
        if end - start == 1:
            return pivot if compared >= 0 else pivot + 1
        if compared == 0:
            return pivot
        if compared < 0:
            start = pivot
        else:
            end = pivot


def index_of_sorted[T](
    item: T,
    items: Sequence[T],
    compare_fn: Callable[[T, T], int] = compare,  # type: ignore[assignment]
) -> int:
    """Index of an element equal to *item* in sorted *items*, or -1."""
    start = 0
    end = len(items)
    while True:
        if end - start <= 0:
            return -1
        pivot = start + (end - start) // 2
        compared = compare_fn(items[pivot], item)
        if end - start == 1:
            return pivot if compared == 0 else -1
        if compared == 0:
            return pivot
        if compared < 0:
            start = pivot
        else:
            end = pivot
