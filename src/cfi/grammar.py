"""Grammar parser for ``epubcfi(...)`` strings.

Grammar::

    cfi        := 'epubcfi(' base '!' region ')'
    base       := component
    region     := component                          (plain path)
                | component ',' component ',' component   (range)
    component  := see cfi.codec

The region split expects exactly three comma parts for a range. Any other
count keeps only the first part and reads the CFI as a plain path.

Public API:

* ``is_cfi_string(value)`` — wrapper check, no parsing.
* ``parse(text)`` — ``Ok(Cfi)`` or ``Err(CfiParseError)``; never raises.
* ``parse_or_raise(text)`` — same, raising ``InvalidCfiError``.
* ``generate_chapter_component(spine_index, position, item_id)`` — base
  component for a spine item.
"""
from __future__ import annotations

from cfi.codec import parse_component
from cfi.types import Cfi, CfiParseError, Component, Err, InvalidCfiError, Ok, Result

CFI_PREFIX = "epubcfi("
CFI_SUFFIX = ")"


def is_cfi_string(value: object) -> bool:
    """True if *value* is a str wrapped in ``epubcfi(`` ... ``)``."""
    return (
        isinstance(value, str)
        and value.startswith(CFI_PREFIX)
        and value.endswith(CFI_SUFFIX)
    )


def unwrap(text: str) -> str:
    """Strip the ``epubcfi(`` / ``)`` wrapper if present."""
    if is_cfi_string(text):
        return text[len(CFI_PREFIX):-len(CFI_SUFFIX)]
    return text


def split_components(body: str) -> tuple[str, str, tuple[str, str] | None]:
    """Split an unwrapped CFI into (base, path, (start, end) | None)."""
    base, _, region = body.partition("!")
    parts = region.split(",")
    if len(parts) == 3:
        return base, parts[0], (parts[1], parts[2])
    return base, parts[0], None


def parse(text: object) -> Result[Cfi, CfiParseError]:
    """Parse a CFI string into a ``Cfi``.

    Malformed input is reported as ``Err`` rather than raised, so callers
    scanning many stored locations stay on an exception-free path.

    Args:
        text: A CFI, normally wrapped in ``epubcfi(...)``. An unwrapped
            ``base!path`` string is also accepted.

    Returns:
        ``Ok(cfi)`` or ``Err(CfiParseError)`` with reason
        ``not_a_string`` | ``missing_base`` | ``base_too_short``.
    """
    if not isinstance(text, str):
        return Err(CfiParseError(
            reason="not_a_string",
            raw=repr(text),
            message=f"expected str, got {type(text).__name__}",
        ))

    base_str, path_str, range_parts = split_components(unwrap(text))
    if not base_str:
        return Err(CfiParseError(
            reason="missing_base",
            raw=text,
            message="no base component before '!'",
        ))

    base = parse_component(base_str)
    # Chapter step is always the second step of the base
    if len(base.steps) < 2:
        return Err(CfiParseError(
            reason="base_too_short",
            raw=text,
            message=f"base needs 2 steps, got {len(base.steps)}",
        ))

    path = parse_component(path_str) if path_str else Component()
    start: Component | None = None
    end: Component | None = None
    if range_parts is not None:
        start = parse_component(range_parts[0])
        end = parse_component(range_parts[1])

    return Ok(Cfi(base=base, path=path, start=start, end=end))


def parse_or_raise(text: object) -> Cfi:
    result = parse(text)
    if isinstance(result, Err):
        raise InvalidCfiError(result.error)
    return result.value


def generate_chapter_component(
    spine_index: int,
    position: int,
    item_id: str | None = None,
) -> str:
    """Build the base component for one spine item.

    Args:
        spine_index: Element index of the ``<spine>`` node in the package
            document (usually 2, giving ``/6``).
        position: Index of the itemref within the spine.
        item_id: Optional itemref id, emitted as ``[id]``.

    Returns:
        A component string such as ``/6/4[chap01ref]``.
    """
    if spine_index < 0 or position < 0:
        raise ValueError(
            f"spine_index and position must be >= 0, got {spine_index}, {position}"
        )
    out = f"/{(spine_index + 1) * 2}/{(position + 1) * 2}"
    if item_id:
        out += f"[{item_id}]"
    return out
