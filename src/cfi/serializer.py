"""CFI serialization — wire string and JSON-ready dict views.

``to_string`` is the left inverse of ``cfi.grammar.parse``: for every CFI
the parser produced, ``parse(to_string(cfi))`` yields an equal value.
"""
from __future__ import annotations

from typing import Any

from cfi.codec import component_string
from cfi.grammar import CFI_PREFIX, CFI_SUFFIX
from cfi.types import Cfi, Component, Step, Terminal


def to_string(cfi: Cfi) -> str:
    """Render ``epubcfi(base!path[,start,end])``."""
    out = CFI_PREFIX + component_string(cfi.base) + "!" + component_string(cfi.path)
    if cfi.start is not None and cfi.end is not None:
        out += "," + component_string(cfi.start)
        out += "," + component_string(cfi.end)
    return out + CFI_SUFFIX


# ---------------------------------------------------------------------------
# Dict round-trip (JSON-ready)
# ---------------------------------------------------------------------------


def _step_to_dict(step: Step) -> dict[str, Any]:
    return {
        "type": step.type,
        "index": step.index,
        "id": step.id,
        "tag_name": step.tag_name,
    }


def component_to_dict(component: Component) -> dict[str, Any]:
    return {
        "steps": [_step_to_dict(s) for s in component.steps],
        "terminal": {
            "offset": component.terminal.offset,
            "assertion": component.terminal.assertion,
        },
    }


def component_from_dict(data: dict[str, Any]) -> Component:
    terminal = data.get("terminal") or {}
    return Component(
        steps=tuple(
            Step(
                type=s["type"],
                index=int(s["index"]),
                id=s.get("id"),
                tag_name=s.get("tag_name"),
            )
            for s in data.get("steps", [])
        ),
        terminal=Terminal(
            offset=terminal.get("offset"),
            assertion=terminal.get("assertion"),
        ),
    )


def cfi_to_dict(cfi: Cfi) -> dict[str, Any]:
    """Structural view of a CFI, including derived fields and the wire string."""
    return {
        "cfi": to_string(cfi),
        "spine_pos": cfi.spine_pos,
        "range": cfi.is_range,
        "base": component_to_dict(cfi.base),
        "path": component_to_dict(cfi.path),
        "start": component_to_dict(cfi.start) if cfi.start is not None else None,
        "end": component_to_dict(cfi.end) if cfi.end is not None else None,
    }


def cfi_from_dict(data: dict[str, Any]) -> Cfi:
    """Inverse of ``cfi_to_dict``; derived keys are ignored."""
    start = data.get("start")
    end = data.get("end")
    return Cfi(
        base=component_from_dict(data["base"]),
        path=component_from_dict(data["path"]),
        start=component_from_dict(start) if start is not None else None,
        end=component_from_dict(end) if end is not None else None,
    )
