"""Step and terminal codec — string <-> struct conversion for one component.

Wire grammar for a component::

    component := ('/' step)* [':' terminal]
    step      := INTEGER ['[' id ']']
    terminal  := [INTEGER] ['[' assertion ']']

Step numbering follows the even/odd rule: even integers address element
children, odd integers address text runs between them.

    element index i  <->  (i + 1) * 2
    text index i     <->  1 + 2 * i
"""
from __future__ import annotations

import re

from cfi.types import Component, Step, Terminal

# Leading integer of a token (parseInt semantics: optional sign, digits)
_LEADING_INT_RE = re.compile(r"\s*([+-]?\d+)")
# Greedy bracket body, so "[a[b]]" keeps its inner brackets
_BRACKET_RE = re.compile(r"\[(.*)\]")


def _leading_int(token: str) -> int | None:
    m = _LEADING_INT_RE.match(token)
    if m is None:
        return None
    return int(m.group(1))


def parse_step(token: str) -> Step | None:
    """Decode one step token, or None if it has no leading integer."""
    num = _leading_int(token)
    if num is None or num < 0:
        return None

    step_id: str | None = None
    bracket = _BRACKET_RE.search(token)
    if bracket and bracket.group(1):
        step_id = bracket.group(1)

    if num % 2 == 0:
        # A bare "0" has no element to address
        if num == 0:
            return None
        return Step(type="element", index=num // 2 - 1, id=step_id)
    return Step(type="text", index=(num - 1) // 2, id=step_id)


def parse_terminal(token: str) -> Terminal:
    """Decode ``offset[assertion]``; a non-numeric offset becomes None."""
    assertion: str | None = None
    bracket = _BRACKET_RE.search(token)
    if bracket and bracket.group(1):
        offset = _leading_int(token.split("[", 1)[0])
        assertion = bracket.group(1)
    else:
        offset = _leading_int(token)

    if offset is not None and offset < 0:
        offset = None
    return Terminal(offset=offset, assertion=assertion)


def parse_component(text: str) -> Component:
    """Decode a ``/step/step:terminal`` string.

    Step tokens that fail to decode are dropped so a damaged fragment still
    yields the steps around it.
    """
    step_part, sep, terminal_part = text.partition(":")
    terminal = parse_terminal(terminal_part) if sep else Terminal()

    tokens = step_part.split("/")
    if tokens and tokens[0] == "":
        tokens = tokens[1:]

    steps: list[Step] = []
    for token in tokens:
        step = parse_step(token)
        if step is not None:
            steps.append(step)
    return Component(steps=tuple(steps), terminal=terminal)


def encode_step(step: Step) -> str:
    """Encode one step back to its integer (plus ``[id]``) token."""
    if step.type == "element":
        token = str((step.index + 1) * 2)
    else:
        token = str(1 + 2 * step.index)
    if step.id:
        token += f"[{step.id}]"
    return token


def join_steps(steps: tuple[Step, ...] | list[Step]) -> str:
    return "/".join(encode_step(step) for step in steps)


def component_string(component: Component) -> str:
    """Serialize a component: ``/`` + joined steps + terminal."""
    out = "/" + join_steps(component.steps)
    terminal = component.terminal
    if terminal.offset is None and terminal.assertion is None:
        return out
    # ":" also precedes an assertion that has no offset
    out += ":"
    if terminal.offset is not None:
        out += str(terminal.offset)
    if terminal.assertion is not None:
        out += f"[{terminal.assertion}]"
    return out
