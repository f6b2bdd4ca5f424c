"""Core value types for CFI parsing and resolution.

Every layer shares these types. Steps, terminals and components are frozen
dataclasses; a ``Cfi`` is never mutated after construction (``collapse``
returns a new value).

Type hierarchy:
  Ok[T] / Err[E]        — Strict algebraic Result type
  Step                  — One hop of a traversal (element or text ordinal)
  Terminal              — Character offset + optional text assertion
  Component             — Ordered steps plus a terminal
  Cfi                   — Base, path and optional start/end range components
  CfiParseError         — Typed failure for ``parse``
  StepMiss              — Typed failure for step-by-step tree walks
  TreePosition / Span   — Live positions in an addressable tree
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

# ---------------------------------------------------------------------------
# Result ADT — strict Ok/Err, NOT a sentinel value
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class Ok[T]:
    """Success case of Result[T, E].

    Usage::

        result = parse("epubcfi(/6/4!/4/2/1:3)")
        if isinstance(result, Ok):
            print(result.value.spine_pos)
    """
    value: T


@dataclass(frozen=True, slots=True)
class Err[E]:
    """Failure case of Result[T, E].

    Carries the typed reason a CFI could not be read.
    """
    error: E


type Result[T, E] = Ok[T] | Err[E]


type StepType = Literal["element", "text"]


# ---------------------------------------------------------------------------
# Steps, terminals, components
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class Step:
    """One hop of a CFI path.

    ``index`` is the ordinal among same-type siblings: element steps count
    element children, text steps count text runs. ``tag_name`` is only
    filled when the step was computed from a live tree and never takes part
    in equality (it is not part of the wire format).
    """
    type: StepType
    index: int
    id: str | None = None
    tag_name: str | None = field(default=None, compare=False)

    def __post_init__(self) -> None:
        if self.type not in ("element", "text"):
            raise ValueError(f"Step.type must be 'element' or 'text', got {self.type!r}")
        if self.index < 0:
            raise ValueError(f"Step.index must be >= 0, got {self.index}")


@dataclass(frozen=True, slots=True)
class Terminal:
    """Character offset (and optional assertion) inside the last stepped node."""
    offset: int | None = None
    assertion: str | None = None

    def __post_init__(self) -> None:
        if self.offset is not None and self.offset < 0:
            raise ValueError(f"Terminal.offset must be >= 0, got {self.offset}")


@dataclass(frozen=True, slots=True)
class Component:
    """An ordered step list plus terminal (a.k.a. segment)."""
    steps: tuple[Step, ...] = ()
    terminal: Terminal = field(default_factory=Terminal)

    def __post_init__(self) -> None:
        if not isinstance(self.steps, tuple):
            # Accept any iterable at construction, store as tuple
            object.__setattr__(self, "steps", tuple(self.steps))


# ---------------------------------------------------------------------------
# Cfi
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class Cfi:
    """In-memory Canonical Fragment Identifier.

    The base component addresses the sub-document; its second step encodes
    the spine position. For ranges, ``path`` holds the steps shared by both
    ends and ``start``/``end`` hold the diverging suffixes.

    Invariants (enforced in __post_init__):
        - base has at least two steps
        - is_range  <=> start and end are both present
    """
    base: Component
    path: Component
    start: Component | None = None
    end: Component | None = None

    def __post_init__(self) -> None:
        if len(self.base.steps) < 2:
            raise ValueError(
                f"Cfi.base must have at least 2 steps, got {len(self.base.steps)}"
            )
        if (self.start is None) != (self.end is None):
            raise ValueError("Cfi.start and Cfi.end must both be set or both be None")

    @property
    def spine_pos(self) -> int:
        """Index of the sub-document the path applies to."""
        return self.base.steps[1].index

    @property
    def is_range(self) -> bool:
        return self.start is not None

    def collapse(self, to_start: bool = False) -> Cfi:
        """Fold a range into a single position at its start (or end)."""
        if self.start is None or self.end is None:
            return self
        target = self.start if to_start else self.end
        return Cfi(
            base=self.base,
            path=Component(
                steps=self.path.steps + target.steps,
                terminal=target.terminal,
            ),
        )

    def __str__(self) -> str:
        from cfi.serializer import to_string

        return to_string(self)


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class CfiParseError:
    """Typed failure for ``parse``."""
    reason: str  # "not_a_string" | "missing_base" | "base_too_short"
    raw: str
    message: str = ""


@dataclass(frozen=True, slots=True)
class StepMiss:
    """A tree walk stopped before consuming every step.

    ``last_found`` is the deepest node reached; it is NOT the addressed node
    and callers must treat the walk as failed.
    """
    step_index: int
    step: Step
    last_found: Any


class InvalidCfiError(ValueError):
    """Raised by the exception-flavoured parse helpers."""

    def __init__(self, error: CfiParseError) -> None:
        super().__init__(f"{error.reason}: {error.message or error.raw!r}")
        self.error = error


class OffsetOutOfRangeError(IndexError):
    """An offset does not fit the container it was applied to."""


# ---------------------------------------------------------------------------
# Tree positions
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True, eq=False)
class TreePosition:
    """A container node and an offset inside it.

    For text containers the offset counts characters, for element
    containers it counts child nodes. Equality is identity-based on the
    container (tree nodes may compare equal structurally).
    """
    container: Any
    offset: int = 0

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TreePosition):
            return NotImplemented
        return self.container is other.container and self.offset == other.offset

    def __hash__(self) -> int:
        return hash((id(self.container), self.offset))


@dataclass(frozen=True, slots=True)
class Span:
    """Start/end pair of tree positions."""
    start: TreePosition
    end: TreePosition

    @property
    def collapsed(self) -> bool:
        return self.start == self.end
