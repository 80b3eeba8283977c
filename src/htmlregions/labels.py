"""Label-state collaborators.

The label taxonomy (label sets, colours, which labels are "active") lives
outside this package.  Regions only ever see ``LabelStateRef`` snapshots and
talk to the taxonomy through the ``LabelStateSource`` and
``OriginDescriptor`` protocols.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable


@dataclass(frozen=True)
class LabelStateRef:
    """Snapshot of a selectable annotation value.

    Attributes:
        name: Name of the label control (``from_name`` in records).
        kind: Label kind, e.g. ``"labels"`` or ``"rating"`` (record ``type``).
        values: Selected values at the time the snapshot was taken.
    """

    name: str
    kind: str
    values: tuple[str, ...] = ()

    def snapshot(self) -> LabelStateRef:
        """Return an independent copy, detached from any live label panel."""
        return LabelStateRef(name=self.name, kind=self.kind, values=tuple(self.values))


@runtime_checkable
class LabelStateSource(Protocol):
    """What the label taxonomy exposes to a document session."""

    def active_states(self) -> Sequence[LabelStateRef]:
        """Currently active label states, in panel order (possibly empty)."""
        ...

    def selected_color(self, state: LabelStateRef) -> str | None:
        """Display colour for *state*, or ``None`` if it has none."""
        ...

    def unselect_all(self) -> None:
        """Clear the active states once they have been attached to regions."""
        ...


@runtime_checkable
class OriginDescriptor(Protocol):
    """The control a persisted record came from."""

    name: str
    kind: str

    def restore_record(self, record: Mapping[str, Any]) -> None:
        """Restore a record that belongs to the control itself (flat value)."""
        ...


@dataclass
class StaticLabelSource:
    """In-memory ``LabelStateSource`` with a fixed active set.

    Colours are looked up by ``"<name>:<value>"`` first, then by value, then
    by control name.
    """

    active: list[LabelStateRef] = field(default_factory=list)
    colors: dict[str, str] = field(default_factory=dict)

    def active_states(self) -> Sequence[LabelStateRef]:
        return list(self.active)

    def selected_color(self, state: LabelStateRef) -> str | None:
        for value in state.values:
            color = self.colors.get(f"{state.name}:{value}") or self.colors.get(value)
            if color:
                return color
        return self.colors.get(state.name)

    def select(self, *states: LabelStateRef) -> None:
        self.active = list(states)

    def unselect_all(self) -> None:
        self.active = []


@dataclass
class ControlDescriptor:
    """Plain ``OriginDescriptor``.

    Flat-value records are collected in ``restored`` so a caller without a
    real control can still see what was handed back.
    """

    name: str
    kind: str
    restored: list[Mapping[str, Any]] = field(default_factory=list)

    def restore_record(self, record: Mapping[str, Any]) -> None:
        self.restored.append(record)
