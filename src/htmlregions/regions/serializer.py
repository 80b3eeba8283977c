"""Region persistence and two-phase restore.

Records go out lazily, one per region/label-state pairing (or one bare
record for a region with no label state).  Coming back in, restore happens
in two steps:

1. ``create_pending(record, origin)`` builds the logical region (anchor and
   label state) and stores it, without touching any tree.
2. ``bind_all(root)`` runs once the document is mounted: every pending
   region is resolved, boundary-split and rendered, in store order so
   overlapping highlights stack the way they were created.

A region that fails to resolve is skipped and reported; the rest bind.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from htmlregions.config import get_settings
from htmlregions.dom.boundaries import split_boundaries
from htmlregions.errors import AnchorResolutionError, MalformedRecord
from htmlregions.labels import LabelStateRef
from htmlregions.regions.models import (
    BARE_REGION_TYPE,
    RecordValue,
    Region,
    RegionRecord,
)

if TYPE_CHECKING:
    from bs4.element import Tag

    from htmlregions.config import Settings
    from htmlregions.dom.anchoring import RangeAnchorer
    from htmlregions.dom.highlight import HighlightRenderer, MarkerHandle
    from htmlregions.labels import OriginDescriptor
    from htmlregions.regions.store import RegionStore

logger = logging.getLogger(__name__)

FlatControlPredicate = Callable[["OriginDescriptor"], bool]
StyleFunction = Callable[[Region], Mapping[str, str]]


def flat_control_predicate(settings: Settings | None = None) -> FlatControlPredicate:
    """Default predicate: origin kind is one of the configured flat kinds."""
    kinds = frozenset((settings or get_settings()).document.flat_control_kinds)

    def _is_flat(origin: OriginDescriptor) -> bool:
        return origin.kind in kinds

    return _is_flat


@dataclass
class BindReport:
    """Outcome of binding pending regions to a mounted document."""

    bound: list[Region] = field(default_factory=list)
    failures: list[tuple[Region, AnchorResolutionError]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


class RegionSerializer:
    """Map a RegionStore to and from persisted records."""

    def __init__(
        self,
        store: RegionStore,
        document_name: str,
        anchorer: RangeAnchorer,
        renderer: HighlightRenderer,
        *,
        source: str = "",
        style_for: StyleFunction | None = None,
        is_flat_control: FlatControlPredicate | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.store = store
        self.document_name = document_name
        self.source = source
        self.anchorer = anchorer
        self.renderer = renderer
        self.style_for = style_for or (lambda _region: {})
        self.is_flat_control = is_flat_control or flat_control_predicate(settings)

    # -- out ----------------------------------------------------------------

    def region_records(self, region: Region) -> list[dict[str, Any]]:
        """Records for one region: one per label state, or one bare record."""

        def _build(
            from_name: str, kind: str, payload: dict[str, Any]
        ) -> dict[str, Any]:
            record = RegionRecord(
                id=region.id,
                from_name=from_name,
                to_name=region.document or self.document_name,
                source=region.source or self.source,
                type=kind,
                value=RecordValue.model_validate(
                    {**region.anchor.as_value(), **payload}
                ),
                normalization=region.normalization,
            )
            return record.dump()

        if not region.label_states:
            return [_build(self.document_name, BARE_REGION_TYPE, {})]
        return [
            _build(state.name, state.kind, {state.kind: list(state.values)})
            for state in region.label_states
        ]

    def to_records(self) -> Iterator[dict[str, Any]]:
        """Lazily yield records for every region, in store order."""
        for region in self.store:
            yield from self.region_records(region)

    # -- in -----------------------------------------------------------------

    def create_pending(
        self, record: Mapping[str, Any], origin: OriginDescriptor
    ) -> Region | None:
        """Create (or extend) a logical region from *record*; no tree access.

        Records from flat controls are handed to ``origin.restore_record``
        and produce no region.  A record whose id matches a stored region
        with the same anchor adds its label state to that region.

        Raises:
            MalformedRecord: If the record lacks valid anchor fields, targets
                another document, or reuses an id for a different anchor.
        """
        if self.is_flat_control(origin):
            origin.restore_record(record)
            return None

        parsed = RegionRecord.parse(record)
        if parsed.to_name != self.document_name:
            msg = (
                f"Record {parsed.id} targets {parsed.to_name!r}, "
                f"not {self.document_name!r}"
            )
            raise MalformedRecord(msg, record)
        anchor = parsed.anchor()

        state: LabelStateRef | None = None
        if parsed.type != BARE_REGION_TYPE:
            state = LabelStateRef(
                name=origin.name,
                kind=origin.kind,
                values=parsed.label_values(origin.kind),
            )

        existing = self.store.get(parsed.id)
        if existing is not None:
            if existing.anchor != anchor:
                msg = f"Record id {parsed.id} reused for a different anchor"
                raise MalformedRecord(msg, record)
            if state is not None and state not in existing.label_states:
                existing.label_states.append(state)
            return existing

        region = Region(
            anchor=anchor,
            label_states=[state] if state is not None else [],
            id=parsed.id,
            document=self.document_name,
            source=parsed.source or self.source,
            normalization=parsed.normalization,
        )
        self.store.add(region)
        logger.debug("Created pending region %s from record", region.id)
        return region

    # -- bind ---------------------------------------------------------------

    def bind_region(self, region: Region, root: Tag) -> MarkerHandle:
        """Resolve, split and render one region against *root*.

        Raises:
            AnchorResolutionError: If the anchor no longer fits the document.
        """
        live_range = self.anchorer.resolve(region.anchor, root)
        split_boundaries(live_range)
        region.live_range = live_range
        region.text = live_range.text()
        region.markers = self.renderer.render(region, style=self.style_for(region))
        return region.markers

    def bind_all(self, root: Tag) -> BindReport:
        """Bind every pending region to *root*, in store order."""
        report = BindReport()
        for region in self.store.pending():
            try:
                self.bind_region(region, root)
            except AnchorResolutionError as exc:
                logger.warning("Skipping region %s: %s", region.id, exc)
                report.failures.append((region, exc))
                continue
            report.bound.append(region)
        logger.info(
            "Bound %d region(s) to %s, %d failed",
            len(report.bound),
            self.document_name,
            len(report.failures),
        )
        return report
