"""Document session: one mounted document, its regions and their markers.

The session is the single owner of the live tree and the RegionStore.
Everything happens synchronously inside discrete triggers:

- ``mount`` / ``mount_html``: the document became available; pending
  regions are bound in store order.
- ``handle_selection``: the user finished a selection; it is anchored,
  boundary-split, stored and highlighted.
- ``unmount`` / ``destroy``: markers are unwrapped before the tree (or the
  regions) go away.

Use it as a context manager to get ``destroy`` on exit.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from htmlregions.colors import convert_to_rgba
from htmlregions.config import get_settings
from htmlregions.dom.anchoring import RangeAnchorer
from htmlregions.dom.highlight import HighlightRenderer
from htmlregions.dom.tree import load_document
from htmlregions.errors import MalformedRecord
from htmlregions.labels import ControlDescriptor
from htmlregions.regions.models import Region
from htmlregions.regions.serializer import BindReport, RegionSerializer
from htmlregions.regions.store import RegionStore

if TYPE_CHECKING:
    from bs4.element import Tag

    from htmlregions.config import Settings
    from htmlregions.dom.anchoring import Anchor
    from htmlregions.dom.tree import LiveRange
    from htmlregions.labels import LabelStateRef, LabelStateSource, OriginDescriptor
    from htmlregions.regions.serializer import FlatControlPredicate

logger = logging.getLogger(__name__)

# Origin kind used for bare records that belong to the document itself
DOCUMENT_KIND = "html"


@dataclass
class SelectionResult:
    """Regions created from a selection, plus ranges that missed the root."""

    regions: list[Region] = field(default_factory=list)
    rejected: list[LiveRange] = field(default_factory=list)


@dataclass
class RestoreReport:
    """Outcome of restoring a batch of records."""

    regions: list[Region] = field(default_factory=list)
    failures: list[tuple[Any, MalformedRecord]] = field(default_factory=list)
    bind: BindReport | None = None


class DocumentSession:
    """Owner of one document's live tree and regions."""

    def __init__(
        self,
        name: str,
        label_source: LabelStateSource,
        *,
        source: str = "",
        settings: Settings | None = None,
        is_flat_control: FlatControlPredicate | None = None,
    ) -> None:
        self.name = name
        self.source = source
        self.label_source = label_source
        self.settings = settings or get_settings()
        self.store = RegionStore()
        self.anchorer = RangeAnchorer(self.settings.highlight.marker_attribute)
        self.renderer = HighlightRenderer(self.settings)
        self.serializer = RegionSerializer(
            self.store,
            name,
            self.anchorer,
            self.renderer,
            source=source,
            style_for=self.style_for,
            is_flat_control=is_flat_control,
            settings=self.settings,
        )
        self.root: Tag | None = None

    def __enter__(self) -> DocumentSession:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.destroy()

    # -- lifecycle ----------------------------------------------------------

    @property
    def mounted(self) -> bool:
        return self.root is not None

    def _require_root(self) -> Tag:
        if self.root is None:
            msg = f"Document {self.name!r} is not mounted"
            raise RuntimeError(msg)
        return self.root

    def mount(self, root: Tag) -> BindReport:
        """Attach the live *root* and bind every pending region to it."""
        if self.root is not None:
            msg = f"Document {self.name!r} is already mounted"
            raise RuntimeError(msg)
        self.root = root
        return self.serializer.bind_all(root)

    def mount_html(self, html: str) -> BindReport:
        """Load *html* into a live tree and mount it."""
        return self.mount(load_document(html, self.settings))

    def bind_all(self) -> BindReport:
        """Bind regions that are still pending (e.g. after a later restore)."""
        return self.serializer.bind_all(self._require_root())

    def unmount(self) -> None:
        """Unwrap all markers and detach the tree; regions become pending."""
        self.store.release_all()
        self.root = None

    def destroy(self) -> None:
        """Unwrap all markers and drop every region."""
        self.store.clear()
        self.root = None

    def html(self) -> str:
        """Serialised current document (with markers)."""
        return str(self._require_root())

    # -- presentation -------------------------------------------------------

    def style_for(self, region: Region) -> dict[str, str]:
        """Marker style for *region* from its first coloured label state."""
        color: str | None = None
        for state in region.label_states:
            color = self.label_source.selected_color(state)
            if color:
                break
        color = color or self.settings.highlight.default_color
        if not color:
            return {}

        emphasised = region.selected or region.highlighted
        config = self.settings.highlight
        alpha = config.selected_opacity if emphasised else config.resting_opacity
        try:
            return {"background-color": convert_to_rgba(color, alpha)}
        except ValueError:
            logger.warning(
                "Ignoring unrecognised colour %r on region %s", color, region.id
            )
            return {}

    def _apply_opacity(self, region: Region, alpha: float) -> None:
        if region.is_bound:
            self.renderer.set_opacity(region.markers, alpha)  # type: ignore[arg-type]

    def select_region(self, region: Region) -> None:
        """Make *region* the selected one (emphasised); others are unselected."""
        for other in self.store:
            if other.selected and other is not region:
                self.unselect_region(other)
        region.selected = True
        self._apply_opacity(region, self.settings.highlight.selected_opacity)

    def unselect_region(self, region: Region) -> None:
        region.selected = False
        if not region.highlighted:
            self._apply_opacity(region, self.settings.highlight.resting_opacity)

    def set_highlight(self, region: Region, value: bool) -> None:
        """Hover emphasis; falls back to resting opacity unless selected."""
        region.highlighted = value
        if value:
            self._apply_opacity(region, self.settings.highlight.selected_opacity)
        elif not region.selected:
            self._apply_opacity(region, self.settings.highlight.resting_opacity)

    # -- regions ------------------------------------------------------------

    def add_region(
        self,
        anchor: Anchor,
        states: Sequence[LabelStateRef] = (),
    ) -> Region:
        """Store a logical region carrying snapshots of *states*."""
        region = Region(
            anchor=anchor,
            label_states=[state.snapshot() for state in states],
            document=self.name,
            source=self.source,
        )
        return self.store.add(region)

    def handle_selection(self, ranges: Iterable[LiveRange]) -> SelectionResult:
        """Turn a finished selection into highlighted regions.

        Nothing happens (and the tree is left alone) when no label state is
        active.  Ranges outside the document come back as ``rejected``.  Once
        regions are created the label source is told to unselect all states.
        """
        root = self._require_root()
        result = SelectionResult()

        states = list(self.label_source.active_states())
        if not states:
            logger.debug("Selection ignored: no active label state")
            return result

        # Capture everything before mutating: splitting for one range would
        # detach text nodes another range still points at.
        anchors = list(self.anchorer.capture(ranges, root, result.rejected))
        for anchor in anchors:
            region = self.add_region(anchor, states)
            self.serializer.bind_region(region, root)
            result.regions.append(region)
            logger.info("Created region %s over %r", region.id, region.text[:40])

        # The next selection starts from a clean label panel
        if result.regions:
            self.label_source.unselect_all()
        return result

    def remove_region(self, region: Region) -> None:
        self.store.remove(region)

    def find_region(self, anchor: Anchor) -> Region | None:
        return self.store.find(*anchor.key)

    # -- persistence --------------------------------------------------------

    def to_records(self) -> Iterator[dict[str, Any]]:
        return self.serializer.to_records()

    def create_pending(
        self, record: Mapping[str, Any], origin: OriginDescriptor
    ) -> Region | None:
        return self.serializer.create_pending(record, origin)

    def restore(
        self,
        records: Iterable[Mapping[str, Any]],
        origins: Mapping[str, OriginDescriptor] | None = None,
    ) -> RestoreReport:
        """Create pending regions from *records*, binding them if mounted.

        *origins* maps ``from_name`` to the control each record came from.
        Bare records naming this document need no entry.  A malformed record
        is reported and skipped; the others proceed.
        """
        origins = origins or {}
        report = RestoreReport()
        for record in records:
            try:
                if not isinstance(record, Mapping):
                    msg = f"Record is not a mapping: {type(record).__name__}"
                    raise MalformedRecord(msg, record)
                from_name = record.get("from_name")
                origin = origins.get(from_name)
                if origin is None and from_name == self.name:
                    origin = ControlDescriptor(self.name, DOCUMENT_KIND)
                if origin is None:
                    msg = f"No origin control named {from_name!r}"
                    raise MalformedRecord(msg, record)
                region = self.serializer.create_pending(record, origin)
            except MalformedRecord as exc:
                logger.warning("Rejected record: %s", exc)
                report.failures.append((record, exc))
                continue
            if region is not None and region not in report.regions:
                report.regions.append(region)

        if self.root is not None:
            report.bind = self.serializer.bind_all(self.root)
        return report
