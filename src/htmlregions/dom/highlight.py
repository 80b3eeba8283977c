"""Highlight rendering: wrap covered text nodes in marker elements.

Every text node covered by a boundary-aligned range is wrapped, in place,
in its own marker element::

    <span class="htx-highlight" data-region="<id>" style="...">text</span>

Wrapping an already-marked node nests the new marker inside the existing
one, so overlapping regions stack.  Unwrapping moves a marker's children
back into its parent, which leaves markers from other regions (inside or
around it) exactly where they were.

Only text nodes are ever wrapped; elements between the endpoints (links,
inputs, images) stay untouched and their text children get their own
markers.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from htmlregions.colors import rgba_change_alpha
from htmlregions.config import get_settings
from htmlregions.dom.tree import (
    LiveRange,
    is_ignorable_whitespace,
    is_text_node,
    iter_text_nodes,
    owner_soup,
    text_node_after,
    text_node_before,
)
from htmlregions.errors import StructuralMutationConflict

if TYPE_CHECKING:
    from bs4.element import NavigableString, PageElement, Tag

    from htmlregions.config import Settings
    from htmlregions.regions.models import Region

logger = logging.getLogger(__name__)


def format_style(style: Mapping[str, str]) -> str:
    """``{"background-color": "red"}`` -> ``"background-color: red"``."""
    return "; ".join(f"{prop}: {value}" for prop, value in style.items())


def parse_style(value: str) -> dict[str, str]:
    """Inverse of ``format_style`` for simple declarations."""
    style: dict[str, str] = {}
    for declaration in value.split(";"):
        prop, sep, val = declaration.partition(":")
        if sep and prop.strip():
            style[prop.strip().lower()] = val.strip()
    return style


@dataclass(eq=False)
class MarkerHandle:
    """Ownership of the markers created by one ``render`` call."""

    region_id: str
    markers: list[Tag] = field(default_factory=list)
    style: dict[str, str] = field(default_factory=dict)
    released: bool = False

    def __iter__(self) -> Iterator[Tag]:
        return iter(self.markers)

    def __len__(self) -> int:
        return len(self.markers)


def covered_text_nodes(live_range: LiveRange) -> list[NavigableString]:
    """Text nodes covered by a boundary-aligned range, in document order."""
    start, end = live_range.start, live_range.end

    start_node, start_offset = start.node, start.offset
    if not is_text_node(start_node):
        start_node = text_node_after(start_node, start_offset)  # type: ignore[arg-type]
        start_offset = 0
    end_node, end_offset = end.node, end.offset
    if not is_text_node(end_node):
        end_node = text_node_before(end_node, end_offset)  # type: ignore[arg-type]
        end_offset = len(end_node) if end_node is not None else 0
    if start_node is None or end_node is None:
        return []

    top: PageElement = start_node
    while top.parent is not None:
        top = top.parent

    nodes: list[NavigableString] = []
    inside = False
    for text in iter_text_nodes(top):
        starts_after = text is start_node and start_offset >= len(text)
        if text is start_node:
            inside = True
        if not inside:
            continue
        if text is end_node:
            if end_offset > 0 and not starts_after:
                nodes.append(text)
            break
        if not starts_after:
            nodes.append(text)
    return nodes


class HighlightRenderer:
    """Create, restyle and remove marker elements for regions."""

    def __init__(self, settings: Settings | None = None) -> None:
        config = (settings or get_settings()).highlight
        self.marker_tag = config.marker_tag
        self.marker_class = config.marker_class
        self.marker_attribute = config.marker_attribute

    def render(
        self,
        region: Region,
        marker_class: str | None = None,
        style: Mapping[str, str] | None = None,
    ) -> MarkerHandle:
        """Wrap the text covered by *region*'s bound live range.

        Raises:
            StructuralMutationConflict: If the region has no live range or
                its endpoints were never boundary-split.
        """
        if region.live_range is None:
            msg = f"Region {region.id} has no live range to render"
            raise StructuralMutationConflict(msg)
        return self.wrap_range(region.live_range, region.id, marker_class, style)

    def wrap_range(
        self,
        live_range: LiveRange,
        owner_id: str,
        marker_class: str | None = None,
        style: Mapping[str, str] | None = None,
    ) -> MarkerHandle:
        """Wrap every text node covered by *live_range*."""
        if not live_range.boundary_aligned:
            msg = "Range endpoints are inside text nodes; split boundaries first"
            raise StructuralMutationConflict(msg)

        handle = MarkerHandle(region_id=owner_id, style=dict(style or {}))
        attrs = {
            "class": marker_class or self.marker_class,
            self.marker_attribute: owner_id,
        }
        if handle.style:
            attrs["style"] = format_style(handle.style)

        for text in covered_text_nodes(live_range):
            if not len(text) or is_ignorable_whitespace(text):
                continue
            marker = owner_soup(text).new_tag(self.marker_tag, attrs=dict(attrs))
            text.wrap(marker)
            handle.markers.append(marker)

        logger.debug("Rendered %d markers for region %s", len(handle), owner_id)
        return handle

    def restyle(self, handle: MarkerHandle, style: Mapping[str, str]) -> None:
        """Merge *style* into every marker of *handle*; structure is untouched."""
        if handle.released:
            msg = f"Markers of region {handle.region_id} were already removed"
            raise StructuralMutationConflict(msg)
        handle.style.update(style)
        rendered = format_style(handle.style)
        for marker in handle.markers:
            marker["style"] = rendered

    def set_opacity(self, handle: MarkerHandle, alpha: float) -> None:
        """Rewrite the alpha channel of the markers' background colour."""
        background = handle.style.get("background-color")
        if not background:
            return
        self.restyle(handle, {"background-color": rgba_change_alpha(background, alpha)})

    def unwrap(self, handle: MarkerHandle) -> None:
        """Remove *handle*'s markers; see ``unwrap_markers``."""
        unwrap_markers(handle)


def unwrap_markers(handle: MarkerHandle) -> None:
    """Remove *handle*'s markers, keeping their children in place.

    Markers of other regions nested inside or around them are left alone.
    Idempotent once released.

    Raises:
        StructuralMutationConflict: If a marker was detached from the tree
            by someone else.
    """
    if handle.released:
        return
    for marker in handle.markers:
        if marker.parent is None:
            msg = f"Marker of region {handle.region_id} is no longer in the tree"
            raise StructuralMutationConflict(msg)
    for marker in handle.markers:
        marker.unwrap()
    logger.debug("Unwrapped %d markers for region %s", len(handle), handle.region_id)
    handle.markers = []
    handle.released = True
