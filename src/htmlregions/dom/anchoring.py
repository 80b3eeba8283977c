"""Range anchoring: live ranges <-> portable anchors.

Addressing scheme
-----------------
An anchor endpoint is ``(path, offset)`` over the *logical view* of the tree
under a root element:

- marker elements (anything carrying the marker attribute) are transparent,
  their children count as children of the marker's parent;
- each maximal run of adjacent text nodes counts as a single child.

``path`` is the tuple of logical child indices from the root down to a text
run, ``offset`` a 0-based character offset into that run.  Boundary
splitting only cuts text nodes inside a run and highlighting only adds
marker elements, so neither moves an anchor: the same anchor resolves to the
same text before and after any split/render/unwrap.

Failure mode: if the document structure changed (a path component is out of
range, lands on an element instead of text, or the offset runs past the end
of the text) resolution raises ``AnchorResolutionError``.  Anchors are only
meaningful against the render that produced them.

Path strings (record ``start``/``end`` fields) are the indices joined with
``/`` and a leading ``/``: ``(1, 0, 2)`` <-> ``"/1/0/2"``.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from typing import Any

from bs4.element import NavigableString, PageElement, Tag

from htmlregions.config import get_settings
from htmlregions.dom.tree import (
    BoundaryPoint,
    LiveRange,
    contains,
    document_position,
    first_text_node,
    is_text_node,
    last_text_node,
    text_node_after,
    text_node_before,
    tree_top,
)
from htmlregions.errors import AnchorResolutionError, MalformedRecord

logger = logging.getLogger(__name__)

Path = tuple[int, ...]
# A logical child: an element, or a run of adjacent text nodes
_LogicalChild = Tag | list[NavigableString]


# ---------------------------------------------------------------------------
# Path strings
# ---------------------------------------------------------------------------


def format_path(path: Path) -> str:
    """``(1, 0)`` -> ``"/1/0"``."""
    return "/" + "/".join(str(index) for index in path)


def parse_path(value: str) -> Path:
    """``"/1/0"`` -> ``(1, 0)``.

    Raises:
        MalformedRecord: If *value* is not a well-formed path string.
    """
    if not isinstance(value, str) or not value.startswith("/") or value == "/":
        msg = f"Malformed anchor path: {value!r}"
        raise MalformedRecord(msg, value)
    parts = value[1:].split("/")
    if any(not part.isdigit() for part in parts):
        msg = f"Malformed anchor path: {value!r}"
        raise MalformedRecord(msg, value)
    return tuple(int(part) for part in parts)


# ---------------------------------------------------------------------------
# Anchor
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Anchor:
    """Portable description of a range: two ``(path, offset)`` endpoints.

    Start never follows end.  Two anchors with equal fields denote the same
    location.
    """

    start_path: Path
    start_offset: int
    end_path: Path
    end_offset: int

    def __post_init__(self) -> None:
        if not self.start_path or not self.end_path:
            msg = "Anchor paths must address a text run below the root"
            raise ValueError(msg)
        if min(*self.start_path, *self.end_path) < 0:
            msg = "Anchor path components must be non-negative"
            raise ValueError(msg)
        if self.start_offset < 0 or self.end_offset < 0:
            msg = "Anchor offsets must be non-negative"
            raise ValueError(msg)
        if (self.start_path, self.start_offset) > (self.end_path, self.end_offset):
            msg = "Anchor start must not follow its end"
            raise ValueError(msg)

    @property
    def key(self) -> tuple[Path, int, Path, int]:
        return (self.start_path, self.start_offset, self.end_path, self.end_offset)

    @property
    def start(self) -> str:
        return format_path(self.start_path)

    @property
    def end(self) -> str:
        return format_path(self.end_path)

    def as_value(self) -> dict[str, Any]:
        """Anchor fields in persisted-record form."""
        return {
            "startOffset": self.start_offset,
            "endOffset": self.end_offset,
            "start": self.start,
            "end": self.end,
        }

    @classmethod
    def from_strings(
        cls, start: str, start_offset: int, end: str, end_offset: int
    ) -> Anchor:
        """Build an anchor from record fields.

        Raises:
            MalformedRecord: If a path is malformed or the anchor is invalid.
        """
        start_path = parse_path(start)
        end_path = parse_path(end)
        try:
            return cls(start_path, start_offset, end_path, end_offset)
        except ValueError as exc:
            msg = f"Invalid anchor {start}@{start_offset}..{end}@{end_offset}: {exc}"
            raise MalformedRecord(msg) from exc

    @classmethod
    def from_value(cls, value: Mapping[str, Any]) -> Anchor:
        """Build an anchor from a record ``value`` mapping."""
        try:
            return cls.from_strings(
                value["start"],
                int(value["startOffset"]),
                value["end"],
                int(value["endOffset"]),
            )
        except (KeyError, TypeError, ValueError) as exc:
            msg = f"Record value lacks valid anchor fields: {exc}"
            raise MalformedRecord(msg, value) from exc


# ---------------------------------------------------------------------------
# Anchorer
# ---------------------------------------------------------------------------


def _point_key(point: BoundaryPoint) -> tuple[int, ...]:
    """Document-order sort key for a boundary point.

    Text points sort by ``(position..., char offset)``; element points by the
    position just before child ``offset`` (``-1`` sorts ahead of the child's
    own subtree) or just after the last child.
    """
    node = point.node
    if is_text_node(node):
        return (*document_position(node), point.offset)
    children = node.contents  # type: ignore[union-attr]
    if point.offset < len(children):
        return (*document_position(children[point.offset]), -1)
    return (*document_position(node), len(children))


class RangeAnchorer:
    """Convert live ranges to anchors (``capture``) and back (``resolve``)."""

    def __init__(self, marker_attribute: str | None = None) -> None:
        self.marker_attribute = (
            marker_attribute or get_settings().highlight.marker_attribute
        )

    # -- logical view -------------------------------------------------------

    def is_marker(self, node: PageElement | None) -> bool:
        return isinstance(node, Tag) and node.has_attr(self.marker_attribute)

    def logical_children(self, element: Tag) -> list[_LogicalChild]:
        """Children of *element* with markers flattened and text runs merged."""
        items: list[_LogicalChild] = []

        def _visit(children: list[PageElement]) -> None:
            for child in children:
                if self.is_marker(child):
                    _visit(child.contents)  # type: ignore[union-attr]
                elif is_text_node(child):
                    if items and isinstance(items[-1], list):
                        items[-1].append(child)  # type: ignore[arg-type]
                    else:
                        items.append([child])  # type: ignore[list-item]
                elif isinstance(child, Tag):
                    items.append(child)

        _visit(element.contents)
        return items

    def _logical_parent(self, node: PageElement) -> Tag:
        parent = node.parent
        while self.is_marker(parent):
            parent = parent.parent  # type: ignore[union-attr]
        if parent is None:
            msg = "Node is not attached below the anchoring root"
            raise AnchorResolutionError(msg)
        return parent

    def _locate(
        self, text: NavigableString, offset: int, root: Tag
    ) -> tuple[Path, int]:
        """Logical ``(path, offset)`` of a text point below *root*."""
        container = self._logical_parent(text)
        path: list[int] = []
        run_offset = 0
        for index, item in enumerate(self.logical_children(container)):
            if not isinstance(item, list):
                continue
            cumulative = 0
            for candidate in item:
                if candidate is text:
                    path.append(index)
                    run_offset = cumulative + offset
                    break
                cumulative += len(candidate)
            if path:
                break

        current: Tag = container
        while current is not root:
            parent = self._logical_parent(current)
            siblings = self.logical_children(parent)
            index = next(i for i, item in enumerate(siblings) if item is current)
            path.insert(0, index)
            current = parent
        return tuple(path), run_offset

    # -- capture ------------------------------------------------------------

    def _to_text_point(
        self, point: BoundaryPoint, *, is_start: bool
    ) -> BoundaryPoint | None:
        if point.is_text:
            return point
        container: Tag = point.node  # type: ignore[assignment]
        if is_start:
            text = text_node_after(container, point.offset)
            return BoundaryPoint(text, 0) if text is not None else None
        text = text_node_before(container, point.offset)
        return BoundaryPoint(text, len(text)) if text is not None else None

    def _clip_to_root(
        self, start: BoundaryPoint, end: BoundaryPoint, root: Tag
    ) -> tuple[BoundaryPoint, BoundaryPoint] | None:
        root_first = first_text_node(root)
        root_last = last_text_node(root)
        if root_first is None or root_last is None:
            return None
        first = BoundaryPoint(root_first, 0)
        last = BoundaryPoint(root_last, len(root_last))

        start_inside = contains(root, start.node)
        end_inside = contains(root, end.node)
        if not start_inside and not end_inside:
            return None  # both endpoints outside the root
        if not start_inside:
            if _point_key(start) >= _point_key(first):
                return None  # starts after the root ends
            start = first
        if not end_inside:
            if _point_key(end) <= _point_key(last):
                return None  # ends before the root starts
            end = last
        if _point_key(start) > _point_key(end):
            return None
        return start, end

    def capture_one(self, live_range: LiveRange, root: Tag) -> Anchor | None:
        """Anchor for *live_range* clipped to *root*, or ``None`` if rejected."""
        start, end = live_range.start, live_range.end
        # Position keys only compare within one tree
        top = tree_top(root)
        if tree_top(start.node) is not top or tree_top(end.node) is not top:
            return None
        if _point_key(start) > _point_key(end):
            start, end = end, start

        text_start = self._to_text_point(start, is_start=True)
        text_end = self._to_text_point(end, is_start=False)
        if text_start is None or text_end is None:
            return None

        clipped = self._clip_to_root(text_start, text_end, root)
        if clipped is None:
            return None
        start, end = clipped
        if not LiveRange(start, end).text():
            return None  # covers no characters

        start_path, start_offset = self._locate(
            start.node, start.offset, root  # type: ignore[arg-type]
        )
        end_path, end_offset = self._locate(
            end.node, end.offset, root  # type: ignore[arg-type]
        )
        if (start_path, start_offset) >= (end_path, end_offset):
            return None  # collapsed
        return Anchor(start_path, start_offset, end_path, end_offset)

    def capture(
        self,
        ranges: Iterable[LiveRange],
        root: Tag,
        rejected: list[LiveRange] | None = None,
    ) -> Iterator[Anchor]:
        """Lazily anchor each of *ranges* against *root*.

        Ranges that do not intersect *root* (or cover no text) yield nothing;
        they are appended to *rejected* when a list is supplied, so the
        caller can restore its selection state.
        """
        for live_range in ranges:
            anchor = self.capture_one(live_range, root)
            if anchor is None:
                logger.debug("Rejected range outside document root")
                if rejected is not None:
                    rejected.append(live_range)
                continue
            yield anchor

    # -- resolve ------------------------------------------------------------

    def _resolve_point(
        self, path: Path, offset: int, root: Tag, *, is_start: bool
    ) -> BoundaryPoint:
        node: _LogicalChild = root
        for depth, index in enumerate(path):
            if not isinstance(node, Tag):
                msg = f"Path {format_path(path)} descends through text at {depth}"
                raise AnchorResolutionError(msg, path, depth)
            children = self.logical_children(node)
            if index >= len(children):
                msg = (
                    f"Path {format_path(path)} component {depth} is {index}, "
                    f"but only {len(children)} children exist"
                )
                raise AnchorResolutionError(msg, path, depth)
            node = children[index]

        if not isinstance(node, list):
            msg = f"Path {format_path(path)} addresses an element, not text"
            raise AnchorResolutionError(msg, path, len(path) - 1)

        total = sum(len(text) for text in node)
        if offset > total:
            msg = f"Offset {offset} past end of text ({total}) at {format_path(path)}"
            raise AnchorResolutionError(msg, path)

        cumulative = 0
        for text in node:
            length = len(text)
            if is_start and cumulative <= offset < cumulative + length:
                return BoundaryPoint(text, offset - cumulative)
            if not is_start and cumulative < offset <= cumulative + length:
                return BoundaryPoint(text, offset - cumulative)
            cumulative += length
        if is_start:
            return BoundaryPoint(node[-1], len(node[-1]))
        return BoundaryPoint(node[0], 0)

    def resolve(self, anchor: Anchor, root: Tag) -> LiveRange:
        """Locate *anchor* inside *root*.

        Raises:
            AnchorResolutionError: If the structure no longer matches.
        """
        start = self._resolve_point(
            anchor.start_path, anchor.start_offset, root, is_start=True
        )
        end = self._resolve_point(
            anchor.end_path, anchor.end_offset, root, is_start=False
        )
        return LiveRange(start, end)
