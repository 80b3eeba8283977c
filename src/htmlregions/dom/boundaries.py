"""Boundary splitting: make range endpoints coincide with node edges.

Marker wrapping works on whole text nodes, so before a range can be
highlighted each endpoint that falls inside a text node is split there.
A text node becomes two (or three, when both endpoints hit the same node)
adjacent siblings; the concatenated text never changes.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from htmlregions.dom.tree import BoundaryPoint, LiveRange, document_position
from htmlregions.errors import StructuralMutationConflict

if TYPE_CHECKING:
    from bs4.element import NavigableString

logger = logging.getLogger(__name__)


def split_text_node(
    node: NavigableString, offset: int
) -> tuple[NavigableString, NavigableString]:
    """Split *node* at *offset* into two adjacent text nodes.

    Returns ``(head, tail)``.  *node* itself is removed from the tree.

    Raises:
        StructuralMutationConflict: If *node* is not attached to a tree.
        ValueError: If *offset* is not strictly inside the node.
    """
    text = str(node)
    if not 0 < offset < len(text):
        msg = f"Split offset {offset} not inside text node of length {len(text)}"
        raise ValueError(msg)
    if node.parent is None:
        msg = "Cannot split a text node that is not attached to a tree"
        raise StructuralMutationConflict(msg)

    head = type(node)(text[:offset])
    tail = type(node)(text[offset:])
    node.replace_with(head)
    head.insert_after(tail)
    return head, tail


def _precedes(a: BoundaryPoint, b: BoundaryPoint) -> bool:
    if a.node is b.node:
        return a.offset <= b.offset
    return document_position(a.node) <= document_position(b.node)


def split_boundaries(live_range: LiveRange) -> LiveRange:
    """Split text nodes so both endpoints of *live_range* sit on node edges.

    Mutates the tree and updates *live_range* in place (it is also
    returned).  Reversed ranges are normalised first.  Endpoints already on
    a node edge (offset 0, offset == length, or an element endpoint) are
    left alone, so the call is idempotent.
    """
    if not _precedes(live_range.start, live_range.end):
        live_range.start, live_range.end = live_range.end, live_range.start

    start, end = live_range.start, live_range.end

    if not end.at_node_edge:
        same_node = start.node is end.node
        head, _tail = split_text_node(end.node, end.offset)  # type: ignore[arg-type]
        end.node = head
        if same_node:
            start.node = head

    if not start.at_node_edge:
        same_node = start.node is end.node
        _head, tail = split_text_node(
            start.node, start.offset  # type: ignore[arg-type]
        )
        if same_node:
            end.node = tail
            end.offset -= start.offset
        start.node = tail
        start.offset = 0

    logger.debug(
        "Split boundaries: start offset %d, end offset %d", start.offset, end.offset
    )
    return live_range
