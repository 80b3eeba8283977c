"""Live document tree primitives.

The live tree is a BeautifulSoup tree.  Everything else in ``dom`` works in
terms of the helpers here:

- which nodes are text-bearing (``is_text_node``)
- document order (``iter_text_nodes``, ``document_position``)
- DOM-style boundary points and ranges (``BoundaryPoint``, ``LiveRange``)
- loading markup into a mountable tree (``load_document``)

bs4 strings compare by value and tags compare structurally, so node
identity is always tested with ``is`` (``Tag.index`` already does).
"""

# Pattern: Functional Core (tree queries are pure; only load_document allocates)

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass
from typing import TYPE_CHECKING

from bs4 import BeautifulSoup
from bs4.element import NavigableString, PageElement, PreformattedString, Tag
from selectolax.lexbor import LexborHTMLParser

from htmlregions.config import get_settings

if TYPE_CHECKING:
    from htmlregions.config import Settings

logger = logging.getLogger(__name__)

# Containers where whitespace-only text nodes are indentation between block
# children, never inline content.  Inline markers must not be put there.
BLOCK_CONTAINER_TAGS = frozenset(
    (
        "table",
        "tbody",
        "thead",
        "tfoot",
        "tr",
        "ul",
        "ol",
        "dl",
        "colgroup",
        "select",
        "optgroup",
    )
)


def is_text_node(node: PageElement | None) -> bool:
    """Whether *node* is a text-bearing node.

    Comments, CDATA, doctype and other declarations are strings in bs4 but
    never carry rendered text.
    """
    return isinstance(node, NavigableString) and not isinstance(
        node, PreformattedString
    )


def is_ignorable_whitespace(node: NavigableString) -> bool:
    """Whitespace-only text directly inside a block container."""
    parent = node.parent
    return (
        parent is not None
        and parent.name in BLOCK_CONTAINER_TAGS
        and not str(node).strip()
    )


def contains(ancestor: PageElement, node: PageElement) -> bool:
    """Inclusive containment test by identity."""
    if node is ancestor:
        return True
    return any(parent is ancestor for parent in node.parents)


def tree_top(node: PageElement) -> PageElement:
    """Topmost ancestor of *node* (the node itself when detached)."""
    while node.parent is not None:
        node = node.parent
    return node


def _descendants(node: PageElement) -> Iterator[PageElement]:
    """Pre-order descendants of *node* (excluding *node*), from ``contents``.

    Walks ``contents`` rather than bs4's ``next_element`` chain so the order
    is always the current tree order, whatever mutations happened before.
    """
    if isinstance(node, Tag):
        for child in list(node.contents):
            yield child
            yield from _descendants(child)


def iter_text_nodes(node: PageElement) -> Iterator[NavigableString]:
    """Text-bearing nodes at or below *node*, in document order."""
    if is_text_node(node):
        yield node  # type: ignore[misc]
        return
    for descendant in _descendants(node):
        if is_text_node(descendant):
            yield descendant  # type: ignore[misc]


def first_text_node(node: PageElement) -> NavigableString | None:
    return next(iter_text_nodes(node), None)


def last_text_node(node: PageElement) -> NavigableString | None:
    texts = list(iter_text_nodes(node))
    return texts[-1] if texts else None


def text_content(node: PageElement) -> str:
    """Linearised text of *node*: all text-bearing descendants concatenated."""
    return "".join(str(text) for text in iter_text_nodes(node))


def document_position(node: PageElement) -> tuple[int, ...]:
    """Child-index path from the top of the tree down to *node*.

    Tuples compare in document order for any two leaves of the same tree.
    """
    path: list[int] = []
    current = node
    while current.parent is not None:
        path.append(current.parent.index(current))
        current = current.parent
    return tuple(reversed(path))


def text_node_after(container: Tag, index: int) -> NavigableString | None:
    """First text node at or after child position *index* of *container*."""
    for child in container.contents[index:]:
        found = first_text_node(child)
        if found is not None:
            return found
    node: PageElement = container
    while node.parent is not None:
        parent = node.parent
        for sibling in parent.contents[parent.index(node) + 1 :]:
            found = first_text_node(sibling)
            if found is not None:
                return found
        node = parent
    return None


def text_node_before(container: Tag, index: int) -> NavigableString | None:
    """Last text node strictly before child position *index* of *container*."""
    for child in reversed(container.contents[:index]):
        found = last_text_node(child)
        if found is not None:
            return found
    node: PageElement = container
    while node.parent is not None:
        parent = node.parent
        for sibling in reversed(parent.contents[: parent.index(node)]):
            found = last_text_node(sibling)
            if found is not None:
                return found
        node = parent
    return None


def owner_soup(node: PageElement) -> BeautifulSoup:
    """The BeautifulSoup object *node* belongs to (a fresh one if detached)."""
    if isinstance(node, BeautifulSoup):
        return node
    for parent in node.parents:
        if isinstance(parent, BeautifulSoup):
            return parent
    return BeautifulSoup("", "html.parser")


# ---------------------------------------------------------------------------
# Boundary points and ranges
# ---------------------------------------------------------------------------


@dataclass(eq=False)
class BoundaryPoint:
    """A position in the live tree, with DOM semantics.

    For a text node ``offset`` counts characters; for an element it counts
    children.
    """

    node: PageElement
    offset: int

    @property
    def is_text(self) -> bool:
        return is_text_node(self.node)

    @property
    def at_node_edge(self) -> bool:
        """Whether the point already coincides with a node boundary."""
        if not self.is_text:
            return True
        return self.offset in (0, len(self.node))  # type: ignore[arg-type]

    def same_as(self, other: BoundaryPoint) -> bool:
        return self.node is other.node and self.offset == other.offset


@dataclass(eq=False)
class LiveRange:
    """Two boundary points in the live tree (a selection)."""

    start: BoundaryPoint
    end: BoundaryPoint

    @classmethod
    def between(
        cls,
        start_node: PageElement,
        start_offset: int,
        end_node: PageElement,
        end_offset: int,
    ) -> LiveRange:
        return cls(
            BoundaryPoint(start_node, start_offset), BoundaryPoint(end_node, end_offset)
        )

    @property
    def collapsed(self) -> bool:
        return self.start.same_as(self.end)

    @property
    def boundary_aligned(self) -> bool:
        return self.start.at_node_edge and self.end.at_node_edge

    def text(self) -> str:
        """Text covered by the range; both endpoints must be text points."""
        start, end = self.start, self.end
        if start.node is end.node:
            return str(start.node)[start.offset : end.offset]
        parts: list[str] = [str(start.node)[start.offset :]]
        root = start.node
        while root.parent is not None:
            root = root.parent
        inside = False
        for node in iter_text_nodes(root):
            if node is end.node:
                break
            if inside:
                parts.append(str(node))
            elif node is start.node:
                inside = True
        parts.append(str(end.node)[: end.offset])
        return "".join(parts)


def range_from_text_offsets(root: Tag, start: int, end: int) -> LiveRange:
    """Build a LiveRange from linear character offsets into *root*.

    Offsets index ``text_content(root)``, 0-based, end exclusive.

    Raises:
        ValueError: If the offsets are reversed, out of bounds, or *root*
            has no text.
    """
    nodes = list(iter_text_nodes(root))
    total = sum(len(node) for node in nodes)
    if not nodes:
        msg = "Cannot build a range in a document without text"
        raise ValueError(msg)
    if not 0 <= start <= end <= total:
        msg = f"Offsets {start}..{end} outside document text of length {total}"
        raise ValueError(msg)

    start_point: BoundaryPoint | None = None
    end_point: BoundaryPoint | None = None
    cumulative = 0
    for node in nodes:
        length = len(node)
        if start_point is None and cumulative <= start < cumulative + length:
            start_point = BoundaryPoint(node, start - cumulative)
        if end_point is None and cumulative < end <= cumulative + length:
            end_point = BoundaryPoint(node, end - cumulative)
        cumulative += length

    if start_point is None:
        start_point = BoundaryPoint(nodes[-1], len(nodes[-1]))
    if end_point is None:
        end_point = BoundaryPoint(nodes[0], 0)
    return LiveRange(start_point, end_point)


# ---------------------------------------------------------------------------
# Document loading
# ---------------------------------------------------------------------------


def _strip_unrendered(html: str, strip_tags: tuple[str, ...]) -> str:
    """Drop elements that never render text (scripts, styles, ...)."""
    tree = LexborHTMLParser(html)
    if strip_tags:
        for node in tree.css(", ".join(strip_tags)):
            node.decompose()
    body = tree.body
    if body is None:
        return html
    return body.inner_html or ""


def load_document(html: str, settings: Settings | None = None) -> BeautifulSoup:
    """Parse *html* into a mountable live tree.

    The markup is sanitised with selectolax first, then parsed with bs4
    (whose tree supports the text-node surgery the splitter and renderer
    need).  Only body content is kept.
    """
    settings = settings or get_settings()
    cleaned = _strip_unrendered(html, settings.document.strip_tags)
    logger.debug(
        "Loaded document: %d chars in, %d chars after sanitising",
        len(html),
        len(cleaned),
    )
    return BeautifulSoup(cleaned, settings.document.parser)
