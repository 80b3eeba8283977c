"""Live document tree: boundary splitting, anchoring and highlight markers."""

from htmlregions.dom.anchoring import Anchor, RangeAnchorer, format_path, parse_path
from htmlregions.dom.boundaries import split_boundaries, split_text_node
from htmlregions.dom.highlight import HighlightRenderer, MarkerHandle
from htmlregions.dom.tree import (
    BoundaryPoint,
    LiveRange,
    load_document,
    range_from_text_offsets,
    text_content,
)

__all__ = [
    "Anchor",
    "BoundaryPoint",
    "HighlightRenderer",
    "LiveRange",
    "MarkerHandle",
    "RangeAnchorer",
    "format_path",
    "load_document",
    "parse_path",
    "range_from_text_offsets",
    "split_boundaries",
    "split_text_node",
    "text_content",
]
