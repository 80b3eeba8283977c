"""Tests for marker rendering, restyling and removal."""

from __future__ import annotations

import pytest

from htmlregions.dom.boundaries import split_boundaries
from htmlregions.dom.highlight import format_style, parse_style
from htmlregions.dom.tree import (
    LiveRange,
    iter_text_nodes,
    range_from_text_offsets,
    text_content,
)
from htmlregions.errors import StructuralMutationConflict


def _markers(soup, region_id: str | None = None):
    value = region_id if region_id is not None else True
    return soup.find_all(attrs={"data-region": value})


class TestStyleStrings:
    def test_format_and_parse(self) -> None:
        style = {"background-color": "red", "color": "black"}
        assert format_style(style) == "background-color: red; color: black"
        assert parse_style("background-color: red; color: black") == style

    def test_parse_ignores_junk(self) -> None:
        assert parse_style(" ; nonsense ; COLOR: blue ;") == {"color": "blue"}


class TestWrapRange:
    """HighlightRenderer.wrap_range wraps covered text in marker spans."""

    def test_wraps_exact_text(self, load, renderer) -> None:
        soup = load("<p>The quick brown fox</p>")
        live_range = split_boundaries(range_from_text_offsets(soup.p, 5, 12))

        handle = renderer.wrap_range(
            live_range, "r1", style={"background-color": "red"}
        )

        assert len(handle) == 1
        assert str(soup.p) == (
            '<p>The q<span class="htx-highlight" data-region="r1" '
            'style="background-color: red">uick br</span>own fox</p>'
        )

    def test_requires_split_boundaries(self, load, renderer) -> None:
        soup = load("<p>The quick brown fox</p>")
        with pytest.raises(StructuralMutationConflict, match="split boundaries"):
            renderer.wrap_range(range_from_text_offsets(soup.p, 5, 12), "r1")

    def test_custom_marker_class(self, load, renderer) -> None:
        soup = load("<p>Hello</p>")
        text = soup.p.contents[0]
        handle = renderer.wrap_range(
            LiveRange.between(text, 0, text, 5), "r1", marker_class="flash"
        )
        assert handle.markers[0]["class"] in ("flash", ["flash"])

    def test_interactive_elements_preserved(self, load, renderer) -> None:
        """Links inside the range keep their attributes; only text is wrapped."""
        soup = load('<p>Click <a href="/x">here</a> now</p>')
        nodes = list(iter_text_nodes(soup))
        live_range = LiveRange.between(nodes[0], 0, nodes[-1], len(nodes[-1]))

        handle = renderer.wrap_range(live_range, "r1")

        assert len(handle) == 3
        link = soup.find("a")
        assert link["href"] == "/x"
        assert link.parent is soup.p
        assert link.contents[0]["data-region"] == "r1"
        assert text_content(soup) == "Click here now"

    def test_block_whitespace_skipped(self, load, renderer) -> None:
        """Indentation between list items is not wrapped."""
        soup = load("<ul>\n<li>One</li>\n<li>Two</li>\n</ul>")
        nodes = list(iter_text_nodes(soup.ul))
        live_range = LiveRange.between(nodes[0], 0, nodes[-1], len(nodes[-1]))

        handle = renderer.wrap_range(live_range, "r1")

        assert [marker.get_text() for marker in handle] == ["One", "Two"]
        assert all(marker.parent.name == "li" for marker in handle)


class TestRestyle:
    """Style changes touch attributes only."""

    def test_restyle_merges(self, load, renderer) -> None:
        soup = load("<p>Hello</p>")
        text = soup.p.contents[0]
        handle = renderer.wrap_range(
            LiveRange.between(text, 0, text, 5),
            "r1",
            style={"background-color": "rgba(255, 0, 0, 0.3)"},
        )

        renderer.restyle(handle, {"color": "black"})

        assert handle.markers[0]["style"] == (
            "background-color: rgba(255, 0, 0, 0.3); color: black"
        )

    def test_set_opacity(self, load, renderer) -> None:
        soup = load("<p>Hello</p>")
        text = soup.p.contents[0]
        handle = renderer.wrap_range(
            LiveRange.between(text, 0, text, 5),
            "r1",
            style={"background-color": "rgba(255, 0, 0, 0.3)"},
        )

        renderer.set_opacity(handle, 0.8)

        assert handle.markers[0]["style"] == "background-color: rgba(255, 0, 0, 0.8)"

    def test_restyle_after_unwrap_conflicts(self, load, renderer) -> None:
        soup = load("<p>Hello</p>")
        text = soup.p.contents[0]
        handle = renderer.wrap_range(LiveRange.between(text, 0, text, 5), "r1")
        renderer.unwrap(handle)
        with pytest.raises(StructuralMutationConflict):
            renderer.restyle(handle, {"color": "black"})


class TestUnwrap:
    """Unwrapping is the inverse of rendering."""

    def test_unwrap_restores_text(self, load, renderer) -> None:
        soup = load("<p>The quick <b>brown</b> fox</p>")
        before = text_content(soup)
        live_range = split_boundaries(range_from_text_offsets(soup, 2, 13))
        handle = renderer.wrap_range(live_range, "r1")
        assert len(handle) == 2

        renderer.unwrap(handle)

        assert _markers(soup) == []
        assert text_content(soup) == before
        assert handle.released

    def test_unwrap_is_idempotent(self, load, renderer) -> None:
        soup = load("<p>Hello</p>")
        text = soup.p.contents[0]
        handle = renderer.wrap_range(LiveRange.between(text, 0, text, 5), "r1")
        renderer.unwrap(handle)
        renderer.unwrap(handle)
        assert str(soup.p) == "<p>Hello</p>"

    def test_detached_marker_conflicts(self, load, renderer) -> None:
        soup = load("<p>Hello</p>")
        text = soup.p.contents[0]
        handle = renderer.wrap_range(LiveRange.between(text, 0, text, 5), "r1")
        handle.markers[0].extract()
        with pytest.raises(StructuralMutationConflict):
            renderer.unwrap(handle)

    def test_overlapping_regions(self, load, renderer) -> None:
        """Removing an inner region leaves the outer one whole, and vice versa."""
        soup = load("<p>abcdefghijklmnop</p>")
        outer = renderer.wrap_range(
            split_boundaries(range_from_text_offsets(soup.p, 2, 10)), "outer"
        )
        inner = renderer.wrap_range(
            split_boundaries(range_from_text_offsets(soup.p, 5, 8)), "inner"
        )
        assert "".join(m.get_text() for m in _markers(soup, "inner")) == "fgh"

        renderer.unwrap(inner)

        assert _markers(soup, "inner") == []
        assert all(marker.parent is not None for marker in outer)
        assert "".join(m.get_text() for m in _markers(soup, "outer")) == "cdefghij"
        assert text_content(soup) == "abcdefghijklmnop"
