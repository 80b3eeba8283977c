"""Tests for the label-state collaborators."""

from __future__ import annotations

from htmlregions.labels import (
    ControlDescriptor,
    LabelStateRef,
    LabelStateSource,
    OriginDescriptor,
    StaticLabelSource,
)


class TestStaticLabelSource:
    def test_color_lookup_order(self) -> None:
        """Control-qualified value beats bare value beats control name."""
        source = StaticLabelSource(
            colors={"label:PER": "red", "PER": "blue", "label": "green"}
        )
        assert source.selected_color(LabelStateRef("label", "labels", ("PER",))) == (
            "red"
        )
        assert source.selected_color(LabelStateRef("other", "labels", ("PER",))) == (
            "blue"
        )
        assert source.selected_color(LabelStateRef("label", "labels", ("ORG",))) == (
            "green"
        )
        assert source.selected_color(LabelStateRef("x", "labels", ("ORG",))) is None

    def test_select_and_unselect(self) -> None:
        source = StaticLabelSource()
        state = LabelStateRef("label", "labels", ("PER",))
        source.select(state)
        assert source.active_states() == [state]
        source.unselect_all()
        assert source.active_states() == []

    def test_satisfies_protocols(self) -> None:
        assert isinstance(StaticLabelSource(), LabelStateSource)
        assert isinstance(ControlDescriptor("label", "labels"), OriginDescriptor)


class TestLabelStateRef:
    def test_snapshot_is_equal_but_distinct(self) -> None:
        state = LabelStateRef("label", "labels", ("PER",))
        copy = state.snapshot()
        assert copy == state
        assert copy is not state
