"""Shared pytest fixtures for htmlregions tests."""

from __future__ import annotations

from collections.abc import Callable

import pytest
from bs4 import BeautifulSoup

from htmlregions.config import Settings
from htmlregions.dom.anchoring import RangeAnchorer
from htmlregions.dom.highlight import HighlightRenderer
from htmlregions.dom.tree import load_document
from htmlregions.labels import LabelStateRef, StaticLabelSource
from htmlregions.session import DocumentSession


@pytest.fixture
def settings() -> Settings:
    """Default settings, isolated from any .env file."""
    return Settings(_env_file=None)  # type: ignore[call-arg]


@pytest.fixture
def load(settings: Settings) -> Callable[[str], BeautifulSoup]:
    """Parse markup into a live tree using the test settings."""

    def _load(html: str) -> BeautifulSoup:
        return load_document(html, settings)

    return _load


@pytest.fixture
def anchorer(settings: Settings) -> RangeAnchorer:
    return RangeAnchorer(settings.highlight.marker_attribute)


@pytest.fixture
def renderer(settings: Settings) -> HighlightRenderer:
    return HighlightRenderer(settings)


@pytest.fixture
def person_label() -> LabelStateRef:
    return LabelStateRef(name="label", kind="labels", values=("PER",))


@pytest.fixture
def label_source(person_label: LabelStateRef) -> StaticLabelSource:
    """Label panel with PER active and coloured red."""
    return StaticLabelSource(active=[person_label], colors={"PER": "red"})


@pytest.fixture
def session(settings: Settings, label_source: StaticLabelSource) -> DocumentSession:
    """Unmounted session for a document named ``text``."""
    return DocumentSession("text", label_source, source="$text", settings=settings)
