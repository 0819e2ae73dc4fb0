"""Shared fixtures for chapbook-analyzer unit tests."""

from __future__ import annotations

from collections.abc import Callable

import pytest
from factories import FAKE_URI

from chapbook_analyzer.core.index import InMemoryIndex
from chapbook_analyzer.core.parser import parse_passage_text
from chapbook_analyzer.core.positions import TextDocument
from chapbook_analyzer.core.types import ParseResult, StoryFormat


@pytest.fixture
def index() -> InMemoryIndex:
    """Return an empty project index."""
    return InMemoryIndex()


@pytest.fixture
def parse() -> Callable[..., ParseResult]:
    """Return a helper that parses passage text as a whole document."""

    def _parse(text: str, format_version: str | None = None, passage_name: str = "Passage") -> ParseResult:
        document = TextDocument(FAKE_URI, text)
        story_format = StoryFormat("Chapbook", format_version)
        return parse_passage_text(document, text, 0, story_format, passage_name)

    return _parse
