"""
Chapbook passage parser.

``parse_passage_text`` is the single entry point for one passage: it splits
off the vars section, parses both halves, and returns everything the parse
produced as a ParseResult.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from .emitter import SymbolEmitter
from .extensions import find_engine_extensions
from .positions import TextDocument
from .text_section import parse_text_section
from .types import ParseLevel, ParseResult, StoryFormat
from .vars_section import parse_vars_section

logger = logging.getLogger(__name__)

_VARS_DIVIDER = re.compile(r"^--(\r?\n|$)", re.MULTILINE)


@dataclass(frozen=True)
class PassageParts:
    """
    A passage split into its vars section and content.

    Attributes:
        content: Text after the ``--`` divider, or the whole passage
        content_index: Where the content starts, relative to the passage
        vars: Vars section text without the divider, if there is one
    """

    content: str
    content_index: int = 0
    vars: str | None = None


def divide_passage(passage_text: str) -> PassageParts:
    m = _VARS_DIVIDER.search(passage_text)
    if m is None:
        return PassageParts(content=passage_text)
    return PassageParts(content=passage_text[m.end() :], content_index=m.end(), vars=passage_text[: m.start()])


def passage_document_name(passage_name: str | None) -> str:
    """Name for a passage's embedded HTML document."""
    return (passage_name or "placeholder").replace(" ", "-")


def parse_passage_text(
    document: TextDocument,
    passage_text: str,
    text_index: int = 0,
    story_format: StoryFormat | None = None,
    passage_name: str | None = None,
    parse_level: ParseLevel = ParseLevel.FULL,
) -> ParseResult:
    """
    Parse the text of one Chapbook passage.

    Args:
        document: Document containing the passage
        passage_text: The passage's text
        text_index: Document offset where the passage text begins
        story_format: Story format context; its version gates catalog entries and extensions
        passage_name: Name of the passage, used for its embedded HTML document
        parse_level: FULL, or PASSAGE_NAMES to only look for engine extensions

    Returns:
        Tokens in document order plus references, definitions, diagnostics and structure
    """
    format_version = story_format.format_version if story_format is not None else None
    emitter = SymbolEmitter(document, format_version)

    if parse_level == ParseLevel.PASSAGE_NAMES:
        # Custom inserts and modifiers still have to be registered
        find_engine_extensions(passage_text, text_index, emitter)
        return emitter.result()

    parts = divide_passage(passage_text)
    if parts.vars is not None:
        parse_vars_section(parts.vars, text_index, emitter)

    content_index = text_index + parts.content_index
    emitter.embedded_document(
        passage_document_name(passage_name), "html", parts.content, content_index, is_passage=True
    )
    parse_text_section(parts.content, content_index, emitter)

    return emitter.result()
