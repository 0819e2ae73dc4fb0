"""
Twee 3 story documents.

Just enough of Twee to run the Chapbook analyzer over real files: split a
document into passages at ``:: Name [tags] {metadata}`` headers, read the
story format from StoryData, and hand each passage's text to the right
Chapbook parse.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field

from .index import ProjectIndex
from .parser import parse_passage_text
from .positions import Location, Position, Range, TextDocument
from .types import ParseLevel, ParseResult, Passage, StoryFormat

logger = logging.getLogger(__name__)

_HEADER = re.compile(r"^::(?!:)([^\r\n]*)", re.MULTILINE)
_OPEN_META = re.compile(r"(?<!\\)[\[{]")
_TAGS = re.compile(r"\[(.*?)(?<!\\)\]")
_ESCAPE = re.compile(r"\\(.)")
_FINAL_NEWLINE = re.compile(r"\r?\n$")

STORY_TITLE = "StoryTitle"
STORY_DATA = "StoryData"
SCRIPT_TAG = "script"
STYLESHEET_TAG = "stylesheet"


@dataclass
class StoryParse:
    """
    Everything found in one story document.

    Attributes:
        passages: Passages in document order, special passages included
        result: Combined parse output for every Chapbook passage
        story_format: Story format the passages were parsed against
    """

    passages: list[Passage] = field(default_factory=list)
    result: ParseResult = field(default_factory=ParseResult)
    story_format: StoryFormat | None = None


def _unescape(text: str) -> str:
    return _ESCAPE.sub(r"\1", text)


def _parse_header(header: str, header_index: int) -> tuple[str, int, int, tuple[str, ...]]:
    """
    Split a header (without the leading ``::``) into name and tags.

    Returns:
        (unescaped name, name offset, escaped name length, tags)
    """
    m = _OPEN_META.search(header)
    raw_name = header[: m.start()] if m is not None else header
    tags: tuple[str, ...] = ()
    if m is not None and m.group(0) == "[" and (tag_match := _TAGS.match(header, m.start())) is not None:
        tags = tuple(dict.fromkeys(_unescape(tag) for tag in tag_match.group(1).split()))

    stripped = raw_name.strip()
    name_index = header_index + raw_name.find(stripped) if stripped else header_index
    return _unescape(stripped), name_index, len(stripped), tags


def split_passages(document: TextDocument) -> list[Passage]:
    """Split a Twee 3 document into passages."""
    text = document.text
    headers = list(_HEADER.finditer(text))
    passages: list[Passage] = []

    for n, m in enumerate(headers):
        name, name_index, name_length, tags = _parse_header(m.group(1), m.start(1))
        header_line = document.position_at(m.start()).line
        text_index = document.offset_at(Position(header_line + 1, 0))
        if text_index <= m.end():
            # Header on the last line
            text_index = len(text)
        text_end = headers[n + 1].start() if n + 1 < len(headers) else len(text)
        passage_text = text[text_index:text_end]

        scope_end = document.position_at(text_index + len(_FINAL_NEWLINE.sub("", passage_text)))
        passages.append(
            Passage(
                name=name,
                location=Location(document.uri, document.range_between(name_index, name_index + name_length)),
                scope=Range(Position(header_line, 0), max(scope_end, document.position_at(m.end()))),
                text=passage_text,
                text_index=text_index,
                tags=tags,
            )
        )

    return passages


def read_story_format(passages: list[Passage]) -> StoryFormat | None:
    """Story format named in the StoryData passage, if there is one."""
    story_data = next((p for p in passages if p.name == STORY_DATA), None)
    if story_data is None:
        return None
    try:
        data = json.loads(story_data.text)
    except json.JSONDecodeError as e:
        logger.warning("Unreadable StoryData: %s", e)
        return None
    if not isinstance(data, dict):
        return None

    version = data.get("format-version")
    return StoryFormat(
        format=str(data.get("format", "Chapbook")),
        format_version=str(version) if version is not None else None,
    )


def parse_story(
    document: TextDocument,
    story_format: StoryFormat | None = None,
    parse_level: ParseLevel = ParseLevel.FULL,
) -> StoryParse:
    """
    Parse every Chapbook passage in a Twee 3 document.

    Args:
        document: The story document
        story_format: Story format to use instead of the one in StoryData
        parse_level: FULL, or PASSAGE_NAMES to only register custom inserts and modifiers

    Returns:
        The document's passages and their combined parse output
    """
    passages = split_passages(document)
    story = StoryParse(passages=passages, story_format=story_format or read_story_format(passages))

    for passage in passages:
        if passage.name in (STORY_TITLE, STORY_DATA) or STYLESHEET_TAG in passage.tags:
            continue
        # Script passages can register inserts and modifiers but hold no Chapbook text
        level = ParseLevel.PASSAGE_NAMES if SCRIPT_TAG in passage.tags else parse_level
        story.result.extend(
            parse_passage_text(
                document,
                passage.text,
                passage.text_index,
                story.story_format,
                passage.name,
                level,
            )
        )

    logger.debug("Parsed %d passages in %s", len(passages), document.uri)
    return story


def index_story(
    document: TextDocument,
    index: ProjectIndex,
    story_format: StoryFormat | None = None,
    parse_level: ParseLevel = ParseLevel.FULL,
) -> StoryParse:
    """Parse a story document and replace its entries in the project index."""
    story = parse_story(document, story_format, parse_level)
    index.set_passages(document.uri, story.passages)
    index.set_references(document.uri, story.result.references)
    index.set_definitions(document.uri, story.result.definitions)
    return story
