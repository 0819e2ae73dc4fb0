"""
Text section parsing: modifiers and the text blocks they control.

A modifier block is a line holding only ``[...]``. It can contain several
``;``-separated modifiers, and it governs the text up to the next modifier
block or the end of the passage.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from .catalog import find_builtin_modifier
from .emitter import SymbolEmitter
from .extensions import find_engine_extensions
from .inserts import parse_insert_argument, parse_inserts, version_window_message
from .js_expression import scan_expression
from .links import parse_links, parse_style_tags
from .positions import Position, Range
from .scanner import skip_spaces, split_modifiers, split_words
from .types import (
    DecorationType,
    ModifierBlock,
    Segment,
    SymbolKind,
    TokenModifier,
    TokenType,
    ValueType,
)
from .vars_section import END_OF_LINE
from .versions import is_deprecated

_MODIFIER = re.compile(r"^([ \t]*)\[([^[].+[^\]])\](\s*?)(?:\r?\n|$)", re.MULTILINE)
_TRAILING_NEWLINES = re.compile(r"[\r\n]+$")


@dataclass(frozen=True)
class _ActiveModifier:
    """The modifier block controlling a run of text."""

    block: ModifierBlock
    line: int


def parse_modifier(modifier: str, modifier_index: int, emitter: SymbolEmitter) -> ModifierBlock:
    """
    Parse a single modifier from a modifier block.

    Args:
        modifier: Modifier text, without brackets or ``;`` separators
        modifier_index: Document offset where ``modifier`` begins
        emitter: Sink for tokens, references and diagnostics

    Returns:
        How the modifier changes the text that follows it
    """
    modifier, modifier_index = skip_spaces(modifier, modifier_index)
    if not modifier:
        return ModifierBlock.TEXT

    descriptor = find_builtin_modifier(modifier)
    emitter.reference(
        modifier,
        modifier_index,
        SymbolKind.BUILT_IN_MODIFIER if descriptor is not None else SymbolKind.CUSTOM_MODIFIER,
    )
    block = descriptor.block if descriptor is not None else ModifierBlock.TEXT

    deprecated = False
    if descriptor is not None and emitter.format_version is not None:
        message = version_window_message(descriptor, emitter.format_version)
        if message is not None:
            emitter.error_for(modifier, modifier_index, message)
        deprecated = is_deprecated(descriptor.deprecated, emitter.format_version)

    for n, word in enumerate(split_words(modifier)):
        if n == 0:
            emitter.capture_token(
                word.text,
                modifier_index + word.at,
                TokenType.COMMENT if block == ModifierBlock.NOTE else TokenType.FUNCTION,
                (TokenModifier.DEPRECATED,) if deprecated else (),
            )
        else:
            emitter.capture_token(word.text, modifier_index + word.at, TokenType.PARAMETER)

    if descriptor is not None and descriptor.first_argument is not None:
        m = descriptor.match.search(modifier)
        if m is not None:
            argument, argument_index = skip_spaces(modifier[m.end() :], modifier_index + m.end())
            if argument:
                arg_type = descriptor.first_argument.type
                if arg_type == ValueType.EXPRESSION:
                    emitter.capture_expression(scan_expression(argument, argument_index))
                elif arg_type in (ValueType.PASSAGE, ValueType.URL_OR_PASSAGE):
                    parse_insert_argument(Segment(argument, argument_index), arg_type, emitter)

    return block


def _parse_subsection(
    subsection: str, subsection_index: int, active: _ActiveModifier | None, emitter: SymbolEmitter
) -> None:
    block = active.block if active is not None else ModifierBlock.TEXT
    if active is not None:
        _capture_structure(subsection, subsection_index, active, emitter)

    if block == ModifierBlock.JAVASCRIPT:
        find_engine_extensions(subsection, subsection_index, emitter)
        emitter.embedded_document(
            "script", "javascript", subsection, subsection_index, defer_to_story_format=True
        )
    elif block == ModifierBlock.CSS:
        emitter.embedded_document("stylesheet", "css", subsection, subsection_index)
    elif block == ModifierBlock.NOTE:
        emitter.capture_token(subsection, subsection_index, TokenType.COMMENT)
    else:
        # Links and style contents are blanked so their braces aren't inserts
        subsection = parse_links(subsection, subsection_index, emitter)
        subsection = parse_style_tags(subsection, subsection_index, emitter)
        parse_inserts(subsection, subsection_index, emitter)


def _capture_structure(
    subsection: str, subsection_index: int, active: _ActiveModifier, emitter: SymbolEmitter
) -> None:
    """Folding and decoration ranges for the text a modifier block controls."""
    if active.block == ModifierBlock.CONTINUE:
        return
    content = _TRAILING_NEWLINES.sub("", subsection)
    if not content:
        return

    document = emitter.document
    end = document.position_at(subsection_index + len(content))
    emitter.folding_range(Range(Position(active.line, 0), end))

    if active.block != ModifierBlock.NOTE:
        start_line = document.position_at(subsection_index).line
        emitter.decoration(
            DecorationType.CHAPBOOK_MODIFIER_CONTENT,
            Range(Position(start_line, 0), Position(end.line, END_OF_LINE)),
        )


def parse_text_section(section: str, section_index: int, emitter: SymbolEmitter) -> None:
    """
    Parse the text section of a passage, modifier block by modifier block.

    Args:
        section: Text after the vars section divider (or the whole passage)
        section_index: Document offset where the section begins
        emitter: Sink for tokens, references and diagnostics
    """
    active: _ActiveModifier | None = None
    previous_end = 0

    for m in _MODIFIER.finditer(section):
        _parse_subsection(section[previous_end : m.start()], section_index + previous_end, active, emitter)

        leading, raw, trailing = m.group(1, 2, 3)
        if leading:
            emitter.error_for(leading, section_index + m.start(), "Modifiers can't have spaces before them")
        if trailing:
            # + 2 for the brackets
            emitter.error_for(
                trailing,
                section_index + m.start() + 2 + len(leading) + len(raw),
                "Modifiers can't have spaces after them",
            )

        block = ModifierBlock.TEXT
        raw_index = section_index + m.start() + len(leading) + 1
        for modifier in split_modifiers(raw):
            modifier_block = parse_modifier(modifier.text, raw_index + modifier.at, emitter)
            if modifier_block != ModifierBlock.TEXT:
                block = modifier_block
        active = _ActiveModifier(block, emitter.document.position_at(section_index + m.start()).line)

        previous_end = m.end()
        if section.startswith("\n", previous_end):
            previous_end += 1
        elif section.startswith("\r\n", previous_end):
            previous_end += 2

    _parse_subsection(section[previous_end:], section_index + previous_end, active, emitter)
