"""
Vars section parsing.

The vars section is the block of ``name (condition): value`` lines before a
passage's ``--`` divider. Each line sets a variable (or a property of one)
when the passage is shown.
"""

from __future__ import annotations

import re

from .emitter import SymbolEmitter
from .js_expression import scan_expression
from .positions import Position, Range
from .scanner import skip_spaces
from .types import DecorationType, SymbolKind, TokenModifier, TokenType

_LINE = re.compile(r"^([ \t]*?)\b(.*)$", re.MULTILINE)
_CONDITION = re.compile(r"((\((.+?)\)?)\s*)([^)]*)$")
_WHITESPACE_RUN = re.compile(r"\s+")
_NAME_START = re.compile(r"^[A-Za-z$_]")
_BAD_NAME_CHAR = re.compile(r"[^A-Za-z0-9$_.]")

# Vars decorations run to the end of their last line
END_OF_LINE = 9999


def parse_vars_section(section: str, section_index: int, emitter: SymbolEmitter) -> None:
    """
    Parse a passage's vars section.

    Args:
        section: Vars section text, not including the ``--`` divider
        section_index: Document offset where the section begins
        emitter: Sink for tokens, references and diagnostics
    """
    for m in _LINE.finditer(section):
        if not m.group(0).strip():
            continue
        _parse_line(m, section_index, emitter)

    content = section.rstrip("\r\n")
    if content.strip():
        document = emitter.document
        start_line = document.position_at(section_index).line
        end_line = document.position_at(section_index + len(content)).line
        emitter.decoration(
            DecorationType.CHAPBOOK_VARS_SECTION,
            Range(Position(start_line, 0), Position(end_line, END_OF_LINE)),
        )


def _parse_line(m: re.Match[str], section_index: int, emitter: SymbolEmitter) -> None:
    contents = m.group(2)
    colon = contents.find(":")
    if colon == -1:
        emitter.warning_for(m.group(0), section_index + m.start(), "Missing colon; this line will be ignored")
        return

    name = contents[:colon].rstrip()
    name_index = section_index + m.start() + len(m.group(1))

    condition = _CONDITION.search(name)
    if condition is not None:
        name = name[: condition.start()].rstrip()
        _parse_condition(condition, name_index + condition.start(), emitter)

    space = _WHITESPACE_RUN.search(name)
    if space is not None:
        emitter.error_for(space.group(0), name_index + space.start(), "Variable names can't have spaces")
        name = name[: space.start()]

    if not _NAME_START.match(name):
        emitter.error_for(name[:1], name_index, "Variable names must start with a letter, $, or _")
    for bad in _BAD_NAME_CHAR.finditer(name, 1):
        emitter.error_for(bad.group(0), name_index + bad.start(), "Must be a letter, digit, $, or _")

    if name:
        _capture_name(name, name_index, emitter)

    value, value_index = skip_spaces(contents[colon + 1 :], name_index + colon + 1)
    emitter.capture_expression(scan_expression(value, value_index))


def _parse_condition(condition: re.Match[str], condition_index: int, emitter: SymbolEmitter) -> None:
    whole, padded, parenthesized, expression, ignored = condition.group(0, 1, 2, 3, 4)
    if not parenthesized.endswith(")"):
        emitter.error_for("", condition_index + len(whole), "Missing a close parenthesis")
        return

    emitter.capture_expression(scan_expression(expression, condition_index + whole.index(expression)))
    if ignored:
        emitter.warning_for(ignored.rstrip(), condition_index + len(padded), "This will be ignored")


def _capture_name(name: str, name_index: int, emitter: SymbolEmitter) -> None:
    """Record the name as being set, marking its tokens as modified."""
    scan = scan_expression(name, name_index)
    emitter.capture_expression(scan, SymbolKind.VARIABLE_SET, SymbolKind.PROPERTY_SET)
    for token in scan.tokens:
        if token.token_type == TokenType.PROPERTY:
            emitter.capture_token(token.text, token.at, TokenType.PROPERTY, (TokenModifier.MODIFICATION,))
    emitter.capture_token(
        name.split(".", 1)[0], name_index, TokenType.VARIABLE, (TokenModifier.MODIFICATION,)
    )
