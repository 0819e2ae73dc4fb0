"""
Insert parsing.

Inserts are ``{...}`` placeholders in passage text. A single bare word is a
variable insert (``{score}``); anything else is a functional insert of the
form ``{name: first argument, prop1: value1, prop2: value2}``.

Built-in inserts are validated while parsing. Possible custom inserts only
get a reference here: they are validated in the diagnostics pass, once every
``engine.extend()`` definition in the project is known.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, field

from .catalog import find_builtin_insert
from .emitter import SymbolEmitter, diagnostic_for
from .js_expression import scan_expression
from .positions import TextDocument
from .scanner import extract_insert_argument, find_inserts, skip_spaces
from .types import (
    ArgumentRequirement,
    Descriptor,
    Diagnostic,
    DiagnosticSeverity,
    FunctionInfo,
    InsertProperty,
    Segment,
    SymbolKind,
    TokenModifier,
    TokenType,
    ValueType,
)
from .versions import compare_versions, is_deprecated

logger = logging.getLogger(__name__)

_VARIABLE_INSERT = re.compile(r"^({\s*)(\S+)\s*}$")
_BAD_DEREFERENCE = re.compile(r"(\[.+\])\S+")
_NAME_END = re.compile(r"[,:]")
_WHITESPACE = re.compile(r"\s")
_QUOTED = re.compile(r"^(['\"])(.*)\1$", re.DOTALL)
_SINGLE_WORD = re.compile(r"^\S*$")
# Chapbook's own test for whether a link target is a URL
_URL = re.compile(r"^\w+:\/\/\/?\w", re.IGNORECASE)


@dataclass
class InsertTokens:
    """
    A functional insert split into its parts.

    Segment offsets are document offsets. ``props`` maps each well-formed
    property name to its (name, value) segments, in source order.
    """

    name: Segment
    first_argument: Segment | None = None
    props: dict[str, tuple[Segment, Segment]] = field(default_factory=dict)


def tokenize_insert(insert: str, insert_index: int, emitter: SymbolEmitter | None = None) -> InsertTokens:
    """
    Split an insert's text into name, first argument and properties.

    Args:
        insert: Insert text including the surrounding braces
        insert_index: Document offset of the opening brace
        emitter: If given, receives errors for malformed property names

    Returns:
        The tokenized insert
    """
    inner = insert[1:-1]
    inner_index = insert_index + 1

    m = _NAME_END.search(inner)
    name_end = m.start() if m is not None else len(inner)
    name, name_at = skip_spaces(inner[:name_end], 0)
    tokens = InsertTokens(name=Segment(name, inner_index + name_at))

    remaining = inner[name_end:]
    remaining_index = name_end

    if remaining.startswith(":"):
        argument, argument_index = skip_spaces(remaining[1:], remaining_index + 1)
        argument, remaining, remaining_index = extract_insert_argument(argument, argument_index)
        tokens.first_argument = Segment(argument, inner_index + argument_index)

    if remaining.startswith(","):
        while remaining.strip():
            if remaining.startswith(","):
                remaining = remaining[1:]
                remaining_index += 1
            colon = remaining.find(":")
            if colon == -1:
                break
            prop, prop_index = skip_spaces(remaining[:colon], remaining_index)
            remaining_index += colon + 1
            remaining = remaining[colon + 1 :]

            has_space = _WHITESPACE.search(prop) is not None
            if has_space and emitter is not None:
                emitter.error_for(prop, inner_index + prop_index, "Properties can't have spaces")

            value, value_index = skip_spaces(remaining, remaining_index)
            value, remaining, remaining_index = extract_insert_argument(value, value_index)

            if not has_space:
                tokens.props[prop] = (
                    Segment(prop, inner_index + prop_index),
                    Segment(value, inner_index + value_index),
                )

    return tokens


def validate_insert_contents(
    insert: FunctionInfo,
    tokens: InsertTokens,
    document: TextDocument,
    format_version: str | None = None,
) -> list[Diagnostic]:
    """
    Check a tokenized insert against a built-in descriptor or custom definition.

    Kept separate from parsing so the diagnostics pass can validate custom
    inserts once their definitions are known.
    """
    diagnostics: list[Diagnostic] = []
    name = tokens.name

    def error(segment: Segment, message: str) -> None:
        diagnostics.append(diagnostic_for(document, DiagnosticSeverity.ERROR, segment.text, segment.at, message))

    def warning(segment: Segment, message: str) -> None:
        diagnostics.append(diagnostic_for(document, DiagnosticSeverity.WARNING, segment.text, segment.at, message))

    version_message = version_window_message(insert, format_version)
    if version_message is not None:
        error(name, version_message)

    requirement = insert.first_argument.required if insert.first_argument is not None else None
    if requirement == ArgumentRequirement.REQUIRED and tokens.first_argument is None:
        error(name, f"`{insert.name}` requires a first argument")
    elif requirement == ArgumentRequirement.IGNORED and tokens.first_argument is not None:
        warning(tokens.first_argument, f"`{insert.name}` will ignore this first argument")

    for prop, (prop_name, _) in tokens.props.items():
        if prop not in insert.required_props and prop not in insert.optional_props:
            warning(prop_name, f"Insert {{{insert.name}}} will ignore this property")

    missing = [prop for prop in insert.required_props if prop not in tokens.props]
    if missing:
        error(name, f"Insert {{{insert.name}}} missing expected properties: {', '.join(missing)}")

    return diagnostics


def version_window_message(info: FunctionInfo, format_version: str | None) -> str | None:
    """Describe why ``info`` doesn't exist in ``format_version``, or None if it does."""
    if format_version is None:
        return None
    if info.since is not None and compare_versions(format_version, info.since) < 0:
        return (
            f"`{info.name}` isn't available until Chapbook version {info.since} "
            f"but your StoryFormat version is {format_version}"
        )
    if info.removed is not None and compare_versions(format_version, info.removed) >= 0:
        return (
            f"`{info.name}` was removed in Chapbook version {info.removed} "
            f"and your StoryFormat version is {format_version}"
        )
    return None


def is_passage_value(text: str, value_type: ValueType | None) -> str | None:
    """
    Return the passage name a quoted value refers to, if its type makes it one.

    ``urlOrPassage`` values that look like URLs aren't passages.
    """
    m = _QUOTED.match(text)
    if m is None:
        return None
    content = m.group(2)
    if value_type == ValueType.PASSAGE:
        return content
    if value_type == ValueType.URL_OR_PASSAGE and _URL.match(content) is None:
        return content
    return None


def parse_insert_argument(segment: Segment | None, value_type: ValueType | None, emitter: SymbolEmitter) -> None:
    """Turn a passage-typed argument into a passage reference."""
    if segment is None:
        return
    passage = is_passage_value(segment.text, value_type)
    if passage:
        # The string token would cover the passage's class token
        emitter.drop_token(segment.at)
        emitter.passage_reference(passage, segment.at + 1)


def _check_embed_passage(tokens: InsertTokens, emitter: SymbolEmitter) -> None:
    argument = tokens.first_argument
    if argument is None:
        return
    if _QUOTED.match(argument.text) is None and _SINGLE_WORD.match(argument.text) is None:
        emitter.error_for(
            argument.text,
            argument.at,
            "Must be a string or variable containing a passage name or a variable",
        )


def _check_reveal_link(tokens: InsertTokens, emitter: SymbolEmitter) -> None:
    # If both are given, Chapbook uses the text
    passage = tokens.props.get("passage")
    if "text" in tokens.props:
        if passage is not None:
            emitter.warning_for(passage[0].text, passage[0].at, 'The "passage" property will be ignored')
    elif passage is None:
        emitter.error_for(
            tokens.name.text, tokens.name.at, 'Either the "passage" or "text" property must be defined'
        )


_INSERT_RULES: dict[str, Callable[[InsertTokens, SymbolEmitter], None]] = {
    "embed passage": _check_embed_passage,
    "reveal link": _check_reveal_link,
}


def _parse_insert_contents(tokens: InsertTokens, emitter: SymbolEmitter) -> None:
    insert = find_builtin_insert(tokens.name.text)
    emitter.reference(
        tokens.name.text,
        tokens.name.at,
        SymbolKind.BUILT_IN_INSERT if insert is not None else SymbolKind.CUSTOM_INSERT,
    )

    deprecated = (
        insert is not None
        and emitter.format_version is not None
        and is_deprecated(insert.deprecated, emitter.format_version)
    )
    emitter.capture_token(
        tokens.name.text,
        tokens.name.at,
        TokenType.FUNCTION,
        (TokenModifier.DEPRECATED,) if deprecated else (),
    )
    for prop, (prop_name, _) in tokens.props.items():
        emitter.capture_token(prop, prop_name.at, TokenType.PROPERTY)

    # Custom inserts are validated once all definitions are known
    if insert is None:
        return

    for diagnostic in validate_insert_contents(insert, tokens, emitter.document, emitter.format_version):
        emitter.diagnostic(diagnostic)

    _parse_typed_arguments(insert, tokens, emitter)

    rule = _INSERT_RULES.get(insert.name)
    if rule is not None:
        rule(tokens, emitter)


def _parse_typed_arguments(insert: Descriptor, tokens: InsertTokens, emitter: SymbolEmitter) -> None:
    if insert.first_argument is not None:
        parse_insert_argument(tokens.first_argument, insert.first_argument.type, emitter)
    for prop, (_, value) in tokens.props.items():
        info = insert.property_info(prop)
        if isinstance(info, InsertProperty):
            parse_insert_argument(value, info.type, emitter)


def parse_insert_or_variable(insert: str, insert_index: int, emitter: SymbolEmitter) -> None:
    """
    Parse one ``{...}`` insert.

    Args:
        insert: Insert text including the braces
        insert_index: Document offset of the opening brace
        emitter: Sink for tokens, references and diagnostics
    """
    m = _VARIABLE_INSERT.match(insert)
    if m is not None:
        invocation = m.group(2)
        invocation_index = insert_index + len(m.group(1))
        emitter.capture_token(invocation, invocation_index, TokenType.VARIABLE)
        emitter.capture_expression(scan_expression(invocation, invocation_index))

        bad = _BAD_DEREFERENCE.search(invocation)
        if bad is not None:
            emitter.error_for(
                bad.group(1),
                invocation_index + bad.start(),
                "Array dereferencing can only be at the end (that is, myVar[2] is okay but myVar[2].color isn't)",
            )
        return

    tokens = tokenize_insert(insert, insert_index, emitter)
    if tokens.first_argument is not None:
        emitter.capture_expression(scan_expression(tokens.first_argument.text, tokens.first_argument.at))
    for _, value in tokens.props.values():
        emitter.capture_expression(scan_expression(value.text, value.at))

    _parse_insert_contents(tokens, emitter)


def parse_inserts(subsection: str, subsection_index: int, emitter: SymbolEmitter) -> None:
    """Parse every insert in a run of passage text."""
    for insert in find_inserts(subsection):
        parse_insert_or_variable(insert.text, subsection_index + insert.at, emitter)
