"""
Completion suggestions inside Chapbook passages.

The cursor position is classified by scanning backwards for the enclosing
modifier (``[`` at the start of a line) or insert (``{``), then forwards for
the end of the section the cursor is in. Candidates come from the built-in
catalog, custom definitions in the project index, and names the index has
seen set in vars sections.

Insert texts are LSP snippets: ``${1:placeholder}`` marks a tab stop.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import StrEnum

from .catalog import all_builtin_inserts, all_builtin_modifiers
from .diagnostics import find_function, get_custom_definitions
from .index import ProjectIndex
from .parser import divide_passage
from .positions import Position, Range, TextDocument
from .scanner import find_start_of_modifier_or_insert, remove_and_count_padding
from .types import (
    ArgumentRequirement,
    Definition,
    EmbeddedDocument,
    FunctionInfo,
    InsertProperty,
    PropertyInfo,
    SymbolKind,
    ValueType,
)

logger = logging.getLogger(__name__)

_PROPERTY_CONTEXT = re.compile(r"(\w+\.(\w+\.)*)(\w*)$")
_TRAILING_WORD = re.compile(r"\w*$")
_MODIFIER_END = re.compile(r"[\];\r\n]")
_INSERT_SECTION_END = re.compile(r"[,:}\r\n]")
_QUOTES = ("'", '"')
_PASSAGE_TYPES = (ValueType.PASSAGE, ValueType.URL_OR_PASSAGE)

DEFAULT_PLACEHOLDER = "'arg'"


class CompletionItemKind(StrEnum):
    FUNCTION = "function"
    PROPERTY = "property"
    VARIABLE = "variable"
    CLASS = "class"


@dataclass(frozen=True)
class CompletionItem:
    """
    One completion candidate.

    Attributes:
        label: Text shown in the completion list
        kind: What the candidate is
        text: Text that replaces the edit range
        edit_range: Range this item replaces, if different from the result's
    """

    label: str
    kind: CompletionItemKind
    text: str
    edit_range: Range | None = None


@dataclass
class CompletionResult:
    """Completion candidates plus the defaults that apply to all of them."""

    items: list[CompletionItem] = field(default_factory=list)
    edit_range: Range | None = None
    snippet: bool = False


# =============================================================================
# Snippet helpers
# =============================================================================


def placeholder_with_tab_stop(placeholder: str, tab_stop: int | None = None) -> str:
    """
    Wrap a placeholder in a snippet tab stop.

    A quoted placeholder keeps its quote marks outside the tab stop:
    ``'arg'`` becomes ``'${1:arg}'``.
    """
    if tab_stop is None:
        return placeholder
    if placeholder.startswith(_QUOTES):
        return f"{placeholder[0]}${{{tab_stop}:{placeholder[1:-1]}}}{placeholder[0]}"
    return f"${{{tab_stop}:{placeholder}}}"


def insert_property_placeholder(info: PropertyInfo, tab_stop: int | None = None) -> str:
    placeholder = DEFAULT_PLACEHOLDER
    if isinstance(info, InsertProperty) and info.placeholder is not None:
        placeholder = info.placeholder
    elif isinstance(info, str):
        placeholder = info
    return placeholder_with_tab_stop(placeholder, tab_stop)


def _property_items(props: dict[str, PropertyInfo]) -> list[CompletionItem]:
    return [
        CompletionItem(name, CompletionItemKind.PROPERTY, f" {name}: {insert_property_placeholder(info, 1)}")
        for name, info in props.items()
    ]


def _labels(info: FunctionInfo) -> tuple[str, ...]:
    """Completion labels: explicit completions, else a custom definition's source, else the name."""
    if info.completions:
        return info.completions
    if isinstance(info, Definition) and info.contents:
        return (info.contents,)
    return (info.name,) if info.name else ()


# =============================================================================
# Variables, properties and passages
# =============================================================================


def _variable_completions(document: TextDocument, text: str, offset: int, index: ProjectIndex) -> CompletionResult:
    """
    Suggest set variables, or set properties after ``name.``.

    Args:
        text: Text from the start of the context up to the cursor
        offset: Document offset where ``text`` begins
    """
    m = _PROPERTY_CONTEXT.search(text)
    context = m.group(1) if m is not None else None
    word = m.group(3) if m is not None else _TRAILING_WORD.search(text).group(0)  # type: ignore[union-attr]
    end = offset + len(text)
    edit_range = document.range_between(end - len(word), end)

    labels: dict[str, None] = {}
    for uri in index.get_indexed_uris():
        if context is not None:
            for ref in index.get_references(uri, SymbolKind.PROPERTY_SET):
                if ref.contents.startswith(context):
                    labels[ref.contents.rsplit(".", 1)[-1]] = None
        else:
            for ref in index.get_references(uri, SymbolKind.VARIABLE_SET):
                labels[ref.contents] = None

    kind = CompletionItemKind.PROPERTY if context is not None else CompletionItemKind.VARIABLE
    return CompletionResult([CompletionItem(label, kind, label, edit_range) for label in labels], edit_range)


def _passage_completions(
    document: TextDocument, section: str, start: int, end: int, index: ProjectIndex
) -> CompletionResult:
    """
    Suggest passage names for the value in ``text[start:end]``.

    Quote marks already typed stay in place and are kept out of the edit
    range; missing ones are added to each candidate.
    """
    prefix = suffix = "'"
    value, left, right = remove_and_count_padding(section)
    start += left
    end -= right
    if value.startswith(_QUOTES):
        prefix = ""
        suffix = value[0]
        start += 1
    if value.endswith(_QUOTES) and (len(value) > 1 or prefix):
        suffix = ""
        if prefix:
            prefix = value[-1]
        end -= 1

    items = [
        CompletionItem(name, CompletionItemKind.CLASS, f"{prefix}{name}{suffix}") for name in index.get_passage_names()
    ]
    return CompletionResult(items, document.range_between(start, end), snippet=True)


def _argument_completions(
    document: TextDocument,
    value_type: ValueType | None,
    start: int,
    end: int,
    offset: int,
    index: ProjectIndex,
) -> CompletionResult | None:
    """Completions for a first argument or property value, if its type offers any."""
    if value_type in _PASSAGE_TYPES:
        return _passage_completions(document, document.text[start:end], start, end, index)
    if value_type == ValueType.EXPRESSION:
        return _variable_completions(document, document.text[start:offset], start, index)
    return None


# =============================================================================
# Modifiers
# =============================================================================


def _modifier_completions(
    document: TextDocument, content_start: int, offset: int, index: ProjectIndex
) -> CompletionResult | None:
    """
    Args:
        content_start: Offset just past the modifier block's ``[``
        offset: Cursor offset
    """
    text = document.text
    modifiers: list[FunctionInfo] = [
        *all_builtin_modifiers(),
        *get_custom_definitions(SymbolKind.CUSTOM_MODIFIER, index),
    ]

    # The modifier the cursor is in may follow a ;
    at_semicolon = False
    i = offset
    while i > content_start:
        if text[i : i + 1] == ";":
            at_semicolon = True
            i += 1
            break
        i -= 1
    content_start = i

    m = _MODIFIER_END.search(text, offset)
    content_end = m.start() if m is not None else len(text)

    modifier_text = text[content_start:content_end]
    stripped = modifier_text.lstrip(" ")
    has_leading_space = len(stripped) < len(modifier_text)
    if stripped:
        content_start += len(modifier_text) - len(stripped)
        modifier_text = stripped

    modifier = find_function(modifier_text, modifiers)
    if modifier is not None and (match := modifier.match.search(modifier_text)) is not None:
        first_argument = modifier.first_argument
        if first_argument is None:
            return None
        if first_argument.type == ValueType.EXPRESSION:
            return _variable_completions(document, text[content_start:offset], content_start, index)
        if first_argument.type in _PASSAGE_TYPES:
            argument_start = content_start + match.end()
            return _passage_completions(
                document, text[argument_start:content_end], argument_start, content_end, index
            )
        if first_argument.required == ArgumentRequirement.REQUIRED:
            label = modifier.name or modifier.match.pattern
            snippet = f"{label} {placeholder_with_tab_stop(first_argument.placeholder or 'arg', 1)}"
            return CompletionResult(
                [CompletionItem(label, CompletionItemKind.FUNCTION, snippet)],
                document.range_between(content_start, content_end),
                snippet=True,
            )
        return None

    leading_space = " " if at_semicolon and not has_leading_space else ""
    items = [
        CompletionItem(label, CompletionItemKind.FUNCTION, leading_space + label)
        for info in modifiers
        for label in _labels(info)
    ]
    return CompletionResult(items, document.range_between(content_start, content_end), snippet=True)


# =============================================================================
# Inserts
# =============================================================================


def _insert_name_completions(
    document: TextDocument,
    inserts: Sequence[FunctionInfo],
    content_start: int,
    name_end: int,
    offset: int,
    index: ProjectIndex,
) -> CompletionResult:
    text = document.text
    # At the end of the document only the word up to the cursor is the name
    if name_end == len(text) and (space := text.find(" ", offset)) != -1:
        name_end = space

    stop = text[name_end : name_end + 1]
    colon_missing = stop != ":"
    comma_missing = stop != ","

    items: list[CompletionItem] = []
    for insert in inserts:
        for label in _labels(insert):
            snippet = label
            tab_stop = 1
            first_argument = insert.first_argument
            if colon_missing and first_argument is not None and first_argument.required == ArgumentRequirement.REQUIRED:
                placeholder = first_argument.placeholder if first_argument.placeholder is not None else DEFAULT_PLACEHOLDER
                snippet += f": {placeholder_with_tab_stop(placeholder, tab_stop)}"
                tab_stop += 1
            if comma_missing:
                for name, info in insert.required_props.items():
                    snippet += f", {name}: {insert_property_placeholder(info, tab_stop)}"
                    tab_stop += 1
            items.append(CompletionItem(label, CompletionItemKind.FUNCTION, snippet))

    # A one-word insert may be a variable insert
    if stop in ("}", "\r", "\n", ""):
        items.extend(_variable_completions(document, text[content_start:offset], content_start, index).items)

    return CompletionResult(items, document.range_between(content_start, name_end), snippet=True)


def _insert_completions(
    document: TextDocument, content_start: int, offset: int, index: ProjectIndex
) -> CompletionResult | None:
    """
    Args:
        content_start: Offset just past the insert's ``{``
        offset: Cursor offset
    """
    text = document.text
    inserts: list[FunctionInfo] = [
        *all_builtin_inserts(),
        *get_custom_definitions(SymbolKind.CUSTOM_INSERT, index),
    ]

    m = _INSERT_SECTION_END.search(text, content_start)
    name_end = m.start() if m is not None else len(text)
    if offset <= name_end:
        return _insert_name_completions(document, inserts, content_start, name_end, offset, index)

    insert = find_function(text[content_start:name_end], inserts)
    if insert is None:
        return None

    m = _INSERT_SECTION_END.search(text, offset)
    section_end = m.start() if m is not None else offset

    i = offset
    while i > content_start and text[i : i + 1] not in (":", ","):
        i -= 1

    if text[i : i + 1] == ",":
        section_start = i + 1
        # Replace a colon that's already there
        if text[section_end : section_end + 1] == ":":
            section_end += 1
        items = _property_items(insert.required_props) + _property_items(insert.optional_props)
        return CompletionResult(items, document.range_between(section_start, section_end), snippet=True)

    if text[i : i + 1] != ":":
        return None
    section_start = i + 1

    if i == name_end:
        value_type = insert.first_argument.type if insert.first_argument is not None else None
        return _argument_completions(document, value_type, section_start, section_end, offset, index)

    # A property value: find the property's name
    i -= 1
    while i > name_end and text[i] != ",":
        i -= 1
    if text[i] != ",":
        return None
    info = insert.property_info(text[i + 1 : section_start - 1].strip())
    if not isinstance(info, InsertProperty):
        return None
    return _argument_completions(document, info.type, section_start, section_end, offset, index)


def generate_completions(
    document: TextDocument,
    position: Position,
    index: ProjectIndex,
    deferred_documents: Sequence[EmbeddedDocument] = (),
) -> CompletionResult | None:
    """
    Generate completions at a position in a story document.

    Args:
        document: Document being edited
        position: Cursor position
        index: Project index, used for passages, custom definitions and set variables
        deferred_documents: Embedded documents handed to the story format

    Returns:
        Completion candidates, or None if nothing applies at the position
    """
    passage = index.get_passage_at(document.uri, position)
    if passage is None:
        return None

    # Passage scopes start at the ":: Name" header line
    text_start = document.offset_at(Position(passage.scope.start.line + 1, 0))
    text_end = document.offset_at(passage.scope.end)
    passage_text = document.text[text_start:text_end]
    offset = document.offset_at(position)
    i = offset - text_start

    parts = divide_passage(passage_text)
    if i < parts.content_index:
        return _variable_completions(document, passage_text[:i], text_start, index)

    # [JavaScript] modifier contents belong to the script, not to Chapbook
    if any(d.language_id == "javascript" and d.range.contains(position) for d in deferred_documents):
        return None

    start = find_start_of_modifier_or_insert(passage_text, i)
    if start is None:
        return None
    if passage_text[start] == "[":
        return _modifier_completions(document, text_start + start + 1, offset, index)
    return _insert_completions(document, text_start + start + 1, offset, index)
