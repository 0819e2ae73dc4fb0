"""
Engine extension parsing.

Stories register custom inserts and modifiers from JavaScript:

    engine.extend('2.0.0', () => {
        engine.template.inserts.add({
            match: /^smiley face/i,
            render: () => '&#x1F600;',
        });
    });

Nothing is executed. The object literal handed to ``add()`` is read by a
fixed-schema recursive descent over the strict JavaScript tokenizer, and the
fields Chapbook and the editor care about become a Definition.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any

from .emitter import SymbolEmitter
from .errors import ExtensionSyntaxError, RegexTranslationError, VersionFormatError
from .js_expression import Token, TokenKind, string_value, tokenize
from .regex import compile_js_regex
from .scanner import extract_to_matching_delimiter, skip_spaces
from .types import (
    ArgumentRequirement,
    Definition,
    FirstArgument,
    InsertProperty,
    PropertyInfo,
    SymbolKind,
    ValueType,
)
from .versions import extension_is_ignored

logger = logging.getLogger(__name__)

_ENGINE_EXTEND = re.compile(r"engine.extend\(")
_ENGINE_TEMPLATE_ADD = re.compile(r"engine\.template\.([^\.]+)\.add\(")

_TERMINATORS = (",", "}", "]", ")")
_OPENERS = {"(": ")", "[": "]", "{": "}"}

_VALUE_TYPES = frozenset(t.value for t in ValueType)
_REQUIREMENTS = frozenset(r.value for r in ArgumentRequirement)
_ARGUMENT_KEYS = ("firstArgument", "requiredProps", "optionalProps")


# =============================================================================
# Object literal reader
# =============================================================================


@dataclass
class LiteralNode:
    """
    A value read from an object literal.

    ``kind`` is one of: string, regex, boolean, null, number, object, array, other.
    ``start`` and ``end`` are offsets into the text being read.
    """

    kind: str
    start: int
    end: int
    value: Any = None
    # Object members, in source order: key -> (key start, key end, value)
    members: dict[str, tuple[int, int, LiteralNode]] = field(default_factory=dict)
    elements: list[LiteralNode] = field(default_factory=list)


class ObjectLiteralReader:
    """Recursive descent reader for the restricted object literals ``add()`` takes."""

    def __init__(self, source: str):
        self.source = source
        self.tokens = tokenize(source, strict=True)
        self.pos = 0

    def current(self) -> Token:
        return self.tokens[self.pos]

    def advance(self) -> Token:
        token = self.tokens[self.pos]
        if token.kind != TokenKind.EOF:
            self.pos += 1
        return token

    def is_punct(self, *values: str) -> bool:
        token = self.current()
        return token.kind == TokenKind.PUNCT and token.value in values

    def expect(self, value: str) -> Token:
        token = self.current()
        if token.kind == TokenKind.EOF:
            raise ExtensionSyntaxError("Unexpected end of input", token.pos)
        if token.kind != TokenKind.PUNCT or token.value != value:
            raise ExtensionSyntaxError(f"Unexpected token; expected '{value}'", token.pos)
        return self.advance()

    def read(self) -> LiteralNode | None:
        """Read the whole source as a value. Returns None if it isn't an object literal."""
        if not self.is_punct("{"):
            return None
        node = self.read_value()
        if self.current().kind != TokenKind.EOF:
            raise ExtensionSyntaxError("Unexpected token", self.current().pos)
        return node

    def read_value(self) -> LiteralNode:
        token = self.current()
        if token.kind == TokenKind.EOF:
            raise ExtensionSyntaxError("Unexpected end of input", token.pos)

        if self.is_punct("{"):
            node = self.read_object()
        elif self.is_punct("["):
            node = self.read_array()
        else:
            node = self.read_primary()

        if not self.is_punct(*_TERMINATORS) and self.current().kind != TokenKind.EOF:
            # Part of a larger expression, such as `'a' + b`
            self.skip_expression()
            node = LiteralNode("other", node.start, self.tokens[self.pos - 1].end)
        return node

    def read_primary(self) -> LiteralNode:
        token = self.current()
        if token.kind == TokenKind.STRING:
            self.advance()
            return LiteralNode("string", token.pos, token.end, string_value(token.value))
        if token.kind == TokenKind.TEMPLATE and not token.parts:
            self.advance()
            return LiteralNode("string", token.pos, token.end, string_value(token.value))
        if token.kind == TokenKind.REGEX:
            self.advance()
            return LiteralNode("regex", token.pos, token.end, token.value)
        if token.kind == TokenKind.NUMBER:
            self.advance()
            return LiteralNode("number", token.pos, token.end, token.value)
        if token.kind == TokenKind.KEYWORD and token.value in ("true", "false"):
            self.advance()
            return LiteralNode("boolean", token.pos, token.end, token.value == "true")
        if token.kind == TokenKind.KEYWORD and token.value == "null":
            self.advance()
            return LiteralNode("null", token.pos, token.end)
        if self.is_punct(*_TERMINATORS):
            raise ExtensionSyntaxError("Unexpected token", token.pos)
        start = token.pos
        self.skip_expression()
        return LiteralNode("other", start, self.tokens[self.pos - 1].end)

    def read_object(self) -> LiteralNode:
        start = self.expect("{").pos
        node = LiteralNode("object", start, start)
        while not self.is_punct("}"):
            self.read_member(node)
            if not self.is_punct("}"):
                self.expect(",")
        node.end = self.expect("}").end
        return node

    def read_member(self, node: LiteralNode) -> None:
        token = self.current()
        if self.is_punct("..."):
            self.advance()
            self.read_value()
            return
        if self.is_punct("["):
            # Computed keys can't be read statically
            self.skip_group()
            key = None
        elif token.kind in (TokenKind.IDENT, TokenKind.KEYWORD, TokenKind.NUMBER):
            self.advance()
            key = token.value
        elif token.kind == TokenKind.STRING:
            self.advance()
            key = string_value(token.value)
        elif token.kind == TokenKind.EOF:
            raise ExtensionSyntaxError("Unexpected end of input", token.pos)
        else:
            raise ExtensionSyntaxError("Unexpected token", token.pos)

        if self.is_punct(":"):
            self.advance()
            value = self.read_value()
        elif self.is_punct("("):
            # Method shorthand: `render(text) { ... }`
            value_start = self.current().pos
            self.skip_group()
            if self.is_punct("{"):
                self.skip_group()
            value = LiteralNode("other", value_start, self.tokens[self.pos - 1].end)
        else:
            # Shorthand property or accessor; the value can't be read statically
            if not self.is_punct(",", "}"):
                self.skip_expression()
            value = LiteralNode("other", token.pos, self.tokens[self.pos - 1].end)

        if key is not None:
            node.members[key] = (token.pos, token.end, value)

    def read_array(self) -> LiteralNode:
        start = self.expect("[").pos
        node = LiteralNode("array", start, start)
        while not self.is_punct("]"):
            if self.is_punct(","):
                self.advance()
                continue
            node.elements.append(self.read_value())
            if not self.is_punct("]"):
                self.expect(",")
        node.end = self.expect("]").end
        return node

    def skip_group(self) -> None:
        """Skip a bracketed group, including nested groups."""
        open_token = self.advance()
        close = _OPENERS[open_token.value]
        while not self.is_punct(close):
            if self.current().kind == TokenKind.EOF:
                raise ExtensionSyntaxError("Unexpected end of input", self.current().pos)
            if self.is_punct(*_OPENERS):
                self.skip_group()
            else:
                self.advance()
        self.advance()

    def skip_expression(self) -> None:
        """Skip to the next top-level terminator."""
        while not self.is_punct(*_TERMINATORS) and self.current().kind != TokenKind.EOF:
            if self.is_punct(*_OPENERS):
                self.skip_group()
            else:
                self.advance()


# =============================================================================
# Definition schema
# =============================================================================


@dataclass
class _DefinitionFields:
    match: LiteralNode | None = None
    name: str | None = None
    description: str | None = None
    syntax: str | None = None
    completions: tuple[str, ...] | None = None
    first_argument: FirstArgument | None = None
    required_props: dict[str, PropertyInfo] = field(default_factory=dict)
    optional_props: dict[str, PropertyInfo] = field(default_factory=dict)


class _SchemaReader:
    """Checks a read object literal against the definition schema."""

    def __init__(self, contents_index: int, kind: SymbolKind, emitter: SymbolEmitter):
        self.contents_index = contents_index
        self.kind = kind
        self.emitter = emitter
        self.fields = _DefinitionFields()

    def _error(self, start: int, end: int, message: str) -> None:
        self.emitter.error_between(self.contents_index + start, self.contents_index + end, message)

    def _warning(self, start: int, end: int, message: str) -> None:
        text = self.emitter.document.text[self.contents_index + start : self.contents_index + end]
        self.emitter.warning_for(text, self.contents_index + start, message)

    def read(self, root: LiteralNode) -> _DefinitionFields:
        for key, (key_start, key_end, value) in root.members.items():
            if key == "match":
                if value.kind == "regex":
                    self.fields.match = value
                else:
                    self._error(value.start, value.end, "Must be a regular expression")
            elif key in ("name", "description", "syntax"):
                if value.kind == "string":
                    setattr(self.fields, key, value.value)
                else:
                    self._warning(value.start, value.end, "Must be a string")
            elif key == "completions":
                self._read_completions(value)
            elif key == "arguments":
                if self.kind != SymbolKind.CUSTOM_INSERT:
                    self._warning(key_start, key_end, "Arguments can only be specified for custom inserts")
                elif value.kind == "object":
                    self._read_arguments(value)
                else:
                    self._warning(value.start, value.end, "Must be an object")
            elif key in ("requiredProps", "optionalProps"):
                self._read_props_member(key, key_start, key_end, value)
        return self.fields

    def _read_completions(self, value: LiteralNode) -> None:
        message = "Completions must be a string or an array of strings"
        if value.kind == "string":
            self.fields.completions = (value.value,)
        elif value.kind == "array":
            completions = []
            for element in value.elements:
                if element.kind == "string":
                    completions.append(element.value)
                else:
                    self._warning(element.start, element.end, message)
            self.fields.completions = tuple(completions)
        else:
            self._warning(value.start, value.end, message)

    def _read_arguments(self, node: LiteralNode) -> None:
        for key, (key_start, key_end, value) in node.members.items():
            if key == "firstArgument":
                if value.kind == "object":
                    self._read_first_argument(value)
                else:
                    self._warning(value.start, value.end, "Must be an object")
            elif key in ("requiredProps", "optionalProps"):
                self._read_props_member(key, key_start, key_end, value)
            else:
                names = ", ".join(f"'{k}'" for k in _ARGUMENT_KEYS)
                self._warning(key_start, key_end, f"Properties other than {names} are ignored.")

    def _read_props_member(self, key: str, key_start: int, key_end: int, value: LiteralNode) -> None:
        if self.kind == SymbolKind.CUSTOM_MODIFIER:
            self._warning(key_start, key_end, "Modifiers ignore required and optional properties")
            return
        if value.kind != "object":
            self._warning(value.start, value.end, "Must be an object")
            return
        props = self.fields.required_props if key == "requiredProps" else self.fields.optional_props
        for prop, (_, _, prop_value) in value.members.items():
            if prop_value.kind == "string":
                props[prop] = prop_value.value
            elif prop_value.kind == "null":
                props[prop] = None
            elif prop_value.kind == "object":
                props[prop] = self._read_insert_property(prop_value)
            else:
                self._warning(prop_value.start, prop_value.end, "Must be a string")

    def _read_insert_property(self, node: LiteralNode) -> InsertProperty:
        placeholder: str | None = None
        value_type: ValueType | None = None
        for key, (_, _, value) in node.members.items():
            if key == "placeholder":
                if value.kind == "string":
                    placeholder = value.value
                else:
                    self._warning(value.start, value.end, "Must be a string")
            elif key == "type":
                value_type = self._read_value_type(value)
        return InsertProperty(placeholder=placeholder, type=value_type)

    def _read_value_type(self, value: LiteralNode) -> ValueType | None:
        if value.kind == "string" and value.value in _VALUE_TYPES:
            return ValueType(value.value)
        choices = ", ".join(f"'{t.value}'" for t in ValueType)
        self._warning(value.start, value.end, f"Must be one of {choices}.")
        return None

    def _read_first_argument(self, node: LiteralNode) -> None:
        required: ArgumentRequirement | None = None
        placeholder: str | None = None
        value_type: ValueType | None = None

        for key, (key_start, key_end, value) in node.members.items():
            if key == "required":
                if value.kind == "boolean":
                    required = ArgumentRequirement.REQUIRED if value.value else ArgumentRequirement.OPTIONAL
                elif value.kind == "string":
                    if value.value in _REQUIREMENTS:
                        required = ArgumentRequirement(value.value)
                    else:
                        choices = ", ".join(f"'{r.value}'" for r in ArgumentRequirement)
                        self._warning(value.start, value.end, f"Must be one of {choices}.")
                else:
                    self._warning(value.start, value.end, "Must be a string or a boolean")
            elif key == "placeholder":
                if value.kind == "string":
                    placeholder = value.value
                else:
                    self._warning(value.start, value.end, "Must be a string")
            elif key == "type":
                value_type = self._read_value_type(value)
            else:
                self._warning(
                    key_start,
                    key_end,
                    "Unrecognized property; must be 'required', 'placeholder', or 'type'",
                )

        if required is not None:
            self.fields.first_argument = FirstArgument(
                required=required, placeholder=placeholder, type=value_type
            )


def _split_regex_literal(literal: str) -> tuple[str, str]:
    """Split ``/source/flags`` into source and flags."""
    close = literal.rfind("/")
    return literal[1:close], literal[close + 1 :]


def parse_custom_definition(
    contents: str, contents_index: int, kind: SymbolKind, emitter: SymbolEmitter
) -> Definition | None:
    """
    Read one ``engine.template.*.add()`` argument and register what it defines.

    Args:
        contents: Text inside the ``add()`` parentheses
        contents_index: Document offset where ``contents`` begins
        kind: CUSTOM_INSERT or CUSTOM_MODIFIER
        emitter: Sink for the definition and any diagnostics

    Returns:
        The registered definition, or None if the argument doesn't define one
    """
    try:
        root = ObjectLiteralReader(contents).read()
    except ExtensionSyntaxError as e:
        at = contents_index + e.offset
        emitter.error_between(at, at + 1, e.message)
        return None
    if root is None:
        return None

    fields = _SchemaReader(contents_index, kind, emitter).read(root)
    if fields.match is None:
        return None

    literal = fields.match
    source, flags = _split_regex_literal(literal.value)
    source_index = contents_index + literal.start + 1  # skip the leading "/"
    try:
        pattern = compile_js_regex(source, flags)
    except RegexTranslationError as e:
        emitter.error_between(contents_index + literal.start, contents_index + literal.end, e.message)
        return None

    if kind == SymbolKind.CUSTOM_INSERT and " " not in source and "\\s" not in source:
        emitter.error_for(source, source_index, "Custom inserts must have a space in their match")

    definition = Definition(
        name=fields.name if fields.name is not None else source,
        match=pattern,
        syntax=fields.syntax,
        description=fields.description,
        completions=fields.completions,
        first_argument=fields.first_argument,
        required_props=fields.required_props,
        optional_props=fields.optional_props,
        contents=source,
        location=emitter.document.location_for(source_index, source),
        kind=kind,
    )
    emitter.definition(definition)
    return definition


# =============================================================================
# engine.extend()
# =============================================================================


def _parse_engine_extension(contents: str, contents_index: int, emitter: SymbolEmitter) -> None:
    """Parse ``'version', callback`` from inside an ``engine.extend()`` call."""
    if contents[:1] not in ("'", '"'):
        return
    version = extract_to_matching_delimiter(contents, contents[0], contents[0], 1)
    if version is None:
        return

    format_version = emitter.format_version
    if format_version is not None:
        try:
            ignored = extension_is_ignored(version, format_version)
        except VersionFormatError:
            emitter.error_for(version, contents_index + 1, "The extension's version must be a number like '2.0.0'")
            return
        if ignored:
            emitter.warning_for(
                version,
                contents_index + 1,
                f"The current story format version is {format_version}, so this extension will be ignored",
            )

    pos = 0
    while (m := _ENGINE_TEMPLATE_ADD.search(contents, pos)) is not None:
        added = extract_to_matching_delimiter(contents, "(", ")", m.end())
        if added is None:
            pos = m.end()
            continue

        target = m.group(1)
        if target == "inserts":
            parse_custom_definition(added, contents_index + m.end(), SymbolKind.CUSTOM_INSERT, emitter)
        elif target == "modifiers":
            parse_custom_definition(added, contents_index + m.end(), SymbolKind.CUSTOM_MODIFIER, emitter)
        else:
            emitter.warning_for(
                f"engine.template.{target}", contents_index + m.start(), "Unrecognized engine template function"
            )
        pos = m.end() + len(added) + 1


def find_engine_extensions(contents: str, contents_index: int, emitter: SymbolEmitter) -> None:
    """
    Find and parse every ``engine.extend()`` call in a run of JavaScript or passage text.

    Args:
        contents: Text to search
        contents_index: Document offset where ``contents`` begins
        emitter: Sink for definitions and diagnostics
    """
    for m in _ENGINE_EXTEND.finditer(contents):
        extend_contents = extract_to_matching_delimiter(contents, "(", ")", m.end())
        if extend_contents is None:
            continue
        extend_contents, extend_index = skip_spaces(extend_contents, m.end())
        logger.debug("Found engine.extend() at offset %d", contents_index + m.start())
        _parse_engine_extension(extend_contents, contents_index + extend_index, emitter)
