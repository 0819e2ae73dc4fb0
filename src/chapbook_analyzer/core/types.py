"""
Core types shared by the Chapbook parsers and query functions.

Catalog and registration data (descriptors, definitions) are immutable
pydantic models; per-parse output records are lightweight dataclasses.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import IntEnum, StrEnum

from pydantic import BaseModel, ConfigDict, Field

from .positions import Location, Range


class SymbolKind(StrEnum):
    """Kind of a reference or definition."""

    PASSAGE = "passage"
    BUILT_IN_MODIFIER = "built-in-modifier"
    BUILT_IN_INSERT = "built-in-insert"
    CUSTOM_MODIFIER = "custom-modifier"
    CUSTOM_INSERT = "custom-insert"
    VARIABLE = "variable"
    # A variable being set in a vars section
    VARIABLE_SET = "variable-set"
    PROPERTY = "property"
    PROPERTY_SET = "property-set"


class ArgumentRequirement(StrEnum):
    """Whether an insert's or modifier's first argument is required."""

    REQUIRED = "required"
    OPTIONAL = "optional"
    IGNORED = "ignored"


class ValueType(StrEnum):
    """What kind of value an argument or property takes."""

    PLAIN = "plain"
    EXPRESSION = "expression"
    NUMBER = "number"
    PASSAGE = "passage"
    URL_OR_PASSAGE = "urlOrPassage"


class ModifierBlock(StrEnum):
    """How a modifier changes the text block that follows it."""

    TEXT = "text"
    NOTE = "note"
    CSS = "css"
    JAVASCRIPT = "javascript"
    CONTINUE = "continue"


class TokenType(StrEnum):
    """Semantic token types, in legend order."""

    CLASS = "class"
    PROPERTY = "property"
    FUNCTION = "function"
    PARAMETER = "parameter"
    VARIABLE = "variable"
    COMMENT = "comment"
    KEYWORD = "keyword"
    STRING = "string"
    NUMBER = "number"
    OPERATOR = "operator"


class TokenModifier(StrEnum):
    """Semantic token modifiers, in legend order."""

    DECLARATION = "declaration"
    DEPRECATED = "deprecated"
    MODIFICATION = "modification"


class DiagnosticSeverity(IntEnum):
    """Diagnostic severities, numbered as in the Language Server Protocol."""

    ERROR = 1
    WARNING = 2
    INFORMATION = 3
    HINT = 4


class DecorationType(StrEnum):
    CHAPBOOK_VARS_SECTION = "chapbook-vars-section"
    CHAPBOOK_MODIFIER_CONTENT = "chapbook-modifier-content"


class ParseLevel(StrEnum):
    """How much of a passage to parse."""

    FULL = "full"
    # Only look for engine extensions so custom inserts/modifiers get registered
    PASSAGE_NAMES = "passage-names"


# =============================================================================
# Catalog and registration models
# =============================================================================


class InsertProperty(BaseModel):
    """Typing and completion information for a single insert property."""

    type: ValueType | None = None
    placeholder: str | None = None

    model_config = ConfigDict(frozen=True)


# A property's placeholder text, full property info, or nothing
PropertyInfo = str | InsertProperty | None


class FirstArgument(BaseModel):
    """The first argument to an insert or modifier."""

    required: ArgumentRequirement
    placeholder: str | None = None
    type: ValueType | None = None

    model_config = ConfigDict(frozen=True)


class FunctionInfo(BaseModel):
    """
    Contract shared by built-in descriptors and author-registered definitions.

    Attributes:
        name: What to call the insert or modifier
        match: Compiled pattern that recognizes invocations
        syntax: Syntax shown on hover (markdown)
        description: Description shown on hover (markdown)
        completions: Completion labels offered for this function
        first_argument: Whether a first argument is required, and its shape
        required_props: Properties that must be present (inserts only)
        optional_props: Properties that may be present (inserts only)
        since: Chapbook version when this function became available
        deprecated: Chapbook version when this function became deprecated
        removed: Chapbook version when this function was removed
    """

    name: str
    match: re.Pattern[str]
    syntax: str | None = None
    description: str | None = None
    completions: tuple[str, ...] | None = None
    first_argument: FirstArgument | None = None
    required_props: dict[str, PropertyInfo] = Field(default_factory=dict)
    optional_props: dict[str, PropertyInfo] = Field(default_factory=dict)
    since: str | None = None
    deprecated: str | None = None
    removed: str | None = None

    model_config = ConfigDict(frozen=True)

    def matches(self, text: str) -> bool:
        """Same semantics as JavaScript's ``RegExp.test``."""
        return self.match.search(text) is not None

    def property_info(self, name: str) -> PropertyInfo:
        if name in self.required_props:
            return self.required_props[name]
        return self.optional_props.get(name)


class Descriptor(FunctionInfo):
    """A built-in insert's or modifier's static metadata."""

    block: ModifierBlock = ModifierBlock.TEXT


class Definition(FunctionInfo):
    """
    An author-registered insert or modifier found in an ``engine.extend()`` call.

    ``contents`` is the raw regex source; ``location`` points at it.
    """

    contents: str
    location: Location
    kind: SymbolKind

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)


# =============================================================================
# Per-parse records
# =============================================================================


@dataclass(frozen=True, slots=True)
class Segment:
    """A piece of text at a document offset."""

    text: str
    at: int

    @property
    def end(self) -> int:
        return self.at + len(self.text)


@dataclass(frozen=True, slots=True)
class PreToken:
    """A semantic token keyed by document offset, before line splitting."""

    text: str
    at: int
    token_type: TokenType
    token_modifiers: tuple[TokenModifier, ...] = ()


@dataclass(frozen=True, slots=True)
class Token:
    """A semantic token. ``char`` and ``length`` are UTF-16 units."""

    line: int
    char: int
    length: int
    token_type: TokenType
    token_modifiers: tuple[TokenModifier, ...] = ()


@dataclass(slots=True)
class Reference:
    """Occurrences of a named symbol."""

    contents: str
    locations: list[Location]
    kind: SymbolKind


@dataclass(frozen=True, slots=True)
class Diagnostic:
    range: Range
    message: str
    severity: DiagnosticSeverity
    source: str | None = "chapbook"
    code: str | None = None


@dataclass(frozen=True, slots=True)
class EmbeddedDocument:
    """
    A sub-document in another language inside a passage.

    Attributes:
        name: Name of the embedded document (passage name for passage HTML)
        language_id: Language of the contents, such as "css" or "html"
        text: Contents of the embedded document
        offset: Where the contents start in the containing document
        range: Range of the contents in the containing document
        is_passage: True if the document covers a whole passage's text
        defer_to_story_format: True if the story format handles the contents
    """

    name: str
    language_id: str
    text: str
    offset: int
    range: Range
    is_passage: bool = False
    defer_to_story_format: bool = False


@dataclass(frozen=True, slots=True)
class DecorationRange:
    type: DecorationType
    range: Range


@dataclass(frozen=True, slots=True)
class Passage:
    """
    A passage inside a story document.

    Attributes:
        name: Passage name
        location: Location of the name in the passage header
        scope: Range from the header through the end of the passage text
        text: The passage's text
        text_index: Document offset where the text begins
        tags: Passage tags
    """

    name: str
    location: Location
    scope: Range
    text: str
    text_index: int
    tags: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class StoryFormat:
    """The story format a document targets."""

    format: str = "Chapbook"
    format_version: str | None = None


@dataclass
class ParseResult:
    """Everything a single parse call produces."""

    tokens: list[Token] = field(default_factory=list)
    references: list[Reference] = field(default_factory=list)
    definitions: list[Definition] = field(default_factory=list)
    diagnostics: list[Diagnostic] = field(default_factory=list)
    embedded_documents: list[EmbeddedDocument] = field(default_factory=list)
    folding_ranges: list[Range] = field(default_factory=list)
    decoration_ranges: list[DecorationRange] = field(default_factory=list)

    def extend(self, other: ParseResult) -> None:
        self.tokens.extend(other.tokens)
        self.references.extend(other.references)
        self.definitions.extend(other.definitions)
        self.diagnostics.extend(other.diagnostics)
        self.embedded_documents.extend(other.embedded_documents)
        self.folding_ranges.extend(other.folding_ranges)
        self.decoration_ranges.extend(other.decoration_ranges)
