"""Core Chapbook analysis: passage parsing, project diagnostics, and editor queries."""

from .completions import CompletionItem, CompletionResult, generate_completions
from .config import AnalyzerOptions, DiagnosticsOptions, WarningOptions, load_options
from .definitions import get_definition_at
from .diagnostics import generate_diagnostics
from .errors import ChapbookError, ConfigError, ErrorContext, ExtensionSyntaxError, VersionFormatError
from .hover import Hover, generate_hover
from .index import InMemoryIndex, ProjectIndex
from .parser import parse_passage_text
from .positions import Location, Position, Range, TextDocument
from .references import get_references_to_symbol_at
from .twee import StoryParse, index_story, parse_story
from .types import Diagnostic, ParseLevel, ParseResult, StoryFormat, SymbolKind

__all__ = [
    "ChapbookError",
    "ConfigError",
    "ErrorContext",
    "ExtensionSyntaxError",
    "VersionFormatError",
    "AnalyzerOptions",
    "DiagnosticsOptions",
    "WarningOptions",
    "load_options",
    "TextDocument",
    "Position",
    "Range",
    "Location",
    "Diagnostic",
    "ParseLevel",
    "ParseResult",
    "StoryFormat",
    "SymbolKind",
    "ProjectIndex",
    "InMemoryIndex",
    "parse_passage_text",
    "parse_story",
    "index_story",
    "StoryParse",
    "generate_diagnostics",
    "generate_completions",
    "CompletionItem",
    "CompletionResult",
    "generate_hover",
    "Hover",
    "get_definition_at",
    "get_references_to_symbol_at",
]
