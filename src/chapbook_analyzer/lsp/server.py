"""
Chapbook Language Server implementation using pygls.

Indexes every Twee file in the workspace, re-analyzes a story document on
each change, and answers editor queries from the project index.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any
from urllib.parse import unquote, urlparse

from lsprotocol.types import (
    INITIALIZE,
    TEXT_DOCUMENT_COMPLETION,
    TEXT_DOCUMENT_DEFINITION,
    TEXT_DOCUMENT_DID_CHANGE,
    TEXT_DOCUMENT_DID_CLOSE,
    TEXT_DOCUMENT_DID_OPEN,
    TEXT_DOCUMENT_DID_SAVE,
    TEXT_DOCUMENT_FOLDING_RANGE,
    TEXT_DOCUMENT_HOVER,
    TEXT_DOCUMENT_REFERENCES,
    TEXT_DOCUMENT_SEMANTIC_TOKENS_FULL,
    WORKSPACE_DID_CHANGE_CONFIGURATION,
    CompletionItem,
    CompletionItemKind,
    CompletionList,
    CompletionOptions,
    CompletionParams,
    DefinitionParams,
    DidChangeConfigurationParams,
    DidChangeTextDocumentParams,
    DidCloseTextDocumentParams,
    DidOpenTextDocumentParams,
    DidSaveTextDocumentParams,
    FoldingRange,
    FoldingRangeParams,
    Hover,
    HoverParams,
    InitializeParams,
    InsertTextFormat,
    MarkupContent,
    MarkupKind,
    PublishDiagnosticsParams,
    ReferenceParams,
    SemanticTokens,
    SemanticTokensLegend,
    SemanticTokensParams,
    TextEdit,
)
from lsprotocol.types import Diagnostic as LspDiagnostic
from lsprotocol.types import DiagnosticSeverity as LspSeverity
from lsprotocol.types import Location as LspLocation
from lsprotocol.types import Position as LspPosition
from lsprotocol.types import Range as LspRange
from pygls.lsp.server import LanguageServer

from chapbook_analyzer._version import get_version
from chapbook_analyzer.core import completions as chapbook_completions
from chapbook_analyzer.core.config import CONFIG_FILENAME, AnalyzerOptions, apply_client_settings, load_options
from chapbook_analyzer.core.definitions import get_definition_at
from chapbook_analyzer.core.diagnostics import generate_diagnostics
from chapbook_analyzer.core.errors import ChapbookError
from chapbook_analyzer.core.hover import generate_hover
from chapbook_analyzer.core.index import InMemoryIndex
from chapbook_analyzer.core.positions import Location, Position, Range, TextDocument
from chapbook_analyzer.core.references import get_references_to_symbol_at
from chapbook_analyzer.core.twee import StoryParse, index_story
from chapbook_analyzer.core.types import Diagnostic, ParseLevel, Token, TokenModifier, TokenType

logger = logging.getLogger(__name__)

TWEE_SUFFIXES = (".twee", ".tw")

LEGEND = SemanticTokensLegend(
    token_types=[t.value for t in TokenType],
    token_modifiers=[m.value for m in TokenModifier],
)
_TOKEN_TYPE_INDEX = {t: n for n, t in enumerate(TokenType)}
_TOKEN_MODIFIER_BIT = {m: 1 << n for n, m in enumerate(TokenModifier)}

_COMPLETION_KINDS = {
    chapbook_completions.CompletionItemKind.FUNCTION: CompletionItemKind.Function,
    chapbook_completions.CompletionItemKind.PROPERTY: CompletionItemKind.Property,
    chapbook_completions.CompletionItemKind.VARIABLE: CompletionItemKind.Variable,
    chapbook_completions.CompletionItemKind.CLASS: CompletionItemKind.Class,
}


class ChapbookLanguageServer(LanguageServer):
    """Language server holding the project index and the latest parse of each story."""

    def __init__(self) -> None:
        super().__init__("chapbook-analyzer", f"v{get_version()}")
        self.workspace_root: Path | None = None
        self.options = AnalyzerOptions()
        self.index = InMemoryIndex()
        self.stories: dict[str, StoryParse] = {}


# Create server instance
server = ChapbookLanguageServer()


# =============================================================================
# Conversions
# =============================================================================


def _to_lsp_range(range_: Range) -> LspRange:
    return LspRange(
        start=LspPosition(line=range_.start.line, character=range_.start.character),
        end=LspPosition(line=range_.end.line, character=range_.end.character),
    )


def _to_lsp_location(location: Location) -> LspLocation:
    return LspLocation(uri=location.uri, range=_to_lsp_range(location.range))


def _from_lsp_position(position: LspPosition) -> Position:
    return Position(position.line, position.character)


def _to_lsp_diagnostic(diagnostic: Diagnostic) -> LspDiagnostic:
    return LspDiagnostic(
        range=_to_lsp_range(diagnostic.range),
        message=diagnostic.message,
        severity=LspSeverity(int(diagnostic.severity)),
        source=diagnostic.source,
        code=diagnostic.code,
    )


def encode_tokens(tokens: list[Token]) -> list[int]:
    """Encode tokens, already in document order, as LSP relative semantic token data."""
    data: list[int] = []
    previous_line = 0
    previous_char = 0
    for token in tokens:
        delta_line = token.line - previous_line
        delta_char = token.char - previous_char if delta_line == 0 else token.char
        modifiers = 0
        for modifier in token.token_modifiers:
            modifiers |= _TOKEN_MODIFIER_BIT[modifier]
        data.extend([delta_line, delta_char, token.length, _TOKEN_TYPE_INDEX[token.token_type], modifiers])
        previous_line = token.line
        previous_char = token.char
    return data


def _uri_to_path(uri: str) -> Path:
    return Path(unquote(urlparse(uri).path))


# =============================================================================
# Analysis
# =============================================================================


def _text_document(ls: ChapbookLanguageServer, uri: str) -> TextDocument:
    document = ls.workspace.get_text_document(uri)
    return TextDocument(uri, document.source, document.version or 0)


def _analyze(ls: ChapbookLanguageServer, document: TextDocument) -> StoryParse | None:
    try:
        story = index_story(document, ls.index, ls.options.pinned_story_format())
    except ChapbookError as e:
        logger.error(f"Error analyzing {document.uri}: {e}")
        return None
    ls.stories[document.uri] = story
    return story


def _publish_diagnostics(ls: ChapbookLanguageServer, uri: str) -> None:
    story = ls.stories.get(uri)
    if story is None:
        return
    document = _text_document(ls, uri)
    format_version = story.story_format.format_version if story.story_format is not None else None
    diagnostics = story.result.diagnostics + generate_diagnostics(
        document, ls.index, ls.options.diagnostics, format_version
    )
    ls.text_document_publish_diagnostics(
        PublishDiagnosticsParams(
            uri=uri,
            version=document.version,
            diagnostics=[_to_lsp_diagnostic(d) for d in diagnostics],
        )
    )


def _refresh(ls: ChapbookLanguageServer, uri: str) -> None:
    """Re-analyze a document, then republish diagnostics for every open document."""
    if _analyze(ls, _text_document(ls, uri)) is None:
        return
    # Definitions and variable settings in one story affect all the others
    for open_uri in list(ls.stories):
        if open_uri in ls.workspace.text_documents:
            _publish_diagnostics(ls, open_uri)


def _index_workspace(ls: ChapbookLanguageServer) -> None:
    if ls.workspace_root is None:
        return
    count = 0
    for path in sorted(ls.workspace_root.rglob("*")):
        if path.suffix not in TWEE_SUFFIXES or not path.is_file():
            continue
        try:
            document = TextDocument(path.as_uri(), path.read_text(encoding="utf-8"))
            index_story(document, ls.index, ls.options.pinned_story_format(), ParseLevel.FULL)
            count += 1
        except (OSError, UnicodeDecodeError) as e:
            logger.error(f"Error indexing {path}: {e}")
    logger.info(f"Indexed {count} story files in {ls.workspace_root}")


# =============================================================================
# Lifecycle and configuration
# =============================================================================


@server.feature(INITIALIZE)
def initialize(ls: ChapbookLanguageServer, params: InitializeParams) -> None:
    """Initialize the language server."""
    if params.root_uri:
        ls.workspace_root = _uri_to_path(params.root_uri)
        logger.info(f"Workspace root: {ls.workspace_root}")

    config_path = ls.workspace_root / CONFIG_FILENAME if ls.workspace_root is not None else None
    try:
        options = load_options(config_path)
        ls.options = apply_client_settings(options, params.initialization_options)
    except ChapbookError as e:
        logger.error(f"Failed to load configuration: {e}")

    logging.getLogger().setLevel(ls.options.log_level)
    _index_workspace(ls)


@server.feature(WORKSPACE_DID_CHANGE_CONFIGURATION)
def did_change_configuration(ls: ChapbookLanguageServer, params: DidChangeConfigurationParams) -> None:
    settings: Any = params.settings
    if isinstance(settings, dict):
        settings = settings.get("chapbook", settings)
    try:
        ls.options = apply_client_settings(ls.options, settings)
    except ChapbookError as e:
        logger.error(f"Ignoring invalid settings: {e}")
        return
    logger.info("Configuration changed")
    for uri in list(ls.stories):
        if uri in ls.workspace.text_documents:
            _refresh(ls, uri)


@server.feature(TEXT_DOCUMENT_DID_OPEN)
def did_open(ls: ChapbookLanguageServer, params: DidOpenTextDocumentParams) -> None:
    """Handle document open."""
    logger.info(f"Opened: {params.text_document.uri}")
    _refresh(ls, params.text_document.uri)


@server.feature(TEXT_DOCUMENT_DID_CHANGE)
def did_change(ls: ChapbookLanguageServer, params: DidChangeTextDocumentParams) -> None:
    """Handle document change."""
    _refresh(ls, params.text_document.uri)


@server.feature(TEXT_DOCUMENT_DID_SAVE)
def did_save(ls: ChapbookLanguageServer, params: DidSaveTextDocumentParams) -> None:
    """Handle document save."""
    logger.info(f"Saved: {params.text_document.uri}")


@server.feature(TEXT_DOCUMENT_DID_CLOSE)
def did_close(ls: ChapbookLanguageServer, params: DidCloseTextDocumentParams) -> None:
    """Handle document close."""
    uri = params.text_document.uri
    logger.info(f"Closed: {uri}")
    ls.stories.pop(uri, None)
    # Files on disk stay indexed; unsaved buffers don't
    if not _uri_to_path(uri).exists():
        ls.index.remove_document(uri)


# =============================================================================
# Queries
# =============================================================================


@server.feature(TEXT_DOCUMENT_SEMANTIC_TOKENS_FULL, LEGEND)
def semantic_tokens(ls: ChapbookLanguageServer, params: SemanticTokensParams) -> SemanticTokens:
    story = ls.stories.get(params.text_document.uri)
    if story is None:
        story = _analyze(ls, _text_document(ls, params.text_document.uri))
    if story is None:
        return SemanticTokens(data=[])
    return SemanticTokens(data=encode_tokens(story.result.tokens))


@server.feature(TEXT_DOCUMENT_COMPLETION, CompletionOptions(trigger_characters=["[", "{", ";", ",", ":", "."]))
def completion(ls: ChapbookLanguageServer, params: CompletionParams) -> CompletionList | None:
    """Provide completion suggestions."""
    uri = params.text_document.uri
    story = ls.stories.get(uri)
    deferred = [d for d in story.result.embedded_documents if d.defer_to_story_format] if story is not None else []

    result = chapbook_completions.generate_completions(
        _text_document(ls, uri), _from_lsp_position(params.position), ls.index, deferred
    )
    if result is None:
        return None

    items: list[CompletionItem] = []
    for item in result.items:
        edit_range = item.edit_range or result.edit_range
        items.append(
            CompletionItem(
                label=item.label,
                kind=_COMPLETION_KINDS[item.kind],
                insert_text_format=InsertTextFormat.Snippet if result.snippet else InsertTextFormat.PlainText,
                text_edit=TextEdit(range=_to_lsp_range(edit_range), new_text=item.text) if edit_range else None,
                insert_text=item.text if edit_range is None else None,
            )
        )
    return CompletionList(is_incomplete=False, items=items)


@server.feature(TEXT_DOCUMENT_HOVER)
def hover(ls: ChapbookLanguageServer, params: HoverParams) -> Hover | None:
    """Provide hover information."""
    uri = params.text_document.uri
    result = generate_hover(_text_document(ls, uri), _from_lsp_position(params.position), ls.index)
    if result is None:
        return None
    return Hover(contents=MarkupContent(kind=MarkupKind.Markdown, value=result.contents))


@server.feature(TEXT_DOCUMENT_DEFINITION)
def definition(ls: ChapbookLanguageServer, params: DefinitionParams) -> LspLocation | None:
    """Provide go-to-definition."""
    uri = params.text_document.uri
    location = get_definition_at(_text_document(ls, uri), _from_lsp_position(params.position), ls.index)
    return _to_lsp_location(location) if location is not None else None


@server.feature(TEXT_DOCUMENT_REFERENCES)
def references(ls: ChapbookLanguageServer, params: ReferenceParams) -> list[LspLocation] | None:
    uri = params.text_document.uri
    position = _from_lsp_position(params.position)
    locations = get_references_to_symbol_at(_text_document(ls, uri), position, ls.index)
    if locations is None:
        return None

    # The symbol's own kind is listed alongside its counterpart's
    ref = ls.index.get_references_at(uri, position)
    own = []
    if ref is not None:
        for indexed_uri in ls.index.get_indexed_uris():
            for other in ls.index.get_references(indexed_uri, ref.kind):
                if other.contents == ref.contents:
                    own.extend(other.locations)
    return [_to_lsp_location(loc) for loc in own + locations]


@server.feature(TEXT_DOCUMENT_FOLDING_RANGE)
def folding_range(ls: ChapbookLanguageServer, params: FoldingRangeParams) -> list[FoldingRange]:
    story = ls.stories.get(params.text_document.uri)
    if story is None:
        return []
    ranges = [FoldingRange(start_line=p.scope.start.line, end_line=p.scope.end.line) for p in story.passages]
    ranges.extend(
        FoldingRange(start_line=r.start.line, end_line=r.end.line) for r in story.result.folding_ranges
    )
    return [r for r in ranges if r.end_line > r.start_line]


def start_server(tcp: bool = False, host: str = "127.0.0.1", port: int = 2087, log_level: str | None = None) -> None:
    """Start the Chapbook LSP server."""
    logging.basicConfig(level=log_level or load_options().log_level)
    logger.info("Starting Chapbook Language Server...")
    if tcp:
        server.start_tcp(host, port)
    else:
        server.start_io()


if __name__ == "__main__":
    start_server()
