"""
Symbol emitter: the sink every parser writes into.

Semantic tokens are captured keyed by document offset so later captures
override earlier ones at the same spot (a passage reference replacing the
string token it sits inside, say). They are only turned into line-relative
tokens, in document order, when the result is built.
"""

from __future__ import annotations

import logging
import re

from .js_expression import ExpressionScan
from .positions import Range, TextDocument, utf16_len
from .types import (
    DecorationRange,
    DecorationType,
    Definition,
    Diagnostic,
    DiagnosticSeverity,
    EmbeddedDocument,
    ParseResult,
    PreToken,
    Reference,
    SymbolKind,
    Token,
    TokenModifier,
    TokenType,
)

logger = logging.getLogger(__name__)

_LINE_BREAK = re.compile(r"\r\n|\r|\n")


def diagnostic_for(
    document: TextDocument,
    severity: DiagnosticSeverity,
    text: str,
    at: int,
    message: str,
) -> Diagnostic:
    """Create a diagnostic covering ``text`` placed at offset ``at``."""
    return Diagnostic(range=document.range_for(at, text), message=message, severity=severity)


class SymbolEmitter:
    """
    Collects everything one parse call produces.

    ``format_version`` is the active story format version, when known; parsers
    check catalog version windows against it.
    """

    def __init__(self, document: TextDocument, format_version: str | None = None) -> None:
        self.document = document
        self.format_version = format_version
        self._pre_tokens: dict[int, PreToken] = {}
        self._result = ParseResult()

    # -- semantic tokens ---------------------------------------------------

    def capture_token(
        self,
        text: str,
        at: int,
        token_type: TokenType,
        modifiers: tuple[TokenModifier, ...] = (),
    ) -> None:
        self._pre_tokens[at] = PreToken(text, at, token_type, modifiers)

    def drop_token(self, at: int) -> None:
        self._pre_tokens.pop(at, None)

    def token_at(self, at: int) -> PreToken | None:
        return self._pre_tokens.get(at)

    # -- references and definitions ------------------------------------------

    def reference(self, contents: str, at: int, kind: SymbolKind, text: str | None = None) -> None:
        """Record a reference whose location covers ``text`` (default: ``contents``) at ``at``."""
        location = self.document.location_for(at, contents if text is None else text)
        self._result.references.append(Reference(contents=contents, locations=[location], kind=kind))

    def passage_reference(self, name: str, at: int) -> None:
        self.capture_token(name, at, TokenType.CLASS)
        self.reference(name, at, SymbolKind.PASSAGE)

    def capture_expression(
        self,
        scan: ExpressionScan,
        variable_kind: SymbolKind = SymbolKind.VARIABLE,
        property_kind: SymbolKind = SymbolKind.PROPERTY,
    ) -> None:
        """Record the tokens and references a scanned expression produced."""
        for token in scan.tokens:
            self._pre_tokens[token.at] = token
        for var in scan.variables:
            self.reference(var.contents, var.at, variable_kind)
        for prop in scan.properties:
            self.reference(prop.contents, prop.at, property_kind, text=prop.name)

    def definition(self, definition: Definition) -> None:
        logger.debug("Registered %s %r", definition.kind, definition.name)
        self._result.definitions.append(definition)

    # -- diagnostics ---------------------------------------------------------

    def diagnostic(self, diagnostic: Diagnostic) -> None:
        self._result.diagnostics.append(diagnostic)

    def error_for(self, text: str, at: int, message: str) -> None:
        self.diagnostic(diagnostic_for(self.document, DiagnosticSeverity.ERROR, text, at, message))

    def warning_for(self, text: str, at: int, message: str) -> None:
        self.diagnostic(diagnostic_for(self.document, DiagnosticSeverity.WARNING, text, at, message))

    def error_between(self, start: int, end: int, message: str) -> None:
        self.diagnostic(
            Diagnostic(
                range=self.document.range_between(start, end),
                message=message,
                severity=DiagnosticSeverity.ERROR,
            )
        )

    # -- structure -----------------------------------------------------------

    def embedded_document(
        self,
        name: str,
        language_id: str,
        text: str,
        at: int,
        is_passage: bool = False,
        defer_to_story_format: bool = False,
    ) -> None:
        self._result.embedded_documents.append(
            EmbeddedDocument(
                name=name,
                language_id=language_id,
                text=text,
                offset=at,
                range=self.document.range_for(at, text),
                is_passage=is_passage,
                defer_to_story_format=defer_to_story_format,
            )
        )

    def folding_range(self, range_: Range) -> None:
        self._result.folding_ranges.append(range_)

    def decoration(self, type_: DecorationType, range_: Range) -> None:
        self._result.decoration_ranges.append(DecorationRange(type_, range_))

    # -- output --------------------------------------------------------------

    def _split_token(self, pre: PreToken) -> list[Token]:
        """Tokens can only span one line, so split multi-line captures."""
        position = self.document.position_at(pre.at)
        line, char = position.line, position.character
        tokens: list[Token] = []
        for piece in _LINE_BREAK.split(pre.text):
            if piece:
                tokens.append(Token(line, char, utf16_len(piece), pre.token_type, pre.token_modifiers))
            line += 1
            char = 0
        return tokens

    def result(self) -> ParseResult:
        """Finish the parse, emitting semantic tokens in document order."""
        for at in sorted(self._pre_tokens):
            self._result.tokens.extend(self._split_token(self._pre_tokens[at]))
        self._pre_tokens.clear()
        logger.debug(
            "Parsed %s: %d tokens, %d references, %d diagnostics",
            self.document.uri,
            len(self._result.tokens),
            len(self._result.references),
            len(self._result.diagnostics),
        )
        return self._result
