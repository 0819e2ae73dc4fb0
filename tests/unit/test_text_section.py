"""Tests for modifier blocks and the text they control."""

from chapbook_analyzer.core.positions import Position, Range
from chapbook_analyzer.core.types import (
    DecorationRange,
    DecorationType,
    Diagnostic,
    DiagnosticSeverity,
    SymbolKind,
    Token,
    TokenType,
)


def _refs(result, kind: SymbolKind) -> list[tuple[str, Range]]:
    return [(r.contents, r.locations[0].range) for r in result.references if r.kind == kind]


class TestModifiers:
    def test_builtin_modifier(self, parse) -> None:
        result = parse("[after 1 second]\nLater text")

        assert _refs(result, SymbolKind.BUILT_IN_MODIFIER) == [("after 1 second", Range.create(0, 1, 0, 15))]
        assert result.tokens == [
            Token(0, 1, 5, TokenType.FUNCTION),
            Token(0, 7, 1, TokenType.PARAMETER),
            Token(0, 9, 6, TokenType.PARAMETER),
        ]

    def test_custom_modifier(self, parse) -> None:
        result = parse("[custom thing]\ntext")

        assert _refs(result, SymbolKind.CUSTOM_MODIFIER) == [("custom thing", Range.create(0, 1, 0, 13))]

    def test_quoted_parameter_is_one_token(self, parse) -> None:
        result = parse('[mod "a b"]\ntext')

        assert result.tokens == [Token(0, 1, 3, TokenType.FUNCTION), Token(0, 5, 5, TokenType.PARAMETER)]

    def test_several_modifiers(self, parse) -> None:
        result = parse("[if x; append]\ntext")

        assert _refs(result, SymbolKind.VARIABLE) == [("x", Range.create(0, 4, 0, 5))]
        assert [c for c, _ in _refs(result, SymbolKind.BUILT_IN_MODIFIER)] == ["if x", "append"]
        assert _refs(result, SymbolKind.BUILT_IN_MODIFIER)[1][1] == Range.create(0, 7, 0, 13)

    def test_spaces_before(self, parse) -> None:
        result = parse(" [after 1s]\ntext")

        assert result.diagnostics == [
            Diagnostic(Range.create(0, 0, 0, 1), "Modifiers can't have spaces before them", DiagnosticSeverity.ERROR)
        ]

    def test_spaces_after(self, parse) -> None:
        result = parse("[after 1s]  \ntext")

        assert result.diagnostics == [
            Diagnostic(Range.create(0, 10, 0, 12), "Modifiers can't have spaces after them", DiagnosticSeverity.ERROR)
        ]

    def test_brackets_mid_line_are_text(self, parse) -> None:
        result = parse("Some [bracketed] text")

        assert _refs(result, SymbolKind.BUILT_IN_MODIFIER) == []
        assert _refs(result, SymbolKind.CUSTOM_MODIFIER) == []


class TestBlocks:
    def test_note_contents_are_comments(self, parse) -> None:
        result = parse("[note]\nsecret {insert}\n")

        assert Token(1, 0, 15, TokenType.COMMENT) in result.tokens
        assert Token(0, 1, 4, TokenType.COMMENT) in result.tokens
        assert _refs(result, SymbolKind.VARIABLE) == []
        assert result.decoration_ranges == []

    def test_css_block(self, parse) -> None:
        result = parse("[CSS]\nbody { color: red; }")

        css = [d for d in result.embedded_documents if d.language_id == "css"]
        assert len(css) == 1
        assert css[0].text == "body { color: red; }"
        assert css[0].range == Range.create(1, 0, 1, 20)
        assert _refs(result, SymbolKind.CUSTOM_INSERT) == []

    def test_javascript_block_is_deferred(self, parse) -> None:
        result = parse("[JavaScript]\nwrite('{not an insert}')")

        scripts = [d for d in result.embedded_documents if d.language_id == "javascript"]
        assert len(scripts) == 1
        assert scripts[0].defer_to_story_format
        assert _refs(result, SymbolKind.CUSTOM_INSERT) == []

    def test_folding_and_decoration(self, parse) -> None:
        result = parse("[after 1 second]\nLater text")

        assert result.folding_ranges == [Range.create(0, 0, 1, 10)]
        assert result.decoration_ranges == [
            DecorationRange(DecorationType.CHAPBOOK_MODIFIER_CONTENT, Range(Position(1, 0), Position(1, 9999)))
        ]

    def test_continue_ends_the_block(self, parse) -> None:
        result = parse("[after 1s]\na\n[continue]\nb")

        assert result.folding_ranges == [Range.create(0, 0, 1, 1)]


class TestLinks:
    def test_simple_link(self, parse) -> None:
        result = parse("Go [[Somewhere]] now")

        assert _refs(result, SymbolKind.PASSAGE) == [("Somewhere", Range.create(0, 5, 0, 14))]
        assert Token(0, 5, 9, TokenType.CLASS) in result.tokens

    def test_arrow_link(self, parse) -> None:
        result = parse("[[Display->Target]]")

        assert _refs(result, SymbolKind.PASSAGE) == [("Target", Range.create(0, 11, 0, 17))]
        assert Token(0, 2, 7, TokenType.STRING) in result.tokens
        assert Token(0, 9, 2, TokenType.KEYWORD) in result.tokens

    def test_reverse_arrow_link(self, parse) -> None:
        result = parse("[[Target<-Display]]")

        assert _refs(result, SymbolKind.PASSAGE) == [("Target", Range.create(0, 2, 0, 8))]

    def test_pipe_link(self, parse) -> None:
        result = parse("[[Show|Dest]]")

        assert _refs(result, SymbolKind.PASSAGE) == [("Dest", Range.create(0, 7, 0, 11))]

    def test_braces_in_links_are_not_inserts(self, parse) -> None:
        result = parse("[[{x}]]")

        assert _refs(result, SymbolKind.PASSAGE) == [("{x}", Range.create(0, 2, 0, 5))]
        assert _refs(result, SymbolKind.VARIABLE) == []


class TestStyleTags:
    def test_contents_are_css(self, parse) -> None:
        result = parse("<style>p { color: red }</style>")

        css = [d for d in result.embedded_documents if d.language_id == "css"]
        assert [d.text for d in css] == ["p { color: red }"]
        assert _refs(result, SymbolKind.CUSTOM_INSERT) == []

    def test_unclosed_tag_runs_to_end(self, parse) -> None:
        result = parse("<style type='text/css'>a {b}")

        css = [d for d in result.embedded_documents if d.language_id == "css"]
        assert [d.text for d in css] == ["a {b}"]
        assert _refs(result, SymbolKind.VARIABLE) == []
