"""Tests for the passage entry point."""

from chapbook_analyzer.core.parser import PassageParts, divide_passage, parse_passage_text, passage_document_name
from chapbook_analyzer.core.positions import Range, TextDocument
from chapbook_analyzer.core.types import SymbolKind


class TestDividePassage:
    def test_vars_section(self) -> None:
        assert divide_passage("a: 1\n--\nText") == PassageParts(content="Text", content_index=8, vars="a: 1\n")

    def test_windows_line_endings(self) -> None:
        parts = divide_passage("a: 1\r\n--\r\nText")

        assert parts.content == "Text"
        assert parts.vars == "a: 1\r\n"

    def test_divider_at_end(self) -> None:
        assert divide_passage("a: 1\n--").vars == "a: 1\n"

    def test_no_divider(self) -> None:
        assert divide_passage("Just text") == PassageParts(content="Just text")

    def test_dashes_mid_line(self) -> None:
        assert divide_passage("a -- b\n---\n").vars is None


class TestParsePassageText:
    def test_passage_html_document(self, parse) -> None:
        result = parse("a: 1\n--\nHello", passage_name="My Passage")

        html = [d for d in result.embedded_documents if d.is_passage]
        assert len(html) == 1
        assert html[0].name == "My-Passage"
        assert html[0].language_id == "html"
        assert html[0].text == "Hello"
        assert html[0].range == Range.create(2, 0, 2, 5)

    def test_passage_document_name(self) -> None:
        assert passage_document_name("A B C") == "A-B-C"
        assert passage_document_name(None) == "placeholder"

    def test_offsets_inside_a_larger_document(self) -> None:
        text = ":: Start\nscore: 1\n--\n{score}"
        document = TextDocument("story", text)

        result = parse_passage_text(document, text[9:], 9)

        refs = {(r.contents, r.kind): r.locations[0].range for r in result.references}
        assert refs[("score", SymbolKind.VARIABLE_SET)] == Range.create(1, 0, 1, 5)
        assert refs[("score", SymbolKind.VARIABLE)] == Range.create(3, 1, 3, 6)

    def test_tokens_are_in_document_order(self, parse) -> None:
        result = parse("b: x\n--\n[if y]\n{z} [[P]]")

        positions = [(t.line, t.char) for t in result.tokens]
        assert positions == sorted(positions)
        assert (0, 0) in positions
        assert (3, 6) in positions
