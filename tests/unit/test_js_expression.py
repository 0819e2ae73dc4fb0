"""Tests for the JavaScript expression tokenizer and classifier."""

import pytest

from chapbook_analyzer.core.errors import ExtensionSyntaxError
from chapbook_analyzer.core.js_expression import (
    PropertyLabel,
    TokenKind,
    VariableLabel,
    scan_expression,
    string_value,
    tokenize,
)
from chapbook_analyzer.core.types import PreToken, TokenType


class TestTokenize:
    def test_kinds(self) -> None:
        kinds = [t.kind for t in tokenize("a + 'b'")]

        assert kinds == [TokenKind.IDENT, TokenKind.PUNCT, TokenKind.STRING, TokenKind.EOF]

    def test_division_is_not_a_regex(self) -> None:
        assert all(t.kind != TokenKind.REGEX for t in tokenize("a / b / c"))

    def test_regex_after_operator(self) -> None:
        regexes = [t.value for t in tokenize("x = /ab+c/i") if t.kind == TokenKind.REGEX]

        assert regexes == ["/ab+c/i"]

    def test_comments_are_dropped(self) -> None:
        values = [t.value for t in tokenize("a // note\n/* more */ b")]

        assert values == ["a", "b", ""]

    def test_lenient_unterminated_string(self) -> None:
        tokens = tokenize("'abc")

        assert tokens[0].kind == TokenKind.STRING
        assert tokens[0].value == "'abc"

    @pytest.mark.parametrize("source", ["'abc", "`abc", "a /* b", "a # b"])
    def test_strict_errors(self, source: str) -> None:
        with pytest.raises(ExtensionSyntaxError):
            tokenize(source, strict=True)

    def test_non_ascii_digits_are_not_numbers(self) -> None:
        assert all(t.kind != TokenKind.NUMBER for t in tokenize("²"))


class TestScanExpression:
    def test_variables_operators_and_numbers(self) -> None:
        scan = scan_expression("score + 1", 10)

        assert scan.variables == [VariableLabel("score", 10)]
        assert scan.tokens == [
            PreToken("score", 10, TokenType.VARIABLE),
            PreToken("+", 16, TokenType.OPERATOR),
            PreToken("1", 18, TokenType.NUMBER),
        ]

    def test_property_chain(self) -> None:
        scan = scan_expression("player.health.max")

        assert scan.variables == [VariableLabel("player", 0)]
        assert scan.properties == [
            PropertyLabel("health", 7, "player"),
            PropertyLabel("max", 14, "player.health"),
        ]
        assert [p.contents for p in scan.properties] == ["player.health", "player.health.max"]

    def test_builtin_globals_are_not_variables(self) -> None:
        scan = scan_expression("Math.floor(x) + Math.PI")

        assert [v.contents for v in scan.variables] == ["x"]
        assert scan.properties == []
        assert PreToken("floor", 5, TokenType.FUNCTION) in scan.tokens

    def test_method_calls_are_functions(self) -> None:
        scan = scan_expression("items.includes('a')")

        assert [v.contents for v in scan.variables] == ["items"]
        assert scan.properties == []

    def test_instantiated_classes(self) -> None:
        assert scan_expression("new Date()").variables == []

    def test_object_literal_keys(self) -> None:
        scan = scan_expression("{a: b}")

        assert PreToken("a", 1, TokenType.PROPERTY) in scan.tokens
        assert [v.contents for v in scan.variables] == ["b"]

    def test_keywords_and_unary_operators(self) -> None:
        scan = scan_expression("true && !done")

        assert [t.token_type for t in scan.tokens] == [
            TokenType.KEYWORD,
            TokenType.OPERATOR,
            TokenType.OPERATOR,
            TokenType.VARIABLE,
        ]

    def test_template_substitutions(self) -> None:
        scan = scan_expression("`Hi ${name}!`")

        assert scan.variables == [VariableLabel("name", 6)]

    def test_undefined_is_not_a_variable(self) -> None:
        assert scan_expression("undefined").variables == []


class TestStringValue:
    def test_escapes(self) -> None:
        assert string_value("'a\\nb'") == "a\nb"
        assert string_value('"\\u0041"') == "A"
        assert string_value("'it\\'s'") == "it's"
