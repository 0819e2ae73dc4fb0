"""Tests for JavaScript regex literal translation."""

import pytest

from chapbook_analyzer.core.errors import RegexTranslationError
from chapbook_analyzer.core.regex import FLAGS_MESSAGE, compile_js_regex, translate_pattern


class TestFlags:
    def test_ignore_case(self) -> None:
        assert compile_js_regex(r"custom\s+insert", "i").search("Custom   Insert")

    def test_matching_only_flags_are_accepted(self) -> None:
        assert compile_js_regex("abc", "gy").search("xabc")

    @pytest.mark.parametrize("flags", ["q", "gg"])
    def test_invalid_flags(self, flags: str) -> None:
        with pytest.raises(RegexTranslationError) as exc_info:
            compile_js_regex("abc", flags)
        assert exc_info.value.message == FLAGS_MESSAGE


class TestTranslation:
    def test_named_groups_and_backreferences(self) -> None:
        assert compile_js_regex(r"(?<word>\w+) \k<word>").search("hi hi")

    def test_any_character_class(self) -> None:
        assert compile_js_regex("a[^]b").search("a\nb")

    def test_empty_class_never_matches(self) -> None:
        assert translate_pattern("[]") == "(?!)"

    def test_dollar_is_end_of_input(self) -> None:
        assert compile_js_regex("end$").search("end\n") is None
        assert compile_js_regex("end$", "m").search("end\nmore")

    def test_code_point_escape(self) -> None:
        assert compile_js_regex(r"\u{1F600}").search("😀")

    def test_unknown_letter_escape_is_literal(self) -> None:
        assert compile_js_regex(r"\q").search("q")

    def test_escaped_slash(self) -> None:
        assert compile_js_regex(r"a\/b").search("a/b")

    @pytest.mark.parametrize("source", ["(", "[abc", r"\p{L}"])
    def test_invalid_patterns(self, source: str) -> None:
        with pytest.raises(RegexTranslationError, match="Invalid regular expression"):
            compile_js_regex(source)


class TestCharacterClasses:
    def test_digit_and_word_are_ascii(self) -> None:
        assert compile_js_regex(r"^\d+$").search("٣٤") is None
        assert compile_js_regex(r"^\w+$").search("café") is None
        assert compile_js_regex(r"^\w+$").search("cafe_1")

    def test_word_boundary_is_ascii(self) -> None:
        assert compile_js_regex(r"\bé").search("é") is None
        assert compile_js_regex(r"\bx").search("éx")

    def test_whitespace_includes_unicode_spaces(self) -> None:
        assert compile_js_regex(r"a\sb").search("a\u00a0b")
        assert compile_js_regex(r"a[\s]b").search("a\u3000b")
        assert compile_js_regex(r"a\Sb").search("a\u00a0b") is None
