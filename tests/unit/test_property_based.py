"""
Property-based tests using Hypothesis.

These tests verify invariants across a wide range of inputs,
replacing the need for exhaustive example-based tests.
"""

from hypothesis import given, settings
from hypothesis import strategies as st

from chapbook_analyzer.core.parser import parse_passage_text
from chapbook_analyzer.core.positions import TextDocument
from chapbook_analyzer.core.scanner import find_inserts, split_modifiers
from chapbook_analyzer.core.types import StoryFormat
from chapbook_analyzer.core.versions import compare_versions

# Lone surrogates and lone carriage returns don't survive a position round trip
DOCUMENT_TEXT = st.lists(
    st.one_of(
        st.text(alphabet=st.characters(exclude_categories=("Cs",), exclude_characters="\r"), max_size=20),
        st.just("\r\n"),
    ),
    max_size=20,
).map("".join)
PASSAGE_TEXT = st.text(alphabet=st.sampled_from("abc {}[]:;,'\"\n-.()|>"), max_size=120)
VERSIONS = st.lists(st.integers(min_value=0, max_value=30), min_size=1, max_size=4).map(
    lambda parts: ".".join(str(p) for p in parts)
)


# =============================================================================
# Position Mapping Properties
# =============================================================================


class TestPositionProperties:
    @given(DOCUMENT_TEXT, st.data())
    @settings(max_examples=200)
    def test_offset_round_trip(self, text: str, data: st.DataObject) -> None:
        """Invariant: offset_at(position_at(n)) == n for every offset outside a \\r\\n pair."""
        document = TextDocument("fake-uri", text)
        offset = data.draw(
            st.integers(min_value=0, max_value=len(text)).filter(lambda n: n == 0 or text[n - 1] != "\r")
        )

        assert document.offset_at(document.position_at(offset)) == offset

    @given(DOCUMENT_TEXT, st.data())
    @settings(max_examples=100)
    def test_positions_are_monotonic(self, text: str, data: st.DataObject) -> None:
        """Invariant: a later offset never maps to an earlier position."""
        document = TextDocument("fake-uri", text)
        a = data.draw(st.integers(min_value=0, max_value=len(text)))
        b = data.draw(st.integers(min_value=a, max_value=len(text)))

        assert document.position_at(a) <= document.position_at(b)


# =============================================================================
# Scanner Properties
# =============================================================================


class TestScannerProperties:
    @given(PASSAGE_TEXT)
    @settings(max_examples=200)
    def test_inserts_are_brace_delimited_slices(self, text: str) -> None:
        for segment in find_inserts(text):
            assert segment.text.startswith("{")
            assert segment.text.endswith("}")
            assert text[segment.at : segment.end] == segment.text

    @given(PASSAGE_TEXT)
    @settings(max_examples=200)
    def test_modifier_segments_are_slices(self, raw: str) -> None:
        for segment in split_modifiers(raw):
            assert raw[segment.at : segment.end] == segment.text


# =============================================================================
# Parser Properties
# =============================================================================


class TestParserProperties:
    @given(PASSAGE_TEXT)
    @settings(max_examples=200)
    def test_parse_is_deterministic_and_ordered(self, text: str) -> None:
        """Invariant: parsing never crashes, repeats exactly, and emits tokens in document order."""
        document = TextDocument("fake-uri", text)
        story_format = StoryFormat("Chapbook", "2.0.0")

        first = parse_passage_text(document, text, 0, story_format, "Passage")
        second = parse_passage_text(document, text, 0, story_format, "Passage")

        assert first.tokens == second.tokens
        assert first.diagnostics == second.diagnostics
        positions = [(t.line, t.char) for t in first.tokens]
        assert positions == sorted(positions)


# =============================================================================
# Version Properties
# =============================================================================


class TestVersionProperties:
    @given(VERSIONS, VERSIONS)
    @settings(max_examples=100)
    def test_comparison_is_antisymmetric(self, a: str, b: str) -> None:
        assert compare_versions(a, b) == -compare_versions(b, a)

    @given(VERSIONS)
    def test_comparison_is_reflexive(self, a: str) -> None:
        assert compare_versions(a, a) == 0
