"""Tests for offset/position mapping."""

from chapbook_analyzer.core.positions import Location, Position, Range, TextDocument, utf16_len


class TestUtf16Length:
    def test_ascii(self) -> None:
        assert utf16_len("abc") == 3

    def test_astral_characters_take_two_units(self) -> None:
        assert utf16_len("😀a") == 3


class TestPositionAt:
    def test_line_breaks(self) -> None:
        doc = TextDocument("uri", "ab\ncd\r\nef\rgh")

        assert doc.position_at(0) == Position(0, 0)
        assert doc.position_at(4) == Position(1, 1)
        assert doc.position_at(8) == Position(2, 1)
        assert doc.position_at(11) == Position(3, 1)
        assert doc.line_count == 4

    def test_clamps_to_document(self) -> None:
        doc = TextDocument("uri", "ab\ncd")

        assert doc.position_at(-5) == Position(0, 0)
        assert doc.position_at(100) == Position(1, 2)

    def test_characters_are_utf16_units(self) -> None:
        doc = TextDocument("uri", "a😀b")

        assert doc.position_at(2) == Position(0, 3)
        assert doc.position_at(3) == Position(0, 4)


class TestOffsetAt:
    def test_round_trips_positions(self) -> None:
        doc = TextDocument("uri", "ab\ncd\r\nef")

        assert doc.offset_at(Position(1, 1)) == 4
        assert doc.offset_at(Position(2, 0)) == 7

    def test_clamps_past_line_end(self) -> None:
        doc = TextDocument("uri", "ab\r\ncd")

        assert doc.offset_at(Position(0, 99)) == 2

    def test_clamps_past_last_line(self) -> None:
        doc = TextDocument("uri", "ab\ncd")

        assert doc.offset_at(Position(99, 0)) == 5

    def test_inside_surrogate_pair_maps_to_code_point_start(self) -> None:
        doc = TextDocument("uri", "a😀b")

        assert doc.offset_at(Position(0, 2)) == 1
        assert doc.offset_at(Position(0, 3)) == 2


class TestRanges:
    def test_range_for(self) -> None:
        doc = TextDocument("uri", "ab\ncd")

        assert doc.range_for(3, "cd") == Range.create(1, 0, 1, 2)
        assert doc.location_for(3, "cd") == Location("uri", Range.create(1, 0, 1, 2))

    def test_get_text(self) -> None:
        doc = TextDocument("uri", "ab\ncd")

        assert doc.get_text() == "ab\ncd"
        assert doc.get_text(Range.create(1, 0, 1, 2)) == "cd"

    def test_line_text_excludes_terminator(self) -> None:
        doc = TextDocument("uri", "ab\r\ncd")

        assert doc.line_text(0) == "ab"
        assert doc.line_text(1) == "cd"
        assert doc.line_text(5) == ""

    def test_contains_is_end_inclusive(self) -> None:
        r = Range.create(1, 2, 1, 5)

        assert r.contains(Position(1, 2))
        assert r.contains(Position(1, 5))
        assert not r.contains(Position(1, 6))
        assert not r.contains(Position(0, 3))
