"""
Offset and position bookkeeping for analyzed documents.

Offsets are Python string indices (code points). Positions are zero-based
(line, character) pairs where ``character`` counts UTF-16 code units, which is
what editors speaking the Language Server Protocol expect. Lines end at
``\\n``, ``\\r\\n`` or a lone ``\\r``.

Every conversion between the two lives here so the parsers never have to
think about surrogate pairs or Windows line endings.
"""

from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass, field


def utf16_len(text: str) -> int:
    """Length of ``text`` in UTF-16 code units."""
    return len(text) + sum(1 for c in text if ord(c) > 0xFFFF)


@dataclass(frozen=True, slots=True, order=True)
class Position:
    """Zero-based line and UTF-16 character."""

    line: int
    character: int


@dataclass(frozen=True, slots=True)
class Range:
    """Half-open span between two positions."""

    start: Position
    end: Position

    @classmethod
    def create(cls, start_line: int, start_char: int, end_line: int, end_char: int) -> Range:
        return cls(Position(start_line, start_char), Position(end_line, end_char))

    def contains(self, position: Position) -> bool:
        """True if ``position`` is inside the range (end inclusive)."""
        return self.start <= position <= self.end


@dataclass(frozen=True, slots=True)
class Location:
    """A range inside a particular document."""

    uri: str
    range: Range


def _compute_line_offsets(text: str) -> list[int]:
    offsets = [0]
    i = 0
    n = len(text)
    while i < n:
        c = text[i]
        if c == "\r":
            if i + 1 < n and text[i + 1] == "\n":
                i += 1
            offsets.append(i + 1)
        elif c == "\n":
            offsets.append(i + 1)
        i += 1
    return offsets


@dataclass
class TextDocument:
    """
    Immutable document text with position mapping.

    Attributes:
        uri: Document identifier used in produced locations
        text: Full document text
        version: Optional editor version number
    """

    uri: str
    text: str
    version: int = 0
    _line_offsets: list[int] = field(default_factory=list, init=False, repr=False)

    def __post_init__(self) -> None:
        self._line_offsets = _compute_line_offsets(self.text)

    @property
    def line_count(self) -> int:
        return len(self._line_offsets)

    def _line_end(self, line: int) -> int:
        """Offset of the end of ``line``, excluding its line terminator."""
        if line + 1 < len(self._line_offsets):
            end = self._line_offsets[line + 1]
        else:
            return len(self.text)
        while end > self._line_offsets[line] and self.text[end - 1] in "\r\n":
            end -= 1
        return end

    def position_at(self, offset: int) -> Position:
        """Convert a string offset to a position, clamping to the document."""
        offset = max(0, min(offset, len(self.text)))
        line = bisect_right(self._line_offsets, offset) - 1
        line_start = self._line_offsets[line]
        return Position(line, utf16_len(self.text[line_start:offset]))

    def offset_at(self, position: Position) -> int:
        """
        Convert a position to a string offset.

        Lines past the end clamp to the document end; characters past the end
        of a line clamp to that line's end. A character that falls between the
        two halves of a surrogate pair maps to the start of that code point.
        """
        if position.line >= len(self._line_offsets):
            return len(self.text)
        if position.line < 0:
            return 0
        line_start = self._line_offsets[position.line]
        line_end = self._line_end(position.line)
        units = 0
        offset = line_start
        while offset < line_end:
            width = 2 if ord(self.text[offset]) > 0xFFFF else 1
            if units + width > position.character:
                break
            units += width
            offset += 1
        return offset

    def range_for(self, at: int, text: str) -> Range:
        """Range covering ``text`` placed at ``at``."""
        return Range(self.position_at(at), self.position_at(at + len(text)))

    def range_between(self, start: int, end: int) -> Range:
        return Range(self.position_at(start), self.position_at(end))

    def location_for(self, at: int, text: str) -> Location:
        return Location(self.uri, self.range_for(at, text))

    def get_text(self, range_: Range | None = None) -> str:
        if range_ is None:
            return self.text
        return self.text[self.offset_at(range_.start) : self.offset_at(range_.end)]

    def line_text(self, line: int) -> str:
        if line >= len(self._line_offsets):
            return ""
        return self.text[self._line_offsets[line] : self._line_end(line)]
