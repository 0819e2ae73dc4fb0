"""
Quote- and bracket-aware scanning helpers.

Everything here works on plain strings and relative indices; callers add
the offset of the scanned text inside its document.
"""

from __future__ import annotations

import re
from collections.abc import Iterator

from .types import Segment

_PADDING_AND_TEXT = re.compile(r"^(\s*)(.*?)(\s*)$", re.DOTALL)

_BRACE_SEARCH = re.compile(r"[{}]")
_DOUBLE_QUOTE_SEARCH = re.compile(r'(?<!\\)"')
_SINGLE_QUOTE_SEARCH = re.compile(r"(?<!\\)'")
_PARENS_SEARCH = re.compile(r"[()]")

# What to look for after an opening {, [ or (
_GROUP_SEARCH = {
    "{": (re.compile(r"[({\['\"}]"), "}"),
    "[": (re.compile(r"[({\['\"\]]"), "]"),
    "(": (re.compile(r"[({\['\")]"), ")"),
}


def remove_and_count_padding(s: str) -> tuple[str, int, int]:
    """
    Strip surrounding whitespace, reporting how much was removed.

    Returns:
        (stripped text, left padding length, right padding length)
    """
    m = _PADDING_AND_TEXT.match(s)
    if m is None:
        return "", 0, 0
    return m.group(2), len(m.group(1)), len(m.group(3))


def skip_spaces(s: str, n: int) -> tuple[str, int]:
    """
    Strip ``s`` and advance its index ``n`` past any leading whitespace.

    ``skip_spaces("  test", 7)`` returns ``("test", 9)``.
    """
    stripped, left, _ = remove_and_count_padding(s)
    return stripped, n + left


def _search_for(open_delimiter: str, close_delimiter: str) -> re.Pattern[str]:
    if close_delimiter == "}":
        return _BRACE_SEARCH
    if close_delimiter == '"':
        return _DOUBLE_QUOTE_SEARCH
    if close_delimiter == "'":
        return _SINGLE_QUOTE_SEARCH
    if close_delimiter == ")":
        return _PARENS_SEARCH
    if open_delimiter == close_delimiter:
        return re.compile(r"(?<!\\)" + re.escape(open_delimiter))
    return re.compile(r"(?<!\\)(" + re.escape(open_delimiter) + "|" + re.escape(close_delimiter) + ")")


def extract_to_matching_delimiter(
    s: str, open_delimiter: str, close_delimiter: str, start: int = 0
) -> str | None:
    """
    Return the text from ``start`` up to the delimiter that closes it.

    ``start`` is just past the opening delimiter. Nested open/close pairs are
    counted; quote delimiters skip backslash-escaped quotes.

    Returns:
        The enclosed text (without the closing delimiter), or None if unclosed
    """
    depth = 0
    for m in _search_for(open_delimiter, close_delimiter).finditer(s, start):
        found = m.group(0)
        if found == close_delimiter:
            if depth:
                depth -= 1
            else:
                return s[start : m.start()]
        elif found == open_delimiter:
            depth += 1
    return None


def find_closing_delimiter_index(contents: str, start: int) -> int:
    """
    Find the index just past the delimiter closing the group that opens at ``start``.

    Handles ``'`` and ``"`` strings and ``{``, ``[``, ``(`` groups, which may
    nest groups and strings. Returns ``len(contents)`` if the group never closes.
    """
    c = contents[start] if start < len(contents) else ""

    if c in ("'", '"'):
        inner = extract_to_matching_delimiter(contents, c, c, start + 1)
        if inner is None:
            return len(contents)
        return start + len(inner) + 2

    if c in _GROUP_SEARCH:
        pattern, close = _GROUP_SEARCH[c]
        pos = start + 1
        while True:
            m = pattern.search(contents, pos)
            if m is None:
                break
            if m.group(0) == close:
                return m.start() + 1
            pos = find_closing_delimiter_index(contents, m.start())

    return len(contents)


def extract_insert_argument(contents: str, contents_index: int) -> tuple[str, str, int]:
    """
    Pull an insert's first argument or property value off the front of ``contents``.

    Strings and bracketed groups are skipped as a unit before looking for the
    comma that separates this value from the next property.

    Returns:
        (argument, remaining contents starting at the comma if any, index of the remaining contents)
    """
    end = 0
    if contents[:1] in ("'", '"', "{", "[", "("):
        end = find_closing_delimiter_index(contents, 0)
    comma = contents.find(",", end)
    end = comma if comma != -1 else len(contents)
    return contents[:end].rstrip(), contents[end:], contents_index + end


def find_start_of_modifier_or_insert(text: str, offset: int) -> int | None:
    """
    Scan backwards on the current line for the start of a modifier or insert.

    Returns:
        Index of an opening ``{``, or of a ``[`` at the start of a line, or None
    """
    for i in range(min(offset, len(text) - 1), -1, -1):
        c = text[i]
        if c == "\n":
            break
        if c == "{" or (c == "[" and (i == 0 or text[i - 1] == "\n")):
            return i
    return None


def find_end_of_partial_insert(text: str, start: int) -> int | None:
    """
    Find the end of a possibly unfinished insert starting at ``text[start] == '{'``.

    Returns:
        Index of the closing ``}`` or the ending ``\\n``, ``len(text)`` if the text
        runs out, or None if another ``{`` shows this isn't an insert
    """
    in_string = False
    delimiter = ""
    for i in range(start + 1, len(text)):
        c = text[i]
        if c == "{" and not in_string:
            return None
        if c == "\n":
            return i
        if c in ("'", '"'):
            if text[i - 1] != "\\":
                if not in_string:
                    in_string = True
                    delimiter = c
                elif c == delimiter:
                    in_string = False
        elif c == "}" and not in_string:
            return i
    return len(text)


def find_inserts(text: str) -> Iterator[Segment]:
    """
    Yield every ``{...}`` insert in ``text``, braces included.

    A ``{`` outside a quoted string restarts the candidate insert, and braces
    inside a quoted string neither open nor close one.
    """
    start = text.find("{")
    if start == -1:
        return
    in_string = False
    delimiter = ""
    i = start + 1
    while i < len(text):
        c = text[i]
        if c == "{" and not in_string:
            start = i
        elif c in ("'", '"'):
            if text[i - 1] != "\\":
                if not in_string:
                    in_string = True
                    delimiter = c
                elif c == delimiter:
                    in_string = False
        elif c == "}" and not in_string:
            yield Segment(text[start : i + 1], start)
            start = text.find("{", i + 1)
            if start == -1:
                return
            in_string = False
            i = start
        i += 1


def split_modifiers(raw: str) -> list[Segment]:
    """
    Split a modifier block's contents on ``;`` outside double quotes.

    Single quotes aren't string delimiters here: ``[con't]`` is a modifier.
    Segment offsets are relative to ``raw``.
    """
    segments: list[Segment] = []
    current: list[str] = []
    i = 0
    n = len(raw)
    while i < n:
        c = raw[i]
        if c == '"':
            current.append(c)
            i += 1
            while i < n:
                current.append(raw[i])
                if raw[i] == '"' and raw[i - 1] != "\\":
                    break
                i += 1
        elif c == ";":
            text = "".join(current)
            segments.append(Segment(text, i - len(text)))
            current = []
        else:
            current.append(c)
        i += 1

    if current:
        text = "".join(current)
        segments.append(Segment(text, min(i, n) - len(text)))
    return segments


def split_words(raw: str) -> list[Segment]:
    """
    Split ``raw`` on whitespace outside double quotes.

    ``after "a b" 2s`` gives ``after``, ``"a b"`` and ``2s``. An unclosed quote
    runs to the end of ``raw``. Segment offsets are relative to ``raw``.
    """
    segments: list[Segment] = []
    i = 0
    n = len(raw)
    while i < n:
        if raw[i].isspace():
            i += 1
            continue
        start = i
        while i < n and not raw[i].isspace():
            if raw[i] == '"':
                i += 1
                while i < n and not (raw[i] == '"' and raw[i - 1] != "\\"):
                    i += 1
            i += 1
        end = min(i, n)
        segments.append(Segment(raw[start:end], start))
    return segments
