"""
Translation of JavaScript regular expression literals to Python patterns.

Author-registered inserts and modifiers describe their invocation with a JS
regex literal (``/custom\\s+insert/i``). We compile those once, at
registration time, into ``re.Pattern`` objects. Anything Python's ``re`` can't
express is reported as a RegexTranslationError rather than failing later
during matching.
"""

from __future__ import annotations

import logging
import re

from .errors import RegexTranslationError

logger = logging.getLogger(__name__)

VALID_FLAGS = frozenset("dgimsuvy")
FLAGS_MESSAGE = "Regular expression flags can only be d, g, i, m, s, u, v, and y"
INVALID_MESSAGE = "Invalid regular expression"

_SHARED_LETTER_ESCAPES = frozenset("bBdDfnrsStuvwWx")

# JS whitespace; \s stays Unicode-aware while \d, \w and \b are ASCII-only
_JS_SPACE = "\\t\\n\\v\\f\\r \\xa0\\u1680\\u2000-\\u200a\\u2028\\u2029\\u202f\\u205f\\u3000\\ufeff"

_FLAG_MAP = {
    "i": re.IGNORECASE,
    "m": re.MULTILINE,
    "s": re.DOTALL,
}


def validate_flags(flags: str) -> int:
    """
    Check JS regex flags and convert them to ``re`` flags.

    Flags with no matching behavior in ``re.search`` (d, g, u, v, y) are
    accepted and ignored.

    Raises:
        RegexTranslationError: On unknown or repeated flags
    """
    if any(f not in VALID_FLAGS for f in flags) or len(set(flags)) != len(flags):
        raise RegexTranslationError(FLAGS_MESSAGE)
    result = 0
    for f in flags:
        result |= _FLAG_MAP.get(f, 0)
    return result


def _translate_escape(source: str, i: int, in_class: bool) -> tuple[str, int]:
    """Translate the escape starting at ``source[i] == '\\'``. Returns (text, next index)."""
    if i + 1 >= len(source):
        raise RegexTranslationError(INVALID_MESSAGE, offset=i)
    c = source[i + 1]

    if c == "u" and i + 2 < len(source) and source[i + 2] == "{":
        close = source.find("}", i + 3)
        if close == -1:
            raise RegexTranslationError(INVALID_MESSAGE, offset=i)
        code = source[i + 3 : close]
        try:
            value = int(code, 16)
        except ValueError as e:
            raise RegexTranslationError(INVALID_MESSAGE, offset=i) from e
        return f"\\U{value:08x}", close + 1

    if c == "c" and i + 2 < len(source) and source[i + 2].isalpha():
        return f"\\x{ord(source[i + 2]) % 32:02x}", i + 3

    if c == "k" and not in_class and i + 2 < len(source) and source[i + 2] == "<":
        close = source.find(">", i + 3)
        if close == -1:
            raise RegexTranslationError(INVALID_MESSAGE, offset=i)
        return f"(?P={source[i + 3 : close]})", close + 1

    if c in "pP":
        # Unicode property escapes have no `re` equivalent
        raise RegexTranslationError(INVALID_MESSAGE, offset=i)

    if c == "/":
        return "/", i + 2

    if c == "b" and in_class:
        return "\\x08", i + 2

    if c == "s":
        return (_JS_SPACE if in_class else f"[{_JS_SPACE}]"), i + 2

    if c == "S" and not in_class:
        return f"[^{_JS_SPACE}]", i + 2

    if c == "0" and not (i + 2 < len(source) and source[i + 2].isdigit()):
        return "\\x00", i + 2

    if c.isascii() and c.isalpha() and c not in _SHARED_LETTER_ESCAPES:
        # JS treats unknown letter escapes as the letter itself
        return c, i + 2

    return source[i : i + 2], i + 2


def translate_pattern(source: str, multiline: bool = False) -> str:
    """
    Rewrite a JS regex source into Python ``re`` syntax.

    Handles named groups, named backreferences, ``\\u{...}`` escapes, control
    escapes, the ``[^]`` and ``[]`` classes, and JS's end-of-input ``$``.

    Raises:
        RegexTranslationError: On constructs with no Python equivalent
    """
    out: list[str] = []
    i = 0
    n = len(source)
    in_class = False
    while i < n:
        c = source[i]
        if c == "\\":
            text, i = _translate_escape(source, i, in_class)
            out.append(text)
            continue

        if in_class:
            if c == "]":
                in_class = False
            elif c == "[":
                out.append("\\[")
                i += 1
                continue
            out.append(c)
            i += 1
            continue

        if c == "[":
            if source.startswith("[^]", i):
                out.append("[\\s\\S]")
                i += 3
                continue
            if source.startswith("[]", i):
                out.append("(?!)")
                i += 2
                continue
            in_class = True
            out.append(c)
            i += 1
            if i < n and source[i] == "^":
                out.append("^")
                i += 1
            # A leading "]" is literal in Python but closes an empty class in JS
            if i < n and source[i] == "]":
                out.append("\\]")
                i += 1
            continue

        if c == "(" and source.startswith("(?<", i) and i + 3 < n and source[i + 3] not in "=!":
            out.append("(?P<")
            i += 3
            continue

        if c == "$" and not multiline:
            out.append("\\Z")
            i += 1
            continue

        out.append(c)
        i += 1

    if in_class:
        raise RegexTranslationError(INVALID_MESSAGE, offset=n)
    return "".join(out)


def compile_js_regex(source: str, flags: str = "") -> re.Pattern[str]:
    """
    Compile a JS regex literal's source and flags.

    Args:
        source: Text between the slashes
        flags: Flag characters after the closing slash

    Returns:
        Compiled pattern with ``search`` semantics equal to JS ``RegExp.test``;
        ``\\d``, ``\\w`` and ``\\b`` match ASCII only, as they do in JS

    Raises:
        RegexTranslationError: If the flags are unsupported or the pattern is invalid
    """
    re_flags = validate_flags(flags)
    pattern = translate_pattern(source, multiline="m" in flags)
    try:
        compiled = re.compile(pattern, re_flags | re.ASCII)
    except re.error as e:
        raise RegexTranslationError(INVALID_MESSAGE, offset=e.pos or 0) from e
    logger.debug("Compiled /%s/%s as %r", source, flags, pattern)
    return compiled
