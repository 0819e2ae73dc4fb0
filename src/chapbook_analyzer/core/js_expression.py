"""
JavaScript expression scanning.

Chapbook hands JavaScript expressions to the browser: vars-section values and
conditions, insert arguments, property values. We never evaluate them. A
tolerant lexer turns the text into tokens and a single classification pass
finds the variables and properties an expression reads, along with semantic
tokens for literals and operators.

The lexer is also used by the engine-extension reader, which asks for strict
mode so malformed literals surface as ExtensionSyntaxError.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import StrEnum, auto

from .errors import ExtensionSyntaxError
from .types import PreToken, Segment, TokenType


class TokenKind(StrEnum):
    """Lexical token kinds."""

    IDENT = auto()
    KEYWORD = auto()
    NUMBER = auto()
    STRING = auto()
    TEMPLATE = auto()
    REGEX = auto()
    PUNCT = auto()
    EOF = auto()


class Token:
    """A single lexical token. ``value`` is the raw source text."""

    __slots__ = ("kind", "value", "pos", "parts")

    def __init__(
        self, kind: TokenKind, value: str, pos: int, parts: tuple[Segment, ...] = ()
    ) -> None:
        self.kind = kind
        self.value = value
        self.pos = pos
        # Template literal substitutions, relative to the scanned source
        self.parts = parts

    @property
    def end(self) -> int:
        return self.pos + len(self.value)

    def __repr__(self) -> str:
        return f"Token({self.kind}, {self.value!r}, pos={self.pos})"


RESERVED_WORDS = frozenset(
    {
        "await", "break", "case", "catch", "class", "const", "continue",
        "debugger", "default", "delete", "do", "else", "export", "extends",
        "false", "finally", "for", "function", "if", "import", "in",
        "instanceof", "let", "new", "null", "return", "super", "switch",
        "this", "throw", "true", "try", "typeof", "var", "void", "while",
        "with", "yield",
    }
)

# Identifiers that are never story variables
NON_VARIABLES = frozenset({"undefined", "NaN", "Infinity", "arguments"})

BUILTIN_GLOBALS = frozenset(
    {
        "Object", "Function", "Boolean", "Symbol", "Error", "Number",
        "BigInt", "Math", "Date", "String", "Array", "Map", "Set", "WeakMap",
        "WeakSet", "ArrayBuffer", "SharedArrayBuffer", "DataView", "Atomics",
        "JSON", "RegExp", "Promise", "Reflect", "Proxy", "Intl", "globalThis",
        "console", "window", "document",
    }
)

_OPERATOR_KEYWORDS = frozenset({"typeof", "void", "delete", "in", "instanceof"})

# Keywords after which a "/" starts a regex literal
_REGEX_AFTER_KEYWORDS = frozenset(
    {"return", "typeof", "instanceof", "in", "of", "new", "delete", "void", "throw", "case", "do", "else"}
)

_PUNCTUATORS = (
    ">>>=", "...", "===", "!==", "**=", "<<=", ">>=", ">>>", "&&=", "||=",
    "??=", "=>", "==", "!=", "<=", ">=", "&&", "||", "??", "?.", "++",
    "--", "+=", "-=", "*=", "/=", "%=", "&=", "|=", "^=", "**", "<<", ">>",
    "{", "}", "(", ")", "[", "]", ";", ",", "<", ">", "+", "-", "*", "/",
    "%", "&", "|", "^", "!", "~", "?", ":", "=", ".",
)

OPERATORS = frozenset(
    {
        "+", "-", "*", "/", "%", "**", "==", "!=", "===", "!==", "<", ">",
        "<=", ">=", "&&", "||", "??", "&", "|", "^", "<<", ">>", ">>>", "=",
        "+=", "-=", "*=", "/=", "%=", "**=", "<<=", ">>=", ">>>=", "&=",
        "|=", "^=", "&&=", "||=", "??=", "!", "~", "++", "--",
    }
)

_NUMBER_RE = re.compile(
    r"0[xX][0-9a-fA-F_]+n?|0[oO][0-7_]+n?|0[bB][01_]+n?"
    r"|(?:\d[\d_]*(?:\.[\d_]*)?|\.\d[\d_]*)(?:[eE][+-]?\d+)?n?"
)
_REGEX_FLAGS_RE = re.compile(r"[A-Za-z]*")
_DIGITS = frozenset("0123456789")


def _is_ident_start(c: str) -> bool:
    return c.isalpha() or c in "$_"


def _is_ident_part(c: str) -> bool:
    return c.isalnum() or c in "$_\u200c\u200d"


def _regex_allowed(prev: Token | None) -> bool:
    """Decide whether a "/" after ``prev`` begins a regex literal rather than division."""
    if prev is None:
        return True
    if prev.kind == TokenKind.PUNCT:
        return prev.value not in (")", "]", "}")
    if prev.kind == TokenKind.KEYWORD:
        return prev.value in _REGEX_AFTER_KEYWORDS
    return False


def _read_quoted(source: str, start: int, strict: bool) -> int:
    """Return the index just past the string literal opening at ``start``."""
    quote = source[start]
    i = start + 1
    n = len(source)
    while i < n:
        c = source[i]
        if c == "\\":
            i += 2
            continue
        if c == quote:
            return i + 1
        if c == "\n":
            break
        i += 1
    if strict:
        raise ExtensionSyntaxError("Unterminated string constant", start)
    return min(i, n)


def _read_template(source: str, start: int, strict: bool) -> tuple[int, tuple[Segment, ...]]:
    parts: list[Segment] = []
    i = start + 1
    n = len(source)
    while i < n:
        c = source[i]
        if c == "\\":
            i += 2
            continue
        if c == "`":
            return i + 1, tuple(parts)
        if c == "$" and i + 1 < n and source[i + 1] == "{":
            depth = 1
            j = i + 2
            while j < n and depth:
                if source[j] == "{":
                    depth += 1
                elif source[j] == "}":
                    depth -= 1
                elif source[j] in ("'", '"'):
                    j = _read_quoted(source, j, False) - 1
                j += 1
            end = j - 1 if depth == 0 else j
            parts.append(Segment(source[i + 2 : end], i + 2))
            i = j
            continue
        i += 1
    if strict:
        raise ExtensionSyntaxError("Unterminated template", start)
    return n, tuple(parts)


def _read_regex(source: str, start: int, strict: bool) -> int | None:
    """Return the index just past a regex literal's flags, or None if it isn't closed."""
    i = start + 1
    n = len(source)
    in_class = False
    while i < n:
        c = source[i]
        if c == "\\":
            i += 2
            continue
        if c == "\n":
            break
        if in_class:
            if c == "]":
                in_class = False
        elif c == "[":
            in_class = True
        elif c == "/":
            m = _REGEX_FLAGS_RE.match(source, i + 1)
            assert m is not None
            return m.end()
        i += 1
    if strict:
        raise ExtensionSyntaxError("Unterminated regular expression", start)
    return None


def tokenize(source: str, strict: bool = False) -> list[Token]:
    """
    Split JavaScript source into tokens, ending with an EOF token.

    Comments and whitespace are dropped. In lenient mode, unterminated literals
    run to the end of the text and unknown characters are skipped.

    Raises:
        ExtensionSyntaxError: In strict mode, on malformed literals or unknown characters
    """
    tokens: list[Token] = []
    i = 0
    n = len(source)

    while i < n:
        c = source[i]

        if c.isspace():
            i += 1
            continue

        # Comments
        if source.startswith("//", i):
            newline = source.find("\n", i)
            i = n if newline == -1 else newline
            continue
        if source.startswith("/*", i):
            close = source.find("*/", i + 2)
            if close == -1:
                if strict:
                    raise ExtensionSyntaxError("Unterminated comment", i)
                break
            i = close + 2
            continue

        prev = tokens[-1] if tokens else None

        if c in ("'", '"'):
            end = _read_quoted(source, i, strict)
            tokens.append(Token(TokenKind.STRING, source[i:end], i))
            i = end
            continue

        if c == "`":
            end, parts = _read_template(source, i, strict)
            tokens.append(Token(TokenKind.TEMPLATE, source[i:end], i, parts))
            i = end
            continue

        if c in _DIGITS or (c == "." and i + 1 < n and source[i + 1] in _DIGITS):
            m = _NUMBER_RE.match(source, i)
            assert m is not None
            tokens.append(Token(TokenKind.NUMBER, m.group(0), i))
            i = m.end()
            continue

        if _is_ident_start(c):
            j = i + 1
            while j < n and _is_ident_part(source[j]):
                j += 1
            word = source[i:j]
            # Keywords are ordinary names after a property access
            after_dot = prev is not None and prev.kind == TokenKind.PUNCT and prev.value in (".", "?.")
            kind = TokenKind.KEYWORD if word in RESERVED_WORDS and not after_dot else TokenKind.IDENT
            tokens.append(Token(kind, word, i))
            i = j
            continue

        if c == "/" and _regex_allowed(prev):
            end = _read_regex(source, i, strict)
            if end is not None:
                tokens.append(Token(TokenKind.REGEX, source[i:end], i))
                i = end
                continue

        for p in _PUNCTUATORS:
            if source.startswith(p, i):
                # "?." followed by a digit is a conditional and a number
                if p == "?." and i + 2 < n and source[i + 2] in _DIGITS:
                    continue
                tokens.append(Token(TokenKind.PUNCT, p, i))
                i += len(p)
                break
        else:
            if strict:
                raise ExtensionSyntaxError(f"Unexpected character '{c}'", i)
            i += 1

    tokens.append(Token(TokenKind.EOF, "", n))
    return tokens


# =============================================================================
# Classification
# =============================================================================


@dataclass(frozen=True, slots=True)
class VariableLabel:
    """A variable read by an expression."""

    contents: str
    at: int


@dataclass(frozen=True, slots=True)
class PropertyLabel:
    """
    A property read by an expression.

    ``scope`` is the dotted chain the property hangs off: the label for
    ``subprop`` in ``var.prop.subprop`` has scope ``var.prop``. Properties whose
    chain can't be traced statically (computed members or calls) get a
    semantic token but no label.
    """

    name: str
    at: int
    scope: str

    @property
    def contents(self) -> str:
        return f"{self.scope}.{self.name}"


@dataclass
class ExpressionScan:
    """Tokens and references found in one expression. Offsets are document offsets."""

    tokens: list[PreToken] = field(default_factory=list)
    variables: list[VariableLabel] = field(default_factory=list)
    properties: list[PropertyLabel] = field(default_factory=list)


def _is_punct(token: Token | None, *values: str) -> bool:
    return token is not None and token.kind == TokenKind.PUNCT and token.value in values


def _property_scope(tokens: list[Token], k: int) -> str | None:
    """Trace the identifier chain before the member access at ``tokens[k]``."""
    names: list[str] = []
    j = k - 2
    while j >= 0 and tokens[j].kind == TokenKind.IDENT:
        names.append(tokens[j].value)
        if j >= 1 and _is_punct(tokens[j - 1], ".", "?."):
            j -= 2
            continue
        return ".".join(reversed(names))
    return None


def scan_expression(expression: str, offset: int = 0) -> ExpressionScan:
    """
    Classify the tokens of a JavaScript expression.

    Args:
        expression: JavaScript source text
        offset: Document offset where ``expression`` starts

    Returns:
        Semantic tokens plus the variables and traceable properties the expression reads
    """
    scan = ExpressionScan()
    _scan_into(scan, expression, offset)
    return scan


def _scan_into(scan: ExpressionScan, expression: str, offset: int) -> None:
    tokens = tokenize(expression)
    stack: list[str] = []

    for k, tok in enumerate(tokens):
        prev = tokens[k - 1] if k > 0 else None
        nxt = tokens[k + 1] if k + 1 < len(tokens) else None
        at = offset + tok.pos

        if tok.kind == TokenKind.PUNCT:
            if tok.value in ("(", "[", "{"):
                stack.append(tok.value)
            elif tok.value in (")", "]", "}"):
                if stack:
                    stack.pop()
            elif tok.value in OPERATORS:
                scan.tokens.append(PreToken(tok.value, at, TokenType.OPERATOR))
            continue

        if tok.kind == TokenKind.NUMBER:
            scan.tokens.append(PreToken(tok.value, at, TokenType.NUMBER))
        elif tok.kind == TokenKind.STRING:
            scan.tokens.append(PreToken(tok.value, at, TokenType.STRING))
        elif tok.kind == TokenKind.TEMPLATE:
            for part in tok.parts:
                _scan_into(scan, part.text, offset + part.at)
        elif tok.kind == TokenKind.KEYWORD:
            if tok.value in ("true", "false"):
                scan.tokens.append(PreToken(tok.value, at, TokenType.KEYWORD))
            elif tok.value in _OPERATOR_KEYWORDS:
                scan.tokens.append(PreToken(tok.value, at, TokenType.OPERATOR))
        elif tok.kind == TokenKind.IDENT:
            _classify_identifier(scan, tokens, k, prev, nxt, at, stack)


def _classify_identifier(
    scan: ExpressionScan,
    tokens: list[Token],
    k: int,
    prev: Token | None,
    nxt: Token | None,
    at: int,
    stack: list[str],
) -> None:
    tok = tokens[k]
    is_call = _is_punct(nxt, "(")

    if _is_punct(prev, ".", "?."):
        if is_call:
            scan.tokens.append(PreToken(tok.value, at, TokenType.FUNCTION))
            return
        scope = _property_scope(tokens, k)
        if scope is not None and scope.split(".", 1)[0] in BUILTIN_GLOBALS:
            return
        scan.tokens.append(PreToken(tok.value, at, TokenType.PROPERTY))
        if scope is not None:
            scan.properties.append(PropertyLabel(tok.value, at, scope))
        return

    # Instantiated classes aren't variables
    if prev is not None and prev.kind == TokenKind.KEYWORD and prev.value == "new":
        return

    if is_call:
        scan.tokens.append(PreToken(tok.value, at, TokenType.FUNCTION))
        return

    # Object literal keys
    if stack and stack[-1] == "{" and _is_punct(prev, "{", ",") and _is_punct(nxt, ":"):
        scan.tokens.append(PreToken(tok.value, at, TokenType.PROPERTY))
        return

    if tok.value in BUILTIN_GLOBALS or tok.value in NON_VARIABLES:
        return

    scan.tokens.append(PreToken(tok.value, at, TokenType.VARIABLE))
    scan.variables.append(VariableLabel(tok.value, at))


_SIMPLE_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "b": "\b", "f": "\f", "v": "\v", "0": "\0"}


def _hex_char(digits: str, width: int | None = None) -> str | None:
    if not digits or (width is not None and len(digits) != width):
        return None
    try:
        return chr(int(digits, 16))
    except ValueError:
        return None


def string_value(raw: str) -> str:
    """Decode a JavaScript string literal's raw text (quotes included)."""
    body = raw[1:-1] if len(raw) >= 2 and raw[-1] == raw[0] else raw[1:]
    out: list[str] = []
    i = 0
    while i < len(body):
        c = body[i]
        if c == "\\" and i + 1 < len(body):
            e = body[i + 1]
            if e in _SIMPLE_ESCAPES:
                out.append(_SIMPLE_ESCAPES[e])
                i += 2
            elif e == "x" and _hex_char(body[i + 2 : i + 4], 2) is not None:
                out.append(_hex_char(body[i + 2 : i + 4], 2) or "")
                i += 4
            elif e == "u" and body[i + 2 : i + 3] == "{" and "}" in body[i + 3 :]:
                close = body.index("}", i + 3)
                out.append(_hex_char(body[i + 3 : close]) or body[i + 1 : close + 1])
                i = close + 1
            elif e == "u" and _hex_char(body[i + 2 : i + 6], 4) is not None:
                out.append(_hex_char(body[i + 2 : i + 6], 4) or "")
                i += 6
            elif e == "\n":
                i += 2
            else:
                out.append(e)
                i += 2
            continue
        out.append(c)
        i += 1
    return "".join(out)
