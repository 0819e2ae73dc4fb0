"""
Twine links and embedded ``<style>`` blocks.

Both are blanked out of the text once parsed so the insert scan that follows
doesn't mistake braces inside them for inserts.
"""

from __future__ import annotations

import re

from .emitter import SymbolEmitter
from .scanner import remove_and_count_padding, skip_spaces
from .types import TokenType

_LINK = re.compile(r"\[\[(.*?)\]\]")
_STYLE_OPEN = re.compile(r"<style\b[^>]*(?<!/)>", re.IGNORECASE)
_STYLE_CLOSE = re.compile(r"</style>", re.IGNORECASE)


def _blank(text: str, start: int, end: int) -> str:
    return text[:start] + " " * (end - start) + text[end:]


def parse_links(subsection: str, subsection_index: int, emitter: SymbolEmitter) -> str:
    """
    Parse ``[[...]]`` links.

    Supports ``[[target]]``, ``[[display|target]]``, ``[[display->target]]``
    and ``[[target<-display]]``.

    Returns:
        The subsection with every link replaced by spaces
    """
    blanked = subsection
    for m in _LINK.finditer(subsection):
        blanked = _blank(blanked, m.start(), m.end())
        _parse_link(m.group(1), subsection_index + m.start() + 2, emitter)
    return blanked


def _parse_link(link: str, link_index: int, emitter: SymbolEmitter) -> None:
    display, display_index = link, 0
    target, target_index = link, 0
    divider = ""

    if (divider_index := link.find("|")) != -1:
        divider = "|"
    elif (divider_index := link.find("->")) != -1:
        divider = "->"
    elif (divider_index := link.find("<-")) != -1:
        divider = "<-"

    if divider == "<-":
        target = link[:divider_index]
        display_index = divider_index + 2
        display = link[display_index:]
    elif divider:
        display = link[:divider_index]
        target_index = divider_index + len(divider)
        target = link[target_index:]

    target, target_index = skip_spaces(target, target_index)
    if target:
        emitter.passage_reference(target, link_index + target_index)

    if divider:
        emitter.capture_token(divider, link_index + divider_index, TokenType.KEYWORD)
        display, left, _ = remove_and_count_padding(display)
        if display:
            emitter.capture_token(display, link_index + display_index + left, TokenType.STRING)


def parse_style_tags(subsection: str, subsection_index: int, emitter: SymbolEmitter) -> str:
    """
    Turn ``<style>`` element contents into embedded CSS documents.

    An unclosed tag runs to the end of the subsection.

    Returns:
        The subsection with the CSS contents replaced by spaces
    """
    blanked = subsection
    pos = 0
    while (open_match := _STYLE_OPEN.search(subsection, pos)) is not None:
        start = open_match.end()
        close_match = _STYLE_CLOSE.search(subsection, start)
        end = close_match.start() if close_match is not None else len(subsection)
        emitter.embedded_document("stylesheet", "css", subsection[start:end], subsection_index + start)
        blanked = _blank(blanked, start, end)
        pos = close_match.end() if close_match is not None else len(subsection)
    return blanked
