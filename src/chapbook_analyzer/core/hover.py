"""Hover text for inserts and modifiers."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from .catalog import all_builtin_inserts, all_builtin_modifiers
from .diagnostics import find_function, get_custom_definitions
from .index import ProjectIndex
from .positions import Position, TextDocument
from .types import FunctionInfo, SymbolKind


@dataclass(frozen=True)
class Hover:
    """Markdown hover contents."""

    contents: str


def describe(info: FunctionInfo | None) -> Hover | None:
    """Render a function's syntax and description, or None without a description."""
    if info is None or info.description is None:
        return None
    value = info.description
    if info.syntax is not None:
        value = f"```chapbook\n{info.syntax}\n```\n\n{value}"
    return Hover(value)


def generate_hover(document: TextDocument, position: Position, index: ProjectIndex) -> Hover | None:
    ref = index.get_references_at(document.uri, position)
    if ref is None:
        return None

    candidates: Sequence[FunctionInfo]
    if ref.kind == SymbolKind.BUILT_IN_INSERT:
        candidates = all_builtin_inserts()
    elif ref.kind == SymbolKind.BUILT_IN_MODIFIER:
        candidates = all_builtin_modifiers()
    elif ref.kind in (SymbolKind.CUSTOM_INSERT, SymbolKind.CUSTOM_MODIFIER):
        candidates = get_custom_definitions(ref.kind, index)
    else:
        return None

    return describe(find_function(ref.contents, candidates))
