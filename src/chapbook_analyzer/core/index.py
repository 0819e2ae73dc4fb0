"""
Project index: per-document references, definitions and passages.

The analyzer only depends on the ProjectIndex protocol. InMemoryIndex is the
implementation the language server and CLI use.
"""

from __future__ import annotations

import logging
from typing import Protocol

from .positions import Position
from .types import Definition, Passage, Reference, SymbolKind

logger = logging.getLogger(__name__)


class ProjectIndex(Protocol):
    """What the diagnostics, completion and hover passes read from the project."""

    def set_references(self, uri: str, references: list[Reference]) -> None: ...

    def set_definitions(self, uri: str, definitions: list[Definition]) -> None: ...

    def set_passages(self, uri: str, passages: list[Passage]) -> None: ...

    def get_indexed_uris(self) -> list[str]: ...

    def get_references(self, uri: str, kind: SymbolKind | None = None) -> list[Reference]: ...

    def get_definitions(self, uri: str, kind: SymbolKind | None = None) -> list[Definition]: ...

    def get_references_at(self, uri: str, position: Position) -> Reference | None: ...

    def get_passage_at(self, uri: str, position: Position) -> Passage | None: ...

    def get_passage_names(self) -> list[str]: ...


def merge_references(references: list[Reference]) -> list[Reference]:
    """Combine references to the same symbol into one Reference per (contents, kind)."""
    merged: dict[tuple[str, SymbolKind], Reference] = {}
    for ref in references:
        key = (ref.contents, ref.kind)
        if key in merged:
            merged[key].locations.extend(ref.locations)
        else:
            merged[key] = Reference(ref.contents, list(ref.locations), ref.kind)
    return list(merged.values())


class InMemoryIndex:
    """
    Dictionary-backed ProjectIndex.

    Setting a document's references, definitions or passages replaces what
    was stored for that document before.
    """

    def __init__(self) -> None:
        self._references: dict[str, list[Reference]] = {}
        self._definitions: dict[str, list[Definition]] = {}
        self._passages: dict[str, list[Passage]] = {}

    def set_references(self, uri: str, references: list[Reference]) -> None:
        self._references[uri] = merge_references(references)
        logger.debug("Indexed %d references for %s", len(self._references[uri]), uri)

    def set_definitions(self, uri: str, definitions: list[Definition]) -> None:
        self._definitions[uri] = list(definitions)
        logger.debug("Indexed %d definitions for %s", len(definitions), uri)

    def set_passages(self, uri: str, passages: list[Passage]) -> None:
        self._passages[uri] = list(passages)

    def remove_document(self, uri: str) -> None:
        self._references.pop(uri, None)
        self._definitions.pop(uri, None)
        self._passages.pop(uri, None)

    def get_indexed_uris(self) -> list[str]:
        uris = dict.fromkeys([*self._references, *self._definitions, *self._passages])
        return list(uris)

    def get_references(self, uri: str, kind: SymbolKind | None = None) -> list[Reference]:
        references = self._references.get(uri, [])
        if kind is None:
            return list(references)
        return [r for r in references if r.kind == kind]

    def get_definitions(self, uri: str, kind: SymbolKind | None = None) -> list[Definition]:
        definitions = self._definitions.get(uri, [])
        if kind is None:
            return list(definitions)
        return [d for d in definitions if d.kind == kind]

    def get_references_at(self, uri: str, position: Position) -> Reference | None:
        for ref in self._references.get(uri, []):
            for location in ref.locations:
                if location.uri == uri and location.range.contains(position):
                    return ref
        return None

    def get_passages(self, uri: str) -> list[Passage]:
        return list(self._passages.get(uri, []))

    def get_passage_at(self, uri: str, position: Position) -> Passage | None:
        for passage in self._passages.get(uri, []):
            if passage.scope.contains(position):
                return passage
        return None

    def get_passage_names(self) -> list[str]:
        names = dict.fromkeys(p.name for passages in self._passages.values() for p in passages)
        return list(names)
