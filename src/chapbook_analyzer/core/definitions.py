"""Go-to-definition for custom inserts and modifiers."""

from __future__ import annotations

from .diagnostics import find_function, get_custom_definitions
from .index import ProjectIndex
from .positions import Location, Position, TextDocument
from .types import SymbolKind


def get_definition_at(document: TextDocument, position: Position, index: ProjectIndex) -> Location | None:
    """
    Find where the custom insert or modifier under the cursor was registered.

    Custom functions are matched by regex rather than by name, so the index
    can't resolve these on its own.
    """
    ref = index.get_references_at(document.uri, position)
    if ref is None or ref.kind not in (SymbolKind.CUSTOM_INSERT, SymbolKind.CUSTOM_MODIFIER):
        return None
    definition = find_function(ref.contents, get_custom_definitions(ref.kind, index))
    return definition.location if definition is not None else None
