"""Find-references across variable reads and vars-section assignments."""

from __future__ import annotations

from .index import ProjectIndex
from .positions import Location, Position, TextDocument
from .types import SymbolKind

# A variable read and the vars-section lines that set it are tracked as
# separate kinds; each one's references include the other's locations.
_COUNTERPARTS = {
    SymbolKind.VARIABLE: SymbolKind.VARIABLE_SET,
    SymbolKind.VARIABLE_SET: SymbolKind.VARIABLE,
    SymbolKind.PROPERTY: SymbolKind.PROPERTY_SET,
    SymbolKind.PROPERTY_SET: SymbolKind.PROPERTY,
}


def get_references_to_symbol_at(
    document: TextDocument, position: Position, index: ProjectIndex
) -> list[Location] | None:
    """
    Locations of the counterpart kind with the same contents, across the project.

    Returns None if the cursor isn't on a variable or property.
    """
    ref = index.get_references_at(document.uri, position)
    if ref is None or ref.kind not in _COUNTERPARTS:
        return None

    other = _COUNTERPARTS[ref.kind]
    return [
        location
        for uri in index.get_indexed_uris()
        for other_ref in index.get_references(uri, other)
        if other_ref.contents == ref.contents
        for location in other_ref.locations
    ]
