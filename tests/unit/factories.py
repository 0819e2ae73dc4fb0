"""Builders for index entries used across the unit tests."""

from __future__ import annotations

import re

from chapbook_analyzer.core.positions import Location, Range
from chapbook_analyzer.core.types import (
    ArgumentRequirement,
    Definition,
    FirstArgument,
    Reference,
    SymbolKind,
)

FAKE_URI = "fake-uri"
SOURCE_URI = "source-uri"


def make_reference(contents: str, kind: SymbolKind, *ranges: Range, uri: str = FAKE_URI) -> Reference:
    """Build a reference with one location per range."""
    return Reference(contents, [Location(uri, r) for r in ranges], kind)


def make_definition(
    name: str,
    pattern: str,
    kind: SymbolKind = SymbolKind.CUSTOM_INSERT,
    first_argument: ArgumentRequirement | None = None,
    placeholder: str | None = None,
    **fields: object,
) -> Definition:
    """Build a custom definition registered in SOURCE_URI."""
    return Definition(
        name=name,
        match=re.compile(pattern),
        contents=pattern,
        location=Location(SOURCE_URI, Range.create(5, 6, 7, 8)),
        kind=kind,
        first_argument=(
            FirstArgument(required=first_argument, placeholder=placeholder) if first_argument is not None else None
        ),
        **fields,
    )
