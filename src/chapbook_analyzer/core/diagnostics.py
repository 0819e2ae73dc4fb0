"""
Project-wide diagnostics.

Parsing a passage can only check what the passage itself says. This pass runs
afterwards against the project index, so it can see custom inserts and
modifiers registered in other passages and variables set anywhere in the
story.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from typing import TypeVar

from .catalog import all_builtin_inserts, all_builtin_modifiers
from .config import DiagnosticsOptions
from .emitter import diagnostic_for
from .index import ProjectIndex
from .inserts import tokenize_insert, validate_insert_contents
from .positions import Location, TextDocument
from .scanner import find_end_of_partial_insert, find_start_of_modifier_or_insert, skip_spaces
from .types import (
    ArgumentRequirement,
    Definition,
    Descriptor,
    Diagnostic,
    DiagnosticSeverity,
    FunctionInfo,
    Reference,
    SymbolKind,
)

logger = logging.getLogger(__name__)

# Lookup variables Chapbook always sets
BUILTIN_LOOKUPS = frozenset({"browser", "config", "engine", "now", "passage", "random", "story"})

_MODIFIER_END = re.compile(r"[\];\r\n]")

_F = TypeVar("_F", bound=FunctionInfo)


def get_custom_definitions(kind: SymbolKind, index: ProjectIndex) -> list[Definition]:
    """Every custom definition of ``kind`` across all indexed documents."""
    definitions: list[Definition] = []
    for uri in index.get_indexed_uris():
        definitions.extend(index.get_definitions(uri, kind))
    return definitions


def find_function(contents: str, candidates: Iterable[_F]) -> _F | None:
    """The first candidate whose match pattern accepts ``contents``."""
    return next((c for c in candidates if c.matches(contents)), None)


def _is_set(contents: str, kind: SymbolKind, index: ProjectIndex) -> bool:
    return any(
        ref.contents == contents for uri in index.get_indexed_uris() for ref in index.get_references(uri, kind)
    )


# =============================================================================
# Custom inserts and modifiers
# =============================================================================


def _validate_custom_insert(
    document: TextDocument, location: Location, definition: Definition, format_version: str | None
) -> list[Diagnostic]:
    """Re-find the insert in the document and validate it against its definition."""
    text = document.text
    start = find_start_of_modifier_or_insert(text, document.offset_at(location.range.start))
    if start is None or text[start] != "{":
        return []
    end = find_end_of_partial_insert(text, start)
    if end is None:
        return []
    insert = text[start : end + 1] if end < len(text) and text[end] == "}" else text[start:end] + "}"
    tokens = tokenize_insert(insert, start)
    return validate_insert_contents(definition, tokens, document, format_version)


def _validate_custom_modifier(document: TextDocument, location: Location, definition: Definition) -> list[Diagnostic]:
    text = document.text
    start = document.offset_at(location.range.start)
    m = _MODIFIER_END.search(text, start)
    modifier = text[start : m.start() if m is not None else len(text)]
    match = definition.match.search(modifier)
    if match is None or definition.first_argument is None:
        return []

    argument, argument_index = skip_spaces(modifier[match.end() :], start + match.end())
    requirement = definition.first_argument.required
    if requirement == ArgumentRequirement.REQUIRED and not argument:
        return [
            diagnostic_for(
                document,
                DiagnosticSeverity.ERROR,
                match.group(0),
                start + match.start(),
                f"`{definition.name}` requires a first argument",
            )
        ]
    if requirement == ArgumentRequirement.IGNORED and argument:
        return [
            diagnostic_for(
                document,
                DiagnosticSeverity.WARNING,
                argument,
                argument_index,
                f"`{definition.name}` will ignore this first argument",
            )
        ]
    return []


def _check_custom_references(
    document: TextDocument,
    references: list[Reference],
    builtins: tuple[Descriptor, ...],
    definitions: list[Definition],
    label: str,
    options: DiagnosticsOptions,
    format_version: str | None,
) -> list[Diagnostic]:
    diagnostics: list[Diagnostic] = []
    for ref in references:
        if find_function(ref.contents, builtins) is not None:
            continue
        definition = find_function(ref.contents, definitions)
        if definition is None:
            if options.warnings.unknown_macro:
                diagnostics.extend(
                    Diagnostic(loc.range, f'{label} "{ref.contents}" not recognized', DiagnosticSeverity.WARNING)
                    for loc in ref.locations
                )
            continue

        for loc in ref.locations:
            if ref.kind == SymbolKind.CUSTOM_INSERT:
                diagnostics.extend(_validate_custom_insert(document, loc, definition, format_version))
            else:
                diagnostics.extend(_validate_custom_modifier(document, loc, definition))
    return diagnostics


# =============================================================================
# Variables, properties and passages
# =============================================================================


def _check_unset(references: list[Reference], set_kind: SymbolKind, index: ProjectIndex) -> list[Diagnostic]:
    diagnostics: list[Diagnostic] = []
    for ref in references:
        if ref.contents.split(".", 1)[0] in BUILTIN_LOOKUPS or _is_set(ref.contents, set_kind, index):
            continue
        diagnostics.extend(
            Diagnostic(
                loc.range,
                f"\"{ref.contents}\" isn't set in any vars section. Make sure you've spelled it correctly.",
                DiagnosticSeverity.WARNING,
            )
            for loc in ref.locations
        )
    return diagnostics


def _check_passages(document: TextDocument, index: ProjectIndex) -> list[Diagnostic]:
    names = set(index.get_passage_names())
    return [
        Diagnostic(loc.range, f"Cannot find passage '{ref.contents}'", DiagnosticSeverity.WARNING)
        for ref in index.get_references(document.uri, SymbolKind.PASSAGE)
        if ref.contents not in names
        for loc in ref.locations
    ]


def generate_diagnostics(
    document: TextDocument,
    index: ProjectIndex,
    options: DiagnosticsOptions | None = None,
    format_version: str | None = None,
) -> list[Diagnostic]:
    """
    Generate the diagnostics that need the whole project.

    Args:
        document: Document whose references to check
        index: Project index holding every document's references and definitions
        options: Which optional warnings to report
        format_version: Story format version, checked against custom definitions

    Returns:
        Diagnostics in reference order: inserts, modifiers, variables,
        properties, then passages
    """
    options = options or DiagnosticsOptions()
    uri = document.uri

    diagnostics = _check_custom_references(
        document,
        index.get_references(uri, SymbolKind.CUSTOM_INSERT),
        all_builtin_inserts(),
        get_custom_definitions(SymbolKind.CUSTOM_INSERT, index),
        "Insert",
        options,
        format_version,
    )
    diagnostics += _check_custom_references(
        document,
        index.get_references(uri, SymbolKind.CUSTOM_MODIFIER),
        all_builtin_modifiers(),
        get_custom_definitions(SymbolKind.CUSTOM_MODIFIER, index),
        "Modifier",
        options,
        format_version,
    )
    diagnostics += _check_unset(index.get_references(uri, SymbolKind.VARIABLE), SymbolKind.VARIABLE_SET, index)
    diagnostics += _check_unset(index.get_references(uri, SymbolKind.PROPERTY), SymbolKind.PROPERTY_SET, index)
    if options.warnings.unknown_passage:
        diagnostics += _check_passages(document, index)

    logger.debug("Generated %d project diagnostics for %s", len(diagnostics), uri)
    return diagnostics
