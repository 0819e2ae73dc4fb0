"""Tests for project-wide diagnostics."""

from factories import FAKE_URI, SOURCE_URI, make_definition, make_reference

from chapbook_analyzer.core.config import DiagnosticsOptions, WarningOptions
from chapbook_analyzer.core.diagnostics import find_function, generate_diagnostics, get_custom_definitions
from chapbook_analyzer.core.positions import Location, Range, TextDocument
from chapbook_analyzer.core.types import (
    ArgumentRequirement,
    Diagnostic,
    DiagnosticSeverity,
    Passage,
    SymbolKind,
)

NO_UNKNOWN_MACROS = DiagnosticsOptions(warnings=WarningOptions(unknown_macro=False))


def _passage(name: str) -> Passage:
    return Passage(
        name=name,
        location=Location(SOURCE_URI, Range.create(0, 3, 0, 3 + len(name))),
        scope=Range.create(0, 0, 1, 0),
        text="",
        text_index=0,
    )


class TestCustomInserts:
    def test_required_first_argument(self, index) -> None:
        document = TextDocument(FAKE_URI, "Let's try {custom insert ")
        index.set_references(
            FAKE_URI, [make_reference("custom insert", SymbolKind.CUSTOM_INSERT, Range.create(0, 11, 0, 24))]
        )
        index.set_definitions(
            SOURCE_URI,
            [make_definition("custom insert", r"custom\s+insert", first_argument=ArgumentRequirement.REQUIRED)],
        )

        assert generate_diagnostics(document, index) == [
            Diagnostic(
                Range.create(0, 11, 0, 24), "`custom insert` requires a first argument", DiagnosticSeverity.ERROR
            )
        ]

    def test_ignored_first_argument(self, index) -> None:
        document = TextDocument(FAKE_URI, "Let's try {custom insert: 'arg'}")
        index.set_references(
            FAKE_URI, [make_reference("custom insert", SymbolKind.CUSTOM_INSERT, Range.create(0, 11, 0, 24))]
        )
        index.set_definitions(
            SOURCE_URI,
            [make_definition("custom insert", r"custom\s+insert", first_argument=ArgumentRequirement.IGNORED)],
        )

        assert generate_diagnostics(document, index) == [
            Diagnostic(
                Range.create(0, 26, 0, 31),
                "`custom insert` will ignore this first argument",
                DiagnosticSeverity.WARNING,
            )
        ]

    def test_version_window(self, index) -> None:
        document = TextDocument(FAKE_URI, "{custom insert}")
        index.set_references(
            FAKE_URI, [make_reference("custom insert", SymbolKind.CUSTOM_INSERT, Range.create(0, 1, 0, 14))]
        )
        index.set_definitions(SOURCE_URI, [make_definition("custom insert", r"custom\s+insert", since="2.1")])

        diagnostics = generate_diagnostics(document, index, format_version="2.0.0")

        assert [d.message for d in diagnostics] == [
            "`custom insert` isn't available until Chapbook version 2.1 but your StoryFormat version is 2.0.0"
        ]

    def test_unknown_insert(self, index) -> None:
        document = TextDocument(FAKE_URI, "{mystery thing}")
        index.set_references(
            FAKE_URI, [make_reference("mystery thing", SymbolKind.CUSTOM_INSERT, Range.create(0, 1, 0, 14))]
        )

        assert generate_diagnostics(document, index) == [
            Diagnostic(Range.create(0, 1, 0, 14), 'Insert "mystery thing" not recognized', DiagnosticSeverity.WARNING)
        ]

    def test_unknown_insert_warning_can_be_disabled(self, index) -> None:
        document = TextDocument(FAKE_URI, "{mystery thing}")
        index.set_references(
            FAKE_URI, [make_reference("mystery thing", SymbolKind.CUSTOM_INSERT, Range.create(0, 1, 0, 14))]
        )

        assert generate_diagnostics(document, index, NO_UNKNOWN_MACROS) == []

    def test_builtin_names_are_skipped(self, index) -> None:
        document = TextDocument(FAKE_URI, "{back link}")
        index.set_references(
            FAKE_URI, [make_reference("back link", SymbolKind.CUSTOM_INSERT, Range.create(0, 1, 0, 10))]
        )

        assert generate_diagnostics(document, index) == []


class TestCustomModifiers:
    def test_required_first_argument(self, index) -> None:
        document = TextDocument(FAKE_URI, "[custom mod]\n")
        index.set_references(
            FAKE_URI, [make_reference("custom mod", SymbolKind.CUSTOM_MODIFIER, Range.create(0, 1, 0, 11))]
        )
        index.set_definitions(
            SOURCE_URI,
            [
                make_definition(
                    "custom mod",
                    r"^custom\s+mod",
                    kind=SymbolKind.CUSTOM_MODIFIER,
                    first_argument=ArgumentRequirement.REQUIRED,
                )
            ],
        )

        assert generate_diagnostics(document, index) == [
            Diagnostic(Range.create(0, 1, 0, 11), "`custom mod` requires a first argument", DiagnosticSeverity.ERROR)
        ]

    def test_ignored_first_argument(self, index) -> None:
        document = TextDocument(FAKE_URI, "[custom mod extra]\n")
        index.set_references(
            FAKE_URI, [make_reference("custom mod extra", SymbolKind.CUSTOM_MODIFIER, Range.create(0, 1, 0, 17))]
        )
        index.set_definitions(
            SOURCE_URI,
            [
                make_definition(
                    "custom mod",
                    r"^custom\s+mod",
                    kind=SymbolKind.CUSTOM_MODIFIER,
                    first_argument=ArgumentRequirement.IGNORED,
                )
            ],
        )

        assert generate_diagnostics(document, index) == [
            Diagnostic(
                Range.create(0, 12, 0, 17), "`custom mod` will ignore this first argument", DiagnosticSeverity.WARNING
            )
        ]

    def test_unknown_modifier(self, index) -> None:
        document = TextDocument(FAKE_URI, "[wobble]\n")
        index.set_references(
            FAKE_URI, [make_reference("wobble", SymbolKind.CUSTOM_MODIFIER, Range.create(0, 1, 0, 7))]
        )

        assert [d.message for d in generate_diagnostics(document, index)] == ['Modifier "wobble" not recognized']


class TestVariables:
    def test_unset_variable(self, index) -> None:
        document = TextDocument(FAKE_URI, "{score}")
        index.set_references(FAKE_URI, [make_reference("score", SymbolKind.VARIABLE, Range.create(0, 1, 0, 6))])

        assert generate_diagnostics(document, index) == [
            Diagnostic(
                Range.create(0, 1, 0, 6),
                "\"score\" isn't set in any vars section. Make sure you've spelled it correctly.",
                DiagnosticSeverity.WARNING,
            )
        ]

    def test_set_in_another_document(self, index) -> None:
        document = TextDocument(FAKE_URI, "{score}")
        index.set_references(FAKE_URI, [make_reference("score", SymbolKind.VARIABLE, Range.create(0, 1, 0, 6))])
        index.set_references(
            SOURCE_URI,
            [make_reference("score", SymbolKind.VARIABLE_SET, Range.create(0, 0, 0, 5), uri=SOURCE_URI)],
        )

        assert generate_diagnostics(document, index) == []

    def test_builtin_lookups_are_exempt(self, index) -> None:
        document = TextDocument(FAKE_URI, "{passage.name}")
        index.set_references(
            FAKE_URI, [make_reference("passage.name", SymbolKind.PROPERTY, Range.create(0, 9, 0, 13))]
        )

        assert generate_diagnostics(document, index) == []

    def test_unset_property(self, index) -> None:
        document = TextDocument(FAKE_URI, "{player.name}")
        index.set_references(
            FAKE_URI, [make_reference("player.name", SymbolKind.PROPERTY, Range.create(0, 8, 0, 12))]
        )

        assert [d.message for d in generate_diagnostics(document, index)] == [
            "\"player.name\" isn't set in any vars section. Make sure you've spelled it correctly."
        ]


class TestPassages:
    def test_unknown_passage(self, index) -> None:
        document = TextDocument(FAKE_URI, "[[Attic]] [[Cellar]]")
        index.set_references(
            FAKE_URI,
            [
                make_reference("Attic", SymbolKind.PASSAGE, Range.create(0, 2, 0, 7)),
                make_reference("Cellar", SymbolKind.PASSAGE, Range.create(0, 12, 0, 18)),
            ],
        )
        index.set_passages(SOURCE_URI, [_passage("Cellar")])

        assert generate_diagnostics(document, index) == [
            Diagnostic(Range.create(0, 2, 0, 7), "Cannot find passage 'Attic'", DiagnosticSeverity.WARNING)
        ]

    def test_can_be_disabled(self, index) -> None:
        document = TextDocument(FAKE_URI, "[[Attic]]")
        index.set_references(FAKE_URI, [make_reference("Attic", SymbolKind.PASSAGE, Range.create(0, 2, 0, 7))])
        options = DiagnosticsOptions(warnings=WarningOptions(unknown_passage=False))

        assert generate_diagnostics(document, index, options) == []


class TestLookups:
    def test_custom_definitions_across_documents(self, index) -> None:
        index.set_definitions("one", [make_definition("a b", r"a\s+b")])
        index.set_definitions(
            "two",
            [
                make_definition("c d", r"c\s+d"),
                make_definition("shout", r"^shout", kind=SymbolKind.CUSTOM_MODIFIER),
            ],
        )

        names = [d.name for d in get_custom_definitions(SymbolKind.CUSTOM_INSERT, index)]

        assert names == ["a b", "c d"]

    def test_find_function(self) -> None:
        first = make_definition("a b", r"a\s+b")
        second = make_definition("a", r"a")

        assert find_function("a  b", [first, second]) is first
        assert find_function("xyz", [first, second]) is None
