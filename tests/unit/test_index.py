"""Tests for the in-memory project index."""

from factories import FAKE_URI, SOURCE_URI, make_definition, make_reference

from chapbook_analyzer.core.index import InMemoryIndex, merge_references
from chapbook_analyzer.core.positions import Location, Position, Range
from chapbook_analyzer.core.types import Passage, SymbolKind


def _passage(name: str, uri: str = FAKE_URI, scope: Range | None = None) -> Passage:
    return Passage(
        name=name,
        location=Location(uri, Range.create(0, 3, 0, 3 + len(name))),
        scope=scope or Range.create(0, 0, 2, 0),
        text="",
        text_index=0,
    )


class TestMergeReferences:
    def test_same_symbol_is_merged(self) -> None:
        merged = merge_references(
            [
                make_reference("score", SymbolKind.VARIABLE, Range.create(0, 1, 0, 6)),
                make_reference("score", SymbolKind.VARIABLE_SET, Range.create(1, 0, 1, 5)),
                make_reference("score", SymbolKind.VARIABLE, Range.create(2, 1, 2, 6)),
            ]
        )

        assert [(r.contents, r.kind, len(r.locations)) for r in merged] == [
            ("score", SymbolKind.VARIABLE, 2),
            ("score", SymbolKind.VARIABLE_SET, 1),
        ]

    def test_inputs_are_not_modified(self) -> None:
        first = make_reference("a", SymbolKind.VARIABLE, Range.create(0, 0, 0, 1))
        second = make_reference("a", SymbolKind.VARIABLE, Range.create(1, 0, 1, 1))

        merge_references([first, second])

        assert len(first.locations) == 1


class TestInMemoryIndex:
    def test_set_replaces_previous_entries(self, index: InMemoryIndex) -> None:
        index.set_references(FAKE_URI, [make_reference("a", SymbolKind.VARIABLE, Range.create(0, 0, 0, 1))])
        index.set_references(FAKE_URI, [make_reference("b", SymbolKind.VARIABLE, Range.create(0, 0, 0, 1))])

        assert [r.contents for r in index.get_references(FAKE_URI)] == ["b"]

    def test_filter_by_kind(self, index: InMemoryIndex) -> None:
        index.set_references(
            FAKE_URI,
            [
                make_reference("a", SymbolKind.VARIABLE, Range.create(0, 0, 0, 1)),
                make_reference("Cellar", SymbolKind.PASSAGE, Range.create(1, 2, 1, 8)),
            ],
        )
        index.set_definitions(
            FAKE_URI,
            [
                make_definition("a b", r"a\s+b"),
                make_definition("shout", r"^shout", kind=SymbolKind.CUSTOM_MODIFIER),
            ],
        )

        assert [r.contents for r in index.get_references(FAKE_URI, SymbolKind.PASSAGE)] == ["Cellar"]
        assert [d.name for d in index.get_definitions(FAKE_URI, SymbolKind.CUSTOM_MODIFIER)] == ["shout"]
        assert index.get_references("unknown-uri") == []

    def test_references_at(self, index: InMemoryIndex) -> None:
        index.set_references(FAKE_URI, [make_reference("score", SymbolKind.VARIABLE, Range.create(0, 1, 0, 6))])

        assert index.get_references_at(FAKE_URI, Position(0, 6)).contents == "score"
        assert index.get_references_at(FAKE_URI, Position(0, 7)) is None
        assert index.get_references_at(SOURCE_URI, Position(0, 3)) is None

    def test_passage_at(self, index: InMemoryIndex) -> None:
        index.set_passages(
            FAKE_URI,
            [_passage("Start", scope=Range.create(0, 0, 1, 5)), _passage("End", scope=Range.create(3, 0, 4, 2))],
        )

        assert index.get_passage_at(FAKE_URI, Position(1, 2)).name == "Start"
        assert index.get_passage_at(FAKE_URI, Position(4, 0)).name == "End"
        assert index.get_passage_at(FAKE_URI, Position(2, 0)) is None

    def test_passage_names_are_unique(self, index: InMemoryIndex) -> None:
        index.set_passages(FAKE_URI, [_passage("Start"), _passage("Cellar")])
        index.set_passages(SOURCE_URI, [_passage("Start", uri=SOURCE_URI)])

        assert index.get_passage_names() == ["Start", "Cellar"]

    def test_remove_document(self, index: InMemoryIndex) -> None:
        index.set_references(FAKE_URI, [make_reference("a", SymbolKind.VARIABLE, Range.create(0, 0, 0, 1))])
        index.set_passages(FAKE_URI, [_passage("Start")])
        index.set_definitions(SOURCE_URI, [make_definition("a b", r"a\s+b")])

        index.remove_document(FAKE_URI)

        assert index.get_indexed_uris() == [SOURCE_URI]
        assert index.get_passage_names() == []

    def test_indexed_uris(self, index: InMemoryIndex) -> None:
        index.set_definitions(SOURCE_URI, [])
        index.set_references(FAKE_URI, [])

        assert index.get_indexed_uris() == [FAKE_URI, SOURCE_URI]
