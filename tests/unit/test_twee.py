"""Tests for Twee 3 story documents."""

from chapbook_analyzer.core.positions import Range, TextDocument
from chapbook_analyzer.core.twee import index_story, parse_story, read_story_format, split_passages
from chapbook_analyzer.core.types import StoryFormat, SymbolKind

STORY = ':: StoryTitle\nMy Story\n\n:: Start [tag1 tag2] {"position":"100,100"}\nHello\n'


def _document(text: str) -> TextDocument:
    return TextDocument("story.twee", text)


class TestSplitPassages:
    def test_headers(self) -> None:
        passages = split_passages(_document(STORY))

        assert [p.name for p in passages] == ["StoryTitle", "Start"]
        start = passages[1]
        assert start.tags == ("tag1", "tag2")
        assert start.location.range == Range.create(3, 3, 3, 8)
        assert start.text == "Hello\n"
        assert start.scope == Range.create(3, 0, 4, 5)

    def test_escaped_name(self) -> None:
        passages = split_passages(_document(":: A\\[b\\] [t]\ntext"))

        assert passages[0].name == "A[b]"
        assert passages[0].tags == ("t",)

    def test_header_on_last_line(self) -> None:
        passages = split_passages(_document(":: Start\n:: End"))

        assert [p.name for p in passages] == ["Start", "End"]
        assert passages[1].text == ""
        assert passages[1].scope == Range.create(1, 0, 1, 6)

    def test_triple_colon_is_not_a_header(self) -> None:
        passages = split_passages(_document(":: Start\n::: not a header"))

        assert [p.name for p in passages] == ["Start"]


class TestStoryFormat:
    def test_story_data(self) -> None:
        passages = split_passages(
            _document(':: StoryData\n{"format": "Chapbook", "format-version": "2.0.0"}\n\n:: Start\nHi')
        )

        assert read_story_format(passages) == StoryFormat("Chapbook", "2.0.0")

    def test_unreadable_story_data(self) -> None:
        assert read_story_format(split_passages(_document(":: StoryData\n{nope\n"))) is None

    def test_no_story_data(self) -> None:
        assert read_story_format(split_passages(_document(STORY))) is None


class TestParseStory:
    def test_special_passages_are_skipped(self) -> None:
        story = parse_story(_document(":: Styles [stylesheet]\n{color}\n:: Start\n{score}"))

        assert [r.contents for r in story.result.references if r.kind == SymbolKind.VARIABLE] == ["score"]

    def test_script_passages_register_definitions(self) -> None:
        text = ":: Code [script]\nengine.extend('2.0.0', () => { engine.template.inserts.add({match: /a\\s+b/}); });\n"

        story = parse_story(_document(text))

        assert [d.contents for d in story.result.definitions] == [r"a\s+b"]
        assert story.result.tokens == []

    def test_pinned_format_wins(self) -> None:
        text = ':: StoryData\n{"format": "Chapbook", "format-version": "2.0.0"}\n\n:: Start\nHi'
        pinned = StoryFormat("Chapbook", "2.1.0")

        assert parse_story(_document(text), pinned).story_format == pinned

    def test_index_story(self, index) -> None:
        document = _document(":: Start\nscore: 1\n--\n[[Cellar]]\n\n:: Cellar\n{score}")

        index_story(document, index)

        assert index.get_passage_names() == ["Start", "Cellar"]
        assert [r.contents for r in index.get_references("story.twee", SymbolKind.PASSAGE)] == ["Cellar"]
        assert [r.contents for r in index.get_references("story.twee", SymbolKind.VARIABLE_SET)] == ["score"]
