"""Tests de la reconstruction heuristique depuis de la prose."""

import pytest

from courseware.domain.heuristic_reconstructor import (
    DEFAULT_KEY_POINTS,
    default_object,
    find_section,
    reconstruct,
    split_items,
)
from courseware.domain.kinds import ObjectKind
from courseware.domain.schema_validator import validate


def test_split_items_bullets_and_numbers():
    assert split_items(["- one", "* two", "• three", "4. four", "5) five"]) == [
        "one",
        "two",
        "three",
        "four",
        "five",
    ]


def test_split_items_single_line_splits_on_commas():
    assert split_items(["alpha, beta; gamma"]) == ["alpha", "beta", "gamma"]


def test_find_section_stops_at_next_heading():
    text = "Intro text\nKey points:\n- A\n- B\nExamples:\n- E1\n"
    lines, span = find_section(text, (r"key\s+points",))
    assert split_items(lines) == ["A", "B"]
    assert span == (1, 4)


def test_find_section_absent():
    assert find_section("nothing here", (r"examples?",)) is None


def test_content_draft_from_prose():
    text = (
        "Photosynthesis converts light into chemical energy.\n\n"
        "Key points:\n- Chlorophyll absorbs light\n- Produces glucose\n\n"
        "Examples:\n- Leaves\n"
    )
    data, value = reconstruct(text, ObjectKind.CONTENT_DRAFT, {"title": "Photosynthesis"})
    assert value.title == "Photosynthesis"
    assert value.key_points == ["Chlorophyll absorbs light", "Produces glucose"]
    assert value.examples == ["Leaves"]
    assert value.content.startswith("Photosynthesis converts light")
    assert "Key points" not in value.content


def test_content_draft_uses_content_fragment():
    text = '{"title": "T", "content": "Line one\\nLine two", "keyPoints": ["a", oops'
    _, value = reconstruct(text, ObjectKind.CONTENT_DRAFT, "Topic")
    assert value.content == "Line one\nLine two"


def test_content_draft_default_key_points():
    _, value = reconstruct("Just a paragraph.", ObjectKind.CONTENT_DRAFT, "T")
    assert value.key_points == DEFAULT_KEY_POINTS


def test_content_draft_respects_max_content_chars():
    _, value = reconstruct("x" * 50, ObjectKind.CONTENT_DRAFT, "T", max_content_chars=10)
    assert value.content == "x" * 10


def test_topic_from_context_and_bullets():
    _, value = reconstruct("Things to cover:\n- Loops\n- Functions", ObjectKind.TOPIC, "Python")
    assert value.title == "Python"
    assert value.subtopics == ["Loops", "Functions"]


def test_syllabus_from_weeks_and_hours():
    text = (
        "Week 1: Introduction (3 hours)\n- History\n- Tools\n"
        "Week 2: Data structures (4 hours)\n- Lists\n\n"
        "Prerequisites:\n- Basic algebra\n"
    )
    _, value = reconstruct(text, ObjectKind.SYLLABUS_ANALYSIS)
    assert [t.title for t in value.topics] == [
        "Introduction (3 hours)",
        "Data structures (4 hours)",
    ]
    assert value.topics[0].subtopics == ["History", "Tools"]
    assert value.total_duration == 7.0
    assert value.prerequisites == ["Basic algebra"]


def test_slide_outline_from_slide_markers():
    text = (
        "Slide 1: Welcome\n- Agenda\nNotes: greet the class\n"
        "Slide 2: Basics\n- Point A\n- Point B\n"
    )
    _, value = reconstruct(text, ObjectKind.SLIDE_OUTLINE, "Deck")
    assert [s.title for s in value.slides] == ["Welcome", "Basics"]
    assert value.slides[0].notes == "greet the class"
    assert value.slides[1].content == ["Point A", "Point B"]


def test_lecture_outline_from_headings():
    text = "## Part one\n- a\n- b\n## Part two\n- c\n"
    _, value = reconstruct(text, ObjectKind.LECTURE_OUTLINE, "Lecture")
    assert [s.title for s in value.sections] == ["Part one", "Part two"]
    assert value.sections[0].content == ["a", "b"]


def test_resource_list_from_urls():
    text = (
        "- Python tutorial: https://docs.python.org/3/tutorial/\n"
        "- Watch https://www.youtube.com/watch?v=abc\n"
    )
    data, value = reconstruct(text, ObjectKind.RESOURCE_LIST, "Python")
    assert [r.url for r in value] == [
        "https://docs.python.org/3/tutorial/",
        "https://www.youtube.com/watch?v=abc",
    ]
    assert value[1].type == "video"
    assert data[0]["id"] == "res_heuristic_0"


def test_resource_list_placeholder_when_no_url():
    _, value = reconstruct("no links at all", ObjectKind.RESOURCE_LIST, "Python")
    assert len(value) == 1
    assert value[0].url.startswith("https://example.com/")


@pytest.mark.parametrize("kind", list(ObjectKind))
def test_empty_input_yields_valid_placeholder(kind):
    data, value = reconstruct("", kind)
    assert validate(data, kind) == value


@pytest.mark.parametrize("kind", list(ObjectKind))
def test_default_object_is_shape_valid(kind):
    validate(default_object(kind, "Topic"), kind)


@pytest.mark.parametrize(
    "text",
    ["{{{{", "]]]", "\x00\x01binary", "Slide 1:\nSlide 2:", "Week 1:\n", "```json\n```"],
)
def test_garbage_never_raises(text):
    for kind in ObjectKind:
        reconstruct(text, kind)


def test_find_section_spans_blank_lines_between_bullets():
    text = "Key points:\n- A\n\n\n- B\n\nClosing remark\n"
    lines, span = find_section(text, (r"key\s+points",))
    assert split_items(lines) == ["A", "B"]
    assert span == (0, 5)
