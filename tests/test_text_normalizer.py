"""Tests de la normalisation du texte brut (bloc délimité puis portée structurelle)."""

from courseware.domain.kinds import ObjectKind
from courseware.domain.text_normalizer import extract_fenced, extract_structural_span, normalize


def test_extract_fenced_returns_first_non_empty_block():
    text = 'Here you go:\n```\n```\n```json\n{"a": 1}\n```\nand ```{"b": 2}```'
    assert extract_fenced(text) == '{"a": 1}'


def test_extract_fenced_without_fence_is_identity():
    assert extract_fenced("plain text {x}") == "plain text {x}"


def test_extract_fenced_unterminated_block_takes_the_rest():
    text = 'Sure!\n```json\n{"title": "Intro", "subtopics": ["A"'
    assert extract_fenced(text) == '{"title": "Intro", "subtopics": ["A"'


def test_structural_span_object_kind():
    text = 'The answer is {"title": "X", "subtopics": []} as requested.'
    assert extract_structural_span(text, ObjectKind.TOPIC) == '{"title": "X", "subtopics": []}'


def test_structural_span_missing_closer_runs_to_end():
    text = 'prefix {"title": "X", "subtopics": ["a"'
    assert extract_structural_span(text, ObjectKind.TOPIC) == '{"title": "X", "subtopics": ["a"'


def test_structural_span_list_kind_prefers_brackets():
    text = 'Resources: [{"id": "1"}] done'
    assert extract_structural_span(text, ObjectKind.RESOURCE_LIST) == '[{"id": "1"}]'


def test_structural_span_list_kind_falls_back_to_object():
    text = 'Only one: {"id": "1"} done'
    assert extract_structural_span(text, ObjectKind.RESOURCE_LIST) == '{"id": "1"}'


def test_structural_span_drops_commentary_after_closed_object():
    text = '  {"a": {"b": "}"}} Hope this helps! {x}'
    assert extract_structural_span(text, ObjectKind.TOPIC) == '{"a": {"b": "}"}}'


def test_structural_span_leaves_unfinished_object_untouched():
    assert extract_structural_span('{"a": [1, 2', ObjectKind.TOPIC) == '{"a": [1, 2'


def test_normalize_handles_none_and_empty():
    assert normalize("", ObjectKind.TOPIC) == ""
    assert normalize(None, ObjectKind.TOPIC) == ""  # type: ignore[arg-type]
