"""Tests du pipeline de récupération (paliers exact, repaired, heuristic)."""

import time

import pytest

from courseware.domain.entities import RawModelResponse, Tier
from courseware.domain.kinds import ContentDraft, ObjectKind, Topic
from courseware.domain.recovery_pipeline import RecoveredObject, RecoveryPipeline, recover


@pytest.fixture
def pipeline():
    return RecoveryPipeline()


def test_fenced_valid_json_is_exact(pipeline):
    raw = 'Sure!\n```json\n{"title": "Intro", "subtopics": ["A"]}\n```\nEnjoy.'
    out = pipeline.recover(raw, ObjectKind.TOPIC)
    assert out.tier is Tier.EXACT
    assert out.repairs == ()
    assert not out.approximate
    assert out.value == Topic(title="Intro", subtopics=["A"])


def test_bare_keys_and_trailing_commas_are_repaired(pipeline):
    raw = 'Here is your result:\n```json\n{title: "Intro", subtopics: ["A","B",],}\n```'
    out = pipeline.recover(raw, ObjectKind.TOPIC)
    assert out.tier is Tier.REPAIRED
    assert out.data == {"title": "Intro", "subtopics": ["A", "B"]}
    assert out.repairs == ("quote_bare_keys", "remove_trailing_commas")


def test_truncated_payload_is_balanced(pipeline):
    raw = '{"title": "Intro", "subtopics": ["A", "B"'
    out = pipeline.recover(raw, ObjectKind.TOPIC)
    assert out.tier is Tier.REPAIRED
    assert out.value.subtopics == ["A", "B"]
    assert out.repairs[-1] == "balance_closers"


def test_commentary_after_object_stays_exact(pipeline):
    raw = '{"title": "Intro", "subtopics": ["A"]} Hope this helps!'
    out = pipeline.recover(raw, ObjectKind.TOPIC)
    assert out.tier is Tier.EXACT
    assert out.value == Topic(title="Intro", subtopics=["A"])


def test_resource_list_extracts_array_span(pipeline):
    raw = (
        'Resources: [{"id": "1", "title": "T", "description": "D", '
        '"url": "https://docs.python.org", "type": "article", "source": "python.org"}] done'
    )
    out = pipeline.recover(raw, ObjectKind.RESOURCE_LIST)
    assert out.tier is Tier.EXACT
    assert out.value[0].url == "https://docs.python.org"


def test_wrong_shape_falls_to_heuristic(pipeline):
    out = pipeline.recover('{"unexpected": true}', ObjectKind.CONTENT_DRAFT, "Cells")
    assert out.tier is Tier.HEURISTIC
    assert out.approximate
    assert isinstance(out.value, ContentDraft)
    assert out.value.title == "Cells"


def test_prose_goes_to_heuristic_with_key_points(pipeline):
    raw = "Cells are the unit of life.\n\nKey points:\n1. Membrane\n2. Nucleus\n"
    out = pipeline.recover(raw, ObjectKind.CONTENT_DRAFT, {"title": "Cells"})
    assert out.tier is Tier.HEURISTIC
    assert out.value.key_points == ["Membrane", "Nucleus"]


@pytest.mark.parametrize("raw", [None, "", "   ", "```", "{{{", "]", "null", "42", '"text"'])
def test_never_raises_and_always_valid(pipeline, raw):
    for kind in ObjectKind:
        out = pipeline.recover(raw, kind)
        assert out.kind is kind
        assert out.tier in (Tier.EXACT, Tier.REPAIRED, Tier.HEURISTIC)


def test_custom_repair_steps_are_respected():
    no_repairs = RecoveryPipeline(repair_steps=[])
    out = no_repairs.recover('{"title": "X", "subtopics": [],}', ObjectKind.TOPIC)
    assert out.tier is Tier.HEURISTIC


def test_max_content_chars_bounds_heuristic_content():
    out = RecoveryPipeline(max_content_chars=5).recover("abcdefghij", ObjectKind.CONTENT_DRAFT, "T")
    assert out.value.content == "abcde"


def test_recover_response_uses_text(pipeline):
    response = RawModelResponse(text='{"title": "A", "subtopics": "B"}', prompt="p")
    out = pipeline.recover_response(response, ObjectKind.TOPIC)
    assert out.tier is Tier.EXACT
    assert out.value.subtopics == ["B"]


def test_module_level_recover_takes_context_first():
    out = recover({"title": "Biology"}, "no json here", ObjectKind.TOPIC)
    assert out.tier is Tier.HEURISTIC
    assert out.value.title == "Biology"


def test_to_dict_from_dict_preserves_tier_and_repairs(pipeline):
    out = pipeline.recover('{title: "Intro", subtopics: ["A"]}', ObjectKind.TOPIC)
    restored = RecoveredObject.from_dict(out.to_dict())
    assert restored.tier is out.tier
    assert restored.repairs == out.repairs
    assert restored.value == out.value


def test_long_blank_runs_stay_linear(pipeline):
    raw = "Key points:\n" + "\n" * 40000 + "- a\n"
    started = time.perf_counter()
    out = pipeline.recover(raw, ObjectKind.CONTENT_DRAFT, {"title": "Spacing"})
    assert time.perf_counter() - started < 2.0
    assert out.tier is Tier.HEURISTIC
    assert out.value.key_points == ["a"]
