"""Tests des dépôts SQL (contenus, ressources, versions)."""

import pytest
from sqlalchemy.exc import IntegrityError

from courseware.domain.entities import Version
from courseware.domain.errors import NotFound
from courseware.infra.repo.content_repo import ContentRepo
from courseware.infra.repo.db import session_scope
from courseware.infra.repo.resource_repo import ResourceRepo
from courseware.infra.repo.version_repo import VersionRepo
from tests.fakes import make_content, make_resource


def _version(number, content_id="c1"):
    return Version(
        content_id=content_id,
        version_number=number,
        title="T",
        description="D",
        resource_ids=("r1",),
        syllabus_data=None,
        changes=("edit",),
        created_by="u1",
        created_at="",
    )


def test_content_create_dedupes_initial_resources(engine):
    with session_scope(engine) as s:
        created = ContentRepo(s).create(make_content("c1", resource_ids=["r1", "r2", "r1"]))
    assert created.resource_ids == ["r1", "r2"]
    assert created.current_version_number == 0


def test_attach_is_idempotent_and_ordered(engine, seed):
    seed(contents=["c1"], resources=["r1", "r2"])
    with session_scope(engine) as s:
        repo = ContentRepo(s)
        assert repo.attach_resource("c1", "r2") is True
        assert repo.attach_resource("c1", "r1") is True
        assert repo.attach_resource("c1", "r2") is False
    with session_scope(engine) as s:
        assert ContentRepo(s).get("c1").resource_ids == ["r2", "r1"]


def test_detach_missing_returns_false(engine, seed):
    seed(contents=["c1"])
    with session_scope(engine) as s:
        assert ContentRepo(s).detach_resource("c1", "r9") is False


def test_unknown_content_raises_not_found(engine):
    with pytest.raises(NotFound):
        with session_scope(engine) as s:
            ContentRepo(s).attach_resource("missing", "r1")


def test_pool_by_type_keeps_content_order(engine, seed):
    seed(
        contents=[make_content("c1", resource_ids=["v1", "a1", "a2"])],
        resources=[
            make_resource("a1"),
            make_resource("v1", type="video"),
            make_resource("a2"),
        ],
    )
    with session_scope(engine) as s:
        pools = ResourceRepo(s).pool_by_type("c1")
    assert {k: [r.id for r in v] for k, v in pools.items()} == {
        "video": ["v1"],
        "article": ["a1", "a2"],
    }


def test_set_link_returns_previous_content(engine, seed):
    seed(contents=["c1", "c2"], resources=["r1"])
    with session_scope(engine) as s:
        repo = ResourceRepo(s)
        assert repo.set_link("r1", "c1", "primary") is None
        assert repo.set_link("r1", "c2", "supplementary") == "c1"
        assert repo.clear_link("r1") == "c2"
        assert repo.get("r1").content_id is None


def test_version_numbers_and_uniqueness(engine, seed):
    seed(contents=["c1"])
    with session_scope(engine) as s:
        repo = VersionRepo(s)
        assert repo.next_number("c1") == 1
        repo.add(_version(1))
        assert repo.next_number("c1") == 2
    with pytest.raises(IntegrityError):
        with session_scope(engine) as s:
            VersionRepo(s).add(_version(1))
    with session_scope(engine) as s:
        versions = VersionRepo(s).list_for_content("c1")
    assert [v.version_number for v in versions] == [1]
    assert versions[0].created_at
