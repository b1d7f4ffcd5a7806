"""Tests du registre de versions."""

import threading
import time

import pytest
from sqlalchemy.exc import IntegrityError

from courseware.domain.entities import ContentUpdate
from courseware.domain.errors import NotFound, TransientFailure
from courseware.infra.repo.content_repo import ContentRepo
from courseware.infra.repo.db import session_scope
from courseware.infra.repo.version_repo import VersionRepo
from courseware.services.link_manager import LinkTransactionManager
from courseware.services.version_ledger import VersionLedger


@pytest.fixture
def ledger(engine, seed):
    seed(contents=["c1"], resources=["r1"])
    return VersionLedger(engine, max_retries=3, retry_base_delay=0.0)


def test_versions_are_numbered_from_one(ledger):
    numbers = [
        ledger.create_version("c1", "u1", {"title": f"T{i}"}).version_number for i in range(3)
    ]
    assert numbers == [1, 2, 3]
    assert [v.title for v in ledger.list_versions("c1")] == ["T0", "T1", "T2"]


def test_current_fields_and_pointer_follow_last_version(ledger, engine):
    ledger.create_version("c1", "u1", ContentUpdate(title="New", description="Desc"))
    with session_scope(engine) as s:
        content = ContentRepo(s).get("c1")
    assert (content.title, content.description, content.current_version_number) == ("New", "Desc", 1)


def test_absent_fields_keep_previous_values(ledger):
    ledger.create_version("c1", "u1", {"title": "A", "syllabus_data": {"weeks": 3}})
    second = ledger.create_version("c1", "u2", {"description": "only description"})
    assert second.title == "A"
    assert second.syllabus_data == {"weeks": 3}
    assert second.created_by == "u2"


def test_snapshot_records_attached_resources(ledger, engine):
    LinkTransactionManager(engine, retry_base_delay=0.0).link("r1", "c1")
    version = ledger.create_version("c1", "u1")
    assert version.resource_ids == ("r1",)


def test_change_notes_accept_string_or_list(ledger):
    assert ledger.create_version("c1", "u1", change_notes="typo").changes == ("typo",)
    assert ledger.create_version("c1", "u1", change_notes=["a", "b"]).changes == ("a", "b")
    assert ledger.create_version("c1", "u1").changes == ()


def test_versions_are_immutable_snapshots(ledger):
    ledger.create_version("c1", "u1", {"title": "First"})
    ledger.create_version("c1", "u1", {"title": "Second"})
    assert ledger.get_version("c1", 1).title == "First"


def test_empty_ledger_before_first_edit(ledger):
    assert ledger.list_versions("c1") == []


def test_not_found_cases(ledger):
    with pytest.raises(NotFound):
        ledger.create_version("missing", "u1")
    with pytest.raises(NotFound):
        ledger.list_versions("missing")
    with pytest.raises(NotFound) as exc:
        ledger.get_version("c1", 7)
    assert exc.value.entity == "version"


def test_number_collision_is_retried(ledger, monkeypatch):
    original = VersionRepo.add
    calls = []

    def collide(self, version):
        calls.append(version.version_number)
        if len(calls) == 1:
            raise IntegrityError("INSERT", {}, Exception("uq_content_version_number"))
        return original(self, version)

    monkeypatch.setattr(VersionRepo, "add", collide)
    version = ledger.create_version("c1", "u1", {"title": "X"})
    assert version.version_number == 1
    assert calls == [1, 1]


def test_persistent_conflict_raises_transient_failure(ledger, monkeypatch):
    def collide(self, version):
        raise IntegrityError("INSERT", {}, Exception("uq_content_version_number"))

    monkeypatch.setattr(VersionRepo, "add", collide)
    with pytest.raises(TransientFailure):
        ledger.create_version("c1", "u1", {"title": "X"})
    assert ledger.list_versions("c1") == []


def test_failed_edit_is_not_committed_by_concurrent_link(ledger, seed, engine, monkeypatch):
    seed(contents=["c2"])
    original = VersionRepo.add
    flushed = threading.Event()
    link_started = threading.Event()

    def add_then_fail(self, version):
        original(self, version)
        self._session.flush()
        flushed.set()
        link_started.wait(timeout=2)
        time.sleep(0.2)
        raise RuntimeError("editor crashed")

    monkeypatch.setattr(VersionRepo, "add", add_then_fail)
    errors: list[Exception] = []

    def edit():
        try:
            ledger.create_version("c1", "u1", {"title": "Half done"})
        except RuntimeError as exc:
            errors.append(exc)

    def link():
        flushed.wait(timeout=2)
        link_started.set()
        LinkTransactionManager(engine, retry_base_delay=0.0).link("r1", "c2")

    threads = [threading.Thread(target=edit), threading.Thread(target=link)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=10)

    assert len(errors) == 1
    assert ledger.list_versions("c1") == []
    with session_scope(engine) as s:
        c1 = ContentRepo(s).get("c1")
        c2 = ContentRepo(s).get("c2")
    assert (c1.title, c1.current_version_number) == ("Title c1", 0)
    assert c2.resource_ids == ["r1"]
