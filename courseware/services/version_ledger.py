"""Registre des versions de contenu.

Chaque édition produit un instantané immuable numéroté 1, 2, 3… par contenu. L'insertion de la
version et la mise à jour des champs courants du contenu forment une seule transaction; un
conflit (numéro déjà pris, ligne de contenu périmée) rejoue la transaction complète.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

import structlog
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from courseware.app.metrics import VERSION_RETRIES_TOTAL
from courseware.core.locks import KeyedLock
from courseware.domain.entities import ContentUpdate, Version
from courseware.domain.errors import LinkConflict, NotFound
from courseware.infra.repo.content_repo import ContentRepo
from courseware.infra.repo.db import session_scope
from courseware.infra.repo.version_repo import VersionRepo
from courseware.services.link_manager import run_with_retries


def _as_update(updates: ContentUpdate | Mapping[str, Any] | None) -> ContentUpdate:
    if updates is None:
        return ContentUpdate()
    if isinstance(updates, ContentUpdate):
        return updates
    return ContentUpdate.model_validate(dict(updates))


def _as_changes(change_notes: Sequence[str] | str | None) -> tuple[str, ...]:
    if change_notes is None:
        return ()
    if isinstance(change_notes, str):
        return (change_notes,)
    return tuple(str(note) for note in change_notes)


class VersionLedger:
    """Création et consultation des versions."""

    def __init__(
        self,
        engine: Engine,
        *,
        max_retries: int = 3,
        retry_base_delay: float = 0.01,
        locks: KeyedLock | None = None,
    ) -> None:
        self.engine = engine
        self.max_retries = max_retries
        self.retry_base_delay = retry_base_delay
        self.locks = locks if locks is not None else KeyedLock()
        self._log = structlog.get_logger(__name__).bind(component="version_ledger")

    def create_version(
        self,
        content_id: str,
        editor_id: str,
        updates: ContentUpdate | Mapping[str, Any] | None = None,
        change_notes: Sequence[str] | str | None = None,
    ) -> Version:
        """
        Applique `updates` au contenu et enregistre l'instantané résultant.

        Les champs absents (None) conservent leur valeur précédente. L'instantané enregistre
        aussi les ressources attachées au moment de l'édition.
        """
        update = _as_update(updates)
        changes = _as_changes(change_notes)

        def work(session: Session) -> Version:
            contents = ContentRepo(session)
            versions = VersionRepo(session)
            content = contents.get(content_id)
            if content is None:
                raise NotFound("content", content_id)

            number = versions.next_number(content_id)
            title = update.title if update.title is not None else content.title
            description = (
                update.description if update.description is not None else content.description
            )
            syllabus_data = (
                update.syllabus_data if update.syllabus_data is not None else content.syllabus_data
            )
            version = versions.add(
                Version(
                    content_id=content_id,
                    version_number=number,
                    title=title,
                    description=description,
                    resource_ids=tuple(content.resource_ids),
                    syllabus_data=syllabus_data,
                    changes=changes,
                    created_by=editor_id,
                    created_at="",
                )
            )
            contents.apply_update(
                content_id,
                title=title,
                description=description,
                syllabus_data=syllabus_data,
                version_number=number,
            )
            return version

        def on_retry(attempt: int, conflict: LinkConflict) -> None:
            VERSION_RETRIES_TOTAL.inc()
            self._log.warning(
                "version_retry",
                content_id=content_id,
                attempt=attempt,
                error=conflict.details.get("error"),
            )

        with self.locks.hold(f"content:{content_id}"):
            version = run_with_retries(
                self.engine,
                work,
                operation="create_version",
                max_retries=self.max_retries,
                base_delay=self.retry_base_delay,
                on_retry=on_retry,
            )
        self._log.info(
            "version_created", content_id=content_id, version_number=version.version_number
        )
        return version

    def get_version(self, content_id: str, version_number: int) -> Version:
        """Retourne une version; `NotFound` si le contenu ou la version n'existe pas."""
        with session_scope(self.engine) as session:
            if ContentRepo(session).get(content_id) is None:
                raise NotFound("content", content_id)
            version = VersionRepo(session).get(content_id, version_number)
        if version is None:
            raise NotFound("version", f"{content_id}#{version_number}")
        return version

    def list_versions(self, content_id: str) -> list[Version]:
        """Registre complet d'un contenu, par numéro croissant (vide avant la 1re édition)."""
        with session_scope(self.engine) as session:
            if ContentRepo(session).get(content_id) is None:
                raise NotFound("content", content_id)
            return VersionRepo(session).list_for_content(content_id)
