# ============================================================
# Module : courseware/infra/repo/content_repo.py
# Objet  : Accès SQL aux contenus et à leur liste ordonnée de ressources.
# ============================================================

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from sqlalchemy.orm import Session

from courseware.domain.entities import Content
from courseware.domain.errors import NotFound
from courseware.infra.repo.models import ContentORM, ContentResourceORM


def _to_domain(row: ContentORM) -> Content:
    return Content(
        id=row.id,
        title=row.title,
        description=row.description or "",
        subject_id=row.subject_id,
        created_by=row.created_by,
        resource_ids=[link.resource_id for link in row.resource_links],
        syllabus_data=row.syllabus_data,
        current_version_number=row.current_version_number or 0,
    )


class ContentRepo:
    """Lecture/écriture des contenus."""

    def __init__(self, session: Session) -> None:
        """Construit le repo avec une session (SQLAlchemy)."""
        self._session = session

    def _row(self, content_id: str) -> ContentORM:
        row = self._session.get(ContentORM, content_id)
        if row is None:
            raise NotFound("content", content_id)
        return row

    def create(self, content: Content) -> Content:
        """Insère un contenu (et sa liste initiale de ressources, dans l'ordre donné)."""
        row = ContentORM(
            id=content.id,
            title=content.title,
            description=content.description,
            subject_id=content.subject_id,
            created_by=content.created_by,
            syllabus_data=content.syllabus_data,
            current_version_number=content.current_version_number,
        )
        for position, resource_id in enumerate(dict.fromkeys(content.resource_ids)):
            row.resource_links.append(
                ContentResourceORM(content_id=content.id, resource_id=resource_id, position=position)
            )
        self._session.add(row)
        self._session.flush()
        return _to_domain(row)

    def get(self, content_id: str) -> Content | None:
        row = self._session.get(ContentORM, content_id)
        return _to_domain(row) if row is not None else None

    def attach_resource(self, content_id: str, resource_id: str) -> bool:
        """Ajoute `resource_id` en fin de liste s'il est absent. Retourne True si ajouté."""
        row = self._row(content_id)
        if any(link.resource_id == resource_id for link in row.resource_links):
            return False
        position = max((link.position for link in row.resource_links), default=-1) + 1
        row.resource_links.append(
            ContentResourceORM(content_id=content_id, resource_id=resource_id, position=position)
        )
        # force l'UPDATE de la ligne parente: incrémente row_version
        row.updated_at = datetime.now(UTC)
        return True

    def detach_resource(self, content_id: str, resource_id: str) -> bool:
        """Retire `resource_id` de la liste. Retourne True si une référence a été retirée."""
        row = self._row(content_id)
        kept = [link for link in row.resource_links if link.resource_id != resource_id]
        if len(kept) == len(row.resource_links):
            return False
        row.resource_links = kept
        row.updated_at = datetime.now(UTC)
        return True

    def apply_update(
        self,
        content_id: str,
        *,
        title: str,
        description: str,
        syllabus_data: dict[str, Any] | None,
        version_number: int,
    ) -> Content:
        """Écrit les champs courants et le pointeur de version."""
        row = self._row(content_id)
        row.title = title
        row.description = description
        row.syllabus_data = syllabus_data
        row.current_version_number = version_number
        self._session.flush()
        return _to_domain(row)
