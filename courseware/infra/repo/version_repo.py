# ============================================================
# Module : courseware/infra/repo/version_repo.py
# Objet  : Registre SQL des versions de contenu (append-only).
# Notes  : unicité (content_id, version_number) garantie par la base.
# ============================================================

from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from courseware.domain.entities import Version
from courseware.infra.repo.models import VersionORM


def _to_domain(row: VersionORM) -> Version:
    return Version(
        content_id=row.content_id,
        version_number=row.version_number,
        title=row.title,
        description=row.description or "",
        resource_ids=tuple(row.resource_ids or ()),
        syllabus_data=row.syllabus_data,
        changes=tuple(row.changes or ()),
        created_by=row.created_by,
        created_at=(row.created_at.isoformat() if row.created_at else ""),
    )


class VersionRepo:
    """Accès au registre des versions."""

    def __init__(self, session: Session) -> None:
        """Construit le repo avec une session (SQLAlchemy)."""
        self._session = session

    def next_number(self, content_id: str) -> int:
        """Numéro suivant: max existant + 1 (1 pour la première version)."""
        stmt = select(func.max(VersionORM.version_number)).where(
            VersionORM.content_id == content_id
        )
        current = self._session.execute(stmt).scalar()
        return (current or 0) + 1

    def add(self, version: Version) -> Version:
        """Insère une version. Lève IntegrityError sur doublon (content_id, version_number)."""
        row = VersionORM(
            content_id=version.content_id,
            version_number=version.version_number,
            title=version.title,
            description=version.description,
            resource_ids=list(version.resource_ids),
            syllabus_data=version.syllabus_data,
            changes=list(version.changes),
            created_by=version.created_by,
        )
        self._session.add(row)
        self._session.flush()
        return _to_domain(row)

    def get(self, content_id: str, version_number: int) -> Version | None:
        stmt = select(VersionORM).where(
            VersionORM.content_id == content_id,
            VersionORM.version_number == version_number,
        )
        row = self._session.execute(stmt).scalars().first()
        return _to_domain(row) if row is not None else None

    def list_for_content(self, content_id: str) -> list[Version]:
        """Versions d'un contenu, par numéro croissant."""
        stmt = (
            select(VersionORM)
            .where(VersionORM.content_id == content_id)
            .order_by(VersionORM.version_number)
        )
        return [_to_domain(r) for r in self._session.execute(stmt).scalars().all()]
