# ============================================================
# Module : courseware/infra/repo/resource_repo.py
# Objet  : Accès SQL aux ressources pédagogiques.
# Notes  : la rétro-référence content_id/link_type n'est écrite que par le
#          gestionnaire de liaisons (services/link_manager.py).
# ============================================================

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from courseware.domain.entities import LinkType, Resource
from courseware.domain.errors import NotFound
from courseware.infra.repo.models import ContentResourceORM, ResourceORM


def _to_domain(row: ResourceORM) -> Resource:
    return Resource(
        id=row.id,
        type=row.type,
        title=row.title,
        description=row.description or "",
        subject_id=row.subject_id,
        created_by=row.created_by,
        url=row.url,
        file_path=row.file_path,
        content_id=row.content_id,
        link_type=row.link_type,
    )


class ResourceRepo:
    """CRUD minimal pour Resource."""

    def __init__(self, session: Session) -> None:
        """Construit le repo avec une session (SQLAlchemy)."""
        self._session = session

    def _row(self, resource_id: str) -> ResourceORM:
        row = self._session.get(ResourceORM, resource_id)
        if row is None:
            raise NotFound("resource", resource_id)
        return row

    def create(self, resource: Resource) -> Resource:
        """Insère une ressource. Lève IntegrityError si l'identifiant existe déjà."""
        row = ResourceORM(
            id=resource.id,
            type=resource.type,
            title=resource.title,
            description=resource.description,
            url=resource.url,
            file_path=resource.file_path,
            subject_id=resource.subject_id,
            created_by=resource.created_by,
            content_id=resource.content_id,
            link_type=resource.link_type,
        )
        self._session.add(row)
        self._session.flush()
        return _to_domain(row)

    def get(self, resource_id: str) -> Resource | None:
        row = self._session.get(ResourceORM, resource_id)
        return _to_domain(row) if row is not None else None

    def set_link(self, resource_id: str, content_id: str, link_type: LinkType) -> str | None:
        """Écrit la rétro-référence et retourne le contenu précédemment lié (ou None)."""
        row = self._row(resource_id)
        previous = row.content_id
        if previous != content_id or row.link_type != link_type:
            row.content_id = content_id
            row.link_type = link_type
        return previous

    def clear_link(self, resource_id: str) -> str | None:
        """Efface la rétro-référence; retourne le contenu qui était lié."""
        row = self._row(resource_id)
        previous = row.content_id
        if previous is not None or row.link_type is not None:
            row.content_id = None
            row.link_type = None
        return previous

    def list_for_content(self, content_id: str) -> list[Resource]:
        """Ressources attachées à un contenu, dans l'ordre de la liste du contenu."""
        stmt = (
            select(ResourceORM)
            .join(ContentResourceORM, ContentResourceORM.resource_id == ResourceORM.id)
            .where(ContentResourceORM.content_id == content_id)
            .order_by(ContentResourceORM.position)
        )
        return [_to_domain(r) for r in self._session.execute(stmt).scalars().all()]

    def pool_by_type(self, content_id: str) -> dict[str, list[Resource]]:
        """Regroupe les ressources d'un contenu par type (ordre du contenu conservé)."""
        pools: dict[str, list[Resource]] = {}
        for resource in self.list_for_content(content_id):
            pools.setdefault(resource.type, []).append(resource)
        return pools
