"""Routes des contenus: registre de versions et ressources attachées."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from courseware.api.deps import get_container
from courseware.api.schemas import CreateVersionRequest, ResourceResponse, VersionResponse
from courseware.core.container import Container
from courseware.domain.entities import ContentUpdate
from courseware.domain.errors import NotFound
from courseware.infra.repo.content_repo import ContentRepo
from courseware.infra.repo.db import session_scope
from courseware.infra.repo.resource_repo import ResourceRepo

router = APIRouter(prefix="/contents", tags=["contents"])


@router.post("/{content_id}/versions", response_model=VersionResponse, status_code=201)
def create_version(
    content_id: str, body: CreateVersionRequest, container: Container = Depends(get_container)
) -> VersionResponse:
    """Applique une édition et enregistre la version correspondante."""
    version = container.version_ledger.create_version(
        content_id,
        body.editor_id,
        ContentUpdate(
            title=body.title, description=body.description, syllabus_data=body.syllabus_data
        ),
        body.changes,
    )
    return VersionResponse.from_entity(version)


@router.get("/{content_id}/versions", response_model=list[VersionResponse])
def list_versions(
    content_id: str, container: Container = Depends(get_container)
) -> list[VersionResponse]:
    return [VersionResponse.from_entity(v) for v in container.version_ledger.list_versions(content_id)]


@router.get("/{content_id}/versions/{version_number}", response_model=VersionResponse)
def get_version(
    content_id: str, version_number: int, container: Container = Depends(get_container)
) -> VersionResponse:
    return VersionResponse.from_entity(
        container.version_ledger.get_version(content_id, version_number)
    )


@router.get("/{content_id}/resources", response_model=dict[str, list[ResourceResponse]])
def resources_by_type(
    content_id: str, container: Container = Depends(get_container)
) -> dict[str, list[ResourceResponse]]:
    """Ressources attachées au contenu, regroupées par type."""
    with session_scope(container.engine) as session:
        if ContentRepo(session).get(content_id) is None:
            raise NotFound("content", content_id)
        pools = ResourceRepo(session).pool_by_type(content_id)
    return {kind: [ResourceResponse.from_entity(r) for r in items] for kind, items in pools.items()}
