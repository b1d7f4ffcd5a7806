"""Routes des ressources: liaison aux contenus et recherche (avec cache par empreinte)."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from courseware.api.deps import get_container
from courseware.api.schemas import (
    LinkRequest,
    ResourceResponse,
    ResourceSearchRequest,
    ResourceSearchResponse,
    UnlinkRequest,
)
from courseware.core.container import Container
from courseware.services.resource_search import SearchParams

router = APIRouter(prefix="/resources", tags=["resources"])


@router.post("/search", response_model=ResourceSearchResponse)
async def search_resources(
    body: ResourceSearchRequest, container: Container = Depends(get_container)
) -> ResourceSearchResponse:
    """Recherche de ressources; `require_real_urls` ignore toujours le cache en lecture."""
    result = await container.resource_search.find_resources(
        SearchParams(
            topics=body.topics,
            query=body.query,
            result_type=body.type,
            limit=body.limit,
            syllabus_text=body.syllabus_text,
            require_real_urls=body.require_real_urls,
        )
    )
    return ResourceSearchResponse.from_recovered(
        result.recovered, fingerprint=result.fingerprint, cached=result.from_cache
    )


@router.post("/{resource_id}/link", response_model=ResourceResponse)
def link_resource(
    resource_id: str, body: LinkRequest, container: Container = Depends(get_container)
) -> ResourceResponse:
    resource = container.link_manager.link(resource_id, body.content_id, body.link_type)
    return ResourceResponse.from_entity(resource)


@router.post("/{resource_id}/unlink", response_model=ResourceResponse)
def unlink_resource(
    resource_id: str, body: UnlinkRequest, container: Container = Depends(get_container)
) -> ResourceResponse:
    resource = container.link_manager.unlink(resource_id, body.content_id)
    return ResourceResponse.from_entity(resource)
