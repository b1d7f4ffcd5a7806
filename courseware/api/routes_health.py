"""
Endpoint de santé: disponibilité de l'API et backend du cache.
"""

from fastapi import APIRouter, Depends

from courseware.api.deps import get_container
from courseware.core.container import Container

router = APIRouter(tags=["health"])


@router.get("/health")
def health(container: Container = Depends(get_container)):
    """Vérifie la disponibilité de l'API et le backend de cache."""
    return {
        "status": "ok",
        "cache": container.storage_backend,
        "redis_url": bool(container.settings.REDIS_URL),
    }
