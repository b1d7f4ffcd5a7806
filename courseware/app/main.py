"""
Application principale FastAPI.

Responsabilités du module:
- Initialiser le logging structuré
- Construire l'application avec son conteneur de dépendances
- Ajouter les middlewares (request id, métriques Prometheus)
- Brancher la gestion d'erreurs standardisée
- Monter les routers (santé, contenus, ressources, génération, métriques)
"""

from __future__ import annotations

from fastapi import FastAPI

from courseware.api.errors import register_error_handlers
from courseware.api.routes_contents import router as contents_router
from courseware.api.routes_generation import router as generation_router
from courseware.api.routes_health import router as health_router
from courseware.api.routes_resources import router as resources_router
from courseware.app.metrics import PrometheusMiddleware, metrics_router
from courseware.app.middleware import RequestIDMiddleware
from courseware.core.container import Container
from courseware.core.logging import setup_logging


def create_app(container: Container | None = None) -> FastAPI:
    """
    Construit et retourne l'application FastAPI prête à l'usage.

    Un conteneur peut être injecté (tests); sinon il est construit depuis l'environnement.
    """
    setup_logging()
    container = container if container is not None else Container()
    settings = container.settings
    app = FastAPI(title=settings.APP_NAME, debug=settings.APP_DEBUG)
    app.state.container = container
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(PrometheusMiddleware)
    register_error_handlers(app)
    app.include_router(health_router)
    app.include_router(contents_router)
    app.include_router(resources_router)
    app.include_router(generation_router)
    app.include_router(metrics_router)
    return app


app = create_app()
