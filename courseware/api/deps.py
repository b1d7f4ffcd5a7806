"""Dépendances partagées des routes: accès au conteneur porté par l'application."""

from __future__ import annotations

from fastapi import Request

from courseware.core.container import Container


def get_container(request: Request) -> Container:
    """Retourne le conteneur attaché à `app.state` par `create_app`."""
    return request.app.state.container
