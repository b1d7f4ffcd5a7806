"""Configuration de test pour pytest avec gestion des chemins et fixtures partagées.

Ajoute la racine du projet au sys.path (imports `courseware...`) et fournit une base SQLite en
mémoire, un conteneur de dépendances alimenté par un générateur factice et un client HTTP.
"""

import os
import sys

import pytest

# Ensure project root is on sys.path so that
# imports like `from courseware...` resolve.
CURRENT_DIR = os.path.dirname(__file__)
PROJECT_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from courseware.core.container import Container  # noqa: E402
from courseware.core.settings import Settings  # noqa: E402
from courseware.domain.entities import Content, Resource  # noqa: E402
from courseware.infra.repo.content_repo import ContentRepo  # noqa: E402
from courseware.infra.repo.db import create_schema, get_engine, session_scope  # noqa: E402
from courseware.infra.repo.resource_repo import ResourceRepo  # noqa: E402
from tests.fakes import CannedGenerator, make_content, make_resource  # noqa: E402


@pytest.fixture
def engine():
    """Moteur SQLite en mémoire avec schéma créé."""
    eng = get_engine("sqlite+pysqlite:///:memory:")
    create_schema(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def seed(engine):
    """Insère des contenus/ressources: `seed(contents=["c1"], resources=["r1"])`."""

    def _seed(contents=(), resources=()):
        with session_scope(engine) as session:
            for item in resources:
                ResourceRepo(session).create(
                    item if isinstance(item, Resource) else make_resource(item)
                )
            for item in contents:
                ContentRepo(session).create(item if isinstance(item, Content) else make_content(item))

    return _seed


@pytest.fixture
def settings():
    return Settings(
        APP_ENV="test",
        DATABASE_URL=None,
        REDIS_URL=None,
        REQUIRE_REDIS=False,
        OPENAI_API_KEY=None,
        RETRY_BASE_DELAY_SECONDS=0.0,
    )


@pytest.fixture
def generator():
    return CannedGenerator()


@pytest.fixture
def container(settings, generator):
    return Container(settings=settings, generator=generator)


@pytest.fixture
def client(container):
    from fastapi.testclient import TestClient

    from courseware.app.main import create_app

    return TestClient(create_app(container))
