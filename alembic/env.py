"""
Configuration de l'environnement Alembic (modes offline et online).

L'URL est lue dans `DATABASE_URL`; la métadonnée cible est celle des modèles du noyau.
"""

from __future__ import annotations

import os
import sys
from logging.config import fileConfig
from pathlib import Path

from sqlalchemy import create_engine, pool

from alembic import context  # type: ignore[attr-defined]

# Permet d'importer le paquet depuis la racine du dépôt via la CLI Alembic
_root = str(Path(__file__).resolve().parent.parent)
if _root not in sys.path:
    sys.path.append(_root)

from courseware.infra.repo.models import Base  # noqa: E402

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata
_DEFAULT_URL = "sqlite:///./courseware.db"


def run_migrations_offline() -> None:
    """Génère le SQL sans connexion (bindings littéraux)."""
    url = os.getenv("DATABASE_URL", _DEFAULT_URL)
    context.configure(url=url, target_metadata=target_metadata, literal_binds=True)
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Applique les migrations sur une connexion active."""
    connectable = create_engine(os.getenv("DATABASE_URL", _DEFAULT_URL), poolclass=pool.NullPool)
    with connectable.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
