"""Outils SQLAlchemy: moteur, fabrique de sessions et portée transactionnelle.

Utilise `DATABASE_URL` (paramètre ou variable d'environnement), sinon une base SQLite en mémoire
partagée entre les connexions (tests, dev).
"""

from __future__ import annotations

import os
import threading
import weakref
from collections.abc import Iterator
from contextlib import contextmanager, nullcontext

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from courseware.infra.repo.models import Base

# Une seule connexion DBAPI derrière un StaticPool: les transactions doivent s'y succéder.
_static_locks: weakref.WeakKeyDictionary[Engine, threading.RLock] = weakref.WeakKeyDictionary()
_static_locks_guard = threading.Lock()


def get_engine(url: str | None = None) -> Engine:
    """Crée un moteur SQLAlchemy à partir de l'URL de base de données."""
    db_url = url or os.getenv("DATABASE_URL") or "sqlite+pysqlite:///:memory:"
    kwargs: dict = {}
    if db_url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if ":memory:" in db_url:
            # une seule connexion, sinon chaque session verrait une base vide
            kwargs["poolclass"] = StaticPool
    return create_engine(db_url, future=True, echo=False, **kwargs)


def create_schema(engine: Engine) -> None:
    """Crée les tables manquantes (dev/tests; Alembic en production)."""
    Base.metadata.create_all(engine)


def get_session_factory(engine: Engine) -> sessionmaker:
    """Crée une factory de sessions SQLAlchemy."""
    return sessionmaker(bind=engine, class_=Session, expire_on_commit=False)


def _connection_lock(engine: Engine):
    """Verrou propre au moteur si toutes ses sessions partagent une même connexion."""
    if not isinstance(engine.pool, StaticPool):
        return nullcontext()
    with _static_locks_guard:
        lock = _static_locks.get(engine)
        if lock is None:
            lock = _static_locks[engine] = threading.RLock()
    return lock


@contextmanager
def session_scope(engine: Engine) -> Iterator[Session]:
    """Session transactionnelle: commit en sortie normale, rollback sur toute exception.

    Toutes les écritures faites dans le bloc sont validées ensemble ou annulées ensemble. Sur un
    moteur à connexion unique (SQLite en mémoire), les portées s'exécutent l'une après l'autre:
    un commit concurrent validerait sinon la transaction inachevée d'une autre requête.
    """
    with _connection_lock(engine):
        SessionLocal = get_session_factory(engine)
        session = SessionLocal()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()
