# ============================================================
# Module : courseware/services/link_manager.py
# Objet  : Liaison ressource <-> contenu, atomique et idempotente.
# Invariants :
#  - resource.content_id = C  =>  C.resource_ids contient resource.id
#  - les deux écritures sont validées ensemble ou annulées ensemble
#  - lier deux fois avec les mêmes arguments ne crée qu'une référence de chaque côté
# ============================================================
"""Gestionnaire transactionnel des liaisons ressource/contenu.

Chaque opération s'exécute dans une seule transaction SQLAlchemy (`session_scope`). Les conflits
d'écriture concurrente (verrouillage optimiste `row_version`, contrainte d'unicité, base
verrouillée) sont convertis en `LinkConflict` et la transaction complète est rejouée avec un
backoff exponentiel, jusqu'à `max_retries` tentatives, puis `TransientFailure` est levée.
"""

from __future__ import annotations

import random
import time
from collections.abc import Callable
from typing import TypeVar

import structlog
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from courseware.app.metrics import LINK_RETRIES_TOTAL
from courseware.core.locks import KeyedLock
from courseware.domain.entities import LinkType, Resource
from courseware.domain.errors import LinkConflict, NotFound, TransientFailure
from courseware.infra.repo.content_repo import ContentRepo
from courseware.infra.repo.db import session_scope
from courseware.infra.repo.resource_repo import ResourceRepo

T = TypeVar("T")

CONFLICT_ERRORS = (StaleDataError, IntegrityError, OperationalError)
RETRY_RANDOM_FACTOR = 0.005


def run_with_retries(
    engine: Engine,
    work: Callable[[Session], T],
    *,
    operation: str,
    max_retries: int,
    base_delay: float,
    on_retry: Callable[[int, LinkConflict], None] | None = None,
) -> T:
    """Exécute `work` dans une transaction, rejouée entièrement sur conflit.

    Les autres exceptions (dont `NotFound`) annulent la transaction et remontent telles quelles.
    """
    attempts = 0
    while True:
        attempts += 1
        try:
            try:
                with session_scope(engine) as session:
                    return work(session)
            except CONFLICT_ERRORS as exc:
                raise LinkConflict(f"{operation}: concurrent write", {"error": str(exc)}) from exc
        except LinkConflict as conflict:
            if attempts >= max_retries:
                raise TransientFailure(operation, attempts) from conflict
            if on_retry is not None:
                on_retry(attempts, conflict)
            if base_delay > 0:
                time.sleep((2 ** (attempts - 1)) * base_delay + random.random() * RETRY_RANDOM_FACTOR)


class LinkTransactionManager:
    """Lie et délie des ressources à des contenus."""

    def __init__(
        self,
        engine: Engine,
        *,
        max_retries: int = 3,
        retry_base_delay: float = 0.01,
        locks: KeyedLock | None = None,
    ) -> None:
        """Construit le gestionnaire (verrous par clé partageables avec le registre)."""
        self.engine = engine
        self.max_retries = max_retries
        self.retry_base_delay = retry_base_delay
        self.locks = locks if locks is not None else KeyedLock()
        self._log = structlog.get_logger(__name__).bind(component="link_manager")

    def link(
        self, resource_id: str, content_id: str, link_type: LinkType = "supplementary"
    ) -> Resource:
        """Attache `resource_id` à `content_id` (et le retire de son contenu précédent)."""
        if link_type not in ("primary", "supplementary"):
            raise ValueError(f"invalid link_type: {link_type!r}")

        def work(session: Session) -> Resource:
            resources, contents = self._repos(session, resource_id, content_id)
            previous = self._set_back_reference(resources, resource_id, content_id, link_type)
            if previous is not None and previous != content_id:
                contents.detach_resource(previous, resource_id)
            self._append_to_content(contents, content_id, resource_id)
            session.flush()
            return resources.get(resource_id)  # type: ignore[return-value]

        resource = self._run("link", resource_id, content_id, work)
        self._log.info(
            "resource_linked", resource_id=resource_id, content_id=content_id, link_type=link_type
        )
        return resource

    def unlink(self, resource_id: str, content_id: str) -> Resource:
        """Détache `resource_id` de `content_id` (sans effet si la liaison n'existe pas)."""

        def work(session: Session) -> Resource:
            resources, contents = self._repos(session, resource_id, content_id)
            current = resources.get(resource_id)
            if current is not None and current.content_id == content_id:
                resources.clear_link(resource_id)
            contents.detach_resource(content_id, resource_id)
            session.flush()
            return resources.get(resource_id)  # type: ignore[return-value]

        resource = self._run("unlink", resource_id, content_id, work)
        self._log.info("resource_unlinked", resource_id=resource_id, content_id=content_id)
        return resource

    # -------------------- Helpers internes --------------------

    def _repos(
        self, session: Session, resource_id: str, content_id: str
    ) -> tuple[ResourceRepo, ContentRepo]:
        resources = ResourceRepo(session)
        contents = ContentRepo(session)
        if resources.get(resource_id) is None:
            raise NotFound("resource", resource_id)
        if contents.get(content_id) is None:
            raise NotFound("content", content_id)
        return resources, contents

    def _set_back_reference(
        self, resources: ResourceRepo, resource_id: str, content_id: str, link_type: LinkType
    ) -> str | None:
        """Étape 1: rétro-référence ressource -> contenu."""
        return resources.set_link(resource_id, content_id, link_type)

    def _append_to_content(self, contents: ContentRepo, content_id: str, resource_id: str) -> bool:
        """Étape 2: ajout dans la liste ordonnée du contenu."""
        return contents.attach_resource(content_id, resource_id)

    def _run(self, operation: str, resource_id: str, content_id: str, work) -> Resource:
        def on_retry(attempt: int, conflict: LinkConflict) -> None:
            LINK_RETRIES_TOTAL.labels(operation=operation).inc()
            self._log.warning(
                "link_retry",
                operation=operation,
                attempt=attempt,
                resource_id=resource_id,
                content_id=content_id,
                error=conflict.details.get("error"),
            )

        # espaces de clés distincts pour ressources et contenus
        with self.locks.hold(f"resource:{resource_id}", f"content:{content_id}"):
            return run_with_retries(
                self.engine,
                work,
                operation=operation,
                max_retries=self.max_retries,
                base_delay=self.retry_base_delay,
                on_retry=on_retry,
            )
