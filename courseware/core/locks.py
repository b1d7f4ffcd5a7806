"""Verrous par clé (threading et asyncio).

Chaque clé (empreinte de requête, identifiant de contenu ou de ressource) possède son propre
verrou, créé à la demande et libéré quand plus personne ne l'attend. Deux requêtes sur des clés
distinctes ne se sérialisent donc jamais.
"""

from __future__ import annotations

import asyncio
import threading
from collections.abc import AsyncIterator, Iterable, Iterator
from contextlib import asynccontextmanager, contextmanager


class KeyedLock:
    """Verrous `threading.Lock` indexés par clé, avec comptage des détenteurs."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}
        self._waiters: dict[str, int] = {}

    def _checkout(self, key: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.setdefault(key, threading.Lock())
            self._waiters[key] = self._waiters.get(key, 0) + 1
            return lock

    def _release(self, key: str) -> None:
        with self._guard:
            self._waiters[key] -= 1
            if self._waiters[key] == 0:
                self._waiters.pop(key, None)
                self._locks.pop(key, None)

    @contextmanager
    def hold(self, *keys: str) -> Iterator[None]:
        """Acquiert les verrous des clés données, dans l'ordre trié (pas d'interblocage)."""
        ordered = sorted(set(keys))
        acquired: list[tuple[str, threading.Lock]] = []
        try:
            for key in ordered:
                lock = self._checkout(key)
                lock.acquire()
                acquired.append((key, lock))
            yield
        finally:
            for key, lock in reversed(acquired):
                lock.release()
                self._release(key)

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


class AsyncKeyedLock:
    """Équivalent asyncio de `KeyedLock` pour les chemins qui attendent le générateur."""

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._waiters: dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        """Sérialise les coroutines qui partagent `key`."""
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._waiters[key] = self._waiters.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._waiters[key] -= 1
            if self._waiters[key] == 0:
                self._waiters.pop(key, None)
                self._locks.pop(key, None)

    def active_keys(self) -> Iterable[str]:
        """Clés ayant actuellement au moins un détenteur ou un candidat."""
        return list(self._locks)
