"""
Cache des résultats du pipeline indexé par empreinte de requête.

Deux implémentations, comme pour les dépôts: en mémoire (dev/tests, horloge injectable) et
Redis (multi-process). Règles communes:
- `put` supprime l'entrée existante de même clé avant d'insérer (pas de doublon), puis évince
  les entrées les plus anciennes tant que la taille maximale est dépassée;
- `get` ne retourne jamais une entrée plus vieille que le TTL; les entrées expirées sont purgées
  paresseusement au moment de l'accès (aucun balayage en tâche de fond);
- `bypass=True` force un échec de lecture (exigence de fraîcheur plus stricte de l'appelant).
"""

from __future__ import annotations

import copy
import hashlib
import json
import math
import threading
import time
from abc import ABC, abstractmethod
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import structlog

from courseware.app.metrics import CACHE_EVICTIONS_TOTAL, CACHE_LOOKUPS_TOTAL
from courseware.domain.recovery_pipeline import RecoveredObject

Clock = Callable[[], float]


@dataclass(frozen=True)
class CacheEntry:
    """Entrée de cache: empreinte, objets récupérés, date de création (horloge du cache)."""

    fingerprint: str
    objects: tuple[RecoveredObject, ...]
    created_at: float


class FingerprintCache(ABC):
    """Interface commune des caches par empreinte."""

    def __init__(self, ttl_seconds: float, max_entries: int, clock: Clock) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        self.ttl_seconds = float(ttl_seconds)
        self.max_entries = int(max_entries)
        self.clock = clock
        self._log = structlog.get_logger(__name__).bind(component=type(self).__name__)

    @abstractmethod
    def get(self, fingerprint: str, bypass: bool = False) -> list[RecoveredObject] | None:
        """Retourne les objets en cache, ou None (absent, expiré ou contourné)."""

    @abstractmethod
    def put(self, fingerprint: str, objects: list[RecoveredObject]) -> None:
        """Enregistre `objects` sous `fingerprint`."""

    @abstractmethod
    def __len__(self) -> int: ...

    def find_cached(self, fingerprint: str, bypass: bool = False) -> list[RecoveredObject] | None:
        """Alias de `get` exposé aux gestionnaires de requêtes."""
        return self.get(fingerprint, bypass=bypass)

    def store(self, fingerprint: str, objects: list[RecoveredObject]) -> None:
        """Alias de `put` exposé aux gestionnaires de requêtes."""
        self.put(fingerprint, objects)

    def _expired(self, created_at: float) -> bool:
        return self.clock() - created_at >= self.ttl_seconds


class InMemoryFingerprintCache(FingerprintCache):
    """
    Cache en mémoire (utilisé pour dev/tests).

    L'ordre d'insertion du dict est l'ordre de création: une ré-insertion replace l'entrée en
    fin de file, l'éviction retire la tête.
    """

    def __init__(
        self, ttl_seconds: float = 300.0, max_entries: int = 20, clock: Clock = time.monotonic
    ) -> None:
        """Initialise un cache vide borné en âge et en taille."""
        super().__init__(ttl_seconds, max_entries, clock)
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._guard = threading.Lock()

    def get(self, fingerprint: str, bypass: bool = False) -> list[RecoveredObject] | None:
        if bypass:
            CACHE_LOOKUPS_TOTAL.labels(result="bypass").inc()
            return None
        with self._guard:
            entry = self._entries.get(fingerprint)
            if entry is None:
                CACHE_LOOKUPS_TOTAL.labels(result="miss").inc()
                return None
            if self._expired(entry.created_at):
                del self._entries[fingerprint]
                CACHE_LOOKUPS_TOTAL.labels(result="expired").inc()
                return None
        CACHE_LOOKUPS_TOTAL.labels(result="hit").inc()
        self._log.debug("cache_hit", fingerprint=fingerprint)
        # chaque lecture reçoit ses propres copies des objets en cache
        return copy.deepcopy(list(entry.objects))

    def put(self, fingerprint: str, objects: list[RecoveredObject]) -> None:
        entry = CacheEntry(fingerprint, tuple(copy.deepcopy(objects)), self.clock())
        with self._guard:
            self._entries.pop(fingerprint, None)
            self._entries[fingerprint] = entry
            while len(self._entries) > self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                CACHE_EVICTIONS_TOTAL.inc()
                self._log.debug("cache_evicted", fingerprint=evicted)

    def __len__(self) -> int:
        with self._guard:
            return len(self._entries)

    def fingerprints(self) -> list[str]:
        """Empreintes présentes, de la plus ancienne à la plus récente."""
        with self._guard:
            return list(self._entries)


class RedisFingerprintCache(FingerprintCache):
    """
    Cache adossé à Redis.

    Clés: `{prefix}:entry:{sha256(empreinte)}` (JSON, expiration native `EX`) et un index
    trié `{prefix}:index` (score = date de création) servant à l'éviction des plus anciennes.
    """

    def __init__(
        self,
        client: Any,
        ttl_seconds: float = 300.0,
        max_entries: int = 20,
        prefix: str = "fp",
        clock: Clock = time.time,
    ) -> None:
        """Construit le cache à partir d'un client Redis (`decode_responses=True`)."""
        super().__init__(ttl_seconds, max_entries, clock)
        self.client = client
        self.prefix = prefix
        self.index_key = f"{prefix}:index"

    def _key(self, fingerprint: str) -> str:
        digest = hashlib.sha256(fingerprint.encode("utf-8")).hexdigest()
        return f"{self.prefix}:entry:{digest}"

    def _forget(self, key: str) -> None:
        pipe = self.client.pipeline()
        pipe.delete(key)
        pipe.zrem(self.index_key, key)
        pipe.execute()

    def get(self, fingerprint: str, bypass: bool = False) -> list[RecoveredObject] | None:
        if bypass:
            CACHE_LOOKUPS_TOTAL.labels(result="bypass").inc()
            return None
        key = self._key(fingerprint)
        raw = self.client.get(key)
        if not raw:
            self.client.zrem(self.index_key, key)
            CACHE_LOOKUPS_TOTAL.labels(result="miss").inc()
            return None
        try:
            payload = json.loads(raw)
            if self._expired(float(payload["created_at"])):
                self._forget(key)
                CACHE_LOOKUPS_TOTAL.labels(result="expired").inc()
                return None
            objects = [RecoveredObject.from_dict(o) for o in payload["objects"]]
        except (ValueError, KeyError, TypeError) as exc:
            self._log.warning("cache_entry_unreadable", fingerprint=fingerprint, error=str(exc))
            self._forget(key)
            CACHE_LOOKUPS_TOTAL.labels(result="miss").inc()
            return None
        CACHE_LOOKUPS_TOTAL.labels(result="hit").inc()
        return objects

    def put(self, fingerprint: str, objects: list[RecoveredObject]) -> None:
        key = self._key(fingerprint)
        created_at = self.clock()
        payload = json.dumps(
            {
                "fingerprint": fingerprint,
                "created_at": created_at,
                "objects": [o.to_dict() for o in objects],
            }
        )
        pipe = self.client.pipeline()
        pipe.delete(key)
        pipe.zrem(self.index_key, key)
        pipe.set(key, payload, ex=max(1, math.ceil(self.ttl_seconds)))
        pipe.zadd(self.index_key, {key: created_at})
        pipe.execute()

        excess = int(self.client.zcard(self.index_key)) - self.max_entries
        if excess > 0:
            oldest = self.client.zrange(self.index_key, 0, excess - 1)
            pipe = self.client.pipeline()
            for old_key in oldest:
                pipe.delete(old_key)
                pipe.zrem(self.index_key, old_key)
            pipe.execute()
            CACHE_EVICTIONS_TOTAL.inc(len(oldest))

    def __len__(self) -> int:
        return int(self.client.zcard(self.index_key))
