"""
Fakes pour les tests unitaires.

- `CannedGenerator`: générateur de texte renvoyant des réponses prédéfinies (ou levant des
  exceptions prédéfinies), avec journal des prompts reçus.
- `BlockingGenerator`: générateur qui attend un événement (tests d'annulation).
- `FakeRedis`: sous-ensemble de l'API redis-py (chaînes avec expiration, ensembles triés,
  pipelines) adossé à des dicts.
- `make_content` / `make_resource`: entités de test avec valeurs par défaut.
"""

from __future__ import annotations

import asyncio
from collections import deque
from typing import Any

from courseware.domain.entities import Content, Resource
from courseware.infra.llm.base import TextGenerator


class CannedGenerator(TextGenerator):
    """Renvoie les réponses dans l'ordre; la dernière est répétée quand la file est vide."""

    def __init__(self, *responses: str | Exception) -> None:
        self.responses: deque[str | Exception] = deque(responses)
        self.last: str | Exception = responses[-1] if responses else ""
        self.prompts: list[str] = []

    def queue(self, *responses: str | Exception) -> None:
        self.responses.extend(responses)
        self.last = self.responses[-1]

    async def generate(self, prompt: str, *, system: str | None = None) -> str:
        self.prompts.append(prompt)
        item = self.responses.popleft() if self.responses else self.last
        if isinstance(item, Exception):
            raise item
        return item


class BlockingGenerator(TextGenerator):
    """Bloque jusqu'à `release.set()`; `started` signale l'entrée dans `generate`."""

    def __init__(self, response: str = "") -> None:
        self.response = response
        self.started = asyncio.Event()
        self.release = asyncio.Event()
        self.calls = 0

    async def generate(self, prompt: str, *, system: str | None = None) -> str:
        self.calls += 1
        self.started.set()
        await self.release.wait()
        return self.response


class _Pipeline:
    def __init__(self, client: FakeRedis) -> None:
        self._client = client
        self._ops: list[tuple[str, tuple, dict]] = []

    def __getattr__(self, name: str):
        def record(*args: Any, **kwargs: Any) -> _Pipeline:
            self._ops.append((name, args, kwargs))
            return self

        return record

    def execute(self) -> list[Any]:
        results = [getattr(self._client, name)(*a, **kw) for name, a, kw in self._ops]
        self._ops.clear()
        return results


class FakeRedis:
    """Client Redis en mémoire (decode_responses=True). `now` pilote les expirations."""

    def __init__(self) -> None:
        self.now = 0.0
        self.strings: dict[str, tuple[str, float | None]] = {}
        self.zsets: dict[str, dict[str, float]] = {}

    def ping(self) -> bool:
        return True

    def pipeline(self, transaction: bool = True) -> _Pipeline:
        return _Pipeline(self)

    def get(self, key: str) -> str | None:
        entry = self.strings.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at is not None and self.now >= expires_at:
            del self.strings[key]
            return None
        return value

    def set(self, key: str, value: str, ex: int | None = None) -> bool:
        self.strings[key] = (value, self.now + ex if ex else None)
        return True

    def delete(self, *keys: str) -> int:
        return sum(1 for k in keys if self.strings.pop(k, None) is not None)

    def zadd(self, key: str, mapping: dict[str, float]) -> int:
        zset = self.zsets.setdefault(key, {})
        added = sum(1 for member in mapping if member not in zset)
        zset.update(mapping)
        return added

    def zrem(self, key: str, *members: str) -> int:
        zset = self.zsets.get(key, {})
        return sum(1 for m in members if zset.pop(m, None) is not None)

    def zcard(self, key: str) -> int:
        return len(self.zsets.get(key, {}))

    def zrange(self, key: str, start: int, end: int) -> list[str]:
        ordered = sorted(self.zsets.get(key, {}).items(), key=lambda kv: (kv[1], kv[0]))
        members = [m for m, _ in ordered]
        return members[start : None if end == -1 else end + 1]


def make_content(content_id: str = "c1", **overrides: Any) -> Content:
    fields = {
        "id": content_id,
        "title": f"Title {content_id}",
        "description": f"Description {content_id}",
        "subject_id": "subj-1",
        "created_by": "instructor-1",
    }
    fields.update(overrides)
    return Content(**fields)


def make_resource(resource_id: str = "r1", type: str = "article", **overrides: Any) -> Resource:
    fields = {
        "id": resource_id,
        "type": type,
        "title": f"Resource {resource_id}",
        "description": "",
        "subject_id": "subj-1",
        "created_by": "instructor-1",
        "url": f"https://docs.python.org/{resource_id}",
    }
    fields.update(overrides)
    return Resource(**fields)
