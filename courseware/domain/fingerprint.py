"""Empreinte canonique d'une requête de recherche, utilisée comme clé de cache.

Règle: `{thèmes triés}|{requête}|{type ou "all"}|{taille ou 10}`. Deux requêtes égales à l'ordre
des thèmes près produisent la même empreinte.
"""

from __future__ import annotations

from collections.abc import Iterable

DEFAULT_RESULT_TYPE = "all"
DEFAULT_LIMIT = 10


def _part(value: object) -> str:
    return " ".join(str(value).replace("|", "/").split())


def make_fingerprint(
    topics: Iterable[str],
    query: str | None = None,
    result_type: str | None = None,
    limit: int | None = None,
) -> str:
    """Compose une empreinte stable à partir des paramètres sémantiques d'une requête."""
    topics_key = ",".join(sorted(_part(t) for t in topics if str(t).strip()))
    query_key = _part(query or "")
    type_key = _part(result_type or DEFAULT_RESULT_TYPE)
    limit_key = str(limit or DEFAULT_LIMIT)
    return f"{topics_key}|{query_key}|{type_key}|{limit_key}"
