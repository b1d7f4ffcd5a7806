"""
Entités du domaine métier.

Objets simples (POPO) échangés entre les dépôts SQL, les services et l'API: ressources,
contenus éditables et leurs versions, réponses brutes du générateur.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel

LinkType = Literal["primary", "supplementary"]


class Tier(str, Enum):
    """Palier du pipeline ayant produit un objet récupéré."""

    EXACT = "exact"
    REPAIRED = "repaired"
    HEURISTIC = "heuristic"


@dataclass(frozen=True)
class RawModelResponse:
    """Texte brut renvoyé par le générateur, avec le prompt d'origine (transitoire)."""

    text: str
    prompt: str
    received_at: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass
class Resource:
    """
    Référence vers un support pédagogique.

    Attributs
    - content_id / link_type: rétro-référence vers un contenu, maintenue uniquement par le
      gestionnaire de liaisons.
    """

    id: str
    type: str
    title: str
    description: str
    subject_id: str
    created_by: str
    url: str | None = None
    file_path: str | None = None
    content_id: str | None = None
    link_type: LinkType | None = None


@dataclass
class Content:
    """Unité éditable: champs courants + pointeur vers la dernière version."""

    id: str
    title: str
    description: str
    subject_id: str
    created_by: str
    resource_ids: list[str] = field(default_factory=list)
    syllabus_data: dict[str, Any] | None = None
    current_version_number: int = 0


@dataclass(frozen=True)
class Version:
    """Instantané immuable d'un contenu au moment d'une édition."""

    content_id: str
    version_number: int
    title: str
    description: str
    resource_ids: tuple[str, ...]
    syllabus_data: dict[str, Any] | None
    changes: tuple[str, ...]
    created_by: str
    created_at: str


class ContentUpdate(BaseModel):
    """Modifications demandées lors d'une édition (None = valeur inchangée)."""

    title: str | None = None
    description: str | None = None
    syllabus_data: dict[str, Any] | None = None
