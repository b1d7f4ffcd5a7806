# Schémas Pydantic exposés par l'API (requêtes et réponses).

from __future__ import annotations

from dataclasses import asdict
from typing import Any, Literal

from pydantic import BaseModel, Field

from courseware.domain.entities import Resource, Version
from courseware.domain.recovery_pipeline import RecoveredObject
from courseware.domain.schema_validator import dump


class LinkRequest(BaseModel):
    """Corps de `POST /resources/{id}/link`."""

    content_id: str
    link_type: Literal["primary", "supplementary"] = "supplementary"


class UnlinkRequest(BaseModel):
    content_id: str


class ResourceResponse(BaseModel):
    id: str
    type: str
    title: str
    description: str
    url: str | None = None
    file_path: str | None = None
    subject_id: str
    created_by: str
    content_id: str | None = None
    link_type: str | None = None

    @classmethod
    def from_entity(cls, resource: Resource) -> ResourceResponse:
        return cls(**asdict(resource))


class CreateVersionRequest(BaseModel):
    """Édition d'un contenu: champs modifiés + notes de changement.

    Champs:
    - editor_id: auteur de l'édition
    - title / description / syllabus_data: None = inchangé
    - changes: descriptions libres des modifications
    """

    editor_id: str
    title: str | None = None
    description: str | None = None
    syllabus_data: dict[str, Any] | None = None
    changes: list[str] = Field(default_factory=list)


class VersionResponse(BaseModel):
    content_id: str
    version_number: int
    title: str
    description: str
    resource_ids: list[str]
    syllabus_data: dict[str, Any] | None = None
    changes: list[str]
    created_by: str
    created_at: str

    @classmethod
    def from_entity(cls, version: Version) -> VersionResponse:
        return cls(
            content_id=version.content_id,
            version_number=version.version_number,
            title=version.title,
            description=version.description,
            resource_ids=list(version.resource_ids),
            syllabus_data=version.syllabus_data,
            changes=list(version.changes),
            created_by=version.created_by,
            created_at=version.created_at,
        )


class ResourceSearchRequest(BaseModel):
    topics: list[str] = Field(min_length=1)
    query: str = ""
    type: str | None = None
    limit: int | None = Field(default=None, ge=1, le=50)
    syllabus_text: str | None = None
    require_real_urls: bool = False


class RecoveredResponse(BaseModel):
    """Objet récupéré: palier, données conformes au contrat de forme, réparations appliquées."""

    kind: str
    tier: str
    approximate: bool
    data: Any
    repairs: list[str] = Field(default_factory=list)

    @classmethod
    def from_recovered(cls, recovered: RecoveredObject, **extra: Any):
        return cls(
            kind=recovered.kind.value,
            tier=recovered.tier.value,
            approximate=recovered.approximate,
            data=dump(recovered.value),
            repairs=list(recovered.repairs),
            **extra,
        )


class ResourceSearchResponse(RecoveredResponse):
    fingerprint: str
    cached: bool


class SyllabusRequest(BaseModel):
    syllabus_text: str = Field(min_length=1)


class TopicResourcesRequest(BaseModel):
    topic: str
    syllabus_text: str | None = None


class ContentRequest(BaseModel):
    topic: str
    subtopics: list[str] = Field(default_factory=list)
    previous_content: str | None = None
    target_audience: str = "college students"
    complexity: Literal["basic", "intermediate", "advanced"] = "intermediate"


class LectureOutlineRequest(BaseModel):
    topic: str
    subtopics: list[str] = Field(default_factory=list)
    duration_minutes: int = Field(default=60, ge=5, le=480)


class EnhanceRequest(BaseModel):
    content: dict[str, Any]
    instructions: str


class SlidesRequest(BaseModel):
    topic: str
    content: str | None = None
    slide_count: int | None = Field(default=None, ge=1, le=100)


class SlidesResponse(RecoveredResponse):
    total_slides: int
    estimated_duration: int
