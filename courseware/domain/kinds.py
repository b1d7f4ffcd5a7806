"""Contrats de forme des objets produits à partir des réponses du générateur.

Chaque type d'objet (`ObjectKind`) définit les champs minimaux requis et leurs types primitifs.
Aucune conversion implicite n'est acceptée (chaîne -> nombre, booléen -> nombre...), sauf
l'élargissement d'une chaîne seule en liste d'un élément.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel


def _widen_to_list(value: Any) -> Any:
    if isinstance(value, str):
        return [value]
    return value


def _require_number(value: Any) -> Any:
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise ValueError("expected a number")
    return value


StrList = Annotated[list[str], BeforeValidator(_widen_to_list)]
Number = Annotated[float, BeforeValidator(_require_number)]


class ObjectKind(str, Enum):
    """Types d'objets de domaine attendus en sortie du générateur."""

    TOPIC = "topic"
    SYLLABUS_ANALYSIS = "syllabus_analysis"
    CONTENT_DRAFT = "content_draft"
    LECTURE_OUTLINE = "lecture_outline"
    SLIDE_OUTLINE = "slide_outline"
    RESOURCE_LIST = "resource_list"

    @property
    def is_list(self) -> bool:
        """Vrai si l'encodage attendu est un tableau JSON."""
        return self is ObjectKind.RESOURCE_LIST

    @property
    def opening(self) -> str:
        """Caractère structurel ouvrant attendu."""
        return "[" if self.is_list else "{"


class _Shape(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class Topic(_Shape):
    """Thème de cours et ses sous-thèmes."""

    title: str
    subtopics: StrList
    estimated_duration: Number | None = None
    learning_objectives: StrList = Field(default_factory=list)


class SyllabusAnalysis(_Shape):
    """Analyse structurée d'un programme de cours."""

    topics: Annotated[list[Topic], Field(min_length=1)]
    total_duration: Number
    course_objectives: StrList
    prerequisites: StrList


class ContentDraft(_Shape):
    """Contenu de cours généré."""

    title: str
    content: str
    key_points: StrList
    examples: StrList = Field(default_factory=list)
    references: StrList = Field(default_factory=list)


class OutlineSection(_Shape):
    title: str
    content: StrList


class LectureOutline(_Shape):
    """Plan de cours magistral."""

    title: str
    sections: list[OutlineSection]
    key_points: StrList
    examples: StrList = Field(default_factory=list)
    exercises: StrList = Field(default_factory=list)


class Slide(_Shape):
    title: str
    content: StrList
    notes: str | None = None
    image_prompt: str | None = None


class SlideOutline(_Shape):
    """Plan de présentation (diapositives)."""

    title: str
    slides: Annotated[list[Slide], Field(min_length=1)]


class ResourceSuggestion(_Shape):
    """Ressource pédagogique suggérée."""

    id: str
    title: str
    description: str
    url: str
    type: str
    source: str
    date_published: str | None = None
    relevance_score: Number | None = None


ResourceList = Annotated[list[ResourceSuggestion], Field(min_length=1)]

MODELS: dict[ObjectKind, type[_Shape]] = {
    ObjectKind.TOPIC: Topic,
    ObjectKind.SYLLABUS_ANALYSIS: SyllabusAnalysis,
    ObjectKind.CONTENT_DRAFT: ContentDraft,
    ObjectKind.LECTURE_OUTLINE: LectureOutline,
    ObjectKind.SLIDE_OUTLINE: SlideOutline,
}

RESOURCE_LIST_ADAPTER: TypeAdapter[list[ResourceSuggestion]] = TypeAdapter(ResourceList)
