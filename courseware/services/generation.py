"""Service de génération de contenus pédagogiques.

Chaque opération construit un prompt, attend le générateur de texte puis fait passer la réponse
brute par le pipeline de récupération. Un générateur indisponible n'interrompt jamais la
requête: le pipeline reçoit alors une chaîne vide et produit un objet de substitution.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

import structlog

from courseware.domain.errors import UpstreamUnavailable
from courseware.domain.heuristic_reconstructor import Context
from courseware.domain.kinds import ObjectKind
from courseware.domain.recovery_pipeline import RecoveredObject, RecoveryPipeline
from courseware.domain.schema_validator import dump, validate
from courseware.infra.llm.base import TextGenerator

MINUTES_PER_SLIDE = 2
JSON_ONLY = "Only return valid JSON without any additional text or explanation."


@dataclass(frozen=True)
class SlidePresentation:
    """Plan de diapositives avec métadonnées dérivées."""

    outline: RecoveredObject
    total_slides: int
    estimated_duration: int


def _excerpt(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[:limit] + "..."


class GenerationService:
    """Prompts de génération routés par le pipeline de récupération."""

    def __init__(
        self,
        generator: TextGenerator,
        pipeline: RecoveryPipeline | None = None,
        excerpt_chars: int = 1000,
    ) -> None:
        self.generator = generator
        self.pipeline = pipeline or RecoveryPipeline()
        self.excerpt_chars = excerpt_chars
        self._log = structlog.get_logger(__name__).bind(component="generation")

    async def _ask(self, prompt: str, kind: ObjectKind, context: Context) -> RecoveredObject:
        try:
            text = await self.generator.generate(prompt)
        except UpstreamUnavailable as exc:
            self._log.warning("generator_unavailable", kind=kind.value, error=str(exc))
            text = ""
        return self.pipeline.recover(text, kind, context)

    async def analyze_syllabus(self, syllabus_text: str) -> RecoveredObject:
        """Découpe un programme en thèmes, durées, objectifs et prérequis."""
        prompt = "\n".join(
            [
                "Analyze the following course syllabus and extract its structure.",
                f"Syllabus: {_excerpt(syllabus_text, self.excerpt_chars * 4)}",
                "Respond with a JSON object: topics (array of {title, subtopics, "
                "estimatedDuration in hours, learningObjectives}), totalDuration (hours), "
                "courseObjectives (array), prerequisites (array).",
                JSON_ONLY,
            ]
        )
        return await self._ask(prompt, ObjectKind.SYLLABUS_ANALYSIS, None)

    async def suggest_topic_resources(
        self, topic: str, syllabus_text: str | None = None
    ) -> RecoveredObject:
        """Suggestions de ressources pour un thème (sans cache: voir ResourceSearchService)."""
        lines = [f"Suggest 3 to 5 learning resources for the topic: {topic}"]
        if syllabus_text:
            lines.append(f"Context from syllabus: {_excerpt(syllabus_text, self.excerpt_chars)}")
        lines += [
            "Respond with a JSON array; each item has id, title, description, url, type "
            '("article", "pdf", "video" or "book") and source.',
            JSON_ONLY,
        ]
        return await self._ask("\n".join(lines), ObjectKind.RESOURCE_LIST, {"topic": topic})

    async def generate_content(
        self,
        topic: str,
        subtopics: Sequence[str] | None = None,
        previous_content: str | None = None,
        target_audience: str = "college students",
        complexity: str = "intermediate",
    ) -> RecoveredObject:
        """Rédige un contenu de cours (texte, points clés, exemples, références)."""
        lines = [
            "Generate comprehensive educational content for the following topic.",
            f"Topic: {topic}",
        ]
        if subtopics:
            lines.append(f"Subtopics: {', '.join(subtopics)}")
        lines += [f"Target Audience: {target_audience}", f"Complexity Level: {complexity}"]
        if previous_content:
            lines.append(f"Using the following content as context:\n{previous_content}")
        lines += [
            "Respond with a JSON object: title, content (detailed explanation), keyPoints, "
            "examples, references.",
            JSON_ONLY,
        ]
        return await self._ask("\n".join(lines), ObjectKind.CONTENT_DRAFT, {"title": topic})

    async def generate_lecture_outline(
        self, topic: str, subtopics: Sequence[str] | None = None, duration_minutes: int = 60
    ) -> RecoveredObject:
        """Plan de cours magistral en sections."""
        lines = [f"Create a {duration_minutes}-minute lecture outline on: {topic}"]
        if subtopics:
            lines.append(f"Cover these subtopics: {', '.join(subtopics)}")
        lines += [
            "Respond with a JSON object: title, sections (array of {title, content: array of "
            "bullet points}), keyPoints, examples, exercises.",
            JSON_ONLY,
        ]
        return await self._ask("\n".join(lines), ObjectKind.LECTURE_OUTLINE, {"title": topic})

    async def enhance_content(
        self, existing: Mapping[str, Any], instructions: str
    ) -> RecoveredObject:
        """
        Améliore un brouillon existant selon `instructions`.

        Seuls les champs effectivement renvoyés par le générateur remplacent ceux du brouillon
        existant. Si la réponse n'a pu être que reconstruite (palier heuristique), les champs
        existants sont prioritaires.
        """
        current = dump(validate(dict(existing), ObjectKind.CONTENT_DRAFT))
        prompt = "\n".join(
            [
                "Improve the following educational content according to the instructions.",
                f"Instructions: {instructions}",
                f"Current content: {_excerpt(str(current.get('content', '')), self.excerpt_chars)}",
                f"Current key points: {', '.join(current.get('keyPoints', []))}",
                "Respond with a JSON object: title, content, keyPoints, examples, references.",
                JSON_ONLY,
            ]
        )
        recovered = await self._ask(
            prompt, ObjectKind.CONTENT_DRAFT, {"title": current.get("title", "")}
        )
        proposed = dump(recovered.value)
        if recovered.approximate:
            merged = {**proposed, **current}
        else:
            returned = recovered.data if isinstance(recovered.data, dict) else {}
            merged = {**current, **{k: v for k, v in proposed.items() if k in returned}}
        return RecoveredObject(
            kind=recovered.kind,
            tier=recovered.tier,
            value=validate(merged, ObjectKind.CONTENT_DRAFT),
            data=merged,
            repairs=recovered.repairs,
        )

    async def generate_slide_outline(
        self, topic: str, content: str | None = None, slide_count: int | None = None
    ) -> SlidePresentation:
        """Plan de diapositives; durée estimée à 2 minutes par diapositive."""
        lines = [f"Create a slide presentation on: {topic}"]
        if slide_count:
            lines.append(f"Use about {slide_count} slides.")
        if content:
            lines.append(f"Base it on this content: {_excerpt(content, self.excerpt_chars)}")
        lines += [
            "Respond with a JSON object: title, slides (array of {title, content: array of "
            "bullet points, notes, imagePrompt}).",
            JSON_ONLY,
        ]
        outline = await self._ask("\n".join(lines), ObjectKind.SLIDE_OUTLINE, {"title": topic})
        total = len(outline.value.slides)  # type: ignore[union-attr]
        return SlidePresentation(
            outline=outline, total_slides=total, estimated_duration=total * MINUTES_PER_SLIDE
        )
