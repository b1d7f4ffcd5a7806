"""Routes de génération: chaque réponse porte le palier de récupération utilisé."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from courseware.api.deps import get_container
from courseware.api.schemas import (
    ContentRequest,
    EnhanceRequest,
    LectureOutlineRequest,
    RecoveredResponse,
    SlidesRequest,
    SlidesResponse,
    SyllabusRequest,
    TopicResourcesRequest,
)
from courseware.core.container import Container
from courseware.domain.recovery_pipeline import RecoveredObject

router = APIRouter(prefix="/generation", tags=["generation"])


def _response(recovered: RecoveredObject) -> RecoveredResponse:
    return RecoveredResponse.from_recovered(recovered)


@router.post("/syllabus-analysis", response_model=RecoveredResponse)
async def analyze_syllabus(
    body: SyllabusRequest, container: Container = Depends(get_container)
) -> RecoveredResponse:
    return _response(await container.generation.analyze_syllabus(body.syllabus_text))


@router.post("/topic-resources", response_model=RecoveredResponse)
async def topic_resources(
    body: TopicResourcesRequest, container: Container = Depends(get_container)
) -> RecoveredResponse:
    return _response(
        await container.generation.suggest_topic_resources(body.topic, body.syllabus_text)
    )


@router.post("/content", response_model=RecoveredResponse)
async def generate_content(
    body: ContentRequest, container: Container = Depends(get_container)
) -> RecoveredResponse:
    recovered = await container.generation.generate_content(
        body.topic,
        subtopics=body.subtopics,
        previous_content=body.previous_content,
        target_audience=body.target_audience,
        complexity=body.complexity,
    )
    return _response(recovered)


@router.post("/lecture-outline", response_model=RecoveredResponse)
async def lecture_outline(
    body: LectureOutlineRequest, container: Container = Depends(get_container)
) -> RecoveredResponse:
    recovered = await container.generation.generate_lecture_outline(
        body.topic, subtopics=body.subtopics, duration_minutes=body.duration_minutes
    )
    return _response(recovered)


@router.post("/enhance", response_model=RecoveredResponse)
async def enhance_content(
    body: EnhanceRequest, container: Container = Depends(get_container)
) -> RecoveredResponse:
    return _response(await container.generation.enhance_content(body.content, body.instructions))


@router.post("/slides", response_model=SlidesResponse)
async def slides(body: SlidesRequest, container: Container = Depends(get_container)) -> SlidesResponse:
    presentation = await container.generation.generate_slide_outline(
        body.topic, content=body.content, slide_count=body.slide_count
    )
    return SlidesResponse.from_recovered(
        presentation.outline,
        total_slides=presentation.total_slides,
        estimated_duration=presentation.estimated_duration,
    )
