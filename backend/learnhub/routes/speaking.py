"""
LearnHub Backend: Speaking Practice Routes
============================================

What:  Topic generation, speech feedback, session history and topic content.
How:   Required-field checks happen here (each endpoint has its own 400
       message); storage goes through SessionService and AI calls through
       CoachingService.

Endpoints:
    GET  /api/get-previous-sessions   per-topic history summaries
    POST /api/ai-generate-topics      five AI speaking topics
    POST /api/ai-analyze-speech       markdown feedback on a transcript
    POST /api/save-speaking-session   store one practice session
    GET  /api/get-topic-content       latest stored topic content
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from learnhub.database import get_db_session
from learnhub.exceptions import ValidationError
from learnhub.schemas.common import ErrorResponse
from learnhub.schemas.speaking import (
    AnalyzeSpeechRequest,
    AnalyzeSpeechResponse,
    GeneratedTopic,
    GenerateTopicsDebug,
    GenerateTopicsRequest,
    GenerateTopicsResponse,
    PreviousSessionsResponse,
    SaveSessionRequest,
    SaveSessionResponse,
    TopicContentResponse,
    TopicSummary,
)
from learnhub.services.coaching_service import coaching_service
from learnhub.services.session_service import session_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Speaking"])

_AI_ERRORS = {503: {"description": "AI service unavailable", "model": ErrorResponse}}


@router.get(
    "/get-previous-sessions",
    response_model=PreviousSessionsResponse,
    responses={400: {"description": "Missing subject or lesson", "model": ErrorResponse}},
    summary="Summaries of previously practiced topics",
)
async def get_previous_sessions(
    subject: Optional[str] = Query(default=None),
    lesson: Optional[str] = Query(default=None),
    db: AsyncSession = Depends(get_db_session),
) -> PreviousSessionsResponse:
    """
    One entry per topic, most recently practiced first.

    Averages blend each older session into the running value pairwise,
    `round((avg + value) / 2)`, so recent sessions weigh the least.
    """
    if not subject or not lesson:
        raise ValidationError(message="Subject and lesson are required")

    summaries = await session_service.previous_topics(db, subject, lesson)
    topics = [TopicSummary.model_validate(s) for s in summaries]
    return PreviousSessionsResponse(topics=topics, count=len(topics))


@router.post(
    "/ai-generate-topics",
    response_model=GenerateTopicsResponse,
    responses={400: {"description": "Missing subject or lesson", "model": ErrorResponse}, **_AI_ERRORS},
    summary="Generate speaking topics with AI",
)
async def generate_topics(body: GenerateTopicsRequest) -> GenerateTopicsResponse:
    if not body.subject or not body.lesson:
        raise ValidationError(message="Subject and lesson are required")

    names, raw = await coaching_service.generate_topics(body.subject, body.lesson)
    return GenerateTopicsResponse(
        topics=[GeneratedTopic(id=f"ai-{i}", name=name) for i, name in enumerate(names, 1)],
        debug=GenerateTopicsDebug(raw_response=raw, parsed_topics=names),
    )


@router.post(
    "/ai-analyze-speech",
    response_model=AnalyzeSpeechResponse,
    responses={400: {"description": "Missing required fields", "model": ErrorResponse}, **_AI_ERRORS},
    summary="AI feedback on a speech transcript",
)
async def analyze_speech(body: AnalyzeSpeechRequest) -> AnalyzeSpeechResponse:
    if not (body.speech_text and body.subject and body.lesson and body.topic):
        raise ValidationError(message="Missing required fields")

    analysis = await coaching_service.analyze_speech(
        body.subject, body.lesson, body.topic, body.speech_text
    )
    return AnalyzeSpeechResponse(analysis=analysis, metadata=analysis["metadata"])


@router.post(
    "/save-speaking-session",
    response_model=SaveSessionResponse,
    responses={400: {"description": "Missing required fields", "model": ErrorResponse}},
    summary="Store a speaking practice session",
)
async def save_speaking_session(
    body: SaveSessionRequest,
    db: AsyncSession = Depends(get_db_session),
) -> SaveSessionResponse:
    if not (body.subject and body.lesson and body.topic and body.speech_text and body.ai_feedback):
        raise ValidationError(message="Missing required fields")

    session = await session_service.save_session(
        db,
        subject=body.subject,
        lesson=body.lesson,
        topic=body.topic,
        speech_text=body.speech_text,
        ai_feedback=body.ai_feedback,
        duration=body.duration,
        topic_content=body.topic_content,
    )
    return SaveSessionResponse(session_id=str(session.id))


@router.get(
    "/get-topic-content",
    response_model=TopicContentResponse,
    responses={
        400: {"description": "Missing parameters", "model": ErrorResponse},
        404: {"description": "No stored content", "model": ErrorResponse},
    },
    summary="Latest stored content for a topic",
)
async def get_topic_content(
    subject: Optional[str] = Query(default=None),
    lesson: Optional[str] = Query(default=None),
    topic: Optional[str] = Query(default=None),
    db: AsyncSession = Depends(get_db_session),
) -> TopicContentResponse:
    if not (subject and lesson and topic):
        raise ValidationError(message="Missing required parameters")

    content = await session_service.topic_content(db, subject, lesson, topic)
    return TopicContentResponse(topic_content=content)
