"""
LearnHub Backend: Quiz & Mastery Routes
=========================================

What:  Flashcard questions, per-topic mastery counters, client progress sync
       and quiz image upload.
How:   Topics are addressed by (subject slug, lesson name, topic name);
       CurriculumService resolves the chain and raises 404 at the first miss.

Endpoints:
    GET  /api/get-quiz            questions for a topic
    POST /api/save-quiz           add a question
    GET  /api/get-topic-mastery   topic row with its mastery count
    POST /api/update-mastery      add to the mastery count
    GET  /api/get-all-progress    every topic, highest mastery first
    POST /api/sync-progress       bulk upsert of client-side progress
    POST /api/save-progress       upsert one progress record
    POST /api/upload-image        store a quiz image, return its URL
"""

import logging
from typing import Dict, Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from learnhub.database import get_db_session
from learnhub.exceptions import ValidationError
from learnhub.schemas.common import ErrorResponse, SuccessResponse
from learnhub.schemas.curriculum import (
    AllProgressResponse,
    ProgressEntry,
    ProgressRow,
    QuestionOut,
    QuizResponse,
    SaveProgressRequest,
    SaveQuizRequest,
    SyncProgressResponse,
    TopicMasteryResponse,
    TopicOut,
    UpdateMasteryRequest,
    UpdateMasteryResponse,
    UploadImageResponse,
)
from learnhub.services.curriculum_service import curriculum_service
from learnhub.services.file_service import file_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Quiz"])

_NOT_FOUND = {404: {"description": "Subject, lesson or topic not found", "model": ErrorResponse}}


@router.get("/get-quiz", response_model=QuizResponse, responses=_NOT_FOUND)
async def get_quiz(
    subject: Optional[str] = Query(default=None),
    lesson: Optional[str] = Query(default=None),
    topic: Optional[str] = Query(default=None),
    db: AsyncSession = Depends(get_db_session),
) -> QuizResponse:
    if not (subject and lesson and topic):
        raise ValidationError(message="Missing subject, lesson, or topic")

    questions = await curriculum_service.get_questions(db, subject, lesson, topic)
    return QuizResponse(questions=[QuestionOut.model_validate(q) for q in questions])


@router.post("/save-quiz", response_model=SuccessResponse, responses=_NOT_FOUND)
async def save_quiz(
    body: SaveQuizRequest,
    db: AsyncSession = Depends(get_db_session),
) -> SuccessResponse:
    if not (body.subject and body.lesson and body.topic and body.question and body.answer):
        raise ValidationError(message="Missing required fields")

    await curriculum_service.add_question(
        db,
        body.subject,
        body.lesson,
        body.topic,
        question=body.question,
        answer=body.answer,
        note=body.note,
        image_before=body.image_before,
        image_after=body.image_after,
    )
    return SuccessResponse()


@router.get("/get-topic-mastery", response_model=TopicMasteryResponse, responses=_NOT_FOUND)
async def get_topic_mastery(
    subject: Optional[str] = Query(default=None),
    lesson: Optional[str] = Query(default=None),
    topic: Optional[str] = Query(default=None),
    db: AsyncSession = Depends(get_db_session),
) -> TopicMasteryResponse:
    if not (subject and lesson and topic):
        raise ValidationError(message="Missing required fields: subject, lesson, topic")

    resolved = await curriculum_service.resolve_topic(db, subject, lesson, topic)
    return TopicMasteryResponse(topic=TopicOut.model_validate(resolved))


@router.post("/update-mastery", response_model=UpdateMasteryResponse, responses=_NOT_FOUND)
async def update_mastery(
    body: UpdateMasteryRequest,
    db: AsyncSession = Depends(get_db_session),
) -> UpdateMasteryResponse:
    # increment=0 counts as missing
    if not (body.subject and body.lesson and body.topic and body.increment):
        raise ValidationError(
            message="Missing required fields: subject, lesson, topic, increment"
        )

    updated = await curriculum_service.update_mastery(
        db, body.subject, body.lesson, body.topic, body.increment
    )
    return UpdateMasteryResponse(
        updated=TopicOut.model_validate(updated),
        message=f"Mastery count incremented by {body.increment}",
    )


@router.get("/get-all-progress", response_model=AllProgressResponse)
async def get_all_progress(db: AsyncSession = Depends(get_db_session)) -> AllProgressResponse:
    rows = await curriculum_service.all_progress(db)
    return AllProgressResponse(data=[ProgressRow(**row) for row in rows])


@router.post("/sync-progress", response_model=SyncProgressResponse)
async def sync_progress(
    body: Dict[str, Dict[str, ProgressEntry]],
    db: AsyncSession = Depends(get_db_session),
) -> SyncProgressResponse:
    """
    Body: {subject: {topic: {mastered, lastMastered}}}.

    Records that fail to save are skipped; the reply lists the ones stored.
    """
    updates = await curriculum_service.sync_progress(db, body)
    return SyncProgressResponse(
        message=f"Updated {len(updates)} progress records",
        updates=updates,
    )


@router.post("/save-progress", response_model=SuccessResponse)
async def save_progress(
    body: SaveProgressRequest,
    db: AsyncSession = Depends(get_db_session),
) -> SuccessResponse:
    if not body.subject or not body.topic or body.mastery_count is None:
        raise ValidationError(message="subject, topic and masteryCount are required")

    await curriculum_service.save_progress(
        db, body.subject, body.topic, body.mastery_count, body.last_mastered
    )
    return SuccessResponse()


@router.post(
    "/upload-image",
    response_model=UploadImageResponse,
    responses={
        400: {"description": "Invalid or missing file", "model": ErrorResponse},
        500: {"description": "Upload failed", "model": ErrorResponse},
    },
    summary="Upload a quiz image",
)
async def upload_image(
    file: Optional[UploadFile] = File(default=None),
) -> UploadImageResponse:
    """
    Stores an image for a quiz question and returns its public URL.

    Extension, size and magic-byte checks run before anything is written.
    """
    if file is None:
        raise ValidationError(message="Invalid or missing file", field="file")

    try:
        content = await file.read()
        logger.info(
            "Received quiz image: filename=%s, size=%d bytes",
            file.filename or "unknown",
            len(content),
        )
        url = await file_service.save_image(
            filename=file.filename or "upload.png",
            content=content,
            content_length=file.size,
        )
    finally:
        await file.close()

    return UploadImageResponse(url=url)
