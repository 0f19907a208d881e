"""Quiz, mastery and progress request/response models."""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from learnhub.schemas.common import CamelModel


class QuestionOut(BaseModel):
    id: uuid.UUID
    topic_id: uuid.UUID
    question: str
    answer: str
    note: Optional[str] = None
    image_before: Optional[str] = None
    image_after: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class TopicOut(BaseModel):
    id: uuid.UUID
    name: str
    lesson_id: uuid.UUID
    mastery_count: Optional[int] = None
    last_mastered: Optional[datetime] = None
    updated_at: datetime

    model_config = {"from_attributes": True}


class QuizResponse(BaseModel):
    questions: List[QuestionOut]


class SaveQuizRequest(CamelModel):
    subject: Optional[str] = None
    lesson: Optional[str] = None
    topic: Optional[str] = None
    question: Optional[str] = None
    answer: Optional[str] = None
    note: Optional[str] = None
    image_before: Optional[str] = None
    image_after: Optional[str] = None


class TopicMasteryResponse(BaseModel):
    success: bool = True
    topic: TopicOut


class UpdateMasteryRequest(CamelModel):
    subject: Optional[str] = None
    lesson: Optional[str] = None
    topic: Optional[str] = None
    increment: Optional[int] = None


class UpdateMasteryResponse(BaseModel):
    success: bool = True
    updated: TopicOut
    message: str


class ProgressRow(BaseModel):
    topic_name: str
    mastery_count: int
    last_mastered: Optional[datetime] = None
    subject_label: str
    subject_slug: str


class AllProgressResponse(BaseModel):
    success: bool = True
    data: List[ProgressRow]


class ProgressEntry(CamelModel):
    """One topic inside a sync-progress body: {subject: {topic: entry}}."""

    mastered: int = 0
    last_mastered: Optional[datetime] = None


class SyncProgressResponse(BaseModel):
    success: bool = True
    message: str
    updates: List[Dict[str, Any]]


class SaveProgressRequest(CamelModel):
    subject: Optional[str] = None
    topic: Optional[str] = None
    mastery_count: Optional[int] = None
    last_mastered: Optional[datetime] = None


class UploadImageResponse(BaseModel):
    url: str
