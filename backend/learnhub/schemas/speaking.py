"""
Speaking practice request/response models.

Required fields are Optional here and checked in the route so a missing
field gets the route's own message (e.g. "Missing required fields").
"""

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field

from learnhub.schemas.common import CamelModel


class TopicSummary(BaseModel):
    """One aggregated topic from the user's speaking history."""

    id: str
    name: str
    lesson_id: str
    is_previous_session: bool = Field(alias="isPreviousSession")
    last_practiced: Any = Field(alias="lastPracticed")
    session_count: int = Field(alias="sessionCount")
    # Rows written before scores were rounded may still hold fractions
    avg_duration: Union[int, float] = Field(alias="avgDuration")
    avg_word_count: Union[int, float] = Field(alias="avgWordCount")
    avg_score: Union[int, float] = Field(alias="avgScore")

    model_config = {"populate_by_name": True}


class PreviousSessionsResponse(CamelModel):
    success: bool = True
    topics: List[TopicSummary]
    count: int


class GenerateTopicsRequest(CamelModel):
    subject: Optional[str] = None
    lesson: Optional[str] = None


class GeneratedTopic(BaseModel):
    id: str
    name: str
    lesson_id: str = "ai-generated"
    is_ai_generated: bool = Field(default=True, alias="isAiGenerated")

    model_config = {"populate_by_name": True}


class GenerateTopicsDebug(CamelModel):
    raw_response: str
    parsed_topics: List[str]


class GenerateTopicsResponse(CamelModel):
    success: bool = True
    topics: List[GeneratedTopic]
    debug: GenerateTopicsDebug


class AnalyzeSpeechRequest(CamelModel):
    subject: Optional[str] = None
    lesson: Optional[str] = None
    topic: Optional[str] = None
    speech_text: Optional[str] = None


class AnalyzeSpeechResponse(CamelModel):
    success: bool = True
    analysis: Dict[str, Any]
    metadata: Dict[str, Any]


class SaveSessionRequest(CamelModel):
    subject: Optional[str] = None
    lesson: Optional[str] = None
    topic: Optional[str] = None
    speech_text: Optional[str] = None
    ai_feedback: Any = None
    duration: Optional[float] = None
    topic_content: Any = None


class SaveSessionResponse(CamelModel):
    success: bool = True
    session_id: str
    message: str = "Speaking session saved successfully"


class TopicContentResponse(CamelModel):
    success: bool = True
    topic_content: Any
