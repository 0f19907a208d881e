"""
LearnHub Backend: Speaking Session Model
==========================================

What:  ORM model for `speaking_sessions`, one row per recorded practice speech.
How:   Rows are written once by save-speaking-session and never updated.
       Reads filter on (subject, lesson) ordered by created_at DESC, which the
       composite index serves.

`ai_feedback` and `topic_content` are stored as JSON because the client sends
either structured objects or plain strings for them.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import JSON, DateTime, Index, Integer, String, Text, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from learnhub.database import Base


class SpeakingSession(Base):
    __tablename__ = "speaking_sessions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    subject: Mapped[str] = mapped_column(String(255), nullable=False)
    lesson: Mapped[str] = mapped_column(String(255), nullable=False)
    topic: Mapped[str] = mapped_column(String(500), nullable=False)

    speech_text: Mapped[str] = mapped_column(Text, nullable=False)
    ai_feedback: Mapped[Any] = mapped_column(JSON, nullable=False)

    duration_seconds: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0")
    )
    word_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0")
    )
    overall_score: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, default=0)

    # Guiding questions shown while the user practiced; replayed by get-topic-content
    topic_content: Mapped[Optional[Any]] = mapped_column(
        JSON(none_as_null=True), nullable=True, default=None
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        Index("idx_speaking_sessions_subject_lesson", "subject", "lesson", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<SpeakingSession(id={self.id}, subject='{self.subject}', "
            f"lesson='{self.lesson}', topic='{self.topic}')>"
        )
