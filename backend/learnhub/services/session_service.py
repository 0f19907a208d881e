"""
LearnHub Backend: Speaking Session Service
============================================

What:  Persistence and history for speaking-practice sessions.
How:   Sessions are written once and read back per (subject, lesson). The
       history view collapses them into one summary per topic with
       `aggregate_sessions()`, which is pure and tested on its own.

Topic averages use a pairwise blend, not a cumulative mean: every further
session for a topic sets `avg = round_half_up((avg + value) / 2)`, walking
the sessions newest first. Scores [80, 60, 100] therefore blend to 85, not
80. The client's history screen depends on these numbers; see DESIGN.md.
"""

import logging
import re
from typing import Any, Dict, Iterable, List, Optional, Sequence
from urllib.parse import unquote

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from learnhub.exceptions import DatabaseError, NotFoundError, ValidationError
from learnhub.models.speaking import SpeakingSession
from learnhub.utils import round_half_up

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")


def topic_slug(topic: str) -> str:
    return "prev-" + _WHITESPACE.sub("-", topic).lower()


def count_words(text: str) -> int:
    """Number of single-space separated pieces, empty pieces included."""
    return len(text.split(" "))


def _whole_score(value: Any) -> int:
    """Client scores are plain numbers; the column holds whole points."""
    if value is None or value == "":
        return 0
    try:
        return round_half_up(float(value))
    except (TypeError, ValueError, OverflowError):
        raise ValidationError(
            message="aiFeedback.overall_score must be a number",
            field="aiFeedback.overall_score",
        ) from None


def aggregate_sessions(sessions: Iterable[Any]) -> List[Dict[str, Any]]:
    """
    Collapses sessions (newest first) into one summary per topic.

    Summaries keep the order in which topics first appear. The first
    occurrence of a topic seeds the averages with its raw values and sets
    `lastPracticed`; later ones increment `sessionCount` and blend.
    """
    summaries: Dict[str, Dict[str, Any]] = {}

    for session in sessions:
        duration = session.duration_seconds or 0
        words = session.word_count or 0
        score = session.overall_score or 0

        summary = summaries.get(session.topic)
        if summary is None:
            summaries[session.topic] = {
                "id": topic_slug(session.topic),
                "name": session.topic,
                "lesson_id": "previous-session",
                "isPreviousSession": True,
                "lastPracticed": session.created_at,
                "sessionCount": 1,
                "avgDuration": duration,
                "avgWordCount": words,
                "avgScore": score,
            }
            continue

        summary["sessionCount"] += 1
        summary["avgDuration"] = round_half_up((summary["avgDuration"] + duration) / 2)
        summary["avgWordCount"] = round_half_up((summary["avgWordCount"] + words) / 2)
        summary["avgScore"] = round_half_up((summary["avgScore"] + score) / 2)

    return list(summaries.values())


class SessionService:

    async def save_session(
        self,
        db: AsyncSession,
        subject: str,
        lesson: str,
        topic: str,
        speech_text: str,
        ai_feedback: Any,
        duration: Optional[float] = None,
        topic_content: Any = None,
    ) -> SpeakingSession:
        overall_score = 0
        if isinstance(ai_feedback, dict):
            overall_score = _whole_score(ai_feedback.get("overall_score"))

        session = SpeakingSession(
            subject=subject,
            lesson=lesson,
            topic=topic,
            speech_text=speech_text,
            ai_feedback=ai_feedback,
            duration_seconds=int(duration or 0),
            word_count=count_words(speech_text),
            overall_score=overall_score,
            topic_content=topic_content or None,
        )
        try:
            db.add(session)
            await db.flush()
        except Exception as e:
            logger.error("Failed to save speaking session: %s", str(e), exc_info=True)
            raise DatabaseError(context={"operation": "save_session"}) from e

        logger.info(
            "Speaking session saved: id=%s topic='%s' words=%d",
            session.id,
            topic,
            session.word_count,
        )
        return session

    async def _sessions_for(
        self, db: AsyncSession, subject: str, lesson: str
    ) -> Sequence[SpeakingSession]:
        result = await db.execute(
            select(SpeakingSession)
            .where(SpeakingSession.subject == subject, SpeakingSession.lesson == lesson)
            .order_by(SpeakingSession.created_at.desc())
        )
        return result.scalars().all()

    async def previous_topics(
        self, db: AsyncSession, subject: str, lesson: str
    ) -> List[Dict[str, Any]]:
        """
        Topic summaries for a subject/lesson.

        Values are looked up URL-decoded first. Older rows were stored with
        the encoded strings, so an empty result is retried with the values
        exactly as received.
        """
        try:
            sessions = await self._sessions_for(db, unquote(subject), unquote(lesson))
            if not sessions:
                sessions = await self._sessions_for(db, subject, lesson)
        except Exception as e:
            logger.error("Failed to fetch previous sessions: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Failed to fetch previous sessions",
                context={"subject": subject, "lesson": lesson},
            ) from e

        return aggregate_sessions(sessions)

    async def topic_content(
        self, db: AsyncSession, subject: str, lesson: str, topic: str
    ) -> Any:
        """Most recent non-null topic content for the triple, else NotFoundError."""
        try:
            result = await db.execute(
                select(SpeakingSession.topic_content)
                .where(
                    SpeakingSession.subject == unquote(subject),
                    SpeakingSession.lesson == unquote(lesson),
                    SpeakingSession.topic == unquote(topic),
                    SpeakingSession.topic_content.is_not(None),
                )
                .order_by(SpeakingSession.created_at.desc())
                .limit(1)
            )
            content = result.scalar_one_or_none()
        except Exception as e:
            logger.error("Failed to fetch topic content: %s", str(e), exc_info=True)
            raise DatabaseError(message="Database error") from e

        if content is None:
            raise NotFoundError(resource="topic content", message="No topic content found")
        return content


session_service = SessionService()
