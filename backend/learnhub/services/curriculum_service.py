"""
LearnHub Backend: Curriculum Service
======================================

What:  Quiz questions, topic mastery and progress sync.
How:   Every topic-scoped operation resolves subject slug → lesson name →
       topic name first; a miss at any step raises NotFoundError naming that
       step ("Subject not found", "Lesson not found", "Topic not found").
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from learnhub.exceptions import DatabaseError, NotFoundError
from learnhub.models.curriculum import Lesson, Question, Subject, Topic, UserProgress

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CurriculumService:

    async def resolve_topic(
        self, db: AsyncSession, subject_slug: str, lesson_name: str, topic_name: str
    ) -> Topic:
        subject_id = (
            await db.execute(select(Subject.id).where(Subject.slug == subject_slug))
        ).scalar_one_or_none()
        if subject_id is None:
            logger.info("Subject not found: %s", subject_slug)
            raise NotFoundError(resource="subject", message="Subject not found")

        lesson_id = (
            await db.execute(
                select(Lesson.id).where(
                    Lesson.name == lesson_name, Lesson.subject_id == subject_id
                )
            )
        ).scalar_one_or_none()
        if lesson_id is None:
            logger.info("Lesson not found: %s/%s", subject_slug, lesson_name)
            raise NotFoundError(resource="lesson", message="Lesson not found")

        topic = (
            await db.execute(
                select(Topic).where(Topic.name == topic_name, Topic.lesson_id == lesson_id)
            )
        ).scalar_one_or_none()
        if topic is None:
            logger.info("Topic not found: %s/%s/%s", subject_slug, lesson_name, topic_name)
            raise NotFoundError(resource="topic", message="Topic not found")
        return topic

    # ── Questions ─────────────────────────────────────────────────────────

    async def get_questions(
        self, db: AsyncSession, subject: str, lesson: str, topic: str
    ) -> List[Question]:
        resolved = await self.resolve_topic(db, subject, lesson, topic)
        try:
            result = await db.execute(
                select(Question)
                .where(Question.topic_id == resolved.id)
                .order_by(Question.created_at)
            )
        except Exception as e:
            logger.error("Error fetching questions: %s", str(e), exc_info=True)
            raise DatabaseError(message="Error fetching questions") from e
        return list(result.scalars().all())

    async def add_question(
        self,
        db: AsyncSession,
        subject: str,
        lesson: str,
        topic: str,
        question: str,
        answer: str,
        note: Optional[str] = None,
        image_before: Optional[str] = None,
        image_after: Optional[str] = None,
    ) -> Question:
        resolved = await self.resolve_topic(db, subject, lesson, topic)
        row = Question(
            topic_id=resolved.id,
            question=question,
            answer=answer,
            note=note or None,
            image_before=image_before or None,
            image_after=image_after or None,
        )
        try:
            db.add(row)
            await db.flush()
        except Exception as e:
            logger.error("Insert failed for question on %s: %s", topic, str(e), exc_info=True)
            raise DatabaseError(message="Insert failed") from e
        return row

    # ── Mastery ───────────────────────────────────────────────────────────

    async def update_mastery(
        self, db: AsyncSession, subject: str, lesson: str, topic: str, increment: int
    ) -> Topic:
        """Adds `increment` to the topic's mastery count (NULL counts as 0)."""
        resolved = await self.resolve_topic(db, subject, lesson, topic)
        now = _utcnow()
        try:
            resolved.mastery_count = (resolved.mastery_count or 0) + increment
            resolved.last_mastered = now
            resolved.updated_at = now
            await db.flush()
        except Exception as e:
            logger.error("Failed to update mastery count: %s", str(e), exc_info=True)
            raise DatabaseError(message="Failed to update mastery count") from e

        logger.info(
            "Mastery for %s/%s/%s is now %d (+%d)",
            subject, lesson, topic, resolved.mastery_count, increment,
        )
        return resolved

    async def all_progress(self, db: AsyncSession) -> List[Dict[str, Any]]:
        """Every topic with its subject, highest mastery first."""
        try:
            result = await db.execute(
                select(
                    Topic.name,
                    Topic.mastery_count,
                    Topic.last_mastered,
                    Subject.label,
                    Subject.slug,
                )
                .outerjoin(Lesson, Topic.lesson_id == Lesson.id)
                .outerjoin(Subject, Lesson.subject_id == Subject.id)
                .order_by(Topic.mastery_count.desc(), Topic.name)
            )
        except Exception as e:
            logger.error("Error fetching progress data: %s", str(e), exc_info=True)
            raise DatabaseError(message="Failed to fetch progress data") from e

        return [
            {
                "topic_name": name,
                "mastery_count": mastery or 0,
                "last_mastered": last_mastered,
                "subject_label": label or "Unknown Subject",
                "subject_slug": slug or "unknown",
            }
            for name, mastery, last_mastered, label, slug in result.all()
        ]

    # ── Client progress sync ──────────────────────────────────────────────

    async def upsert_progress(
        self,
        db: AsyncSession,
        subject: str,
        topic: str,
        mastery_count: int,
        last_mastered: Optional[datetime] = None,
    ) -> UserProgress:
        """Insert or overwrite the (subject, topic) progress row."""
        row = (
            await db.execute(
                select(UserProgress).where(
                    UserProgress.subject == subject, UserProgress.topic == topic
                )
            )
        ).scalar_one_or_none()
        if row is None:
            row = UserProgress(subject=subject, topic=topic)
            db.add(row)
        row.mastery_count = mastery_count
        row.last_mastered = last_mastered
        row.updated_at = _utcnow()
        await db.flush()
        return row

    async def save_progress(
        self,
        db: AsyncSession,
        subject: str,
        topic: str,
        mastery_count: int,
        last_mastered: Optional[datetime] = None,
    ) -> UserProgress:
        try:
            row = await self.upsert_progress(db, subject, topic, mastery_count, last_mastered)
        except Exception as e:
            logger.error("Failed to save progress for %s/%s: %s", subject, topic, str(e), exc_info=True)
            raise DatabaseError(message="Failed to save progress") from e
        logger.info("Progress for %s/%s set to %d", subject, topic, mastery_count)
        return row

    async def sync_progress(
        self, db: AsyncSession, progress: Mapping[str, Mapping[str, Any]]
    ) -> List[Dict[str, Any]]:
        """
        Upserts every {subject: {topic: entry}} item.

        Each item runs in its own savepoint; a failing item is logged and
        left out of the returned list while the others still commit.
        """
        updates: List[Dict[str, Any]] = []
        for subject, topics in progress.items():
            for topic, entry in topics.items():
                try:
                    async with db.begin_nested():
                        await self.upsert_progress(
                            db, subject, topic, entry.mastered, entry.last_mastered
                        )
                except Exception as e:
                    logger.error(
                        "Error updating progress for %s/%s: %s", subject, topic, str(e)
                    )
                    continue
                updates.append({"subject": subject, "topic": topic, "mastered": entry.mastered})

        logger.info("Progress sync stored %d records", len(updates))
        return updates


curriculum_service = CurriculumService()
