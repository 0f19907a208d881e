"""
LearnHub Backend: Workout Tracker Service
===========================================

What:  Activity log, daily totals, analytics, stats, weight history and the
       AI coach chat.
How:   Every write that changes a day's activities recomputes that day's
       totals from its activity rows (DailyTracking.recompute_totals), so
       totals never drift from the log.

Best-effort side effects (profile upsert and weight log in save_user_stats,
chat persistence) run inside savepoints: a failure there is logged, the
savepoint is rolled back, and the main write still commits.
"""

import logging
import uuid
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from learnhub.exceptions import DatabaseError, LearnHubError, NotFoundError
from learnhub.models.workout import (
    KCAL_PER_KG,
    Activity,
    ChatMessage,
    DailyTracking,
    User,
    UserStats,
    WeightEntry,
)
from learnhub.services.gemini_service import gemini_service
from learnhub.services.llm_base import LLMService

logger = logging.getLogger(__name__)

COACH_PERSONA = (
    "You are a fitness and nutrition coach assistant. "
    "Help the user with their workout and weight loss journey."
)
COACH_CLOSING = (
    "Please provide helpful, encouraging, and accurate fitness/nutrition advice "
    "based on this information. Keep responses concise but informative."
)
CHAT_FALLBACK = "I'm sorry, I couldn't generate a response right now."


def today() -> date:
    return datetime.now(timezone.utc).date()


def _start_of(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


class WorkoutService:

    def __init__(self, llm: LLMService = gemini_service):
        self.llm = llm

    # ── Daily tracking ────────────────────────────────────────────────────

    async def _get_day(self, db: AsyncSession, user_id: str, day: date) -> Optional[DailyTracking]:
        result = await db.execute(
            select(DailyTracking).where(
                DailyTracking.user_id == user_id, DailyTracking.date == day
            )
        )
        return result.scalar_one_or_none()

    async def get_or_create_day(
        self,
        db: AsyncSession,
        user_id: str,
        day: date,
        bmr: Optional[float] = None,
        maintenance: Optional[float] = None,
        target: Optional[float] = None,
    ) -> DailyTracking:
        """
        Returns the (user, day) tracking row, creating it on first use.

        Targets are recorded when the day is opened; later calls only fill
        targets that are still missing.
        """
        tracking = await self._get_day(db, user_id, day)
        if tracking is None:
            tracking = DailyTracking(
                user_id=user_id,
                date=day,
                bmr_used=bmr,
                maintenance_used=maintenance,
                target_calories_used=target,
            )
            db.add(tracking)
            await db.flush()
            logger.info("Opened tracking day %s for user %s", day, user_id)
            return tracking

        if tracking.bmr_used is None and bmr is not None:
            tracking.bmr_used = bmr
        if tracking.maintenance_used is None and maintenance is not None:
            tracking.maintenance_used = maintenance
        if tracking.target_calories_used is None and target is not None:
            tracking.target_calories_used = target
        return tracking

    async def _activities_for_day(self, db: AsyncSession, tracking_id: uuid.UUID) -> List[Activity]:
        result = await db.execute(
            select(Activity)
            .where(Activity.daily_tracking_id == tracking_id)
            .order_by(Activity.created_at)
        )
        return list(result.scalars().all())

    async def _refresh_totals(self, db: AsyncSession, tracking: DailyTracking) -> None:
        tracking.recompute_totals(await self._activities_for_day(db, tracking.id))
        await db.flush()

    async def log_activity(
        self,
        db: AsyncSession,
        user_id: str,
        type: str,
        calories: float,
        name: Optional[str] = None,
        details: Optional[str] = None,
        category: Optional[str] = None,
        parameters: Any = None,
        ai_calculated: bool = False,
        day: Optional[date] = None,
        bmr: Optional[float] = None,
        maintenance: Optional[float] = None,
        target_calories: Optional[float] = None,
    ) -> Tuple[Activity, DailyTracking]:
        day = day or today()
        try:
            tracking = await self.get_or_create_day(
                db, user_id, day, bmr, maintenance, target_calories
            )
            activity = Activity(
                user_id=user_id,
                daily_tracking_id=tracking.id,
                type=type,
                name=name,
                details=details,
                calories=calories,
                category=category,
                parameters=parameters,
                ai_calculated=ai_calculated,
            )
            db.add(activity)
            await db.flush()
            await self._refresh_totals(db, tracking)
        except LearnHubError:
            raise
        except Exception as e:
            logger.error("Failed to save activity for %s: %s", user_id, str(e), exc_info=True)
            raise DatabaseError(message="Failed to save activity") from e

        logger.info(
            "Logged %s '%s' (%s kcal) for %s on %s",
            type, name or "", calories, user_id, day,
        )
        return activity, tracking

    async def day_activities(
        self, db: AsyncSession, user_id: str, day: Optional[date] = None
    ) -> Tuple[Optional[DailyTracking], List[Activity]]:
        try:
            tracking = await self._get_day(db, user_id, day or today())
            if tracking is None:
                return None, []
            return tracking, await self._activities_for_day(db, tracking.id)
        except Exception as e:
            logger.error("Failed to fetch activities for %s: %s", user_id, str(e), exc_info=True)
            raise DatabaseError(message="Failed to fetch data") from e

    async def delete_activity(self, db: AsyncSession, activity_id: uuid.UUID) -> None:
        activity = await db.get(Activity, activity_id)
        if activity is None:
            raise NotFoundError(resource="activity", resource_id=str(activity_id))

        try:
            tracking_id = activity.daily_tracking_id
            await db.delete(activity)
            await db.flush()
            tracking = await db.get(DailyTracking, tracking_id)
            if tracking is not None:
                await self._refresh_totals(db, tracking)
        except Exception as e:
            logger.error("Failed to delete activity %s: %s", activity_id, str(e), exc_info=True)
            raise DatabaseError(message="Failed to delete activity") from e

        logger.info("Deleted activity %s", activity_id)

    # ── Analytics ─────────────────────────────────────────────────────────

    async def analytics(
        self, db: AsyncSession, user_id: str, days: int = 7
    ) -> Tuple[Dict[str, Any], List[DailyTracking]]:
        """
        Totals over the last `days` days plus per-type and per-category
        calorie breakdowns. A failing breakdown query leaves both breakdowns
        empty instead of failing the request.
        """
        start = today() - timedelta(days=days)
        try:
            result = await db.execute(
                select(DailyTracking)
                .where(DailyTracking.user_id == user_id, DailyTracking.date >= start)
                .order_by(DailyTracking.date)
            )
            daily = list(result.scalars().all())
        except Exception as e:
            logger.error("Error fetching daily data for %s: %s", user_id, str(e), exc_info=True)
            raise DatabaseError(message="Failed to fetch analytics data") from e

        by_type: Dict[str, float] = {}
        by_category: Dict[str, float] = {}
        try:
            async with db.begin_nested():
                rows = (
                    await db.execute(
                        select(Activity.type, Activity.category, Activity.calories).where(
                            Activity.user_id == user_id,
                            Activity.created_at >= _start_of(start),
                        )
                    )
                ).all()
            for activity_type, category, calories in rows:
                by_type[activity_type] = by_type.get(activity_type, 0) + (calories or 0)
                if activity_type == "exercise":
                    key = category or "other"
                    by_category[key] = by_category.get(key, 0) + (calories or 0)
        except Exception as e:
            logger.error("Error fetching activity breakdown for %s: %s", user_id, str(e))
            by_type, by_category = {}, {}

        total_deficit = sum(d.deficit_created or 0 for d in daily)
        summary = {
            "total_days": len(daily),
            "total_deficit": total_deficit,
            "avg_deficit": total_deficit / len(daily) if daily else 0,
            "expected_weight_loss": total_deficit / KCAL_PER_KG,
            "total_calories_in": sum(d.total_calories_in or 0 for d in daily),
            "total_calories_out": sum(d.total_calories_out or 0 for d in daily),
            "activities_by_type": by_type,
            "exercise_by_category": by_category,
        }
        return summary, daily

    # ── Stats & profile ───────────────────────────────────────────────────

    async def save_user_stats(
        self,
        db: AsyncSession,
        user_id: str,
        current_weight: float,
        target_weight: Optional[float] = None,
        height: Optional[float] = None,
        age: Optional[int] = None,
        weekly_weight_loss: Optional[float] = None,
        bmr: Optional[float] = None,
        maintenance_calories: Optional[float] = None,
        target_daily_calories: Optional[float] = None,
        day: Optional[date] = None,
    ) -> UserStats:
        day = day or today()
        stats = UserStats(
            user_id=user_id,
            current_weight=current_weight,
            target_weight=target_weight,
            weekly_weight_loss=weekly_weight_loss,
            bmr=bmr,
            maintenance_calories=maintenance_calories,
            target_daily_calories=target_daily_calories,
            date=day,
        )
        try:
            db.add(stats)
            await db.flush()
        except Exception as e:
            logger.error("Error saving user stats for %s: %s", user_id, str(e), exc_info=True)
            raise DatabaseError(message="Failed to save user stats") from e

        try:
            async with db.begin_nested():
                await self._upsert_profile(db, user_id, height, age)
        except Exception as e:
            logger.error("Error updating user info for %s: %s", user_id, str(e))

        try:
            async with db.begin_nested():
                await self.upsert_weight(db, user_id, current_weight, day)
        except Exception as e:
            logger.error("Error logging weight for %s on %s: %s", user_id, day, str(e))

        return stats

    async def _upsert_profile(
        self, db: AsyncSession, user_id: str, height: Optional[float], age: Optional[int]
    ) -> User:
        user = await db.get(User, user_id)
        if user is None:
            user = User(id=user_id)
            db.add(user)
        user.height = height
        user.age = age
        user.updated_at = datetime.now(timezone.utc)
        await db.flush()
        return user

    async def latest_user_stats(
        self, db: AsyncSession, user_id: str
    ) -> Tuple[Optional[UserStats], Optional[User]]:
        try:
            result = await db.execute(
                select(UserStats)
                .where(UserStats.user_id == user_id)
                .order_by(UserStats.date.desc(), UserStats.created_at.desc())
                .limit(1)
            )
            stats = result.scalar_one_or_none()
            user = await db.get(User, user_id)
        except Exception as e:
            logger.error("Error fetching user stats for %s: %s", user_id, str(e), exc_info=True)
            raise DatabaseError(message="Failed to fetch user stats") from e
        return stats, user

    # ── Weight history ────────────────────────────────────────────────────

    async def upsert_weight(
        self,
        db: AsyncSession,
        user_id: str,
        weight: float,
        day: Optional[date] = None,
        notes: Optional[str] = None,
    ) -> WeightEntry:
        """One entry per (user, day); a second save for the day overwrites it."""
        day = day or today()
        result = await db.execute(
            select(WeightEntry).where(WeightEntry.user_id == user_id, WeightEntry.date == day)
        )
        entry = result.scalar_one_or_none()
        if entry is None:
            entry = WeightEntry(user_id=user_id, date=day)
            db.add(entry)
        entry.weight = weight
        entry.notes = notes
        await db.flush()
        return entry

    async def save_weight(
        self,
        db: AsyncSession,
        user_id: str,
        weight: float,
        day: Optional[date] = None,
        notes: Optional[str] = None,
    ) -> WeightEntry:
        try:
            return await self.upsert_weight(db, user_id, weight, day, notes)
        except Exception as e:
            logger.error("Error saving weight for %s: %s", user_id, str(e), exc_info=True)
            raise DatabaseError(message="Failed to save weight") from e

    async def weight_history(
        self, db: AsyncSession, user_id: str, days: int = 30
    ) -> List[WeightEntry]:
        cutoff = today() - timedelta(days=days)
        try:
            result = await db.execute(
                select(WeightEntry)
                .where(WeightEntry.user_id == user_id, WeightEntry.date >= cutoff)
                .order_by(WeightEntry.date)
            )
        except Exception as e:
            logger.error("Error fetching weight history for %s: %s", user_id, str(e), exc_info=True)
            raise DatabaseError(message="Failed to fetch weight history") from e
        return list(result.scalars().all())

    # ── Coach chat ────────────────────────────────────────────────────────

    async def coach_context(self, db: AsyncSession, user_id: str) -> str:
        """System prompt with the user's latest stats and last week of activity."""
        week_start = today() - timedelta(days=7)

        stats = (
            await db.execute(
                select(UserStats)
                .where(UserStats.user_id == user_id)
                .order_by(UserStats.date.desc(), UserStats.created_at.desc())
                .limit(1)
            )
        ).scalar_one_or_none()
        activities = (
            await db.execute(
                select(Activity)
                .where(Activity.user_id == user_id, Activity.created_at >= _start_of(week_start))
                .order_by(Activity.created_at.desc())
                .limit(10)
            )
        ).scalars().all()
        tracking = (
            await db.execute(
                select(DailyTracking)
                .where(DailyTracking.user_id == user_id, DailyTracking.date >= week_start)
                .order_by(DailyTracking.date.desc())
                .limit(7)
            )
        ).scalars().all()

        lines = [COACH_PERSONA]
        if stats is not None:
            lines += [
                "",
                "User Stats:",
                f"- Current Weight: {stats.current_weight}kg",
                f"- Target Weight: {stats.target_weight}kg",
                f"- Weekly Goal: {stats.weekly_weight_loss}kg/week",
                f"- BMR: {stats.bmr} calories",
                f"- Daily Target: {stats.target_daily_calories} calories",
            ]
        if activities:
            lines += ["", "Recent Activities (last 7 days):"]
            lines += [
                f"- {a.type}: {a.name} ({a.calories} cal) on {a.created_at.date().isoformat()}"
                for a in activities
            ]
        if tracking:
            lines += ["", "Recent Progress (last 7 days):"]
            lines += [
                f"- {d.date.isoformat()}: Calories in: {d.total_calories_in}, "
                f"Out: {d.total_calories_out}, Deficit: {d.deficit_created}"
                for d in tracking
            ]
        lines += ["", COACH_CLOSING]
        return "\n".join(lines)

    async def chat(
        self,
        db: AsyncSession,
        user_id: str,
        message: str,
        message_type: str = "general",
    ) -> Tuple[str, Optional[uuid.UUID], int]:
        """
        Answers `message` as the coach.

        Returns (reply, chat_id, tokens_used). chat_id is None when the
        exchange could not be stored; the reply is still returned.
        """
        context = await self.coach_context(db, user_id)
        completion = await self.llm.complete(
            message, system=context, max_tokens=500, temperature=0.7
        )
        reply = completion.text or CHAT_FALLBACK

        chat_id: Optional[uuid.UUID] = None
        try:
            async with db.begin_nested():
                row = ChatMessage(
                    user_id=user_id,
                    message=message,
                    response=reply,
                    message_type=message_type,
                    ai_model=completion.model or "unknown",
                    tokens_used=completion.tokens_used,
                )
                db.add(row)
                await db.flush()
            chat_id = row.id
        except Exception as e:
            logger.error("Error saving chat message for %s: %s", user_id, str(e))

        return reply, chat_id, completion.tokens_used

    async def chat_history(
        self, db: AsyncSession, user_id: str, limit: int = 20
    ) -> List[ChatMessage]:
        """Latest `limit` exchanges, oldest first."""
        try:
            result = await db.execute(
                select(ChatMessage)
                .where(ChatMessage.user_id == user_id)
                .order_by(ChatMessage.created_at.desc())
                .limit(limit)
            )
        except Exception as e:
            logger.error("Error fetching chat history for %s: %s", user_id, str(e), exc_info=True)
            raise DatabaseError(message="Failed to fetch chat history") from e
        return list(reversed(result.scalars().all()))


workout_service = WorkoutService()
