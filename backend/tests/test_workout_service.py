"""
LearnHub Backend: Workout Service Tests
=========================================

What:  Daily totals, activity deletion, analytics, stats side effects,
       weight history and the coach chat against the in-memory database.
"""

import uuid
from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from learnhub.exceptions import DatabaseError, LLMServiceError, NotFoundError
from learnhub.models.workout import User
from learnhub.services.workout_service import CHAT_FALLBACK, WorkoutService, today

USER = "user-1"


@pytest.fixture
def service(fake_llm):
    return WorkoutService(llm=fake_llm)


class TestDailyTotals:

    @pytest.mark.asyncio
    async def test_totals_follow_logged_activities(self, db_session, service):
        await service.log_activity(db_session, USER, "food", 600, name="Lunch", maintenance=2200)
        await service.log_activity(db_session, USER, "food", 400, name="Dinner")
        _, tracking = await service.log_activity(
            db_session, USER, "exercise", 300, name="Run", category="cardio"
        )

        assert tracking.total_calories_in == 1000
        assert tracking.total_calories_out == 300
        assert tracking.net_calories == 700
        # maintenance + out - in
        assert tracking.deficit_created == 1500
        assert tracking.expected_weight_loss == pytest.approx(1500 / 7700)
        assert tracking.maintenance_used == 2200

    @pytest.mark.asyncio
    async def test_targets_filled_only_when_missing(self, db_session, service):
        await service.log_activity(db_session, USER, "food", 100, maintenance=2000)
        _, tracking = await service.log_activity(
            db_session, USER, "food", 100, maintenance=2500, bmr=1600
        )
        assert tracking.maintenance_used == 2000
        assert tracking.bmr_used == 1600

    @pytest.mark.asyncio
    async def test_day_activities(self, db_session, service):
        activity, _ = await service.log_activity(db_session, USER, "food", 250, name="Oats")

        tracking, activities = await service.day_activities(db_session, USER)
        assert tracking is not None
        assert [a.id for a in activities] == [activity.id]

        tracking, activities = await service.day_activities(
            db_session, USER, today() - timedelta(days=3)
        )
        assert tracking is None
        assert activities == []

    @pytest.mark.asyncio
    async def test_delete_recomputes_day(self, db_session, service):
        await service.log_activity(db_session, USER, "food", 500, maintenance=2000)
        burned, _ = await service.log_activity(db_session, USER, "exercise", 300)

        await service.delete_activity(db_session, burned.id)

        tracking, activities = await service.day_activities(db_session, USER)
        assert len(activities) == 1
        assert tracking.total_calories_out == 0
        assert tracking.deficit_created == 1500

    @pytest.mark.asyncio
    async def test_delete_unknown_activity(self, db_session, service):
        with pytest.raises(NotFoundError):
            await service.delete_activity(db_session, uuid.uuid4())

    @pytest.mark.asyncio
    async def test_insert_failure_becomes_database_error(self, mock_db_session, service):
        mock_db_session.execute.side_effect = RuntimeError("connection reset")
        with pytest.raises(DatabaseError, match="Failed to save activity"):
            await service.log_activity(mock_db_session, USER, "food", 100)


class TestAnalytics:

    @pytest.mark.asyncio
    async def test_summary_and_breakdowns(self, db_session, service):
        await service.log_activity(db_session, USER, "food", 800, maintenance=2000)
        await service.log_activity(db_session, USER, "exercise", 200, category="cardio")
        await service.log_activity(db_session, USER, "exercise", 100)
        await service.log_activity(
            db_session, USER, "food", 500, day=today() - timedelta(days=2), maintenance=2000
        )
        await service.log_activity(db_session, "someone-else", "food", 999)

        summary, daily = await service.analytics(db_session, USER, days=7)

        assert summary["total_days"] == 2
        assert [d.date for d in daily] == sorted(d.date for d in daily)
        assert summary["total_calories_in"] == 1300
        assert summary["total_calories_out"] == 300
        # today: 2000 + 300 - 800, two days ago: 2000 - 500
        assert summary["total_deficit"] == 3000
        assert summary["avg_deficit"] == 1500
        assert summary["expected_weight_loss"] == pytest.approx(3000 / 7700)
        assert summary["activities_by_type"] == {"food": 1300, "exercise": 300}
        assert summary["exercise_by_category"] == {"cardio": 200, "other": 100}

    @pytest.mark.asyncio
    async def test_no_data(self, db_session, service):
        summary, daily = await service.analytics(db_session, USER)
        assert daily == []
        assert summary["total_days"] == 0
        assert summary["avg_deficit"] == 0


class TestStatsAndWeight:

    @pytest.mark.asyncio
    async def test_save_user_stats_updates_profile_and_weight(self, db_session, service):
        stats = await service.save_user_stats(
            db_session, USER, current_weight=82.5, target_weight=75, height=178, age=31
        )
        assert stats.current_weight == 82.5

        latest, user = await service.latest_user_stats(db_session, USER)
        assert latest.id == stats.id
        assert (user.height, user.age) == (178, 31)

        history = await service.weight_history(db_session, USER)
        assert [e.weight for e in history] == [82.5]

    @pytest.mark.asyncio
    async def test_profile_failure_does_not_fail_stats(self, db_session, service, monkeypatch):
        monkeypatch.setattr(
            service, "_upsert_profile", AsyncMock(side_effect=RuntimeError("profile table locked"))
        )

        stats = await service.save_user_stats(db_session, USER, current_weight=80)

        assert stats.id is not None
        assert await db_session.get(User, USER) is None
        assert len(await service.weight_history(db_session, USER)) == 1

    @pytest.mark.asyncio
    async def test_weight_upsert_one_entry_per_day(self, db_session, service):
        await service.save_weight(db_session, USER, 81, notes="morning")
        entry = await service.save_weight(db_session, USER, 80.4)

        history = await service.weight_history(db_session, USER)
        assert len(history) == 1
        assert entry.weight == 80.4
        assert entry.notes is None

    @pytest.mark.asyncio
    async def test_weight_history_ascending_within_window(self, db_session, service):
        await service.save_weight(db_session, USER, 80, day=today())
        await service.save_weight(db_session, USER, 82, day=today() - timedelta(days=10))
        await service.save_weight(db_session, USER, 90, day=today() - timedelta(days=60))

        history = await service.weight_history(db_session, USER, days=30)
        assert [e.weight for e in history] == [82, 80]


class TestCoachChat:

    @pytest.mark.asyncio
    async def test_chat_uses_context_and_persists(self, db_session, service, fake_llm):
        fake_llm.reply = "Keep going!"
        await service.save_user_stats(db_session, USER, current_weight=82.5, target_weight=75)
        await service.log_activity(db_session, USER, "exercise", 300, name="Run")

        reply, chat_id, tokens = await service.chat(db_session, USER, "How am I doing?")

        assert reply == "Keep going!"
        assert chat_id is not None
        assert tokens == 42
        system = fake_llm.calls[0]["system"]
        assert "- Current Weight: 82.5kg" in system
        assert "exercise: Run (300" in system

        history = await service.chat_history(db_session, USER)
        assert [(m.message, m.response, m.ai_model) for m in history] == [
            ("How am I doing?", "Keep going!", "fake-model")
        ]

    @pytest.mark.asyncio
    async def test_empty_reply_uses_fallback(self, db_session, service):
        reply, _, _ = await service.chat(db_session, USER, "Hello")
        assert reply == CHAT_FALLBACK

    @pytest.mark.asyncio
    async def test_ai_failure_propagates(self, db_session, service, fake_llm):
        fake_llm.error = LLMServiceError()
        with pytest.raises(LLMServiceError):
            await service.chat(db_session, USER, "Hello")

    @pytest.mark.asyncio
    async def test_storage_failure_still_replies(self, mock_db_session, service, fake_llm, monkeypatch):
        fake_llm.reply = "Drink water."
        monkeypatch.setattr(service, "coach_context", AsyncMock(return_value="context"))
        mock_db_session.begin_nested.return_value.__aenter__.side_effect = RuntimeError("db down")

        reply, chat_id, _ = await service.chat(mock_db_session, USER, "Tip?")

        assert reply == "Drink water."
        assert chat_id is None

    @pytest.mark.asyncio
    async def test_history_oldest_first(self, db_session, service, fake_llm):
        fake_llm.reply = "ok"
        for text in ("first", "second", "third"):
            await service.chat(db_session, USER, text)

        history = await service.chat_history(db_session, USER, limit=2)
        assert [m.message for m in history] == ["second", "third"]
