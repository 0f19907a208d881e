"""
LearnHub Backend: Workout Tracker Models
==========================================

What:  Tables behind the calorie and weight tracker.
How:   `user_id` is the client-chosen string identifier (the demo login has no
       users table of its own), so it is stored as plain text everywhere and
       `users` is keyed by it.

Table overview:
    users            profile (height, age), upserted by user-stats
    user_stats       snapshot per save: weight, goals, BMR, targets
    daily_tracking   one row per (user_id, date) with the day's totals
    activities       food/exercise entries belonging to a tracking day
    weight_history   one weight per (user_id, date)
    chat_messages    coach chat exchanges
"""

import uuid
import datetime as dt
from typing import Any, Iterable, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from learnhub.database import Base

# Calories in one kilogram of body fat
KCAL_PER_KG = 7700


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    height: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    age: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )
    updated_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )


class UserStats(Base):
    __tablename__ = "user_stats"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    current_weight: Mapped[float] = mapped_column(Float, nullable=False)
    target_weight: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    weekly_weight_loss: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    bmr: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    maintenance_calories: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    target_daily_calories: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )


class DailyTracking(Base):
    """
    Totals for one user and day.

    Recomputed from the day's activities after every insert or delete:
        total_calories_in    = Σ food calories
        total_calories_out   = Σ exercise calories
        net_calories         = in - out
        deficit_created      = maintenance_used + out - in
        expected_weight_loss = deficit_created / 7700   (kg)
    """

    __tablename__ = "daily_tracking"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[str] = mapped_column(String(128), nullable=False)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)

    total_calories_in: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    total_calories_out: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    net_calories: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    deficit_created: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    expected_weight_loss: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    # Targets in effect when the day was opened
    bmr_used: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    maintenance_used: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    target_calories_used: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )
    updated_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (UniqueConstraint("user_id", "date", name="uq_daily_tracking_user_date"),)

    def recompute_totals(self, activities: Iterable["Activity"]) -> None:
        activities = list(activities)
        calories_in = sum(a.calories or 0 for a in activities if a.type == "food")
        calories_out = sum(a.calories or 0 for a in activities if a.type == "exercise")
        self.total_calories_in = calories_in
        self.total_calories_out = calories_out
        self.net_calories = calories_in - calories_out
        self.deficit_created = (self.maintenance_used or 0) + calories_out - calories_in
        self.expected_weight_loss = self.deficit_created / KCAL_PER_KG
        self.updated_at = _utcnow()


class Activity(Base):
    __tablename__ = "activities"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    daily_tracking_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("daily_tracking.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # 'food' or 'exercise'
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    details: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    calories: Mapped[float] = mapped_column(Float, nullable=False)
    category: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    parameters: Mapped[Optional[Any]] = mapped_column(JSON(none_as_null=True), nullable=True)
    ai_calculated: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )


class WeightEntry(Base):
    __tablename__ = "weight_history"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[str] = mapped_column(String(128), nullable=False)
    weight: Mapped[float] = mapped_column(Float, nullable=False)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (UniqueConstraint("user_id", "date", name="uq_weight_history_user_date"),)


class ChatMessage(Base):
    __tablename__ = "chat_messages"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    response: Mapped[str] = mapped_column(Text, nullable=False)
    # general, workout, nutrition, progress
    message_type: Mapped[str] = mapped_column(String(30), nullable=False, default="general")
    ai_model: Mapped[str] = mapped_column(String(100), nullable=False)
    tokens_used: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )
