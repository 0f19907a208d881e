"""
Workout tracker request/response models.

Rows are returned with their column names; envelopes and request bodies
use camelCase (`userId`, `dailyTracking`, ...).
"""

import datetime as dt
import uuid
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from learnhub.schemas.common import CamelModel


# ── Rows ──────────────────────────────────────────────────────────────────

class ActivityOut(BaseModel):
    id: uuid.UUID
    user_id: str
    daily_tracking_id: uuid.UUID
    type: str
    name: Optional[str] = None
    details: Optional[str] = None
    calories: float
    category: Optional[str] = None
    parameters: Optional[Any] = None
    ai_calculated: bool
    created_at: dt.datetime

    model_config = {"from_attributes": True}


class DailyTrackingOut(BaseModel):
    id: uuid.UUID
    user_id: str
    date: dt.date
    total_calories_in: float
    total_calories_out: float
    net_calories: float
    deficit_created: float
    expected_weight_loss: float
    bmr_used: Optional[float] = None
    maintenance_used: Optional[float] = None
    target_calories_used: Optional[float] = None
    created_at: dt.datetime
    updated_at: dt.datetime

    model_config = {"from_attributes": True}


class UserStatsOut(BaseModel):
    id: uuid.UUID
    user_id: str
    current_weight: float
    target_weight: Optional[float] = None
    weekly_weight_loss: Optional[float] = None
    bmr: Optional[float] = None
    maintenance_calories: Optional[float] = None
    target_daily_calories: Optional[float] = None
    date: dt.date
    created_at: dt.datetime

    model_config = {"from_attributes": True}


class UserOut(BaseModel):
    id: str
    height: Optional[float] = None
    age: Optional[int] = None
    created_at: dt.datetime
    updated_at: dt.datetime

    model_config = {"from_attributes": True}


class WeightEntryOut(BaseModel):
    id: uuid.UUID
    user_id: str
    weight: float
    date: dt.date
    notes: Optional[str] = None
    created_at: dt.datetime

    model_config = {"from_attributes": True}


class ChatMessageOut(BaseModel):
    id: uuid.UUID
    user_id: str
    message: str
    response: str
    message_type: str
    ai_model: str
    tokens_used: int
    created_at: dt.datetime

    model_config = {"from_attributes": True}


# ── Activities ────────────────────────────────────────────────────────────

class ActivityRequest(CamelModel):
    user_id: Optional[str] = None
    type: Optional[str] = None
    name: Optional[str] = None
    details: Optional[str] = None
    calories: Optional[float] = None
    category: Optional[str] = None
    parameters: Optional[Any] = None
    ai_calculated: bool = False
    date: Optional[dt.date] = None
    bmr: Optional[float] = None
    maintenance: Optional[float] = None
    target_calories: Optional[float] = None


class ActivityResponse(CamelModel):
    activity: ActivityOut
    daily_tracking: DailyTrackingOut
    success: bool = True


class DayActivitiesResponse(CamelModel):
    daily_tracking: Optional[DailyTrackingOut] = None
    activities: List[ActivityOut]
    success: bool = True


# ── Analytics ─────────────────────────────────────────────────────────────

class AnalyticsSummary(CamelModel):
    total_days: int
    total_deficit: float
    avg_deficit: float
    expected_weight_loss: float
    total_calories_in: float
    total_calories_out: float
    activities_by_type: Dict[str, float]
    exercise_by_category: Dict[str, float]


class AnalyticsResponse(CamelModel):
    analytics: AnalyticsSummary
    daily_data: List[DailyTrackingOut]
    success: bool = True


# ── Stats / weight ────────────────────────────────────────────────────────

class UserStatsRequest(CamelModel):
    user_id: Optional[str] = None
    current_weight: Optional[float] = None
    target_weight: Optional[float] = None
    height: Optional[float] = None
    age: Optional[int] = None
    weekly_weight_loss: Optional[float] = None
    bmr: Optional[float] = None
    maintenance_calories: Optional[float] = None
    target_daily_calories: Optional[float] = None
    date: Optional[dt.date] = None


class UserStatsResponse(CamelModel):
    user_stats: UserStatsOut
    success: bool = True


class LatestUserStatsResponse(CamelModel):
    user_stats: Optional[UserStatsOut] = None
    user: Optional[UserOut] = None
    success: bool = True


class WeightRequest(CamelModel):
    user_id: Optional[str] = None
    weight: Optional[float] = None
    date: Optional[dt.date] = None
    notes: Optional[str] = None


class WeightResponse(CamelModel):
    weight_entry: WeightEntryOut
    success: bool = True


class WeightHistoryResponse(CamelModel):
    weight_history: List[WeightEntryOut]
    success: bool = True


# ── Coach chat ────────────────────────────────────────────────────────────

class ChatRequest(CamelModel):
    user_id: Optional[str] = None
    message: Optional[str] = None
    message_type: str = "general"


class ChatResponse(CamelModel):
    message: str
    chat_id: Optional[uuid.UUID] = None
    tokens_used: int = 0
    success: bool = True


class ChatHistoryResponse(CamelModel):
    chat_history: List[ChatMessageOut]
    success: bool = True


# ── Estimators ────────────────────────────────────────────────────────────

class ExerciseRequest(CamelModel):
    exercise: Optional[str] = None
    user_weight: Optional[float] = None
    user_profile: Optional[Dict[str, Any]] = None


class ExerciseEstimate(CamelModel):
    calories: int
    category: str
    enhanced_description: str


class FoodRequest(CamelModel):
    food: Optional[str] = None
    quantity: float = Field(default=1, gt=0)
