"""
LearnHub Backend: Workout Tracker Routes
==========================================

What:  Activity log, analytics, stats, weight history, AI coach chat, and the
       exercise/food calorie estimators.
How:   Thin handlers over WorkoutService (persistence and totals),
       CoachingService (food lookup) and the rule-based exercise estimator.

Endpoints:
    POST/GET/DELETE /api/workout/activities
    GET             /api/workout/analytics
    POST/GET        /api/workout/user-stats
    POST/GET        /api/workout/weight
    POST/GET        /api/chat (also /api/workout/chat)
    POST            /api/ai-analyze-exercise
    POST            /api/ai-get-calories
"""

import datetime as dt
import logging
import uuid
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from learnhub.database import get_db_session
from learnhub.exceptions import ValidationError
from learnhub.schemas.common import ErrorResponse, SuccessResponse
from learnhub.schemas.workout import (
    ActivityOut,
    ActivityRequest,
    ActivityResponse,
    AnalyticsResponse,
    AnalyticsSummary,
    ChatHistoryResponse,
    ChatMessageOut,
    ChatRequest,
    ChatResponse,
    DailyTrackingOut,
    DayActivitiesResponse,
    ExerciseEstimate,
    ExerciseRequest,
    FoodRequest,
    LatestUserStatsResponse,
    UserOut,
    UserStatsOut,
    UserStatsRequest,
    UserStatsResponse,
    WeightEntryOut,
    WeightHistoryResponse,
    WeightRequest,
    WeightResponse,
)
from learnhub.services.coaching_service import coaching_service
from learnhub.services.exercise_estimator import estimate_exercise
from learnhub.services.workout_service import workout_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Workout"])

ACTIVITY_TYPES = {"food", "exercise"}
_BAD_REQUEST = {400: {"description": "Missing or invalid field", "model": ErrorResponse}}


def _require_user(user_id: Optional[str]) -> str:
    if not user_id:
        raise ValidationError(message="User ID required", field="userId")
    return user_id


# ── Activities ────────────────────────────────────────────────────────────

@router.post("/workout/activities", response_model=ActivityResponse, responses=_BAD_REQUEST)
async def log_activity(
    body: ActivityRequest,
    db: AsyncSession = Depends(get_db_session),
) -> ActivityResponse:
    """Logs a food or exercise entry and returns the day's updated totals."""
    if not body.user_id or body.type is None or body.calories is None:
        raise ValidationError(message="userId, type and calories are required")
    if body.type not in ACTIVITY_TYPES:
        raise ValidationError(message="type must be 'food' or 'exercise'", field="type")

    activity, tracking = await workout_service.log_activity(
        db,
        user_id=body.user_id,
        type=body.type,
        calories=body.calories,
        name=body.name,
        details=body.details,
        category=body.category,
        parameters=body.parameters,
        ai_calculated=body.ai_calculated,
        day=body.date,
        bmr=body.bmr,
        maintenance=body.maintenance,
        target_calories=body.target_calories,
    )
    return ActivityResponse(
        activity=ActivityOut.model_validate(activity),
        daily_tracking=DailyTrackingOut.model_validate(tracking),
    )


@router.get("/workout/activities", response_model=DayActivitiesResponse, responses=_BAD_REQUEST)
async def get_activities(
    user_id: Optional[str] = Query(default=None, alias="userId"),
    date: Optional[dt.date] = Query(default=None),
    db: AsyncSession = Depends(get_db_session),
) -> DayActivitiesResponse:
    tracking, activities = await workout_service.day_activities(db, _require_user(user_id), date)
    return DayActivitiesResponse(
        daily_tracking=DailyTrackingOut.model_validate(tracking) if tracking else None,
        activities=[ActivityOut.model_validate(a) for a in activities],
    )


@router.delete(
    "/workout/activities",
    response_model=SuccessResponse,
    responses={**_BAD_REQUEST, 404: {"description": "Unknown activity", "model": ErrorResponse}},
)
async def delete_activity(
    activity_id: Optional[str] = Query(default=None, alias="activityId"),
    db: AsyncSession = Depends(get_db_session),
) -> SuccessResponse:
    if not activity_id:
        raise ValidationError(message="Activity ID required", field="activityId")
    try:
        parsed = uuid.UUID(activity_id)
    except ValueError:
        raise ValidationError(message="Invalid activity ID", field="activityId")

    await workout_service.delete_activity(db, parsed)
    return SuccessResponse()


# ── Analytics ─────────────────────────────────────────────────────────────

@router.get("/workout/analytics", response_model=AnalyticsResponse, responses=_BAD_REQUEST)
async def get_analytics(
    user_id: Optional[str] = Query(default=None, alias="userId"),
    days: int = Query(default=7, ge=1, le=365),
    db: AsyncSession = Depends(get_db_session),
) -> AnalyticsResponse:
    summary, daily = await workout_service.analytics(db, _require_user(user_id), days)
    return AnalyticsResponse(
        analytics=AnalyticsSummary(**summary),
        daily_data=[DailyTrackingOut.model_validate(d) for d in daily],
    )


# ── User stats ────────────────────────────────────────────────────────────

@router.post("/workout/user-stats", response_model=UserStatsResponse, responses=_BAD_REQUEST)
async def save_user_stats(
    body: UserStatsRequest,
    db: AsyncSession = Depends(get_db_session),
) -> UserStatsResponse:
    """
    Stores a stats snapshot. The profile (height, age) and the weight log
    are updated too when possible; failures there do not fail the request.
    """
    if not body.user_id or body.current_weight is None:
        raise ValidationError(message="userId and currentWeight are required")

    stats = await workout_service.save_user_stats(
        db,
        user_id=body.user_id,
        current_weight=body.current_weight,
        target_weight=body.target_weight,
        height=body.height,
        age=body.age,
        weekly_weight_loss=body.weekly_weight_loss,
        bmr=body.bmr,
        maintenance_calories=body.maintenance_calories,
        target_daily_calories=body.target_daily_calories,
        day=body.date,
    )
    return UserStatsResponse(user_stats=UserStatsOut.model_validate(stats))


@router.get("/workout/user-stats", response_model=LatestUserStatsResponse, responses=_BAD_REQUEST)
async def get_user_stats(
    user_id: Optional[str] = Query(default=None, alias="userId"),
    db: AsyncSession = Depends(get_db_session),
) -> LatestUserStatsResponse:
    stats, user = await workout_service.latest_user_stats(db, _require_user(user_id))
    return LatestUserStatsResponse(
        user_stats=UserStatsOut.model_validate(stats) if stats else None,
        user=UserOut.model_validate(user) if user else None,
    )


# ── Weight ────────────────────────────────────────────────────────────────

@router.post("/workout/weight", response_model=WeightResponse, responses=_BAD_REQUEST)
async def save_weight(
    body: WeightRequest,
    db: AsyncSession = Depends(get_db_session),
) -> WeightResponse:
    if not body.user_id or body.weight is None:
        raise ValidationError(message="userId and weight are required")

    entry = await workout_service.save_weight(
        db, body.user_id, body.weight, body.date, body.notes
    )
    return WeightResponse(weight_entry=WeightEntryOut.model_validate(entry))


@router.get("/workout/weight", response_model=WeightHistoryResponse, responses=_BAD_REQUEST)
async def get_weight_history(
    user_id: Optional[str] = Query(default=None, alias="userId"),
    days: int = Query(default=30, ge=1, le=3650),
    db: AsyncSession = Depends(get_db_session),
) -> WeightHistoryResponse:
    entries = await workout_service.weight_history(db, _require_user(user_id), days)
    return WeightHistoryResponse(
        weight_history=[WeightEntryOut.model_validate(e) for e in entries]
    )


# ── Coach chat ────────────────────────────────────────────────────────────

@router.post("/workout/chat", response_model=ChatResponse, include_in_schema=False)
@router.post(
    "/chat",
    response_model=ChatResponse,
    responses={**_BAD_REQUEST, 503: {"description": "AI service unavailable", "model": ErrorResponse}},
)
async def chat(
    body: ChatRequest,
    db: AsyncSession = Depends(get_db_session),
) -> ChatResponse:
    if not body.message or not body.user_id:
        raise ValidationError(message="Message and user ID required")

    reply, chat_id, tokens = await workout_service.chat(
        db, body.user_id, body.message, body.message_type
    )
    return ChatResponse(message=reply, chat_id=chat_id, tokens_used=tokens)


@router.get("/workout/chat", response_model=ChatHistoryResponse, include_in_schema=False)
@router.get("/chat", response_model=ChatHistoryResponse, responses=_BAD_REQUEST)
async def chat_history(
    user_id: Optional[str] = Query(default=None, alias="userId"),
    limit: int = Query(default=20, ge=1, le=200),
    db: AsyncSession = Depends(get_db_session),
) -> ChatHistoryResponse:
    messages = await workout_service.chat_history(db, _require_user(user_id), limit)
    return ChatHistoryResponse(chat_history=[ChatMessageOut.model_validate(m) for m in messages])


# ── Estimators ────────────────────────────────────────────────────────────

@router.post("/ai-analyze-exercise", response_model=ExerciseEstimate, responses=_BAD_REQUEST)
async def analyze_exercise(body: ExerciseRequest) -> ExerciseEstimate:
    """Rule-based calorie estimate from a free-text exercise description."""
    if not body.exercise or not body.user_weight:
        raise ValidationError(message="Exercise description and user weight are required")

    result = estimate_exercise(body.exercise, body.user_weight)
    logger.info(
        "Exercise estimate: '%s' at %skg -> %s kcal (%s)",
        body.exercise, body.user_weight, result["calories"], result["category"],
    )
    return ExerciseEstimate(
        calories=result["calories"],
        category=result["category"],
        enhanced_description=result["enhancedDescription"],
    )


@router.post("/ai-get-calories", responses=_BAD_REQUEST)
async def get_food_calories(body: FoodRequest) -> Dict[str, Any]:
    """
    Calorie lookup for a food description.

    Always answers 200 once the food is given; when the AI is unavailable
    the body carries a fallback estimate and an `error` field.
    """
    if not body.food:
        raise ValidationError(message="Food name is required", field="food")

    return await coaching_service.estimate_food_calories(body.food, body.quantity)
