"""
ORM models. Importing this package registers every table on `Base.metadata`,
which Alembic and the test suite rely on.
"""

from learnhub.models.curriculum import Lesson, Question, Subject, Topic, UserProgress
from learnhub.models.node import LearningNode
from learnhub.models.speaking import SpeakingSession
from learnhub.models.workout import (
    Activity,
    ChatMessage,
    DailyTracking,
    User,
    UserStats,
    WeightEntry,
)

__all__ = [
    "Activity",
    "ChatMessage",
    "DailyTracking",
    "LearningNode",
    "Lesson",
    "Question",
    "SpeakingSession",
    "Subject",
    "Topic",
    "User",
    "UserProgress",
    "UserStats",
    "WeightEntry",
]
