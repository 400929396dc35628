"""Инициализация модуля схем Pydantic."""

# Экспортируем Enum
from src.shared_habits.models.enums import DayState, HabitCategory, NotificationKind, ParticipantStatus

from .base_schema import BaseSchema
from .notification_schema import NotificationEventSchema
from .reconciliation_schema import ReconciliationOutcomeSchema, SweepReportSchema
from .shared_habit_schema import (
    CompletionMarkSchema,
    CompletionResultSchema,
    DayRecordSchema,
    HabitStatsSchema,
    IdentitySchema,
    NotificationSettingsSchema,
    ParticipantSchema,
    SharedHabitSchema,
    SharedHabitSchemaCreate,
    StreakInfoSchema,
    StreakSchema,
)

__all__ = [
    "BaseSchema",
    "IdentitySchema",
    "ParticipantSchema",
    "CompletionMarkSchema",
    "DayRecordSchema",
    "StreakSchema",
    "HabitStatsSchema",
    "NotificationSettingsSchema",
    "SharedHabitSchema",
    "SharedHabitSchemaCreate",
    "CompletionResultSchema",
    "StreakInfoSchema",
    "NotificationEventSchema",
    "ReconciliationOutcomeSchema",
    "SweepReportSchema",
    "DayState",  # Экспорт Enum
    "HabitCategory",
    "NotificationKind",
    "ParticipantStatus",
]
