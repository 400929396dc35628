"""Схемы результатов ночной сверки стриков."""

from datetime import date

from pydantic import Field

from .base_schema import BaseSchema
from .notification_schema import NotificationEventSchema
from .shared_habit_schema import SharedHabitSchema


class ReconciliationOutcomeSchema(BaseSchema):
    """Результат сверки одной привычки за "вчера"."""

    habit: SharedHabitSchema
    events: list[NotificationEventSchema] = Field(default_factory=list)
    streak_broken: bool = False
    changed: bool = Field(default=False, description="Агрегат изменился и его нужно сохранить")


class SweepReportSchema(BaseSchema):
    """Итог одного прохода сверки по всем активным привычкам."""

    day: date
    processed: int = 0
    broken: int = 0
    failed: list[int] = Field(default_factory=list, description="ID привычек, обработка которых упала")
    cancelled: bool = False
    skipped: bool = Field(default=False, description="Проход не запускался: предыдущий еще выполняется")
