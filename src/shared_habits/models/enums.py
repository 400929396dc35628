"""Перечисления предметной области совместных привычек."""

from enum import Enum


class HabitCategory(str, Enum):
    """Категории совместной привычки."""

    SPIRITUAL = "spiritual"
    HEALTH = "health"
    LEARNING = "learning"
    DISCIPLINE = "discipline"
    CUSTOM = "custom"

    @classmethod
    def from_label(cls, label: str | None) -> "HabitCategory":
        """
        Сопоставляет произвольную подпись категории (например, "Health") с перечислением.

        Неизвестные или пустые подписи попадают в CUSTOM.
        """
        if not label:
            return cls.CUSTOM

        try:
            return cls(label.strip().lower())
        except ValueError:
            return cls.CUSTOM


class ParticipantStatus(str, Enum):
    """Статусы участника совместной привычки."""

    PENDING = "pending"  # Приглашен, ответа еще нет
    ACCEPTED = "accepted"  # Принял приглашение, учитывается в стриках
    DECLINED = "declined"  # Отклонил приглашение, остается в списке для истории


class DayState(str, Enum):
    """Состояние записи дня в журнале выполнений."""

    EMPTY = "empty"  # Никто не выполнил (запись не хранится)
    PARTIALLY_COMPLETE = "partially_complete"  # Выполнили не все принятые участники
    FULLY_COMPLETE = "fully_complete"  # Выполнили все, день засчитан в статистику


class NotificationKind(str, Enum):
    """Типы событий, которые движок передает сервису уведомлений."""

    HABIT_INVITATION = "habit_invitation"
    INVITATION_ACCEPTED = "invitation_accepted"
    INVITATION_DECLINED = "invitation_declined"
    STREAK_MILESTONE = "streak_milestone"
    PENDING_REMINDER = "pending_reminder"
    STREAK_BROKEN = "streak_broken"
    HABIT_DELETED = "habit_deleted"
