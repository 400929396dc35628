"""Схема события уведомления, которое движок передает наружу."""

from typing import Any

from pydantic import Field

from src.shared_habits.models.enums import NotificationKind

from .base_schema import BaseSchema


class NotificationEventSchema(BaseSchema):
    """
    Событие "уведомить этих пользователей".

    Получатели задаются ID пользователей, а если учетной записи еще нет
    (приглашение по email) - email-адресами.
    """

    kind: NotificationKind
    habit_id: int | None = None
    recipient_ids: list[int] = Field(default_factory=list)
    recipient_emails: list[str] = Field(default_factory=list)
    payload: dict[str, Any] = Field(default_factory=dict)

    @property
    def has_recipients(self) -> bool:
        return bool(self.recipient_ids or self.recipient_emails)
