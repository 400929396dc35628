"""Модель SQLAlchemy для SharedHabitParticipant (Участник совместной привычки)."""

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, String, UniqueConstraint
from sqlalchemy import Enum as SqlEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base
from .enums import ParticipantStatus

if TYPE_CHECKING:  # pragma: no cover
    from .shared_habit import SharedHabit


class SharedHabitParticipant(Base):
    """
    Представляет участие пользователя (или приглашенного email) в совместной привычке.

    Attributes:
        habit_id: Внешний ключ на привычку.
        user_id: Внешний ключ на пользователя (None, пока приглашенный не известен системе).
        email: Email участника, постоянный ключ участия.
        status: Статус приглашения (pending, accepted, declined).
        invited_at: Время приглашения.
        joined_at: Время принятия приглашения.
    """

    __tablename__ = "shared_habit_participants"

    habit_id: Mapped[int] = mapped_column(
        ForeignKey("shared_habits.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), index=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    status: Mapped[ParticipantStatus] = mapped_column(
        SqlEnum(ParticipantStatus, name="participant_status_enum", create_type=True),
        default=ParticipantStatus.PENDING,
        nullable=False,
    )
    invited_at: Mapped[datetime] = mapped_column()
    joined_at: Mapped[datetime | None] = mapped_column()

    # Связи
    habit: Mapped["SharedHabit"] = relationship(back_populates="participants")

    # Один участник на email в рамках привычки
    __table_args__ = (UniqueConstraint("habit_id", "email", name="uq_shared_habit_participant_email"),)
