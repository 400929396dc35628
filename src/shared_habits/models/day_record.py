"""Модели SQLAlchemy для журнала выполнений совместной привычки."""

from datetime import date, datetime
from typing import TYPE_CHECKING

from sqlalchemy import Date, ForeignKey, UniqueConstraint
from sqlalchemy import Enum as SqlEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base
from .enums import DayState

if TYPE_CHECKING:  # pragma: no cover
    from .shared_habit import SharedHabit


class SharedHabitDayRecord(Base):
    """
    Запись журнала за один календарный день.

    Attributes:
        habit_id: Внешний ключ на привычку.
        day: Ключ дня.
        state: Состояние дня (partially_complete, fully_complete).
        completions: Отметки участников за этот день.
    """

    __tablename__ = "shared_habit_day_records"

    habit_id: Mapped[int] = mapped_column(
        ForeignKey("shared_habits.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    day: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    state: Mapped[DayState] = mapped_column(
        SqlEnum(DayState, name="day_state_enum", create_type=True),
        default=DayState.PARTIALLY_COMPLETE,
        nullable=False,
    )

    # Связи
    habit: Mapped["SharedHabit"] = relationship(back_populates="day_records")
    completions: Mapped[list["SharedHabitCompletion"]] = relationship(
        back_populates="day_record",
        cascade="all, delete-orphan",
        order_by="SharedHabitCompletion.completed_at",
    )

    # Одна запись на день на привычку
    __table_args__ = (UniqueConstraint("habit_id", "day", name="uq_shared_habit_day_record_per_day"),)


class SharedHabitCompletion(Base):
    """
    Отметка участника о выполнении за день.

    Attributes:
        day_record_id: Внешний ключ на запись дня.
        user_id: ID участника.
        completed_at: Время отметки.
    """

    __tablename__ = "shared_habit_completions"

    day_record_id: Mapped[int] = mapped_column(
        ForeignKey("shared_habit_day_records.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    completed_at: Mapped[datetime] = mapped_column()

    # Связи
    day_record: Mapped["SharedHabitDayRecord"] = relationship(back_populates="completions")

    # Одна отметка участника за день
    __table_args__ = (UniqueConstraint("day_record_id", "user_id", name="uq_shared_habit_completion_per_user"),)
