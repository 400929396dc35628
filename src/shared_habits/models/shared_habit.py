"""Модель SQLAlchemy для SharedHabit (Совместная привычка)."""

from datetime import date, time
from typing import TYPE_CHECKING, Any

from sqlalchemy import Date, ForeignKey, Integer, String, Text, Time
from sqlalchemy import Enum as SqlEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base
from .enums import HabitCategory

if TYPE_CHECKING:  # pragma: no cover
    from .day_record import SharedHabitDayRecord
    from .participant import SharedHabitParticipant


class SharedHabit(Base):
    """
    Представляет совместную привычку нескольких участников.

    Attributes:
        id: Первичный ключ (унаследован от Base).
        title: Название привычки.
        description: Описание привычки (опционально).
        category: Категория привычки.
        created_by: ID создателя (владельца).
        is_active: False после мягкого удаления.
        current_streak / longest_streak: Текущий и максимальный совместный стрик.
        last_completed_date: Последний день, выполненный всеми участниками.
        consecutive_days: ISO-даты дней текущей серии (JSON-список).
        last_reconciled_day: День, за который последний раз выполнялась ночная сверка.
        total_days / successful_days / failed_days / success_rate / total_points: Статистика.
        notify_on_streak / notify_on_break / reminder_enabled / reminder_time: Настройки уведомлений.
        version: Версия агрегата для оптимистичной блокировки.
        participants: Участники привычки.
        day_records: Журнал выполнений по дням.
    """

    __tablename__ = "shared_habits"

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    category: Mapped[HabitCategory] = mapped_column(
        SqlEnum(HabitCategory, name="habit_category_enum", create_type=True),
        default=HabitCategory.CUSTOM,
        nullable=False,
    )
    created_by: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    is_active: Mapped[bool] = mapped_column(default=True, nullable=False, index=True)

    # Совместный стрик
    current_streak: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    longest_streak: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_completed_date: Mapped[date | None] = mapped_column(Date)
    consecutive_days: Mapped[list[Any]] = mapped_column(default=list)
    last_reconciled_day: Mapped[date | None] = mapped_column(Date)

    # Статистика
    total_days: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    successful_days: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    failed_days: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    success_rate: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_points: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Настройки уведомлений
    notify_on_streak: Mapped[bool] = mapped_column(default=True, nullable=False)
    notify_on_break: Mapped[bool] = mapped_column(default=True, nullable=False)
    reminder_enabled: Mapped[bool] = mapped_column(default=True, nullable=False)
    reminder_time: Mapped[time] = mapped_column(Time(timezone=False), nullable=False)

    version: Mapped[int] = mapped_column(Integer, default=1, nullable=False)

    # Связи
    participants: Mapped[list["SharedHabitParticipant"]] = relationship(
        back_populates="habit",
        cascade="all, delete-orphan",
        order_by="SharedHabitParticipant.id",
    )
    day_records: Mapped[list["SharedHabitDayRecord"]] = relationship(
        back_populates="habit",
        cascade="all, delete-orphan",
        order_by="SharedHabitDayRecord.day",
    )
