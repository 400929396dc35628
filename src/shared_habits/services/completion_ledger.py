"""Журнал выполнений совместной привычки по календарным дням."""

from dataclasses import dataclass
from datetime import date, datetime

from src.shared_habits.core.exceptions import AlreadyCompletedTodayError, NoCompletionFoundError
from src.shared_habits.core.logging import engine_log as log
from src.shared_habits.models import DayState
from src.shared_habits.schemas import CompletionMarkSchema, DayRecordSchema, SharedHabitSchema


def state_after_completion(current: DayState, completed_ids: set[int], accepted_ids: set[int]) -> DayState:
    """
    Состояние дня после новой отметки.

    FULLY_COMPLETE - защелка: однажды засчитанный день не становится неполным
    из-за одного лишь изменения состава участников.
    """
    if current == DayState.FULLY_COMPLETE:
        return current

    if accepted_ids and accepted_ids <= completed_ids:
        return DayState.FULLY_COMPLETE

    return DayState.PARTIALLY_COMPLETE if completed_ids else DayState.EMPTY


def state_after_undo(completed_ids: set[int]) -> DayState:
    """
    Состояние дня после отмены отметки.

    Отменить отметку может только принятый участник, поэтому после отмены
    не все принятые участники отмечены и день не может остаться FULLY_COMPLETE.
    Засчитать день заново может только новая отметка.
    """
    return DayState.PARTIALLY_COMPLETE if completed_ids else DayState.EMPTY


@dataclass(frozen=True)
class UndoOutcome:
    """Итог отмены отметки: состояние дня до и после."""

    day: date
    previous_state: DayState
    state: DayState

    @property
    def record_deleted(self) -> bool:
        return self.state == DayState.EMPTY

    @property
    def uncounted(self) -> bool:
        """Засчитанный день перестал быть засчитанным."""
        return self.previous_state == DayState.FULLY_COMPLETE and self.state != DayState.FULLY_COMPLETE


class CompletionLedger:
    """
    Журнал отметок участников, не более одной записи на день и одной отметки на участника.

    Работает поверх агрегата SharedHabitSchema и изменяет его day_records на месте.
    """

    def __init__(self, habit: SharedHabitSchema):
        self.habit = habit

    def get_record(self, day: date) -> DayRecordSchema | None:
        return next((record for record in self.habit.day_records if record.day == day), None)

    def record_completion(self, day: date, user_id: int, now: datetime) -> bool:
        """
        Добавляет отметку участника за день, при необходимости создавая запись дня.

        Args:
            day (date): Ключ дня.
            user_id (int): ID участника.
            now (datetime): Время отметки.

        Returns:
            bool: True, если это первая отметка за этот день.

        Raises:
            AlreadyCompletedTodayError: Если участник уже отметился за этот день.
        """
        record = self.get_record(day)
        first_of_day = record is None

        if record is None:
            record = DayRecordSchema(day=day)
            self.habit.day_records.append(record)
            self.habit.day_records.sort(key=lambda item: item.day)

        elif record.has_completed(user_id):
            log.warning(f"Повторная отметка пользователя ID {user_id} за {day} (привычка ID {self.habit.id}).")
            raise AlreadyCompletedTodayError()

        record.completed_by.append(CompletionMarkSchema(user_id=user_id, completed_at=now))
        log.debug(f"Отметка пользователя ID {user_id} за {day} добавлена (первая за день: {first_of_day}).")

        return first_of_day

    def settle_after_completion(self, day: date, accepted_ids: set[int]) -> bool:
        """
        Пересчитывает состояние дня после отметки.

        Returns:
            bool: True, если день только что перешел в FULLY_COMPLETE.
        """
        record = self.get_record(day)

        if record is None:
            return False

        previous = record.state
        record.state = state_after_completion(previous, record.completed_user_ids(), accepted_ids)

        return previous != DayState.FULLY_COMPLETE and record.state == DayState.FULLY_COMPLETE

    def undo_completion(self, day: date, user_id: int) -> UndoOutcome:
        """
        Удаляет отметку участника за день. Опустевшая запись дня удаляется целиком.

        Args:
            day (date): Ключ дня.
            user_id (int): ID участника.

        Returns:
            UndoOutcome: Состояние дня до и после отмены.

        Raises:
            NoCompletionFoundError: Если записи дня или отметки участника нет.
        """
        record = self.get_record(day)

        if record is None or not record.has_completed(user_id):
            log.warning(f"Нечего отменять: пользователь ID {user_id}, день {day}, привычка ID {self.habit.id}.")
            raise NoCompletionFoundError()

        previous = record.state
        record.completed_by = [mark for mark in record.completed_by if mark.user_id != user_id]
        record.state = state_after_undo(record.completed_user_ids())

        if record.state == DayState.EMPTY:
            self.habit.day_records.remove(record)
            log.debug(f"Запись дня {day} привычки ID {self.habit.id} удалена: отметок не осталось.")

        return UndoOutcome(day=day, previous_state=previous, state=record.state)

    def is_all_completed(self, day: date, accepted_ids: set[int]) -> bool:
        """Все ли принятые участники отметились за день (проверка включения множеств)."""
        record = self.get_record(day)

        if record is None or not accepted_ids:
            return False

        return accepted_ids <= record.completed_user_ids()

    def latest_counted_day(self) -> date | None:
        return max((record.day for record in self.habit.day_records if record.counted_as_day), default=None)

    def history(self, start: date | None = None, end: date | None = None) -> list[DayRecordSchema]:
        """Записи дней в диапазоне [start, end], отсортированные по дате."""
        return sorted(
            (
                record
                for record in self.habit.day_records
                if (start is None or record.day >= start) and (end is None or record.day <= end)
            ),
            key=lambda record: record.day,
        )
