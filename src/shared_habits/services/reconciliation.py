"""
Ночная сверка стриков.

Чистая функция `reconcile_habit` решает судьбу одной привычки за "вчера",
а ReconciliationSweep проходит по всем активным привычкам и сохраняет результат
через SharedHabitService (под замком агрегата).
"""

import asyncio
from datetime import date, datetime, timezone
from typing import TYPE_CHECKING, Callable

from src.shared_habits.core.exceptions import HabitNotFoundError
from src.shared_habits.core.logging import engine_log as log
from src.shared_habits.schemas import ReconciliationOutcomeSchema, SharedHabitSchema, SweepReportSchema
from src.shared_habits.utils.date_utils import yesterday_key

from .completion_ledger import CompletionLedger
from .streak_engine import StreakEngine

if TYPE_CHECKING:  # pragma: no cover
    from .shared_habit_service import SharedHabitService


def reconcile_habit(habit: SharedHabitSchema, yesterday: date) -> ReconciliationOutcomeSchema:
    """
    Сверяет одну привычку за "вчера".

    Стрик прерывается, если за вчера нет записи или она не выполнена всеми
    участниками, а в серии есть дни не позже вчерашнего. Засчитанные дни после
    вчерашнего остаются в новой серии. Сверенный день запоминается в
    `streak.last_reconciled_day`: повторная сверка того же или более раннего дня ничего не меняет.

    Исходный агрегат не изменяется, результат строится на его копии.

    Args:
        habit (SharedHabitSchema): Агрегат привычки.
        yesterday (date): Ключ проверяемого дня.

    Returns:
        ReconciliationOutcomeSchema: Обновленная копия привычки и события уведомлений.
    """
    updated = habit.model_copy(deep=True)
    streak = updated.streak

    if not updated.is_active:
        return ReconciliationOutcomeSchema(habit=updated)

    if streak.last_reconciled_day is not None and streak.last_reconciled_day >= yesterday:
        log.debug(f"Привычка ID {updated.id}: сверка за {yesterday} уже выполнялась ({streak.last_reconciled_day}).")
        return ReconciliationOutcomeSchema(habit=updated)

    streak.last_reconciled_day = yesterday
    record = CompletionLedger(updated).get_record(yesterday)

    if record is not None and record.all_completed:
        return ReconciliationOutcomeSchema(habit=updated, changed=True)

    engine = StreakEngine(updated)
    previous_streak = streak.current

    if not engine.break_streak(yesterday):
        return ReconciliationOutcomeSchema(habit=updated, changed=True)

    events = []

    if updated.notifications.notify_on_break:
        events.append(engine.broken_event(yesterday, previous_streak - streak.current))

    return ReconciliationOutcomeSchema(habit=updated, events=events, streak_broken=True, changed=True)


class ReconciliationSweep:
    """
    Проход сверки по всем активным привычкам.

    - Не запускается параллельно сам с собой (повторный вызов во время работы пропускается).
    - Ошибка одной привычки не прерывает проход: ее ID попадает в отчет.
    - Поддерживает кооперативную отмену: событие проверяется перед каждой привычкой.
    """

    def __init__(self, service: "SharedHabitService", clock: Callable[[], datetime] | None = None):
        self.service = service
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self._running = asyncio.Lock()

    @property
    def is_running(self) -> bool:
        return self._running.locked()

    async def run(self, day: date | None = None, cancel_event: asyncio.Event | None = None) -> SweepReportSchema:
        """
        Запускает сверку.

        Args:
            day (date | None): Проверяемый день. По умолчанию "вчера" относительно часов сервиса.
            cancel_event (asyncio.Event | None): Событие остановки (graceful shutdown).

        Returns:
            SweepReportSchema: Отчет о проходе.
        """
        day = day or yesterday_key(self.clock())

        if self._running.locked():
            log.warning(f"Сверка за {day} пропущена: предыдущий проход еще выполняется.")
            return SweepReportSchema(day=day, skipped=True)

        async with self._running:
            report = SweepReportSchema(day=day)
            habit_ids = await self.service.active_habit_ids()

            log.info(f"🧹 Запуск сверки стриков за {day}: {len(habit_ids)} активных привычек.")

            for habit_id in habit_ids:
                if cancel_event is not None and cancel_event.is_set():
                    log.warning(f"Сверка за {day} остановлена до обработки привычки ID {habit_id}.")
                    report.cancelled = True
                    break

                try:
                    broken = await self.service.reconcile_habit(habit_id, day)

                except HabitNotFoundError:
                    # Привычку удалили во время прохода
                    log.info(f"Привычка ID {habit_id} удалена во время сверки, пропускаем.")
                    continue

                except Exception as exc:
                    log.error(f"Ошибка сверки привычки ID {habit_id}: {exc}", exc_info=True)
                    report.failed.append(habit_id)
                    continue

                report.processed += 1

                if broken:
                    report.broken += 1

            log.info(
                f"Сверка за {day} завершена: обработано {report.processed}, прервано стриков {report.broken}, "
                f"ошибок {len(report.failed)}."
            )
            return report
