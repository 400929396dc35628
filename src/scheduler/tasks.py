"""
Задачи для планировщика.

Содержит ночную сверку стриков совместных привычек.
"""

import asyncio
from datetime import date

from src.core_shared.logging_setup import LogConfig, setup_logger
from src.scheduler.config import settings
from src.shared_habits.core.database import db
from src.shared_habits.core.locks import AggregateLocks
from src.shared_habits.gateway import (
    CeleryNotifier,
    CollaboratorGateway,
    SqlAlchemyHabitStore,
    SqlAlchemyIdentityDirectory,
)
from src.shared_habits.schemas import SweepReportSchema
from src.shared_habits.services import ReconciliationSweep, SharedHabitService

# Настраиваем логгер
log = setup_logger("SchedulerTasks", log_config=LogConfig.from_settings(settings))

# Событие остановки: выставляется при завершении сервиса, сверка останавливается перед следующей привычкой
shutdown_event = asyncio.Event()

_sweep: ReconciliationSweep | None = None


def build_sweep() -> ReconciliationSweep:
    """
    Собирает сверку поверх SQL-хранилища и уведомлений через Celery.

    Требует предварительного `await db.connect()`.
    """
    session_factory = db.require_session_factory()

    gateway = CollaboratorGateway(
        identities=SqlAlchemyIdentityDirectory(session_factory),
        notifier=CeleryNotifier(),
        store=SqlAlchemyHabitStore(session_factory),
    )
    service = SharedHabitService(gateway=gateway, locks=AggregateLocks())
    return ReconciliationSweep(service)


def get_sweep() -> ReconciliationSweep:
    """Возвращает единственный экземпляр сверки процесса (его замок не дает запускам пересекаться)."""
    global _sweep

    if _sweep is None:
        _sweep = build_sweep()

    return _sweep


async def run_reconciliation_sweep(day: date | None = None) -> SweepReportSchema | None:
    """
    Периодическая задача ночной сверки стриков.

    Алгоритм работы:
    1. Вычисляет "вчера" (или берет переданный день).
    2. Для каждой активной привычки прерывает стрик, если вчера ее выполнили не все участники.
    3. Ошибки отдельных привычек попадают в отчет и не прерывают проход.
    """
    try:
        report = await get_sweep().run(day=day, cancel_event=shutdown_event)

    except Exception as exc:
        # Глобальная ошибка в задаче (например, отвал БД при получении списка привычек)
        log.error(f"💥 Критическая ошибка ночной сверки: {exc}", exc_info=True)
        return None

    if report.failed:
        log.warning(f"Сверка за {report.day}: не удалось обработать привычки {report.failed}.")

    return report
