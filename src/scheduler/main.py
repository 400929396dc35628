"""
Главный файл запуска планировщика (Scheduler).

Отвечает за:
- Инициализацию подключения к БД.
- Настройку и запуск Apscheduler.
- Ручной однократный запуск сверки (`--run-once [--date YYYY-MM-DD]`).
- Корректное завершение работы (Graceful Shutdown).
"""

import argparse
import asyncio
from datetime import date

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from src.core_shared.logging_setup import LogConfig, setup_logger
from src.core_shared.sentry_sdk_setup import setup_sentry
from src.scheduler.config import settings
from src.scheduler.tasks import run_reconciliation_sweep, shutdown_event
from src.shared_habits.core.database import db
from src.shared_habits.utils.date_utils import resolve_timezone

# Настраиваем логгер
log = setup_logger("SchedulerMain", log_config=LogConfig.from_settings(settings))


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Планировщик ночной сверки стриков совместных привычек.")
    parser.add_argument("--run-once", action="store_true", help="Выполнить сверку один раз и выйти")
    parser.add_argument(
        "--date",
        type=date.fromisoformat,
        default=None,
        help="Проверяемый день (YYYY-MM-DD), по умолчанию - вчера",
    )
    return parser.parse_args(argv)


def build_scheduler() -> AsyncIOScheduler:
    """Создает планировщик с ежедневной задачей сверки."""
    scheduler = AsyncIOScheduler()

    scheduler.add_job(
        run_reconciliation_sweep,
        trigger=CronTrigger(
            hour=settings.SWEEP_CRON_HOUR,
            minute=settings.SWEEP_CRON_MINUTE,
            timezone=resolve_timezone(settings.DAY_BOUNDARY_TIMEZONE),
        ),
        id="reconciliation_sweep_job",
        name="Ночная сверка стриков совместных привычек",
        replace_existing=True,  # Перезаписывать задачу при перезапуске
        max_instances=1,  # Сверка не запускается параллельно сама с собой
        coalesce=True,  # Несколько пропущенных запусков выполняются один раз
        misfire_grace_time=settings.SWEEP_MISFIRE_GRACE_SECONDS,
    )
    return scheduler


async def run_once(day: date | None) -> None:
    """Однократный ручной запуск сверки (для эксплуатации и проверки)."""
    await db.connect()

    try:
        report = await run_reconciliation_sweep(day)

        if report is not None:
            log.info(f"Отчет сверки: {report.model_dump_json()}")

    finally:
        await db.disconnect()


async def main() -> None:
    """Запуск сервиса планировщика."""
    log.info("⏳ Запуск сервиса планировщика (Scheduler Service)...")

    # Инициализируем подключение к базе данных
    try:
        await db.connect()
    except Exception as exc:
        log.critical(f"Не удалось подключиться к БД: {exc}")
        return

    scheduler = build_scheduler()

    # Запускаем планировщик
    try:
        scheduler.start()
        log.info(
            "✅ Планировщик (Scheduler) запущен: сверка ежедневно в "
            f"{settings.SWEEP_CRON_HOUR:02d}:{settings.SWEEP_CRON_MINUTE:02d} ({settings.DAY_BOUNDARY_TIMEZONE}). "
            "Нажмите Ctrl+C для выхода."
        )

        # Apscheduler работает в фоне, поэтому нужно удерживать event loop
        while True:
            await asyncio.sleep(3600)

    except (KeyboardInterrupt, SystemExit, asyncio.CancelledError):
        log.info("Получен сигнал остановки (Ctrl+C) планировщика...")

    except Exception as exc:
        log.critical(f"Непредвиденное падение сервиса планировщика: {exc}", exc_info=True)

    finally:
        # Корректное завершение (Graceful Shutdown)
        log.info("🛑 Остановка сервиса планировщика...")

        # Идущая сверка остановится перед следующей привычкой
        shutdown_event.set()

        # Останавливаем планировщик, не дожидаясь текущей задачи
        scheduler.shutdown(wait=False)

        # Закрываем соединение с базой данных
        await db.disconnect()

        log.info("Планировщик (Scheduler) остановлен корректно.")


if __name__ == "__main__":
    args = parse_args()

    # Вызываем инициализацию Sentry, передавая настройки и название сервиса
    if settings.SENTRY_DSN:
        setup_sentry(settings, service_name="Scheduler")

    try:
        # Запускаем asyncio event loop
        asyncio.run(run_once(args.date) if args.run_once else main())
    except KeyboardInterrupt:
        # Этот блок нужен, чтобы не видеть трейсбек asyncio при Ctrl+C до запуска main
        pass
