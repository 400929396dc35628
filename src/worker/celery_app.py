"""Celery-приложение воркера уведомлений."""

from celery import Celery

from src.core_shared.sentry_sdk_setup import setup_sentry
from src.shared_habits.core.config import settings

NOTIFICATIONS_QUEUE = "notifications"

setup_sentry(settings, service_name="Worker")

celery_app = Celery("shared_habits_worker", broker=settings.REDIS_URL, include=["src.worker.tasks"])

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    # Публикация ничего не возвращает, backend результатов не нужен
    task_ignore_result=True,
    task_default_queue=NOTIFICATIONS_QUEUE,
    # Подтверждение после выполнения: задача, прерванная падением воркера, будет доставлена повторно
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    timezone="UTC",
    enable_utc=True,
    broker_connection_retry_on_startup=True,
)
