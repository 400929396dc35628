"""Адаптер уведомлений: ставит событие в очередь Celery."""

import asyncio
from typing import Any, Sequence
from uuid import uuid4

from src.shared_habits.core.logging import engine_log as log
from src.shared_habits.models import NotificationKind


class CeleryNotifier:
    """
    Передает события движка воркеру Celery (задача publish_notification_task).

    Постановка в очередь синхронная (kombu), поэтому выполняется в отдельном потоке,
    чтобы не блокировать event loop.
    """

    def __init__(self, task: Any = None):
        if task is None:
            from src.worker.tasks import publish_notification_task

            task = publish_notification_task

        self.task = task

    async def notify(self, recipients: Sequence[int | str], kind: NotificationKind, payload: dict[str, Any]) -> None:
        idempotency_key = f"{kind.value}:{payload.get('habit_id')}:{uuid4().hex}"
        event = {"kind": kind.value, "recipients": list(recipients), "payload": payload}

        await asyncio.to_thread(self.task.delay, event, idempotency_key)
        log.debug(f"Событие {kind.value} поставлено в очередь (ключ {idempotency_key}).")
