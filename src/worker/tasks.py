"""
Фоновые задачи Celery.

Передают события уведомлений движка во внешний сервис доставки
через каналы Redis pub/sub. Доставка, хранение и push живут вне этого проекта.
"""

import json
from typing import Any

from celery.utils.log import get_task_logger
from redis import Redis, RedisError

from src.shared_habits.core.config import settings
from src.worker.celery_app import celery_app

# Специальный логгер для Celery задач
logger = get_task_logger(__name__)

# Клиент Redis для блокировок (Idempotency Lock) и публикации событий
redis_client = Redis.from_url(settings.REDIS_URL)

# Время жизни ключа идемпотентности (24 часа)
IDEMPOTENCY_TTL_SECONDS = 86400


def channels_for(recipients: list[int | str]) -> list[str]:
    """
    Возвращает каналы Redis для получателей события.

    ID пользователя публикуется в `notifications:user:{id}`,
    email еще не зарегистрированного приглашенного - в `notifications:email:{email}`.
    """
    channels = []

    for recipient in recipients:
        if isinstance(recipient, str):
            channels.append(f"notifications:email:{recipient}")
        else:
            channels.append(f"notifications:user:{recipient}")

    return channels


@celery_app.task(
    bind=True,  # Дает доступ к экземпляру задачи (self)
    max_retries=3,  # Количество попыток при ошибке
    default_retry_delay=5,  # Пауза между попытками
    acks_late=True,  # Подтверждать задачу только после выполнения
)
def publish_notification_task(self: Any, event: dict[str, Any], idempotency_key: str) -> str:
    """
    Публикует событие уведомления в канал каждого получателя.

    Идемпотентность обеспечивается отдельным ключом Redis на каждый канал: при
    повторной доставке задачи или повторной попытке после ошибки событие уходит
    только в те каналы, куда еще не было опубликовано. Если процесс воркера упадет
    между SET и PUBLISH, канал будет пропущен: доставка в канал не более одного раза.

    Args:
        event: Событие (kind, recipients, payload).
        idempotency_key: Уникальный ключ события, назначенный при постановке в очередь.
    """
    message = json.dumps({"kind": event["kind"], "payload": event.get("payload", {})}, ensure_ascii=False)
    published = 0

    for channel in channels_for(event.get("recipients", [])):
        lock_key = f"lock:notification:{idempotency_key}:{channel}"

        if not redis_client.set(lock_key, "sent", nx=True, ex=IDEMPOTENCY_TTL_SECONDS):
            logger.info(f"Канал {channel} уже получил событие {idempotency_key}, пропускаем.")
            continue

        try:
            redis_client.publish(channel, message)
        except RedisError as exc:
            logger.error(f"❌ Ошибка Redis при публикации события {event['kind']} в {channel}: {exc}")
            # Снимаем лок только этого канала: повторная попытка опубликует в него и в оставшиеся
            redis_client.delete(lock_key)
            raise self.retry(exc=exc)

        published += 1

    if not published:
        logger.info(f"Повторное событие пропущено. Ключ: {idempotency_key}")
        return "Пропущено (дубликат)"

    logger.info(f"✅ Событие {event['kind']} опубликовано в {published} канал(ов).")
    return "Опубликовано"
