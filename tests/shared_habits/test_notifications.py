import json
from typing import Any

import pytest
from redis import RedisError

from src.shared_habits.gateway import CeleryNotifier, CollaboratorGateway
from src.shared_habits.models import NotificationKind
from src.shared_habits.schemas import NotificationEventSchema
from src.worker import tasks as worker_tasks
from tests.conftest import FakeIdentityDirectory, InMemoryHabitStore, RecordingNotifier


class FakeTask:
    def __init__(self):
        self.calls: list[tuple[dict[str, Any], str]] = []

    def delay(self, event: dict[str, Any], idempotency_key: str) -> None:
        self.calls.append((event, idempotency_key))


class FakeRedis:
    def __init__(self):
        self.keys: set[str] = set()
        self.published: list[tuple[str, str]] = []
        self.failing_channels: set[str] = set()

    def set(self, key: str, value: str, nx: bool = False, ex: int | None = None) -> bool:
        if nx and key in self.keys:
            return False
        self.keys.add(key)
        return True

    def publish(self, channel: str, message: str) -> int:
        if channel in self.failing_channels:
            raise RedisError("Connection reset by peer")
        self.published.append((channel, message))
        return 1

    def delete(self, key: str) -> None:
        self.keys.discard(key)


@pytest.mark.asyncio
async def test_gateway_skips_events_without_recipients(gateway: CollaboratorGateway, notifier: RecordingNotifier):
    event = NotificationEventSchema(kind=NotificationKind.HABIT_DELETED, habit_id=1)

    assert await gateway.notify(event) is False
    assert notifier.sent == []


@pytest.mark.asyncio
async def test_gateway_swallows_notifier_failure(gateway: CollaboratorGateway, notifier: RecordingNotifier):
    notifier.fail = True
    event = NotificationEventSchema(kind=NotificationKind.STREAK_BROKEN, habit_id=1, recipient_ids=[1])

    assert await gateway.notify(event) is False


@pytest.mark.asyncio
async def test_celery_notifier_enqueues_event():
    task = FakeTask()
    gateway = CollaboratorGateway(
        identities=FakeIdentityDirectory(),
        notifier=CeleryNotifier(task=task),
        store=InMemoryHabitStore(),
    )
    event = NotificationEventSchema(
        kind=NotificationKind.HABIT_INVITATION,
        habit_id=5,
        recipient_emails=["new@example.com"],
        payload={"habit_title": "Чтение"},
    )

    assert await gateway.notify(event) is True

    enqueued, idempotency_key = task.calls[0]
    assert enqueued == {
        "kind": "habit_invitation",
        "recipients": ["new@example.com"],
        "payload": {"habit_id": 5, "habit_title": "Чтение"},
    }
    assert idempotency_key.startswith("habit_invitation:5:")


def test_channels_for_ids_and_emails():
    assert worker_tasks.channels_for([3, "a@example.com"]) == [
        "notifications:user:3",
        "notifications:email:a@example.com",
    ]


def test_publish_task_is_idempotent(monkeypatch: pytest.MonkeyPatch):
    fake_redis = FakeRedis()
    monkeypatch.setattr(worker_tasks, "redis_client", fake_redis)
    event = {"kind": "streak_milestone", "recipients": [1, 2], "payload": {"habit_id": 9, "streak": 3}}

    assert worker_tasks.publish_notification_task(event, "key-1") == "Опубликовано"
    assert worker_tasks.publish_notification_task(event, "key-1") == "Пропущено (дубликат)"

    assert [channel for channel, _ in fake_redis.published] == ["notifications:user:1", "notifications:user:2"]
    assert json.loads(fake_redis.published[0][1]) == {
        "kind": "streak_milestone",
        "payload": {"habit_id": 9, "streak": 3},
    }


def test_publish_retry_skips_channels_already_published(monkeypatch: pytest.MonkeyPatch):
    fake_redis = FakeRedis()
    fake_redis.failing_channels = {"notifications:user:2"}
    monkeypatch.setattr(worker_tasks, "redis_client", fake_redis)
    event = {"kind": "streak_broken", "recipients": [1, 2, 3], "payload": {"habit_id": 9}}

    # Вызов вне воркера: retry пробрасывает исходную ошибку
    with pytest.raises(RedisError):
        worker_tasks.publish_notification_task(event, "key-2")

    fake_redis.failing_channels = set()
    assert worker_tasks.publish_notification_task(event, "key-2") == "Опубликовано"

    assert [channel for channel, _ in fake_redis.published] == [
        "notifications:user:1",
        "notifications:user:2",
        "notifications:user:3",
    ]
