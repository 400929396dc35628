"""
Граница движка с внешними сервисами.

Движок работает с агрегатом в памяти и обращается наружу только через
протоколы этого модуля: хранилище идентичностей, уведомления и хранилище привычек.
"""

from typing import Any, Protocol, Sequence

from src.shared_habits.core.logging import engine_log as log
from src.shared_habits.models import NotificationKind
from src.shared_habits.schemas import IdentitySchema, NotificationEventSchema, SharedHabitSchema


class IdentityDirectory(Protocol):
    """Хранилище пользователей (регистрация и аутентификация вне движка)."""

    async def resolve_identity_by_email(self, email: str) -> IdentitySchema | None: ...

    async def get_identity(self, identity_id: int) -> IdentitySchema | None: ...


class Notifier(Protocol):
    """
    Передача события "уведомить этих пользователей".

    Получатели - ID пользователей, а для еще не зарегистрированных приглашенных - email.
    """

    async def notify(self, recipients: Sequence[int | str], kind: NotificationKind, payload: dict[str, Any]) -> None: ...


class HabitStore(Protocol):
    """Долговременное хранение агрегата совместной привычки."""

    async def load_habit(self, habit_id: int) -> SharedHabitSchema | None: ...

    async def create_habit(self, habit: SharedHabitSchema) -> SharedHabitSchema: ...

    async def save_habit(self, habit: SharedHabitSchema) -> SharedHabitSchema:
        """
        Сохраняет агрегат целиком и возвращает его с увеличенной версией.

        Raises:
            ConcurrencyConflictError: Если версия в хранилище отличается от версии агрегата.
            HabitNotFoundError: Если привычка удалена.
        """
        ...

    async def delete_habit(self, habit_id: int) -> None: ...

    async def list_active_habit_ids(self) -> list[int]: ...

    async def list_habit_ids_for_participant(self, identity_id: int) -> list[int]: ...


class CollaboratorGateway:
    """
    Набор внешних сервисов, с которыми работает движок.

    Ошибка уведомления никогда не откатывает уже сохраненное изменение:
    notify логирует ее и продолжает работу. Ошибки хранилища пробрасываются вызывающему.
    """

    def __init__(self, identities: IdentityDirectory, notifier: Notifier, store: HabitStore):
        self.identities = identities
        self.notifier = notifier
        self.store = store

    async def notify(self, event: NotificationEventSchema) -> bool:
        """
        Передает событие сервису уведомлений.

        Args:
            event (NotificationEventSchema): Событие.

        Returns:
            bool: True, если событие передано.
        """
        if not event.has_recipients:
            log.debug(f"Событие {event.kind.value} (привычка ID {event.habit_id}) без получателей, пропускаем.")
            return False

        recipients: list[int | str] = [*event.recipient_ids, *event.recipient_emails]
        payload = {"habit_id": event.habit_id, **event.payload}

        try:
            await self.notifier.notify(recipients, event.kind, payload)

        except Exception as exc:
            log.error(
                f"Не удалось передать уведомление {event.kind.value} (привычка ID {event.habit_id}): {exc}",
                exc_info=True,
            )
            return False

        log.debug(f"Уведомление {event.kind.value} передано {len(recipients)} получателям.")
        return True
