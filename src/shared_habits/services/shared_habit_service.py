"""Сервис совместных привычек: входящие операции движка."""

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Callable, Generic, TypeVar

from src.shared_habits.core.config import settings
from src.shared_habits.core.exceptions import (
    ConcurrencyConflictError,
    HabitNotActiveError,
    HabitNotFoundError,
    IdentityNotFoundError,
    NotOwnerError,
)
from src.shared_habits.core.locks import AggregateLocks
from src.shared_habits.core.logging import engine_log as log
from src.shared_habits.gateway import CollaboratorGateway
from src.shared_habits.models import HabitCategory, NotificationKind, ParticipantStatus
from src.shared_habits.schemas import (
    CompletionResultSchema,
    DayRecordSchema,
    IdentitySchema,
    NotificationEventSchema,
    NotificationSettingsSchema,
    ParticipantSchema,
    SharedHabitSchema,
    SharedHabitSchemaCreate,
    StreakInfoSchema,
)
from src.shared_habits.utils.date_utils import today_key

from .participant_roster import ParticipantRoster, normalize_email
from .reconciliation import reconcile_habit
from .streak_engine import StreakEngine

ResultType = TypeVar("ResultType")


@dataclass
class Mutation(Generic[ResultType]):
    """
    Итог изменения агрегата внутри `_apply`.

    Attributes:
        habit: Агрегат, который нужно сохранить.
        result: Значение, которое вернет операция.
        events: События, передаваемые после успешного сохранения.
        changed: False, если сохранять нечего.
    """

    habit: SharedHabitSchema
    result: ResultType
    events: list[NotificationEventSchema] = field(default_factory=list)
    changed: bool = True


class SharedHabitService:
    """
    Сервис для управления совместными привычками.

    Каждая изменяющая операция выполняется по одной схеме:
    замок агрегата -> загрузка -> изменение в памяти -> сохранение -> уведомления.
    При конфликте версий (привычку изменил другой процесс) операция повторяется
    на свежей копии агрегата. Уведомления уходят только после успешного сохранения.
    """

    def __init__(
        self,
        gateway: CollaboratorGateway,
        locks: AggregateLocks | None = None,
        clock: Callable[[], datetime] | None = None,
        points_per_day: int | None = None,
        retry_attempts: int | None = None,
    ):
        """
        Инициализирует сервис совместных привычек.

        Args:
            gateway (CollaboratorGateway): Внешние сервисы (пользователи, уведомления, хранилище).
            locks (AggregateLocks | None): Реестр замков агрегатов (общий для всех операций процесса).
            clock (Callable[[], datetime] | None): Источник текущего времени (UTC).
            points_per_day (int | None): Очки за успешный день. По умолчанию из настроек.
            retry_attempts (int | None): Попытки при конфликте версий. По умолчанию из настроек.
        """
        self.gateway = gateway
        self.locks = locks or AggregateLocks()
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.points_per_day = settings.POINTS_PER_SUCCESSFUL_DAY if points_per_day is None else points_per_day
        self.retry_attempts = retry_attempts or settings.CONFLICT_RETRY_ATTEMPTS

    # --- Вспомогательные методы ---

    async def _get_identity(self, identity_id: int) -> IdentitySchema:
        identity = await self.gateway.identities.get_identity(identity_id)

        if identity is None:
            log.warning(f"Пользователь ID {identity_id} не найден в хранилище идентичностей.")
            raise IdentityNotFoundError(message=f"Пользователь с ID {identity_id} не найден.")

        return identity

    async def _load(self, habit_id: int) -> SharedHabitSchema:
        habit = await self.gateway.store.load_habit(habit_id)

        if habit is None:
            log.warning(f"Совместная привычка ID {habit_id} не найдена.")
            raise HabitNotFoundError(message=f"Совместная привычка с ID {habit_id} не найдена.")

        return habit

    @staticmethod
    def _check_active(habit: SharedHabitSchema) -> None:
        if not habit.is_active:
            log.warning(f"Совместная привычка ID {habit.id} не активна (удалена).")
            raise HabitNotActiveError(message=f"Совместная привычка '{habit.title}' не активна (удалена).")

    @staticmethod
    def _check_owner(habit: SharedHabitSchema, identity_id: int) -> None:
        if habit.created_by != identity_id:
            log.warning(f"Попытка удалить чужую привычку ID {habit.id}. User: {identity_id}, Owner: {habit.created_by}")
            raise NotOwnerError()

    async def _emit(self, events: list[NotificationEventSchema]) -> None:
        for event in events:
            await self.gateway.notify(event)

    async def _apply(
        self,
        habit_id: int,
        mutate: Callable[[SharedHabitSchema], Mutation[ResultType]],
    ) -> tuple[SharedHabitSchema, ResultType]:
        """
        Применяет изменение к агрегату под замком и сохраняет его.

        `mutate` вызывается на свежезагруженной копии и может быть вызван повторно
        при конфликте версий. Ожидаемые ошибки предметной области из `mutate`
        пробрасываются без повторов и без сохранения.

        Args:
            habit_id (int): ID привычки.
            mutate (Callable): Функция изменения агрегата.

        Returns:
            tuple[SharedHabitSchema, ResultType]: Сохраненный агрегат и результат операции.

        Raises:
            HabitNotFoundError: Если привычка не найдена.
            ConcurrencyConflictError: Если конфликт версий не разрешился за все попытки.
        """
        async with self.locks.hold(habit_id):
            for attempt in range(1, self.retry_attempts + 1):
                habit = await self._load(habit_id)
                mutation = mutate(habit)

                if not mutation.changed:
                    return mutation.habit, mutation.result

                try:
                    saved = await self.gateway.store.save_habit(mutation.habit)

                except ConcurrencyConflictError:
                    if attempt == self.retry_attempts:
                        log.error(f"Привычка ID {habit_id}: конфликт версий не разрешен за {attempt} попыток.")
                        raise

                    log.warning(f"Привычка ID {habit_id}: конфликт версий, попытка {attempt + 1}.")
                    continue

                await self._emit(mutation.events)
                return saved, mutation.result

        # Недостижимо: цикл либо возвращает результат, либо пробрасывает исключение
        raise ConcurrencyConflictError()

    # --- Создание и чтение ---

    async def create_habit(self, owner_id: int, habit_in: SharedHabitSchemaCreate) -> SharedHabitSchema:
        """
        Создает совместную привычку. Создатель сразу становится принятым участником.

        Args:
            owner_id (int): ID создателя.
            habit_in (SharedHabitSchemaCreate): Данные привычки.

        Returns:
            SharedHabitSchema: Созданный агрегат.

        Raises:
            IdentityNotFoundError: Если создатель не найден.
        """
        owner = await self._get_identity(owner_id)
        now = self.clock()

        habit = SharedHabitSchema(
            title=habit_in.title,
            description=habit_in.description,
            category=HabitCategory.from_label(habit_in.category),
            created_by=owner.id,
            participants=[
                ParticipantSchema(
                    email=normalize_email(owner.email),
                    user_id=owner.id,
                    status=ParticipantStatus.ACCEPTED,
                    invited_at=now,
                    joined_at=now,
                )
            ],
            notifications=habit_in.notifications
            or NotificationSettingsSchema(reminder_time=settings.DEFAULT_REMINDER_TIME),
        )

        return await self.gateway.store.create_habit(habit)

    async def get_habit(self, habit_id: int, identity_id: int) -> SharedHabitSchema:
        """
        Возвращает привычку принятому участнику.

        Raises:
            HabitNotFoundError: Если привычка не найдена.
            NotParticipantError: Если пользователь не принятый участник.
        """
        habit = await self._load(habit_id)
        ParticipantRoster(habit).require_accepted(identity_id)
        return habit

    async def list_habits_for(self, identity_id: int) -> list[SharedHabitSchema]:
        """Активные привычки, в которых пользователь - принятый участник."""
        habits = []

        for habit_id in await self.gateway.store.list_habit_ids_for_participant(identity_id):
            habit = await self.gateway.store.load_habit(habit_id)

            # Привычку могли удалить между запросами
            if habit is not None:
                habits.append(habit)

        return habits

    async def active_habit_ids(self) -> list[int]:
        return await self.gateway.store.list_active_habit_ids()

    # --- Участники ---

    async def invite(self, habit_id: int, identity_id: int, email: str) -> SharedHabitSchema:
        """
        Приглашает участника по email.

        Args:
            habit_id (int): ID привычки.
            identity_id (int): ID приглашающего (принятого участника).
            email (str): Email приглашаемого.

        Returns:
            SharedHabitSchema: Обновленный агрегат.

        Raises:
            HabitNotFoundError, HabitNotActiveError, NotParticipantError, AlreadyParticipantError.
        """
        inviter = await self._get_identity(identity_id)
        invitee = await self.gateway.identities.resolve_identity_by_email(normalize_email(email))

        def mutate(habit: SharedHabitSchema) -> Mutation[None]:
            self._check_active(habit)
            roster = ParticipantRoster(habit)
            roster.require_accepted(inviter.id)
            participant = roster.invite(email, invitee, self.clock())

            event = NotificationEventSchema(
                kind=NotificationKind.HABIT_INVITATION,
                habit_id=habit.id,
                recipient_ids=[participant.user_id] if participant.user_id is not None else [],
                recipient_emails=[] if participant.user_id is not None else [participant.email],
                payload={"habit_title": habit.title, "invited_by": inviter.display_name},
            )
            return Mutation(habit=habit, result=None, events=[event])

        habit, _ = await self._apply(habit_id, mutate)
        return habit

    async def _respond_to_invitation(self, habit_id: int, identity_id: int, accept: bool) -> SharedHabitSchema:
        identity = await self._get_identity(identity_id)
        kind = NotificationKind.INVITATION_ACCEPTED if accept else NotificationKind.INVITATION_DECLINED

        def mutate(habit: SharedHabitSchema) -> Mutation[None]:
            self._check_active(habit)
            roster = ParticipantRoster(habit)

            if accept:
                roster.accept(identity, self.clock())
            else:
                roster.decline(identity)

            event = NotificationEventSchema(
                kind=kind,
                habit_id=habit.id,
                recipient_ids=[habit.created_by],
                payload={"habit_title": habit.title, "participant_name": identity.display_name},
            )
            return Mutation(habit=habit, result=None, events=[event])

        habit, _ = await self._apply(habit_id, mutate)
        return habit

    async def accept(self, habit_id: int, identity_id: int) -> SharedHabitSchema:
        """
        Принимает приглашение в привычку.

        Raises:
            HabitNotFoundError, HabitNotActiveError, AlreadyAcceptedError, NoPendingInvitationError.
        """
        return await self._respond_to_invitation(habit_id, identity_id, accept=True)

    async def decline(self, habit_id: int, identity_id: int) -> SharedHabitSchema:
        """
        Отклоняет приглашение в привычку.

        Raises:
            HabitNotFoundError, HabitNotActiveError, AlreadyAcceptedError, NoPendingInvitationError.
        """
        return await self._respond_to_invitation(habit_id, identity_id, accept=False)

    async def leave(self, habit_id: int, identity_id: int) -> SharedHabitSchema:
        """
        Выход участника из привычки.

        Raises:
            HabitNotFoundError, HabitNotActiveError, OwnerCannotLeaveError, NotParticipantError.
        """

        def mutate(habit: SharedHabitSchema) -> Mutation[None]:
            self._check_active(habit)
            ParticipantRoster(habit).leave(identity_id)
            return Mutation(habit=habit, result=None)

        habit, _ = await self._apply(habit_id, mutate)
        return habit

    async def delete_habit(self, habit_id: int, identity_id: int, hard: bool = False) -> SharedHabitSchema | None:
        """
        Удаляет привычку (только создатель).

        Мягкое удаление снимает флаг is_active, привычка и журнал сохраняются.
        Физическое удаление стирает привычку и уведомляет остальных принятых участников.

        Args:
            habit_id (int): ID привычки.
            identity_id (int): ID удаляющего.
            hard (bool): Физическое удаление.

        Returns:
            SharedHabitSchema | None: Агрегат после мягкого удаления или None после физического.

        Raises:
            HabitNotFoundError, NotOwnerError, HabitNotActiveError (повторное мягкое удаление).
        """
        if not hard:

            def mutate(habit: SharedHabitSchema) -> Mutation[None]:
                self._check_owner(habit, identity_id)
                self._check_active(habit)
                habit.is_active = False
                return Mutation(habit=habit, result=None)

            habit, _ = await self._apply(habit_id, mutate)
            log.info(f"Совместная привычка ID {habit_id} деактивирована создателем.")
            return habit

        async with self.locks.hold(habit_id):
            habit = await self._load(habit_id)
            self._check_owner(habit, identity_id)

            recipients = ParticipantRoster(habit).accepted_ids() - {identity_id}
            await self.gateway.store.delete_habit(habit_id)

            await self._emit(
                [
                    NotificationEventSchema(
                        kind=NotificationKind.HABIT_DELETED,
                        habit_id=habit_id,
                        recipient_ids=sorted(recipients),
                        payload={"habit_title": habit.title},
                    )
                ]
            )

        return None

    # --- Выполнения и стрик ---

    async def record_completion(self, habit_id: int, identity_id: int) -> CompletionResultSchema:
        """
        Отмечает выполнение привычки участником за сегодня.

        Args:
            habit_id (int): ID привычки.
            identity_id (int): ID участника.

        Returns:
            CompletionResultSchema: Обновленная привычка и итог отметки.

        Raises:
            HabitNotFoundError, HabitNotActiveError, NotParticipantError, AlreadyCompletedTodayError.
        """
        actor = await self._get_identity(identity_id)

        def mutate(habit: SharedHabitSchema) -> Mutation[dict[str, Any]]:
            self._check_active(habit)
            now = self.clock()
            engine = StreakEngine(habit, points_per_day=self.points_per_day)
            step = engine.apply_completion(today_key(now), actor, now)
            record = engine.ledger.get_record(step.day)

            result = {
                "day": step.day,
                "all_completed": record.all_completed if record else False,
                "completed_count": len(record.completed_by) if record else 0,
                "total_participants": len(engine.roster.accepted_ids()),
                "points_earned": step.points_earned,
            }
            return Mutation(habit=habit, result=result, events=step.events)

        habit, result = await self._apply(habit_id, mutate)
        return CompletionResultSchema(habit=habit, **result)

    async def undo_completion(self, habit_id: int, identity_id: int) -> SharedHabitSchema:
        """
        Отменяет сегодняшнюю отметку участника.

        Raises:
            HabitNotFoundError, HabitNotActiveError, NotParticipantError, NoCompletionFoundError.
        """

        def mutate(habit: SharedHabitSchema) -> Mutation[None]:
            self._check_active(habit)
            engine = StreakEngine(habit, points_per_day=self.points_per_day)
            engine.apply_undo(today_key(self.clock()), identity_id)
            return Mutation(habit=habit, result=None)

        habit, _ = await self._apply(habit_id, mutate)
        return habit

    async def get_streak_info(self, habit_id: int, identity_id: int) -> StreakInfoSchema:
        """
        Возвращает стрик и статистику привычки.

        Raises:
            HabitNotFoundError, NotParticipantError.
        """
        habit = await self.get_habit(habit_id, identity_id)
        return StreakInfoSchema(habit_id=habit_id, streak=habit.streak, stats=habit.stats)

    async def get_completion_history(
        self,
        habit_id: int,
        identity_id: int,
        start: date | None = None,
        end: date | None = None,
    ) -> list[DayRecordSchema]:
        """
        Возвращает журнал выполнений в диапазоне дат (включительно), по возрастанию даты.

        Raises:
            HabitNotFoundError, NotParticipantError.
        """
        habit = await self.get_habit(habit_id, identity_id)
        return StreakEngine(habit).ledger.history(start, end)

    # --- Сверка ---

    async def reconcile_habit(self, habit_id: int, day: date) -> bool:
        """
        Сверяет одну привычку за указанный день и сохраняет результат.

        Returns:
            bool: True, если стрик был прерван.
        """

        def mutate(habit: SharedHabitSchema) -> Mutation[bool]:
            outcome = reconcile_habit(habit, day)
            return Mutation(
                habit=outcome.habit,
                result=outcome.streak_broken,
                events=outcome.events,
                changed=outcome.changed,
            )

        _, broken = await self._apply(habit_id, mutate)
        return broken
