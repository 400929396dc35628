"""Адаптеры хранилища на SQLAlchemy (async, PostgreSQL через psycopg)."""

from datetime import date

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.shared_habits.core.exceptions import ConcurrencyConflictError, HabitNotFoundError
from src.shared_habits.core.logging import engine_log as log
from src.shared_habits.models import (
    SharedHabit,
    SharedHabitCompletion,
    SharedHabitDayRecord,
    SharedHabitParticipant,
    User,
)
from src.shared_habits.repositories import SharedHabitRepository, UserRepository
from src.shared_habits.schemas import (
    CompletionMarkSchema,
    DayRecordSchema,
    HabitStatsSchema,
    IdentitySchema,
    NotificationSettingsSchema,
    ParticipantSchema,
    SharedHabitSchema,
    StreakSchema,
)


def habit_to_schema(habit: SharedHabit) -> SharedHabitSchema:
    """Собирает агрегат из строки привычки с подгруженными связями."""
    return SharedHabitSchema(
        id=habit.id,
        title=habit.title,
        description=habit.description,
        category=habit.category,
        created_by=habit.created_by,
        is_active=habit.is_active,
        participants=[
            ParticipantSchema(
                email=participant.email,
                user_id=participant.user_id,
                status=participant.status,
                invited_at=participant.invited_at,
                joined_at=participant.joined_at,
            )
            for participant in habit.participants
        ],
        day_records=[
            DayRecordSchema(
                day=record.day,
                state=record.state,
                completed_by=[
                    CompletionMarkSchema(user_id=mark.user_id, completed_at=mark.completed_at)
                    for mark in record.completions
                ],
            )
            for record in habit.day_records
        ],
        streak=StreakSchema(
            current=habit.current_streak,
            longest=habit.longest_streak,
            last_completed_date=habit.last_completed_date,
            consecutive_days=[date.fromisoformat(item) for item in habit.consecutive_days or []],
            last_reconciled_day=habit.last_reconciled_day,
        ),
        stats=HabitStatsSchema(
            total_days=habit.total_days,
            successful_days=habit.successful_days,
            failed_days=habit.failed_days,
            success_rate=habit.success_rate,
            total_points=habit.total_points,
        ),
        notifications=NotificationSettingsSchema(
            notify_on_streak=habit.notify_on_streak,
            notify_on_break=habit.notify_on_break,
            reminder_enabled=habit.reminder_enabled,
            reminder_time=habit.reminder_time,
        ),
        version=habit.version,
        created_at=habit.created_at,
    )


def _apply_scalars(db_habit: SharedHabit, habit: SharedHabitSchema) -> None:
    db_habit.title = habit.title
    db_habit.description = habit.description
    db_habit.category = habit.category
    db_habit.created_by = habit.created_by
    db_habit.is_active = habit.is_active

    db_habit.current_streak = habit.streak.current
    db_habit.longest_streak = habit.streak.longest
    db_habit.last_completed_date = habit.streak.last_completed_date
    db_habit.consecutive_days = [item.isoformat() for item in habit.streak.consecutive_days]
    db_habit.last_reconciled_day = habit.streak.last_reconciled_day

    db_habit.total_days = habit.stats.total_days
    db_habit.successful_days = habit.stats.successful_days
    db_habit.failed_days = habit.stats.failed_days
    db_habit.success_rate = habit.stats.success_rate
    db_habit.total_points = habit.stats.total_points

    db_habit.notify_on_streak = habit.notifications.notify_on_streak
    db_habit.notify_on_break = habit.notifications.notify_on_break
    db_habit.reminder_enabled = habit.notifications.reminder_enabled
    db_habit.reminder_time = habit.notifications.reminder_time


def _sync_participants(db_habit: SharedHabit, participants: list[ParticipantSchema]) -> None:
    """Синхронизирует строки участников по email (ключ участника)."""
    existing = {row.email: row for row in db_habit.participants}
    wanted = {participant.email for participant in participants}

    for row in list(db_habit.participants):
        if row.email not in wanted:
            db_habit.participants.remove(row)

    for participant in participants:
        row = existing.get(participant.email)

        if row is None:
            row = SharedHabitParticipant(email=participant.email)
            db_habit.participants.append(row)

        row.user_id = participant.user_id
        row.status = participant.status
        row.invited_at = participant.invited_at
        row.joined_at = participant.joined_at


def _sync_day_records(db_habit: SharedHabit, day_records: list[DayRecordSchema]) -> None:
    """Синхронизирует журнал по ключу дня, а отметки внутри дня - по ID участника."""
    existing = {row.day: row for row in db_habit.day_records}
    wanted = {record.day for record in day_records}

    for row in list(db_habit.day_records):
        if row.day not in wanted:
            db_habit.day_records.remove(row)

    for record in day_records:
        row = existing.get(record.day)

        if row is None:
            row = SharedHabitDayRecord(day=record.day, completions=[])
            db_habit.day_records.append(row)

        row.state = record.state

        marks = {mark.user_id: mark for mark in record.completed_by}

        for completion in list(row.completions):
            if completion.user_id not in marks:
                row.completions.remove(completion)

        stored = {completion.user_id for completion in row.completions}

        for user_id, mark in marks.items():
            if user_id not in stored:
                row.completions.append(SharedHabitCompletion(user_id=user_id, completed_at=mark.completed_at))


class SqlAlchemyHabitStore:
    """
    Хранилище агрегата совместной привычки в реляционной БД.

    Сохранение выполняется в одной транзакции: строка привычки блокируется
    (SELECT ... FOR UPDATE), версия сравнивается с версией агрегата и увеличивается.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory
        self.habit_repository = SharedHabitRepository(SharedHabit)

    async def load_habit(self, habit_id: int) -> SharedHabitSchema | None:
        async with self.session_factory() as session:
            db_habit = await self.habit_repository.get_habit_with_relations(session, habit_id=habit_id)
            return habit_to_schema(db_habit) if db_habit else None

    async def create_habit(self, habit: SharedHabitSchema) -> SharedHabitSchema:
        """
        Создает строку привычки вместе с участниками.

        Returns:
            SharedHabitSchema: Агрегат с присвоенными ID и версией 1.
        """
        async with self.session_factory() as session:
            async with session.begin():
                db_habit = SharedHabit(participants=[], day_records=[], version=1)
                _apply_scalars(db_habit, habit)
                _sync_participants(db_habit, habit.participants)
                _sync_day_records(db_habit, habit.day_records)

                session.add(db_habit)

                # Получаем ID и другие сгенерированные базой данных значения
                await session.flush()
                await session.refresh(db_habit, attribute_names=["id", "created_at", "version"])

                created = habit.model_copy(
                    update={"id": db_habit.id, "version": db_habit.version, "created_at": db_habit.created_at},
                    deep=True,
                )

        log.info(f"Совместная привычка '{created.title}' создана (ID {created.id}).")
        return created

    async def save_habit(self, habit: SharedHabitSchema) -> SharedHabitSchema:
        """
        Сохраняет агрегат целиком.

        Raises:
            HabitNotFoundError: Если строки привычки больше нет.
            ConcurrencyConflictError: Если привычку успел изменить другой процесс.
        """
        async with self.session_factory() as session:
            async with session.begin():
                db_habit = await self.habit_repository.get_habit_with_relations(
                    session, habit_id=habit.id, for_update=True
                )

                if db_habit is None:
                    raise HabitNotFoundError(message=f"Совместная привычка с ID {habit.id} не найдена.")

                if db_habit.version != habit.version:
                    log.warning(
                        f"Конфликт версий привычки ID {habit.id}: в БД {db_habit.version}, в агрегате {habit.version}."
                    )
                    raise ConcurrencyConflictError()

                _apply_scalars(db_habit, habit)
                _sync_participants(db_habit, habit.participants)
                _sync_day_records(db_habit, habit.day_records)
                db_habit.version = habit.version + 1

        log.debug(f"Совместная привычка ID {habit.id} сохранена (версия {habit.version + 1}).")
        return habit.model_copy(update={"version": habit.version + 1}, deep=True)

    async def delete_habit(self, habit_id: int) -> None:
        async with self.session_factory() as session:
            async with session.begin():
                db_habit = await self.habit_repository.get_habit_with_relations(
                    session, habit_id=habit_id, for_update=True
                )

                if db_habit is None:
                    raise HabitNotFoundError(message=f"Совместная привычка с ID {habit_id} не найдена.")

                await session.delete(db_habit)

        log.info(f"Совместная привычка ID {habit_id} удалена физически.")

    async def list_active_habit_ids(self) -> list[int]:
        async with self.session_factory() as session:
            return list(await self.habit_repository.get_active_habit_ids(session))

    async def list_habit_ids_for_participant(self, identity_id: int) -> list[int]:
        async with self.session_factory() as session:
            return list(await self.habit_repository.get_habit_ids_for_participant(session, user_id=identity_id))


class SqlAlchemyIdentityDirectory:
    """Чтение пользователей из таблицы users."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory
        self.user_repository = UserRepository(User)

    async def resolve_identity_by_email(self, email: str) -> IdentitySchema | None:
        async with self.session_factory() as session:
            user = await self.user_repository.get_by_email(session, email=email.strip().lower())
            return IdentitySchema.model_validate(user) if user else None

    async def get_identity(self, identity_id: int) -> IdentitySchema | None:
        async with self.session_factory() as session:
            user = await self.user_repository.get_by_id(session, obj_id=identity_id)

            if user is None or not user.is_active:
                return None

            return IdentitySchema.model_validate(user)
