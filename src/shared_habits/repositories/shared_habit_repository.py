"""Репозиторий для работы с моделью SharedHabit."""

from typing import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from src.shared_habits.core.logging import engine_log as log
from src.shared_habits.models import (
    ParticipantStatus,
    SharedHabit,
    SharedHabitDayRecord,
    SharedHabitParticipant,
)

from .base_repository import BaseRepository


class SharedHabitRepository(BaseRepository[SharedHabit]):
    """
    Репозиторий для чтения агрегата SharedHabit вместе с дочерними строками.

    Наследует общие методы от BaseRepository и содержит специфичные для SharedHabit методы.
    """

    async def get_habit_with_relations(
        self,
        db_session: AsyncSession,
        *,
        habit_id: int,
        for_update: bool = False,
    ) -> SharedHabit | None:
        """
        Получает привычку по ID с жадной загрузкой участников и журнала выполнений.

        При `for_update=True` строка привычки блокируется от изменения другими
        транзакциями до конца текущей транзакции (SELECT ... FOR UPDATE).

        Args:
            db_session (AsyncSession): Асинхронная сессия базы данных.
            habit_id (int): ID привычки.
            for_update (bool): Заблокировать строку привычки.

        Returns:
            SharedHabit | None: Экземпляр привычки или None.
        """
        statement = (
            select(self.model)
            .where(self.model.id == habit_id)
            .options(
                selectinload(self.model.participants),
                selectinload(self.model.day_records).selectinload(SharedHabitDayRecord.completions),
            )
        )

        if for_update:
            statement = statement.with_for_update()

        result = await db_session.execute(statement)
        habit = result.scalar_one_or_none()

        status = "найдена" if habit else "не найдена"
        log.debug(f"Совместная привычка (ID {habit_id}) {status} (for_update={for_update}).")

        return habit

    async def get_active_habit_ids(self, db_session: AsyncSession) -> Sequence[int]:
        """
        Получает ID всех активных совместных привычек.

        Args:
            db_session (AsyncSession): Асинхронная сессия базы данных.

        Returns:
            Sequence[int]: Список ID, отсортированный по возрастанию.
        """
        habit_ids = await self.get_ids(db_session, self.model.is_active.is_(True))

        log.debug(f"Найдено {len(habit_ids)} активных совместных привычек.")
        return habit_ids

    async def get_habit_ids_for_participant(self, db_session: AsyncSession, *, user_id: int) -> Sequence[int]:
        """
        Получает ID активных привычек, в которых пользователь - принятый участник.

        Args:
            db_session (AsyncSession): Асинхронная сессия базы данных.
            user_id (int): ID пользователя.

        Returns:
            Sequence[int]: Список ID привычек.
        """
        statement = (
            select(self.model.id)
            .join(SharedHabitParticipant, SharedHabitParticipant.habit_id == self.model.id)
            .where(
                self.model.is_active.is_(True),
                SharedHabitParticipant.user_id == user_id,
                SharedHabitParticipant.status == ParticipantStatus.ACCEPTED,
            )
            .order_by(self.model.id)
        )
        result = await db_session.execute(statement)
        return result.scalars().all()
