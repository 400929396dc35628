"""Общие выборки для репозиториев моделей SQLAlchemy."""

from typing import Generic, Sequence, TypeVar

from sqlalchemy import ColumnElement, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.shared_habits.core.logging import engine_log as log
from src.shared_habits.models import Base as SQLAlchemyBaseModel

ModelType = TypeVar("ModelType", bound=SQLAlchemyBaseModel)


class BaseRepository(Generic[ModelType]):
    """
    Репозиторий только для чтения.

    Запись агрегата целиком выполняет `SqlAlchemyHabitStore`, поэтому методов
    создания и обновления здесь нет.
    """

    def __init__(self, model: type[ModelType]):
        self.model = model

    async def get_by_id(self, db_session: AsyncSession, *, obj_id: int) -> ModelType | None:
        """Возвращает запись по первичному ключу или None."""
        instance = await db_session.get(self.model, obj_id)
        log.debug(f"{self.model.__name__} ID {obj_id}: {'найдена' if instance else 'нет в базе'}.")
        return instance

    async def get_first(self, db_session: AsyncSession, *filters: ColumnElement[bool]) -> ModelType | None:
        """
        Возвращает первую запись, подходящую под все фильтры, или None.

        Args:
            db_session (AsyncSession): Асинхронная сессия базы данных.
            *filters (ColumnElement[bool]): Условия, объединяемые через AND.
        """
        statement = select(self.model).where(*filters).order_by(self.model.id).limit(1)
        result = await db_session.execute(statement)
        return result.scalar_one_or_none()

    async def get_ids(self, db_session: AsyncSession, *filters: ColumnElement[bool]) -> Sequence[int]:
        """Возвращает отсортированные ID записей, подходящих под фильтры."""
        statement = select(self.model.id).where(*filters).order_by(self.model.id)
        result = await db_session.execute(statement)
        return result.scalars().all()
