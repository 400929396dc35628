"""Репозиторий для работы с моделью User."""

from sqlalchemy.ext.asyncio import AsyncSession

from src.shared_habits.core.logging import engine_log as log
from src.shared_habits.models import User

from .base_repository import BaseRepository


class UserRepository(BaseRepository[User]):
    """
    Репозиторий для чтения пользователей из хранилища идентичностей.

    Наследует общие методы от BaseRepository и содержит специфичные для User методы.
    """

    async def get_by_email(self, db_session: AsyncSession, *, email: str) -> User | None:
        """
        Получает активного пользователя по нормализованному email.

        Args:
            db_session (AsyncSession): Асинхронная сессия базы данных.
            email (str): Email пользователя (в нижнем регистре).

        Returns:
            User | None: Экземпляр модели User или None, если пользователь не найден.
        """
        log.debug(f"Получение пользователя по email: {email}")
        user = await self.get_first(
            db_session,
            self.model.email == email,
            self.model.is_active.is_(True),
        )

        status = f"найден (ID: {user.id})" if user else "не найден"
        log.debug(f"Пользователь с email {email} {status}.")

        return user
