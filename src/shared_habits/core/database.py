"""Асинхронный движок SQLAlchemy и фабрика сессий для хранилища привычек."""

from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from .config import settings
from .logging import engine_log as log


class Database:
    """
    Владелец движка SQLAlchemy процесса.

    Хранилище агрегатов (`SqlAlchemyHabitStore`) само открывает сессии и транзакции,
    поэтому наружу отдается только фабрика сессий.
    """

    def __init__(self, url: str | None = None) -> None:
        self.url = url
        self.engine: AsyncEngine | None = None
        self.session_factory: async_sessionmaker[AsyncSession] | None = None

    @property
    def is_connected(self) -> bool:
        return self.session_factory is not None

    async def connect(self, **engine_kwargs: Any) -> None:
        """
        Создает движок и фабрику сессий, затем проверяет соединение.

        Args:
            **engine_kwargs: Параметры, передаваемые в create_async_engine поверх умолчаний.

        Raises:
            RuntimeError: Если база данных не отвечает.
        """
        if self.is_connected:
            log.debug("Повторный вызов connect() проигнорирован: движок уже создан.")
            return

        options: dict[str, Any] = {"echo": settings.DEVELOPMENT, "pool_pre_ping": True}
        options.update(engine_kwargs)

        self.engine = create_async_engine(self.url or settings.DATABASE_URL, **options)
        self.session_factory = async_sessionmaker(bind=self.engine, expire_on_commit=False, autoflush=False)

        try:
            async with self.engine.connect() as connection:
                await connection.execute(text("SELECT 1"))
        except Exception as exc:
            log.critical(f"База данных недоступна: {exc}")
            await self.disconnect()
            raise RuntimeError("Не удалось подключиться к базе данных.") from exc

        log.success("Подключение к базе данных установлено.")

    async def disconnect(self) -> None:
        """Освобождает пул соединений. Безопасно вызывать повторно."""
        engine, self.engine, self.session_factory = self.engine, None, None

        if engine is not None:
            await engine.dispose()
            log.info("Пул соединений с базой данных закрыт.")

    def require_session_factory(self) -> async_sessionmaker[AsyncSession]:
        """
        Возвращает фабрику сессий подключенной базы.

        Raises:
            RuntimeError: Если `connect()` еще не вызывался.
        """
        if self.session_factory is None:
            raise RuntimeError("База данных не инициализирована. Вызовите `await db.connect()`.")

        return self.session_factory


db = Database()
