"""Конфигурация движка совместных привычек."""

from datetime import time
from urllib.parse import quote_plus

from pydantic import Field, computed_field

from src.core_shared.config import AppSettings


class Settings(AppSettings):
    """Основные настройки движка совместных привычек."""

    # --- Настройки, читаемые из .env ---

    # Настройки БД
    DB_NAME: str = Field(default="shared_habits_db", description="Название базы данных")
    DB_USER: str = Field(default="shared_habits_user", description="Имя пользователя базы данных")
    DB_PASSWORD: str = Field(default="", description="Пароль пользователя базы данных")
    DB_HOST: str = Field(
        default="db",
        description="Имя хоста базы данных (название сервиса в Docker)",
    )
    DB_PORT: int = Field(default=5432, description="Порт хоста базы данных")

    # Брокер Celery и канал для передачи уведомлений
    REDIS_URL: str = Field(default="redis://redis:6379/0", description="URL Redis (брокер Celery и pub/sub)")

    # Бизнес-константы
    DAY_BOUNDARY_TIMEZONE: str = Field(
        default="UTC",
        description="Часовой пояс, в котором вычисляется календарный день (ключ дня)",
    )
    POINTS_PER_SUCCESSFUL_DAY: int = Field(
        default=20,
        ge=0,
        description="Очки, начисляемые привычке за день, выполненный всеми участниками",
    )
    CONFLICT_RETRY_ATTEMPTS: int = Field(
        default=3,
        ge=1,
        description="Количество попыток применить операцию при конфликте версий агрегата",
    )
    DEFAULT_REMINDER_TIME: time = Field(default=time(9, 0), description="Время напоминания по умолчанию")

    # --- Вычисляемые поля ---

    # Формируем URL основной базы данных
    @computed_field(repr=False)  # type: ignore[prop-decorator]
    @property
    def DATABASE_URL(self) -> str:
        """Собирает URL для SQLAlchemy."""

        # Экранируем пользователя и пароль, чтобы спецсимволы не ломали URL
        encoded_user = quote_plus(self.DB_USER)
        encoded_password = quote_plus(self.DB_PASSWORD)

        return f"postgresql+psycopg://{encoded_user}:{encoded_password}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"


# Создаем глобальный экземпляр настроек
settings = Settings()
