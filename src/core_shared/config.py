"""Настройки, общие для движка, планировщика и воркера."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """
    Общие поля всех сервисов: метаданные релиза, режим работы, логирование и Sentry.

    Значения читаются из переменных окружения и файла .env (регистр имен не важен).
    """

    PROJECT_NAME: str = "Shared Habit Streaks"
    API_VERSION: str = "0.1.0"

    # True для локальной разработки и тестов
    DEVELOPMENT: bool = Field(default=False, description="Режим разработки/тестирования")

    # Логирование (Loguru)
    LOG_LEVEL: str = Field(default="INFO", description="Уровень логирования")
    LOG_TO_FILE: bool = Field(default=True, description="Дублировать логи в файл")
    LOG_DIR: str = Field(default="logs", description="Директория для лог-файлов")
    LOG_SERIALIZE: bool = Field(default=False, description="Писать логи в формате JSON")

    # Мониторинг ошибок
    SENTRY_DSN: str | None = Field(default=None, description="Sentry DSN. Пустое значение отключает Sentry.")
    SENTRY_TRACES_SAMPLE_RATE: float | None = Field(
        default=None,
        ge=0.0,
        le=1.0,
        description="Доля трассировок. По умолчанию 0.1 в продакшене и 1.0 в разработке.",
    )

    @property
    def PRODUCTION(self) -> bool:
        """Все, что не DEVELOPMENT, считается продакшеном."""
        return not self.DEVELOPMENT

    @property
    def ENVIRONMENT(self) -> str:
        return "production" if self.PRODUCTION else "development"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )
