"""Конфигурация планировщика."""

from pydantic import Field

from src.shared_habits.core.config import Settings as EngineSettings


class Settings(EngineSettings):
    """
    Основные настройки планировщика.

    Наследует настройки движка (БД, Redis, граница дня) и добавляет расписание сверки.
    """

    # --- Настройки, читаемые из .env ---

    # Расписание ночной сверки стриков (по умолчанию 00:01).
    # Часовой пояс расписания всегда DAY_BOUNDARY_TIMEZONE: "вчера" сверки считается в нем же
    SWEEP_CRON_HOUR: int = Field(default=0, ge=0, le=23, description="Час запуска сверки")
    SWEEP_CRON_MINUTE: int = Field(default=1, ge=0, le=59, description="Минута запуска сверки")
    SWEEP_MISFIRE_GRACE_SECONDS: int = Field(
        default=3600,
        ge=1,
        description="Сколько секунд после пропущенного запуска сверку еще можно выполнить",
    )


# Создаем глобальный экземпляр настроек
settings = Settings()
