"""
Настройка Loguru для сервисов проекта.

Каждый сервис (движок, планировщик, воркер, миграции) получает логгер с привязанным
`service_name`, который выводится в каждой строке лога.
"""

import os
import sys
from typing import TYPE_CHECKING

from loguru import logger as root_logger
from pydantic import BaseModel, Field

from .config import AppSettings

if TYPE_CHECKING:
    from loguru import Logger

DEFAULT_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{extra[service_name]}</cyan> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)


class LogConfig(BaseModel):
    """Параметры обработчиков Loguru."""

    level: str = Field(default="INFO", description="Уровень логирования")
    format: str = Field(default=DEFAULT_FORMAT, description="Формат строки лога")
    rotation: str = Field(default="10 MB", description="Ротация лог-файла по размеру")
    retention: str = Field(default="7 days", description="Срок хранения лог-файлов")
    serialize: bool = Field(default=False, description="JSON вместо текста")
    enable_file_logging: bool = Field(default=True, description="Писать ли лог в файл")
    log_dir: str = Field(default="logs", description="Директория для лог-файлов")

    @classmethod
    def from_settings(cls, settings: AppSettings) -> "LogConfig":
        return cls(
            level=settings.LOG_LEVEL,
            serialize=settings.LOG_SERIALIZE,
            enable_file_logging=settings.LOG_TO_FILE,
            log_dir=settings.LOG_DIR,
        )


def _add_file_sink(service_logger: "Logger", config: LogConfig, service_name: str) -> None:
    try:
        os.makedirs(config.log_dir, exist_ok=True)
    except OSError as exc:
        service_logger.warning(
            f"Директория логов '{config.log_dir}' недоступна ({exc}), сервис '{service_name}' пишет только в stderr."
        )
        return

    # Дату в имени файла подставляет Loguru
    file_path = os.path.join(config.log_dir, f"{service_name.lower()}_{{time:YYYY-MM-DD}}.log")

    service_logger.add(
        file_path,
        level=config.level,
        format=config.format,
        rotation=config.rotation,
        retention=config.retention,
        serialize=config.serialize,
        encoding="utf-8",
    )


def setup_logger(
    service_name: str,
    log_config: LogConfig | None = None,
    log_level_override: str | None = None,
    file_logging_override: bool | None = None,
) -> "Logger":
    """
    Настраивает обработчики Loguru и возвращает логгер сервиса.

    Обработчики Loguru глобальны: повторный вызов заменяет их, а не добавляет новые.

    Args:
        service_name: Имя сервиса ("Engine", "SchedulerMain", "Alembic" ...).
        log_config: Параметры логирования. По умолчанию LogConfig().
        log_level_override: Уровень логирования поверх log_config.
        file_logging_override: Включение/выключение файла поверх log_config.

    Returns:
        Логгер с привязанным service_name.
    """
    config = log_config.model_copy() if log_config else LogConfig()
    config.level = (log_level_override or config.level).upper()

    if file_logging_override is not None:
        config.enable_file_logging = file_logging_override

    root_logger.remove()
    service_logger = root_logger.bind(service_name=service_name)

    service_logger.add(
        sys.stderr,
        level=config.level,
        format=config.format,
        colorize=True,
        serialize=config.serialize,
    )

    if config.enable_file_logging:
        _add_file_sink(service_logger, config, service_name)

    service_logger.debug(f"Loguru настроен для '{service_name}', уровень {config.level}.")
    return service_logger


__all__ = ["LogConfig", "setup_logger"]
