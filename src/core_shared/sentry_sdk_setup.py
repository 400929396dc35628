"""Подключение Sentry для планировщика и воркера."""

from logging import ERROR, INFO

from sentry_sdk import init as sentry_init
from sentry_sdk.integrations.celery import CeleryIntegration
from sentry_sdk.integrations.loguru import LoguruIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

from .config import AppSettings
from .logging_setup import LogConfig, setup_logger


def setup_sentry(settings: AppSettings, service_name: str) -> bool:
    """
    Инициализирует Sentry SDK, если задан SENTRY_DSN.

    Ошибки из логов Loguru уровня ERROR и выше уходят в Sentry как события,
    записи уровня INFO прикрепляются к ним как breadcrumbs.

    Args:
        settings (AppSettings): Настройки сервиса.
        service_name (str): Имя сервиса (server_name в Sentry).

    Returns:
        bool: True, если SDK инициализирован.
    """
    sentry_log = setup_logger(service_name=f"{service_name}Sentry", log_config=LogConfig.from_settings(settings))

    if not settings.SENTRY_DSN:
        sentry_log.info("SENTRY_DSN не задан, Sentry отключен.")
        return False

    traces_sample_rate = settings.SENTRY_TRACES_SAMPLE_RATE

    if traces_sample_rate is None:
        traces_sample_rate = 0.1 if settings.PRODUCTION else 1.0

    sentry_log.info(
        f"Инициализация Sentry: DSN ***{settings.SENTRY_DSN[-6:]}, окружение {settings.ENVIRONMENT}, "
        f"сервис {service_name}, доля трассировок {traces_sample_rate}."
    )

    try:
        sentry_init(
            dsn=settings.SENTRY_DSN,
            integrations=[
                SqlalchemyIntegration(),
                CeleryIntegration(),
                LoguruIntegration(level=INFO, event_level=ERROR),
            ],
            environment=settings.ENVIRONMENT,
            traces_sample_rate=traces_sample_rate,
            release=f"{settings.PROJECT_NAME}@{settings.API_VERSION}",
            server_name=service_name,
        )
    except Exception as exc:
        sentry_log.exception(f"Sentry не инициализирован: {exc}")
        return False

    sentry_log.info("Sentry инициализирован.")
    return True
