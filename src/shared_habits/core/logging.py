"""Логгер движка совместных привычек."""

from src.core_shared.logging_setup import LogConfig, setup_logger

from .config import settings

engine_log = setup_logger(service_name="Engine", log_config=LogConfig.from_settings(settings))
