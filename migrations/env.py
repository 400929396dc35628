import logging

from alembic import context
from sqlalchemy import engine_from_config, pool

from src.core_shared.logging_setup import LogConfig, setup_logger
from src.shared_habits.core.config import settings
from src.shared_habits.models import Base

migrations_log = setup_logger("Alembic", log_config=LogConfig.from_settings(settings), file_logging_override=False)


class LoguruBridge(logging.Handler):
    """Отправляет записи стандартного logging (Alembic, SQLAlchemy) в Loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = migrations_log.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Пропускаем кадры модуля logging
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame, depth = frame.f_back, depth + 1

        migrations_log.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


logging.basicConfig(handlers=[LoguruBridge()], level=logging.INFO, force=True)
logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

target_metadata = Base.metadata


def resolve_database_url() -> str:
    """URL из alembic.ini (или выставленный тестами) важнее настроек движка."""
    return context.config.get_main_option("sqlalchemy.url") or settings.DATABASE_URL


def run_offline(url: str) -> None:
    context.configure(url=url, target_metadata=target_metadata, literal_binds=True, dialect_opts={"paramstyle": "named"})

    with context.begin_transaction():
        context.run_migrations()


def run_online(url: str) -> None:
    engine_options = context.config.get_section(context.config.config_ini_section, {})
    engine_options["sqlalchemy.url"] = url
    engine = engine_from_config(engine_options, prefix="sqlalchemy.", poolclass=pool.NullPool)

    with engine.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata)

        with context.begin_transaction():
            context.run_migrations()


database_url = resolve_database_url()
migrations_log.info(f"Миграции для {database_url.rsplit('@', 1)[-1]} (offline={context.is_offline_mode()})")

if context.is_offline_mode():
    run_offline(database_url)
else:
    run_online(database_url)
