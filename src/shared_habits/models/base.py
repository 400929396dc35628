"""Декларативная база моделей хранилища привычек."""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, MetaData, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# Имена ограничений должны быть детерминированы: на них ссылаются миграции
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class TimestampMixin:
    """Служебные отметки времени, которые проставляет сама БД."""

    created_at: Mapped[datetime] = mapped_column(
        server_default=func.now(),
        comment="Момент вставки строки",
    )
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(),
        onupdate=func.now(),
        comment="Момент последнего изменения строки",
    )


class Base(TimestampMixin, DeclarativeBase):
    """
    Общий предок всех таблиц: суррогатный ключ `id`, отметки времени и
    соглашение об именовании ограничений.

    Все `Mapped[datetime]` хранятся с часовым поясом, `Mapped[list[Any]]` хранится как JSON.
    """

    metadata = MetaData(naming_convention=NAMING_CONVENTION)
    type_annotation_map = {
        datetime: DateTime(timezone=True),
        list[Any]: JSON,
    }

    id: Mapped[int] = mapped_column(primary_key=True, index=True)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} id={self.id!r}>"
