"""Модель SQLAlchemy для User (Пользователь, внешнее хранилище идентичностей)."""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class User(Base):
    """
    Представляет пользователя, который может участвовать в совместных привычках.

    Движок только читает эту таблицу: регистрация и аутентификация живут вне его.

    Attributes:
        id: Первичный ключ, внутренний идентификатор пользователя (унаследован от Base).
        email: Уникальный email пользователя (нормализованный, в нижнем регистре).
        username: Отображаемое имя пользователя (может быть None).
        is_active: Флаг, активен ли пользователь в системе.
    """

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    username: Mapped[str | None] = mapped_column(String(100))
    is_active: Mapped[bool] = mapped_column(default=True, nullable=False)
