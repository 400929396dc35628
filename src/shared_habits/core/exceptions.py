"""
Иерархия исключений движка совместных привычек.

Все ожидаемые ошибки бизнес-логики наследуются от AppException и несут
HTTP-статус, который использует внешний HTTP-слой при формировании ответа:
404 для ненайденных объектов, 403 для запрещенных действий, 400 для конфликтов состояния.
"""

from http import HTTPStatus
from typing import Any


class AppException(Exception):
    """
    Базовое исключение приложения.

    Attributes:
        message (str): Человекочитаемое описание ошибки.
        error_type (str): Машиночитаемый код ошибки.
        status_code (int): HTTP-статус для внешнего слоя.
        loc (list[str] | None): Место возникновения ошибки (поле запроса и т.п.).
    """

    status_code: int = HTTPStatus.INTERNAL_SERVER_ERROR
    default_error_type: str = "internal_error"
    default_message: str = "Внутренняя ошибка сервера."

    def __init__(
        self,
        message: str | None = None,
        error_type: str | None = None,
        loc: list[str] | None = None,
    ):
        self.message = message or self.default_message
        self.error_type = error_type or self.default_error_type
        self.loc = loc
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Возвращает тело ошибки в формате, который отдает HTTP-слой."""
        detail: dict[str, Any] = {"type": self.error_type, "msg": self.message}

        if self.loc:
            detail["loc"] = self.loc

        return {"status_code": int(self.status_code), "detail": [detail]}


class NotFoundException(AppException):
    """Объект не найден (404)."""

    status_code = HTTPStatus.NOT_FOUND
    default_error_type = "not_found"
    default_message = "Объект не найден."


class ForbiddenException(AppException):
    """Действие запрещено (403)."""

    status_code = HTTPStatus.FORBIDDEN
    default_error_type = "forbidden"
    default_message = "Недостаточно прав для выполнения действия."


class BadRequestException(AppException):
    """Некорректный запрос или конфликт состояния (400)."""

    status_code = HTTPStatus.BAD_REQUEST
    default_error_type = "bad_request"
    default_message = "Некорректный запрос."


class ConflictException(AppException):
    """Конкурентное изменение ресурса (409)."""

    status_code = HTTPStatus.CONFLICT
    default_error_type = "conflict"
    default_message = "Ресурс был изменен другим запросом."


# --- Ошибки предметной области ---


class HabitNotFoundError(NotFoundException):
    default_error_type = "habit_not_found"
    default_message = "Совместная привычка не найдена."


class IdentityNotFoundError(NotFoundException):
    default_error_type = "identity_not_found"
    default_message = "Пользователь не найден."


class NotParticipantError(ForbiddenException):
    default_error_type = "not_participant"
    default_message = "Вы не являетесь участником этой привычки."


class NotOwnerError(ForbiddenException):
    default_error_type = "habit_forbidden"
    default_message = "Только создатель может удалить привычку."


class OwnerCannotLeaveError(ForbiddenException):
    default_error_type = "owner_cannot_leave"
    default_message = "Создатель не может покинуть привычку, ее можно только удалить."


class AlreadyParticipantError(BadRequestException):
    default_error_type = "already_participant"
    default_message = "Пользователь уже является участником привычки."


class NoPendingInvitationError(BadRequestException):
    default_error_type = "no_pending_invitation"
    default_message = "Для вашего email нет ожидающего приглашения."


class AlreadyAcceptedError(NoPendingInvitationError):
    """Приглашение уже принято: код ошибки совпадает с NoPendingInvitationError."""

    default_message = "Приглашение уже принято."


class AlreadyCompletedTodayError(BadRequestException):
    default_error_type = "already_completed_today"
    default_message = "Вы уже выполнили эту привычку сегодня."


class NoCompletionFoundError(BadRequestException):
    default_error_type = "no_completion_found"
    default_message = "Нет выполнения, которое можно отменить."


class HabitNotActiveError(BadRequestException):
    default_error_type = "habit_not_active"
    default_message = "Привычка не активна (удалена)."


class ConcurrencyConflictError(ConflictException):
    default_error_type = "habit_version_conflict"
    default_message = "Привычка была изменена параллельным запросом."
