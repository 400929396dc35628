"""Модуль вспомогательных утилит для работы с датами/таймзонами (ключ дня)."""

from datetime import date, datetime, timedelta, timezone, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from src.shared_habits.core.config import settings
from src.shared_habits.core.logging import engine_log as log


def resolve_timezone(tz_name: str | None = None) -> tzinfo:
    """
    Возвращает часовой пояс, в котором вычисляется календарный день.

    Если часовой пояс некорректен, используется UTC.

    Args:
        tz_name (str | None): Имя часового пояса IANA. Если None, берется из настроек.

    Returns:
        tzinfo: Объект часового пояса.
    """
    tz_name = tz_name or settings.DAY_BOUNDARY_TIMEZONE

    try:
        return ZoneInfo(tz_name)

    except (ZoneInfoNotFoundError, ValueError):
        # Неизвестный часовой пояс: откатываемся к UTC
        log.warning(f"Некорректный часовой пояс '{tz_name}'. Используется UTC по умолчанию.")
        return timezone.utc


def to_day_key(moment: datetime | date, tz_name: str | None = None) -> date:
    """
    Приводит момент времени к ключу дня: календарной дате без времени.

    Наивные datetime считаются временем в UTC.
    Объект date возвращается как есть.

    Args:
        moment (datetime | date): Момент времени или уже готовая дата.
        tz_name (str | None): Часовой пояс границы дня (по умолчанию из настроек).

    Returns:
        date: Ключ дня.
    """
    if not isinstance(moment, datetime):
        return moment

    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)

    return moment.astimezone(resolve_timezone(tz_name)).date()


def today_key(now: datetime, tz_name: str | None = None) -> date:
    """Ключ дня "сегодня" для момента `now`."""
    return to_day_key(now, tz_name)


def yesterday_key(now: datetime, tz_name: str | None = None) -> date:
    """Ключ дня "вчера" для момента `now` (используется ночной сверкой)."""
    return to_day_key(now, tz_name) - timedelta(days=1)
