from datetime import date, datetime, timedelta, timezone

from src.shared_habits.utils.date_utils import resolve_timezone, to_day_key, today_key, yesterday_key


def test_naive_datetime_is_treated_as_utc():
    assert to_day_key(datetime(2026, 10, 18, 23, 59, 59)) == date(2026, 10, 18)


def test_day_key_strips_time_in_configured_timezone():
    moment = datetime(2026, 10, 18, 22, 30, tzinfo=timezone.utc)

    assert to_day_key(moment, "UTC") == date(2026, 10, 18)
    assert to_day_key(moment.astimezone(timezone(timedelta(hours=5))), "UTC") == date(2026, 10, 18)


def test_date_is_returned_as_is():
    assert to_day_key(date(2026, 1, 1), "Asia/Tokyo") == date(2026, 1, 1)


def test_unknown_timezone_falls_back_to_utc():
    assert resolve_timezone("Mars/Olympus") is timezone.utc


def test_today_and_yesterday():
    now = datetime(2026, 10, 18, 0, 1, tzinfo=timezone.utc)

    assert today_key(now, "UTC") == date(2026, 10, 18)
    assert yesterday_key(now, "UTC") == date(2026, 10, 17)
