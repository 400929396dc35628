from datetime import date, datetime, timezone

import pytest

from src.shared_habits.core.exceptions import AlreadyCompletedTodayError, NoCompletionFoundError
from src.shared_habits.models import DayState
from src.shared_habits.schemas import SharedHabitSchema
from src.shared_habits.services import CompletionLedger, state_after_completion, state_after_undo

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)
DAY = date(2026, 10, 18)


def make_ledger() -> CompletionLedger:
    return CompletionLedger(SharedHabitSchema(id=1, title="Медитация", created_by=1))


def test_state_after_completion_transitions():
    assert state_after_completion(DayState.EMPTY, {1}, {1, 2}) == DayState.PARTIALLY_COMPLETE
    assert state_after_completion(DayState.PARTIALLY_COMPLETE, {1, 2}, {1, 2}) == DayState.FULLY_COMPLETE
    # Защелка: новый участник не делает засчитанный день неполным
    assert state_after_completion(DayState.FULLY_COMPLETE, {1, 2}, {1, 2, 3}) == DayState.FULLY_COMPLETE


def test_state_after_undo_transitions():
    assert state_after_undo({1}) == DayState.PARTIALLY_COMPLETE
    assert state_after_undo(set()) == DayState.EMPTY


def test_undo_of_counted_day_by_one_of_two_uncounts_it():
    ledger = make_ledger()
    ledger.record_completion(DAY, 1, NOW)
    ledger.record_completion(DAY, 2, NOW)
    ledger.settle_after_completion(DAY, {1, 2})

    outcome = ledger.undo_completion(DAY, 2)

    assert outcome.uncounted
    assert not outcome.record_deleted
    assert ledger.get_record(DAY).state == DayState.PARTIALLY_COMPLETE


def test_first_completion_creates_record():
    ledger = make_ledger()

    assert ledger.record_completion(DAY, 1, NOW) is True
    assert ledger.record_completion(DAY, 2, NOW) is False
    assert ledger.get_record(DAY).completed_user_ids() == {1, 2}
    assert len(ledger.habit.day_records) == 1


def test_duplicate_completion_rejected():
    ledger = make_ledger()
    ledger.record_completion(DAY, 1, NOW)

    with pytest.raises(AlreadyCompletedTodayError):
        ledger.record_completion(DAY, 1, NOW)

    assert len(ledger.get_record(DAY).completed_by) == 1


def test_settle_reports_transition_only_once():
    ledger = make_ledger()
    ledger.record_completion(DAY, 1, NOW)

    assert ledger.settle_after_completion(DAY, {1}) is True
    assert ledger.get_record(DAY).state == DayState.FULLY_COMPLETE
    assert ledger.settle_after_completion(DAY, {1}) is False


def test_undo_last_mark_deletes_record():
    ledger = make_ledger()
    ledger.record_completion(DAY, 1, NOW)
    ledger.settle_after_completion(DAY, {1})

    outcome = ledger.undo_completion(DAY, 1)

    assert outcome.record_deleted
    assert outcome.uncounted
    assert ledger.get_record(DAY) is None


def test_undo_without_mark_fails():
    ledger = make_ledger()

    with pytest.raises(NoCompletionFoundError):
        ledger.undo_completion(DAY, 1)

    ledger.record_completion(DAY, 1, NOW)

    with pytest.raises(NoCompletionFoundError):
        ledger.undo_completion(DAY, 2)


def test_is_all_completed_uses_set_inclusion():
    ledger = make_ledger()
    ledger.record_completion(DAY, 1, NOW)

    assert ledger.is_all_completed(DAY, {1, 2}) is False

    ledger.record_completion(DAY, 2, NOW)

    assert ledger.is_all_completed(DAY, {1, 2}) is True
    assert ledger.is_all_completed(date(2026, 10, 17), {1, 2}) is False


def test_history_is_sorted_and_filtered():
    ledger = make_ledger()
    for day in (date(2026, 10, 18), date(2026, 10, 15), date(2026, 10, 16)):
        ledger.record_completion(day, 1, NOW)

    assert [record.day for record in ledger.history()] == [
        date(2026, 10, 15),
        date(2026, 10, 16),
        date(2026, 10, 18),
    ]
    assert [record.day for record in ledger.history(start=date(2026, 10, 16), end=date(2026, 10, 17))] == [
        date(2026, 10, 16)
    ]
