from datetime import date, datetime, timedelta, timezone

import pytest

from src.shared_habits.core.exceptions import AlreadyCompletedTodayError, NotParticipantError
from src.shared_habits.models import DayState, NotificationKind, ParticipantStatus
from src.shared_habits.schemas import IdentitySchema, ParticipantSchema, SharedHabitSchema
from src.shared_habits.services import StreakEngine, calculate_success_rate

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)
DAY1 = date(2026, 10, 18)
DAY2 = DAY1 + timedelta(days=1)

ALICE = IdentitySchema(id=1, email="alice@example.com", username="alice")
BOB = IdentitySchema(id=2, email="bob@example.com", username="bob")
CAROL = IdentitySchema(id=3, email="carol@example.com", username=None)


def accepted(identity: IdentitySchema) -> ParticipantSchema:
    return ParticipantSchema(
        email=identity.email,
        user_id=identity.id,
        status=ParticipantStatus.ACCEPTED,
        invited_at=NOW,
        joined_at=NOW,
    )


def make_engine(*members: IdentitySchema) -> StreakEngine:
    habit = SharedHabitSchema(
        id=7,
        title="Бег",
        created_by=members[0].id,
        participants=[accepted(member) for member in members],
    )
    return StreakEngine(habit, points_per_day=20)


@pytest.mark.parametrize(
    ("successful", "total", "expected"),
    [(0, 0, 0), (1, 1, 100), (1, 2, 50), (1, 3, 33), (2, 3, 67), (1, 8, 13), (99, 200, 50)],
)
def test_success_rate_rounds_half_up(successful: int, total: int, expected: int):
    assert calculate_success_rate(successful, total) == expected


def test_full_happy_path_for_two_participants():
    engine = make_engine(ALICE, BOB)
    habit = engine.habit

    engine.apply_completion(DAY1, ALICE, NOW)
    step = engine.apply_completion(DAY1, BOB, NOW)

    assert step.counted is True
    assert step.points_earned == 20
    assert habit.streak.current == 1
    assert habit.streak.longest == 1
    assert habit.stats.successful_days == 1
    assert habit.stats.total_days == 1
    assert habit.stats.success_rate == 100
    assert habit.stats.total_points == 20
    assert habit.streak.consecutive_days == [DAY1]
    assert habit.streak.last_completed_date == DAY1

    engine.apply_completion(DAY2, ALICE, NOW + timedelta(days=1))

    assert habit.streak.current == 1
    assert habit.stats.total_days == 2
    assert habit.stats.successful_days == 1
    assert habit.stats.success_rate == 50


def test_partial_completion_emits_pending_reminder_naming_completer():
    engine = make_engine(ALICE, BOB, CAROL)

    step = engine.apply_completion(DAY1, CAROL, NOW)

    assert step.counted is False
    assert len(step.events) == 1
    event = step.events[0]
    assert event.kind == NotificationKind.PENDING_REMINDER
    assert event.recipient_ids == [ALICE.id, BOB.id]
    assert event.payload["completed_by"] == "carol"


def test_counted_day_emits_milestone_to_all_accepted():
    engine = make_engine(ALICE, BOB)
    engine.apply_completion(DAY1, ALICE, NOW)

    step = engine.apply_completion(DAY1, BOB, NOW)

    assert [event.kind for event in step.events] == [NotificationKind.STREAK_MILESTONE]
    assert step.events[0].recipient_ids == [ALICE.id, BOB.id]
    assert step.events[0].payload["streak"] == 1


def test_milestone_respects_notification_settings():
    engine = make_engine(ALICE)
    engine.habit.notifications.notify_on_streak = False

    step = engine.apply_completion(DAY1, ALICE, NOW)

    assert step.counted is True
    assert step.events == []


def test_duplicate_completion_counts_day_once():
    engine = make_engine(ALICE, BOB)
    engine.apply_completion(DAY1, ALICE, NOW)
    engine.apply_completion(DAY1, BOB, NOW)
    snapshot = engine.habit.model_copy(deep=True)

    for actor in (ALICE, BOB, ALICE):
        with pytest.raises(AlreadyCompletedTodayError):
            engine.apply_completion(DAY1, actor, NOW)

    assert engine.habit == snapshot
    assert engine.habit.stats.total_days == 1


def test_undo_after_full_completion_restores_previous_values():
    engine = make_engine(ALICE, BOB)
    habit = engine.habit
    engine.apply_completion(DAY1, ALICE, NOW)
    engine.apply_completion(DAY1, BOB, NOW)
    engine.apply_completion(DAY2, ALICE, NOW)
    before = (habit.streak.current, habit.stats.successful_days, list(habit.streak.consecutive_days))

    engine.apply_completion(DAY2, BOB, NOW)
    assert habit.streak.current == 2

    outcome = engine.apply_undo(DAY2, BOB.id)

    assert outcome.uncounted is True
    assert (habit.streak.current, habit.stats.successful_days, habit.streak.consecutive_days) == before
    assert habit.streak.last_completed_date == DAY1
    assert habit.streak.longest == 2
    assert habit.stats.total_points == 20
    assert engine.ledger.get_record(DAY2).state == DayState.PARTIALLY_COMPLETE


def test_second_undo_does_not_reverse_twice():
    engine = make_engine(ALICE, BOB)
    habit = engine.habit
    engine.apply_completion(DAY1, ALICE, NOW)
    engine.apply_completion(DAY1, BOB, NOW)

    engine.apply_undo(DAY1, BOB.id)
    engine.apply_undo(DAY1, ALICE.id)

    assert habit.streak.current == 0
    assert habit.stats.successful_days == 0
    assert habit.stats.total_days == 0
    assert habit.stats.success_rate == 0
    assert habit.day_records == []


def test_solo_undo_removes_day_record():
    engine = make_engine(ALICE)
    engine.apply_completion(DAY1, ALICE, NOW)
    assert engine.habit.streak.current == 1

    engine.apply_undo(DAY1, ALICE.id)

    assert engine.habit.streak.current == 0
    assert engine.habit.stats.total_days == 0
    assert engine.habit.stats.successful_days == 0
    assert engine.ledger.get_record(DAY1) is None
    assert engine.habit.streak.last_completed_date is None


def test_longest_never_decreases_and_bounds_current():
    engine = make_engine(ALICE)
    habit = engine.habit
    observed_longest = 0

    for offset in range(3):
        engine.apply_completion(DAY1 + timedelta(days=offset), ALICE, NOW)
        assert habit.streak.longest >= habit.streak.current
        assert habit.streak.longest >= observed_longest
        observed_longest = habit.streak.longest

    engine.apply_undo(DAY1 + timedelta(days=2), ALICE.id)
    engine.break_streak()

    assert habit.streak.current == 0
    assert habit.streak.longest == observed_longest == 3


def test_new_participant_does_not_unflag_completed_day():
    engine = make_engine(ALICE)
    engine.apply_completion(DAY1, ALICE, NOW)
    stats_before = engine.habit.stats.model_copy()

    engine.roster.invite(BOB.email, BOB, NOW)
    engine.roster.accept(BOB, NOW)

    assert engine.ledger.get_record(DAY1).all_completed is True
    assert engine.habit.stats == stats_before


def test_non_participant_cannot_complete():
    engine = make_engine(ALICE)

    with pytest.raises(NotParticipantError):
        engine.apply_completion(DAY1, BOB, NOW)


def test_break_streak_is_idempotent():
    engine = make_engine(ALICE)
    engine.apply_completion(DAY1, ALICE, NOW)

    assert engine.break_streak() is True
    assert engine.break_streak() is False
    assert engine.habit.stats.failed_days == 1
    assert engine.habit.streak.consecutive_days == []


def test_break_streak_keeps_days_after_missed_day():
    engine = make_engine(ALICE)
    engine.apply_completion(DAY1, ALICE, NOW)
    engine.apply_completion(DAY1 + timedelta(days=2), ALICE, NOW)

    assert engine.break_streak(DAY1 + timedelta(days=1)) is True
    assert engine.habit.streak.current == 1
    assert engine.habit.streak.consecutive_days == [DAY1 + timedelta(days=2)]
    assert engine.habit.stats.failed_days == 1

    # Серия после пропуска уже не содержит пропущенного дня
    assert engine.break_streak(DAY1 + timedelta(days=1)) is False
    assert engine.habit.stats.failed_days == 1
