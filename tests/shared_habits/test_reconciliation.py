import asyncio
from datetime import date, timedelta

import pytest

from src.shared_habits.models import NotificationKind
from src.shared_habits.schemas import SharedHabitSchema, SharedHabitSchemaCreate
from src.shared_habits.services import ReconciliationSweep, SharedHabitService, reconcile_habit
from tests.conftest import ALICE, BOB, FixedClock, InMemoryHabitStore, RecordingNotifier

# Помечаем все тесты в модуле как асинхронные
pytestmark = pytest.mark.asyncio

DAY1 = date(2026, 10, 18)
DAY2 = DAY1 + timedelta(days=1)


async def test_reconcile_is_pure_and_breaks_missing_day(service: SharedHabitService, solo_habit: SharedHabitSchema):
    await service.record_completion(solo_habit.id, ALICE.id)
    habit = await service.get_habit(solo_habit.id, ALICE.id)

    outcome = reconcile_habit(habit, DAY2)

    assert outcome.streak_broken is True
    assert outcome.habit.streak.current == 0
    assert outcome.habit.stats.failed_days == 1
    assert [event.kind for event in outcome.events] == [NotificationKind.STREAK_BROKEN]
    assert outcome.events[0].payload["previous_streak"] == 1
    # Исходный агрегат не изменился
    assert habit.streak.current == 1
    assert habit.stats.failed_days == 0


async def test_reconcile_keeps_fully_completed_day(service: SharedHabitService, solo_habit: SharedHabitSchema):
    await service.record_completion(solo_habit.id, ALICE.id)
    habit = await service.get_habit(solo_habit.id, ALICE.id)

    outcome = reconcile_habit(habit, DAY1)

    assert outcome.streak_broken is False
    assert outcome.habit.streak.current == 1
    assert outcome.events == []


async def test_reconcile_respects_notify_on_break(service: SharedHabitService, solo_habit: SharedHabitSchema):
    await service.record_completion(solo_habit.id, ALICE.id)
    habit = await service.get_habit(solo_habit.id, ALICE.id)
    habit.notifications.notify_on_break = False

    outcome = reconcile_habit(habit, DAY2)

    assert outcome.streak_broken is True
    assert outcome.events == []


async def test_happy_path_scenario_with_sweep(
    service: SharedHabitService,
    pair_habit: SharedHabitSchema,
    clock: FixedClock,
    notifier: RecordingNotifier,
):
    await service.record_completion(pair_habit.id, ALICE.id)
    await service.record_completion(pair_habit.id, BOB.id)

    clock.advance(days=1)
    await service.record_completion(pair_habit.id, ALICE.id)

    info = await service.get_streak_info(pair_habit.id, ALICE.id)
    assert (info.streak.current, info.stats.total_days, info.stats.successful_days, info.stats.success_rate) == (
        1,
        2,
        1,
        50,
    )

    clock.advance(days=1)
    report = await ReconciliationSweep(service, clock=clock).run()

    assert report.day == DAY2
    assert report.processed == 1
    assert report.broken == 1

    info = await service.get_streak_info(pair_habit.id, ALICE.id)
    assert info.streak.current == 0
    assert info.stats.failed_days == 1
    assert info.streak.longest == 1

    broken = notifier.of_kind(NotificationKind.STREAK_BROKEN)
    assert len(broken) == 1
    assert sorted(broken[0][0]) == [ALICE.id, BOB.id]


async def test_sweep_twice_for_same_day_is_idempotent(
    service: SharedHabitService, solo_habit: SharedHabitSchema, store: InMemoryHabitStore
):
    await service.record_completion(solo_habit.id, ALICE.id)
    sweep = ReconciliationSweep(service)

    first = await sweep.run(day=DAY2)
    saves_after_first = store.save_calls
    second = await sweep.run(day=DAY2)

    info = await service.get_streak_info(solo_habit.id, ALICE.id)
    assert first.broken == 1
    assert second.broken == 0
    assert info.stats.failed_days == 1
    assert info.streak.current == 0
    # Повторный проход ничего не сохраняет
    assert store.save_calls == saves_after_first


async def test_sweep_isolates_failing_habit(service: SharedHabitService, store: InMemoryHabitStore):
    habits = [
        await service.create_habit(ALICE.id, SharedHabitSchemaCreate(title=f"Привычка {index}"))
        for index in range(3)
    ]
    for habit in habits:
        await service.record_completion(habit.id, ALICE.id)

    store.fail_load_for = {habits[1].id}
    report = await ReconciliationSweep(service).run(day=DAY2)

    assert report.failed == [habits[1].id]
    assert report.processed == 2
    assert report.broken == 2
    assert store.habits[habits[0].id].streak.current == 0
    assert store.habits[habits[1].id].streak.current == 1
    assert store.habits[habits[2].id].streak.current == 0


async def test_sweep_skips_inactive_habits(service: SharedHabitService, solo_habit: SharedHabitSchema):
    await service.record_completion(solo_habit.id, ALICE.id)
    await service.delete_habit(solo_habit.id, ALICE.id)

    report = await ReconciliationSweep(service).run(day=DAY2)

    assert report.processed == 0


async def test_sweep_stops_on_cancel_event(service: SharedHabitService):
    for index in range(2):
        habit = await service.create_habit(ALICE.id, SharedHabitSchemaCreate(title=f"Привычка {index}"))
        await service.record_completion(habit.id, ALICE.id)

    cancel_event = asyncio.Event()
    cancel_event.set()

    report = await ReconciliationSweep(service).run(day=DAY2, cancel_event=cancel_event)

    assert report.cancelled is True
    assert report.processed == 0


async def test_sweep_is_single_flight(service: SharedHabitService, solo_habit: SharedHabitSchema):
    await service.record_completion(solo_habit.id, ALICE.id)
    sweep = ReconciliationSweep(service)

    first, second = await asyncio.gather(sweep.run(day=DAY2), sweep.run(day=DAY2))

    assert first.skipped is False
    assert second.skipped is True
    assert first.broken == 1


async def test_repeated_sweep_after_new_completion_keeps_new_streak(
    service: SharedHabitService, solo_habit: SharedHabitSchema, clock: FixedClock
):
    await service.record_completion(solo_habit.id, ALICE.id)
    clock.advance(days=2)
    sweep = ReconciliationSweep(service, clock=clock)

    first = await sweep.run()
    await service.record_completion(solo_habit.id, ALICE.id)
    second = await sweep.run(day=DAY2)

    info = await service.get_streak_info(solo_habit.id, ALICE.id)
    assert (first.broken, second.broken) == (1, 0)
    assert info.streak.current == 1
    assert info.streak.consecutive_days == [DAY2 + timedelta(days=1)]
    assert info.streak.last_reconciled_day == DAY2
    assert info.stats.failed_days == 1


async def test_late_sweep_keeps_days_counted_after_missed_day(
    service: SharedHabitService, solo_habit: SharedHabitSchema, clock: FixedClock, notifier: RecordingNotifier
):
    await service.record_completion(solo_habit.id, ALICE.id)
    clock.advance(days=2)
    await service.record_completion(solo_habit.id, ALICE.id)

    report = await ReconciliationSweep(service, clock=clock).run(day=DAY2)

    info = await service.get_streak_info(solo_habit.id, ALICE.id)
    assert report.broken == 1
    assert info.streak.current == 1
    assert info.streak.longest == 2
    assert info.streak.consecutive_days == [DAY2 + timedelta(days=1)]
    assert info.stats.failed_days == 1
    assert notifier.of_kind(NotificationKind.STREAK_BROKEN)[0][2]["previous_streak"] == 1


async def test_sweep_ignores_day_before_last_reconciled(service: SharedHabitService, solo_habit: SharedHabitSchema):
    await service.record_completion(solo_habit.id, ALICE.id)
    sweep = ReconciliationSweep(service)

    await sweep.run(day=DAY2)
    report = await sweep.run(day=DAY1 - timedelta(days=1))

    info = await service.get_streak_info(solo_habit.id, ALICE.id)
    assert report.broken == 0
    assert info.streak.last_reconciled_day == DAY2
    assert info.stats.failed_days == 1
