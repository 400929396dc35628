"""Движок совместного стрика: переводит изменения журнала в стрик и статистику."""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal

from src.shared_habits.core.config import settings
from src.shared_habits.core.logging import engine_log as log
from src.shared_habits.models import NotificationKind
from src.shared_habits.schemas import IdentitySchema, NotificationEventSchema, SharedHabitSchema

from .completion_ledger import CompletionLedger, UndoOutcome
from .participant_roster import ParticipantRoster


def calculate_success_rate(successful_days: int, total_days: int) -> int:
    """
    Процент успешных дней с округлением половины вверх (49.5 -> 50).

    Returns:
        int: Значение от 0 до 100, либо 0 при total_days == 0.
    """
    if total_days <= 0:
        return 0

    rate = Decimal(successful_days) * 100 / Decimal(total_days)
    return min(int(rate.quantize(Decimal("1"), rounding=ROUND_HALF_UP)), 100)


@dataclass
class CompletionStep:
    """Что произошло с привычкой в результате одной отметки."""

    day: date
    first_of_day: bool
    counted: bool
    points_earned: int = 0
    events: list[NotificationEventSchema] = field(default_factory=list)


class StreakEngine:
    """
    Конечный автомат стрика одной привычки.

    Счетчики - неотрицательные целые, уменьшение ограничено нулем.
    День засчитывается в стрик и статистику ровно один раз: это гарантирует
    переход записи дня в FULLY_COMPLETE, который происходит только однажды.
    """

    def __init__(self, habit: SharedHabitSchema, points_per_day: int | None = None):
        self.habit = habit
        self.roster = ParticipantRoster(habit)
        self.ledger = CompletionLedger(habit)
        self.points_per_day = settings.POINTS_PER_SUCCESSFUL_DAY if points_per_day is None else points_per_day

    def _recalculate_success_rate(self) -> None:
        stats = self.habit.stats
        stats.success_rate = calculate_success_rate(stats.successful_days, stats.total_days)

    def _event(self, kind: NotificationKind, recipient_ids: set[int], **payload) -> NotificationEventSchema:
        return NotificationEventSchema(
            kind=kind,
            habit_id=self.habit.id,
            recipient_ids=sorted(recipient_ids),
            payload={"habit_title": self.habit.title, **payload},
        )

    def _count_day(self, day: date) -> None:
        streak, stats = self.habit.streak, self.habit.stats

        stats.successful_days += 1
        stats.total_points += self.points_per_day

        streak.current += 1
        streak.longest = max(streak.longest, streak.current)
        streak.last_completed_date = day

        if day not in streak.consecutive_days:
            streak.consecutive_days.append(day)

    def apply_completion(self, day: date, actor: IdentitySchema, now: datetime) -> CompletionStep:
        """
        Записывает отметку участника и обновляет стрик.

        Args:
            day (date): Ключ дня.
            actor (IdentitySchema): Отметившийся участник (должен быть принятым).
            now (datetime): Время отметки.

        Returns:
            CompletionStep: Итог отметки вместе с событиями для уведомлений.

        Raises:
            NotParticipantError: Если пользователь не принятый участник.
            AlreadyCompletedTodayError: Если пользователь уже отметился за этот день.
        """
        self.roster.require_accepted(actor.id)

        first_of_day = self.ledger.record_completion(day, actor.id, now)

        if first_of_day:
            self.habit.stats.total_days += 1

        accepted_ids = self.roster.accepted_ids()
        counted = self.ledger.settle_after_completion(day, accepted_ids)
        step = CompletionStep(day=day, first_of_day=first_of_day, counted=counted)

        if counted:
            self._count_day(day)
            step.points_earned = self.points_per_day

            log.info(
                f"Привычка ID {self.habit.id}: день {day} выполнен всеми участниками, "
                f"стрик {self.habit.streak.current} (рекорд {self.habit.streak.longest})."
            )

            if self.habit.notifications.notify_on_streak:
                step.events.append(
                    self._event(
                        NotificationKind.STREAK_MILESTONE,
                        accepted_ids,
                        day=day.isoformat(),
                        streak=self.habit.streak.current,
                        completed_by=actor.display_name,
                    )
                )

        else:
            record = self.ledger.get_record(day)
            pending_ids = accepted_ids - record.completed_user_ids() if record else set()

            if pending_ids:
                step.events.append(
                    self._event(
                        NotificationKind.PENDING_REMINDER,
                        pending_ids,
                        day=day.isoformat(),
                        completed_by=actor.display_name,
                    )
                )

        self._recalculate_success_rate()
        return step

    def apply_undo(self, day: date, user_id: int) -> UndoOutcome:
        """
        Отменяет отметку участника и откатывает стрик, если день перестал быть засчитанным.

        Откат симметричен засчитыванию и не выполняется повторно:
        его охраняет состояние записи дня.

        Raises:
            NotParticipantError: Если пользователь не принятый участник.
            NoCompletionFoundError: Если отменять нечего.
        """
        self.roster.require_accepted(user_id)

        outcome = self.ledger.undo_completion(day, user_id)
        streak, stats = self.habit.streak, self.habit.stats

        if outcome.uncounted:
            stats.successful_days = max(stats.successful_days - 1, 0)
            stats.total_points = max(stats.total_points - self.points_per_day, 0)
            streak.current = max(streak.current - 1, 0)
            streak.consecutive_days = [item for item in streak.consecutive_days if item != day]
            streak.last_completed_date = self.ledger.latest_counted_day()

            log.info(f"Привычка ID {self.habit.id}: засчитанный день {day} отменен, стрик {streak.current}.")

        if outcome.record_deleted:
            stats.total_days = max(stats.total_days - 1, 0)

        self._recalculate_success_rate()
        return outcome

    def break_streak(self, missed_day: date | None = None) -> bool:
        """
        Прерывает стрик на пропущенном дне (путь ночной сверки).

        Засчитанные дни после `missed_day` (сверка запущена с опозданием) образуют
        новую серию и сохраняются. Без `missed_day` стрик обнуляется целиком.

        Returns:
            bool: True, если серия до пропущенного дня была ненулевой и прервана.
        """
        streak, stats = self.habit.streak, self.habit.stats
        later_days = [item for item in streak.consecutive_days if missed_day is not None and item > missed_day]

        if streak.current <= len(later_days):
            return False

        log.info(
            f"Привычка ID {self.habit.id}: стрик {streak.current} прерван на {missed_day}, "
            f"в новой серии {len(later_days)} дн."
        )

        streak.current = len(later_days)
        streak.consecutive_days = later_days
        stats.failed_days += 1

        self._recalculate_success_rate()
        return True

    def broken_event(self, day: date, previous_streak: int) -> NotificationEventSchema:
        return self._event(
            NotificationKind.STREAK_BROKEN,
            self.roster.accepted_ids(),
            day=day.isoformat(),
            previous_streak=previous_streak,
        )
