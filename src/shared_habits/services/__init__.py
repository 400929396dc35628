from .completion_ledger import CompletionLedger, UndoOutcome, state_after_completion, state_after_undo
from .participant_roster import ParticipantRoster, normalize_email
from .reconciliation import ReconciliationSweep, reconcile_habit
from .shared_habit_service import Mutation, SharedHabitService
from .streak_engine import CompletionStep, StreakEngine, calculate_success_rate

__all__ = [
    "CompletionLedger",
    "CompletionStep",
    "Mutation",
    "ParticipantRoster",
    "ReconciliationSweep",
    "SharedHabitService",
    "StreakEngine",
    "UndoOutcome",
    "calculate_success_rate",
    "normalize_email",
    "reconcile_habit",
    "state_after_completion",
    "state_after_undo",
]
