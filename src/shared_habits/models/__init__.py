from .base import Base
from .day_record import SharedHabitCompletion, SharedHabitDayRecord
from .enums import DayState, HabitCategory, NotificationKind, ParticipantStatus
from .participant import SharedHabitParticipant
from .shared_habit import SharedHabit
from .user import User

__all__ = [
    "Base",
    "User",
    "SharedHabit",
    "SharedHabitParticipant",
    "SharedHabitDayRecord",
    "SharedHabitCompletion",
    "DayState",
    "HabitCategory",
    "NotificationKind",
    "ParticipantStatus",
]
