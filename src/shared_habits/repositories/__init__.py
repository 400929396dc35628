from .base_repository import BaseRepository
from .shared_habit_repository import SharedHabitRepository
from .user_repository import UserRepository

__all__ = [
    "BaseRepository",
    "SharedHabitRepository",
    "UserRepository",
]
