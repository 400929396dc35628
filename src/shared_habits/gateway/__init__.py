from .celery_notifier import CeleryNotifier
from .collaborators import CollaboratorGateway, HabitStore, IdentityDirectory, Notifier
from .sqlalchemy_store import SqlAlchemyHabitStore, SqlAlchemyIdentityDirectory, habit_to_schema

__all__ = [
    "CeleryNotifier",
    "CollaboratorGateway",
    "HabitStore",
    "IdentityDirectory",
    "Notifier",
    "SqlAlchemyHabitStore",
    "SqlAlchemyIdentityDirectory",
    "habit_to_schema",
]
