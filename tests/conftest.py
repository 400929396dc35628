import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any, AsyncGenerator, Sequence

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from src.shared_habits.core.config import settings
from src.shared_habits.core.exceptions import ConcurrencyConflictError, HabitNotFoundError
from src.shared_habits.gateway import CollaboratorGateway
from src.shared_habits.models import Base, NotificationKind
from src.shared_habits.schemas import IdentitySchema, SharedHabitSchema, SharedHabitSchemaCreate
from src.shared_habits.services import SharedHabitService

# In-memory SQLite для тестов SQL-хранилища
TEST_DATABASE_URL = "sqlite+aiosqlite://"

ALICE = IdentitySchema(id=1, email="alice@example.com", username="alice")
BOB = IdentitySchema(id=2, email="bob@example.com", username="bob")
CAROL = IdentitySchema(id=3, email="carol@example.com", username=None)
DAVE = IdentitySchema(id=4, email="dave@example.com", username="dave")


# --- ФИКСТУРА БЕЗОПАСНОСТИ ---


@pytest.fixture(scope="session", autouse=True)
def verify_test_environment():
    """
    Проверяет, что тесты запускаются с корректными настройками окружения.

    Эта фикстура выполняется автоматически перед началом тестовой сессии.
    """
    assert settings.DEVELOPMENT is True, (
        "❌ ОШИБКА КОНФИГУРАЦИИ: Тесты должны запускаться в режиме разработки/тестирования (DEVELOPMENT=True). "
        "Проверьте настройки [tool.pytest.ini_options] в pyproject.toml"
    )

    assert "test" in settings.DB_NAME, (
        f"❌ ОПАСНОСТЬ: Тесты пытаются использовать базу '{settings.DB_NAME}'. "
        "Тестовая база должна содержать 'test' в названии."
    )


# --- ПОДДЕЛКИ ВНЕШНИХ СЕРВИСОВ ---


class FixedClock:
    """Управляемые часы: тест сам передвигает время."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, days: int = 1) -> None:
        self.now += timedelta(days=days)


class FakeIdentityDirectory:
    def __init__(self, identities: Sequence[IdentitySchema] = ()):
        self.identities = {identity.id: identity for identity in identities}

    def add(self, identity: IdentitySchema) -> None:
        self.identities[identity.id] = identity

    async def resolve_identity_by_email(self, email: str) -> IdentitySchema | None:
        email = email.strip().lower()
        return next((identity for identity in self.identities.values() if identity.email == email), None)

    async def get_identity(self, identity_id: int) -> IdentitySchema | None:
        return self.identities.get(identity_id)


class RecordingNotifier:
    """Запоминает все переданные события, по флагу `fail` падает."""

    def __init__(self):
        self.sent: list[tuple[list[int | str], NotificationKind, dict[str, Any]]] = []
        self.fail = False

    async def notify(self, recipients: Sequence[int | str], kind: NotificationKind, payload: dict[str, Any]) -> None:
        if self.fail:
            raise RuntimeError("Сервис уведомлений недоступен")

        self.sent.append((list(recipients), kind, payload))

    def of_kind(self, kind: NotificationKind) -> list[tuple[list[int | str], NotificationKind, dict[str, Any]]]:
        return [item for item in self.sent if item[1] == kind]


class InMemoryHabitStore:
    """
    Хранилище агрегатов в памяти с проверкой версий.

    Отдает и принимает копии, поэтому изменения агрегата видны только после save_habit.
    `asyncio.sleep(0)` отдает управление циклу, чтобы параллельные операции перемешивались.
    """

    def __init__(self):
        self.habits: dict[int, SharedHabitSchema] = {}
        self.next_id = 1
        self.save_calls = 0
        self.fail_next_save: Exception | None = None
        self.conflicts_to_simulate = 0
        self.fail_load_for: set[int] = set()

    async def load_habit(self, habit_id: int) -> SharedHabitSchema | None:
        await asyncio.sleep(0)

        if habit_id in self.fail_load_for:
            raise RuntimeError(f"Хранилище недоступно для привычки {habit_id}")

        habit = self.habits.get(habit_id)
        return habit.model_copy(deep=True) if habit else None

    async def create_habit(self, habit: SharedHabitSchema) -> SharedHabitSchema:
        created = habit.model_copy(
            update={"id": self.next_id, "version": 1, "created_at": datetime.now(timezone.utc)},
            deep=True,
        )
        self.habits[created.id] = created
        self.next_id += 1
        return created.model_copy(deep=True)

    async def save_habit(self, habit: SharedHabitSchema) -> SharedHabitSchema:
        await asyncio.sleep(0)
        self.save_calls += 1

        if self.fail_next_save is not None:
            exc, self.fail_next_save = self.fail_next_save, None
            raise exc

        stored = self.habits.get(habit.id)

        if stored is None:
            raise HabitNotFoundError()

        if self.conflicts_to_simulate > 0:
            # Другой процесс успел сохранить привычку
            self.conflicts_to_simulate -= 1
            stored.version += 1

        if stored.version != habit.version:
            raise ConcurrencyConflictError()

        saved = habit.model_copy(update={"version": habit.version + 1}, deep=True)
        self.habits[habit.id] = saved
        return saved.model_copy(deep=True)

    async def delete_habit(self, habit_id: int) -> None:
        if self.habits.pop(habit_id, None) is None:
            raise HabitNotFoundError()

    async def list_active_habit_ids(self) -> list[int]:
        return sorted(habit_id for habit_id, habit in self.habits.items() if habit.is_active)

    async def list_habit_ids_for_participant(self, identity_id: int) -> list[int]:
        return sorted(
            habit_id
            for habit_id, habit in self.habits.items()
            if habit.is_active and any(p.user_id == identity_id and p.is_accepted for p in habit.participants)
        )


# --- ФИКСТУРЫ ДВИЖКА ---


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def identities() -> FakeIdentityDirectory:
    return FakeIdentityDirectory([ALICE, BOB, CAROL, DAVE])


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def store() -> InMemoryHabitStore:
    return InMemoryHabitStore()


@pytest.fixture
def gateway(identities: FakeIdentityDirectory, notifier: RecordingNotifier, store: InMemoryHabitStore):
    return CollaboratorGateway(identities=identities, notifier=notifier, store=store)


@pytest.fixture
def service(gateway: CollaboratorGateway, clock: FixedClock) -> SharedHabitService:
    return SharedHabitService(gateway=gateway, clock=clock, points_per_day=20, retry_attempts=3)


@pytest_asyncio.fixture
async def solo_habit(service: SharedHabitService) -> SharedHabitSchema:
    """Привычка, в которой единственный участник - создатель (Alice)."""
    return await service.create_habit(ALICE.id, SharedHabitSchemaCreate(title="Утренняя зарядка", category="Health"))


@pytest_asyncio.fixture
async def pair_habit(service: SharedHabitService, solo_habit: SharedHabitSchema) -> SharedHabitSchema:
    """Привычка с двумя принятыми участниками: Alice (создатель) и Bob."""
    await service.invite(solo_habit.id, ALICE.id, BOB.email)
    return await service.accept(solo_habit.id, BOB.id)


# --- ФИКСТУРЫ БАЗЫ ДАННЫХ ---


@pytest_asyncio.fixture
async def async_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Создает движок SQLAlchemy поверх in-memory SQLite и создает таблицы."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,  # Одно соединение: in-memory база живет, пока оно открыто
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as connection:
        await connection.run_sync(Base.metadata.create_all)

    yield engine
    await engine.dispose()


@pytest.fixture
def db_session_factory(async_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Создает фабрику асинхронных сессий."""
    return async_sessionmaker(bind=async_engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)
