"""Схемы Pydantic для агрегата совместной привычки.

Агрегат SharedHabitSchema - это то представление, с которым работает движок:
он загружается из хранилища целиком, изменяется в памяти и сохраняется целиком.
"""

from datetime import date, datetime, time

from pydantic import Field

from src.shared_habits.models.enums import DayState, HabitCategory, ParticipantStatus

from .base_schema import BaseSchema


class IdentitySchema(BaseSchema):
    """Пользователь из внешнего хранилища идентичностей."""

    id: int = Field(..., description="ID пользователя")
    email: str = Field(..., description="Email пользователя")
    username: str | None = Field(None, description="Имя пользователя (может отсутствовать)")

    @property
    def display_name(self) -> str:
        """Имя для текстов уведомлений: username или часть email до '@'."""
        return self.username or self.email.split("@")[0]


class ParticipantSchema(BaseSchema):
    """
    Участник совместной привычки.

    Email - постоянный ключ участника: приглашение создается до того,
    как у приглашенного появляется учетная запись. user_id привязывается при принятии
    (или сразу при приглашении, если пользователь с таким email уже известен).
    """

    email: str = Field(..., description="Нормализованный email участника")
    user_id: int | None = Field(None, description="ID пользователя, если он известен")
    status: ParticipantStatus = Field(default=ParticipantStatus.PENDING, description="Статус приглашения")
    invited_at: datetime = Field(..., description="Время приглашения")
    joined_at: datetime | None = Field(None, description="Время принятия приглашения")

    @property
    def is_accepted(self) -> bool:
        return self.status == ParticipantStatus.ACCEPTED


class CompletionMarkSchema(BaseSchema):
    """Отметка одного участника о выполнении за день."""

    user_id: int = Field(..., description="ID участника")
    completed_at: datetime = Field(..., description="Время отметки")


class DayRecordSchema(BaseSchema):
    """Запись журнала выполнений за один календарный день."""

    day: date = Field(..., description="Ключ дня (календарная дата без времени)")
    state: DayState = Field(default=DayState.EMPTY, description="Состояние дня")
    completed_by: list[CompletionMarkSchema] = Field(default_factory=list, description="Отметки участников")

    @property
    def all_completed(self) -> bool:
        return self.state == DayState.FULLY_COMPLETE

    @property
    def counted_as_day(self) -> bool:
        """День уже учтен в successful_days и стрике."""
        return self.state == DayState.FULLY_COMPLETE

    def completed_user_ids(self) -> set[int]:
        return {mark.user_id for mark in self.completed_by}

    def has_completed(self, user_id: int) -> bool:
        return any(mark.user_id == user_id for mark in self.completed_by)


class StreakSchema(BaseSchema):
    """Совместный стрик привычки."""

    current: int = Field(default=0, ge=0, description="Текущая серия полностью выполненных дней")
    longest: int = Field(default=0, ge=0, description="Максимальная серия за всю историю")
    last_completed_date: date | None = Field(None, description="Последний полностью выполненный день")
    consecutive_days: list[date] = Field(default_factory=list, description="Дни, составляющие текущую серию")
    last_reconciled_day: date | None = Field(None, description="Последний день, за который прошла ночная сверка")


class HabitStatsSchema(BaseSchema):
    """Агрегированная статистика привычки."""

    total_days: int = Field(default=0, ge=0, description="Дни, в которые была хотя бы одна отметка")
    successful_days: int = Field(default=0, ge=0, description="Дни, выполненные всеми участниками")
    failed_days: int = Field(default=0, ge=0, description="Дни, на которых стрик был прерван")
    success_rate: int = Field(default=0, ge=0, le=100, description="Процент успешных дней")
    total_points: int = Field(default=0, ge=0, description="Очки, набранные за успешные дни")


class NotificationSettingsSchema(BaseSchema):
    """Настройки уведомлений совместной привычки."""

    notify_on_streak: bool = Field(default=True, description="Уведомлять о продлении стрика")
    notify_on_break: bool = Field(default=True, description="Уведомлять о прерывании стрика")
    reminder_enabled: bool = Field(default=True, description="Напоминания включены")
    reminder_time: time = Field(default=time(9, 0), description="Время ежедневного напоминания")


class SharedHabitSchema(BaseSchema):
    """Агрегат совместной привычки."""

    id: int | None = Field(None, description="ID привычки (None до первого сохранения)")
    title: str = Field(..., min_length=1, max_length=255, description="Название привычки")
    description: str | None = Field(None, description="Описание привычки")
    category: HabitCategory = Field(default=HabitCategory.CUSTOM, description="Категория")
    created_by: int = Field(..., description="ID создателя (владельца)")
    is_active: bool = Field(default=True, description="False после мягкого удаления")
    participants: list[ParticipantSchema] = Field(default_factory=list)
    day_records: list[DayRecordSchema] = Field(default_factory=list)
    streak: StreakSchema = Field(default_factory=StreakSchema)
    stats: HabitStatsSchema = Field(default_factory=HabitStatsSchema)
    notifications: NotificationSettingsSchema = Field(default_factory=NotificationSettingsSchema)
    version: int = Field(default=0, ge=0, description="Версия агрегата для оптимистичной блокировки")
    created_at: datetime | None = Field(None, description="Время создания")


class SharedHabitSchemaCreate(BaseSchema):
    """Схема для создания новой совместной привычки."""

    title: str = Field(..., min_length=1, max_length=255, description="Название привычки")
    description: str | None = Field(None, description="Описание привычки")
    # Подпись категории из клиента ("Health", "Learning" ...), сопоставляется с HabitCategory
    category: str | None = Field(None, description="Категория привычки")
    notifications: NotificationSettingsSchema | None = Field(None, description="Настройки уведомлений")


class CompletionResultSchema(BaseSchema):
    """Результат отметки о выполнении."""

    habit: SharedHabitSchema
    day: date
    all_completed: bool
    completed_count: int
    total_participants: int
    points_earned: int


class StreakInfoSchema(BaseSchema):
    """Стрик и статистика привычки."""

    habit_id: int
    streak: StreakSchema
    stats: HabitStatsSchema
