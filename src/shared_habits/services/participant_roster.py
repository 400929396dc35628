"""Состав участников совместной привычки и их статусы приглашений."""

from datetime import datetime

from src.shared_habits.core.exceptions import (
    AlreadyAcceptedError,
    AlreadyParticipantError,
    NoPendingInvitationError,
    NotParticipantError,
    OwnerCannotLeaveError,
)
from src.shared_habits.core.logging import engine_log as log
from src.shared_habits.models import ParticipantStatus
from src.shared_habits.schemas import IdentitySchema, ParticipantSchema, SharedHabitSchema


def normalize_email(email: str) -> str:
    """Приводит email к виду, в котором он хранится как ключ участника."""
    return email.strip().lower()


class ParticipantRoster:
    """
    Источник истины о том, кто участвует в привычке.

    Работает поверх агрегата SharedHabitSchema и изменяет его список участников на месте.
    До принятия приглашения участник ищется только по email,
    после принятия - по email или по ID пользователя.
    """

    def __init__(self, habit: SharedHabitSchema):
        self.habit = habit

    def find_by_email(self, email: str) -> ParticipantSchema | None:
        email = normalize_email(email)
        return next((p for p in self.habit.participants if p.email == email), None)

    def find_by_user_id(self, user_id: int) -> ParticipantSchema | None:
        return next((p for p in self.habit.participants if p.user_id == user_id), None)

    def is_owner(self, user_id: int) -> bool:
        return self.habit.created_by == user_id

    def accepted_participants(self) -> list[ParticipantSchema]:
        """Возвращает только принятых участников: только они учитываются в стриках."""
        return [p for p in self.habit.participants if p.is_accepted]

    def accepted_ids(self) -> set[int]:
        return {p.user_id for p in self.accepted_participants() if p.user_id is not None}

    def require_accepted(self, user_id: int) -> ParticipantSchema:
        """
        Возвращает принятого участника с указанным ID пользователя.

        Raises:
            NotParticipantError: Если пользователь не является принятым участником.
        """
        participant = self.find_by_user_id(user_id)

        if participant is None or not participant.is_accepted:
            log.warning(f"Пользователь ID {user_id} не является участником привычки ID {self.habit.id}.")
            raise NotParticipantError()

        return participant

    def invite(self, email: str, identity: IdentitySchema | None, now: datetime) -> ParticipantSchema:
        """
        Приглашает участника по email.

        Отклонившего приглашение можно пригласить снова: его запись заменяется новой,
        ожидающей ответа (на один email - один участник).

        Args:
            email (str): Email приглашаемого.
            identity (IdentitySchema | None): Пользователь с таким email, если он уже известен.
            now (datetime): Время приглашения.

        Returns:
            ParticipantSchema: Созданный участник в статусе pending.

        Raises:
            AlreadyParticipantError: Если email уже приглашен или принят.
        """
        email = normalize_email(email)
        existing = self.find_by_email(email)

        if existing is not None and existing.status != ParticipantStatus.DECLINED:
            log.warning(f"Email {email} уже есть среди участников привычки ID {self.habit.id} ({existing.status}).")
            raise AlreadyParticipantError()

        participant = ParticipantSchema(
            email=email,
            user_id=identity.id if identity else None,
            status=ParticipantStatus.PENDING,
            invited_at=now,
        )

        if existing is not None:
            # Повторное приглашение после отказа
            self.habit.participants[self.habit.participants.index(existing)] = participant
        else:
            self.habit.participants.append(participant)

        log.info(f"Email {email} приглашен в привычку ID {self.habit.id}.")
        return participant

    def _find_invitation(self, identity: IdentitySchema) -> ParticipantSchema:
        participant = self.find_by_email(identity.email)

        if participant is not None and participant.status == ParticipantStatus.ACCEPTED:
            raise AlreadyAcceptedError()

        if participant is None or participant.status != ParticipantStatus.PENDING:
            raise NoPendingInvitationError()

        return participant

    def accept(self, identity: IdentitySchema, now: datetime) -> ParticipantSchema:
        """
        Принимает приглашение пользователя.

        Args:
            identity (IdentitySchema): Принимающий пользователь.
            now (datetime): Время принятия.

        Returns:
            ParticipantSchema: Участник в статусе accepted.

        Raises:
            AlreadyAcceptedError: Если приглашение уже принято.
            NoPendingInvitationError: Если ожидающего приглашения нет.
        """
        participant = self._find_invitation(identity)

        participant.status = ParticipantStatus.ACCEPTED
        participant.user_id = identity.id
        participant.joined_at = now

        log.info(f"Пользователь ID {identity.id} принял приглашение в привычку ID {self.habit.id}.")
        return participant

    def decline(self, identity: IdentitySchema) -> ParticipantSchema:
        """
        Отклоняет приглашение. Запись участника остается в списке, но больше не учитывается.

        Raises:
            AlreadyAcceptedError: Если приглашение уже принято.
            NoPendingInvitationError: Если ожидающего приглашения нет.
        """
        participant = self._find_invitation(identity)

        participant.status = ParticipantStatus.DECLINED
        participant.user_id = identity.id

        log.info(f"Пользователь ID {identity.id} отклонил приглашение в привычку ID {self.habit.id}.")
        return participant

    def leave(self, user_id: int) -> ParticipantSchema:
        """
        Удаляет участника из привычки.

        Raises:
            OwnerCannotLeaveError: Если выйти пытается создатель.
            NotParticipantError: Если пользователь не является принятым участником.
        """
        if self.is_owner(user_id):
            log.warning(f"Создатель (ID {user_id}) пытается покинуть привычку ID {self.habit.id}.")
            raise OwnerCannotLeaveError()

        participant = self.require_accepted(user_id)
        self.habit.participants.remove(participant)

        log.info(f"Пользователь ID {user_id} покинул привычку ID {self.habit.id}.")
        return participant
