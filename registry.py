from typing import Iterable, Optional

from logging_config import get_logger
from schemas.room import Member

logger = get_logger(__name__)


class AdmitError(Exception):
    """Base class for join rejections. `code` is stable, `message` is shown to the user."""
    code = "admit-error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotAllowed(AdmitError):
    code = "not-allowed"


class UsernameTaken(AdmitError):
    code = "username-taken"


class RoomFull(AdmitError):
    code = "room-full"


def normalize_username(raw_username) -> str:
    if raw_username is None:
        return ""
    return str(raw_username).strip().lower()


class ConnectionRegistry:
    """Who is in the room. Only the session handler mutates it."""

    def __init__(self, allowed_usernames: Iterable[str], max_participants: int):
        self.allowed_usernames = frozenset(normalize_username(name) for name in allowed_usernames)
        self.max_participants = max_participants
        # dicts keep insertion order, which is the roster order
        self._members: dict[str, Member] = {}
        logger.info(
            f"Initializing ConnectionRegistry: {len(self.allowed_usernames)} allowed usernames, "
            f"max_participants={max_participants}"
        )

    def admit(self, connection_id: str, raw_username) -> Member:
        """Validate and register a join request.

        Checks run in a fixed order so the error is deterministic when
        several conditions fail at once: allow-list, then uniqueness,
        then capacity.

        Raises:
            NotAllowed, UsernameTaken, RoomFull
        """
        username = normalize_username(raw_username)

        if username not in self.allowed_usernames:
            logger.debug(f"Admit rejected for {connection_id}: '{username}' not in allow-list")
            raise NotAllowed("Username is not allowed for this watch party link.")

        if any(member.username == username for member in self._members.values()):
            logger.debug(f"Admit rejected for {connection_id}: '{username}' already in use")
            raise UsernameTaken("That username is already in use.")

        if len(self._members) >= self.max_participants:
            logger.debug(f"Admit rejected for {connection_id}: room full ({len(self._members)}/{self.max_participants})")
            raise RoomFull(f"Room is full (max {self.max_participants} people).")

        member = Member(id=connection_id, username=username)
        self._members[connection_id] = member
        logger.debug(f"Admitted {connection_id} as '{username}' ({len(self._members)}/{self.max_participants})")
        return member

    def remove(self, connection_id: str) -> Optional[Member]:
        member = self._members.pop(connection_id, None)
        if member:
            logger.debug(f"Removed {connection_id} ('{member.username}') from registry")
        return member

    def is_member(self, connection_id: str) -> bool:
        return connection_id in self._members

    def get(self, connection_id: str) -> Optional[Member]:
        return self._members.get(connection_id)

    def snapshot(self) -> list[Member]:
        """Current roster in arrival order."""
        return list(self._members.values())

    @property
    def is_full(self) -> bool:
        return len(self._members) >= self.max_participants

    def __len__(self) -> int:
        return len(self._members)
