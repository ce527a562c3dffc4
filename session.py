import asyncio
from enum import Enum
from typing import Any, Callable, Dict, Optional

from hub import ConnectionHub
from logging_config import get_logger
from registry import AdmitError, ConnectionRegistry
from relay import SignalingRelay
from schemas.room import JoinError, JoinedRoom, Member, RoomLimits

logger = get_logger(__name__)


class SessionState(str, Enum):
    UNJOINED = "unjoined"
    JOINING = "joining"
    JOINED = "joined"
    LEFT = "left"


class SessionHandler:
    """Per-connection join/leave state machine plus inbound event dispatch.

    Each inbound event is handled to completion without awaiting, so a
    registry change and the broadcast announcing it are queued before the
    next event is looked at. That keeps every connection's view of the
    roster in the order the changes happened.
    """

    def __init__(self, registry: ConnectionRegistry, hub: ConnectionHub, relay: Optional[SignalingRelay] = None):
        self.registry = registry
        self.hub = hub
        self.relay = relay or SignalingRelay(registry, hub)
        self._states: Dict[str, SessionState] = {}
        self._handlers: Dict[str, Callable[[str, dict], None]] = {
            "join-room": self._on_join_room,
            "leave-room": self._on_leave_room,
            "signal": self._on_signal,
            "chat-message": self._on_chat_message,
            "sync-event": self._on_sync_event,
        }

    def connect(self, connection_id: str) -> asyncio.Queue:
        self._states[connection_id] = SessionState.UNJOINED
        logger.info(f"Connection {connection_id} opened")
        return self.hub.connect(connection_id)

    def state(self, connection_id: str) -> Optional[SessionState]:
        return self._states.get(connection_id)

    def handle(self, connection_id: str, event: str, data: Any) -> bool:
        """Process one inbound event. Returns False once the connection should be closed."""
        state = self._states.get(connection_id)
        if state is None or state == SessionState.LEFT:
            logger.debug(f"Ignoring '{event}' from connection {connection_id} in state {state}")
            return False

        handler = self._handlers.get(event)
        if handler is None:
            logger.warning(f"Unknown event '{event}' from connection {connection_id}")
            return True

        handler(connection_id, data if isinstance(data, dict) else {})
        return self._states.get(connection_id) != SessionState.LEFT

    def disconnect(self, connection_id: str) -> Optional[Member]:
        """Transport went away. Safe to call more than once."""
        state = self._states.pop(connection_id, None)
        self.hub.disconnect(connection_id)
        member = self.registry.remove(connection_id)
        if member:
            self._announce_departure(member)
        logger.info(f"Connection {connection_id} closed (state: {state.value if state else None})")
        return member

    def _on_join_room(self, connection_id: str, data: dict) -> None:
        if self._states[connection_id] != SessionState.UNJOINED:
            # re-joining an admitted connection is not supported
            logger.debug(f"Ignoring join-room from connection {connection_id} in state {self._states[connection_id].value}")
            return

        self._states[connection_id] = SessionState.JOINING
        try:
            member = self.registry.admit(connection_id, data.get("username"))
        except AdmitError as e:
            self._states[connection_id] = SessionState.UNJOINED
            logger.info(f"Join rejected for connection {connection_id} ({e.code}): {data.get('username')!r}")
            self.hub.send(connection_id, "join-error", JoinError(code=e.code, message=e.message))
            return

        self._states[connection_id] = SessionState.JOINED
        logger.info(
            f"User {connection_id} ({member.username}) joined the room "
            f"({len(self.registry)}/{self.registry.max_participants})"
        )
        self.hub.send(
            connection_id,
            "joined-room",
            JoinedRoom(
                self_id=connection_id,
                participants=self.registry.snapshot(),
                limits=RoomLimits(max_participants=self.registry.max_participants),
            ),
        )
        self.hub.broadcast("participant-joined", member, exclude={connection_id})

    def _on_leave_room(self, connection_id: str, data: dict) -> None:
        if self._states[connection_id] != SessionState.JOINED:
            logger.debug(f"Ignoring leave-room from connection {connection_id} in state {self._states[connection_id].value}")
            return

        self._states[connection_id] = SessionState.LEFT
        member = self.registry.remove(connection_id)
        if member:
            self._announce_departure(member)

    def _on_signal(self, connection_id: str, data: dict) -> None:
        self.relay.relay_signal(connection_id, data.get("to"), data.get("data"))

    def _on_chat_message(self, connection_id: str, data: dict) -> None:
        self.relay.relay_chat(connection_id, data.get("text"))

    def _on_sync_event(self, connection_id: str, data: dict) -> None:
        self.relay.relay_sync_event(connection_id, data)

    def _announce_departure(self, member: Member) -> None:
        logger.info(f"User {member.id} ({member.username}) left the room ({len(self.registry)}/{self.registry.max_participants})")
        self.hub.broadcast("participant-left", member, exclude={member.id})
