from datetime import datetime, timezone
from typing import Any, Callable

from constants import CHAT_MAX_LENGTH
from hub import ConnectionHub
from logging_config import get_logger
from registry import ConnectionRegistry
from schemas.room import ChatMessageOut, SignalOut

logger = get_logger(__name__)


def now_ms() -> int:
    return int(datetime.now(timezone.utc).timestamp() * 1000)


class SignalingRelay:
    """Forwards signaling, chat and sync traffic between admitted members.

    Every operation checks membership first and silently drops the
    message otherwise, so non-members learn nothing about the room.
    Payloads are forwarded as received; only chat text is truncated.
    Each method returns whether anything was queued.
    """

    def __init__(
        self,
        registry: ConnectionRegistry,
        hub: ConnectionHub,
        chat_max_length: int = CHAT_MAX_LENGTH,
        clock: Callable[[], int] = now_ms,
    ):
        self.registry = registry
        self.hub = hub
        self.chat_max_length = chat_max_length
        self.clock = clock

    def relay_signal(self, sender_id: str, target_id: Any, payload: Any) -> bool:
        if not self.registry.is_member(sender_id) or not isinstance(target_id, str) or not self.registry.is_member(target_id):
            logger.debug(f"Dropped signal from {sender_id} to {target_id}: sender or target not admitted")
            return False

        return self.hub.send(target_id, "signal", SignalOut(from_=sender_id, data=payload))

    def relay_chat(self, sender_id: str, text: Any) -> bool:
        sender = self.registry.get(sender_id)
        if not sender:
            logger.debug(f"Dropped chat message from non-member {sender_id}")
            return False

        # non-string text counts as empty
        text = text if isinstance(text, str) else ""
        message = ChatMessageOut(
            from_=sender.username,
            sender_id=sender_id,
            text=text[:self.chat_max_length],
            at=self.clock(),
        )
        # sender gets its own message back
        self.hub.broadcast("chat-message", message)
        return True

    def relay_sync_event(self, sender_id: str, payload: Any) -> bool:
        if not self.registry.is_member(sender_id):
            logger.debug(f"Dropped sync event from non-member {sender_id}")
            return False

        event = dict(payload) if isinstance(payload, dict) else {}
        event["from"] = sender_id
        event["at"] = self.clock()
        self.hub.broadcast("sync-event", event, exclude={sender_id})
        logger.debug(f"Sync event '{event.get('action')}' from {sender_id} relayed")
        return True
