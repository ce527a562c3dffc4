import asyncio
from typing import Any, Collection, Dict, Optional

from fastapi import WebSocket
from pydantic import BaseModel

from constants import OUTBOX_MAX_SIZE
from logging_config import get_logger

logger = get_logger(__name__)

# Put on an outbox to tell its writer to stop
CLOSE = None


def build_frame(event: str, data: Any) -> dict:
    if isinstance(data, BaseModel):
        data = data.model_dump(by_alias=True)
    return {"event": event, "data": data}


class ConnectionHub:
    """Every live transport connection, joined or not, and its outbound queue.

    Sends never await: frames go onto the connection's outbox and a
    writer task per connection drains it to the socket. Frames to one
    connection are delivered in the order they were queued. Outboxes are
    bounded: a connection that stops reading loses new frames instead of
    growing the queue.
    """

    def __init__(self, max_outbox_size: int = OUTBOX_MAX_SIZE):
        self.max_outbox_size = max_outbox_size
        # Format: {connection_id: outbox}
        self._outboxes: Dict[str, asyncio.Queue] = {}

    def connect(self, connection_id: str) -> asyncio.Queue:
        outbox = asyncio.Queue(maxsize=self.max_outbox_size)
        self._outboxes[connection_id] = outbox
        logger.debug(f"Connection {connection_id} registered with hub (live connections: {len(self._outboxes)})")
        return outbox

    def disconnect(self, connection_id: str) -> None:
        outbox = self._outboxes.pop(connection_id, None)
        if outbox is not None:
            if outbox.full():
                # make room for the close marker so the writer can stop
                outbox.get_nowait()
            outbox.put_nowait(CLOSE)
            logger.debug(f"Connection {connection_id} removed from hub (live connections: {len(self._outboxes)})")

    def is_connected(self, connection_id: str) -> bool:
        return connection_id in self._outboxes

    def send(self, connection_id: str, event: str, data: Any) -> bool:
        outbox = self._outboxes.get(connection_id)
        if outbox is None:
            logger.debug(f"Dropping '{event}' for unknown connection {connection_id}")
            return False
        return self._enqueue(connection_id, outbox, build_frame(event, data))

    def broadcast(self, event: str, data: Any, exclude: Collection[str] = ()) -> int:
        """Queue one frame for every live connection not in `exclude`."""
        frame = build_frame(event, data)
        recipients = 0
        for connection_id, outbox in self._outboxes.items():
            if connection_id in exclude:
                continue
            if self._enqueue(connection_id, outbox, frame):
                recipients += 1
        logger.debug(f"Broadcast '{event}' to {recipients} connections (excluded: {len(exclude)})")
        return recipients

    def _enqueue(self, connection_id: str, outbox: asyncio.Queue, frame: dict) -> bool:
        try:
            outbox.put_nowait(frame)
        except asyncio.QueueFull:
            logger.warning(f"Outbox full for connection {connection_id}, dropping '{frame['event']}'")
            return False
        return True


async def pump_outbox(connection_id: str, websocket: WebSocket, outbox: asyncio.Queue) -> None:
    """Writer task: drain `outbox` to `websocket` until the close marker or a send failure."""
    sent = 0
    while True:
        frame: Optional[dict] = await outbox.get()
        if frame is CLOSE:
            break
        try:
            await websocket.send_json(frame)
            sent += 1
        except Exception as e:
            logger.warning(f"Error sending to connection {connection_id}: {e}")
            break
    logger.debug(f"Writer for connection {connection_id} stopped after {sent} frames")
