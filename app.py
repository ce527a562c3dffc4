from fastapi import Depends, FastAPI, WebSocket
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from pydantic import ValidationError
from routers.room import room_router
from dependencies import get_session_handler
from hub import pump_outbox
from schemas.room import Envelope
from session import SessionHandler
from constants import CORS_ORIGINS, STATIC_DIR
import uuid
import asyncio
import os
from logging_config import get_logger, setup_logging

# Setup logging
log_level = os.getenv("LOG_LEVEL", "INFO")
log_file = os.getenv("LOG_FILE", None)
setup_logging(log_level=log_level, log_file=log_file)
logger = get_logger(__name__)

app = FastAPI(title="watchroom")

# The browser client is served from a different origin during development
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(room_router)

logger.info(f"FastAPI application initialized (CORS origins: {CORS_ORIGINS})")


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket, handler: SessionHandler = Depends(get_session_handler)):
    """Room WebSocket.

    Frames in both directions are JSON objects {"event": ..., "data": {...}}.
    The connection starts unjoined and must send join-room before any
    signal, chat-message or sync-event is relayed.
    """
    await websocket.accept()
    connection_id = uuid.uuid4().hex
    client_host = websocket.client.host if websocket.client else "unknown"
    logger.info(f"WebSocket connection accepted from {client_host}: {connection_id}")

    outbox = handler.connect(connection_id)
    writer = asyncio.create_task(pump_outbox(connection_id, websocket, outbox))
    left_room = False
    message_count = 0

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                logger.info(f"WebSocket disconnected for connection {connection_id} (code: {message.get('code')})")
                break

            raw = message.get("text")
            if raw is None:
                logger.warning(f"Ignoring non-text frame from connection {connection_id}")
                continue

            message_count += 1
            try:
                envelope = Envelope.model_validate_json(raw)
            except ValidationError as e:
                logger.warning(f"Ignoring malformed frame #{message_count} from connection {connection_id}: {e.error_count()} errors")
                continue

            logger.debug(f"Received '{envelope.event}' (#{message_count}) from connection {connection_id}")
            if not handler.handle(connection_id, envelope.event, envelope.data):
                left_room = True
                break
    except Exception as e:
        logger.error(f"WebSocket error for connection {connection_id}: {e}", exc_info=True)
    finally:
        # Cleanup on disconnect; the writer drains what was queued before it stops
        handler.disconnect(connection_id)
        await writer

        if left_room:
            try:
                await websocket.close(code=1000)
            except Exception as e:
                logger.debug(f"Error closing WebSocket: {e}")


def mount_static(target: FastAPI, directory: str) -> bool:
    """Serve `directory` at / if it exists. Call after all other routes so they take precedence."""
    if not os.path.isdir(directory):
        logger.info(f"Static directory {directory} not found, static files disabled")
        return False
    target.mount("/", StaticFiles(directory=directory, html=True), name="static")
    logger.info(f"Serving static files from {directory}")
    return True


mount_static(app, STATIC_DIR)
