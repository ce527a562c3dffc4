from constants import ALLOWED_USERNAMES, MAX_PARTICIPANTS
from hub import ConnectionHub
from registry import ConnectionRegistry
from session import SessionHandler

# The single room served by this process. Tests override get_session_handler.
registry = ConnectionRegistry(ALLOWED_USERNAMES, MAX_PARTICIPANTS)
hub = ConnectionHub()
session_handler = SessionHandler(registry, hub)


def get_session_handler() -> SessionHandler:
    return session_handler
