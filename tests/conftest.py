"""Shared fixtures: a fresh room per test, no network."""

import pytest

from hub import CLOSE, ConnectionHub
from registry import ConnectionRegistry
from relay import SignalingRelay
from session import SessionHandler

ALLOWED = {"ann", "bob", "cat", "dan", "eve"}


@pytest.fixture
def registry() -> ConnectionRegistry:
    return ConnectionRegistry(ALLOWED, max_participants=4)


@pytest.fixture
def hub() -> ConnectionHub:
    return ConnectionHub()


@pytest.fixture
def relay(registry, hub) -> SignalingRelay:
    # fixed clock so timestamps are comparable
    return SignalingRelay(registry, hub, clock=lambda: 1700000000000)


@pytest.fixture
def session_handler(registry, hub, relay) -> SessionHandler:
    return SessionHandler(registry, hub, relay)


@pytest.fixture
def drain():
    """Pop every queued frame off an outbox, skipping the close marker."""

    def _drain(outbox) -> list[dict]:
        frames = []
        while not outbox.empty():
            frame = outbox.get_nowait()
            if frame is not CLOSE:
                frames.append(frame)
        return frames

    return _drain
