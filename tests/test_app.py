"""HTTP and WebSocket endpoints through FastAPI's TestClient"""

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from app import app
from dependencies import get_session_handler
from hub import ConnectionHub
from registry import ConnectionRegistry
from session import SessionHandler


@pytest.fixture
def room_handler() -> SessionHandler:
    return SessionHandler(ConnectionRegistry({"ann", "bob"}, max_participants=2), ConnectionHub())


@pytest.fixture
def client(room_handler):
    app.dependency_overrides[get_session_handler] = lambda: room_handler
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


def join(ws, username):
    ws.send_json({"event": "join-room", "data": {"username": username}})
    return ws.receive_json()


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_room_details_empty(client):
    response = client.get("/room")

    assert response.status_code == 200
    assert response.json() == {"maxParticipants": 2, "onlineCount": 0, "participants": [], "isFull": False}


def test_client_config(client):
    body = client.get("/room/config").json()

    assert body["maxParticipants"] == 2
    assert body["chatMaxLength"] == 800
    assert body["iceServers"] == [{"urls": "stun:stun.l.google.com:19302"}]


def test_cors_preflight_allows_configured_origin(client):
    response = client.options(
        "/room",
        headers={"Origin": "http://localhost:8081", "Access-Control-Request-Method": "GET"},
    )

    assert response.headers["access-control-allow-origin"] == "http://localhost:8081"


def test_join_and_relay_over_websocket(client):
    with client.websocket_connect("/ws") as x:
        joined = join(x, "Ann ")
        assert joined["event"] == "joined-room"
        x_id = joined["data"]["selfId"]
        assert joined["data"]["participants"] == [{"id": x_id, "username": "ann"}]
        assert joined["data"]["limits"] == {"maxParticipants": 2}

        with client.websocket_connect("/ws") as y:
            y_joined = join(y, "bob")
            y_id = y_joined["data"]["selfId"]
            assert [p["username"] for p in y_joined["data"]["participants"]] == ["ann", "bob"]
            assert x.receive_json() == {"event": "participant-joined", "data": {"id": y_id, "username": "bob"}}

            room = client.get("/room").json()
            assert room["onlineCount"] == 2
            assert room["isFull"] is True

            x.send_json({"event": "signal", "data": {"to": y_id, "data": {"type": "offer", "sdp": "v=0"}}})
            assert y.receive_json() == {"event": "signal", "data": {"from": x_id, "data": {"type": "offer", "sdp": "v=0"}}}

            y.send_json({"event": "chat-message", "data": {"text": "y" * 1000}})
            for ws in (x, y):
                chat = ws.receive_json()
                assert chat["event"] == "chat-message"
                assert chat["data"]["from"] == "bob"
                assert chat["data"]["senderId"] == y_id
                assert len(chat["data"]["text"]) == 800
                assert isinstance(chat["data"]["at"], int)

            y.send_json({"event": "sync-event", "data": {"action": "seek", "value": 12.5}})
            sync = x.receive_json()
            assert sync["event"] == "sync-event"
            assert sync["data"]["action"] == "seek"
            assert sync["data"]["value"] == 12.5
            assert sync["data"]["from"] == y_id

        assert x.receive_json() == {"event": "participant-left", "data": {"id": y_id, "username": "bob"}}

    assert client.get("/room").json()["onlineCount"] == 0


def test_join_errors_keep_connection_usable(client):
    with client.websocket_connect("/ws") as x:
        join(x, "ann")

        with client.websocket_connect("/ws") as z:
            taken = join(z, "ANN")
            assert taken == {"event": "join-error", "data": {"code": "username-taken", "message": "That username is already in use."}}

            not_allowed = join(z, "carol")
            assert not_allowed["event"] == "join-error"
            assert not_allowed["data"]["code"] == "not-allowed"

            assert join(z, "bob")["event"] == "joined-room"


def test_malformed_frames_are_ignored(client):
    with client.websocket_connect("/ws") as ws:
        ws.send_text("not json")
        ws.send_text("[1, 2, 3]")
        ws.send_json({"event": 5})
        ws.send_json({"data": {"username": "ann"}})
        ws.send_bytes(b"\x00\x01")
        ws.send_json({"event": "unknown-event", "data": {}})

        assert join(ws, "ann")["event"] == "joined-room"


def test_leave_room_closes_socket(client):
    with client.websocket_connect("/ws") as x:
        x_id = join(x, "ann")["data"]["selfId"]

        with client.websocket_connect("/ws") as y:
            y_id = join(y, "bob")["data"]["selfId"]
            assert x.receive_json()["event"] == "participant-joined"

            y.send_json({"event": "leave-room"})
            left = x.receive_json()
            assert left["event"] == "participant-left"
            assert left["data"]["username"] == "bob"
            assert left["data"]["id"] == y_id

            with pytest.raises(WebSocketDisconnect):
                y.receive_json()

        assert client.get("/room").json()["participants"] == [{"id": x_id, "username": "ann"}]
