"""
End-to-end tests through the FastAPI app: WebSocket protocol and REST routes.
"""

import pytest
from fastapi.testclient import TestClient

from core import state
from services.connection_manager import ConnectionManager
from services.lifecycle import LifecycleController
from services.relay import RelayEngine
from services.room_manager import RoomManager


@pytest.fixture
def client(monkeypatch):
    room_manager = RoomManager(default_language="javascript")
    connection_manager = ConnectionManager()
    lifecycle = LifecycleController(room_manager, connection_manager)
    monkeypatch.setattr(state, "room_manager", room_manager)
    monkeypatch.setattr(state, "connection_manager", connection_manager)
    monkeypatch.setattr(state, "lifecycle", lifecycle)
    monkeypatch.setattr(state, "relay", RelayEngine(room_manager, connection_manager, lifecycle))

    from main import app

    with TestClient(app) as test_client:
        yield test_client


def emit(ws, action, **data):
    ws.send_json({"action": action, "data": data})


def sync(ws):
    """Round-trip an invalid frame so everything sent before it is processed."""
    ws.send_text("not json")
    assert ws.receive_json() == {"type": "error", "message": "Invalid JSON"}


def test_basic_collaboration(client):
    with client.websocket_connect("/ws") as c1, client.websocket_connect("/ws") as c2:
        emit(c1, "join", roomId="r1", userName="alice")
        assert c1.receive_json() == {"type": "codeupdate", "data": ""}
        assert c1.receive_json() == {"type": "user-joined", "data": ["alice"]}

        emit(c2, "join", roomId="r1", userName="bob")
        assert c2.receive_json() == {"type": "codeupdate", "data": ""}
        assert c2.receive_json() == {"type": "user-joined", "data": ["alice", "bob"]}
        assert c1.receive_json() == {"type": "user-joined", "data": ["alice", "bob"]}

        emit(c1, "codeChange", roomId="r1", code="print(1)")
        assert c2.receive_json() == {"type": "codeupdate", "data": "print(1)"}

        # The next frame c1 sees is its own chat message, not an echo of the edit
        emit(c1, "sendMessage", roomId="r1", user="alice", content="done")
        assert c1.receive_json()["type"] == "chat-message"


def test_chat_fan_out(client):
    with client.websocket_connect("/ws") as c1, client.websocket_connect("/ws") as c2:
        emit(c1, "join", roomId="r1", userName="alice")
        c1.receive_json()
        c1.receive_json()
        emit(c2, "join", roomId="r1", userName="bob")
        c2.receive_json()
        c2.receive_json()
        c1.receive_json()

        message = {"user": "alice", "content": "hi", "roomId": "r1"}
        emit(c1, "sendMessage", **message)

        assert c1.receive_json() == {"type": "chat-message", "data": message}
        assert c2.receive_json() == {"type": "chat-message", "data": message}


def test_disconnect_cleanup(client):
    with client.websocket_connect("/ws") as c2:
        with client.websocket_connect("/ws") as c1:
            emit(c1, "join", roomId="r1", userName="alice")
            c1.receive_json()
            c1.receive_json()
            emit(c2, "join", roomId="r1", userName="bob")
            c2.receive_json()
            c2.receive_json()
            c1.receive_json()

        assert c2.receive_json() == {"type": "user-joined", "data": ["bob"]}
        assert client.get("/rooms/r1").json()["members"] == ["bob"]

        emit(c2, "leaveRoom", roomId="r1", userName="bob")
        sync(c2)
        assert client.get("/rooms/r1").status_code == 404


def test_malformed_frames_get_error(client):
    with client.websocket_connect("/ws") as ws:
        ws.send_text("{oops")
        assert ws.receive_json() == {"type": "error", "message": "Invalid JSON"}

        emit(ws, "join", roomId="r1")
        reply = ws.receive_json()
        assert reply["type"] == "error"
        assert "userName" in reply["message"]

        # Connection is still usable afterwards
        emit(ws, "join", roomId="r1", userName="alice")
        assert ws.receive_json() == {"type": "codeupdate", "data": ""}


def test_room_routes(client):
    assert client.get("/rooms").json() == []
    assert client.get("/rooms/r1").status_code == 404

    with client.websocket_connect("/ws") as ws:
        emit(ws, "join", roomId="r1", userName="alice")
        ws.receive_json()
        ws.receive_json()
        emit(ws, "codeChange", roomId="r1", code="let x = 1;")
        sync(ws)

        rooms = client.get("/rooms").json()
        assert len(rooms) == 1
        assert rooms[0]["id"] == "r1"
        assert rooms[0]["members"] == ["alice"]
        assert rooms[0]["member_count"] == 1
        assert rooms[0]["language"] == "javascript"
        assert rooms[0]["document_length"] == len("let x = 1;")

        detail = client.get("/rooms/r1").json()
        assert detail["document"] == "let x = 1;"


def test_health_and_metrics(client):
    with client.websocket_connect("/ws") as ws:
        emit(ws, "join", roomId="r1", userName="alice")
        ws.receive_json()
        ws.receive_json()

        health = client.get("/health").json()
        assert health["status"] == "healthy"
        assert health["connections"] == 1
        assert health["rooms"] == 1

        metrics = client.get("/metrics").json()
        assert metrics["total_events"] == 1
        assert metrics["concurrent_connections"] == 1
        assert metrics["total_members"] == 1


def test_root(client):
    body = client.get("/").json()
    assert body["endpoints"]["websocket"] == "/ws"


def test_invalid_json_reply_goes_through_connection_manager(client, monkeypatch):
    sent = []
    original_send = state.connection_manager.send

    async def recording_send(connection_id, message):
        sent.append(message)
        return await original_send(connection_id, message)

    monkeypatch.setattr(state.connection_manager, "send", recording_send)

    with client.websocket_connect("/ws") as ws:
        ws.send_text("{oops")
        assert ws.receive_json() == {"type": "error", "message": "Invalid JSON"}

    assert sent == [{"type": "error", "message": "Invalid JSON"}]
