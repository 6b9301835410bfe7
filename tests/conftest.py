import asyncio

import pytest

from services.connection_manager import ConnectionManager
from services.lifecycle import LifecycleController
from services.relay import RelayEngine
from services.room_manager import RoomManager


class FakeWebSocket:
    """Records what the relay sends; optionally fails every send."""

    def __init__(self, fail=False):
        self.accepted = False
        self.fail = fail
        self.sent = []
        self.closed = False

    async def close(self, code=1000):
        self.closed = True

    async def accept(self):
        self.accepted = True

    async def send_json(self, message):
        if self.fail:
            raise RuntimeError("socket closed")
        self.sent.append(message)

    def received(self, event_type):
        return [m["data"] for m in self.sent if m["type"] == event_type]

    def types(self):
        return [m["type"] for m in self.sent]

    def clear(self):
        self.sent.clear()


class Harness:
    """A relay wired to fresh stores plus helpers to drive it synchronously."""

    def __init__(self):
        self.room_manager = RoomManager(default_language="javascript")
        self.connection_manager = ConnectionManager()
        self.lifecycle = LifecycleController(self.room_manager, self.connection_manager)
        self.relay = RelayEngine(self.room_manager, self.connection_manager, self.lifecycle)

    def connect(self, fail=False):
        ws = FakeWebSocket(fail=fail)
        connection_id = asyncio.run(self.connection_manager.connect(ws))
        return connection_id, ws

    def send(self, connection_id, action, **data):
        return asyncio.run(self.relay.dispatch(connection_id, {"action": action, "data": data}))

    def send_raw(self, connection_id, message):
        return asyncio.run(self.relay.dispatch(connection_id, message))

    def disconnect(self, connection_id):
        asyncio.run(self.relay.disconnect(connection_id))

    def join(self, connection_id, room_id, user_name):
        return self.send(connection_id, "join", roomId=room_id, userName=user_name)


@pytest.fixture
def harness():
    return Harness()


@pytest.fixture
def room_manager():
    return RoomManager(default_language="javascript")
