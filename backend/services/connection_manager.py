# backend/services/connection_manager.py

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Set
import logging
import uuid

from fastapi import WebSocket

from services.session import ConnectionSession

logger = logging.getLogger(__name__)

# ============================================================================
# WEBSOCKET CONNECTION MANAGER
# ============================================================================

class ConnectionManager:
    """
    Manages WebSocket connections, their sessions and room groups.

    This is the transport side of the relay. It knows nothing about room
    documents or member names; it only knows which physical connections exist,
    which session record belongs to each of them, and which connections should
    receive traffic addressed to a room.

    Data Structures:
        connections: Maps connection_id -> WebSocket
                     Example: {"3f2a...": <WebSocket>}

        sessions: Maps connection_id -> ConnectionSession
                  Example: {"3f2a...": ConnectionSession(room_id="r1", user_name="alice")}

        rooms: Maps room_id -> Set of connection_ids addressed by that room
               Example: {"r1": {"3f2a...", "9c1b..."}}

    A connection belongs to at most one room group at a time, mirroring its
    session.
    """

    def __init__(self) -> None:
        """Initialize connection manager with empty data structures."""
        # Map: connection_id -> WebSocket
        self.connections: Dict[str, WebSocket] = {}

        # Map: connection_id -> session record
        self.sessions: Dict[str, ConnectionSession] = {}

        # Map: room_id -> Set[connection_id]
        self.rooms: Dict[str, Set[str]] = {}

    async def connect(self, websocket: WebSocket) -> str:
        """
        Accept a new WebSocket connection and open an empty session for it.

        Returns:
            The connection_id assigned to this connection

        Note:
            The connection is not placed in any room. The client has to send
            a "join" event first.
        """
        await websocket.accept()

        connection_id = uuid.uuid4().hex
        self.connections[connection_id] = websocket
        self.sessions[connection_id] = ConnectionSession(connection_id)

        logger.info("✓ Connection %s opened. Total: %d", connection_id, len(self.connections))
        return connection_id

    def disconnect(self, connection_id: str) -> Optional[ConnectionSession]:
        """
        Forget a connection.

        Removes it from its room group and drops its session. Does not touch
        room membership; that is the lifecycle controller's job and must run
        before this.

        Returns:
            The discarded session, or None if the connection was unknown
        """
        session = self.sessions.pop(connection_id, None)
        self.connections.pop(connection_id, None)
        if session is None:
            return None

        for room_id in list(self.rooms):
            self.leave_group(connection_id, room_id)

        logger.info("✗ Connection %s closed. Total: %d", connection_id, len(self.connections))
        return session

    async def close(self, connection_id: str) -> None:
        """
        Close the socket of a connection whose sends are failing.

        The socket is usually half-dead already, so errors are only logged.
        """
        websocket = self.connections.get(connection_id)
        if websocket is None:
            return
        try:
            await websocket.close()
        except Exception as e:
            logger.debug("Close error on %s: %s", connection_id, e)

    def get_session(self, connection_id: str) -> Optional[ConnectionSession]:
        return self.sessions.get(connection_id)

    def join_group(self, connection_id: str, room_id: str) -> None:
        """Address future room traffic for room_id to this connection."""
        if connection_id not in self.connections:
            return  # Connection already closed
        self.rooms.setdefault(room_id, set()).add(connection_id)

    def leave_group(self, connection_id: str, room_id: str) -> None:
        group = self.rooms.get(room_id)
        if group is None:
            return
        group.discard(connection_id)
        # Clean up empty group
        if not group:
            del self.rooms[room_id]

    def group(self, room_id: str, exclude: Optional[str] = None) -> List[str]:
        """
        Snapshot of the connection ids addressed by a room.

        Args:
            room_id: Target room
            exclude: Connection id to leave out (usually the sender)
        """
        return [cid for cid in self.rooms.get(room_id, ()) if cid != exclude]

    async def send(self, connection_id: str, message: Dict[str, Any]) -> bool:
        """
        Unicast a message to one connection.

        Returns:
            False if the connection is unknown or the send failed
        """
        websocket = self.connections.get(connection_id)
        if websocket is None:
            return False
        try:
            await websocket.send_json(message)
        except Exception as e:
            logger.error("Send error on %s: %s", connection_id, e)
            return False
        return True

    async def send_many(self, connection_ids: Iterable[str], message: Dict[str, Any]) -> Set[str]:
        """
        Send the same message to every listed connection.

        Returns:
            The connection ids whose send failed. The caller decides how to
            clean them up.
        """
        failed: Set[str] = set()
        for connection_id in connection_ids:
            if not await self.send(connection_id, message):
                failed.add(connection_id)
        return failed

    def __len__(self) -> int:
        return len(self.connections)
