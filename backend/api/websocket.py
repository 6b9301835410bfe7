# backend/api/websocket.py

from __future__ import annotations

import json
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from core import state

logger = logging.getLogger(__name__)

router = APIRouter()

# ============================================================================
# WEBSOCKET ENDPOINT
# ============================================================================

@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """
    WebSocket endpoint for a collaborative editing room.

    Protocol:
    =========

    Every frame is a JSON object. Client frames carry an "action" and a
    "data" payload, server frames carry a "type" and a "data" payload.

    Client -> Server Actions:
    -------------------------
    Join Room:
        {"action": "join", "data": {"roomId": "r1", "userName": "alice"}}
        Response (joiner only): {"type": "codeupdate", "data": "<document>"}
        Broadcast (whole room): {"type": "user-joined", "data": ["alice", "bob"]}

    Edit Code:
        {"action": "codeChange", "data": {"roomId": "r1", "code": "print(1)"}}
        Broadcast (others): {"type": "codeupdate", "data": "print(1)"}

    Change Language:
        {"action": "languageChange", "data": {"roomId": "r1", "language": "python"}}
        Broadcast (others): {"type": "language-updated", "data": {"language": "python"}}

    Chat:
        {"action": "sendMessage", "data": {"roomId": "r1", "user": "alice", "content": "hi"}}
        Broadcast (whole room): {"type": "chat-message", "data": {...same object...}}

    Typing:
        {"action": "typing", "data": {"roomId": "r1", "user": "alice"}}
        Broadcast (others): {"type": "user-typing", "data": {"user": "alice"}}

    Draw:
        {"action": "draw", "data": {"roomId": "r1", "drawData": <anything>}}
        Broadcast (others): {"type": "draw-update", "data": <anything>}

    Leave Room:
        {"action": "leaveRoom", "data": {"roomId": "r1", "userName": "alice"}}
        Broadcast (remaining): {"type": "user-joined", "data": ["bob"]}

    Error:
        {"type": "error", "message": "..."}

    Lifecycle:
    ==========
    1. Client connects, a connection id and empty session are created
    2. Client sends "join"; a second "join" moves it to the new room
    3. Client receives room traffic according to the broadcast rules
    4. On disconnect the session leaves its room and is discarded

    Error Handling:
        - Invalid JSON / malformed frames: error frame, event dropped
        - Events for rooms that no longer exist: silently ignored
        - Connection errors: cleanup and log
    """
    connection_id = await state.connection_manager.connect(websocket)

    try:
        while True:
            data = await websocket.receive_text()

            try:
                message = json.loads(data)
            except json.JSONDecodeError:
                logger.warning("Invalid JSON from %s", connection_id)
                await state.connection_manager.send(
                    connection_id,
                    {
                        "type": "error",
                        "message": "Invalid JSON",
                    },
                )
                continue

            logger.debug("Websocket input from %s: %s", connection_id, message)
            await state.relay.dispatch(connection_id, message)

    except WebSocketDisconnect:
        await state.relay.disconnect(connection_id)
    except Exception as e:
        logger.error("WebSocket error on %s: %s", connection_id, e)
        await state.relay.disconnect(connection_id)
