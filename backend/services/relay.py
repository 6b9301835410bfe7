# backend/services/relay.py

from __future__ import annotations

from typing import Any, Awaitable, Callable, Dict, Iterable, Optional, Set, Tuple, Type
import logging

from pydantic import BaseModel, ValidationError

from models.models import (
    ChatMessage,
    ClientFrame,
    CodeChangePayload,
    DrawPayload,
    JoinPayload,
    LanguageChangePayload,
    LeaveRoomPayload,
    TypingPayload,
)
from services.connection_manager import ConnectionManager
from services.lifecycle import Departure, LifecycleController
from services.room_manager import RoomManager

logger = logging.getLogger(__name__)

# Outbound event names
USER_JOINED = "user-joined"
CODE_UPDATE = "codeupdate"
LANGUAGE_UPDATED = "language-updated"
CHAT_MESSAGE = "chat-message"
USER_TYPING = "user-typing"
DRAW_UPDATE = "draw-update"
ERROR = "error"

# Spellings used by older clients -> canonical inbound event name
EVENT_ALIASES: Dict[str, str] = {
    "Codechange": "codeChange",
    "code-change": "codeChange",
    "language-change": "languageChange",
    "send-message": "sendMessage",
    "leave-room": "leaveRoom",
    "leave": "leaveRoom",
}


def frame(event: str, data: Any) -> Dict[str, Any]:
    """Build an outbound frame."""
    return {"type": event, "data": data}


Handler = Callable[[str, Any], Awaitable[None]]

# ============================================================================
# RELAY ENGINE
# ============================================================================

class RelayEngine:
    """
    Applies inbound room events and fans the results out.

    Every handler follows the same shape: validate, mutate state and take a
    snapshot of the payload and the target connections without awaiting, then
    send. Because the mutating part never yields to the event loop, two
    connections can't interleave half-finished changes to the same room.

    Broadcast scoping:
        join            -> joiner gets the document, whole room gets members
        codeChange      -> room minus sender
        languageChange  -> room minus sender
        sendMessage     -> whole room, sender included
        typing          -> room minus sender
        draw            -> room minus sender
        leaveRoom       -> remaining room
        disconnect      -> remaining room
    """

    def __init__(
        self,
        room_manager: RoomManager,
        connection_manager: ConnectionManager,
        lifecycle: Optional[LifecycleController] = None,
    ) -> None:
        self.room_manager = room_manager
        self.connection_manager = connection_manager
        self.lifecycle = lifecycle or LifecycleController(room_manager, connection_manager)
        self.events_processed = 0

        self._handlers: Dict[str, Tuple[Type[BaseModel], Handler]] = {
            "join": (JoinPayload, self.join),
            "codeChange": (CodeChangePayload, self.code_change),
            "languageChange": (LanguageChangePayload, self.language_change),
            "sendMessage": (ChatMessage, self.send_message),
            "typing": (TypingPayload, self.typing),
            "draw": (DrawPayload, self.draw),
            "leaveRoom": (LeaveRoomPayload, self.leave_room),
        }

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    async def dispatch(self, connection_id: str, message: Any) -> bool:
        """
        Validate a decoded client frame and run its handler.

        Malformed frames are dropped without touching any state; the sender
        gets a single error frame back.

        Returns:
            True if the event was handled
        """
        if self.connection_manager.get_session(connection_id) is None:
            return False  # Connection already released

        try:
            client_frame = ClientFrame.model_validate(message)
        except ValidationError:
            await self._reject(connection_id, "Malformed frame: expected {\"action\": ..., \"data\": {...}}")
            return False

        action = EVENT_ALIASES.get(client_frame.action, client_frame.action)
        entry = self._handlers.get(action)
        if entry is None:
            await self._reject(connection_id, f"Unknown action: {client_frame.action}")
            return False

        model, handler = entry
        try:
            payload = model.model_validate(client_frame.data or {})
        except ValidationError as e:
            fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
            await self._reject(connection_id, f"Invalid payload for {action}: {fields}")
            return False

        self.events_processed += 1
        await handler(connection_id, payload)
        return True

    # ------------------------------------------------------------------
    # Membership events
    # ------------------------------------------------------------------

    async def join(self, connection_id: str, payload: JoinPayload) -> None:
        """
        Put the connection's user into a room, leaving any previous one.

        Rejoining with the same (room, name) is an idempotent refresh. When
        the connection switches rooms or names, the old association is torn
        down first; a sole member renaming inside a room therefore empties it
        and gets a fresh one.
        """
        session = self.connection_manager.get_session(connection_id)
        if session is None:
            return

        departure: Optional[Departure] = None
        if session.joined and not session.matches(payload.room_id, payload.user_name):
            old_room_id, old_user_name = session.snapshot()
            departure = self.lifecycle.remove_member(connection_id, old_room_id, old_user_name)

        room = self.room_manager.get_or_create(payload.room_id)
        added = room.add_member(payload.user_name)

        session.set(payload.room_id, payload.user_name)
        self.connection_manager.join_group(connection_id, payload.room_id)

        document = room.document
        members = room.member_names()
        targets = self.connection_manager.group(payload.room_id)

        logger.info(
            "→ %s joined '%s' (%d members%s)",
            payload.user_name, payload.room_id, len(members), "" if added else ", already present",
        )

        failed: Set[str] = set()
        if departure is not None:
            failed |= await self._announce(departure)
        if not await self.connection_manager.send(connection_id, frame(CODE_UPDATE, document)):
            failed.add(connection_id)
        failed |= await self.connection_manager.send_many(targets, frame(USER_JOINED, members))
        await self._release_failed(failed)

    async def leave_room(self, connection_id: str, payload: LeaveRoomPayload) -> None:
        departure = self.lifecycle.remove_member(connection_id, payload.room_id, payload.user_name)
        await self._release_failed(await self._announce(departure))

    async def disconnect(self, connection_id: str) -> None:
        """Transport reported the connection gone: leave its room and forget it."""
        departure = self.lifecycle.release(connection_id)
        if departure is not None:
            await self._release_failed(await self._announce(departure))

    # ------------------------------------------------------------------
    # Document events
    # ------------------------------------------------------------------

    async def code_change(self, connection_id: str, payload: CodeChangePayload) -> None:
        room = self.room_manager.get(payload.room_id)
        if room is None:
            logger.debug("codeChange for missing room '%s' ignored", payload.room_id)
            return
        room.document = payload.code
        await self._fan_out(
            self.connection_manager.group(payload.room_id, exclude=connection_id),
            frame(CODE_UPDATE, payload.code),
        )

    async def language_change(self, connection_id: str, payload: LanguageChangePayload) -> None:
        room = self.room_manager.get(payload.room_id)
        if room is None:
            logger.debug("languageChange for missing room '%s' ignored", payload.room_id)
            return
        room.language = payload.language
        await self._fan_out(
            self.connection_manager.group(payload.room_id, exclude=connection_id),
            frame(LANGUAGE_UPDATED, {"language": payload.language}),
        )

    # ------------------------------------------------------------------
    # Ephemeral signals (never stored)
    # ------------------------------------------------------------------

    async def send_message(self, connection_id: str, payload: ChatMessage) -> None:
        await self._fan_out(
            self.connection_manager.group(payload.room_id),
            frame(CHAT_MESSAGE, payload.model_dump(by_alias=True)),
        )

    async def typing(self, connection_id: str, payload: TypingPayload) -> None:
        await self._fan_out(
            self.connection_manager.group(payload.room_id, exclude=connection_id),
            frame(USER_TYPING, {"user": payload.user}),
        )

    async def draw(self, connection_id: str, payload: DrawPayload) -> None:
        await self._fan_out(
            self.connection_manager.group(payload.room_id, exclude=connection_id),
            frame(DRAW_UPDATE, payload.draw_data),
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _fan_out(self, targets: Iterable[str], message: Dict[str, Any]) -> None:
        targets = list(targets)
        if not targets:
            logger.debug("[routing] Skipped %s: no recipients", message["type"])
            return
        logger.debug("📨 Relaying %s to %d clients", message["type"], len(targets))
        await self._release_failed(await self.connection_manager.send_many(targets, message))

    async def _announce(self, departure: Departure) -> Set[str]:
        if not departure.room_existed:
            return set()
        return await self.connection_manager.send_many(
            departure.targets, frame(USER_JOINED, departure.members)
        )

    async def _release_failed(self, failed: Iterable[str]) -> None:
        for connection_id in failed:
            await self.connection_manager.close(connection_id)
            await self.disconnect(connection_id)

    async def _reject(self, connection_id: str, reason: str) -> None:
        logger.warning("Dropped event from %s: %s", connection_id, reason)
        await self.connection_manager.send(connection_id, {"type": ERROR, "message": reason})
