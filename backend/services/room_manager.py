# backend/services/room_manager.py

from __future__ import annotations

from typing import Dict, List, Optional
import logging

from core.config import settings
from models.models import Room

logger = logging.getLogger(__name__)

# ============================================================================
# ROOM STORE
# ============================================================================

class RoomManager:
    """
    In-memory store of live collaboration rooms.

    A room only exists while it has members: it is created on demand by the
    first join and removed the moment its membership drops to zero. Nothing is
    persisted, a restart starts with an empty store.

    None of the methods here await anything, so on the event loop each call
    runs to completion before another connection can touch the same room.

    Attributes:
        rooms: Dictionary mapping room_id -> Room object

    Usage:
        room_manager = RoomManager()
        room = room_manager.get_or_create("r1")
        room.add_member("alice")
        room_manager.remove_if_empty("r1")
    """

    def __init__(self, default_language: Optional[str] = None) -> None:
        self.rooms: Dict[str, Room] = {}
        self.default_language = default_language or settings.DEFAULT_LANGUAGE

    def get(self, room_id: str) -> Optional[Room]:
        """
        Get a room by ID.

        Returns:
            Room object if it currently exists, None otherwise
        """
        return self.rooms.get(room_id)

    def get_or_create(self, room_id: str) -> Room:
        """
        Get a room, creating a fresh one if the ID is not present.

        A fresh room has no members, an empty document and the default
        language.
        """
        room = self.rooms.get(room_id)
        if room is None:
            room = Room(id=room_id, language=self.default_language)
            self.rooms[room_id] = room
            logger.info("✓ Created room '%s'", room_id)
        return room

    def remove_if_empty(self, room_id: str) -> bool:
        """
        Delete a room if, and only if, it has no members left.

        Returns:
            True if the room was deleted, False if it is missing or occupied
        """
        room = self.rooms.get(room_id)
        if room is None or not room.is_empty:
            return False
        del self.rooms[room_id]
        logger.info("✗ Deleted empty room '%s'", room_id)
        return True

    def list_rooms(self) -> List[Room]:
        return list(self.rooms.values())

    def __len__(self) -> int:
        return len(self.rooms)

    def __contains__(self, room_id: str) -> bool:
        return room_id in self.rooms
