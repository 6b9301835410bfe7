# backend/services/lifecycle.py

from __future__ import annotations

from typing import List, NamedTuple, Optional
import logging

from services.connection_manager import ConnectionManager
from services.room_manager import RoomManager

logger = logging.getLogger(__name__)


class Departure(NamedTuple):
    """
    Outcome of removing a member from a room.

    room_existed: False when the room was already gone, in which case there is
                  nothing to announce
    members:      member names left in the room (empty if it was deleted)
    targets:      connection ids that should hear about the new member list
    """

    room_id: str
    user_name: str
    room_existed: bool
    members: List[str]
    targets: List[str]


# ============================================================================
# MEMBERSHIP LIFECYCLE
# ============================================================================

class LifecycleController:
    """
    The one place a member leaves a room.

    Explicit leaves, the implicit leave performed when a joined connection
    joins again, and transport disconnects all go through remove_member(), so
    membership, room garbage collection and session state can't drift apart.
    Everything here is synchronous; callers do the sending afterwards using
    the returned snapshot.
    """

    def __init__(self, room_manager: RoomManager, connection_manager: ConnectionManager) -> None:
        self.room_manager = room_manager
        self.connection_manager = connection_manager

    def remove_member(self, connection_id: str, room_id: str, user_name: str) -> Departure:
        """
        Remove user_name from room_id on behalf of connection_id.

        Steps:
            1. Drop the name from the room's members
            2. Delete the room if nobody is left
            3. If the connection's session is exactly (room_id, user_name),
               clear it and stop addressing room traffic to the connection
        """
        room = self.room_manager.get(room_id)
        room_existed = room is not None

        if room is not None:
            room.remove_member(user_name)
            self.room_manager.remove_if_empty(room_id)

        session = self.connection_manager.get_session(connection_id)
        if session is not None and session.matches(room_id, user_name):
            session.clear()
            self.connection_manager.leave_group(connection_id, room_id)

        if room_existed:
            logger.info("← %s left '%s'", user_name, room_id)
        else:
            logger.debug("Leave for missing room '%s' ignored", room_id)

        remaining = self.room_manager.get(room_id)
        return Departure(
            room_id=room_id,
            user_name=user_name,
            room_existed=room_existed,
            members=remaining.member_names() if remaining is not None else [],
            targets=self.connection_manager.group(room_id),
        )

    def release(self, connection_id: str) -> Optional[Departure]:
        """
        Tear down a connection that is going away.

        Leaves the session's current room (if any), then discards the session
        and the connection. Releasing an unknown or already released
        connection does nothing.

        Returns:
            The Departure for the room that was left, or None
        """
        session = self.connection_manager.get_session(connection_id)
        if session is None:
            return None

        departure = None
        room_id, user_name = session.snapshot()
        if room_id is not None and user_name is not None:
            departure = self.remove_member(connection_id, room_id, user_name)

        self.connection_manager.disconnect(connection_id)
        return departure
