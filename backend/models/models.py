# backend/models/models.py
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ============================================================================
# ROOM STATE
# ============================================================================

class Room(BaseModel):
    """
    Authoritative state of one collaboration room.

    members maps display name -> join time. A dict keeps names unique and
    enumerates them in join order when the member list is broadcast.
    """

    id: str
    members: Dict[str, datetime] = Field(default_factory=dict)
    document: str = ""
    language: str
    created_at: datetime = Field(default_factory=_utcnow)

    def add_member(self, user_name: str) -> bool:
        """Add a name; returns False if it was already present."""
        if user_name in self.members:
            return False
        self.members[user_name] = _utcnow()
        return True

    def remove_member(self, user_name: str) -> bool:
        """Remove a name; returns False if it was not present."""
        return self.members.pop(user_name, None) is not None

    def member_names(self) -> List[str]:
        return list(self.members)

    @property
    def is_empty(self) -> bool:
        return not self.members


class RoomSummary(BaseModel):
    id: str
    members: List[str]
    member_count: int
    language: str
    document_length: int
    created_at: datetime


class RoomDetail(RoomSummary):
    document: str


# ============================================================================
# INBOUND EVENT PAYLOADS
# ============================================================================

class EventPayload(BaseModel):
    """Base for inbound payloads: camelCase on the wire, snake_case in code."""

    model_config = ConfigDict(populate_by_name=True)

    room_id: str = Field(alias="roomId", min_length=1)


class JoinPayload(EventPayload):
    user_name: str = Field(alias="userName", min_length=1)


class LeaveRoomPayload(EventPayload):
    user_name: str = Field(alias="userName", min_length=1)


class CodeChangePayload(EventPayload):
    code: str


class LanguageChangePayload(EventPayload):
    language: str


class ChatMessage(EventPayload):
    # Rebroadcast verbatim, so unknown client fields are kept
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    user: str
    content: str


class TypingPayload(EventPayload):
    user: str


class DrawPayload(EventPayload):
    draw_data: Any = Field(alias="drawData")


class ClientFrame(BaseModel):
    """Envelope of every inbound WebSocket frame."""

    action: str = Field(min_length=1)
    data: Optional[Dict[str, Any]] = None
