# backend/services/session.py

from __future__ import annotations

from typing import Optional, Tuple


class ConnectionSession:
    """Which room and display name a single connection currently occupies."""

    __slots__ = ("connection_id", "room_id", "user_name")

    def __init__(self, connection_id: str) -> None:
        self.connection_id = connection_id
        self.room_id: Optional[str] = None
        self.user_name: Optional[str] = None

    def set(self, room_id: str, user_name: str) -> None:
        self.room_id = room_id
        self.user_name = user_name

    def clear(self) -> None:
        self.room_id = None
        self.user_name = None

    def snapshot(self) -> Tuple[Optional[str], Optional[str]]:
        return self.room_id, self.user_name

    def matches(self, room_id: str, user_name: str) -> bool:
        return self.room_id == room_id and self.user_name == user_name

    @property
    def joined(self) -> bool:
        return self.room_id is not None

    def __repr__(self) -> str:
        return (
            f"ConnectionSession(connection_id={self.connection_id!r}, "
            f"room_id={self.room_id!r}, user_name={self.user_name!r})"
        )
