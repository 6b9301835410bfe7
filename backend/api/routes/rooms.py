# backend/api/routes/rooms.py

from typing import List

from fastapi import APIRouter, HTTPException

from core import state
from models.models import Room, RoomDetail, RoomSummary

router = APIRouter()

# ============================================================================
# ROOM INTROSPECTION ENDPOINTS
# ============================================================================

def _summary(room: Room) -> RoomSummary:
    return RoomSummary(
        id=room.id,
        members=room.member_names(),
        member_count=len(room.members),
        language=room.language,
        document_length=len(room.document),
        created_at=room.created_at,
    )


@router.get("/rooms", response_model=List[RoomSummary])
async def list_rooms():
    """
    List all live rooms.

    Rooms only exist while someone is in them, so this is also the list of
    active collaboration sessions. Documents are left out; use
    /rooms/{room_id} to read one.
    """
    return [_summary(room) for room in state.room_manager.list_rooms()]


@router.get("/rooms/{room_id}", response_model=RoomDetail)
async def get_room(room_id: str):
    """
    Get details of a specific room, including its current document.

    Raises:
        HTTPException: 404 if the room does not exist (or has emptied out)
    """
    room = state.room_manager.get(room_id)
    if not room:
        raise HTTPException(status_code=404, detail="Room not found")

    return RoomDetail(**_summary(room).model_dump(), document=room.document)
