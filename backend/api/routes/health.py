# backend/api/routes/health.py

from fastapi import APIRouter

from core import state

router = APIRouter()

@router.get("/health")
async def health():
    """
    Health check endpoint.

    Returns current system status, connection count and room counts.
    Used by container health probes and monitoring.

    Returns:
        dict: Status, connection count, room count, room groups with listeners
    """
    return {
        "status": "healthy",
        "connections": len(state.connection_manager),
        "rooms": len(state.room_manager),
        "active_rooms_with_members": len(state.connection_manager.rooms),
    }
