# backend/api/routes/metrics.py
from fastapi import APIRouter
from datetime import datetime, timezone

from core import state

router = APIRouter()

@router.get("/metrics")
async def get_metrics():
    """
    Relay usage metrics.

    Returns:
        dict: Event statistics and capacity figures:
            - total events handled, events per second, uptime
            - concurrent connections, live rooms, members across rooms

    Example Response:
        {
            "total_events": 1200,
            "uptime_hours": 0.5,
            "events_per_second": 0.67,
            "concurrent_connections": 4,
            "total_rooms": 2,
            "total_members": 4
        }
    """
    uptime_seconds = (datetime.now(timezone.utc) - state.app_start_time).total_seconds()
    total_events = state.relay.events_processed

    if uptime_seconds > 0:
        events_per_second = total_events / uptime_seconds
    else:
        events_per_second = 0

    rooms = state.room_manager.list_rooms()

    return {
        # Statistics
        "total_events": total_events,
        "uptime_hours": round(uptime_seconds / 3600, 2) if uptime_seconds > 0 else 0,
        "events_per_second": round(events_per_second, 2),

        # Capacity
        "concurrent_connections": len(state.connection_manager),
        "total_rooms": len(rooms),
        "total_members": sum(len(room.members) for room in rooms),
    }
