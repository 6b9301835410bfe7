# backend/api/routes/root.py

from fastapi import APIRouter

router = APIRouter()


@router.get("/")
async def root():
    """
    Root endpoint - API information.

    Returns basic info about the relay and its endpoints.
    """
    return {
        "message": "Code Room Relay",
        "version": "1.0",
        "consistency": "last-write-wins per room",
        "features": ["shared_document", "language_sync", "chat", "typing", "drawing"],
        "endpoints": {
            "websocket": "/ws",
            "rooms": "/rooms",
            "health": "/health",
            "metrics": "/metrics",
        },
    }
