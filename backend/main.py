# backend/main.py

from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core import state
from core.config import settings
from core.logging import setup_logging, get_logger
from api.routes import root, health, metrics, rooms
from api import websocket as websocket_module

# Configure logging first
setup_logging()
logger = get_logger(__name__)

# FastAPI app
app = FastAPI(title="Code Room Relay")

# CORS (origins from CORS_ORIGINS, "*" by default)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# REST routes
app.include_router(root.router)
app.include_router(health.router)
app.include_router(metrics.router)
app.include_router(rooms.router)

# WebSocket routes
app.include_router(websocket_module.router)


@app.on_event("startup")
async def startup_event():
    logger.info(
        "🚀 Relay starting - default language '%s'",
        state.room_manager.default_language,
    )


@app.on_event("shutdown")
async def on_shutdown():
    logger.info(
        "Relay shutting down - dropping %d rooms, %d connections",
        len(state.room_manager),
        len(state.connection_manager),
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host=settings.HOST, port=settings.PORT)
