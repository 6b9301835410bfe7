# backend/core/state.py
from __future__ import annotations

from datetime import datetime, timezone

from services.room_manager import RoomManager
from services.connection_manager import ConnectionManager
from services.lifecycle import LifecycleController
from services.relay import RelayEngine

# Global singletons for app state
room_manager = RoomManager()
connection_manager = ConnectionManager()
lifecycle = LifecycleController(room_manager, connection_manager)
relay = RelayEngine(room_manager, connection_manager, lifecycle)

# Metrics
app_start_time: datetime = datetime.now(timezone.utc)
