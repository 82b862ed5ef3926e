# chatrelay/core/state.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone

from chatrelay.services.connection_registry import ConnectionRegistry
from chatrelay.services.room_directory import RoomDirectory
from chatrelay.services.event_router import EventRouter


@dataclass
class RelayState:
    """Everything one relay instance owns. Attached to app.state.relay."""

    registry: ConnectionRegistry
    directory: RoomDirectory
    router: EventRouter
    app_start_time: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


def build_state() -> RelayState:
    registry = ConnectionRegistry()
    directory = RoomDirectory(registry=registry)
    router = EventRouter(registry=registry, directory=directory)
    return RelayState(registry=registry, directory=directory, router=router)
