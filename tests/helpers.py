"""Shared fakes for relay tests."""

from typing import Any, List, Tuple

from chatrelay.models.models import OutboundEvent


class RecordingOutbox:
    """Collects outbound events in delivery order, like an unbounded queue."""

    def __init__(self):
        self.events: List[OutboundEvent] = []

    def put_nowait(self, item: OutboundEvent) -> None:
        self.events.append(item)

    def frames(self) -> List[Tuple[str, Any]]:
        return [(e.event, e.data) for e in self.events]

    def named(self, event: str) -> List[Any]:
        return [e.data for e in self.events if e.event == event]

    def clear(self) -> None:
        self.events.clear()


class RecordingListener:
    """RoomListener that keeps every callback as a tuple."""

    def __init__(self):
        self.calls = []

    def member_joined(self, room, connection_id, username, members):
        self.calls.append(("joined", room, connection_id, username, members))

    def member_left(self, room, connection_id, username, members):
        self.calls.append(("left", room, connection_id, username, members))

    def message_broadcast(self, room, recipients, sender, body):
        self.calls.append(("message", room, recipients, sender, body))


def bound_usernames(registry, room):
    """connection_id -> username for every registry record bound to `room`."""
    bound = {}
    for cid in registry:
        identity = registry.lookup(cid)
        if identity.room == room and identity.username is not None:
            bound[cid] = identity.username
    return bound
