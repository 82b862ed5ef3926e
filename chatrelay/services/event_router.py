# chatrelay/services/event_router.py

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, FrozenSet, List, Optional, Protocol

from pydantic import ValidationError

from chatrelay.models.models import (
    ChatMessage,
    JoinRoomPayload,
    LeaveRoomPayload,
    MessagePayload,
    OutboundEvent,
    RoomJoined,
    RoomLeft,
)
from chatrelay.services.connection_registry import ConnectionRegistry, ConnectionState, Identity
from chatrelay.services.room_directory import RoomDirectory

logger = logging.getLogger(__name__)


class Outbox(Protocol):
    """Per-connection sink the transport drains. asyncio.Queue satisfies it."""

    def put_nowait(self, item: OutboundEvent) -> None: ...


# ============================================================================
# EVENT ROUTER
# ============================================================================

class EventRouter:
    """
    Connection state machine sitting between the transport and the rooms.

    States:
        connected  channel open, no identity
        joined     identity bound, member of exactly one room
        closed     terminal, every further event is ignored

    Inbound events (see dispatch):
        join-room   {"room": "...", "username": "..."}
        message     {"room": "...", "message": "...", "sender": "..."}
        leave-room  {"room": "...", "username": "..."}

    Outbound events, written to the connection's outbox:
        room_joined   {"room": "...", "users": [...]}   joiner only
        room_left     {"room": "..."}                   explicit leaver only
        user_joined   "<username> joined room"          other members
        user_left     "<username> left room"            remaining members
        users_update  [...]                             every member after a change
        message       {"sender": "...", "message": "..."}  every member, sender included

    Nothing here awaits: each call runs to completion before the transport
    hands over the next event, which is what keeps membership and fan-out
    in a single order. Delivery is best-effort; a full outbox drops the
    event and nothing is retried.
    """

    def __init__(self, registry: ConnectionRegistry, directory: RoomDirectory) -> None:
        self.registry = registry
        self.directory = directory
        self.directory.set_listener(self)

        # Map: connection_id -> outbox owned for the lifetime of the channel
        self._outboxes: Dict[str, Outbox] = {}

        self._handlers: Dict[str, Callable[[str, Dict[str, Any]], None]] = {
            "join-room": self._on_join_room,
            "message": self._on_message,
            "leave-room": self._on_leave_room,
        }

        # Metrics
        self.message_counter: int = 0
        self.join_counter: int = 0
        self.dropped_counter: int = 0

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def open(self, channel_id: str, outbox: Outbox) -> str:
        connection_id = self.registry.register(channel_id)
        self._outboxes[connection_id] = outbox
        logger.info("✓ Channel %s connected. Total: %d", channel_id, len(self.registry))
        return connection_id

    def close(self, connection_id: str) -> None:
        """Channel went away: implicit leave, then drop the record and outbox."""
        if connection_id not in self.registry:
            return

        channel_id = self.registry.channel_of(connection_id)
        self._outboxes.pop(connection_id, None)
        last_room = self.registry.unregister(connection_id)
        if last_room is not None:
            self.directory.leave(last_room, connection_id)

        logger.info("✗ Channel %s disconnected. Total: %d", channel_id, len(self.registry))

    def state_of(self, connection_id: str) -> ConnectionState:
        return self.registry.state_of(connection_id)

    # ------------------------------------------------------------------
    # Inbound
    # ------------------------------------------------------------------

    def dispatch(self, connection_id: str, event: str, payload: Optional[Dict[str, Any]] = None) -> None:
        if self.registry.state_of(connection_id) is ConnectionState.CLOSED:
            logger.debug("Ignoring '%s' on closed connection %s", event, connection_id)
            return

        handler = self._handlers.get(event)
        if handler is None:
            logger.warning("Ignoring unknown event '%s' from %s", event, connection_id)
            return

        try:
            handler(connection_id, payload or {})
        except ValidationError as e:
            logger.warning("Ignoring malformed '%s' from %s: %s", event, connection_id, e.errors())

    def _on_join_room(self, connection_id: str, payload: Dict[str, Any]) -> None:
        request = JoinRoomPayload.model_validate(payload)
        self.join_room(connection_id, request.room, request.username)

    def _on_message(self, connection_id: str, payload: Dict[str, Any]) -> None:
        request = MessagePayload.model_validate(payload)
        self.send_message(connection_id, request.message)

    def _on_leave_room(self, connection_id: str, payload: Dict[str, Any]) -> None:
        request = LeaveRoomPayload.model_validate(payload)
        self.leave_room(connection_id, request.room)

    def join_room(self, connection_id: str, room: str, username: str) -> bool:
        """
        Bind the connection to `room` as `username`.

        Returns:
            False if the input was blank or the connection is closed
        """
        room, username = room.strip(), username.strip()
        if not room or not username:
            logger.warning("Ignoring join-room from %s: blank room or username", connection_id)
            return False
        if self.registry.state_of(connection_id) is ConnectionState.CLOSED:
            return False

        if self.registry.lookup(connection_id) == Identity(username=username, room=room):
            # Same room, same name: just resend the snapshot
            self._deliver(connection_id, "room_joined", RoomJoined(room=room, users=self.directory.members_of(room)).model_dump())
            return True

        self.directory.join(room, connection_id, username)
        self.registry.bind_identity(connection_id, username, room)
        self.join_counter += 1
        return True

    def send_message(self, connection_id: str, body: str) -> FrozenSet[str]:
        """
        Broadcast `body` to the connection's current room.

        Room and sender always come from the connection's binding.

        Returns:
            Recipient connection ids (empty when ignored)
        """
        identity = self.registry.lookup(connection_id)
        if identity is None or identity.room is None:
            logger.warning("Ignoring message from %s: not in a room", connection_id)
            return frozenset()

        body = body.strip()
        if not body:
            logger.warning("Ignoring blank message from %s", connection_id)
            return frozenset()

        logger.debug("Message from %s in room %s: %s", identity.username, identity.room, body)
        return self.directory.broadcast(identity.room, identity.username, body)

    def leave_room(self, connection_id: str, room: Optional[str] = None) -> bool:
        """
        Explicit leave. The channel stays open, back in the connected state.

        Returns:
            False when there was nothing to leave (no-op)
        """
        identity = self.registry.lookup(connection_id)
        if identity is None or identity.room is None:
            return False
        if room and room != identity.room:
            logger.warning("Ignoring leave-room from %s: not in '%s'", connection_id, room)
            return False

        self.directory.leave(identity.room, connection_id)
        self.registry.clear_identity(connection_id)
        self._deliver(connection_id, "room_left", RoomLeft(room=identity.room).model_dump())
        return True

    # ------------------------------------------------------------------
    # RoomDirectory outputs
    # ------------------------------------------------------------------

    def member_joined(self, room: str, connection_id: str, username: str, members: List[str]) -> None:
        self._deliver(connection_id, "room_joined", RoomJoined(room=room, users=members).model_dump())
        for member_id in self.directory.member_ids(room):
            if member_id != connection_id:
                self._deliver(member_id, "user_joined", f"{username} joined room")
            self._deliver(member_id, "users_update", list(members))

    def member_left(self, room: str, connection_id: str, username: str, members: List[str]) -> None:
        for member_id in self.directory.member_ids(room):
            self._deliver(member_id, "user_left", f"{username} left room")
            self._deliver(member_id, "users_update", list(members))

    def message_broadcast(self, room: str, recipients: FrozenSet[str], sender: str, body: str) -> None:
        data = ChatMessage(sender=sender, message=body).model_dump()
        for member_id in recipients:
            self._deliver(member_id, "message", data)
        self.message_counter += 1

    # ------------------------------------------------------------------
    # Outbound
    # ------------------------------------------------------------------

    def _deliver(self, connection_id: str, event: str, data: Any) -> None:
        outbox = self._outboxes.get(connection_id)
        if outbox is None:
            return
        try:
            outbox.put_nowait(OutboundEvent(event=event, data=data))
        except asyncio.QueueFull:
            self.dropped_counter += 1
            logger.warning("Outbox full for %s, dropped '%s'", connection_id, event)
