# chatrelay/services/room_directory.py

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterator, List, Optional, Protocol
import logging

from chatrelay.services.connection_registry import ConnectionRegistry

logger = logging.getLogger(__name__)


class RoomListener(Protocol):
    """Receives the directory's outputs, in the order they happen."""

    def member_joined(self, room: str, connection_id: str, username: str, members: List[str]) -> None: ...

    def member_left(self, room: str, connection_id: str, username: str, members: List[str]) -> None: ...

    def message_broadcast(self, room: str, recipients: FrozenSet[str], sender: str, body: str) -> None: ...


@dataclass
class Room:
    name: str
    # connection_id -> display username, in join order
    members: Dict[str, str] = field(default_factory=dict)

    def usernames(self) -> List[str]:
        return list(self.members.values())


# ============================================================================
# ROOM DIRECTORY
# ============================================================================

class RoomDirectory:
    """
    In-memory map of room name -> member connections.

    Rooms exist only while they have members: the first join creates a room
    and the leave that empties it deletes it. A connection is a member of at
    most one room; joining another room first leaves the current one (the
    current room is resolved through the ConnectionRegistry).

    All operations are synchronous and run to completion, so under a single
    event loop they are applied strictly in the order they are called.
    Membership changes and broadcasts are reported to the listener.

    Data Structures:
        _rooms: Maps room name -> Room
                Example: {"lobby": Room("lobby", {"c1": "alice", "c2": "bob"})}
    """

    def __init__(self, registry: ConnectionRegistry, listener: Optional[RoomListener] = None) -> None:
        self._registry = registry
        self._rooms: Dict[str, Room] = {}
        self._listener = listener

    def set_listener(self, listener: Optional[RoomListener]) -> None:
        self._listener = listener

    def join(self, room: str, connection_id: str, username: str) -> List[str]:
        """
        Add a connection to a room, creating the room if needed.

        Args:
            room: Room name (already trimmed, non-empty)
            connection_id: Joining connection
            username: Display name, duplicates allowed

        Returns:
            Usernames in the room after the add, in join order

        Re-joining the room the connection is already in under the same
        username changes nothing and notifies nobody. Any other re-join is
        a leave of the current room followed by a fresh join.
        """
        identity = self._registry.lookup(connection_id)
        current = identity.room if identity else None

        if current is not None:
            existing = self._rooms.get(current)
            if current == room and existing and existing.members.get(connection_id) == username:
                return existing.usernames()
            self.leave(current, connection_id)

        target = self._rooms.get(room)
        if target is None:
            target = Room(name=room)
            self._rooms[room] = target
            logger.info("Room '%s' created", room)

        target.members[connection_id] = username
        snapshot = target.usernames()
        logger.info("→ %s joined '%s' (%d members)", username, room, len(snapshot))

        if self._listener is not None:
            self._listener.member_joined(room, connection_id, username, list(snapshot))
        return snapshot

    def leave(self, room: str, connection_id: str) -> bool:
        """
        Remove a connection from a room.

        Returns:
            True if the connection was a member, False otherwise (no-op)
        """
        target = self._rooms.get(room)
        if target is None or connection_id not in target.members:
            return False

        username = target.members.pop(connection_id)
        snapshot = target.usernames()
        logger.info("← %s left '%s' (%d members)", username, room, len(snapshot))
        self._prune(room)

        if self._listener is not None:
            self._listener.member_left(room, connection_id, username, list(snapshot))
        return True

    def broadcast(self, room: str, sender: str, body: str) -> FrozenSet[str]:
        """
        Fan a message out to every current member, sender included.

        Returns:
            Recipient connection ids. Empty if the room no longer exists.
        """
        target = self._rooms.get(room)
        if target is None:
            logger.debug("[routing] Skipped broadcast: room '%s' is gone", room)
            return frozenset()

        recipients = frozenset(target.members)
        logger.debug("📨 Broadcasting to room '%s': %d clients", room, len(recipients))

        if self._listener is not None:
            self._listener.message_broadcast(room, recipients, sender, body)
        return recipients

    def members_of(self, room: str) -> List[str]:
        target = self._rooms.get(room)
        return target.usernames() if target else []

    def member_ids(self, room: str) -> List[str]:
        target = self._rooms.get(room)
        return list(target.members) if target else []

    def rooms(self) -> Dict[str, List[str]]:
        """Snapshot of every active room -> usernames."""
        return {name: target.usernames() for name, target in self._rooms.items()}

    def _prune(self, room: str) -> None:
        target = self._rooms.get(room)
        if target is None or target.members:
            return
        del self._rooms[room]
        logger.info("Room '%s' removed (empty)", room)

    def __contains__(self, room: object) -> bool:
        return room in self._rooms

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._rooms))

    def __len__(self) -> int:
        return len(self._rooms)
