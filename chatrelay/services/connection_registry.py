# chatrelay/services/connection_registry.py

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterator, NamedTuple, Optional
import logging
import uuid

logger = logging.getLogger(__name__)


class ConnectionState(str, Enum):
    CONNECTED = "connected"
    JOINED = "joined"
    CLOSED = "closed"


class Identity(NamedTuple):
    username: Optional[str]
    room: Optional[str]


@dataclass
class Connection:
    connection_id: str
    channel_id: str
    username: Optional[str] = None
    room: Optional[str] = None
    state: ConnectionState = ConnectionState.CONNECTED


# ============================================================================
# CONNECTION REGISTRY
# ============================================================================

class ConnectionRegistry:
    """
    Maps each live transport channel to the identity bound to it.

    A record is created unbound when the channel opens, gets a
    (username, room) binding on join, loses it on explicit leave, and is
    removed when the channel closes. The registry holds no cross-connection
    state; room membership lives in the RoomDirectory.
    """

    def __init__(self) -> None:
        self._connections: Dict[str, Connection] = {}

    def register(self, channel_id: str) -> str:
        connection_id = uuid.uuid4().hex
        self._connections[connection_id] = Connection(
            connection_id=connection_id, channel_id=channel_id
        )
        logger.debug("Registered connection %s for channel %s", connection_id, channel_id)
        return connection_id

    def bind_identity(self, connection_id: str, username: str, room: str) -> None:
        """Bind (username, room), replacing whatever was bound before."""
        connection = self._connections.get(connection_id)
        if connection is None:
            return
        connection.username = username
        connection.room = room
        connection.state = ConnectionState.JOINED

    def clear_identity(self, connection_id: str) -> None:
        connection = self._connections.get(connection_id)
        if connection is None:
            return
        connection.username = None
        connection.room = None
        connection.state = ConnectionState.CONNECTED

    def unregister(self, connection_id: str) -> Optional[str]:
        """
        Remove the record.

        Returns:
            The room the connection was last bound to, so the caller can
            perform the matching leave. None if unbound or unknown.
        """
        connection = self._connections.pop(connection_id, None)
        if connection is None:
            return None
        connection.state = ConnectionState.CLOSED
        return connection.room

    def lookup(self, connection_id: str) -> Optional[Identity]:
        connection = self._connections.get(connection_id)
        if connection is None:
            return None
        return Identity(username=connection.username, room=connection.room)

    def state_of(self, connection_id: str) -> ConnectionState:
        connection = self._connections.get(connection_id)
        if connection is None:
            return ConnectionState.CLOSED
        return connection.state

    def channel_of(self, connection_id: str) -> Optional[str]:
        connection = self._connections.get(connection_id)
        return connection.channel_id if connection else None

    def __contains__(self, connection_id: object) -> bool:
        return connection_id in self._connections

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._connections))

    def __len__(self) -> int:
        return len(self._connections)
