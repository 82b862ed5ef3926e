# chatrelay/api/websocket.py

from __future__ import annotations

import asyncio
import contextlib
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from chatrelay.core.state import RelayState
from chatrelay.models.models import InboundFrame, OutboundEvent

logger = logging.getLogger(__name__)

router = APIRouter()

# ============================================================================
# WEBSOCKET ENDPOINT
# ============================================================================

@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """
    WebSocket endpoint: one relay connection per socket.

    Protocol:
    =========
    Every frame, in both directions, is {"event": "<name>", "data": <payload>}.

    Client -> Server Events:
    ------------------------
    Join Room:
        {"event": "join-room", "data": {"room": "lobby", "username": "alice"}}
        Response: {"event": "room_joined", "data": {"room": "lobby", "users": ["alice"]}}

    Send Message:
        {"event": "message", "data": {"room": "lobby", "message": "hi", "sender": "alice"}}
        Every member, sender included:
            {"event": "message", "data": {"sender": "alice", "message": "hi"}}

    Leave Room:
        {"event": "leave-room", "data": {"room": "lobby", "username": "alice"}}
        Response: {"event": "room_left", "data": {"room": "lobby"}}

    Server -> Client Notifications:
    -------------------------------
        {"event": "user_joined", "data": "bob joined room"}
        {"event": "user_left", "data": "bob left room"}
        {"event": "users_update", "data": ["alice", "bob"]}

    Lifecycle:
    ==========
    1. Socket accepted, connection registered with no identity
    2. A writer task drains the connection's outbox into the socket
    3. Each inbound frame is handed to the EventRouter, one at a time
    4. On disconnect the router performs the implicit leave

    Error Handling:
        - Binary frames, invalid JSON, unknown shape: logged and ignored
        - Unknown events, blank fields: ignored by the router
        - Connection errors: treated as a disconnect, never retried
    """
    relay: RelayState = websocket.app.state.relay
    settings = websocket.app.state.settings

    await websocket.accept()

    outbox: asyncio.Queue[OutboundEvent] = asyncio.Queue(maxsize=settings.OUTBOUND_QUEUE_SIZE)
    channel_id = _channel_label(websocket)
    connection_id = relay.router.open(channel_id, outbox)
    writer = asyncio.create_task(_drain_outbox(websocket, outbox, channel_id))

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000))

            data = message.get("text")
            if data is None:
                logger.warning("Ignoring non-text frame from %s", channel_id)
                continue

            try:
                frame = InboundFrame.model_validate_json(data)
            except ValidationError:
                logger.warning("Ignoring invalid frame from %s: %.200s", channel_id, data)
                continue

            logger.debug("Websocket input: Event: %s, Data: %s", frame.event, frame.data)
            relay.router.dispatch(connection_id, frame.event, frame.data)

    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.error("WebSocket error: %s", e)
    finally:
        relay.router.close(connection_id)
        writer.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await writer


async def _drain_outbox(websocket: WebSocket, outbox: asyncio.Queue, channel_id: str) -> None:
    """Send queued events in FIFO order until cancelled or the socket fails."""
    try:
        while True:
            event = await outbox.get()
            await websocket.send_json(event.to_frame())
    except Exception as e:
        # The reader side sees the disconnect and closes the connection
        logger.error("Send error on %s: %s", channel_id, e)


def _channel_label(websocket: WebSocket) -> str:
    if websocket.client is None:
        return "unknown"
    return f"{websocket.client.host}:{websocket.client.port}"
