# chatrelay/api/routes/metrics.py
from fastapi import APIRouter, Request
from datetime import datetime, timezone

router = APIRouter()

@router.get("/metrics")
async def get_metrics(request: Request):
    """
    Traffic and capacity metrics for this relay process.

    Returns:
        dict: Message statistics (total, per second, daily projection),
              joins, dropped deliveries, and current capacity
              (connections, active rooms, largest room)

    Example Response:
        {
            "total_messages": 1200,
            "uptime_hours": 2.5,
            "messages_per_second": 0.13,
            "daily_messages_projected": 11520,
            "total_joins": 40,
            "dropped_deliveries": 0,
            "concurrent_connections": 12,
            "active_rooms_with_members": 3,
            "largest_room_members": 7
        }
    """
    relay = request.app.state.relay
    router_ = relay.router

    uptime_seconds = (datetime.now(timezone.utc) - relay.app_start_time).total_seconds()

    if uptime_seconds > 0:
        messages_per_second = router_.message_counter / uptime_seconds
        daily_messages = int(messages_per_second * 86400)
    else:
        messages_per_second = 0
        daily_messages = 0

    rooms = relay.directory.rooms()

    return {
        # Statistics
        "total_messages": router_.message_counter,
        "uptime_hours": round(uptime_seconds / 3600, 2) if uptime_seconds > 0 else 0,
        "messages_per_second": round(messages_per_second, 2),
        "daily_messages_projected": daily_messages,
        "total_joins": router_.join_counter,
        "dropped_deliveries": router_.dropped_counter,

        # Capacity
        "concurrent_connections": len(relay.registry),
        "active_rooms_with_members": len(rooms),
        "largest_room_members": max((len(users) for users in rooms.values()), default=0),
    }
