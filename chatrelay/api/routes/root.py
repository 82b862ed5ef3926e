# chatrelay/api/routes/root.py

from fastapi import APIRouter

router = APIRouter()


@router.get("/")
async def root():
    """
    Root endpoint - API information.

    Returns basic info about the relay and its endpoints.
    """
    return {
        "message": "chatrelay - in-memory chat room relay",
        "version": "1.0",
        "architecture": "single process, run-to-completion event routing",
        "features": ["named_rooms", "live_presence", "ordered_fan_out"],
        "endpoints": {
            "websocket": "/ws",
            "rooms": "/rooms",
            "health": "/health",
            "metrics": "/metrics",
        },
    }
