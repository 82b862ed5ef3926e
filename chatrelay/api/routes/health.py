# chatrelay/api/routes/health.py

from fastapi import APIRouter, Request

router = APIRouter()

@router.get("/health")
async def health(request: Request):
    """
    Health check endpoint.

    Returns current system status, connection count and active room count.
    Used by container health probes and monitoring.

    Returns:
        dict: Status, connection count, active room count
    """
    relay = request.app.state.relay
    return {
        "status": "healthy",
        "connections": len(relay.registry),
        "active_rooms_with_members": len(relay.directory),
    }
