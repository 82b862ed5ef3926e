# chatrelay/api/routes/rooms.py

from typing import List

from fastapi import APIRouter, HTTPException, Request

from chatrelay.models.models import RoomInfo

router = APIRouter()

# ============================================================================
# ROOM PRESENCE ENDPOINTS (read-only)
# ============================================================================

@router.get("/rooms", response_model=List[RoomInfo])
async def list_rooms(request: Request):
    """
    List every active room with who is online in it.

    Rooms only exist while they have members, so every entry has a
    member_count of at least 1.

    Returns:
        List[RoomInfo]: Active rooms, in creation order
    """
    directory = request.app.state.relay.directory
    return [
        RoomInfo(name=name, member_count=len(users), users=users)
        for name, users in directory.rooms().items()
    ]


@router.get("/rooms/{name}", response_model=RoomInfo)
async def get_room(name: str, request: Request):
    """
    Get the membership snapshot of a single room.

    Args:
        name: Room name (case-sensitive)

    Returns:
        RoomInfo: Room with its current users

    Raises:
        HTTPException: 404 if no one is in the room
    """
    directory = request.app.state.relay.directory
    if name not in directory:
        raise HTTPException(status_code=404, detail="Room not found")

    users = directory.members_of(name)
    return RoomInfo(name=name, member_count=len(users), users=users)
