# chatrelay/models/models.py
from pydantic import BaseModel, field_validator
from typing import Any, Dict, List, Optional


# ============================================================================
# INBOUND (client -> relay)
# ============================================================================

class InboundFrame(BaseModel):
    event: str
    data: Dict[str, Any] = {}

class JoinRoomPayload(BaseModel):
    room: str
    username: str

    @field_validator("room", "username")
    @classmethod
    def strip_whitespace(cls, value: str) -> str:
        return value.strip()

class MessagePayload(BaseModel):
    message: str
    # room/sender are informational, the relay uses the connection's binding
    room: Optional[str] = None
    sender: Optional[str] = None

    @field_validator("message")
    @classmethod
    def strip_whitespace(cls, value: str) -> str:
        return value.strip()

class LeaveRoomPayload(BaseModel):
    room: Optional[str] = None
    username: Optional[str] = None

    @field_validator("room")
    @classmethod
    def strip_whitespace(cls, value: Optional[str]) -> Optional[str]:
        return value.strip() if value is not None else None


# ============================================================================
# OUTBOUND (relay -> client)
# ============================================================================

class OutboundEvent(BaseModel):
    event: str
    data: Any = None

    def to_frame(self) -> Dict[str, Any]:
        return self.model_dump()

class ChatMessage(BaseModel):
    sender: str
    message: str

class RoomJoined(BaseModel):
    room: str
    users: List[str]

class RoomLeft(BaseModel):
    room: str


# ============================================================================
# REST
# ============================================================================

class RoomInfo(BaseModel):
    name: str
    member_count: int = 0
    users: List[str] = []
