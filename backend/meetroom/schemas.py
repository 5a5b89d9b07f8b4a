# meetroom/schemas.py
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class CreateRoomRequest(BaseModel):
    code: str = Field(..., min_length=1)
    hostId: Optional[str] = None


class RoomStatusResponse(BaseModel):
    exists: bool
    isActive: bool
    hostId: Optional[str] = None
    participants: List[Dict[str, Any]] = []


class UserCreate(BaseModel):
    name: str = Field(..., min_length=1)
    username: str = Field(..., min_length=1)
    email: Optional[str] = None
    googleId: Optional[str] = None


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    username: str
    email: Optional[str] = None
    created_at: datetime


class HistoryCreate(BaseModel):
    meetingCode: str = Field(..., min_length=1)
    action: Literal["started", "joined"]


class HistoryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: str
    meeting_code: str
    action: str
    timestamp: datetime


# Inbound channel messages. Signaling messages have no model:
# their payload is forwarded without inspection.

class ChannelUser(BaseModel):
    id: str = Field(..., min_length=1)
    username: str = "Guest"


class JoinRoomMessage(BaseModel):
    room: str = Field(..., min_length=1)
    user: ChannelUser


class LeaveRoomMessage(BaseModel):
    room: str = Field(..., min_length=1)
    userId: Optional[str] = None


class ChatMessage(BaseModel):
    room: str = Field(..., min_length=1)
    username: str
    message: str


class EndRoomMessage(BaseModel):
    room: str = Field(..., min_length=1)
