from pydantic import BaseModel, ConfigDict, Field
from typing import Any


class Member(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    username: str


class Envelope(BaseModel):
    """Inbound frame: {"event": "...", "data": {...}}"""
    event: str
    data: Any = None


class RoomLimits(BaseModel):
    max_participants: int = Field(serialization_alias="maxParticipants")


class JoinedRoom(BaseModel):
    self_id: str = Field(serialization_alias="selfId")
    participants: list[Member]
    limits: RoomLimits


class JoinError(BaseModel):
    code: str
    message: str


class SignalOut(BaseModel):
    # data is relayed untouched
    from_: str = Field(serialization_alias="from")
    data: Any = None


class ChatMessageOut(BaseModel):
    from_: str = Field(serialization_alias="from")
    sender_id: str = Field(serialization_alias="senderId")
    text: str
    at: int


class RoomDetailsResponse(BaseModel):
    max_participants: int = Field(serialization_alias="maxParticipants")
    online_count: int = Field(serialization_alias="onlineCount")
    participants: list[Member]
    is_full: bool = Field(serialization_alias="isFull")


class IceServer(BaseModel):
    urls: str


class ClientConfigResponse(BaseModel):
    ice_servers: list[IceServer] = Field(serialization_alias="iceServers")
    max_participants: int = Field(serialization_alias="maxParticipants")
    chat_max_length: int = Field(serialization_alias="chatMaxLength")
