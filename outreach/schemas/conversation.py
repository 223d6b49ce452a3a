from pydantic import BaseModel, ConfigDict
from typing import List, Literal, Optional
import datetime


class ConversationParticipant(BaseModel):
    id: int
    name: Optional[str] = None
    role: str

    model_config = ConfigDict(from_attributes=True)


class LastMessage(BaseModel):
    id: int
    content: str
    sender_id: int
    sender_name: Optional[str] = None
    timestamp: datetime.datetime


class Conversation(BaseModel):
    """One inbox entry: a direct conversation with ``peer_id`` or a channel."""
    type: Literal["direct", "channel"]
    channel_id: Optional[int] = None
    peer_id: Optional[int] = None
    name: Optional[str] = None
    participants: List[ConversationParticipant]
    last_message: Optional[LastMessage] = None
    unread_count: int = 0
