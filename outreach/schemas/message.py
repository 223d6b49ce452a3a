from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional
import datetime


class MessageSend(BaseModel):
    """Body of POST /messaging/send. Destination rules are enforced by the messaging service."""
    content: Optional[str] = None
    channel_id: Optional[int] = Field(default=None, alias="channelId")
    recipient_id: Optional[int] = Field(default=None, alias="recipientId")
    reply_to_id: Optional[int] = Field(default=None, alias="replyToId")
    attachments: Optional[List[Dict[str, Any]]] = None

    model_config = ConfigDict(populate_by_name=True)


class MessageUpdate(BaseModel):
    content: Optional[str] = None


class MessageFilters(BaseModel):
    q: Optional[str] = None
    channel_id: Optional[int] = None
    sender_id: Optional[int] = None
    after: Optional[datetime.datetime] = None
    before: Optional[datetime.datetime] = None

    def is_empty(self) -> bool:
        has_text = bool(self.q and self.q.strip())
        return not has_text and all(
            value is None for value in (self.channel_id, self.sender_id, self.after, self.before)
        )


class Message(BaseModel):
    id: int
    sender_id: int
    recipient_id: Optional[int] = None
    channel_id: Optional[int] = None
    reply_to_id: Optional[int] = None
    content: str
    attachments: Optional[List[Dict[str, Any]]] = None
    created_at: datetime.datetime
    edited_at: Optional[datetime.datetime] = None

    model_config = ConfigDict(from_attributes=True)


class MessageExportRecord(BaseModel):
    id: int
    sender_id: int
    recipient_id: Optional[int] = None
    channel_id: Optional[int] = None
    content: str
    created_at: datetime.datetime

    model_config = ConfigDict(from_attributes=True)
