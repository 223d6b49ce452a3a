from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
import datetime

from outreach.models.channel import ChannelType


class ChannelCreate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = ""
    channel_type: ChannelType = Field(default=ChannelType.GENERAL, alias="type")

    model_config = ConfigDict(populate_by_name=True)


class Channel(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    channel_type: ChannelType
    created_by: Optional[int] = None
    created_at: Optional[datetime.datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ChannelMemberCreate(BaseModel):
    user_id: int = Field(alias="userId")

    model_config = ConfigDict(populate_by_name=True)


class ChannelMember(BaseModel):
    id: int
    channel_id: int
    user_id: int
    role: str
    joined_at: Optional[datetime.datetime] = None

    model_config = ConfigDict(from_attributes=True)
