from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List

from outreach.core.dependencies import get_current_user, get_db
from outreach.schemas import channel as channel_schema
from outreach.schemas.user import CurrentUser
from outreach.services import channel_service

router = APIRouter()

@router.post("/", response_model=channel_schema.Channel)
def create_channel(
    channel: channel_schema.ChannelCreate,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    return channel_service.create_channel(db, current_user=current_user, channel=channel)

@router.get("/", response_model=List[channel_schema.Channel])
def read_user_channels(
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    return channel_service.list_user_channels(db, current_user=current_user)

@router.post("/{channel_id}/join", response_model=channel_schema.ChannelMember)
def join_channel(
    channel_id: int,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    return channel_service.join_channel(db, current_user=current_user, channel_id=channel_id)

@router.post("/{channel_id}/leave")
def leave_channel(
    channel_id: int,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    channel_service.leave_channel(db, current_user=current_user, channel_id=channel_id)
    return {"ok": True}

@router.get("/{channel_id}/members", response_model=List[channel_schema.ChannelMember])
def get_channel_members(
    channel_id: int,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    return channel_service.list_members(db, current_user=current_user, channel_id=channel_id)

@router.post("/{channel_id}/members", response_model=channel_schema.ChannelMember)
def add_channel_member(
    channel_id: int,
    member: channel_schema.ChannelMemberCreate,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    return channel_service.add_member(db, current_user=current_user, channel_id=channel_id, user_id=member.user_id)
