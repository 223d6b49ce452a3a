import logging
from typing import List

from sqlalchemy.orm import Session

from outreach.core.exceptions import ForbiddenError, NotFoundError, ValidationError
from outreach.crud import crud_channel
from outreach.models import Channel, ChannelMember, ChannelType
from outreach.models.channel_member import OWNER
from outreach.models.user import FOUNDER, INTERN, VOLUNTEER
from outreach.schemas.channel import ChannelCreate
from outreach.schemas.user import CurrentUser

logger = logging.getLogger(__name__)

STAFF_ROLES = (FOUNDER, INTERN)


def _get_channel_or_404(db: Session, channel_id: int) -> Channel:
    channel = crud_channel.get_channel(db, channel_id=channel_id)
    if channel is None:
        raise NotFoundError("Channel not found")
    return channel


def create_channel(db: Session, current_user: CurrentUser, channel: ChannelCreate) -> Channel:
    # Staff may create any channel; volunteers only team channels
    if current_user.role not in STAFF_ROLES and channel.channel_type != ChannelType.TEAM:
        raise ForbiddenError("Volunteers can only create team channels")
    if not channel.name or not channel.name.strip():
        raise ValidationError("Channel name is required")

    db_channel = crud_channel.create_channel(
        db,
        name=channel.name.strip(),
        channel_type=channel.channel_type,
        description=channel.description,
        creator_id=current_user.id,
    )
    logger.info(f"[Channels] Channel {db_channel.id} ({db_channel.channel_type.value}) created by {current_user.id}")
    return db_channel


def list_user_channels(db: Session, current_user: CurrentUser) -> List[Channel]:
    return crud_channel.get_user_channels(db, user_id=current_user.id)


def join_channel(db: Session, current_user: CurrentUser, channel_id: int) -> ChannelMember:
    channel = _get_channel_or_404(db, channel_id)
    if channel.channel_type == ChannelType.ANNOUNCEMENT and current_user.role == VOLUNTEER:
        raise ForbiddenError("Volunteers cannot join announcement channels on their own")
    return crud_channel.add_user_to_channel(db, channel_id=channel_id, user_id=current_user.id)


def leave_channel(db: Session, current_user: CurrentUser, channel_id: int) -> None:
    removed = crud_channel.remove_user_from_channel(db, channel_id=channel_id, user_id=current_user.id)
    if not removed:
        raise NotFoundError("You are not a member of this channel")


def add_member(db: Session, current_user: CurrentUser, channel_id: int, user_id: int) -> ChannelMember:
    _get_channel_or_404(db, channel_id)
    if current_user.role not in STAFF_ROLES:
        membership = crud_channel.get_membership(db, channel_id=channel_id, user_id=current_user.id)
        if membership is None or membership.role != OWNER:
            raise ForbiddenError("Only staff or the channel owner can add members")
    if crud_channel.get_user(db, user_id=user_id) is None:
        raise NotFoundError("User not found")
    return crud_channel.add_user_to_channel(db, channel_id=channel_id, user_id=user_id)


def list_members(db: Session, current_user: CurrentUser, channel_id: int) -> List[ChannelMember]:
    _get_channel_or_404(db, channel_id)
    if not crud_channel.is_channel_member(db, channel_id=channel_id, user_id=current_user.id):
        raise ForbiddenError("You are not a member of this channel")
    return crud_channel.get_channel_members(db, channel_id=channel_id)
