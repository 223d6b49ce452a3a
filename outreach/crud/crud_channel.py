from sqlalchemy.orm import Session
from outreach.core.database import store_guard
from outreach.models import Channel, ChannelMember, ChannelType, User
from outreach.models.channel_member import MEMBER, OWNER
from typing import List, Optional

# CRUD for Channel
def create_channel(db: Session, name: str, channel_type: ChannelType, description: str, creator_id: int) -> Channel:
    db_channel = Channel(name=name, channel_type=channel_type, description=description or "", created_by=creator_id)
    with store_guard(db):
        db.add(db_channel)
        db.flush()
        # The creator owns the channel
        db.add(ChannelMember(channel_id=db_channel.id, user_id=creator_id, role=OWNER))
        db.commit()
        db.refresh(db_channel)
    return db_channel

def get_channel(db: Session, channel_id: int) -> Optional[Channel]:
    with store_guard(db):
        return db.query(Channel).filter(Channel.id == channel_id).first()

def get_user_channels(db: Session, user_id: int) -> List[Channel]:
    with store_guard(db):
        return db.query(Channel).join(ChannelMember).filter(
            ChannelMember.user_id == user_id
        ).order_by(Channel.name.asc()).all()

# CRUD for ChannelMember
def is_channel_member(db: Session, channel_id: int, user_id: int) -> bool:
    """Single existence lookup against the participant relation. Never cached."""
    with store_guard(db):
        return db.query(
            db.query(ChannelMember.id).filter(
                ChannelMember.channel_id == channel_id,
                ChannelMember.user_id == user_id
            ).exists()
        ).scalar()

def get_membership(db: Session, channel_id: int, user_id: int) -> Optional[ChannelMember]:
    with store_guard(db):
        return db.query(ChannelMember).filter(
            ChannelMember.channel_id == channel_id,
            ChannelMember.user_id == user_id
        ).first()

def add_user_to_channel(db: Session, channel_id: int, user_id: int, role: str = MEMBER) -> ChannelMember:
    existing = get_membership(db, channel_id=channel_id, user_id=user_id)
    if existing:
        return existing
    db_membership = ChannelMember(channel_id=channel_id, user_id=user_id, role=role)
    with store_guard(db):
        db.add(db_membership)
        db.commit()
        db.refresh(db_membership)
    return db_membership

def remove_user_from_channel(db: Session, channel_id: int, user_id: int) -> bool:
    with store_guard(db):
        result = db.query(ChannelMember).filter(
            ChannelMember.channel_id == channel_id,
            ChannelMember.user_id == user_id
        ).delete()
        db.commit()
    return result > 0

def get_channel_members(db: Session, channel_id: int) -> List[ChannelMember]:
    with store_guard(db):
        return db.query(ChannelMember).filter(
            ChannelMember.channel_id == channel_id
        ).order_by(ChannelMember.id.asc()).all()

def get_user(db: Session, user_id: int) -> Optional[User]:
    with store_guard(db):
        return db.query(User).filter(User.id == user_id).first()

def get_users(db: Session, user_ids: List[int]) -> List[User]:
    if not user_ids:
        return []
    with store_guard(db):
        return db.query(User).filter(User.id.in_(user_ids)).all()
