from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, func, UniqueConstraint
from sqlalchemy.orm import relationship
from outreach.core.database import Base

OWNER = "owner"
MEMBER = "member"

class ChannelMember(Base):
    __tablename__ = "channel_members"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    channel_id = Column(Integer, ForeignKey("channels.id"), nullable=False, index=True)
    role = Column(String, nullable=False, default=MEMBER)
    joined_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User", back_populates="channel_memberships")
    channel = relationship("Channel", back_populates="participants")

    # A user is a member of a channel at most once
    __table_args__ = (
        UniqueConstraint('channel_id', 'user_id', name='unique_channel_member'),
    )
