from sqlalchemy import Column, Integer, String, Boolean, DateTime, func
from sqlalchemy.orm import relationship

from outreach.core.database import Base

FOUNDER = "founder"
INTERN = "intern"
VOLUNTEER = "volunteer"
ROLES = (FOUNDER, INTERN, VOLUNTEER)

class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    name = Column(String, nullable=True)
    role = Column(String, nullable=False, default=VOLUNTEER)  # founder / intern / volunteer
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    channel_memberships = relationship("ChannelMember", back_populates="user", cascade="all, delete-orphan")
    sent_messages = relationship("Message", back_populates="sender", foreign_keys="Message.sender_id")
