from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, func, Enum
from sqlalchemy.orm import relationship
from outreach.core.database import Base
import enum

class ChannelType(enum.Enum):
    GENERAL = "general"
    TEAM = "team"
    ANNOUNCEMENT = "announcement"

class Channel(Base):
    __tablename__ = "channels"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    description = Column(String, nullable=False, default="")
    channel_type = Column(Enum(ChannelType, values_callable=lambda x: [e.value for e in x]), nullable=False, default=ChannelType.GENERAL)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    creator = relationship("User")
    participants = relationship("ChannelMember", back_populates="channel", cascade="all, delete-orphan")
    messages = relationship("Message", back_populates="channel", cascade="all, delete-orphan")
