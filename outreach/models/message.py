import datetime

from sqlalchemy import Column, Integer, Text, ForeignKey, DateTime, Boolean, JSON, CheckConstraint
from sqlalchemy.orm import relationship
from outreach.core.database import Base


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class Message(Base):
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True, index=True)
    content = Column(Text, nullable=False)

    sender_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    # Exactly one of recipient_id (direct message) / channel_id (channel message)
    recipient_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    channel_id = Column(Integer, ForeignKey("channels.id"), nullable=True, index=True)
    reply_to_id = Column(Integer, ForeignKey("messages.id"), nullable=True)

    attachments = Column(JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
    edited_at = Column(DateTime(timezone=True), nullable=True)
    deleted = Column(Boolean, nullable=False, default=False)

    sender = relationship("User", back_populates="sent_messages", foreign_keys=[sender_id])
    recipient = relationship("User", foreign_keys=[recipient_id])
    channel = relationship("Channel", back_populates="messages")
    reply_to = relationship("Message", remote_side=[id])

    __table_args__ = (
        CheckConstraint(
            "(recipient_id IS NULL) <> (channel_id IS NULL)",
            name="message_single_destination",
        ),
    )
