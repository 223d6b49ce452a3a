from sqlalchemy import Column, Integer, String, DateTime, JSON, func
from outreach.core.database import Base

class MessageLog(Base):
    """Append-only audit trail of messaging events."""
    __tablename__ = "message_logs"

    id = Column(Integer, primary_key=True, index=True)
    event_type = Column(String(50), nullable=False, index=True)  # message_sent, rate_limited, ...
    payload = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
