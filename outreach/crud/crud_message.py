"""
Message store accessor.

``MessageRepository`` is the only place that builds queries against the
messages relation. Callers work with its explicit operations instead of
composing filters themselves.
"""
import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import and_, case, func, or_, select
from sqlalchemy.orm import Session

from outreach.core.database import store_guard
from outreach.crud import crud_channel
from outreach.models import ChannelMember, Message, MessageLog
from outreach.models.message import utcnow
from outreach.schemas.message import MessageFilters


def as_utc(value: Optional[datetime.datetime]) -> Optional[datetime.datetime]:
    """Naive timestamps are taken to be UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=datetime.timezone.utc)
    return value.astimezone(datetime.timezone.utc)


# (event_type, payload) for a message_logs row written with the change it describes
AuditEntry = Tuple[str, Dict[str, Any]]


def _like_pattern(text: str) -> str:
    escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class MessageRepository:
    def __init__(self, db: Session):
        self.db = db

    def insert(
        self,
        sender_id: int,
        content: str,
        channel_id: Optional[int] = None,
        recipient_id: Optional[int] = None,
        reply_to_id: Optional[int] = None,
        attachments: Optional[List[Dict[str, Any]]] = None,
        audit: Optional[AuditEntry] = None,
    ) -> Message:
        """Persist a message, and its audit entry when given, in one transaction."""
        db_message = Message(
            sender_id=sender_id,
            content=content,
            channel_id=channel_id,
            recipient_id=recipient_id,
            reply_to_id=reply_to_id,
            attachments=attachments,
        )
        with store_guard(self.db):
            self.db.add(db_message)
            self._stage_log(audit)
            self.db.commit()
            self.db.refresh(db_message)
        return db_message

    def get(self, message_id: int) -> Optional[Message]:
        with store_guard(self.db):
            return self.db.query(Message).filter(
                Message.id == message_id,
                Message.deleted.is_(False)
            ).first()

    def exists_participant(self, channel_id: int, user_id: int) -> bool:
        with store_guard(self.db):
            return crud_channel.is_channel_member(self.db, channel_id=channel_id, user_id=user_id)

    def find_by_filters(self, filters: MessageFilters, viewer_id: Optional[int], limit: int) -> List[Message]:
        """
        Messages matching every supplied filter, oldest first.

        When ``viewer_id`` is given and no channel filter is set, results are
        restricted to what the viewer can see: messages they sent, messages
        addressed to them and messages in channels they belong to.
        """
        query = self.db.query(Message).filter(Message.deleted.is_(False))

        if filters.channel_id is not None:
            query = query.filter(Message.channel_id == filters.channel_id)
        elif viewer_id is not None:
            member_channels = select(ChannelMember.channel_id).where(ChannelMember.user_id == viewer_id)
            query = query.filter(or_(
                Message.sender_id == viewer_id,
                Message.recipient_id == viewer_id,
                Message.channel_id.in_(member_channels),
            ))

        if filters.sender_id is not None:
            query = query.filter(Message.sender_id == filters.sender_id)
        if filters.after is not None:
            query = query.filter(Message.created_at >= as_utc(filters.after))
        if filters.before is not None:
            query = query.filter(Message.created_at <= as_utc(filters.before))
        if filters.q and filters.q.strip():
            query = query.filter(Message.content.ilike(_like_pattern(filters.q.strip()), escape="\\"))

        with store_guard(self.db):
            return query.order_by(Message.created_at.asc(), Message.id.asc()).limit(limit).all()

    def find_for_export(self, channel_id: Optional[int], user_id: Optional[int], limit: int) -> List[Message]:
        query = self.db.query(Message).filter(Message.deleted.is_(False))
        if channel_id is not None:
            query = query.filter(Message.channel_id == channel_id)
        if user_id is not None:
            query = query.filter(or_(Message.sender_id == user_id, Message.recipient_id == user_id))
        with store_guard(self.db):
            return query.order_by(Message.created_at.asc(), Message.id.asc()).limit(limit).all()

    def channel_thread(self, channel_id: int, limit: int) -> List[Message]:
        with store_guard(self.db):
            return self.db.query(Message).filter(
                Message.channel_id == channel_id,
                Message.deleted.is_(False)
            ).order_by(Message.created_at.asc(), Message.id.asc()).limit(limit).all()

    def direct_thread(self, user_a: int, user_b: int, limit: int) -> List[Message]:
        with store_guard(self.db):
            return self._direct_pair_query(user_a, user_b).order_by(
                Message.created_at.asc(), Message.id.asc()
            ).limit(limit).all()

    def count_recent_by_sender(self, sender_id: int, since: datetime.datetime) -> int:
        with store_guard(self.db):
            return self.db.query(Message.id).filter(
                Message.sender_id == sender_id,
                Message.created_at >= as_utc(since)
            ).count()

    def update_content(self, message: Message, content: str, audit: Optional[AuditEntry] = None) -> Message:
        with store_guard(self.db):
            message.content = content
            message.edited_at = utcnow()
            self._stage_log(audit)
            self.db.commit()
            self.db.refresh(message)
        return message

    def soft_delete(self, message: Message, audit: Optional[AuditEntry] = None) -> Message:
        with store_guard(self.db):
            message.deleted = True
            self._stage_log(audit)
            self.db.commit()
            self.db.refresh(message)
        return message

    def log_event(self, event_type: str, payload: Dict[str, Any]) -> MessageLog:
        """Standalone audit entry, for events that write nothing else."""
        with store_guard(self.db):
            entry = self._stage_log((event_type, payload))
            self.db.commit()
        return entry

    def _stage_log(self, audit: Optional[AuditEntry]) -> Optional[MessageLog]:
        if audit is None:
            return None
        event_type, payload = audit
        entry = MessageLog(event_type=event_type, payload=payload)
        self.db.add(entry)
        return entry

    # Conversation list

    def direct_peer_ids(self, user_id: int) -> List[int]:
        """Everyone ``user_id`` has a live direct message with, in either direction."""
        peer = case((Message.sender_id == user_id, Message.recipient_id), else_=Message.sender_id)
        with store_guard(self.db):
            rows = self.db.query(peer).filter(
                Message.channel_id.is_(None),
                Message.deleted.is_(False),
                or_(Message.sender_id == user_id, Message.recipient_id == user_id),
            ).distinct().all()
        return [row[0] for row in rows]

    def latest_direct(self, user_a: int, user_b: int) -> Optional[Message]:
        with store_guard(self.db):
            return self._direct_pair_query(user_a, user_b).order_by(
                Message.created_at.desc(), Message.id.desc()
            ).first()

    def latest_in_channel(self, channel_id: int) -> Optional[Message]:
        with store_guard(self.db):
            return self.db.query(Message).filter(
                Message.channel_id == channel_id,
                Message.deleted.is_(False)
            ).order_by(Message.created_at.desc(), Message.id.desc()).first()

    def count_direct_from(self, sender_id: int, recipient_id: int, since: datetime.datetime) -> int:
        with store_guard(self.db):
            return self.db.query(func.count(Message.id)).filter(
                Message.channel_id.is_(None),
                Message.deleted.is_(False),
                Message.sender_id == sender_id,
                Message.recipient_id == recipient_id,
                Message.created_at >= as_utc(since)
            ).scalar()

    def count_in_channel_from_others(self, channel_id: int, user_id: int, since: datetime.datetime) -> int:
        with store_guard(self.db):
            return self.db.query(func.count(Message.id)).filter(
                Message.channel_id == channel_id,
                Message.deleted.is_(False),
                Message.sender_id != user_id,
                Message.created_at >= as_utc(since)
            ).scalar()

    def _direct_pair_query(self, user_a: int, user_b: int):
        return self.db.query(Message).filter(
            Message.channel_id.is_(None),
            Message.deleted.is_(False),
            or_(
                and_(Message.sender_id == user_a, Message.recipient_id == user_b),
                and_(Message.sender_id == user_b, Message.recipient_id == user_a),
            )
        )
