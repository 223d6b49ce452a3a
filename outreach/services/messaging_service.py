"""
Messaging Service

Send, search, edit and delete messages on behalf of an authenticated caller,
and list the caller's conversations. Every write authorizes the caller,
commits the change together with its audit log entry in one transaction and
publishes the resulting change on the realtime feed.
"""
import logging
from datetime import timedelta
from typing import List, Optional

from sqlalchemy.orm import Session

from outreach.core.config import settings
from outreach.core.exceptions import (
    ForbiddenError,
    NotFoundError,
    RateLimitError,
    ValidationError,
)
from outreach.core.database import store_guard
from outreach.crud import crud_channel
from outreach.crud.crud_message import MessageRepository, as_utc
from outreach.models import Message
from outreach.models.message import utcnow
from outreach.models.user import FOUNDER, INTERN
from outreach.schemas.conversation import Conversation, ConversationParticipant, LastMessage
from outreach.schemas.message import MessageFilters, MessageSend
from outreach.schemas.realtime import ChangeEvent, DELETE, INSERT, UPDATE
from outreach.schemas.user import CurrentUser
from outreach.services.realtime import ChangeFeed, change_feed, message_row

logger = logging.getLogger(__name__)

MODERATOR_ROLES = (FOUNDER, INTERN)
RATE_LIMIT_WINDOW = timedelta(seconds=60)


def _clean_content(content: Optional[str]) -> str:
    if not isinstance(content, str) or not content.strip():
        raise ValidationError("Message content is required")
    return content


def _check_rate_limit(repo: MessageRepository, sender_id: int) -> None:
    since = utcnow() - RATE_LIMIT_WINDOW
    recent = repo.count_recent_by_sender(sender_id, since)
    if recent >= settings.MESSAGE_RATE_LIMIT_PER_MINUTE:
        repo.log_event("rate_limited", {"senderId": sender_id})
        logger.warning(f"[Messaging] Sender {sender_id} rate limited ({recent} messages in the last minute)")
        raise RateLimitError()


def _check_reply_target(repo: MessageRepository, reply_to_id: int, channel_id: Optional[int],
                        sender_id: int, recipient_id: Optional[int]) -> None:
    parent = repo.get(reply_to_id)
    if parent is None:
        raise NotFoundError("Reply target not found")
    if channel_id is not None:
        same_conversation = parent.channel_id == channel_id
    else:
        same_conversation = parent.channel_id is None and {parent.sender_id, parent.recipient_id} == {sender_id, recipient_id}
    if not same_conversation:
        raise NotFoundError("Reply target not found")


def send_message(
    db: Session,
    current_user: CurrentUser,
    message: MessageSend,
    feed: ChangeFeed = change_feed,
) -> Message:
    content = _clean_content(message.content)

    has_channel = message.channel_id is not None
    has_recipient = message.recipient_id is not None
    if has_channel == has_recipient:
        raise ValidationError("Provide exactly one of channelId or recipientId")
    if has_recipient and message.recipient_id == current_user.id:
        raise ValidationError("Cannot send a direct message to yourself")

    repo = MessageRepository(db)
    _check_rate_limit(repo, current_user.id)

    if has_channel:
        if crud_channel.get_channel(db, channel_id=message.channel_id) is None:
            raise NotFoundError("Channel not found")
        if not repo.exists_participant(message.channel_id, current_user.id):
            raise ForbiddenError("You are not a member of this channel")
    elif crud_channel.get_user(db, user_id=message.recipient_id) is None:
        raise NotFoundError("Recipient not found")

    if message.reply_to_id is not None:
        _check_reply_target(repo, message.reply_to_id, message.channel_id, current_user.id, message.recipient_id)

    db_message = repo.insert(
        sender_id=current_user.id,
        content=content,
        channel_id=message.channel_id,
        recipient_id=message.recipient_id,
        reply_to_id=message.reply_to_id,
        attachments=message.attachments,
        audit=("message_sent", {
            "senderId": current_user.id,
            "channelId": message.channel_id,
            "recipientId": message.recipient_id,
        }),
    )
    logger.info(
        f"[Messaging] Message {db_message.id} sent by {current_user.id} "
        f"(channel={message.channel_id}, recipient={message.recipient_id})"
    )

    feed.publish(ChangeEvent(type=INSERT, record=message_row(db_message)))
    return db_message


def search_messages(db: Session, current_user: CurrentUser, filters: MessageFilters) -> List[Message]:
    if filters.is_empty():
        raise ValidationError("Provide at least one search filter")
    if filters.after and filters.before and as_utc(filters.after) > as_utc(filters.before):
        raise ValidationError("'after' must not be later than 'before'")

    repo = MessageRepository(db)
    if filters.channel_id is not None and not repo.exists_participant(filters.channel_id, current_user.id):
        raise ForbiddenError("You are not a member of this channel")

    return repo.find_by_filters(filters, viewer_id=current_user.id, limit=settings.SEARCH_RESULT_LIMIT)


def _get_live_message(repo: MessageRepository, message_id: int) -> Message:
    db_message = repo.get(message_id)
    if db_message is None:
        raise NotFoundError("Message not found")
    return db_message


def edit_message(
    db: Session,
    current_user: CurrentUser,
    message_id: int,
    content: Optional[str],
    feed: ChangeFeed = change_feed,
) -> Message:
    repo = MessageRepository(db)
    db_message = _get_live_message(repo, message_id)
    if db_message.sender_id != current_user.id:
        raise ForbiddenError("Only the sender can edit this message")

    new_content = _clean_content(content)
    old_row = message_row(db_message)
    db_message = repo.update_content(
        db_message, new_content, audit=("message_edited", {"messageId": message_id, "editorId": current_user.id})
    )

    feed.publish(ChangeEvent(type=UPDATE, record=message_row(db_message), old_record=old_row))
    return db_message


def delete_message(
    db: Session,
    current_user: CurrentUser,
    message_id: int,
    feed: ChangeFeed = change_feed,
) -> None:
    repo = MessageRepository(db)
    db_message = _get_live_message(repo, message_id)
    if db_message.sender_id != current_user.id and current_user.role not in MODERATOR_ROLES:
        raise ForbiddenError("Only the sender or a moderator can delete this message")

    db_message = repo.soft_delete(
        db_message, audit=("message_deleted", {"messageId": message_id, "deletedBy": current_user.id})
    )
    logger.info(f"[Messaging] Message {message_id} deleted by {current_user.id}")

    feed.publish(ChangeEvent(type=DELETE, old_record=message_row(db_message)))


def get_channel_thread(db: Session, current_user: CurrentUser, channel_id: int) -> List[Message]:
    repo = MessageRepository(db)
    if crud_channel.get_channel(db, channel_id=channel_id) is None:
        raise NotFoundError("Channel not found")
    if not repo.exists_participant(channel_id, current_user.id):
        raise ForbiddenError("You are not a member of this channel")
    return repo.channel_thread(channel_id, limit=settings.SEARCH_RESULT_LIMIT)


def get_direct_thread(db: Session, current_user: CurrentUser, peer_id: int) -> List[Message]:
    if crud_channel.get_user(db, user_id=peer_id) is None:
        raise NotFoundError("User not found")
    repo = MessageRepository(db)
    return repo.direct_thread(current_user.id, peer_id, limit=settings.SEARCH_RESULT_LIMIT)


def _last_message(db_message: Optional[Message]) -> Optional[LastMessage]:
    if db_message is None:
        return None
    return LastMessage(
        id=db_message.id,
        content=db_message.content,
        sender_id=db_message.sender_id,
        sender_name=db_message.sender.name if db_message.sender else None,
        timestamp=db_message.created_at,
    )


def list_conversations(db: Session, current_user: CurrentUser) -> List[Conversation]:
    """
    The caller's inbox: every user they have exchanged direct messages with and
    every channel they belong to, each with its latest live message.

    There are no read receipts, so ``unread_count`` counts messages from others
    within the last CONVERSATION_UNREAD_WINDOW_HOURS. Conversations with recent
    activity come first; channels without messages follow, by name.
    """
    repo = MessageRepository(db)
    since = utcnow() - timedelta(hours=settings.CONVERSATION_UNREAD_WINDOW_HOURS)
    me = ConversationParticipant(id=current_user.id, name=current_user.name, role=current_user.role)
    conversations = []

    with store_guard(db):
        peers = crud_channel.get_users(db, user_ids=repo.direct_peer_ids(current_user.id))
        for peer in peers:
            conversations.append(Conversation(
                type="direct",
                peer_id=peer.id,
                name=peer.name,
                participants=[me, ConversationParticipant.model_validate(peer)],
                last_message=_last_message(repo.latest_direct(current_user.id, peer.id)),
                unread_count=repo.count_direct_from(peer.id, current_user.id, since),
            ))

        for channel in crud_channel.get_user_channels(db, user_id=current_user.id):
            members = crud_channel.get_channel_members(db, channel_id=channel.id)
            conversations.append(Conversation(
                type="channel",
                channel_id=channel.id,
                name=channel.name,
                participants=[ConversationParticipant.model_validate(member.user) for member in members],
                last_message=_last_message(repo.latest_in_channel(channel.id)),
                unread_count=repo.count_in_channel_from_others(channel.id, current_user.id, since),
            ))

    active = [c for c in conversations if c.last_message is not None]
    quiet = [c for c in conversations if c.last_message is None]
    active.sort(key=lambda c: (as_utc(c.last_message.timestamp), c.last_message.id), reverse=True)
    quiet.sort(key=lambda c: c.name or "")
    return active + quiet
