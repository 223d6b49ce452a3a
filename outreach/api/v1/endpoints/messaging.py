import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session

from outreach.core.dependencies import get_current_user, get_db, require_role
from outreach.models.user import FOUNDER
from outreach.schemas import message as message_schema
from outreach.schemas.user import CurrentUser
from outreach.services import export_service, messaging_service

router = APIRouter()


@router.post("/send")
def send_message(
    message: message_schema.MessageSend,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    messaging_service.send_message(db, current_user=current_user, message=message)
    return {"ok": True}


@router.get("/search")
def search_messages(
    q: Optional[str] = None,
    channel_id: Optional[int] = Query(None, alias="channelId"),
    sender_id: Optional[int] = Query(None, alias="senderId"),
    after: Optional[datetime.datetime] = None,
    before: Optional[datetime.datetime] = None,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    filters = message_schema.MessageFilters(
        q=q, channel_id=channel_id, sender_id=sender_id, after=after, before=before
    )
    messages = messaging_service.search_messages(db, current_user=current_user, filters=filters)
    return {"ok": True, "data": [message_schema.Message.model_validate(m) for m in messages]}


@router.get("/export")
def export_messages(
    channel_id: Optional[int] = Query(None, alias="channelId"),
    user_id: Optional[int] = Query(None, alias="userId"),
    format: str = "csv",
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_role(FOUNDER)),
):
    """Founder-only export of messages as a CSV attachment or a JSON array."""
    content, media_type = export_service.export_messages(
        db, export_format=format, channel_id=channel_id, user_id=user_id
    )
    headers = {}
    if media_type == "text/csv":
        headers["Content-Disposition"] = "attachment; filename=messages-export.csv"
    return Response(content=content, media_type=media_type, headers=headers)


@router.patch("/messages/{message_id}")
def edit_message(
    message_id: int,
    update: message_schema.MessageUpdate,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    messaging_service.edit_message(db, current_user=current_user, message_id=message_id, content=update.content)
    return {"ok": True}


@router.delete("/messages/{message_id}")
def delete_message(
    message_id: int,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    messaging_service.delete_message(db, current_user=current_user, message_id=message_id)
    return {"ok": True}


@router.get("/channels/{channel_id}/messages")
def read_channel_messages(
    channel_id: int,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    messages = messaging_service.get_channel_thread(db, current_user=current_user, channel_id=channel_id)
    return {"ok": True, "data": [message_schema.Message.model_validate(m) for m in messages]}


@router.get("/direct/{peer_id}")
def read_direct_messages(
    peer_id: int,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    messages = messaging_service.get_direct_thread(db, current_user=current_user, peer_id=peer_id)
    return {"ok": True, "data": [message_schema.Message.model_validate(m) for m in messages]}


@router.get("/conversations")
def read_conversations(
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    conversations = messaging_service.list_conversations(db, current_user=current_user)
    return {"ok": True, "conversations": conversations}
