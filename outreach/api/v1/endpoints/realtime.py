import asyncio
import json
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, WebSocket, WebSocketDisconnect, status
from sqlalchemy.orm import Session

from outreach.core.dependencies import get_db, get_user_from_token
from outreach.core.exceptions import StoreError
from outreach.crud import crud_channel
from outreach.schemas.realtime import DELETE, INSERT, UPDATE, WebSocketMessage
from outreach.schemas.user import CurrentUser
from outreach.services.connection_manager import manager
from outreach.services.realtime import Subscription, change_feed

logger = logging.getLogger(__name__)

router = APIRouter()


async def authenticate_websocket_user(websocket: WebSocket, db: Session, token: Optional[str]) -> Optional[CurrentUser]:
    """Returns None (after closing the socket) if authentication fails."""
    try:
        return get_user_from_token(db, token)
    except HTTPException:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason="Unauthorized")
        return None
    except StoreError as e:
        logger.error(f"[Realtime] Authentication lookup failed: {e.message}")
        await websocket.close(code=status.WS_1011_INTERNAL_ERROR, reason="Store unavailable")
        return None


def _forward(websocket: WebSocket, event_type: str, accepted: asyncio.Event):
    async def send(row):
        # Events raised before the handshake completes wait in the subscription queue
        await accepted.wait()
        await websocket.send_text(WebSocketMessage(type=event_type, payload=row).model_dump_json())
    return send


async def _stream(websocket: WebSocket, stream_key: str, **subscription_kwargs):
    accepted = asyncio.Event()
    subscription = Subscription(
        change_feed,
        on_insert=_forward(websocket, INSERT, accepted),
        on_update=_forward(websocket, UPDATE, accepted),
        on_delete=_forward(websocket, DELETE, accepted),
        **subscription_kwargs,
    )
    # Subscribe before accepting so the client cannot miss events sent right after connecting
    async with subscription:
        await websocket.accept()
        accepted.set()
        manager.connect(websocket, stream_key)
        try:
            while True:
                data = await websocket.receive_text()
                manager.update_activity(websocket, stream_key)
                try:
                    message = json.loads(data)
                except json.JSONDecodeError:
                    logger.debug(f"[Realtime] Non-JSON data on {stream_key}: {data[:100]}")
                    continue
                if isinstance(message, dict) and message.get("type") == "ping":
                    await websocket.send_text(json.dumps({"type": "pong"}))
        except WebSocketDisconnect:
            logger.info(f"[Realtime] Client disconnected from {stream_key}")
        finally:
            manager.disconnect(websocket, stream_key)


@router.websocket("/channels/{channel_id}")
async def channel_stream(
    websocket: WebSocket,
    channel_id: int,
    token: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    current_user = await authenticate_websocket_user(websocket, db, token)
    if current_user is None:
        return
    if not crud_channel.is_channel_member(db, channel_id=channel_id, user_id=current_user.id):
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason="Forbidden")
        return
    # Release the connection; the socket may stay open for hours
    db.close()

    await _stream(websocket, manager.channel_key(channel_id), channel_id=channel_id)


@router.websocket("/direct/{peer_id}")
async def direct_stream(
    websocket: WebSocket,
    peer_id: int,
    token: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    current_user = await authenticate_websocket_user(websocket, db, token)
    if current_user is None:
        return
    if peer_id == current_user.id or crud_channel.get_user(db, user_id=peer_id) is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason="Unknown peer")
        return
    db.close()

    await _stream(
        websocket,
        manager.direct_key(current_user.id, peer_id),
        user_id=current_user.id,
        peer_id=peer_id,
    )
