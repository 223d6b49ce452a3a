import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

import pytest
from starlette.websockets import WebSocketDisconnect

from outreach.api.v1.endpoints.realtime import _forward
from outreach.services.connection_manager import manager
from outreach.services.realtime import change_feed


def _channel_url(channel_id, token):
    return f"/ws/messaging/channels/{channel_id}?token={token}"


def test_ping_pong(client, token_for, volunteer, channel):
    with client.websocket_connect(_channel_url(channel.id, token_for(volunteer))) as websocket:
        websocket.send_json({"type": "ping"})
        assert websocket.receive_json() == {"type": "pong"}


def test_channel_stream_receives_new_messages(client, token_for, auth_headers, founder, volunteer, channel):
    with client.websocket_connect(_channel_url(channel.id, token_for(volunteer))) as websocket:
        websocket.send_json({"type": "ping"})
        websocket.receive_json()
        assert change_feed.subscriber_count == 1
        assert manager.connection_count(manager.channel_key(channel.id)) == 1

        response = client.post(
            "/api/v1/messaging/send",
            json={"content": "van leaves at 8", "channelId": channel.id},
            headers=auth_headers(founder),
        )
        assert response.status_code == 200

        event = websocket.receive_json()
        assert event["type"] == "INSERT"
        assert event["payload"]["content"] == "van leaves at 8"
        assert event["payload"]["sender_id"] == founder.id

    assert change_feed.subscriber_count == 0
    assert manager.connection_count(manager.channel_key(channel.id)) == 0


def test_direct_stream_receives_pair_messages(client, token_for, auth_headers, founder, volunteer, intern):
    url = f"/ws/messaging/direct/{founder.id}?token={token_for(volunteer)}"
    with client.websocket_connect(url) as websocket:
        websocket.send_json({"type": "ping"})
        websocket.receive_json()

        # Not part of this conversation
        client.post("/api/v1/messaging/send", json={"content": "for intern", "recipientId": intern.id},
                    headers=auth_headers(founder))
        client.post("/api/v1/messaging/send", json={"content": "for volunteer", "recipientId": volunteer.id},
                    headers=auth_headers(founder))

        event = websocket.receive_json()
        assert event["payload"]["content"] == "for volunteer"

    assert change_feed.subscriber_count == 0


def test_non_member_is_refused(client, token_for, outsider, channel):
    with pytest.raises(WebSocketDisconnect) as exc_info:
        with client.websocket_connect(_channel_url(channel.id, token_for(outsider))):
            pass
    assert exc_info.value.code == 1008
    assert change_feed.subscriber_count == 0


def test_missing_token_is_refused(client, channel):
    with pytest.raises(WebSocketDisconnect) as exc_info:
        with client.websocket_connect(f"/ws/messaging/channels/{channel.id}"):
            pass
    assert exc_info.value.code == 1008


def test_direct_stream_with_self_is_refused(client, token_for, volunteer):
    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect(f"/ws/messaging/direct/{volunteer.id}?token={token_for(volunteer)}"):
            pass


def test_events_wait_for_the_handshake():
    async def scenario():
        websocket = MagicMock()
        websocket.send_text = AsyncMock()
        accepted = asyncio.Event()
        send = _forward(websocket, "INSERT", accepted)

        pending = asyncio.create_task(send({"id": 1, "content": "early"}))
        await asyncio.sleep(0)
        sent_before_accept = websocket.send_text.await_count

        accepted.set()
        await pending
        return sent_before_accept, websocket.send_text.await_args.args[0]

    sent_before_accept, frame = asyncio.run(scenario())
    assert sent_before_accept == 0
    assert json.loads(frame) == {"type": "INSERT", "payload": {"id": 1, "content": "early"}}
