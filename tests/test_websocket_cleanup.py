import asyncio
from unittest.mock import AsyncMock, MagicMock

from starlette.websockets import WebSocketState

from outreach.services.connection_manager import ConnectionManager
from outreach.services.websocket_cleanup_service import cleanup_inactive_sessions


def _socket():
    websocket = MagicMock()
    websocket.client_state = WebSocketState.CONNECTED
    websocket.close = AsyncMock()
    return websocket


def test_direct_key_is_order_independent():
    assert ConnectionManager.direct_key(7, 3) == ConnectionManager.direct_key(3, 7) == "direct:3:7"


def test_idle_sockets_are_closed_and_forgotten():
    manager = ConnectionManager()
    idle, fresh = _socket(), _socket()
    manager.connect(idle, "channel:1")
    manager.connect(fresh, "channel:1")
    manager.last_activity["channel:1"][id(idle)] -= 120

    closed = asyncio.run(cleanup_inactive_sessions(manager, timeout=60))

    assert closed == 1
    idle.close.assert_awaited_once()
    assert idle.close.await_args.kwargs["code"] == 1000
    fresh.close.assert_not_awaited()
    assert manager.active_connections["channel:1"] == [fresh]


def test_nothing_to_clean():
    manager = ConnectionManager()
    manager.connect(_socket(), "direct:1:2")

    assert asyncio.run(cleanup_inactive_sessions(manager, timeout=60)) == 0
    assert manager.connection_count("direct:1:2") == 1


def test_disconnect_all():
    manager = ConnectionManager()
    sockets = [_socket(), _socket()]
    manager.connect(sockets[0], "channel:1")
    manager.connect(sockets[1], "direct:1:2")

    asyncio.run(manager.disconnect_all())

    for websocket in sockets:
        websocket.close.assert_awaited_once_with(code=1001)
    assert manager.active_connections == {}
