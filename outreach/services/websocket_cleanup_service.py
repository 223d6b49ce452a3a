"""
WebSocket Cleanup Service

Periodically closes realtime sockets that have been idle too long. Closing the
socket ends its endpoint loop, which releases the socket's subscription.
"""

import logging
from typing import Optional

from starlette.websockets import WebSocketState

from outreach.core.config import settings
from outreach.services.connection_manager import ConnectionManager

logger = logging.getLogger(__name__)


async def cleanup_inactive_sessions(manager: ConnectionManager, timeout: Optional[float] = None) -> int:
    """
    Called by APScheduler every WS_CLEANUP_INTERVAL seconds.

    Returns the number of sockets closed.
    """
    timeout = timeout if timeout is not None else settings.WS_IDLE_TIMEOUT
    inactive_connections = manager.get_inactive_connections(timeout)

    if not inactive_connections:
        logger.debug("No inactive connections to clean up")
        return 0

    logger.info(f"Found {len(inactive_connections)} inactive connections to clean up")
    closed = 0
    for stream_key, websocket, idle_time in inactive_connections:
        logger.info(f"Closing inactive stream {stream_key} (idle for {idle_time:.0f}s)")
        try:
            if getattr(websocket, "client_state", WebSocketState.CONNECTED) == WebSocketState.CONNECTED:
                await websocket.close(
                    code=1000,
                    reason=f"Session timeout after {idle_time:.0f}s of inactivity"
                )
        except RuntimeError as e:
            logger.debug(f"Socket for {stream_key} already closed: {e}")
        manager.disconnect(websocket, stream_key)
        closed += 1
    return closed
