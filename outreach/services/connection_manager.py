import logging
import time
from typing import Dict, List, Tuple
from fastapi import WebSocket

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Tracks open realtime sockets per stream ("channel:<id>" or "direct:<a>:<b>")."""

    def __init__(self):
        self.active_connections: Dict[str, List[WebSocket]] = {}
        # Track last activity timestamp for each websocket: {stream_key: {websocket_id: timestamp}}
        self.last_activity: Dict[str, Dict[int, float]] = {}

    @staticmethod
    def channel_key(channel_id: int) -> str:
        return f"channel:{channel_id}"

    @staticmethod
    def direct_key(user_a: int, user_b: int) -> str:
        low, high = sorted((user_a, user_b))
        return f"direct:{low}:{high}"

    def connect(self, websocket: WebSocket, stream_key: str):
        self.active_connections.setdefault(stream_key, []).append(websocket)
        self.last_activity.setdefault(stream_key, {})[id(websocket)] = time.time()
        logger.info(f"[ConnectionManager] Connected to {stream_key}. Total: {len(self.active_connections[stream_key])}")

    def disconnect(self, websocket: WebSocket, stream_key: str):
        connections = self.active_connections.get(stream_key)
        if not connections or websocket not in connections:
            return
        connections.remove(websocket)
        self.last_activity.get(stream_key, {}).pop(id(websocket), None)
        logger.info(f"[ConnectionManager] Disconnected from {stream_key}. Remaining: {len(connections)}")
        if not connections:
            del self.active_connections[stream_key]
            self.last_activity.pop(stream_key, None)

    def update_activity(self, websocket: WebSocket, stream_key: str):
        """Update the last activity timestamp for a specific websocket connection"""
        if stream_key in self.last_activity:
            self.last_activity[stream_key][id(websocket)] = time.time()

    def connection_count(self, stream_key: str) -> int:
        return len(self.active_connections.get(stream_key, []))

    def get_inactive_connections(self, timeout: float) -> List[Tuple[str, WebSocket, float]]:
        """
        Returns list of (stream_key, websocket, idle_time) for connections
        idle longer than ``timeout`` seconds.
        """
        current_time = time.time()
        inactive = []
        for stream_key, connections in list(self.active_connections.items()):
            activity = self.last_activity.get(stream_key, {})
            for websocket in connections:
                idle_time = current_time - activity.get(id(websocket), current_time)
                if idle_time > timeout:
                    inactive.append((stream_key, websocket, idle_time))
        return inactive

    async def disconnect_all(self):
        logger.info("[ConnectionManager] Disconnecting all clients...")
        for stream_key, connections in list(self.active_connections.items()):
            for websocket in list(connections):
                try:
                    await websocket.close(code=1001)
                except RuntimeError as e:
                    # Already closed by the client
                    logger.debug(f"Error closing websocket for {stream_key}: {e}")
        self.active_connections.clear()
        self.last_activity.clear()


manager = ConnectionManager()
