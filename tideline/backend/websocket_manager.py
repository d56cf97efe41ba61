"""Tideline — WebSocket Connection Manager."""

import logging

from fastapi import WebSocket

from backend.models import WebSocketMessage

logger = logging.getLogger("tideline.ws")


class ConnectionManager:
    """Manages WebSocket connections and broadcasts alert updates to all clients."""

    def __init__(self):
        self._connections: list[WebSocket] = []

    async def connect(self, websocket: WebSocket):
        await websocket.accept()
        self._connections.append(websocket)
        logger.info("WebSocket client connected (%d total)", len(self._connections))

    def disconnect(self, websocket: WebSocket):
        if websocket in self._connections:
            self._connections.remove(websocket)
        logger.info("WebSocket client disconnected (%d remaining)", len(self._connections))

    @staticmethod
    def encode(action: str, data) -> str:
        return WebSocketMessage(action=action, data=data).model_dump_json()

    async def broadcast(self, action: str, data):
        """Broadcast one envelope to all connected clients."""
        if not self._connections:
            return

        payload = self.encode(action, data)
        disconnected = []

        for ws in self._connections:
            try:
                await ws.send_text(payload)
            except Exception as e:
                logger.debug("Dropping WebSocket client: %s", e)
                disconnected.append(ws)

        for ws in disconnected:
            self.disconnect(ws)

    async def send_to(self, websocket: WebSocket, action: str, data):
        """Send an envelope to a specific client."""
        try:
            await websocket.send_text(self.encode(action, data))
        except Exception:
            self.disconnect(websocket)

    @property
    def connection_count(self) -> int:
        return len(self._connections)
