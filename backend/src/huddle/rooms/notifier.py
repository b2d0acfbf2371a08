"""Delivery of server initiated JSON-RPC notifications to open connections."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Iterable

from fastapi.websockets import WebSocket, WebSocketDisconnect, WebSocketState

from app.monitoring.metrics import rpc_connections

from ..rpc.protocol import RpcNotification

logger = logging.getLogger(__name__)


async def safe_send_json(websocket: WebSocket, data: dict[str, Any]) -> bool:
    """Send JSON through *websocket*, returning ``False`` if it is gone."""

    if websocket.application_state != WebSocketState.CONNECTED:
        return False
    try:
        await websocket.send_json(data)
        return True
    except (WebSocketDisconnect, RuntimeError) as e:
        logger.debug("Failed to send websocket message: %s", e)
        return False


class ConnectionNotifier:
    """Track open signaling sockets by connection id."""

    def __init__(self) -> None:
        self._connections: Dict[str, WebSocket] = {}
        self._lock = asyncio.Lock()

    async def connect(self, connection_id: str, websocket: WebSocket) -> None:
        async with self._lock:
            if connection_id not in self._connections:
                rpc_connections.inc()
            self._connections[connection_id] = websocket

    async def disconnect(self, connection_id: str) -> None:
        async with self._lock:
            if self._connections.pop(connection_id, None) is not None:
                rpc_connections.dec()

    async def send(self, connection_id: str, payload: dict[str, Any]) -> bool:
        websocket = self._connections.get(connection_id)
        if websocket is None:
            return False
        return await safe_send_json(websocket, payload)

    async def notify(self, connection_id: str, method: str, params: dict[str, Any]) -> bool:
        message = RpcNotification(method=method, params=params).to_wire()
        return await self.send(connection_id, message)

    async def notify_many(
        self,
        connection_ids: Iterable[str],
        method: str,
        params: dict[str, Any],
    ) -> None:
        message = RpcNotification(method=method, params=params).to_wire()
        for connection_id in list(connection_ids):
            await self.send(connection_id, message)

    def __contains__(self, connection_id: object) -> bool:
        return connection_id in self._connections


__all__ = ["ConnectionNotifier", "safe_send_json"]
