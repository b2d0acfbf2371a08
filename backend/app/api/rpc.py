"""WebSocket endpoint carrying the JSON-RPC signaling protocol."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any, Dict, TypeVar

from fastapi import APIRouter, WebSocket
from fastapi.websockets import WebSocketDisconnect, WebSocketState

from huddle.rooms.backend import ParticipantRequest
from huddle.rooms.notifier import safe_send_json
from huddle.rpc import ConnectionContext, new_connection_id
from huddle.rpc.commands import LeaveRoom

from app.config import get_settings
from app.services import get_signaling_services

router = APIRouter(tags=["rpc"])

settings = get_settings()

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def iter_keepalive_messages(
    websocket: WebSocket,
    receiver: Callable[[], Awaitable[T]],
    *,
    timeout_seconds: float | int | None,
    ping_interval_seconds: float | int | None,
    ping_payload: Dict[str, Any] | None = None,
) -> AsyncIterator[T]:
    """Yield messages from *receiver* while sending keepalive pings when idle."""

    ping_payload = ping_payload or {"jsonrpc": "2.0", "method": "ping", "params": {}}
    timeout = float(timeout_seconds) if timeout_seconds else 0.0
    interval = float(ping_interval_seconds) if ping_interval_seconds else 0.0
    last_activity = time.monotonic()
    last_ping_sent: float | None = None

    while True:
        try:
            if timeout > 0:
                message = await asyncio.wait_for(receiver(), timeout=timeout)
            else:
                message = await receiver()
        except asyncio.TimeoutError:
            if websocket.application_state != WebSocketState.CONNECTED:
                break

            now = time.monotonic()
            should_ping = interval <= 0 or (
                now - last_activity >= interval
                and (last_ping_sent is None or now - last_ping_sent >= interval)
            )
            if should_ping:
                if not await safe_send_json(websocket, ping_payload):
                    break
                last_ping_sent = now
            continue
        except asyncio.CancelledError:  # pragma: no cover - cooperative cancellation
            raise
        except (RuntimeError, WebSocketDisconnect):
            break
        else:
            last_activity = time.monotonic()
            last_ping_sent = None
            yield message


async def websocket_rpc(websocket: WebSocket) -> None:
    """Serve one signaling connection until the client goes away."""

    services = get_signaling_services()
    connection_id = new_connection_id()
    context = ConnectionContext(connection_id, services.sessions)

    await websocket.accept()
    await services.notifier.connect(connection_id, websocket)
    logger.info("Signaling connection %s opened", connection_id)

    try:
        async for raw_message in iter_keepalive_messages(
            websocket,
            websocket.receive_text,
            timeout_seconds=services.settings.websocket_keepalive_timeout_seconds,
            ping_interval_seconds=services.settings.websocket_keepalive_ping_interval_seconds,
        ):
            response = await services.dispatcher.dispatch(context, raw_message)
            if response is not None:
                await safe_send_json(websocket, response)
    except WebSocketDisconnect:
        pass
    finally:
        await services.notifier.disconnect(connection_id)
        try:
            await services.control.leave_room(
                None, LeaveRoom(), ParticipantRequest(participant_id=connection_id)
            )
        finally:
            await services.sessions.discard(connection_id)
        logger.info("Signaling connection %s closed", connection_id)


router.add_api_websocket_route(settings.rpc_path, websocket_rpc)
