"""Route JSON-RPC frames to :class:`UserControl` handlers."""

from __future__ import annotations

import json
import logging
from typing import Any, Awaitable, Callable, Dict

from pydantic import ValidationError

from app.monitoring.metrics import rpc_errors_total, rpc_requests_total

from ..rooms.backend import ParticipantRequest
from . import commands as c
from . import protocol as p
from .control import UserControl
from .errors import ErrorCode, InvalidRequest, ParseError, SignalingError, Unsupported
from .session import ConnectionContext

module_logger = logging.getLogger(__name__)

Handler = Callable[[ConnectionContext, Any, ParticipantRequest], Awaitable[Dict[str, Any]]]


class RpcDispatcher:
    def __init__(self, control: UserControl, *, logger: logging.Logger | None = None) -> None:
        self._control = control
        self._logger = logger or module_logger
        self._handlers: Dict[type, Handler] = {
            c.JoinRoom: control.join_room,
            c.PublishVideo: control.publish_video,
            c.UnpublishVideo: control.unpublish_video,
            c.ReceiveVideoFrom: control.receive_video_from,
            c.UnsubscribeFromVideo: control.unsubscribe_from_video,
            c.LeaveRoom: control.leave_room,
            c.OnIceCandidate: control.on_ice_candidate,
            c.SendMessage: control.send_message,
            c.CustomRequest: control.custom_request,
        }

    @property
    def control(self) -> UserControl:
        return self._control

    async def dispatch(self, context: ConnectionContext, raw: str) -> dict[str, Any] | None:
        """Handle one inbound frame and return the response to send, if any."""

        try:
            request = self.parse(raw)
        except SignalingError as exc:
            self._logger.debug("Rejected frame from %s: %s", context.connection_id, exc.message)
            rpc_errors_total.labels("invalid", int(exc.code)).inc()
            return p.RpcResponse(id=None, error=p.RpcError(**exc.to_payload())).to_wire()

        response = await self.handle(context, request)
        if request.is_notification:
            return None
        return response.to_wire()

    @staticmethod
    def parse(raw: str) -> p.RpcRequest:
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError:
            raise ParseError("Invalid JSON payload") from None
        if not isinstance(payload, dict):
            raise InvalidRequest("Request must be a JSON object")
        try:
            return p.RpcRequest.model_validate(payload)
        except ValidationError as exc:
            raise InvalidRequest(
                "Invalid JSON-RPC request",
                data=exc.errors(include_url=False, include_context=False, include_input=False),
            ) from None

    async def handle(self, context: ConnectionContext, request: p.RpcRequest) -> p.RpcResponse:
        method = request.method
        metric_method = method if method in c.COMMANDS or method == p.KEEPLIVE_METHOD else "unknown"
        rpc_requests_total.labels(metric_method).inc()

        if method == p.KEEPLIVE_METHOD:
            return p.RpcResponse(id=request.id, result={"value": "pong"})

        participant_request = ParticipantRequest(context.connection_id, request.id)
        try:
            command = c.decode_command(method, request.params)
            if command is None:
                raise Unsupported(method)
            handler = self._handlers[type(command)]
            result = await handler(context, command, participant_request)
        except SignalingError as exc:
            rpc_errors_total.labels(metric_method, int(exc.code)).inc()
            self._logger.info(
                "Request %s from %s failed: %s", method, context.connection_id, exc.message
            )
            return p.RpcResponse(id=request.id, error=p.RpcError(**exc.to_payload()))
        except Exception:
            rpc_errors_total.labels(metric_method, int(ErrorCode.GENERIC)).inc()
            self._logger.exception("Unexpected error while handling %s", method)
            return p.RpcResponse(
                id=request.id,
                error=p.RpcError(code=int(ErrorCode.GENERIC), message="Internal server error"),
            )
        return p.RpcResponse(id=request.id, result=result)


__all__ = ["RpcDispatcher"]
