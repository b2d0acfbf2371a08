"""JSON-RPC signaling: parameter decoding, authorization and command handlers."""

from .control import UserControl  # noqa: F401
from .dispatcher import RpcDispatcher  # noqa: F401
from .errors import ErrorCode, SignalingError  # noqa: F401
from .guard import AuthorizationGuard  # noqa: F401
from .session import (  # noqa: F401
    ConnectionContext,
    ParticipantSession,
    SessionStore,
    new_connection_id,
)

__all__ = [
    "AuthorizationGuard",
    "ConnectionContext",
    "ErrorCode",
    "ParticipantSession",
    "RpcDispatcher",
    "SessionStore",
    "SignalingError",
    "UserControl",
    "new_connection_id",
]
