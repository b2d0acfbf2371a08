"""Room membership and media bookkeeping behind the signaling handlers."""

from .backend import ParticipantRequest, RoomBackend, UserParticipant  # noqa: F401
from .manager import RoomManager  # noqa: F401
from .notifier import ConnectionNotifier  # noqa: F401
from .tokens import ParticipantRole, Token, TokenRegistry  # noqa: F401

__all__ = [
    "ConnectionNotifier",
    "ParticipantRequest",
    "ParticipantRole",
    "RoomBackend",
    "RoomManager",
    "Token",
    "TokenRegistry",
    "UserParticipant",
]
