"""Pydantic schemas for API payloads."""

from .sessions import (
    ParticipantRead,
    SessionCreate,
    SessionDetail,
    SessionRead,
    TokenCreate,
    TokenRead,
)

__all__ = [
    "ParticipantRead",
    "SessionCreate",
    "SessionDetail",
    "SessionRead",
    "TokenCreate",
    "TokenRead",
]
