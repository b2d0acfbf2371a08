"""Room sessions and the per-room tokens that admit participants."""

from __future__ import annotations

import asyncio
import secrets
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Set

from ..rpc.errors import RoomNotFound


class ParticipantRole(str, Enum):
    """Capabilities granted by a token."""

    SUBSCRIBER = "SUBSCRIBER"
    PUBLISHER = "PUBLISHER"
    MODERATOR = "MODERATOR"

    @property
    def can_publish(self) -> bool:
        return self is not ParticipantRole.SUBSCRIBER


@dataclass(slots=True)
class Token:
    value: str
    room_id: str
    role: ParticipantRole = ParticipantRole.PUBLISHER
    server_data: str = ""
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_public(self) -> dict[str, str]:
        return {
            "token": self.value,
            "session": self.room_id,
            "role": self.role.value,
            "data": self.server_data,
        }


@dataclass(slots=True)
class RoomSession:
    room_id: str
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    tokens: Dict[str, Token] = field(default_factory=dict)


class TokenRegistry:
    """In-memory store of room sessions, tokens and trusted participants."""

    def __init__(self) -> None:
        self._sessions: Dict[str, RoomSession] = {}
        self._tokens: Dict[str, Token] = {}
        self._insecure: Set[str] = set()
        self._lock = asyncio.Lock()

    async def create_session(self, room_id: str | None = None) -> RoomSession:
        async with self._lock:
            if room_id is None:
                room_id = secrets.token_urlsafe(12)
            session = self._sessions.get(room_id)
            if session is None:
                session = RoomSession(room_id=room_id)
                self._sessions[room_id] = session
            return session

    async def get_session(self, room_id: str) -> RoomSession | None:
        async with self._lock:
            return self._sessions.get(room_id)

    async def close_session(self, room_id: str) -> None:
        async with self._lock:
            session = self._sessions.pop(room_id, None)
            if session is None:
                raise RoomNotFound(f"Room '{room_id}' does not exist")
            for value in session.tokens:
                self._tokens.pop(value, None)

    async def new_token(
        self,
        room_id: str,
        *,
        role: ParticipantRole = ParticipantRole.PUBLISHER,
        server_data: str = "",
    ) -> Token:
        async with self._lock:
            session = self._sessions.get(room_id)
            if session is None:
                raise RoomNotFound(f"Room '{room_id}' does not exist")
            token = Token(
                value=secrets.token_urlsafe(24),
                room_id=room_id,
                role=role,
                server_data=server_data,
            )
            session.tokens[token.value] = token
            self._tokens[token.value] = token
            return token

    async def get_token(self, value: str) -> Token | None:
        async with self._lock:
            return self._tokens.get(value)

    async def is_valid(self, value: str, room_id: str) -> bool:
        token = await self.get_token(value)
        return token is not None and token.room_id == room_id

    async def mark_insecure(self, participant_id: str) -> None:
        async with self._lock:
            self._insecure.add(participant_id)

    async def forget_insecure(self, participant_id: str) -> None:
        async with self._lock:
            self._insecure.discard(participant_id)

    async def is_insecure(self, participant_id: str) -> bool:
        async with self._lock:
            return participant_id in self._insecure


__all__ = ["ParticipantRole", "RoomSession", "Token", "TokenRegistry"]
