"""Connection scoped participant state."""

from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass
from typing import Dict


def new_connection_id() -> str:
    return uuid.uuid4().hex


@dataclass
class ParticipantSession:
    """Room binding cached for a single signaling connection.

    ``room_name`` mirrors what the connection last joined. The room backend
    may have removed the participant since then, so callers must confirm
    membership there before trusting it.
    """

    participant_name: str | None = None
    room_name: str | None = None
    data_channels: bool = False


class SessionStore:
    """Lazily created sessions keyed by connection id."""

    def __init__(self) -> None:
        self._sessions: Dict[str, ParticipantSession] = {}
        self._lock = asyncio.Lock()

    async def get_or_create(self, connection_id: str) -> ParticipantSession:
        async with self._lock:
            session = self._sessions.get(connection_id)
            if session is None:
                session = ParticipantSession()
                self._sessions[connection_id] = session
            return session

    async def get(self, connection_id: str) -> ParticipantSession | None:
        async with self._lock:
            return self._sessions.get(connection_id)

    async def discard(self, connection_id: str) -> ParticipantSession | None:
        async with self._lock:
            return self._sessions.pop(connection_id, None)

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, connection_id: object) -> bool:
        return connection_id in self._sessions


@dataclass(frozen=True, slots=True)
class ConnectionContext:
    """Handle for one signaling connection passed through the dispatch chain."""

    connection_id: str
    store: SessionStore

    async def session(self) -> ParticipantSession:
        return await self.store.get_or_create(self.connection_id)

    async def existing_session(self) -> ParticipantSession | None:
        return await self.store.get(self.connection_id)


__all__ = ["ConnectionContext", "ParticipantSession", "SessionStore", "new_connection_id"]
