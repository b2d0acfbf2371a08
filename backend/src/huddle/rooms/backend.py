"""Interface of the room/media manager the signaling layer delegates to."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, Sequence, runtime_checkable


@dataclass(frozen=True, slots=True)
class ParticipantRequest:
    """Identifies the connection issuing a request and the request being answered."""

    participant_id: str
    request_id: int | str | None = None


@dataclass(frozen=True, slots=True)
class UserParticipant:
    """A participant admitted to a room, as reported by the backend."""

    participant_id: str
    user_name: str
    streaming: bool = False

    def to_public(self) -> dict[str, object]:
        return {"id": self.user_name, "streams": self.streaming}


@runtime_checkable
class RoomBackend(Protocol):
    """Operations consumed by :class:`huddle.rpc.control.UserControl`.

    Domain failures are reported by raising
    :class:`huddle.rpc.errors.SignalingError` subclasses.
    """

    async def new_insecure_user(self, participant_id: str) -> None: ...

    async def is_participant_in_room(
        self, token: str, room_id: str, participant_id: str
    ) -> bool: ...

    def metadata_format_correct(self, metadata: str) -> bool: ...

    async def new_random_user_name(self, token: str, room_id: str) -> str: ...

    async def set_token_client_metadata(
        self, user_name: str, room_id: str, metadata: str
    ) -> None: ...

    async def join_room(
        self,
        user_name: str,
        room_id: str,
        data_channels: bool,
        web_participant: bool,
        request: ParticipantRequest,
    ) -> Sequence[UserParticipant]: ...

    async def get_participant_name(self, participant_id: str) -> str | None: ...

    async def get_room_name_from_participant_id(self, participant_id: str) -> str | None: ...

    async def is_publisher_in_room(
        self, user_name: str | None, room_id: str | None, participant_id: str
    ) -> bool: ...

    async def publish_media(
        self,
        request: ParticipantRequest,
        sdp_offer: str,
        audio_only: bool,
        do_loopback: bool,
    ) -> str: ...

    async def unpublish_media(self, request: ParticipantRequest) -> None: ...

    async def subscribe(
        self, sender_name: str, sdp_offer: str, request: ParticipantRequest
    ) -> str: ...

    async def unsubscribe(self, sender_name: str, request: ParticipantRequest) -> None: ...

    async def on_ice_candidate(
        self,
        endpoint_name: str,
        candidate: str,
        sdp_m_line_index: int,
        sdp_mid: str,
        request: ParticipantRequest,
    ) -> None: ...

    async def send_message(
        self, message: str, user_name: str, room_name: str, request: ParticipantRequest
    ) -> None: ...

    async def get_participants(self, room_name: str) -> Sequence[UserParticipant]: ...

    async def leave_room(self, request: ParticipantRequest) -> None: ...

    async def evict_participant(self, participant_id: str) -> None: ...


__all__ = ["ParticipantRequest", "RoomBackend", "UserParticipant"]
