"""Media server collaborator used by the room manager for SDP and ICE."""

from __future__ import annotations

from typing import Protocol

from ..rpc.errors import MediaError


class MediaClient(Protocol):
    async def publish(
        self,
        room_id: str,
        endpoint_name: str,
        sdp_offer: str,
        *,
        audio_only: bool,
        do_loopback: bool,
    ) -> str: ...

    async def subscribe(
        self, room_id: str, endpoint_name: str, subscriber_id: str, sdp_offer: str
    ) -> str: ...

    async def release(
        self, room_id: str, endpoint_name: str, subscriber_id: str | None = None
    ) -> None: ...

    async def add_ice_candidate(
        self,
        room_id: str,
        endpoint_name: str,
        participant_id: str,
        candidate: str,
        sdp_mid: str,
        sdp_m_line_index: int,
    ) -> None: ...


class UnavailableMediaClient:
    """Used when no media server is configured; negotiation always fails."""

    async def publish(
        self,
        room_id: str,
        endpoint_name: str,
        sdp_offer: str,
        *,
        audio_only: bool,
        do_loopback: bool,
    ) -> str:
        raise MediaError("Media server is not configured")

    async def subscribe(
        self, room_id: str, endpoint_name: str, subscriber_id: str, sdp_offer: str
    ) -> str:
        raise MediaError("Media server is not configured")

    async def release(
        self, room_id: str, endpoint_name: str, subscriber_id: str | None = None
    ) -> None:
        return None

    async def add_ice_candidate(
        self,
        room_id: str,
        endpoint_name: str,
        participant_id: str,
        candidate: str,
        sdp_mid: str,
        sdp_m_line_index: int,
    ) -> None:
        raise MediaError("Media server is not configured")


__all__ = ["MediaClient", "UnavailableMediaClient"]
