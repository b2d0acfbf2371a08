"""Shared pytest fixtures for backend tests."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Iterator, Sequence

import pytest
from fastapi.testclient import TestClient

ROOT_DIR = Path(__file__).resolve().parents[1]
for path in (ROOT_DIR, ROOT_DIR / "src"):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))

from huddle.rooms.backend import ParticipantRequest, UserParticipant
from huddle.rpc import AuthorizationGuard, ConnectionContext, SessionStore, UserControl
from huddle.rpc.errors import RoomNotFound, SignalingError

from app.config import Settings, get_settings
from app.main import app
from app.services import SignalingServices, reset_signaling_services

ADMIN_SECRET = "MY_SECRET"

MUTATING_CALLS = {
    "new_insecure_user",
    "new_random_user_name",
    "set_token_client_metadata",
    "join_room",
    "publish_media",
    "unpublish_media",
    "subscribe",
    "unsubscribe",
    "on_ice_candidate",
    "send_message",
    "leave_room",
    "evict_participant",
}


class FakeBackend:
    """Records every call and answers from configurable attributes."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self.membership_valid = True
        self.metadata_valid = True
        self.publisher = True
        self.rooms: dict[str, list[UserParticipant]] = {}
        self.participant_names: dict[str, str] = {}
        self.participant_rooms: dict[str, str] = {}
        self.evict_error: SignalingError | None = None
        self.allocated: list[str] = []

    def _record(self, name: str, *args: Any) -> None:
        self.calls.append((name, args))

    def called(self, name: str) -> list[tuple[Any, ...]]:
        return [args for call, args in self.calls if call == name]

    def mutations(self) -> list[str]:
        return [name for name, _ in self.calls if name in MUTATING_CALLS]

    async def new_insecure_user(self, participant_id: str) -> None:
        self._record("new_insecure_user", participant_id)

    async def is_participant_in_room(self, token: str, room_id: str, participant_id: str) -> bool:
        self._record("is_participant_in_room", token, room_id, participant_id)
        return self.membership_valid

    def metadata_format_correct(self, metadata: str) -> bool:
        self._record("metadata_format_correct", metadata)
        return self.metadata_valid

    async def new_random_user_name(self, token: str, room_id: str) -> str:
        self._record("new_random_user_name", token, room_id)
        name = f"user{len(self.allocated) + 1}"
        self.allocated.append(name)
        return name

    async def set_token_client_metadata(self, user_name: str, room_id: str, metadata: str) -> None:
        self._record("set_token_client_metadata", user_name, room_id, metadata)

    async def join_room(
        self,
        user_name: str,
        room_id: str,
        data_channels: bool,
        web_participant: bool,
        request: ParticipantRequest,
    ) -> Sequence[UserParticipant]:
        self._record("join_room", user_name, room_id, data_channels, web_participant, request)
        existing = list(self.rooms.get(room_id, []))
        self.rooms.setdefault(room_id, []).append(
            UserParticipant(request.participant_id, user_name)
        )
        return existing

    async def get_participant_name(self, participant_id: str) -> str | None:
        self._record("get_participant_name", participant_id)
        return self.participant_names.get(participant_id)

    async def get_room_name_from_participant_id(self, participant_id: str) -> str | None:
        self._record("get_room_name_from_participant_id", participant_id)
        return self.participant_rooms.get(participant_id)

    async def is_publisher_in_room(
        self, user_name: str | None, room_id: str | None, participant_id: str
    ) -> bool:
        self._record("is_publisher_in_room", user_name, room_id, participant_id)
        return self.publisher

    async def publish_media(
        self, request: ParticipantRequest, sdp_offer: str, audio_only: bool, do_loopback: bool
    ) -> str:
        self._record("publish_media", request, sdp_offer, audio_only, do_loopback)
        return "v=0 answer"

    async def unpublish_media(self, request: ParticipantRequest) -> None:
        self._record("unpublish_media", request)

    async def subscribe(self, sender_name: str, sdp_offer: str, request: ParticipantRequest) -> str:
        self._record("subscribe", sender_name, sdp_offer, request)
        return "v=0 subscriber answer"

    async def unsubscribe(self, sender_name: str, request: ParticipantRequest) -> None:
        self._record("unsubscribe", sender_name, request)

    async def on_ice_candidate(
        self,
        endpoint_name: str,
        candidate: str,
        sdp_m_line_index: int,
        sdp_mid: str,
        request: ParticipantRequest,
    ) -> None:
        self._record("on_ice_candidate", endpoint_name, candidate, sdp_m_line_index, sdp_mid, request)

    async def send_message(
        self, message: str, user_name: str, room_name: str, request: ParticipantRequest
    ) -> None:
        self._record("send_message", message, user_name, room_name, request)

    async def get_participants(self, room_name: str) -> Sequence[UserParticipant]:
        self._record("get_participants", room_name)
        if room_name not in self.rooms:
            raise RoomNotFound(f"Room '{room_name}' not found")
        return list(self.rooms[room_name])

    async def leave_room(self, request: ParticipantRequest) -> None:
        self._record("leave_room", request)

    async def evict_participant(self, participant_id: str) -> None:
        self._record("evict_participant", participant_id)
        if self.evict_error is not None:
            raise self.evict_error


class FakeMediaClient:
    """Media server stand-in returning canned SDP answers."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, tuple[Any, ...]]] = []

    async def publish(self, room_id, endpoint_name, sdp_offer, *, audio_only, do_loopback) -> str:
        self.calls.append(("publish", (room_id, endpoint_name, sdp_offer, audio_only, do_loopback)))
        return f"answer-for-{endpoint_name}"

    async def subscribe(self, room_id, endpoint_name, subscriber_id, sdp_offer) -> str:
        self.calls.append(("subscribe", (room_id, endpoint_name, subscriber_id, sdp_offer)))
        return f"answer-for-{subscriber_id}"

    async def release(self, room_id, endpoint_name, subscriber_id=None) -> None:
        self.calls.append(("release", (room_id, endpoint_name, subscriber_id)))

    async def add_ice_candidate(
        self, room_id, endpoint_name, participant_id, candidate, sdp_mid, sdp_m_line_index
    ) -> None:
        self.calls.append(
            ("add_ice_candidate", (room_id, endpoint_name, participant_id, candidate, sdp_mid, sdp_m_line_index))
        )


@pytest.fixture()
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture()
def admin_secret() -> str:
    return ADMIN_SECRET


@pytest.fixture()
def fake_backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture()
def session_store() -> SessionStore:
    return SessionStore()


@pytest.fixture()
def context(session_store) -> ConnectionContext:
    return ConnectionContext("conn-1", session_store)


@pytest.fixture()
def control(fake_backend) -> UserControl:
    guard = AuthorizationGuard(fake_backend, admin_secret=ADMIN_SECRET)
    return UserControl(fake_backend, guard)


@pytest.fixture()
def test_settings() -> Settings:
    return Settings(
        admin_secret=ADMIN_SECRET,
        websocket_keepalive_timeout_seconds=0,
        websocket_keepalive_ping_interval_seconds=0,
    )


@pytest.fixture()
def media_client() -> FakeMediaClient:
    return FakeMediaClient()


@pytest.fixture()
def services(test_settings, media_client) -> Iterator[SignalingServices]:
    services = SignalingServices(test_settings, media=media_client)
    reset_signaling_services(services)
    try:
        yield services
    finally:
        reset_signaling_services(None)


@pytest.fixture()
def client(services, test_settings) -> Iterator[TestClient]:
    """Yield a FastAPI TestClient bound to fresh signaling services."""

    app.dependency_overrides[get_settings] = lambda: test_settings
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
