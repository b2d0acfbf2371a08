"""In-memory room bookkeeping backing the signaling handlers."""

from __future__ import annotations

import asyncio
import json
import logging
import secrets
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Sequence, Set

from app.monitoring.metrics import room_participants

from ..rpc import protocol as p
from ..rpc.errors import (
    ExistingUserInRoom,
    MediaError,
    ParticipantNotFound,
    RoomNotFound,
    UserNotStreaming,
)
from .backend import ParticipantRequest, UserParticipant
from .media import MediaClient, UnavailableMediaClient
from .notifier import ConnectionNotifier
from .tokens import TokenRegistry

logger = logging.getLogger(__name__)

DEFAULT_STREAM_TAG = "webcam"
DEFAULT_METADATA_MAX_LENGTH = 10000


@dataclass
class ParticipantState:
    participant_id: str
    user_name: str
    room_id: str
    token: str | None
    data_channels: bool = False
    web_participant: bool = True
    client_metadata: str = ""
    streaming: bool = False
    audio_only: bool = False
    subscriptions: Set[str] = field(default_factory=set)

    @property
    def endpoint_name(self) -> str:
        return f"{self.user_name}{p.ENDPOINT_NAME_SEPARATOR}{DEFAULT_STREAM_TAG}"

    def to_user_participant(self) -> UserParticipant:
        return UserParticipant(
            participant_id=self.participant_id,
            user_name=self.user_name,
            streaming=self.streaming,
        )

    def to_public(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"id": self.user_name, "metadata": self.client_metadata}
        if self.streaming:
            payload["streams"] = [{"id": DEFAULT_STREAM_TAG, "audioOnly": self.audio_only}]
        return payload


@dataclass
class Room:
    room_id: str
    participants: Dict[str, ParticipantState] = field(default_factory=dict)
    created_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def by_name(self, user_name: str) -> ParticipantState | None:
        for participant in self.participants.values():
            if participant.user_name == user_name:
                return participant
        return None


class RoomManager:
    """Track rooms and their participants and fan out room notifications."""

    def __init__(
        self,
        tokens: TokenRegistry,
        notifier: ConnectionNotifier,
        *,
        media: MediaClient | None = None,
        metadata_max_length: int = DEFAULT_METADATA_MAX_LENGTH,
    ) -> None:
        self._tokens = tokens
        self._notifier = notifier
        self._media: MediaClient = media or UnavailableMediaClient()
        self._metadata_max_length = metadata_max_length
        self._rooms: Dict[str, Room] = {}
        self._participant_rooms: Dict[str, str] = {}
        self._client_metadata: Dict[tuple[str, str], str] = {}
        self._user_tokens: Dict[tuple[str, str], str] = {}
        self._lock = asyncio.Lock()

    @property
    def tokens(self) -> TokenRegistry:
        return self._tokens

    # ------------------------------------------------------------------
    # Admission
    # ------------------------------------------------------------------

    async def new_insecure_user(self, participant_id: str) -> None:
        await self._tokens.mark_insecure(participant_id)

    async def is_participant_in_room(self, token: str, room_id: str, participant_id: str) -> bool:
        if await self._tokens.is_insecure(participant_id):
            return True
        return await self._tokens.is_valid(token, room_id)

    def metadata_format_correct(self, metadata: str) -> bool:
        if len(metadata) > self._metadata_max_length:
            return False
        try:
            parsed = json.loads(metadata)
        except (TypeError, ValueError):
            return False
        return isinstance(parsed, dict)

    async def new_random_user_name(self, token: str, room_id: str) -> str:
        async with self._lock:
            room = self._rooms.get(room_id)
            while True:
                candidate = secrets.token_hex(8)
                if (room_id, candidate) in self._user_tokens:
                    continue
                if room is None or room.by_name(candidate) is None:
                    self._user_tokens[(room_id, candidate)] = token
                    return candidate

    async def set_token_client_metadata(self, user_name: str, room_id: str, metadata: str) -> None:
        async with self._lock:
            self._client_metadata[(room_id, user_name)] = metadata

    async def join_room(
        self,
        user_name: str,
        room_id: str,
        data_channels: bool,
        web_participant: bool,
        request: ParticipantRequest,
    ) -> Sequence[UserParticipant]:
        pid = request.participant_id
        async with self._lock:
            current_room = self._participant_rooms.get(pid)
            if current_room is not None:
                self._forget_pending_locked(room_id, user_name)
                raise ExistingUserInRoom(
                    f"Participant '{pid}' is already in room '{current_room}'"
                )
            room = self._rooms.get(room_id)
            if room is not None and room.by_name(user_name) is not None:
                self._forget_pending_locked(room_id, user_name)
                raise ExistingUserInRoom(f"User '{user_name}' already exists in room '{room_id}'")
            if room is None:
                room = Room(room_id=room_id)
                self._rooms[room_id] = room
            participant = ParticipantState(
                participant_id=pid,
                user_name=user_name,
                room_id=room_id,
                token=self._user_tokens.pop((room_id, user_name), None),
                data_channels=data_channels,
                web_participant=web_participant,
                client_metadata=self._client_metadata.pop((room_id, user_name), ""),
            )
            existing = list(room.participants.values())
            room.participants[pid] = participant
            self._participant_rooms[pid] = room_id
            room_participants.labels(room_id).set(len(room.participants))

        await self._notifier.notify_many(
            (state.participant_id for state in existing),
            p.PARTICIPANTJOINED_METHOD,
            {"id": user_name, "metadata": participant.client_metadata},
        )
        logger.debug("Room %s now has %d participants", room_id, len(existing) + 1)
        return [
            UserParticipant(state.participant_id, state.user_name, state.streaming)
            for state in existing
        ]

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    async def get_participant_name(self, participant_id: str) -> str | None:
        async with self._lock:
            participant = self._find_locked(participant_id)
            return participant.user_name if participant else None

    async def get_room_name_from_participant_id(self, participant_id: str) -> str | None:
        async with self._lock:
            return self._participant_rooms.get(participant_id)

    async def get_participants(self, room_name: str) -> Sequence[UserParticipant]:
        async with self._lock:
            room = self._rooms.get(room_name)
            if room is None:
                raise RoomNotFound(f"Room '{room_name}' not found")
            return [state.to_user_participant() for state in room.participants.values()]

    async def snapshot(self, room_name: str) -> list[dict[str, Any]]:
        async with self._lock:
            room = self._rooms.get(room_name)
            if room is None:
                raise RoomNotFound(f"Room '{room_name}' not found")
            snapshot = [
                {"connectionId": state.participant_id, **state.to_public()}
                for state in room.participants.values()
            ]
        snapshot.sort(key=lambda item: str(item["id"]))
        return snapshot

    def pending_count(self) -> int:
        """Names allocated or annotated for a join that has not happened yet."""

        return len(self._user_tokens.keys() | self._client_metadata.keys())

    async def is_publisher_in_room(
        self, user_name: str | None, room_id: str | None, participant_id: str
    ) -> bool:
        if user_name is None or room_id is None:
            return False
        async with self._lock:
            room = self._rooms.get(room_id)
            participant = room.participants.get(participant_id) if room else None
            if participant is None or participant.user_name != user_name:
                return False
        if await self._tokens.is_insecure(participant_id):
            return True
        record = await self._tokens.get_token(participant.token) if participant.token else None
        return record is not None and record.role.can_publish

    # ------------------------------------------------------------------
    # Media
    # ------------------------------------------------------------------

    async def publish_media(
        self,
        request: ParticipantRequest,
        sdp_offer: str,
        audio_only: bool,
        do_loopback: bool,
    ) -> str:
        participant = await self._require_participant(request.participant_id)
        sdp_answer = await self._media.publish(
            participant.room_id,
            participant.endpoint_name,
            sdp_offer,
            audio_only=audio_only,
            do_loopback=do_loopback,
        )
        async with self._lock:
            participant.streaming = True
            participant.audio_only = audio_only
            others = self._others_locked(participant)
        await self._notifier.notify_many(
            others, p.PARTICIPANTPUBLISHED_METHOD, participant.to_public()
        )
        return sdp_answer

    async def unpublish_media(self, request: ParticipantRequest) -> None:
        participant = await self._require_participant(request.participant_id)
        if not participant.streaming:
            raise UserNotStreaming(f"Participant '{participant.user_name}' is not streaming")
        await self._media.release(participant.room_id, participant.endpoint_name)
        async with self._lock:
            participant.streaming = False
            participant.audio_only = False
            others = self._others_locked(participant)
            room = self._rooms.get(participant.room_id)
            if room is not None:
                for state in room.participants.values():
                    state.subscriptions.discard(participant.user_name)
        await self._notifier.notify_many(
            others, p.PARTICIPANTUNPUBLISHED_METHOD, {"name": participant.user_name}
        )

    async def subscribe(self, sender_name: str, sdp_offer: str, request: ParticipantRequest) -> str:
        subscriber = await self._require_participant(request.participant_id)
        sender = await self._require_streaming_sender(subscriber.room_id, sender_name)
        sdp_answer = await self._media.subscribe(
            subscriber.room_id, sender.endpoint_name, subscriber.participant_id, sdp_offer
        )
        async with self._lock:
            subscriber.subscriptions.add(sender_name)
        return sdp_answer

    async def unsubscribe(self, sender_name: str, request: ParticipantRequest) -> None:
        subscriber = await self._require_participant(request.participant_id)
        async with self._lock:
            room = self._rooms.get(subscriber.room_id)
            sender = room.by_name(sender_name) if room else None
            if sender is None:
                raise ParticipantNotFound(
                    f"User '{sender_name}' not found in room '{subscriber.room_id}'"
                )
            subscriber.subscriptions.discard(sender_name)
        await self._media.release(
            subscriber.room_id, sender.endpoint_name, subscriber.participant_id
        )

    async def on_ice_candidate(
        self,
        endpoint_name: str,
        candidate: str,
        sdp_m_line_index: int,
        sdp_mid: str,
        request: ParticipantRequest,
    ) -> None:
        participant = await self._require_participant(request.participant_id)
        await self._media.add_ice_candidate(
            participant.room_id,
            endpoint_name,
            participant.participant_id,
            candidate,
            sdp_mid,
            sdp_m_line_index,
        )

    # ------------------------------------------------------------------
    # Chat
    # ------------------------------------------------------------------

    async def send_message(
        self, message: str, user_name: str, room_name: str, request: ParticipantRequest
    ) -> None:
        async with self._lock:
            room = self._rooms.get(room_name)
            if room is None:
                raise RoomNotFound(f"Room '{room_name}' not found")
            if request.participant_id not in room.participants:
                raise ParticipantNotFound(
                    f"Participant '{request.participant_id}' is not in room '{room_name}'"
                )
            recipients = list(room.participants)
        await self._notifier.notify_many(
            recipients,
            p.PARTICIPANTSENDMESSAGE_METHOD,
            {"room": room_name, "user": user_name, "message": message},
        )

    # ------------------------------------------------------------------
    # Departure
    # ------------------------------------------------------------------

    async def leave_room(self, request: ParticipantRequest) -> None:
        participant = await self._remove(request.participant_id)
        await self._release_media(participant)
        await self._notify_left(participant)

    async def evict_participant(self, participant_id: str) -> None:
        participant = await self._remove(participant_id)
        await self._tokens.forget_insecure(participant_id)
        await self._release_media(participant)
        await self._notifier.notify(
            participant_id, p.PARTICIPANTEVICTED_METHOD, {"name": participant.user_name}
        )
        await self._notify_left(participant)

    async def _remove(self, participant_id: str) -> ParticipantState:
        async with self._lock:
            room_id = self._participant_rooms.pop(participant_id, None)
            room = self._rooms.get(room_id) if room_id else None
            participant = room.participants.pop(participant_id, None) if room else None
            if room is None or participant is None:
                raise ParticipantNotFound(f"Participant '{participant_id}' not found")
            for state in room.participants.values():
                state.subscriptions.discard(participant.user_name)
            if room.participants:
                room_participants.labels(room.room_id).set(len(room.participants))
            else:
                self._rooms.pop(room.room_id, None)
                room_participants.remove(room.room_id)
            return participant

    async def _release_media(self, participant: ParticipantState) -> None:
        """Release every endpoint of a departed participant.

        The participant is already out of the room, so a media failure is
        logged per endpoint and never stops the departure notifications.
        """

        endpoints: list[tuple[str, str | None]] = []
        if participant.streaming:
            endpoints.append((participant.endpoint_name, None))
        for sender_name in participant.subscriptions:
            endpoint = f"{sender_name}{p.ENDPOINT_NAME_SEPARATOR}{DEFAULT_STREAM_TAG}"
            endpoints.append((endpoint, participant.participant_id))
        for endpoint, subscriber_id in endpoints:
            try:
                await self._media.release(participant.room_id, endpoint, subscriber_id)
            except MediaError as exc:
                logger.warning(
                    "Unable to release endpoint %s of %s: %s",
                    endpoint,
                    participant.participant_id,
                    exc.message,
                )

    async def _notify_left(self, participant: ParticipantState) -> None:
        async with self._lock:
            room = self._rooms.get(participant.room_id)
            remaining = list(room.participants) if room else []
        await self._notifier.notify_many(
            remaining, p.PARTICIPANTLEFT_METHOD, {"name": participant.user_name}
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _forget_pending_locked(self, room_id: str, user_name: str) -> None:
        self._user_tokens.pop((room_id, user_name), None)
        self._client_metadata.pop((room_id, user_name), None)

    def _find_locked(self, participant_id: str) -> ParticipantState | None:
        room_id = self._participant_rooms.get(participant_id)
        room = self._rooms.get(room_id) if room_id else None
        return room.participants.get(participant_id) if room else None

    def _others_locked(self, participant: ParticipantState) -> list[str]:
        room = self._rooms.get(participant.room_id)
        if room is None:
            return []
        return [pid for pid in room.participants if pid != participant.participant_id]

    async def _require_participant(self, participant_id: str) -> ParticipantState:
        async with self._lock:
            participant = self._find_locked(participant_id)
        if participant is None:
            raise ParticipantNotFound(f"Participant '{participant_id}' is not in any room")
        return participant

    async def _require_streaming_sender(self, room_id: str, sender_name: str) -> ParticipantState:
        async with self._lock:
            room = self._rooms.get(room_id)
            sender = room.by_name(sender_name) if room else None
        if sender is None:
            raise ParticipantNotFound(f"User '{sender_name}' not found in room '{room_id}'")
        if not sender.streaming:
            raise UserNotStreaming(f"User '{sender_name}' is not streaming media")
        return sender


__all__ = ["DEFAULT_STREAM_TAG", "ParticipantState", "Room", "RoomManager"]
