"""Signaling command handlers.

``UserControl`` turns each decoded command into a call on the room backend.
Every handler validates first and mutates last: parameter decoding and the
authorization guard run before the session store or the backend is touched.

Leaving a room can be triggered twice for the same connection, once by the
client's ``leaveRoom`` request and once by the transport when the socket
closes, in either order. ``leave_room`` reconciles the two paths: a graceful
leave is only issued when the backend confirms the participant is still in
the room the session remembers; every other case falls back to the admin
eviction, which is best effort and never raises.
"""

from __future__ import annotations

import logging
from typing import Any

from app.monitoring.metrics import room_departures_total

from ..rooms.backend import ParticipantRequest, RoomBackend
from .commands import (
    CustomRequest,
    JoinRoom,
    OnIceCandidate,
    PublishVideo,
    ReceiveVideoFrom,
    SendMessage,
    UnsubscribeFromVideo,
)
from .errors import ParticipantNotFound, RoomNotFound, SignalingError, Unsupported
from .guard import AuthorizationGuard
from .session import ConnectionContext

module_logger = logging.getLogger(__name__)


class UserControl:
    def __init__(
        self,
        backend: RoomBackend,
        guard: AuthorizationGuard,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self._backend = backend
        self._guard = guard
        self._logger = logger or module_logger

    @property
    def backend(self) -> RoomBackend:
        return self._backend

    async def join_room(
        self, context: ConnectionContext, command: JoinRoom, request: ParticipantRequest
    ) -> dict[str, Any]:
        pid = request.participant_id
        await self._guard.check_admin_secret(command.secret, pid)
        await self._guard.check_membership(command.token, command.room, pid)
        self._guard.check_metadata_format(command.metadata)

        user_name = await self._backend.new_random_user_name(command.token, command.room)
        await self._backend.set_token_client_metadata(user_name, command.room, command.metadata)

        session = await context.session()
        session.participant_name = user_name
        session.room_name = command.room
        session.data_channels = command.data_channels

        existing = await self._backend.join_room(
            user_name, command.room, command.data_channels, True, request
        )
        self._logger.info("Participant %s joined room %s as %s", pid, command.room, user_name)
        return {
            "id": user_name,
            "sessionId": command.room,
            "value": [participant.to_public() for participant in existing],
        }

    async def publish_video(
        self, context: ConnectionContext, command: PublishVideo, request: ParticipantRequest
    ) -> dict[str, Any]:
        await self._guard.check_publisher(request.participant_id)
        sdp_answer = await self._backend.publish_media(
            request, command.sdp_offer, command.audio_only, command.do_loopback
        )
        return {"sdpAnswer": sdp_answer}

    async def unpublish_video(
        self, context: ConnectionContext, command: object, request: ParticipantRequest
    ) -> dict[str, Any]:
        # No publisher check: unpublishing only drops the caller's own stream and
        # the backend rejects callers that are not streaming.
        # TODO: run check_publisher here too if revoked tokens must block unpublish.
        await self._backend.unpublish_media(request)
        return {}

    async def receive_video_from(
        self, context: ConnectionContext, command: ReceiveVideoFrom, request: ParticipantRequest
    ) -> dict[str, Any]:
        sdp_answer = await self._backend.subscribe(command.sender_name, command.sdp_offer, request)
        return {"sdpAnswer": sdp_answer}

    async def unsubscribe_from_video(
        self,
        context: ConnectionContext,
        command: UnsubscribeFromVideo,
        request: ParticipantRequest,
    ) -> dict[str, Any]:
        await self._backend.unsubscribe(command.sender_name, request)
        return {}

    async def on_ice_candidate(
        self, context: ConnectionContext, command: OnIceCandidate, request: ParticipantRequest
    ) -> dict[str, Any]:
        await self._backend.on_ice_candidate(
            command.endpoint_name,
            command.candidate,
            command.sdp_m_line_index,
            command.sdp_mid,
            request,
        )
        return {}

    async def send_message(
        self, context: ConnectionContext, command: SendMessage, request: ParticipantRequest
    ) -> dict[str, Any]:
        self._logger.debug(
            "Message from %s in room %s: %r", command.user, command.room, command.message
        )
        await self._backend.send_message(command.message, command.user, command.room, request)
        return {}

    async def custom_request(
        self, context: ConnectionContext, command: CustomRequest, request: ParticipantRequest
    ) -> dict[str, Any]:
        raise Unsupported("customRequest")

    # ------------------------------------------------------------------
    # Leaving
    # ------------------------------------------------------------------

    async def leave_room(
        self,
        context: ConnectionContext | None,
        command: object,
        request: ParticipantRequest,
    ) -> dict[str, Any]:
        """Remove the participant from its room.

        ``context`` is ``None`` when the call comes from the transport after
        the connection closed rather than from a client request.
        """

        pid = request.participant_id
        room_name = None
        if context is not None:
            session = await context.existing_session()
            room_name = session.room_name if session is not None else None

        if room_name is None:
            self._logger.warning(
                "No room information found for participant with session id %s. "
                "Using the admin method to evict the user.",
                pid,
            )
            await self.leave_room_after_connection_closed(pid)
            return {}

        if not await self._is_in_room(room_name, pid):
            self._logger.warning(
                "Participant with session id %s not found in room %s. "
                "Using the admin method to evict the user.",
                pid,
                room_name,
            )
            await self.leave_room_after_connection_closed(pid)
            return {}

        self._logger.debug("Participant with session id %s is leaving room %s", pid, room_name)
        await self._backend.leave_room(request)
        room_departures_total.labels("left").inc()
        self._logger.info("Participant with session id %s has left room %s", pid, room_name)
        return {}

    async def leave_room_after_connection_closed(self, participant_id: str) -> None:
        """Evict by connection id. Domain failures are logged, never raised."""

        try:
            await self._backend.evict_participant(participant_id)
        except ParticipantNotFound as exc:
            self._logger.warning("Unable to evict: %s", exc.message)
            return
        except SignalingError as exc:
            room_departures_total.labels("failed").inc()
            self._logger.warning("Unable to evict: %s", exc.message)
            self._logger.debug("Unable to evict user", exc_info=True)
            return
        room_departures_total.labels("evicted").inc()
        self._logger.info("Evicted participant with session id %s", participant_id)

    async def _is_in_room(self, room_name: str, participant_id: str) -> bool:
        try:
            participants = await self._backend.get_participants(room_name)
        except RoomNotFound:
            return False
        for participant in participants:
            if participant.participant_id == participant_id:
                return True
        return False


__all__ = ["UserControl"]
