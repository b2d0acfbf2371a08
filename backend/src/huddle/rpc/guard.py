"""Credential and metadata checks applied before any room mutation."""

from __future__ import annotations

import hmac
import logging

from ..rooms.backend import RoomBackend
from .errors import MetadataFormatInvalid, Unauthorized

logger = logging.getLogger(__name__)


class AuthorizationGuard:
    def __init__(self, backend: RoomBackend, *, admin_secret: str | None) -> None:
        self._backend = backend
        self._admin_secret = admin_secret or ""

    def is_admin_secret(self, secret: str | None) -> bool:
        if not self._admin_secret or not secret:
            return False
        return hmac.compare_digest(secret.encode(), self._admin_secret.encode())

    async def check_admin_secret(self, secret: str | None, participant_id: str) -> bool:
        """Mark the participant as trusted when *secret* is the admin secret.

        The trusted mark is kept even if a later check rejects the join.
        """

        if not self.is_admin_secret(secret):
            return False
        await self._backend.new_insecure_user(participant_id)
        logger.info("Participant %s authenticated with the admin secret", participant_id)
        return True

    async def check_membership(self, token: str, room_id: str, participant_id: str) -> None:
        if not await self._backend.is_participant_in_room(token, room_id, participant_id):
            logger.warning(
                "Rejected join of %s to room %s: token not valid", participant_id, room_id
            )
            raise Unauthorized("Unable to join room. The user is not authorized")

    def check_metadata_format(self, metadata: str) -> None:
        if not self._backend.metadata_format_correct(metadata):
            logger.warning("Rejected join: metadata format is incorrect")
            raise MetadataFormatInvalid(
                "Unable to join room. The metadata received has an invalid format"
            )

    async def check_publisher(self, participant_id: str) -> None:
        participant_name = await self._backend.get_participant_name(participant_id)
        room_name = await self._backend.get_room_name_from_participant_id(participant_id)
        if not await self._backend.is_publisher_in_room(
            participant_name, room_name, participant_id
        ):
            logger.warning("Participant %s is not a publisher", participant_id)
            raise Unauthorized("Unable to publish video. The user does not have a valid token")


__all__ = ["AuthorizationGuard"]
