"""Process wide signaling components shared by the API layer."""

from __future__ import annotations

import logging

from huddle.rooms import ConnectionNotifier, RoomManager, TokenRegistry
from huddle.rooms.media import MediaClient, UnavailableMediaClient
from huddle.rpc import AuthorizationGuard, RpcDispatcher, SessionStore, UserControl

from app.config import Settings, get_settings
from app.services.media_client import SFUMediaClient

logger = logging.getLogger(__name__)


def build_media_client(settings: Settings) -> MediaClient:
    if settings.media_server_url is None:
        logger.warning("No media server configured; publish and subscribe requests will fail")
        return UnavailableMediaClient()
    return SFUMediaClient(
        str(settings.media_server_url),
        api_key=settings.media_server_api_key,
        timeout=settings.media_server_timeout_seconds,
    )


class SignalingServices:
    """Bundle of the collaborators behind one signaling endpoint."""

    def __init__(self, settings: Settings, *, media: MediaClient | None = None) -> None:
        self.settings = settings
        self.notifier = ConnectionNotifier()
        self.tokens = TokenRegistry()
        self.rooms = RoomManager(
            self.tokens,
            self.notifier,
            media=media if media is not None else build_media_client(settings),
            metadata_max_length=settings.metadata_max_length,
        )
        self.sessions = SessionStore()
        self.guard = AuthorizationGuard(self.rooms, admin_secret=settings.admin_secret)
        self.control = UserControl(
            self.rooms, self.guard, logger=logging.getLogger("huddle.rpc.control")
        )
        self.dispatcher = RpcDispatcher(
            self.control, logger=logging.getLogger("huddle.rpc.dispatcher")
        )


_services: SignalingServices | None = None


def get_signaling_services() -> SignalingServices:
    global _services
    if _services is None:
        _services = SignalingServices(get_settings())
    return _services


def reset_signaling_services(services: SignalingServices | None = None) -> None:
    """Replace the shared services, mainly for tests."""

    global _services
    _services = services
