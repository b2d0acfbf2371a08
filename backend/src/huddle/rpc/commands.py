"""Decode request parameters once into typed command objects.

Each signaling method has a frozen dataclass describing its parameters. The
dispatcher looks the class up by method name and calls ``from_params``; from
that point on handlers work with attributes instead of the raw parameter
mapping, so presence and type checks happen in a single place.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Union

from . import protocol as p
from .errors import MalformedParameter
from .params import (
    get_int_param,
    get_optional_bool_param,
    get_bool_param,
    get_string_param,
)

Params = Mapping[str, Any] | None


def parse_sender_name(sender: str, key: str = p.RECEIVEVIDEO_SENDER_PARAM) -> str:
    """Return the participant name of a ``<name>_<tag>`` endpoint identifier."""

    name, separator, _tag = sender.partition(p.ENDPOINT_NAME_SEPARATOR)
    if not separator:
        raise MalformedParameter(key, f"expected '<name>{p.ENDPOINT_NAME_SEPARATOR}<tag>'")
    if not name:
        raise MalformedParameter(key, "sender name is empty")
    return name


@dataclass(frozen=True, slots=True)
class JoinRoom:
    room: str
    token: str
    secret: str
    metadata: str
    data_channels: bool = False

    @classmethod
    def from_params(cls, params: Params) -> "JoinRoom":
        return cls(
            room=get_string_param(params, p.JOINROOM_ROOM_PARAM),
            token=get_string_param(params, p.JOINROOM_TOKEN_PARAM),
            secret=get_string_param(params, p.JOINROOM_SECRET_PARAM),
            metadata=get_string_param(params, p.JOINROOM_METADATA_PARAM),
            data_channels=get_optional_bool_param(params, p.JOINROOM_DATACHANNELS_PARAM),
        )


@dataclass(frozen=True, slots=True)
class PublishVideo:
    sdp_offer: str
    audio_only: bool
    do_loopback: bool

    @classmethod
    def from_params(cls, params: Params) -> "PublishVideo":
        return cls(
            sdp_offer=get_string_param(params, p.PUBLISHVIDEO_SDPOFFER_PARAM),
            audio_only=get_bool_param(params, p.PUBLISHVIDEO_AUDIOONLY_PARAM),
            do_loopback=get_bool_param(params, p.PUBLISHVIDEO_DOLOOPBACK_PARAM),
        )


@dataclass(frozen=True, slots=True)
class UnpublishVideo:
    @classmethod
    def from_params(cls, params: Params) -> "UnpublishVideo":
        return cls()


@dataclass(frozen=True, slots=True)
class ReceiveVideoFrom:
    sender: str
    sender_name: str
    sdp_offer: str

    @classmethod
    def from_params(cls, params: Params) -> "ReceiveVideoFrom":
        sender = get_string_param(params, p.RECEIVEVIDEO_SENDER_PARAM)
        return cls(
            sender=sender,
            sender_name=parse_sender_name(sender, p.RECEIVEVIDEO_SENDER_PARAM),
            sdp_offer=get_string_param(params, p.RECEIVEVIDEO_SDPOFFER_PARAM),
        )


@dataclass(frozen=True, slots=True)
class UnsubscribeFromVideo:
    sender: str
    sender_name: str

    @classmethod
    def from_params(cls, params: Params) -> "UnsubscribeFromVideo":
        sender = get_string_param(params, p.UNSUBSCRIBEFROMVIDEO_SENDER_PARAM)
        return cls(
            sender=sender,
            sender_name=parse_sender_name(sender, p.UNSUBSCRIBEFROMVIDEO_SENDER_PARAM),
        )


@dataclass(frozen=True, slots=True)
class LeaveRoom:
    @classmethod
    def from_params(cls, params: Params) -> "LeaveRoom":
        return cls()


@dataclass(frozen=True, slots=True)
class OnIceCandidate:
    endpoint_name: str
    candidate: str
    sdp_mid: str
    sdp_m_line_index: int

    @classmethod
    def from_params(cls, params: Params) -> "OnIceCandidate":
        return cls(
            endpoint_name=get_string_param(params, p.ONICECANDIDATE_EPNAME_PARAM),
            candidate=get_string_param(params, p.ONICECANDIDATE_CANDIDATE_PARAM),
            sdp_mid=get_string_param(params, p.ONICECANDIDATE_SDPMIDPARAM),
            sdp_m_line_index=get_int_param(params, p.ONICECANDIDATE_SDPMLINEINDEX_PARAM),
        )


@dataclass(frozen=True, slots=True)
class SendMessage:
    user: str
    room: str
    message: str

    @classmethod
    def from_params(cls, params: Params) -> "SendMessage":
        return cls(
            user=get_string_param(params, p.SENDMESSAGE_USER_PARAM),
            room=get_string_param(params, p.SENDMESSAGE_ROOM_PARAM),
            message=get_string_param(params, p.SENDMESSAGE_MESSAGE_PARAM),
        )


@dataclass(frozen=True, slots=True)
class CustomRequest:
    params: Dict[str, Any]

    @classmethod
    def from_params(cls, params: Params) -> "CustomRequest":
        return cls(params=dict(params or {}))


Command = Union[
    JoinRoom,
    PublishVideo,
    UnpublishVideo,
    ReceiveVideoFrom,
    UnsubscribeFromVideo,
    LeaveRoom,
    OnIceCandidate,
    SendMessage,
    CustomRequest,
]

COMMANDS: Dict[str, Callable[[Params], Command]] = {
    p.JOINROOM_METHOD: JoinRoom.from_params,
    p.PUBLISHVIDEO_METHOD: PublishVideo.from_params,
    p.UNPUBLISHVIDEO_METHOD: UnpublishVideo.from_params,
    p.RECEIVEVIDEO_METHOD: ReceiveVideoFrom.from_params,
    p.UNSUBSCRIBEFROMVIDEO_METHOD: UnsubscribeFromVideo.from_params,
    p.LEAVEROOM_METHOD: LeaveRoom.from_params,
    p.ONICECANDIDATE_METHOD: OnIceCandidate.from_params,
    p.SENDMESSAGE_METHOD: SendMessage.from_params,
    p.CUSTOMREQUEST_METHOD: CustomRequest.from_params,
}


def decode_command(method: str, params: Params) -> Command | None:
    """Return the typed command for *method*, or ``None`` if it is unknown."""

    factory = COMMANDS.get(method)
    if factory is None:
        return None
    return factory(params)


__all__ = [
    "Command",
    "COMMANDS",
    "CustomRequest",
    "JoinRoom",
    "LeaveRoom",
    "OnIceCandidate",
    "PublishVideo",
    "ReceiveVideoFrom",
    "SendMessage",
    "UnpublishVideo",
    "UnsubscribeFromVideo",
    "decode_command",
    "parse_sender_name",
]
