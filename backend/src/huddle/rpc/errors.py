"""Error kinds surfaced through the JSON-RPC response channel."""

from __future__ import annotations

from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Numeric codes understood by signaling clients."""

    GENERIC = 999
    USER_NOT_FOUND = 102
    EXISTING_USER_IN_ROOM = 104
    USER_NOT_STREAMING = 105
    ROOM_NOT_FOUND = 202
    MEDIA_GENERIC = 301
    MEDIA_SDP = 302
    UNAUTHORIZED = 401
    METADATA_FORMAT_INVALID = 500
    INVALID_PARAMS = -32602
    UNSUPPORTED = -32601
    INVALID_REQUEST = -32600
    PARSE_ERROR = -32700


class SignalingError(Exception):
    """Base class for errors that are reported back to the client."""

    code: ErrorCode = ErrorCode.GENERIC

    def __init__(self, message: str, *, data: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.data = data

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"code": int(self.code), "message": self.message}
        if self.data is not None:
            payload["data"] = self.data
        return payload


class MissingParameter(SignalingError):
    code = ErrorCode.INVALID_PARAMS

    def __init__(self, key: str) -> None:
        super().__init__(f"Request element '{key}' is missing", data={"param": key})
        self.key = key


class MalformedParameter(SignalingError):
    code = ErrorCode.INVALID_PARAMS

    def __init__(self, key: str, reason: str | None = None) -> None:
        message = f"Request element '{key}' is malformed"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message, data={"param": key})
        self.key = key


class Unauthorized(SignalingError):
    code = ErrorCode.UNAUTHORIZED


class MetadataFormatInvalid(SignalingError):
    code = ErrorCode.METADATA_FORMAT_INVALID


class Unsupported(SignalingError):
    code = ErrorCode.UNSUPPORTED

    def __init__(self, method: str) -> None:
        super().__init__(f"Unsupported method '{method}'", data={"method": method})
        self.method = method


class InvalidRequest(SignalingError):
    code = ErrorCode.INVALID_REQUEST


class ParseError(SignalingError):
    code = ErrorCode.PARSE_ERROR


class ParticipantNotFound(SignalingError):
    code = ErrorCode.USER_NOT_FOUND


class ExistingUserInRoom(SignalingError):
    code = ErrorCode.EXISTING_USER_IN_ROOM


class UserNotStreaming(SignalingError):
    code = ErrorCode.USER_NOT_STREAMING


class RoomNotFound(SignalingError):
    code = ErrorCode.ROOM_NOT_FOUND


class MediaError(SignalingError):
    code = ErrorCode.MEDIA_GENERIC


class SdpError(MediaError):
    code = ErrorCode.MEDIA_SDP


__all__ = [
    "ErrorCode",
    "SignalingError",
    "MissingParameter",
    "MalformedParameter",
    "Unauthorized",
    "MetadataFormatInvalid",
    "Unsupported",
    "InvalidRequest",
    "ParseError",
    "ParticipantNotFound",
    "ExistingUserInRoom",
    "UserNotStreaming",
    "RoomNotFound",
    "MediaError",
    "SdpError",
]
