"""JSON-RPC 2.0 envelope models and the method/parameter names of the protocol."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

JSONRPC_VERSION = "2.0"

# Request methods ---------------------------------------------------------------
JOINROOM_METHOD = "joinRoom"
JOINROOM_ROOM_PARAM = "room"
JOINROOM_TOKEN_PARAM = "token"
JOINROOM_SECRET_PARAM = "secret"
JOINROOM_METADATA_PARAM = "metadata"
JOINROOM_DATACHANNELS_PARAM = "dataChannels"

PUBLISHVIDEO_METHOD = "publishVideo"
PUBLISHVIDEO_SDPOFFER_PARAM = "sdpOffer"
PUBLISHVIDEO_AUDIOONLY_PARAM = "audioOnly"
PUBLISHVIDEO_DOLOOPBACK_PARAM = "doLoopback"

UNPUBLISHVIDEO_METHOD = "unpublishVideo"

RECEIVEVIDEO_METHOD = "receiveVideoFrom"
RECEIVEVIDEO_SENDER_PARAM = "sender"
RECEIVEVIDEO_SDPOFFER_PARAM = "sdpOffer"

UNSUBSCRIBEFROMVIDEO_METHOD = "unsubscribeFromVideo"
UNSUBSCRIBEFROMVIDEO_SENDER_PARAM = "sender"

LEAVEROOM_METHOD = "leaveRoom"

ONICECANDIDATE_METHOD = "onIceCandidate"
ONICECANDIDATE_EPNAME_PARAM = "endpointName"
ONICECANDIDATE_CANDIDATE_PARAM = "candidate"
ONICECANDIDATE_SDPMIDPARAM = "sdpMid"
ONICECANDIDATE_SDPMLINEINDEX_PARAM = "sdpMLineIndex"

SENDMESSAGE_METHOD = "sendMessage"
SENDMESSAGE_USER_PARAM = "user"
SENDMESSAGE_ROOM_PARAM = "room"
SENDMESSAGE_MESSAGE_PARAM = "message"

CUSTOMREQUEST_METHOD = "customRequest"

KEEPLIVE_METHOD = "ping"

# Server notifications ----------------------------------------------------------
PARTICIPANTJOINED_METHOD = "participantJoined"
PARTICIPANTLEFT_METHOD = "participantLeft"
PARTICIPANTEVICTED_METHOD = "participantEvicted"
PARTICIPANTPUBLISHED_METHOD = "participantPublished"
PARTICIPANTUNPUBLISHED_METHOD = "participantUnpublished"
PARTICIPANTSENDMESSAGE_METHOD = "sendMessage"
ICECANDIDATE_METHOD = "iceCandidate"

# Separator between a participant name and the stream tag in endpoint names.
ENDPOINT_NAME_SEPARATOR = "_"


class RpcRequest(BaseModel):
    """Inbound request or notification frame."""

    model_config = ConfigDict(extra="ignore")

    jsonrpc: str = Field(default=JSONRPC_VERSION)
    id: int | str | None = None
    method: str = Field(..., min_length=1)
    params: dict[str, Any] | None = None

    @property
    def is_notification(self) -> bool:
        return self.id is None


class RpcError(BaseModel):
    code: int
    message: str
    data: Any = None


class RpcResponse(BaseModel):
    jsonrpc: str = JSONRPC_VERSION
    id: int | str | None = None
    result: Any = None
    error: RpcError | None = None

    def to_wire(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"jsonrpc": self.jsonrpc, "id": self.id}
        if self.error is not None:
            payload["error"] = self.error.model_dump(exclude_none=True)
        else:
            payload["result"] = self.result if self.result is not None else {}
        return payload


class RpcNotification(BaseModel):
    """Server initiated message without an ``id``."""

    jsonrpc: str = JSONRPC_VERSION
    method: str
    params: dict[str, Any] = Field(default_factory=dict)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump()
