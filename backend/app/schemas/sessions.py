"""Schemas for the room administration API."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, constr

from huddle.rooms.tokens import ParticipantRole


class SessionCreate(BaseModel):
    """Payload for creating a room session."""

    model_config = ConfigDict(populate_by_name=True)

    custom_session_id: constr(
        strip_whitespace=True, min_length=1, max_length=128, pattern=r"^[A-Za-z0-9_-]+$"
    ) | None = Field(default=None, alias="customSessionId", description="Requested room id")


class SessionRead(BaseModel):
    id: str


class TokenCreate(BaseModel):
    """Payload for issuing a token scoped to one room."""

    session: str = Field(..., min_length=1, description="Room the token admits to")
    role: ParticipantRole = Field(default=ParticipantRole.PUBLISHER)
    data: str = Field(default="", max_length=10000, description="Server side data attached to the token")


class TokenRead(BaseModel):
    token: str
    session: str
    role: ParticipantRole
    data: str


class ParticipantRead(BaseModel):
    connectionId: str
    id: str
    metadata: str = ""
    streams: list[dict[str, object]] = Field(default_factory=list)


class SessionDetail(BaseModel):
    id: str
    participants: list[ParticipantRead]
