"""Room administration endpoints guarded by the admin secret."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Response, status

from huddle.rpc.errors import ParticipantNotFound, RoomNotFound

from app.api.deps import get_services, require_admin
from app.schemas.sessions import (
    ParticipantRead,
    SessionCreate,
    SessionDetail,
    SessionRead,
    TokenCreate,
    TokenRead,
)
from app.services import SignalingServices

router = APIRouter(tags=["sessions"], dependencies=[Depends(require_admin)])

logger = logging.getLogger(__name__)


@router.post("/sessions", response_model=SessionRead, status_code=status.HTTP_200_OK)
async def create_session(
    payload: SessionCreate | None = None,
    services: SignalingServices = Depends(get_services),
) -> SessionRead:
    """Create a room, reusing it when ``customSessionId`` already exists."""

    custom_id = payload.custom_session_id if payload is not None else None
    session = await services.tokens.create_session(custom_id)
    logger.info("Room session %s created", session.room_id)
    return SessionRead(id=session.room_id)


@router.post("/tokens", response_model=TokenRead)
async def create_token(
    payload: TokenCreate,
    services: SignalingServices = Depends(get_services),
) -> TokenRead:
    try:
        token = await services.tokens.new_token(
            payload.session, role=payload.role, server_data=payload.data
        )
    except RoomNotFound as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=exc.message) from exc
    return TokenRead.model_validate(token.to_public())


@router.get("/sessions/{session_id}", response_model=SessionDetail)
async def get_session(
    session_id: str,
    services: SignalingServices = Depends(get_services),
) -> SessionDetail:
    registered = await services.tokens.get_session(session_id)
    try:
        snapshot = await services.rooms.snapshot(session_id)
    except RoomNotFound:
        if registered is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail="Session not found"
            ) from None
        snapshot = []
    return SessionDetail(
        id=session_id,
        participants=[ParticipantRead.model_validate(entry) for entry in snapshot],
    )


@router.delete(
    "/sessions/{session_id}/connection/{connection_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def evict_connection(
    session_id: str,
    connection_id: str,
    services: SignalingServices = Depends(get_services),
) -> Response:
    room_id = await services.rooms.get_room_name_from_participant_id(connection_id)
    if room_id != session_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Connection not found")
    try:
        await services.rooms.evict_participant(connection_id)
    except ParticipantNotFound as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=exc.message) from exc
    logger.info("Connection %s evicted from session %s by admin", connection_id, session_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/sessions/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def close_session(
    session_id: str,
    services: SignalingServices = Depends(get_services),
) -> Response:
    try:
        participants = await services.rooms.get_participants(session_id)
    except RoomNotFound:
        participants = []
    for participant in participants:
        await services.control.leave_room_after_connection_closed(participant.participant_id)
    try:
        await services.tokens.close_session(session_id)
    except RoomNotFound as exc:
        if not participants:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=exc.message) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)
