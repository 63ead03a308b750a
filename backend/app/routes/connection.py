"""
BeeBark Backend — Connection Route Handlers
=============================================

What:  The /api/connection endpoints: send, accept, reject, status, remove,
       incoming requests and the caller's connection list.
How:   Resolve the caller from the identity header, delegate to
       ConnectionService, return its result. Precondition failures surface
       through the global BeeBarkError handler.

Route order matters: the fixed paths (/requests, /list) are declared before
DELETE /{user_id} so they are never captured as a path parameter.
"""

import logging
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db_session
from app.dependencies import get_current_user_id
from app.schemas.common import ErrorResponse, MessageResponse
from app.schemas.connection import (
    ConnectionRequestResponse,
    ConnectionStatusResponse,
    IncomingRequestResponse,
)
from app.schemas.user import PublicUser
from app.services.connection_service import connection_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/connection", tags=["Connections"])

_PRECONDITION_RESPONSES = {
    400: {"description": "Request precondition failed", "model": ErrorResponse},
    401: {"description": "Missing caller identity", "model": ErrorResponse},
}


@router.get(
    "/requests",
    response_model=List[IncomingRequestResponse],
    summary="Pending requests addressed to the caller",
)
async def pending_requests(
    current_user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> List[IncomingRequestResponse]:
    return await connection_service.pending_incoming(db, current_user_id)


@router.get(
    "/list",
    response_model=List[PublicUser],
    summary="The caller's connections",
)
async def list_connections(
    current_user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> List[PublicUser]:
    return await connection_service.list_connections(db, current_user_id)


@router.post(
    "/send/{user_id}",
    response_model=ConnectionRequestResponse,
    responses={
        **_PRECONDITION_RESPONSES,
        404: {"description": "User not found", "model": ErrorResponse},
    },
    summary="Send a connection request",
    description=(
        "Creates a pending request from the caller to `user_id` and notifies "
        "both users over the socket channel (receiver: received, sender: pending)."
    ),
)
async def send_request(
    user_id: UUID,
    current_user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> ConnectionRequestResponse:
    return await connection_service.send(db, sender_id=current_user_id, receiver_id=user_id)


@router.put(
    "/accept/{connection_id}",
    response_model=MessageResponse,
    responses={
        **_PRECONDITION_RESPONSES,
        403: {"description": "Caller is not the receiver", "model": ErrorResponse},
    },
    summary="Accept a pending request",
)
async def accept_request(
    connection_id: UUID,
    current_user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await connection_service.accept(db, connection_id, current_user_id)
    return MessageResponse(message="Connection accepted")


@router.put(
    "/reject/{connection_id}",
    response_model=MessageResponse,
    responses={
        **_PRECONDITION_RESPONSES,
        403: {"description": "Caller is not the receiver", "model": ErrorResponse},
    },
    summary="Reject a pending request",
)
async def reject_request(
    connection_id: UUID,
    current_user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await connection_service.reject(db, connection_id, current_user_id)
    return MessageResponse(message="Connection rejected")


@router.get(
    "/status/{user_id}",
    response_model=ConnectionStatusResponse,
    response_model_exclude_none=True,
    summary="Relationship between the caller and another user",
    description="One of connected, pending (caller sent), received (with request_id) or connect.",
)
async def connection_status(
    user_id: UUID,
    current_user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> ConnectionStatusResponse:
    return await connection_service.status(db, current_user_id, user_id)


@router.delete(
    "/{user_id}",
    response_model=MessageResponse,
    summary="Remove a connection",
    description="Succeeds even when the two users were not connected.",
)
async def remove_connection(
    user_id: UUID,
    current_user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await connection_service.remove(db, current_user_id, user_id)
    return MessageResponse(message="Connection removed successfully")
