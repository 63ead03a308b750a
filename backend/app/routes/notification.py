"""
BeeBark Backend — Notification Route Handlers
===============================================

The caller's inbox. Notifications are written by the connection and post
services; these routes only read and delete them.
"""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db_session
from app.dependencies import get_current_user_id
from app.schemas.common import ClearedResponse, ErrorResponse, MessageResponse
from app.schemas.notification import NotificationResponse
from app.services.notification_service import notification_service

router = APIRouter(prefix="/api/notification", tags=["Notifications"])


@router.get("", response_model=List[NotificationResponse], summary="The caller's notifications")
async def list_notifications(
    current_user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> List[NotificationResponse]:
    return await notification_service.list_for_user(db, current_user_id)


@router.delete("", response_model=ClearedResponse, summary="Delete all of the caller's notifications")
async def clear_notifications(
    current_user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> ClearedResponse:
    deleted = await notification_service.clear(db, current_user_id)
    return ClearedResponse(message="Notifications cleared", deleted=deleted)


@router.delete(
    "/{notification_id}",
    response_model=MessageResponse,
    responses={404: {"description": "Notification not found", "model": ErrorResponse}},
    summary="Delete one notification",
)
async def delete_notification(
    notification_id: UUID,
    current_user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await notification_service.delete(db, notification_id, current_user_id)
    return MessageResponse(message="Notification deleted")
