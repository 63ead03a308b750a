"""
BeeBark Backend — Notification Service
========================================

What:  Writes notification rows as a side effect of connection and post
       activity, and serves the receiver's notification list.
How:   create() is a pure append inside the caller's transaction; the other
       methods are straightforward projection queries.
Who:   ConnectionService and PostService call create(); the
       /api/notification routes call the rest.

There is no read/ack model: a notification exists until its receiver
deletes it.
"""

import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.exceptions import DatabaseError, NotFoundError
from app.models.notification import Notification, NotificationType
from app.schemas.notification import NotificationResponse

logger = logging.getLogger(__name__)


class NotificationService:
    """Per-user notification inbox, written in the same transaction as its cause."""

    async def create(
        self,
        db: AsyncSession,
        receiver_id: UUID,
        notification_type: NotificationType,
        related_user_id: UUID,
        related_post_id: Optional[UUID] = None,
    ) -> Notification:
        """
        Append a notification for `receiver_id`.

        The row is flushed but not committed; it lands or rolls back together
        with the change that caused it.
        """
        notification = Notification(
            receiver_id=receiver_id,
            type=NotificationType(notification_type).value,
            related_user_id=related_user_id,
            related_post_id=related_post_id,
        )
        db.add(notification)
        await db.flush()
        logger.info(
            "Notification %s created for %s (related user %s)",
            notification.type,
            receiver_id,
            related_user_id,
        )
        return notification

    async def list_for_user(self, db: AsyncSession, user_id: UUID) -> List[NotificationResponse]:
        """All notifications addressed to `user_id`, newest first."""
        try:
            result = await db.execute(
                select(Notification)
                .where(Notification.receiver_id == user_id)
                .options(
                    selectinload(Notification.related_user),
                    selectinload(Notification.related_post),
                )
                .order_by(Notification.created_at.desc())
            )
            notifications = result.scalars().all()
        except Exception as e:
            logger.error("Database error listing notifications for %s: %s", user_id, str(e))
            raise DatabaseError(
                message="Could not retrieve notifications. Please try again.",
                context={"error_type": type(e).__name__},
            )

        return [NotificationResponse.model_validate(n) for n in notifications]

    async def delete(self, db: AsyncSession, notification_id: UUID, user_id: UUID) -> None:
        """
        Delete one notification owned by `user_id`.

        Raises:
            NotFoundError: no such notification for this user. Someone else's
                notification is reported the same way so ids cannot be probed.
        """
        result = await db.execute(
            select(Notification).where(
                Notification.id == notification_id,
                Notification.receiver_id == user_id,
            )
        )
        notification = result.scalar_one_or_none()
        if notification is None:
            raise NotFoundError(
                resource="notification",
                resource_id=str(notification_id),
                message="Notification not found",
            )

        await db.delete(notification)
        await db.flush()

    async def clear(self, db: AsyncSession, user_id: UUID) -> int:
        """Delete every notification addressed to `user_id`; returns how many."""
        result = await db.execute(
            delete(Notification).where(Notification.receiver_id == user_id)
        )
        await db.flush()
        deleted = result.rowcount or 0
        logger.info("Cleared %d notifications for %s", deleted, user_id)
        return deleted


# ── Singleton Instance ────────────────────────────────────────────────────
notification_service = NotificationService()
