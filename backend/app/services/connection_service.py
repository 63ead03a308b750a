"""
BeeBark Backend — Connection Lifecycle Service
================================================

What:  Creates, accepts, rejects, queries and removes connections between two
       users.
How:   Each operation is a handful of direct queries on the caller's session,
       an optional notification row, a commit, then optional statusUpdate
       events through the fan-out channel.
Who:   Called by the /api/connection routes.

Request lifecycle:
    send ──▶ pending ──accept──▶ accepted  (both users gain each other)
                    └─reject───▶ rejected  (sender is notified, no emit)
    remove edits the connection sets only; request rows are kept.

Status seen by the caller (status()):
    connected | pending (caller sent) | received (caller got one) | connect

Events are emitted after the commit so a client never hears about a change
that was rolled back.
"""

import logging
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import and_, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.exceptions import (
    AlreadyConnectedError,
    AlreadyProcessedError,
    DuplicatePendingError,
    NotFoundError,
    RequestNotFoundError,
    SelfRequestError,
    UnauthorizedActionError,
)
from app.models.connection import ConnectionRequest, ConnectionStatus
from app.models.notification import NotificationType
from app.models.user import User, user_connections
from app.schemas.connection import (
    ConnectionRequestResponse,
    ConnectionStatusResponse,
    IncomingRequestResponse,
)
from app.schemas.user import PublicUser
from app.services.fanout import FanoutChannel, fanout_channel
from app.services.notification_service import NotificationService, notification_service

logger = logging.getLogger(__name__)


class ConnectionService:
    """
    Business logic for connection requests.

    Dependencies are injected so tests can pass a recording fan-out channel;
    the module-level singleton uses the Socket.IO channel.
    """

    def __init__(
        self,
        fanout: FanoutChannel = fanout_channel,
        notifications: NotificationService = notification_service,
    ):
        self.fanout = fanout
        self.notifications = notifications

    # ── Queries ───────────────────────────────────────────────────────────

    async def _are_connected(self, db: AsyncSession, user_id: UUID, other_id: UUID) -> bool:
        result = await db.execute(
            select(user_connections.c.user_id).where(
                user_connections.c.user_id == user_id,
                user_connections.c.connected_user_id == other_id,
            )
        )
        return result.first() is not None

    async def _get_request(self, db: AsyncSession, connection_id: UUID) -> ConnectionRequest:
        result = await db.execute(
            select(ConnectionRequest).where(ConnectionRequest.id == connection_id)
        )
        request = result.scalar_one_or_none()
        if request is None:
            raise RequestNotFoundError(context={"connection_id": str(connection_id)})
        return request

    async def _load_pair(
        self, db: AsyncSession, first_id: UUID, second_id: UUID
    ) -> Tuple[Optional[User], Optional[User]]:
        """Both users with their connection sets loaded, in one query."""
        result = await db.execute(
            select(User)
            .where(User.id.in_([first_id, second_id]))
            .options(selectinload(User.connections))
            .execution_options(populate_existing=True)
        )
        users = {user.id: user for user in result.scalars().all()}
        return users.get(first_id), users.get(second_id)

    def _check_receiver(self, request: ConnectionRequest, acting_user_id: UUID) -> None:
        """Preconditions shared by accept and reject, in the order clients expect."""
        if request.status != ConnectionStatus.PENDING.value:
            raise AlreadyProcessedError(context={"status": request.status})
        if request.receiver_id != acting_user_id:
            raise UnauthorizedActionError(context={"connection_id": str(request.id)})

    # ── Operations ────────────────────────────────────────────────────────

    async def send(
        self, db: AsyncSession, sender_id: UUID, receiver_id: UUID
    ) -> ConnectionRequestResponse:
        """
        Open a pending request from `sender_id` to `receiver_id`.

        Raises:
            SelfRequestError:       sender and receiver are the same user
            NotFoundError:          sender or receiver does not exist
            AlreadyConnectedError:  receiver already in the sender's set
            DuplicatePendingError:  a pending sender→receiver request exists
        """
        if sender_id == receiver_id:
            raise SelfRequestError()

        for user_id in (sender_id, receiver_id):
            if await db.get(User, user_id) is None:
                raise NotFoundError(resource="user", resource_id=str(user_id))

        if await self._are_connected(db, sender_id, receiver_id):
            raise AlreadyConnectedError()

        existing = await db.execute(
            select(ConnectionRequest.id).where(
                ConnectionRequest.sender_id == sender_id,
                ConnectionRequest.receiver_id == receiver_id,
                ConnectionRequest.status == ConnectionStatus.PENDING.value,
            )
        )
        if existing.first() is not None:
            raise DuplicatePendingError()

        request = ConnectionRequest(
            sender_id=sender_id,
            receiver_id=receiver_id,
            status=ConnectionStatus.PENDING.value,
        )
        db.add(request)
        try:
            await db.flush()
        except IntegrityError:
            # A concurrent send won the race; the pending-pair index refused ours
            logger.info("Duplicate pending request %s -> %s rejected by store", sender_id, receiver_id)
            raise DuplicatePendingError()

        await db.commit()
        logger.info("Connection request %s: %s -> %s", request.id, sender_id, receiver_id)

        await self.fanout.emit_status(receiver_id, sender_id, "received")
        await self.fanout.emit_status(sender_id, receiver_id, "pending")

        return ConnectionRequestResponse.model_validate(request)

    async def accept(self, db: AsyncSession, connection_id: UUID, acting_user_id: UUID) -> None:
        """
        Accept a pending request as its receiver.

        Raises:
            RequestNotFoundError:    no such request
            AlreadyProcessedError:   request is no longer pending
            UnauthorizedActionError: caller is not the receiver
        """
        request = await self._get_request(db, connection_id)
        self._check_receiver(request, acting_user_id)

        request.status = ConnectionStatus.ACCEPTED.value
        sender_id, receiver_id = request.sender_id, request.receiver_id

        sender, receiver = await self._load_pair(db, sender_id, receiver_id)
        # Set semantics: re-adding an existing member changes nothing
        if sender is not None and receiver is not None:
            sender.connections.add(receiver)
            receiver.connections.add(sender)

        await self.notifications.create(
            db,
            receiver_id=sender_id,
            notification_type=NotificationType.CONNECTION_ACCEPTED,
            related_user_id=receiver_id,
        )
        await db.commit()
        logger.info("Connection request %s accepted by %s", connection_id, acting_user_id)

        await self.fanout.emit_status(receiver_id, sender_id, "connected")
        await self.fanout.emit_status(sender_id, receiver_id, "connected")

    async def reject(self, db: AsyncSession, connection_id: UUID, acting_user_id: UUID) -> None:
        """Reject a pending request as its receiver. Same preconditions as accept()."""
        request = await self._get_request(db, connection_id)
        self._check_receiver(request, acting_user_id)

        request.status = ConnectionStatus.REJECTED.value
        await self.notifications.create(
            db,
            receiver_id=request.sender_id,
            notification_type=NotificationType.CONNECTION_REJECTED,
            related_user_id=acting_user_id,
        )
        await db.commit()
        logger.info("Connection request %s rejected by %s", connection_id, acting_user_id)

    async def status(
        self, db: AsyncSession, current_user_id: UUID, target_user_id: UUID
    ) -> ConnectionStatusResponse:
        if await self._are_connected(db, current_user_id, target_user_id):
            return ConnectionStatusResponse(status="connected")

        result = await db.execute(
            select(ConnectionRequest)
            .where(
                or_(
                    and_(
                        ConnectionRequest.sender_id == current_user_id,
                        ConnectionRequest.receiver_id == target_user_id,
                    ),
                    and_(
                        ConnectionRequest.sender_id == target_user_id,
                        ConnectionRequest.receiver_id == current_user_id,
                    ),
                ),
                ConnectionRequest.status == ConnectionStatus.PENDING.value,
            )
            .order_by(ConnectionRequest.created_at)
            .limit(1)
        )
        pending = result.scalar_one_or_none()
        if pending is None:
            return ConnectionStatusResponse(status="connect")
        if pending.sender_id == current_user_id:
            return ConnectionStatusResponse(status="pending")
        return ConnectionStatusResponse(status="received", request_id=pending.id)

    async def remove(self, db: AsyncSession, current_user_id: UUID, target_user_id: UUID) -> None:
        """
        Drop the connection in both directions.

        Removing a connection that never existed, or naming a user that does
        not exist, is a successful no-op.
        """
        current, target = await self._load_pair(db, current_user_id, target_user_id)
        if current is not None and target is not None:
            current.connections.discard(target)
            target.connections.discard(current)

        await db.commit()
        logger.info("Connection removed: %s <-> %s", current_user_id, target_user_id)

        await self.fanout.emit_status(target_user_id, current_user_id, "connect")
        await self.fanout.emit_status(current_user_id, target_user_id, "connect")

    async def pending_incoming(self, db: AsyncSession, user_id: UUID) -> List[IncomingRequestResponse]:
        result = await db.execute(
            select(ConnectionRequest)
            .where(
                ConnectionRequest.receiver_id == user_id,
                ConnectionRequest.status == ConnectionStatus.PENDING.value,
            )
            .options(selectinload(ConnectionRequest.sender))
            .order_by(ConnectionRequest.created_at.desc())
        )
        return [IncomingRequestResponse.model_validate(r) for r in result.scalars().all()]

    async def list_connections(self, db: AsyncSession, user_id: UUID) -> List[PublicUser]:
        result = await db.execute(
            select(User)
            .join(user_connections, user_connections.c.connected_user_id == User.id)
            .where(user_connections.c.user_id == user_id)
            .order_by(User.first_name, User.last_name)
        )
        return [PublicUser.model_validate(u) for u in result.scalars().all()]


# ── Singleton Instance ────────────────────────────────────────────────────
connection_service = ConnectionService()
