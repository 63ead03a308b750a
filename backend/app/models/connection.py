"""
BeeBark Backend — ConnectionRequest SQLAlchemy Model
======================================================

Lifecycle:
    pending ──accept──▶ accepted
       └────reject───▶ rejected
    Rows are never deleted; removing a connection only edits the users'
    connection sets.

Index `uq_connection_requests_pending`:
    Partial unique index on (sender_id, receiver_id) WHERE status = 'pending'.
    Two concurrent sends for the same ordered pair can both pass the
    service's read check; the second insert then fails here instead of
    leaving two pending rows.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import DateTime, ForeignKey, Index, String, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base
from app.models.user import User


class ConnectionStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class ConnectionRequest(Base):
    __tablename__ = "connection_requests"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    sender_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    receiver_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=ConnectionStatus.PENDING.value,
        comment="pending, accepted, rejected",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    sender: Mapped[User] = relationship(User, foreign_keys=[sender_id])
    receiver: Mapped[User] = relationship(User, foreign_keys=[receiver_id])

    __table_args__ = (
        Index(
            "uq_connection_requests_pending",
            "sender_id",
            "receiver_id",
            unique=True,
            postgresql_where=text("status = 'pending'"),
            sqlite_where=text("status = 'pending'"),
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<ConnectionRequest(id={self.id}, sender={self.sender_id}, "
            f"receiver={self.receiver_id}, status='{self.status}')>"
        )
