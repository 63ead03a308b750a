"""
BeeBark Backend — User SQLAlchemy Model
=========================================

What:  ORM model for the `users` table plus the `user_connections` set.
Who:   Rows are created by the registration service (outside this backend);
       ConnectionService only reads them and mutates the connection set.

Connection set:
    Stored as one row per direction in `user_connections`. The composite
    primary key makes the set unique, so adding an existing member is a
    no-op at the collection level and a constraint violation at the store
    level, never a duplicate.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional, Set

from sqlalchemy import Column, DateTime, ForeignKey, String, Table, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base


user_connections = Table(
    "user_connections",
    Base.metadata,
    Column("user_id", Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column(
        "connected_user_id",
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)


class User(Base):
    """A member of the network, as far as this backend needs to know it."""

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    user_name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    profile_image: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    headline: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    connections: Mapped[Set["User"]] = relationship(
        "User",
        secondary=user_connections,
        primaryjoin=lambda: User.id == user_connections.c.user_id,
        secondaryjoin=lambda: User.id == user_connections.c.connected_user_id,
        collection_class=set,
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, user_name='{self.user_name}')>"
