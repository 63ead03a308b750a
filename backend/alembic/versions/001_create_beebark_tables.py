"""Create BeeBark tables

Revision ID: 001
Revises: None
Create Date: 2026-10-19 00:00:00.000000+00:00

What:  users, user_connections, connection_requests, posts, post_likes,
       post_comments and notifications, with their indexes.
Note:  uq_connection_requests_pending is a partial unique index; it is what
       keeps at most one pending request per ordered (sender, receiver) pair.

Rollback: downgrade() drops every table (destructive).
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

UUID = postgresql.UUID(as_uuid=True)


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.TIMESTAMP(timezone=True),
        server_default=sa.text("CURRENT_TIMESTAMP"),
        nullable=False,
    )


def _user_fk(name: str, **kwargs) -> sa.Column:
    return sa.Column(
        name, UUID, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, **kwargs
    )


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", UUID, server_default=sa.text("gen_random_uuid()"), nullable=False),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("user_name", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("profile_image", sa.String(500), nullable=True),
        sa.Column("headline", sa.String(255), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_name"),
        sa.UniqueConstraint("email"),
    )

    # One row per direction; the composite key makes each set unique
    op.create_table(
        "user_connections",
        _user_fk("user_id"),
        _user_fk("connected_user_id"),
        sa.PrimaryKeyConstraint("user_id", "connected_user_id"),
    )

    op.create_table(
        "connection_requests",
        sa.Column("id", UUID, server_default=sa.text("gen_random_uuid()"), nullable=False),
        _user_fk("sender_id"),
        _user_fk("receiver_id"),
        sa.Column(
            "status",
            sa.String(20),
            nullable=False,
            server_default=sa.text("'pending'"),
            comment="pending, accepted, rejected",
        ),
        _created_at(),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_connection_requests_sender_id", "connection_requests", ["sender_id"])
    op.create_index("ix_connection_requests_receiver_id", "connection_requests", ["receiver_id"])
    op.create_index(
        "uq_connection_requests_pending",
        "connection_requests",
        ["sender_id", "receiver_id"],
        unique=True,
        postgresql_where=sa.text("status = 'pending'"),
    )

    op.create_table(
        "posts",
        sa.Column("id", UUID, server_default=sa.text("gen_random_uuid()"), nullable=False),
        _user_fk("author_id"),
        sa.Column("description", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column("image", sa.String(500), nullable=True, comment="Media host URL"),
        _created_at(),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_posts_author_id", "posts", ["author_id"])
    op.create_index("idx_posts_created_at", "posts", ["created_at"])

    op.create_table(
        "post_likes",
        sa.Column("post_id", UUID, sa.ForeignKey("posts.id", ondelete="CASCADE"), nullable=False),
        _user_fk("user_id"),
        _created_at(),
        sa.PrimaryKeyConstraint("post_id", "user_id"),
    )

    op.create_table(
        "post_comments",
        sa.Column("id", UUID, server_default=sa.text("gen_random_uuid()"), nullable=False),
        sa.Column("post_id", UUID, sa.ForeignKey("posts.id", ondelete="CASCADE"), nullable=False),
        _user_fk("user_id"),
        sa.Column("content", sa.Text(), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_post_comments_post_id", "post_comments", ["post_id"])

    op.create_table(
        "notifications",
        sa.Column("id", UUID, server_default=sa.text("gen_random_uuid()"), nullable=False),
        _user_fk("receiver_id"),
        sa.Column("type", sa.String(32), nullable=False),
        _user_fk("related_user_id"),
        sa.Column(
            "related_post_id",
            UUID,
            sa.ForeignKey("posts.id", ondelete="CASCADE"),
            nullable=True,
        ),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "idx_notifications_receiver_created", "notifications", ["receiver_id", "created_at"]
    )


def downgrade() -> None:
    op.drop_index("idx_notifications_receiver_created", table_name="notifications")
    op.drop_table("notifications")
    op.drop_index("ix_post_comments_post_id", table_name="post_comments")
    op.drop_table("post_comments")
    op.drop_table("post_likes")
    op.drop_index("idx_posts_created_at", table_name="posts")
    op.drop_index("ix_posts_author_id", table_name="posts")
    op.drop_table("posts")
    op.drop_index("uq_connection_requests_pending", table_name="connection_requests")
    op.drop_index("ix_connection_requests_receiver_id", table_name="connection_requests")
    op.drop_index("ix_connection_requests_sender_id", table_name="connection_requests")
    op.drop_table("connection_requests")
    op.drop_table("user_connections")
    op.drop_table("users")
