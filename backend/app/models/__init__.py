"""
BeeBark Backend — ORM Models
==============================

Importing this package registers every table with Base.metadata
(Alembic and the test suite rely on that).
"""

from app.models.user import User, user_connections
from app.models.connection import ConnectionRequest, ConnectionStatus
from app.models.post import Post, PostComment, PostLike
from app.models.notification import Notification, NotificationType

__all__ = [
    "User",
    "user_connections",
    "ConnectionRequest",
    "ConnectionStatus",
    "Post",
    "PostComment",
    "PostLike",
    "Notification",
    "NotificationType",
]
