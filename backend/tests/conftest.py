"""
BeeBark Backend — Test Configuration (conftest.py)
====================================================

What:  Shared pytest fixtures for the whole suite.
How:   Each test gets a fresh in-memory SQLite database (aiosqlite) with the
       full schema, a session on it, and a recording fan-out channel in
       place of Socket.IO. The API client routes requests through the real
       ASGI stack (Socket.IO wrapper included) with the session injected.

Fixture Hierarchy:
    db_engine ── db_session ──┬── make_user / make_post
                              ├── connection_service / post_service
                              └── test_client
    fanout (RecordingFanout), media (AsyncMock upload)
"""

import os
import tempfile

# Must be set before anything imports app.config
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["UPLOAD_TMP_DIR"] = tempfile.mkdtemp(prefix="beebark_test_")
os.environ["MEDIA_RETRY_MAX_ATTEMPTS"] = "1"
os.environ["CLOUDINARY_CLOUD_NAME"] = "test-cloud"
os.environ["CLOUDINARY_API_KEY"] = "test-key-not-real"
os.environ["CLOUDINARY_API_SECRET"] = "test-secret-not-real"
os.environ["LOG_LEVEL"] = "WARNING"

from datetime import datetime, timezone
from typing import Any, AsyncGenerator, Dict, List, Optional, Tuple
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401
from app.database import Base, get_db_session
from app.models.post import Post
from app.models.user import User
from app.services.connection_service import ConnectionService
from app.services.fanout import FanoutChannel
from app.services.notification_service import NotificationService
from app.services.post_service import PostService


# ══════════════════════════════════════════════════════════════════════════
# Fakes
# ══════════════════════════════════════════════════════════════════════════

class RecordingFanout(FanoutChannel):
    """
    Fan-out channel that records instead of emitting.

    `online` lists user ids (as str) that count as having a live channel;
    emit_status to anyone else is recorded as dropped.
    """

    def __init__(self, online: Optional[set] = None):
        self.online = online
        self.statuses: List[Tuple[str, str, str]] = []
        self.dropped: List[Tuple[str, str, str]] = []
        self.broadcasts: List[Tuple[str, Dict[str, Any]]] = []

    async def emit_status(self, user_id, updated_user_id, new_status) -> bool:
        event = (str(user_id), str(updated_user_id), new_status)
        if self.online is not None and str(user_id) not in self.online:
            self.dropped.append(event)
            return False
        self.statuses.append(event)
        return True

    async def broadcast(self, event, payload) -> None:
        self.broadcasts.append((event, payload))

    def statuses_for(self, user_id) -> List[Tuple[str, str]]:
        return [(updated, status) for uid, updated, status in self.statuses if uid == str(user_id)]


# ══════════════════════════════════════════════════════════════════════════
# Database
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def db_engine():
    """Fresh in-memory database with every table created."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session


@pytest.fixture
def make_user(db_session):
    """
    Factory for committed users.

    Usage:
        alice = await make_user("alice")
    """
    async def _make(user_name: Optional[str] = None, **fields) -> User:
        user_name = user_name or f"user_{uuid4().hex[:8]}"
        user = User(
            first_name=fields.pop("first_name", user_name.capitalize()),
            last_name=fields.pop("last_name", "Bee"),
            user_name=user_name,
            email=fields.pop("email", f"{user_name}@beebark.test"),
            **fields,
        )
        db_session.add(user)
        await db_session.commit()
        return user

    return _make


@pytest.fixture
def make_post(db_session):
    """Factory for committed posts, with an explicit created_at when ordering matters."""
    async def _make(author: User, description: str = "hello hive", **fields) -> Post:
        post = Post(author_id=author.id, description=description, **fields)
        db_session.add(post)
        await db_session.commit()
        return post

    return _make


def at(hour: int) -> datetime:
    return datetime(2026, 1, 1, hour, 0, tzinfo=timezone.utc)


# ══════════════════════════════════════════════════════════════════════════
# Services
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def fanout():
    return RecordingFanout()


@pytest.fixture
def media():
    """Stand-in for MediaService; upload_image returns a fixed URL."""
    service = MagicMock()
    service.upload_image = AsyncMock(return_value="https://res.cloudinary.com/test/image/upload/bee.jpg")
    return service


@pytest.fixture
def connection_service(fanout):
    return ConnectionService(fanout=fanout, notifications=NotificationService())


@pytest.fixture
def post_service(fanout, media):
    return PostService(fanout=fanout, notifications=NotificationService(), media=media)


@pytest.fixture
def sample_image_bytes():
    """Smallest JPEG-shaped payload: SOI + JFIF header + EOI."""
    return (
        b'\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00'
        b'\xff\xd9'
    )


# ══════════════════════════════════════════════════════════════════════════
# HTTP
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def test_client(db_session, fanout, media, monkeypatch):
    """
    HTTPX client against the full ASGI app.

    The route singletons get the recording fan-out and the fake media
    service; every request shares the test's session.
    """
    from app.main import api, app
    from app.services.connection_service import connection_service as live_connections
    from app.services.post_service import post_service as live_posts

    monkeypatch.setattr(live_connections, "fanout", fanout)
    monkeypatch.setattr(live_posts, "fanout", fanout)
    monkeypatch.setattr(live_posts, "media", media)

    # No rollback on error: it would expire the fixtures' users mid-test,
    # and every error path under test fails before writing anything.
    async def override_session():
        yield db_session
        await db_session.commit()

    api.dependency_overrides[get_db_session] = override_session
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    api.dependency_overrides.clear()


def auth(user: User) -> Dict[str, str]:
    return {"X-User-ID": str(user.id)}
