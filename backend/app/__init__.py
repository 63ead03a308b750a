"""
BeeBark Backend — Application Package
=======================================

What: The social backend behind the BeeBark feed: connections between users,
      posts with likes and comments, notifications, and a Socket.IO channel
      that pushes changes to connected clients.
Who:  Imported by uvicorn (app.main:app), Alembic and pytest.

Layers:
    ┌─────────────────────────────────────┐
    │   Routes (HTTP)  │  Socket.IO (ws)  │  ← transport only
    ├─────────────────────────────────────┤
    │  Services (connections, posts, ...) │  ← rules, notifications, fan-out
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
