"""
BeeBark Backend — Socket.IO Server
====================================

What:  The real-time channel clients keep open to receive statusUpdate,
       likeUpdated and commentAdded events.
How:   python-socketio AsyncServer in ASGI mode. app.main mounts it in front
       of the FastAPI app with socketio.ASGIApp, so HTTP and the socket share
       one uvicorn process and one event loop.

Client protocol:
    connect              → nothing is tracked until the client registers
    emit("register", id) → binds this sid to the user id in the presence registry
    disconnect           → removes the binding, if any

The channel is unauthenticated: the registered id is trusted as sent.
"""

import logging

import socketio

from app.config import settings
from app.services.presence import PresenceRegistry, presence_registry

logger = logging.getLogger(__name__)


def create_socket_server() -> socketio.AsyncServer:
    return socketio.AsyncServer(
        async_mode="asgi",
        cors_allowed_origins=settings.cors_origins_list,
        logger=False,
        engineio_logger=False,
    )


def register_handlers(server: socketio.AsyncServer, registry: PresenceRegistry) -> None:
    """Attach the presence-tracking event handlers to `server`."""

    async def connect(sid, environ, auth=None):
        logger.info("Socket connected: %s", sid)

    async def register(sid, user_id):
        if not user_id:
            logger.warning("Socket %s sent register without a user id", sid)
            return
        registry.register(str(user_id), sid)
        logger.info("User registered on socket: %s -> %s", user_id, sid)

    async def disconnect(sid, reason=None):
        user_id = registry.unregister(sid)
        if user_id:
            logger.info("User disconnected: %s (%s)", user_id, sid)
        else:
            logger.debug("Unregistered socket disconnected: %s", sid)

    server.on("connect", connect)
    server.on("register", register)
    server.on("disconnect", disconnect)


# ── Singleton Instance ────────────────────────────────────────────────────
sio = create_socket_server()
register_handlers(sio, presence_registry)
