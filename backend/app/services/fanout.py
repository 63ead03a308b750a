"""
BeeBark Backend — Real-time Fan-out Channel
=============================================

What:  Pushes events to Socket.IO clients on behalf of the services.
Why:   Services should not know about sids or the socket server; they say
       "tell user X that Y is now connected" or "tell everyone post P changed".
How:   FanoutChannel is the contract (services depend on it, tests swap in a
       recording fake); SocketIOFanout implements it on top of the AsyncServer
       and the presence registry.

Delivery:
    Fire-and-forget. A user with no live channel simply misses the event;
    nothing is queued. Broadcasts go to every connected client regardless of
    who the post belongs to.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict

import socketio

from app.realtime import sio
from app.services.presence import PresenceRegistry, presence_registry

logger = logging.getLogger(__name__)

STATUS_UPDATE_EVENT = "statusUpdate"
LIKE_UPDATED_EVENT = "likeUpdated"
COMMENT_ADDED_EVENT = "commentAdded"


class FanoutChannel(ABC):
    """Contract used by ConnectionService and PostService."""

    @abstractmethod
    async def emit_status(self, user_id: Any, updated_user_id: Any, new_status: str) -> bool:
        """
        Tell `user_id` that their relationship with `updated_user_id` is now
        `new_status`.

        Returns:
            True if the event was handed to a live channel, False if dropped.
        """
        ...

    @abstractmethod
    async def broadcast(self, event: str, payload: Dict[str, Any]) -> None:
        """Send `event` to every connected client."""
        ...


class SocketIOFanout(FanoutChannel):
    """Fan-out over python-socketio, targeting sids found in the presence registry."""

    def __init__(
        self,
        server: socketio.AsyncServer,
        registry: PresenceRegistry,
        namespace: str = "/",
    ):
        self.server = server
        self.registry = registry
        self.namespace = namespace

    def _live_sid(self, user_id: Any):
        sid = self.registry.lookup(str(user_id))
        if sid is None:
            return None
        # The registry can lag behind the socket manager (disconnect handler
        # not yet run), so confirm the sid is still attached.
        if not self.server.manager.is_connected(sid, self.namespace):
            return None
        return sid

    async def emit_status(self, user_id: Any, updated_user_id: Any, new_status: str) -> bool:
        sid = self._live_sid(user_id)
        if sid is None:
            logger.debug("No live channel for user %s; dropped %s", user_id, new_status)
            return False

        await self.server.emit(
            STATUS_UPDATE_EVENT,
            {"updatedUserId": str(updated_user_id), "newStatus": new_status},
            to=sid,
            namespace=self.namespace,
        )
        return True

    async def broadcast(self, event: str, payload: Dict[str, Any]) -> None:
        await self.server.emit(event, payload, namespace=self.namespace)


# ── Singleton Instance ────────────────────────────────────────────────────
fanout_channel = SocketIOFanout(sio, presence_registry)
