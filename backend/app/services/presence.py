"""
BeeBark Backend — Presence Registry
=====================================

What:  Maps a user id to the Socket.IO session id (sid) of that user's live
       connection, if any.
Why:   Targeted real-time events (connection status changes) need to find the
       one channel a user is listening on.
How:   PresenceRegistry defines the contract; InMemoryPresenceRegistry keeps a
       dict guarded by a lock. Entries live for the process lifetime only and
       are lost on restart, which is fine: they describe current connectivity.
Who:   Written by the Socket.IO handlers in app.realtime, read by the fan-out
       channel before every targeted emit.

Only one live channel per user is tracked: a later register() for the same
user overwrites the earlier sid.
"""

import logging
import threading
from abc import ABC, abstractmethod
from typing import Dict, Optional

logger = logging.getLogger(__name__)


class PresenceRegistry(ABC):
    """Contract for finding a user's live channel."""

    @abstractmethod
    def register(self, user_id: str, sid: str) -> None:
        """Bind `sid` to `user_id`, replacing any earlier binding."""
        ...

    @abstractmethod
    def unregister(self, sid: str) -> Optional[str]:
        """
        Drop the entry whose channel is `sid`.

        Returns:
            The user id that was removed, or None when no entry matched.
        """
        ...

    @abstractmethod
    def lookup(self, user_id: str) -> Optional[str]:
        """Return the live sid for `user_id`, or None."""
        ...

    @abstractmethod
    def count(self) -> int:
        ...


class InMemoryPresenceRegistry(PresenceRegistry):
    """
    Process-local registry.

    Thread Safety:
        Every operation holds `_lock`, so the registry is correct under the
        asyncio event loop and under a threaded server alike. The lock is
        never held across an await.
    """

    def __init__(self) -> None:
        self._channels: Dict[str, str] = {}
        self._lock = threading.Lock()

    def register(self, user_id: str, sid: str) -> None:
        with self._lock:
            previous = self._channels.get(user_id)
            self._channels[user_id] = sid
        if previous and previous != sid:
            logger.debug("User %s re-registered: %s replaces %s", user_id, sid, previous)

    def unregister(self, sid: str) -> Optional[str]:
        with self._lock:
            for user_id, channel in self._channels.items():
                if channel == sid:
                    del self._channels[user_id]
                    return user_id
        return None

    def lookup(self, user_id: str) -> Optional[str]:
        with self._lock:
            return self._channels.get(user_id)

    def count(self) -> int:
        with self._lock:
            return len(self._channels)


# ── Singleton Instance ────────────────────────────────────────────────────
# Shared by the Socket.IO handlers and the fan-out channel
presence_registry = InMemoryPresenceRegistry()
