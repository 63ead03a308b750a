"""
BeeBark Backend — Socket.IO Handler Tests
===========================================

The handlers are registered on a mocked server and called directly, the
way python-socketio would call them.
"""

from unittest.mock import MagicMock

import pytest

from app.realtime import register_handlers
from app.services.presence import InMemoryPresenceRegistry


class TestSocketHandlers:

    def setup_method(self):
        self.server = MagicMock()
        self.registry = InMemoryPresenceRegistry()
        register_handlers(self.server, self.registry)
        self.handlers = {call.args[0]: call.args[1] for call in self.server.on.call_args_list}

    def test_all_events_registered(self):
        assert set(self.handlers) == {"connect", "register", "disconnect"}

    @pytest.mark.asyncio
    async def test_register_then_disconnect(self):
        await self.handlers["connect"]("sid-1", {})
        await self.handlers["register"]("sid-1", "user-1")
        assert self.registry.lookup("user-1") == "sid-1"

        await self.handlers["disconnect"]("sid-1")
        assert self.registry.lookup("user-1") is None

    @pytest.mark.asyncio
    async def test_register_without_user_id_is_ignored(self):
        await self.handlers["register"]("sid-1", None)
        assert self.registry.count() == 0

    @pytest.mark.asyncio
    async def test_disconnect_of_unregistered_socket(self):
        self.registry.register("user-1", "sid-1")
        await self.handlers["disconnect"]("sid-2", "client disconnect")
        assert self.registry.lookup("user-1") == "sid-1"
