"""
Unit tests for RoomRegistry and PresenceSignaler

Tests:
- Membership binding and idempotent re-binding
- Switching rooms
- Broadcast with and without the originator
- Dead connections dropped on delivery failure
- Typing indicators scoped to a room
"""

import pytest

from backend.core.identity import Identity
from backend.services.presence import PresenceSignaler
from backend.services.room_registry import RoomRegistry


@pytest.fixture
def registry():
    return RoomRegistry()


def _register(registry, connection_factory, token="anon_a"):
    connection = connection_factory()
    registry.register(connection, Identity.anonymous(token))
    return connection


@pytest.mark.unit
class TestMembership:

    def test_bind_adds_member(self, registry, connection_factory):
        conn = _register(registry, connection_factory)

        assert registry.bind(conn.id, "room-1") is True
        assert registry.members("room-1") == [conn.id]
        assert registry.state(conn.id).chat_session_id == "room-1"

    def test_rebind_same_room_is_noop(self, registry, connection_factory):
        conn = _register(registry, connection_factory)
        registry.bind(conn.id, "room-1")

        assert registry.bind(conn.id, "room-1") is False
        assert registry.members("room-1") == [conn.id]

    def test_bind_other_room_leaves_previous(self, registry, connection_factory):
        conn = _register(registry, connection_factory)
        registry.bind(conn.id, "room-1")
        registry.bind(conn.id, "room-2")

        assert registry.members("room-1") == []
        assert registry.members("room-2") == [conn.id]

    def test_bind_unregistered_connection_raises(self, registry):
        with pytest.raises(KeyError):
            registry.bind("ghost", "room-1")

    def test_leave_keeps_other_rooms(self, registry, connection_factory):
        a = _register(registry, connection_factory, "anon_a")
        b = _register(registry, connection_factory, "anon_b")
        registry.bind(a.id, "room-1")
        registry.bind(b.id, "room-2")

        assert registry.leave(a.id) == "room-1"
        assert registry.members("room-2") == [b.id]
        assert registry.room_count() == 1

    def test_disconnect_forgets_state(self, registry, connection_factory):
        conn = _register(registry, connection_factory)
        registry.bind(conn.id, "room-1")

        assert registry.disconnect(conn.id) == "room-1"
        assert registry.state(conn.id) is None
        assert registry.disconnect(conn.id) is None


@pytest.mark.unit
class TestBroadcast:

    @pytest.mark.asyncio
    async def test_broadcast_excludes_originator(self, registry, connection_factory):
        a = _register(registry, connection_factory, "anon_a")
        b = _register(registry, connection_factory, "anon_b")
        registry.bind(a.id, "room-1")
        registry.bind(b.id, "room-1")

        delivered = await registry.broadcast("room-1", "message_received", {"x": 1}, exclude=a.id)

        assert delivered == 1
        assert a.events == []
        assert b.events == [("message_received", {"x": 1})]

    @pytest.mark.asyncio
    async def test_broadcast_to_empty_room_is_noop(self, registry):
        assert await registry.broadcast("nobody-here", "ai_response_chunk", {}) == 0

    @pytest.mark.asyncio
    async def test_failed_delivery_drops_connection(self, registry, connection_factory):
        healthy = _register(registry, connection_factory, "anon_a")
        dead = connection_factory(fail=True)
        registry.register(dead, Identity.anonymous("anon_dead"))
        registry.bind(healthy.id, "room-1")
        registry.bind(dead.id, "room-1")

        delivered = await registry.broadcast("room-1", "ai_typing", {"artifactName": "Keris"})

        assert delivered == 1
        assert registry.members("room-1") == [healthy.id]
        assert registry.state(dead.id) is None

    @pytest.mark.asyncio
    async def test_send_to_unknown_connection(self, registry):
        assert await registry.send_to("ghost", "error", {"message": "x"}) is False


@pytest.mark.unit
class TestPresence:

    @pytest.mark.asyncio
    async def test_user_typing_goes_to_others(self, registry, connection_factory):
        presence = PresenceSignaler(registry)
        a = _register(registry, connection_factory, "anon_a")
        b = _register(registry, connection_factory, "anon_b")
        registry.bind(a.id, "room-1")
        registry.bind(b.id, "room-1")

        await presence.typing_start(a.id)
        await presence.typing_stop(a.id)

        assert a.events == []
        assert b.events == [
            ("user_typing", {"userId": "anon_a"}),
            ("user_stopped_typing", {"userId": "anon_a"}),
        ]

    @pytest.mark.asyncio
    async def test_typing_without_room_is_ignored(self, registry, connection_factory):
        presence = PresenceSignaler(registry)
        a = _register(registry, connection_factory)

        assert await presence.typing_start(a.id) == 0

    @pytest.mark.asyncio
    async def test_ai_typing_reaches_whole_room(self, registry, connection_factory):
        presence = PresenceSignaler(registry)
        a = _register(registry, connection_factory, "anon_a")
        registry.bind(a.id, "room-1")

        await presence.ai_typing("room-1", "Keris Majapahit")
        await presence.ai_stopped_typing("room-1")

        assert a.events == [
            ("ai_typing", {"artifactName": "Keris Majapahit"}),
            ("ai_stopped_typing", {}),
        ]
