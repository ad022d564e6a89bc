"""
Room Registry - in-memory membership of live connections per chat session

A room is the set of connections subscribed to one chat session. Each
connection carries a typed state record (identity, bound chat session)
and belongs to at most one room at a time.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol
import logging

from backend.core.identity import Identity

logger = logging.getLogger(__name__)


class Connection(Protocol):
    """Anything that can deliver an event frame to one client"""
    id: str

    async def send(self, event: str, data: Dict[str, Any]) -> None:
        ...


@dataclass
class ConnectionState:
    connection: Connection
    identity: Identity
    chat_session_id: Optional[str] = None


class RoomRegistry:
    """
    Membership table and broadcast primitive

    All mutations are synchronous so they complete between two awaits of
    the event loop; only delivery suspends.
    """

    def __init__(self):
        self._states: Dict[str, ConnectionState] = {}
        self._rooms: Dict[str, Dict[str, Connection]] = {}

    def register(self, connection: Connection, identity: Identity) -> ConnectionState:
        state = ConnectionState(connection=connection, identity=identity)
        self._states[connection.id] = state
        return state

    def state(self, connection_id: str) -> Optional[ConnectionState]:
        return self._states.get(connection_id)

    def bind(self, connection_id: str, chat_session_id: str) -> bool:
        """
        Put a connection into a room

        A connection bound elsewhere leaves its previous room first.

        Returns:
            False if the connection was already in this room (nothing changed)

        Raises:
            KeyError: connection was never registered
        """
        state = self._states[connection_id]
        if state.chat_session_id == chat_session_id:
            return False

        if state.chat_session_id:
            self._remove_member(state.chat_session_id, connection_id)

        self._rooms.setdefault(chat_session_id, {})[connection_id] = state.connection
        state.chat_session_id = chat_session_id
        logger.debug(f"Connection {connection_id} joined room {chat_session_id}")
        return True

    def leave(self, connection_id: str) -> Optional[str]:
        """Remove a connection from its room; returns the room it left"""
        state = self._states.get(connection_id)
        if not state or not state.chat_session_id:
            return None

        room = state.chat_session_id
        self._remove_member(room, connection_id)
        state.chat_session_id = None
        return room

    def disconnect(self, connection_id: str) -> Optional[str]:
        """Forget a connection entirely; in-flight work for its room is untouched"""
        room = self.leave(connection_id)
        self._states.pop(connection_id, None)
        return room

    def _remove_member(self, room: str, connection_id: str):
        members = self._rooms.get(room)
        if members is None:
            return
        members.pop(connection_id, None)
        if not members:
            del self._rooms[room]

    def members(self, room: str) -> List[str]:
        return list(self._rooms.get(room, {}))

    def room_count(self) -> int:
        return len(self._rooms)

    async def send_to(self, connection_id: str, event: str, data: Dict[str, Any]) -> bool:
        """Deliver an event to one connection; a dead connection is dropped"""
        state = self._states.get(connection_id)
        if not state:
            return False
        return await self._deliver(connection_id, state.connection, event, data)

    async def broadcast(
        self,
        room: str,
        event: str,
        data: Dict[str, Any],
        exclude: Optional[str] = None,
    ) -> int:
        """
        Deliver an event to every connection in a room

        Never raises. Delivery to an empty room is a no-op.

        Args:
            room: Chat session ID
            event: Event name
            data: Event payload
            exclude: Connection ID to skip (the originator)

        Returns:
            Number of connections the event reached
        """
        delivered = 0
        for connection_id, connection in list(self._rooms.get(room, {}).items()):
            if connection_id == exclude:
                continue
            if await self._deliver(connection_id, connection, event, data):
                delivered += 1
        return delivered

    async def _deliver(self, connection_id: str, connection: Connection, event: str, data: Dict[str, Any]) -> bool:
        try:
            await connection.send(event, data)
            return True
        except Exception as e:
            logger.warning(f"Dropping connection {connection_id} after failed '{event}' delivery: {e}")
            self.disconnect(connection_id)
            return False
