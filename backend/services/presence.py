"""
Presence Signaler - advisory typing indicators scoped to a room

Nothing here is persisted or ordered against the message stream.
"""

from backend.schemas.events import AITyping, UserTyping, dump
from backend.services.room_registry import RoomRegistry


class PresenceSignaler:

    def __init__(self, registry: RoomRegistry):
        self.registry = registry

    async def typing_start(self, connection_id: str) -> int:
        return await self._user_signal(connection_id, "user_typing")

    async def typing_stop(self, connection_id: str) -> int:
        return await self._user_signal(connection_id, "user_stopped_typing")

    async def _user_signal(self, connection_id: str, event: str) -> int:
        state = self.registry.state(connection_id)
        if not state or not state.chat_session_id:
            return 0
        return await self.registry.broadcast(
            state.chat_session_id,
            event,
            dump(UserTyping(user_id=state.identity.key)),
            exclude=connection_id,
        )

    async def ai_typing(self, chat_session_id: str, artifact_name: str) -> int:
        return await self.registry.broadcast(
            chat_session_id, "ai_typing", dump(AITyping(artifact_name=artifact_name))
        )

    async def ai_stopped_typing(self, chat_session_id: str) -> int:
        return await self.registry.broadcast(chat_session_id, "ai_stopped_typing", {})
