"""
Chat Server - the explicit service object behind both transports

Constructed once at application startup (see backend.main lifespan),
shared by the WebSocket endpoint and the HTTP routers, and shut down
with the application. Tests build their own instance with a fake
generation provider and a temporary database.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from pydantic import ValidationError

from backend.config import settings
from backend.core.identity import Identity
from backend.core.results import ErrorKind, Outcome
from backend.database import engine
from backend.prompts.base import PersonaPromptBuilder
from backend.schemas.chat import SendMessageResponse
from backend.schemas.events import (
    ErrorMessage,
    JoinChat,
    JoinedChat,
    RateChat,
    RatingSaved,
    SendMessage,
    SendQuickQuestion,
    dump,
)
from backend.services.chat_store import ChatStore
from backend.services.generation_jobs import GenerationJobs
from backend.services.generation_provider import GenerationProvider, LiteLLMGenerationProvider
from backend.services.identification import IdentificationService, quick_questions
from backend.services.identity import IdentityResolver
from backend.services.ingress import MessageIngress
from backend.services.orchestrator import StreamingOrchestrator
from backend.services.persistence import PersistenceCoordinator
from backend.services.presence import PresenceSignaler
from backend.services.rating import RatingHandler
from backend.services.room_registry import Connection, ConnectionState, RoomRegistry
from backend.services.voice import VoiceCallLogger

logger = logging.getLogger(__name__)

NOT_JOINED_MESSAGE = "Gabung ke chat session dulu ya"


class ChatServer:
    """
    Wires the chat core together

    Args:
        store: Durable chat store
        provider: Streaming generation provider
        generation_timeout: Seconds before the fallback reply takes over
        history_window: Messages per prompt window, the current one included
        persistence_attempts: Write attempts before a turn is reported failed
        persistence_retry_delay: Seconds between write attempts
    """

    def __init__(
        self,
        store: ChatStore,
        provider: GenerationProvider,
        generation_timeout: Optional[float] = None,
        history_window: Optional[int] = None,
        persistence_attempts: Optional[int] = None,
        persistence_retry_delay: Optional[float] = None,
        fallback_reply: Optional[str] = None,
    ):
        self.store = store
        self.prompt_builder = PersonaPromptBuilder()
        self.registry = RoomRegistry()
        self.presence = PresenceSignaler(self.registry)
        self.jobs = GenerationJobs()
        self.persistence = PersistenceCoordinator(store, persistence_attempts, persistence_retry_delay)
        self.orchestrator = StreamingOrchestrator(
            self.registry,
            self.presence,
            self.jobs,
            self.persistence,
            provider,
            prompt_builder=self.prompt_builder,
            timeout=generation_timeout,
            fallback_reply=fallback_reply,
        )
        self.ingress = MessageIngress(store, self.registry, self.jobs, self.orchestrator, history_window)
        self.ratings = RatingHandler(self.persistence)
        self.voice = VoiceCallLogger(self.persistence)
        self.identification = IdentificationService(self.persistence, self.prompt_builder)
        self.identity = IdentityResolver(store)

        self._handlers: Dict[str, Callable[[str, Dict[str, Any]], Awaitable[None]]] = {
            "join_chat": self._on_join_chat,
            "send_message": self._on_send_message,
            "send_quick_question": self._on_send_quick_question,
            "typing_start": self._on_typing_start,
            "typing_stop": self._on_typing_stop,
            "rate_chat": self._on_rate_chat,
        }

    @classmethod
    def from_settings(cls) -> "ChatServer":
        """Production wiring: configured database and LiteLLM provider"""
        return cls(ChatStore(engine), LiteLLMGenerationProvider())

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self):
        await asyncio.to_thread(self.store.create_schema)
        logger.info("Chat server started")

    async def shutdown(self, timeout: float = None):
        """Let running turns finalize before the process exits"""
        timeout = timeout if timeout is not None else settings.GENERATION_TIMEOUT
        pending = len(self.jobs)
        if pending:
            logger.info(f"Waiting for {pending} running turn(s) to finish")
        await self.jobs.wait_idle(timeout)
        logger.info("Chat server stopped")

    # ------------------------------------------------------------------
    # Connections
    # ------------------------------------------------------------------

    def connect(self, connection: Connection, identity: Identity) -> ConnectionState:
        return self.registry.register(connection, identity)

    def disconnect(self, connection_id: str):
        room = self.registry.disconnect(connection_id)
        if room:
            logger.debug(f"Connection {connection_id} left room {room}")

    async def handle(self, connection_id: str, event: str, data: Optional[Dict[str, Any]] = None):
        """
        Dispatch one inbound room event

        Failures are answered with an error event to the sender; nothing
        raised here reaches the transport.
        """
        handler = self._handlers.get(event)
        if handler is None:
            await self._send_error(connection_id, f"Event tidak dikenal: {event}")
            return

        try:
            await handler(connection_id, data or {})
        except ValidationError as e:
            logger.info(f"Invalid '{event}' payload from {connection_id}: {e.error_count()} error(s)")
            await self._send_error(connection_id, "Data tidak valid")
        except Exception as e:
            logger.error(f"Handler for '{event}' failed: {e}", exc_info=True)
            await self._send_error(connection_id, "Terjadi kesalahan. Coba lagi ya!")

    async def _send_error(self, connection_id: str, message: str):
        await self.registry.send_to(connection_id, "error", dump(ErrorMessage(message=message)))

    async def _send_outcome_error(self, connection_id: str, outcome: Outcome):
        await self._send_error(connection_id, outcome.message)

    def _bound_state(self, connection_id: str) -> Optional[ConnectionState]:
        state = self.registry.state(connection_id)
        if state and state.chat_session_id:
            return state
        return None

    # ------------------------------------------------------------------
    # Room operations
    # ------------------------------------------------------------------

    async def join_chat(self, connection_id: str, chat_session_id: str) -> Outcome[Optional[JoinedChat]]:
        """
        Bind a connection to a chat session room

        Returns:
            Outcome with the snapshot to send as joined_chat, None for a
            repeated join of the same room, NOT_FOUND for an unknown session
        """
        state = self.registry.state(connection_id)
        if state and state.chat_session_id == chat_session_id:
            return Outcome.success(None)

        session = await asyncio.to_thread(self.store.get_session, chat_session_id)
        if session is None:
            return Outcome.failure(ErrorKind.NOT_FOUND, "Chat session tidak ditemukan")

        artifact = await asyncio.to_thread(self.store.get_artifact_summary, session.artifact_id)

        if not self.registry.bind(connection_id, chat_session_id):
            return Outcome.success(None)

        return Outcome.success(JoinedChat(
            session=session,
            artifact=artifact,
            quick_questions=quick_questions(artifact.category if artifact else None),
        ))

    async def _on_join_chat(self, connection_id: str, data: Dict[str, Any]):
        payload = JoinChat.model_validate(data)
        outcome = await self.join_chat(connection_id, payload.chat_session_id)
        if not outcome.ok:
            await self._send_outcome_error(connection_id, outcome)
        elif outcome.value is not None:
            await self.registry.send_to(connection_id, "joined_chat", dump(outcome.value))

    async def _submit_from_connection(self, connection_id: str, text: Optional[str], is_quick_question: bool):
        state = self._bound_state(connection_id)
        if state is None:
            await self._send_error(connection_id, NOT_JOINED_MESSAGE)
            return

        outcome = await self.ingress.submit(
            state.chat_session_id,
            text,
            state.identity,
            is_quick_question=is_quick_question,
            origin=connection_id,
        )
        if not outcome.ok:
            await self._send_outcome_error(connection_id, outcome)

    async def _on_send_message(self, connection_id: str, data: Dict[str, Any]):
        payload = SendMessage.model_validate(data)
        await self._submit_from_connection(connection_id, payload.message, is_quick_question=False)

    async def _on_send_quick_question(self, connection_id: str, data: Dict[str, Any]):
        payload = SendQuickQuestion.model_validate(data)
        await self._submit_from_connection(connection_id, payload.question, is_quick_question=True)

    async def _on_typing_start(self, connection_id: str, data: Dict[str, Any]):
        await self.presence.typing_start(connection_id)

    async def _on_typing_stop(self, connection_id: str, data: Dict[str, Any]):
        await self.presence.typing_stop(connection_id)

    async def _on_rate_chat(self, connection_id: str, data: Dict[str, Any]):
        state = self._bound_state(connection_id)
        if state is None:
            await self._send_error(connection_id, NOT_JOINED_MESSAGE)
            return

        payload = RateChat.model_validate(data)
        outcome = await self.ratings.rate(state.chat_session_id, payload.rating, state.identity, payload.comment)
        if not outcome.ok:
            await self._send_outcome_error(connection_id, outcome)
            return

        await self.registry.send_to(
            connection_id,
            "rating_saved",
            dump(RatingSaved(rating=outcome.value.rating, comment=outcome.value.comment)),
        )

    # ------------------------------------------------------------------
    # HTTP transport
    # ------------------------------------------------------------------

    async def run_read(self, func, *args):
        """Run a blocking store read off the event loop"""
        return await asyncio.to_thread(func, *args)

    async def send_turn(
        self,
        chat_session_id: str,
        text: Optional[str],
        identity: Identity,
        is_quick_question: bool = False,
    ) -> Outcome[SendMessageResponse]:
        """
        Run a whole turn and wait for it to be persisted

        Room members still receive the streamed events. Cancelling the caller
        does not cancel the turn, which still finalizes.
        """
        outcome = await self.ingress.submit(chat_session_id, text, identity, is_quick_question=is_quick_question)
        if not outcome.ok:
            return Outcome.failure(outcome.error, outcome.message)
        return await asyncio.shield(outcome.value.task)

    async def delete_session(self, chat_session_id: str) -> Outcome[bool]:
        if self.jobs.is_active(chat_session_id):
            return Outcome.failure(ErrorKind.BUSY, "Chat session sedang menjawab, coba lagi nanti")

        async with self.persistence.lock_for(chat_session_id):
            deleted = await asyncio.to_thread(self.store.delete_session, chat_session_id)

        if not deleted:
            return Outcome.failure(ErrorKind.NOT_FOUND, "Chat session tidak ditemukan")

        logger.info(f"Deleted chat session {chat_session_id}")
        return Outcome.success(True)
