"""
Message Ingress - accepts user utterances for both transports

The WebSocket handler and the HTTP send endpoints both call submit(),
so validation, single-flight and broadcast behave the same everywhere.
"""

import asyncio
import logging
from typing import Optional

from backend.config import settings
from backend.core.identity import Identity
from backend.core.results import ErrorKind, Outcome
from backend.schemas.chat import ChatMessageOut, MessageRole
from backend.schemas.events import MessageReceived, dump
from backend.services.chat_store import ChatStore, utcnow
from backend.services.generation_jobs import GenerationJob, GenerationJobs
from backend.services.orchestrator import StreamingOrchestrator
from backend.services.room_registry import RoomRegistry

logger = logging.getLogger(__name__)


class MessageIngress:

    def __init__(
        self,
        store: ChatStore,
        registry: RoomRegistry,
        jobs: GenerationJobs,
        orchestrator: StreamingOrchestrator,
        history_window: Optional[int] = None,
        max_length: Optional[int] = None,
    ):
        self.store = store
        self.registry = registry
        self.jobs = jobs
        self.orchestrator = orchestrator
        self.history_window = history_window if history_window is not None else settings.CHAT_HISTORY_WINDOW
        self.max_length = max_length or settings.MAX_MESSAGE_LENGTH

    async def submit(
        self,
        chat_session_id: str,
        raw_text: Optional[str],
        identity: Identity,
        is_quick_question: bool = False,
        origin: Optional[str] = None,
    ) -> Outcome[GenerationJob]:
        """
        Accept a user message and start its turn

        Args:
            chat_session_id: Target chat session
            raw_text: Message as typed; surrounding whitespace is dropped
            identity: Sender identity, recorded on the chat interaction
            is_quick_question: Message came from a suggested question
            origin: Connection ID of the sender, excluded from message_received

        Returns:
            Outcome with the running job (job.task resolves to the finalize
            Outcome), or VALIDATION for blank or overlong text, BUSY, NOT_FOUND
        """
        text = (raw_text or "").strip()
        if not text:
            return Outcome.failure(ErrorKind.VALIDATION, "Pesan tidak boleh kosong")
        if len(text) > self.max_length:
            return Outcome.failure(ErrorKind.VALIDATION, f"Pesan terlalu panjang (maksimal {self.max_length} karakter)")

        job = self.jobs.acquire(chat_session_id, identity, is_quick_question)
        if job is None:
            logger.info(f"Rejected submit for busy session {chat_session_id}")
            return Outcome.failure(ErrorKind.BUSY, "Tunggu sebentar, aku masih menjawab pesan sebelumnya")

        # The window counts the message being answered
        previous = max(self.history_window - 1, 0)
        try:
            context = await asyncio.to_thread(self.store.load_turn_context, chat_session_id, previous)
            if context is None:
                self.jobs.release(job)
                return Outcome.failure(ErrorKind.NOT_FOUND, "Chat session tidak ditemukan")

            job.context = context
            job.user_message = ChatMessageOut(role=MessageRole.USER, content=text, timestamp=utcnow())

            await self.registry.broadcast(
                chat_session_id,
                "message_received",
                dump(MessageReceived(message=job.user_message, is_quick_question=is_quick_question)),
                exclude=origin,
            )
        except BaseException:
            self.jobs.release(job)
            raise

        self.orchestrator.start(job)
        return Outcome.success(job)
