"""
Persistence Coordinator - the single writer of chat transcripts

A finished turn (user message plus assistant reply) is written in one
transaction together with the updated_at bump and a chat interaction.
Writes to the same session are serialized by a per-session lock; writes
to different sessions run independently. A lock lives only while a
writer holds or awaits it.
"""

import asyncio
import logging
import weakref

from sqlalchemy.exc import SQLAlchemyError

from backend.core.exceptions import PersistenceFailure
from backend.core.results import ErrorKind, Outcome
from backend.schemas.chat import ChatMessageOut, MessageRole, SendMessageResponse
from backend.services.chat_store import ChatStore, utcnow
from backend.services.generation_jobs import GenerationJob
from backend.utils.retry import persistence_retrying

logger = logging.getLogger(__name__)

PERSISTENCE_ERROR_MESSAGE = "Pesan gagal disimpan. Silakan kirim ulang."


class PersistenceCoordinator:

    def __init__(self, store: ChatStore, max_attempts: int = None, retry_delay: float = None):
        self.store = store
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    def lock_for(self, chat_session_id: str) -> asyncio.Lock:
        lock = self._locks.get(chat_session_id)
        if lock is None:
            lock = self._locks[chat_session_id] = asyncio.Lock()
        return lock

    async def run_with_retry(self, func, *args):
        """
        Run a blocking store call in a worker thread, retrying on database errors

        Raises:
            PersistenceFailure: every attempt failed
        """
        try:
            async for attempt in persistence_retrying(self.max_attempts, self.retry_delay):
                with attempt:
                    return await asyncio.to_thread(func, *args)
        except (SQLAlchemyError, ConnectionError) as e:
            raise PersistenceFailure(f"{getattr(func, '__name__', func)} failed: {e}") from e

    async def finalize(self, job: GenerationJob, assistant_text: str) -> Outcome[SendMessageResponse]:
        """
        Durably append the turn of a finished job

        Args:
            job: Job carrying the accepted user message
            assistant_text: Streamed reply or the fallback reply

        Returns:
            Outcome with both stored messages and the new transcript length;
            PERSISTENCE after the retry budget is spent, NOT_FOUND if the
            session disappeared mid-turn
        """
        assistant_message = ChatMessageOut(
            role=MessageRole.ASSISTANT,
            content=assistant_text,
            timestamp=utcnow(),
        )

        metadata = {}
        if job.is_quick_question:
            metadata["quickQuestions"] = [job.user_message.content]

        async with self.lock_for(job.chat_session_id):
            try:
                total = await self.run_with_retry(
                    self.store.append_turn,
                    job.chat_session_id,
                    job.user_message,
                    assistant_message,
                    job.identity,
                    metadata,
                )
            except PersistenceFailure as e:
                logger.error(f"Turn for session {job.chat_session_id} not persisted: {e}")
                return Outcome.failure(ErrorKind.PERSISTENCE, PERSISTENCE_ERROR_MESSAGE)
            except LookupError as e:
                logger.warning(f"Session vanished before finalize: {e}")
                return Outcome.failure(ErrorKind.NOT_FOUND, "Chat session tidak ditemukan")

        logger.info(f"Persisted turn for session {job.chat_session_id} ({total} messages)")
        return Outcome.success(SendMessageResponse(
            user_message=job.user_message,
            ai_response=assistant_message,
            total_messages=total,
        ))
