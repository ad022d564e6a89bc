"""
AI Streaming Orchestrator - runs one turn from prompt to persisted reply

Per turn:
    ai_typing -> ai_response_start -> ai_response_chunk* -> ai_response_end
    -> finalize -> ai_stopped_typing

A timeout or upstream error never reaches the user as an error: the
fixed fallback reply is streamed and persisted in place of the answer.
"""

import asyncio
import logging
import time
import uuid
from typing import Optional, Set

from backend.config import settings
from backend.core.exceptions import GenerationFailure
from backend.core.results import ErrorKind, Outcome
from backend.prompts.base import PersonaPromptBuilder
from backend.schemas.chat import SendMessageResponse
from backend.schemas.events import AIResponseChunk, AIResponseEnd, AIResponseStart, ErrorMessage, dump
from backend.services.generation_jobs import GenerationJob, GenerationJobs
from backend.services.generation_provider import GenerationProvider
from backend.services.persistence import PersistenceCoordinator
from backend.services.presence import PresenceSignaler
from backend.services.room_registry import RoomRegistry

logger = logging.getLogger(__name__)


class StreamingOrchestrator:
    """
    Drives the generation of one reply per accepted user message

    Each turn runs as its own task, so a client disconnecting mid-stream
    does not cancel it; delivery to an emptied room is a no-op.
    """

    def __init__(
        self,
        registry: RoomRegistry,
        presence: PresenceSignaler,
        jobs: GenerationJobs,
        persistence: PersistenceCoordinator,
        provider: GenerationProvider,
        prompt_builder: Optional[PersonaPromptBuilder] = None,
        timeout: Optional[float] = None,
        fallback_reply: Optional[str] = None,
    ):
        self.registry = registry
        self.presence = presence
        self.jobs = jobs
        self.persistence = persistence
        self.provider = provider
        self.prompt_builder = prompt_builder or PersonaPromptBuilder()
        self.timeout = timeout if timeout is not None else settings.GENERATION_TIMEOUT
        self.fallback_reply = fallback_reply or settings.FALLBACK_REPLY
        self._tasks: Set[asyncio.Task] = set()

    def start(self, job: GenerationJob) -> asyncio.Task:
        """Schedule the turn; the task result is the finalize Outcome"""
        task = asyncio.create_task(self._run_safely(job), name=f"turn-{job.chat_session_id}")
        job.task = task
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run_safely(self, job: GenerationJob) -> Outcome[SendMessageResponse]:
        try:
            return await self.run(job)
        except Exception as e:
            logger.error(f"Turn for session {job.chat_session_id} crashed: {e}", exc_info=True)
            await self.registry.broadcast(
                job.chat_session_id, "error", dump(ErrorMessage(message="Terjadi kesalahan. Coba lagi ya!"))
            )
            return Outcome.failure(ErrorKind.PERSISTENCE, "Turn failed unexpectedly")

    async def run(self, job: GenerationJob) -> Outcome[SendMessageResponse]:
        room = job.chat_session_id
        try:
            await self.presence.ai_typing(room, job.context.artifact.name)
            text = await self.generate(job)

            outcome = await self.persistence.finalize(job, text)
            if not outcome.ok:
                await self.registry.broadcast(room, "error", dump(ErrorMessage(message=outcome.message)))

            elapsed = time.monotonic() - job.started_at
            logger.info(
                f"Turn for session {room} finished in {elapsed:.2f}s"
                + (" with fallback reply" if job.fallback_used else "")
            )
            return outcome
        finally:
            await self.presence.ai_stopped_typing(room)
            self.jobs.release(job)

    async def generate(self, job: GenerationJob) -> str:
        """
        Stream a reply to the room and return its full text

        Returns:
            The streamed reply, or the fallback reply on timeout, upstream
            error or an empty completion
        """
        room = job.chat_session_id
        job.message_id = uuid.uuid4().hex
        await self.registry.broadcast(room, "ai_response_start", dump(AIResponseStart(message_id=job.message_id)))

        system_prompt = self.prompt_builder.build_system_prompt(job.context.persona)

        try:
            await self._stream(job, system_prompt)
        except Exception as e:
            failure = e if isinstance(e, GenerationFailure) else GenerationFailure(
                f"timed out after {self.timeout}s" if isinstance(e, TimeoutError) else str(e)
            )
            logger.warning(f"Generation failed for session {room}, using fallback: {failure}")
            await self._emit_fallback(job)
        else:
            await self.registry.broadcast(room, "ai_response_end", dump(AIResponseEnd(
                message_id=job.message_id, full_response=job.accumulated,
            )))

        return job.accumulated

    async def _stream(self, job: GenerationJob, system_prompt: str):
        context = job.context
        async with asyncio.timeout(self.timeout):
            async for delta in self.provider.stream(system_prompt, context.history, job.user_message.content):
                if not delta:
                    continue
                full_response = job.append(delta)
                await self.registry.broadcast(job.chat_session_id, "ai_response_chunk", dump(AIResponseChunk(
                    message_id=job.message_id, chunk=delta, full_response=full_response,
                )))

        if not job.accumulated.strip():
            raise GenerationFailure("empty completion")

    async def _emit_fallback(self, job: GenerationJob):
        """
        Replace the reply with the fallback text

        Without streamed chunks the fallback completes the open messageId.
        Once chunks went out, the partial reply is abandoned and the fallback
        is sent as a message of its own.
        """
        room = job.chat_session_id
        if job.accumulated:
            job.message_id = uuid.uuid4().hex
            await self.registry.broadcast(room, "ai_response_start", dump(AIResponseStart(message_id=job.message_id)))

        job.accumulated = ""
        job.fallback_used = True
        full_response = job.append(self.fallback_reply)

        await self.registry.broadcast(room, "ai_response_chunk", dump(AIResponseChunk(
            message_id=job.message_id, chunk=self.fallback_reply, full_response=full_response,
        )))
        await self.registry.broadcast(room, "ai_response_end", dump(AIResponseEnd(
            message_id=job.message_id, full_response=full_response,
        )))
