"""
Generation Jobs - single-flight arena keyed by chat session id

At most one GenerationJob exists per chat session. acquire() is
synchronous, so checking and claiming the slot cannot interleave with
another coroutine.
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Dict, Optional

from backend.core.identity import Identity
from backend.schemas.chat import ChatMessageOut, TurnContext


@dataclass
class GenerationJob:
    chat_session_id: str
    identity: Identity
    is_quick_question: bool = False
    user_message: Optional[ChatMessageOut] = None
    context: Optional[TurnContext] = None
    message_id: str = ""
    accumulated: str = ""
    fallback_used: bool = False
    started_at: float = field(default_factory=time.monotonic)
    task: Optional[asyncio.Task] = None

    def append(self, delta: str) -> str:
        self.accumulated += delta
        return self.accumulated


class GenerationJobs:

    def __init__(self):
        self._jobs: Dict[str, GenerationJob] = {}

    def acquire(
        self,
        chat_session_id: str,
        identity: Identity,
        is_quick_question: bool = False,
    ) -> Optional[GenerationJob]:
        """Claim the slot for a session; None if a job is already running"""
        if chat_session_id in self._jobs:
            return None
        job = GenerationJob(
            chat_session_id=chat_session_id,
            identity=identity,
            is_quick_question=is_quick_question,
        )
        self._jobs[chat_session_id] = job
        return job

    def release(self, job: GenerationJob):
        if self._jobs.get(job.chat_session_id) is job:
            del self._jobs[job.chat_session_id]

    def get(self, chat_session_id: str) -> Optional[GenerationJob]:
        return self._jobs.get(chat_session_id)

    def is_active(self, chat_session_id: str) -> bool:
        return chat_session_id in self._jobs

    def __len__(self) -> int:
        return len(self._jobs)

    async def wait_idle(self, timeout: float):
        """Wait for running turns to finish, up to timeout seconds"""
        tasks = [job.task for job in self._jobs.values() if job.task and not job.task.done()]
        if tasks:
            await asyncio.wait(tasks, timeout=timeout)
