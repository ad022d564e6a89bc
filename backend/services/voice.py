"""
Voice Call Logger - records voice conversations as interactions

The call itself runs client-side against the speech provider; the
server only stores when it started, when it ended, how long it took
and the transcript.
"""

import logging

from backend.core.exceptions import PersistenceFailure
from backend.core.identity import Identity
from backend.core.results import ErrorKind, Outcome
from backend.schemas.artifact import VoiceCallEndResponse, VoiceCallStartResponse
from backend.services.chat_store import utcnow
from backend.services.persistence import PersistenceCoordinator, PERSISTENCE_ERROR_MESSAGE

logger = logging.getLogger(__name__)


class VoiceCallLogger:

    def __init__(self, persistence: PersistenceCoordinator):
        self.persistence = persistence
        self.store = persistence.store

    async def start(self, chat_session_id: str, identity: Identity) -> Outcome[VoiceCallStartResponse]:
        try:
            started = await self.persistence.run_with_retry(
                self.store.start_voice_call, chat_session_id, identity, utcnow()
            )
        except PersistenceFailure as e:
            logger.error(f"Voice call start not recorded: {e}")
            return Outcome.failure(ErrorKind.PERSISTENCE, PERSISTENCE_ERROR_MESSAGE)

        if started is None:
            return Outcome.failure(ErrorKind.NOT_FOUND, "Chat session tidak ditemukan")

        interaction_id, artifact = started
        logger.info(f"Voice call {interaction_id} started for session {chat_session_id}")
        return Outcome.success(VoiceCallStartResponse(interaction_id=interaction_id, artifact_info=artifact))

    async def end(self, interaction_id: str, transcript: str = "", duration: int = 0) -> Outcome[VoiceCallEndResponse]:
        """
        Close a voice call

        End fields are merged additively: a second end call for the same
        interaction keeps the values of the first.
        """
        fields = {
            "voiceSessionEnded": utcnow().isoformat(),
            "timeSpent": duration,
            "transcript": transcript,
        }
        try:
            merged = await self.persistence.run_with_retry(
                self.store.merge_interaction_metadata, interaction_id, fields
            )
        except PersistenceFailure as e:
            logger.error(f"Voice call {interaction_id} end not recorded: {e}")
            return Outcome.failure(ErrorKind.PERSISTENCE, PERSISTENCE_ERROR_MESSAGE)

        if merged is None:
            return Outcome.failure(ErrorKind.NOT_FOUND, "Voice call tidak ditemukan")

        return Outcome.success(VoiceCallEndResponse(
            duration=merged.get("timeSpent", 0),
            transcript_length=len(merged.get("transcript", "")),
        ))
