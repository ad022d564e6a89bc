"""
Rating Handler - thumbs up/down on a chat session

Last write wins. Independent of the transcript and of running turns.
"""

import logging
from typing import Optional

from backend.core.exceptions import PersistenceFailure
from backend.core.identity import Identity
from backend.core.results import ErrorKind, Outcome
from backend.schemas.chat import RatingResponse
from backend.services.persistence import PersistenceCoordinator, PERSISTENCE_ERROR_MESSAGE

logger = logging.getLogger(__name__)

VALID_RATINGS = ("up", "down")


class RatingHandler:

    def __init__(self, persistence: PersistenceCoordinator):
        self.persistence = persistence
        self.store = persistence.store

    async def rate(
        self,
        chat_session_id: str,
        rating: Optional[str],
        identity: Identity,
        comment: Optional[str] = None,
    ) -> Outcome[RatingResponse]:
        if rating not in VALID_RATINGS:
            return Outcome.failure(ErrorKind.VALIDATION, "Rating harus 'up' atau 'down'")

        try:
            saved = await self.persistence.run_with_retry(
                self.store.save_rating, chat_session_id, rating, (comment or "").strip(), identity
            )
        except PersistenceFailure as e:
            logger.error(f"Rating for session {chat_session_id} not saved: {e}")
            return Outcome.failure(ErrorKind.PERSISTENCE, PERSISTENCE_ERROR_MESSAGE)

        if saved is None:
            return Outcome.failure(ErrorKind.NOT_FOUND, "Chat session tidak ditemukan")

        logger.info(f"Session {chat_session_id} rated {rating}")
        return Outcome.success(saved)
