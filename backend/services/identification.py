"""
Identification Service - persona lookup and registration of identified artifacts

The vision model runs upstream; this service receives its result,
stores the artifact and opens the first chat session with a greeting.
"""

import logging
from typing import List, Optional

from backend.config import settings
from backend.core.exceptions import PersistenceFailure
from backend.core.identity import Identity
from backend.core.results import ErrorKind, Outcome
from backend.prompts.base import PersonaPromptBuilder
from backend.schemas.artifact import IdentifiedArtifactRequest, PersonaAttributes
from backend.schemas.chat import ArtifactRegistration
from backend.services.persistence import PersistenceCoordinator, PERSISTENCE_ERROR_MESSAGE

logger = logging.getLogger(__name__)

BASE_QUICK_QUESTIONS = [
    "Tanya umur gua dong!",
    "Kenapa gua penting?",
    "Fun fact tentang gua dong!",
    "Gimana cara gua dibuat?",
    "Siapa yang biasa pake gua dulu?",
]

CATEGORY_QUICK_QUESTIONS = {
    "keramik": ["Dari tanah apa gua dibuat?", "Berapa lama proses pembuatan gua?"],
    "senjata": ["Seberapa berbahaya gua dulu?", "Untuk perang apa gua dipakai?"],
    "perhiasan": ["Siapa yang dulu pake gua?", "Dari bahan apa gua dibuat?"],
    "tekstil": ["Gimana cara bikin gua?", "Motif gua ada artinya nggak?"],
}


def quick_questions(category: Optional[str], limit: int = None) -> List[str]:
    """Suggested opening questions: the base set, then category extras, capped"""
    limit = limit or settings.QUICK_QUESTION_LIMIT
    extras = CATEGORY_QUICK_QUESTIONS.get((category or "").strip().lower(), [])
    return (BASE_QUICK_QUESTIONS + extras)[:limit]


def session_title(persona: PersonaAttributes) -> str:
    return f"Chat dengan {persona.name}"


class IdentificationService:

    def __init__(self, persistence: PersistenceCoordinator, prompt_builder: PersonaPromptBuilder = None):
        self.persistence = persistence
        self.store = persistence.store
        self.prompt_builder = prompt_builder or PersonaPromptBuilder()

    async def register(
        self,
        request: IdentifiedArtifactRequest,
        identity: Identity,
    ) -> Outcome[ArtifactRegistration]:
        persona = request.identification_result
        try:
            artifact, chat_session = await self.persistence.run_with_retry(
                self.store.create_artifact_session,
                persona,
                identity,
                session_title(persona),
                self.prompt_builder.build_greeting(persona),
                request.image_url,
                request.original_filename,
            )
        except PersistenceFailure as e:
            logger.error(f"Artifact '{persona.name}' not registered: {e}")
            return Outcome.failure(ErrorKind.PERSISTENCE, PERSISTENCE_ERROR_MESSAGE)

        logger.info(f"Registered artifact {artifact.id} ({persona.name}) with session {chat_session.id}")
        return Outcome.success(ArtifactRegistration(
            artifact=artifact,
            chat_session=chat_session,
            quick_questions=quick_questions(persona.category),
        ))
