"""
Artifact API endpoints
Registration of identified artifacts and artifact lookups
"""

import logging
from fastapi import APIRouter, Depends, status

from backend.api.deps import get_chat_server, get_identity
from backend.core.exceptions import http_404_not_found
from backend.core.identity import Identity
from backend.schemas.artifact import IdentifiedArtifactRequest, QuickQuestionList
from backend.schemas.chat import ArtifactDetail, ArtifactRegistration
from backend.services.chat_server import ChatServer
from backend.services.identification import quick_questions
from backend.utils.error_handlers import raise_for_outcome

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/artifacts", tags=["artifacts"])


@router.post("", response_model=ArtifactRegistration, status_code=status.HTTP_201_CREATED)
async def register_artifact(
    body: IdentifiedArtifactRequest,
    identity: Identity = Depends(get_identity),
    server: ChatServer = Depends(get_chat_server),
):
    """
    Register an identified artifact and open a chat session with it

    The session starts with the artifact greeting itself. The response
    carries the suggested quick questions for the artifact's category.

    Example:
        ```json
        {
          "identificationResult": {
            "name": "Keris Majapahit",
            "category": "senjata",
            "description": "Keris pusaka dari era Majapahit",
            "history": "Dibuat oleh empu kerajaan",
            "confidence": 0.9,
            "isRecognized": true
          },
          "imageUrl": "https://example.com/keris.jpg"
        }
        ```
    """
    outcome = await server.identification.register(body, identity)
    return raise_for_outcome(outcome)


@router.get("/{artifact_id}", response_model=ArtifactDetail)
async def get_artifact(
    artifact_id: str,
    server: ChatServer = Depends(get_chat_server),
):
    """Get an artifact with its active chat sessions"""
    detail = await server.run_read(server.store.get_artifact_detail, artifact_id)
    if detail is None:
        raise http_404_not_found("Artifact not found")
    return detail


@router.get("/{artifact_id}/quick-questions", response_model=QuickQuestionList)
async def get_quick_questions(
    artifact_id: str,
    server: ChatServer = Depends(get_chat_server),
):
    """Suggested opening questions for an artifact"""
    artifact = await server.run_read(server.store.get_artifact_summary, artifact_id)
    if artifact is None:
        raise http_404_not_found("Artifact not found")
    return QuickQuestionList(quick_questions=quick_questions(artifact.category))
