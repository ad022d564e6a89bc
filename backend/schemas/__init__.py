"""
Pydantic Schemas for Request/Response Validation

Chat Schemas:
    - ChatMessageOut / ChatSessionOut: transcript snapshots
    - SendMessageRequest / QuickQuestionRequest / RateChatRequest: HTTP bodies
    - ChatSessionPage / ChatHistoryResponse: read endpoints

Artifact Schemas:
    - PersonaAttributes: identification attributes behind the persona
    - IdentifiedArtifactRequest / ArtifactRegistration: session bootstrap

Event Schemas:
    - Envelope: {"event", "data"} frame of the room protocol
    - JoinedChat, MessageReceived, AIResponseChunk, ...: outbound payloads
"""

from backend.schemas.artifact import (
    PersonaAttributes,
    ArtifactSummary,
    ArtifactResponse,
    IdentifiedArtifactRequest,
)

from backend.schemas.chat import (
    MessageRole,
    ChatMessageOut,
    ChatSessionOut,
    TurnContext,
)

__all__ = [
    "PersonaAttributes",
    "ArtifactSummary",
    "ArtifactResponse",
    "IdentifiedArtifactRequest",
    "MessageRole",
    "ChatMessageOut",
    "ChatSessionOut",
    "TurnContext",
]
