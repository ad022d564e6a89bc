"""
Pydantic Schemas for chat sessions and the HTTP chat endpoints
"""

from pydantic import Field
from typing import List, Optional, Literal
from datetime import datetime
from enum import Enum

from backend.schemas.artifact import CamelModel, ArtifactSummary, ArtifactResponse, PersonaAttributes


class MessageRole(str, Enum):
    """Message roles"""
    USER = "user"
    ASSISTANT = "assistant"


Rating = Literal["up", "down"]


class ChatMessageOut(CamelModel):
    """Single transcript entry"""
    role: MessageRole
    content: str
    timestamp: datetime


class ChatSessionOut(CamelModel):
    """Snapshot of a chat session with its transcript"""
    id: str
    artifact_id: str
    user_id: Optional[str] = None
    anonymous_session_id: Optional[str] = None
    title: str
    messages: List[ChatMessageOut] = Field(default_factory=list)
    rating: Optional[Rating] = None
    rating_comment: str = ""
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class TurnContext(CamelModel):
    """Everything a turn needs, loaded in one read before generation starts"""
    chat_session_id: str
    artifact: ArtifactSummary
    persona: PersonaAttributes
    history: List[ChatMessageOut] = Field(default_factory=list)
    message_count: int = 0


class SendMessageRequest(CamelModel):
    """POST /chat/{id}/send"""
    message: str


class QuickQuestionRequest(CamelModel):
    """POST /chat/{id}/quick-question"""
    question_text: str


class RateChatRequest(CamelModel):
    """POST /chat/{id}/rate"""
    rating: str = Field(..., description="Either 'up' or 'down'")
    comment: Optional[str] = Field(None, max_length=2000)


class RatingResponse(CamelModel):
    """Stored rating fields"""
    rating: Rating
    comment: str = ""


class SendMessageResponse(CamelModel):
    """Result of a full turn run over HTTP"""
    user_message: ChatMessageOut
    ai_response: ChatMessageOut
    total_messages: int


class Pagination(CamelModel):
    page: int
    limit: int
    total: int
    pages: int
    has_more: bool = False


class ChatSessionPage(CamelModel):
    """One page of a chat session transcript"""
    chat_session: ChatSessionOut
    artifact: Optional[ArtifactResponse] = None
    pagination: Pagination


class ChatHistoryItem(CamelModel):
    """Session summary in the caller's history list"""
    id: str
    artifact: Optional[ArtifactSummary] = None
    title: str
    message_count: int
    last_message: Optional[ChatMessageOut] = None
    has_rating: bool
    updated_at: Optional[datetime] = None


class ChatHistoryResponse(CamelModel):
    chat_sessions: List[ChatHistoryItem]
    pagination: Pagination


class ArtifactRegistration(CamelModel):
    """Result of registering an identified artifact"""
    artifact: ArtifactResponse
    chat_session: ChatSessionOut
    quick_questions: List[str]


class ArtifactDetail(CamelModel):
    """Artifact with the chat sessions held with it"""
    artifact: ArtifactResponse
    chat_sessions: List[ChatHistoryItem]
