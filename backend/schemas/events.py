"""
Room protocol payloads

Every WebSocket frame is an envelope {"event": <name>, "data": {...}}.
Inbound payloads are validated with the models below; outbound payloads
are dumped by alias so the client sees camelCase keys.
"""

from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional

from backend.schemas.artifact import CamelModel, ArtifactSummary
from backend.schemas.chat import ChatMessageOut, ChatSessionOut, Rating


class Envelope(BaseModel):
    """Wire frame"""
    event: str = Field(..., min_length=1)
    data: Dict[str, Any] = Field(default_factory=dict)


# Inbound events

class JoinChat(CamelModel):
    chat_session_id: str = Field(..., min_length=1)


class SendMessage(CamelModel):
    message: str = ""


class SendQuickQuestion(CamelModel):
    question: str = ""


class RateChat(CamelModel):
    rating: Optional[str] = None
    comment: Optional[str] = None


# Outbound events

class JoinedChat(CamelModel):
    session: ChatSessionOut
    artifact: Optional[ArtifactSummary] = None
    quick_questions: List[str] = Field(default_factory=list)


class MessageReceived(CamelModel):
    message: ChatMessageOut
    is_quick_question: bool = False


class AITyping(CamelModel):
    artifact_name: str


class AIResponseStart(CamelModel):
    message_id: str


class AIResponseChunk(CamelModel):
    message_id: str
    chunk: str
    full_response: str


class AIResponseEnd(CamelModel):
    message_id: str
    full_response: str


class UserTyping(CamelModel):
    user_id: str


class RatingSaved(CamelModel):
    rating: Rating
    comment: str = ""


class ErrorMessage(CamelModel):
    message: str


def dump(payload: BaseModel) -> Dict[str, Any]:
    """Serialize an outbound payload the way it goes on the wire"""
    return payload.model_dump(by_alias=True, mode="json")
