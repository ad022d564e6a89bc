"""
SQLAlchemy Database Models

All models use UUID strings as primary keys.

Models:
    - User: Authenticated owners
    - APIKey: API authentication tokens
    - Artifact: Identified objects and their persona attributes
    - ChatSession: Conversations with an artifact
    - ChatMessage: Individual messages in conversations
    - Interaction: Append-only analytics records

Relationships:
    User 1:N APIKey
    Artifact 1:N ChatSession
    ChatSession 1:N ChatMessage
    ChatSession 1:N Interaction

Cascade Deletes:
    - Delete Artifact → Delete all ChatSessions and Interactions
    - Delete ChatSession → Delete all ChatMessages and Interactions
"""

from backend.models.user import User
from backend.models.api_key import APIKey
from backend.models.artifact import Artifact
from backend.models.chat_session import ChatSession
from backend.models.chat_message import ChatMessage
from backend.models.interaction import Interaction, INTERACTION_TYPES

__all__ = ["User", "APIKey", "Artifact", "ChatSession", "ChatMessage", "Interaction", "INTERACTION_TYPES"]
