"""
ChatMessage Model - Individual messages in conversations
Stores user and assistant messages in strict append order
"""

from sqlalchemy import Column, String, Text, ForeignKey, DateTime, Integer, UniqueConstraint
from sqlalchemy.orm import relationship
import uuid

from backend.database import Base


class ChatMessage(Base):
    """
    Chat message model - individual message in a conversation

    Attributes:
        id: Message UUID
        session_id: Parent session
        sequence: Zero-based position in the session transcript
        role: Message role ('user' or 'assistant')
        content: Message text (never empty)
        timestamp: Server-assigned creation time

    Ordering:
        - (session_id, sequence) is unique, so two appends racing for the
          same slot cannot both commit
    """

    __tablename__ = "chat_messages"
    __table_args__ = (
        UniqueConstraint("session_id", "sequence", name="uq_chat_messages_session_sequence"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    session_id = Column(String(36), ForeignKey("chat_sessions.id", ondelete="CASCADE"), nullable=False, index=True)

    sequence = Column(Integer, nullable=False)
    role = Column(String(20), nullable=False)  # user, assistant
    content = Column(Text, nullable=False)
    timestamp = Column(DateTime(timezone=True), nullable=False)

    # Relationships
    session = relationship("ChatSession", back_populates="messages")

    def __repr__(self):
        return f"<ChatMessage(id={self.id}, role={self.role}, session_id={self.session_id}, sequence={self.sequence})>"
