"""
ChatSession Model - Conversation container
Stores one conversation with an artifact and its append-only transcript
"""

from sqlalchemy import Column, String, Text, ForeignKey, DateTime, Boolean, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid

from backend.database import Base


class ChatSession(Base):
    """
    Chat session model - conversation container

    Attributes:
        id: Session UUID
        artifact_id: The artifact whose persona answers in this session
        user_id: Authenticated owner (mutually exclusive with anonymous_session_id)
        anonymous_session_id: Anonymous owner token
        title: Session title ("Chat dengan <artifact name>")
        rating: Optional thumbs rating ("up" or "down")
        rating_comment: Free-form comment left with the rating
        is_active: Whether the session still accepts messages
        created_at: Session creation time
        updated_at: Bumped on every persisted turn

    Relationships:
        artifact: The artifact (many-to-one)
        messages: Chat messages in append order (one-to-many)

    Cascade Delete:
        - Deleting session deletes all messages
    """

    __tablename__ = "chat_sessions"
    __table_args__ = (
        CheckConstraint(
            "NOT (user_id IS NOT NULL AND anonymous_session_id IS NOT NULL)",
            name="ck_chat_sessions_single_owner",
        ),
        CheckConstraint(
            "rating IS NULL OR rating IN ('up', 'down')",
            name="ck_chat_sessions_rating",
        ),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    artifact_id = Column(String(36), ForeignKey("artifacts.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), index=True)
    anonymous_session_id = Column(String(64), index=True)

    title = Column(String(255), nullable=False, default="Chat dengan Artefak")
    rating = Column(String(8))
    rating_comment = Column(Text, nullable=False, default="")
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    artifact = relationship("Artifact", back_populates="chat_sessions")
    messages = relationship(
        "ChatMessage",
        back_populates="session",
        cascade="all, delete-orphan",
        order_by="ChatMessage.sequence"
    )

    def __repr__(self):
        return f"<ChatSession(id={self.id}, artifact_id={self.artifact_id}, title={self.title})>"
