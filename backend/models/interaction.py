"""
Interaction Model - Append-only engagement records for analytics
"""

from sqlalchemy import Column, String, ForeignKey, JSON, DateTime, CheckConstraint
from sqlalchemy.sql import func
from sqlalchemy.ext.mutable import MutableDict
import uuid

from backend.database import Base


INTERACTION_TYPES = ("identification", "chat", "rating", "voice_call")


class Interaction(Base):
    """
    Interaction model - one typed engagement event

    Attributes:
        id: Interaction UUID
        user_id / anonymous_session_id: Identity that caused the event
        artifact_id: Artifact involved
        chat_session_id: Chat session involved
        interaction_type: identification | chat | rating | voice_call
        metadata: chatMessageCount, quickQuestions, timeSpent,
            voiceSessionStarted, voiceSessionEnded, transcript, ...
        created_at: Event time

    Records are never updated except for additive metadata merges.
    """

    __tablename__ = "interactions"
    __table_args__ = (
        CheckConstraint(
            "interaction_type IN ('identification', 'chat', 'rating', 'voice_call')",
            name="ck_interactions_type",
        ),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), index=True)
    anonymous_session_id = Column(String(64), index=True)
    artifact_id = Column(String(36), ForeignKey("artifacts.id", ondelete="CASCADE"), nullable=False, index=True)
    chat_session_id = Column(String(36), ForeignKey("chat_sessions.id", ondelete="CASCADE"), nullable=False, index=True)

    interaction_type = Column(String(20), nullable=False, index=True)
    metadata_ = Column("metadata", MutableDict.as_mutable(JSON), default=dict)  # metadata is reserved by SQLAlchemy

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<Interaction(id={self.id}, type={self.interaction_type}, chat_session_id={self.chat_session_id})>"
