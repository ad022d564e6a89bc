"""
Artifact Model - Identified physical objects that can be chatted with
"""

from sqlalchemy import Column, String, ForeignKey, JSON, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from sqlalchemy.ext.mutable import MutableDict
import uuid

from backend.database import Base


class Artifact(Base):
    """
    Artifact model - the result of one identification

    Attributes:
        id: Artifact UUID
        user_id: Optional owner (null for anonymous usage)
        image_url: Public URL of the stored photo
        original_filename: Filename of the uploaded photo
        identification: Persona attributes returned by the vision model
            (name, category, description, history, estimatedAge, materials,
            confidence, isRecognized)
        created_at / updated_at: Timestamps

    Relationships:
        chat_sessions: Conversations held with this artifact (one-to-many)
    """

    __tablename__ = "artifacts"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), index=True)

    image_url = Column(String(1024), nullable=False, default="")
    original_filename = Column(String(255), nullable=False, default="")
    identification = Column(MutableDict.as_mutable(JSON), nullable=False, default=dict)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    chat_sessions = relationship(
        "ChatSession",
        back_populates="artifact",
        cascade="all, delete-orphan",
    )

    @property
    def name(self) -> str:
        return (self.identification or {}).get("name", "")

    def __repr__(self):
        return f"<Artifact(id={self.id}, name={self.name})>"
