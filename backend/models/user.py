"""
User Model - Authenticated owners of artifacts and chat sessions
"""

from sqlalchemy import Column, String, Boolean, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid

from backend.database import Base


class User(Base):
    """
    User model for API key ownership

    Attributes:
        id: Unique user identifier (UUID string)
        email: User email (unique, indexed for fast lookup)
        name: Display name
        is_active: Whether user can authenticate
        created_at: Account creation timestamp
        updated_at: Last modification timestamp

    Relationships:
        api_keys: User's API keys (one-to-many)

    Anonymous visitors never get a row here; their sessions carry an
    anonymous session token instead of a user id.
    """

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(255))
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    api_keys = relationship("APIKey", back_populates="user", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<User(id={self.id}, email={self.email})>"
