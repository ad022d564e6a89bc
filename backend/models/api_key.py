"""
API Key Model - Bearer tokens mapping a connection to a user
"""

from sqlalchemy import Column, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid

from backend.database import Base


class APIKey(Base):
    """
    API Key model for token-based identity resolution

    Attributes:
        id: Unique key identifier (UUID string)
        user_id: Foreign key to users table
        key_hash: SHA-256 hash of the API key (for verification)
        key_prefix: First 10 chars of key (for identification, e.g., "ac_Xk3v9q")
        name: Human-readable name for the key
        expires_at: Optional expiration timestamp
        last_used_at: Last time key was used for authentication
        created_at: Key creation timestamp

    Security:
        - API key is hashed with SHA-256 before storage
        - Original key is only shown once upon creation
    """

    __tablename__ = "api_keys"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    key_hash = Column(String(255), unique=True, nullable=False, index=True)
    key_prefix = Column(String(20), nullable=False)
    name = Column(String(255))

    expires_at = Column(DateTime(timezone=True))
    last_used_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    user = relationship("User", back_populates="api_keys")

    def __repr__(self):
        return f"<APIKey(id={self.id}, prefix={self.key_prefix}, user_id={self.user_id})>"
