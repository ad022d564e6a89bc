"""
Database engine and session management
SQLAlchemy setup shared by the durable chat store
"""

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base
from backend.config import settings


def build_engine(database_url: str, echo: bool = False):
    """
    Create a SQLAlchemy engine for the given URL

    SQLite connections are used from worker threads (asyncio.to_thread),
    so the same-thread check is disabled for them.
    """
    engine_args = {"pool_pre_ping": True, "echo": echo}
    if database_url.startswith("sqlite"):
        engine_args["connect_args"] = {"check_same_thread": False}
    return create_engine(database_url, **engine_args)


# Create database engine
# pool_pre_ping: Verify connections before using them
# echo: Log all SQL statements when DEBUG=True
engine = build_engine(settings.DATABASE_URL, echo=settings.DEBUG)


# Base class for all models
Base = declarative_base()


def create_tables(bind=None):
    """
    Create all tables in the database
    Called during application startup

    Note: Import models here to ensure they're registered with Base.metadata
    """
    # Import models so they're registered with Base.metadata
    from backend.models import User, APIKey, Artifact, ChatSession, ChatMessage, Interaction  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
