"""
Pytest configuration and shared fixtures for Artifact Chat tests

Provides:
- Temporary SQLite chat store
- Registered artifact with its greeting session
- Fake streaming generation provider
- Recording room connections
- Chat server and FastAPI test client wired to the fakes
"""

import asyncio
import pytest
from typing import Any, Dict, List, Optional, Sequence
from unittest.mock import MagicMock
from uuid import uuid4

from fastapi.testclient import TestClient

from backend.core.identity import Identity
from backend.database import build_engine
from backend.schemas.artifact import PersonaAttributes
from backend.services.chat_server import ChatServer
from backend.services.chat_store import ChatStore


class RecordingConnection:
    """Room connection that keeps every event it receives"""

    def __init__(self, connection_id: Optional[str] = None, fail: bool = False):
        self.id = connection_id or uuid4().hex
        self.fail = fail
        self.events: List[tuple] = []

    async def send(self, event: str, data: Dict[str, Any]) -> None:
        if self.fail:
            raise ConnectionError("socket closed")
        self.events.append((event, data))

    def names(self) -> List[str]:
        return [event for event, _ in self.events]

    def payloads(self, event: str) -> List[Dict[str, Any]]:
        return [data for name, data in self.events if name == event]


class FakeProvider:
    """
    Streaming generation provider with scripted behaviour

    Args:
        chunks: Deltas to yield in order
        delay: Seconds to sleep before each delta
        error: Exception to raise
        fail_after: Index of the delta at which error is raised
            (None raises it after the last delta, if error is set)
        gate: Event awaited after the first delta
    """

    def __init__(
        self,
        chunks: Sequence[str] = ("Halo juga! ", "Aku Keris Majapahit, ", "pusaka tua dari Jawa."),
        delay: float = 0.0,
        error: Optional[Exception] = None,
        fail_after: Optional[int] = None,
        gate: Optional[asyncio.Event] = None,
    ):
        self.chunks = list(chunks)
        self.delay = delay
        self.error = error
        self.fail_after = fail_after
        self.gate = gate
        self.calls: List[Dict[str, Any]] = []

    async def stream(self, system_prompt, history, user_message):
        self.calls.append({
            "system_prompt": system_prompt,
            "history": list(history),
            "user_message": user_message,
        })
        for index, chunk in enumerate(self.chunks):
            if self.error is not None and self.fail_after == index:
                raise self.error
            if self.delay:
                await asyncio.sleep(self.delay)
            yield chunk
            if index == 0 and self.gate is not None:
                await self.gate.wait()
        if self.error is not None and self.fail_after is None:
            raise self.error

    @property
    def full_text(self) -> str:
        return "".join(self.chunks)


@pytest.fixture
def test_db_engine(tmp_path):
    """File-backed SQLite database shared by worker threads"""
    engine = build_engine(f"sqlite:///{tmp_path / 'artifact_chat.db'}")
    yield engine
    engine.dispose()


@pytest.fixture
def store(test_db_engine) -> ChatStore:
    chat_store = ChatStore(test_db_engine)
    chat_store.create_schema()
    return chat_store


@pytest.fixture
def identity() -> Identity:
    return Identity.anonymous("anon_visitor_1")


@pytest.fixture
def persona() -> PersonaAttributes:
    return PersonaAttributes(
        name="Keris Majapahit",
        category="senjata",
        description="Keris pusaka dengan pamor berlapis dari era Majapahit.",
        history="Ditempa oleh empu kerajaan pada abad ke-14.",
        estimated_age="sekitar 650 tahun",
        materials=None,
        confidence=0.92,
        is_recognized=True,
    )


@pytest.fixture
def registered(store, persona, identity):
    """Artifact plus its chat session holding only the greeting"""
    artifact, chat_session = store.create_artifact_session(
        persona,
        identity,
        title=f"Chat dengan {persona.name}",
        greeting=f"Halo! Aku {persona.name}! {persona.description} 😊",
        image_url="https://cdn.example.com/keris.jpg",
    )
    return artifact, chat_session


@pytest.fixture
def chat_session_id(registered) -> str:
    return registered[1].id


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def chat_server(store, provider) -> ChatServer:
    return ChatServer(
        store,
        provider,
        generation_timeout=2.0,
        persistence_retry_delay=0,
    )


@pytest.fixture
def mock_litellm_stream():
    """Mock LiteLLM streaming response"""
    async def mock_stream():
        for chunk_text in ["Halo ", "", "dari ", "masa lalu!"]:
            chunk = MagicMock()
            chunk.content = chunk_text
            yield chunk

    return mock_stream


@pytest.fixture
def connection_factory():
    return RecordingConnection


@pytest.fixture
def provider_factory():
    return FakeProvider


@pytest.fixture
def server_factory(store):
    """Build a ChatServer over the test store with a custom provider"""
    def build(provider, **kwargs) -> ChatServer:
        kwargs.setdefault("generation_timeout", 2.0)
        kwargs.setdefault("persistence_retry_delay", 0)
        return ChatServer(store, provider, **kwargs)

    return build


@pytest.fixture
def client(chat_server):
    """FastAPI test client running the lifespan around an injected chat server"""
    from backend.main import create_app
    from backend.middleware.rate_limiter import limiter

    limiter.reset()
    with TestClient(create_app(chat_server=chat_server)) as test_client:
        yield test_client


# Pytest configuration
def pytest_configure(config):
    """Configure pytest with custom markers"""
    config.addinivalue_line(
        "markers", "unit: Unit tests for individual components"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests for API endpoints"
    )
    config.addinivalue_line(
        "markers", "asyncio: Async tests requiring asyncio event loop"
    )
