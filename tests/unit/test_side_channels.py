"""
Unit tests for ratings, voice call logging, registration and identity

Tests:
- RatingHandler validation and last-write-wins
- VoiceCallLogger start/end with additive end fields
- IdentificationService registration
- IdentityResolver for API keys and anonymous tokens
"""

import pytest
from datetime import datetime, timedelta, timezone
from fastapi import HTTPException

from backend.core.identity import Identity
from backend.core.results import ErrorKind
from backend.core.security import generate_api_key
from backend.models import APIKey, User
from backend.schemas.artifact import IdentifiedArtifactRequest
from backend.services.identification import BASE_QUICK_QUESTIONS


@pytest.mark.unit
class TestRatingHandler:

    @pytest.mark.asyncio
    async def test_invalid_rating(self, chat_server, chat_session_id, identity):
        outcome = await chat_server.ratings.rate(chat_session_id, "sideways", identity)

        assert outcome.error == ErrorKind.VALIDATION

    @pytest.mark.asyncio
    async def test_unknown_session(self, chat_server, identity):
        outcome = await chat_server.ratings.rate("missing", "up", identity)

        assert outcome.error == ErrorKind.NOT_FOUND

    @pytest.mark.asyncio
    async def test_last_write_wins(self, chat_server, store, chat_session_id, identity):
        await chat_server.ratings.rate(chat_session_id, "up", identity, "  seru banget  ")
        outcome = await chat_server.ratings.rate(chat_session_id, "down", identity, "bosan")

        assert outcome.value.rating == "down"
        session = store.get_session(chat_session_id)
        assert (session.rating, session.rating_comment) == ("down", "bosan")
        ratings = store.list_interactions(chat_session_id, "rating")
        assert sorted(r["metadata"]["rating"] for r in ratings) == ["down", "up"]

    @pytest.mark.asyncio
    async def test_rating_ignores_running_turn(self, chat_server, chat_session_id, identity):
        chat_server.jobs.acquire(chat_session_id, identity)

        outcome = await chat_server.ratings.rate(chat_session_id, "up", identity)

        assert outcome.ok


@pytest.mark.unit
class TestVoiceCallLogger:

    @pytest.mark.asyncio
    async def test_start_and_end(self, chat_server, store, chat_session_id, identity):
        started = await chat_server.voice.start(chat_session_id, identity)
        ended = await chat_server.voice.end(started.value.interaction_id, "Halo keris", 42)

        assert started.value.artifact_info.name == "Keris Majapahit"
        assert ended.value.duration == 42
        assert ended.value.transcript_length == len("Halo keris")
        metadata = store.list_interactions(chat_session_id, "voice_call")[0]["metadata"]
        assert set(metadata) == {"voiceSessionStarted", "voiceSessionEnded", "timeSpent", "transcript"}

    @pytest.mark.asyncio
    async def test_second_end_keeps_first_values(self, chat_server, chat_session_id, identity):
        started = await chat_server.voice.start(chat_session_id, identity)
        await chat_server.voice.end(started.value.interaction_id, "pertama", 10)

        again = await chat_server.voice.end(started.value.interaction_id, "kedua yang lebih panjang", 99)

        assert again.value.duration == 10
        assert again.value.transcript_length == len("pertama")

    @pytest.mark.asyncio
    async def test_voice_does_not_touch_transcript(self, chat_server, store, chat_session_id, identity):
        started = await chat_server.voice.start(chat_session_id, identity)
        await chat_server.voice.end(started.value.interaction_id, "Halo keris", 5)

        assert len(store.get_session(chat_session_id).messages) == 1

    @pytest.mark.asyncio
    async def test_unknown_targets(self, chat_server, identity):
        assert (await chat_server.voice.start("missing", identity)).error == ErrorKind.NOT_FOUND
        assert (await chat_server.voice.end("missing")).error == ErrorKind.NOT_FOUND


@pytest.mark.unit
class TestIdentificationService:

    @pytest.mark.asyncio
    async def test_register(self, chat_server, store, persona, identity):
        request = IdentifiedArtifactRequest(identification_result=persona, image_url="https://cdn.example.com/k.jpg")

        outcome = await chat_server.identification.register(request, identity)

        registration = outcome.value
        assert registration.quick_questions == BASE_QUICK_QUESTIONS
        assert registration.chat_session.title == "Chat dengan Keris Majapahit"
        greeting = registration.chat_session.messages[0]
        assert greeting.content.startswith("Halo! Aku Keris Majapahit!")
        assert store.get_artifact_summary(registration.artifact.id).image_url == "https://cdn.example.com/k.jpg"


def _create_user_with_key(store, expires_at=None, is_active=True):
    api_key, key_hash = generate_api_key()
    with store.SessionLocal() as db:
        user = User(email="kurator@museum.id", name="Kurator", is_active=is_active)
        db.add(user)
        db.flush()
        db.add(APIKey(user_id=user.id, key_hash=key_hash, key_prefix=api_key[:10], expires_at=expires_at))
        db.commit()
        return user.id, api_key


@pytest.mark.unit
class TestIdentityResolver:

    @pytest.mark.asyncio
    async def test_anonymous_token_is_kept(self, chat_server):
        identity = await chat_server.identity.resolve(anonymous_session_id="anon_abc")

        assert identity == Identity.anonymous("anon_abc")

    @pytest.mark.asyncio
    async def test_anonymous_token_is_issued(self, chat_server):
        identity = await chat_server.identity.resolve()

        assert identity.is_anonymous
        assert identity.anonymous_session_id.startswith("anon_")

    @pytest.mark.asyncio
    async def test_api_key(self, chat_server, store):
        user_id, api_key = _create_user_with_key(store)

        identity = await chat_server.identity.resolve(authorization=f"Bearer {api_key}")

        assert identity.user_id == user_id
        assert not identity.is_anonymous
        with store.SessionLocal() as db:
            assert db.query(APIKey).first().last_used_at is not None

    @pytest.mark.asyncio
    async def test_expired_key(self, chat_server, store):
        _, api_key = _create_user_with_key(store, expires_at=datetime.now(timezone.utc) - timedelta(days=1))

        with pytest.raises(HTTPException) as exc_info:
            await chat_server.identity.resolve(authorization=f"Bearer {api_key}")
        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_inactive_user(self, chat_server, store):
        _, api_key = _create_user_with_key(store, is_active=False)

        with pytest.raises(HTTPException):
            await chat_server.identity.resolve(authorization=f"Bearer {api_key}")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("header", ["Token abc", "Bearer ", "Bearer ac_unknown"])
    async def test_bad_authorization(self, chat_server, header):
        with pytest.raises(HTTPException) as exc_info:
            await chat_server.identity.resolve(authorization=header)
        assert exc_info.value.status_code == 401

    def test_identity_is_exclusive(self):
        with pytest.raises(ValueError):
            Identity(user_id="u1", anonymous_session_id="anon_1")
        with pytest.raises(ValueError):
            Identity()
