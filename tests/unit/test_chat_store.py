"""
Unit tests for ChatStore

Tests:
- Artifact registration opens a session with the greeting
- Turn context and history window
- Atomic turn append with sequence numbers and chat interaction
- Transcript pagination and per-identity history
- Ratings, voice metadata merges, deletion
"""

import pytest
from datetime import datetime, timezone

from backend.core.identity import Identity
from backend.schemas.chat import ChatMessageOut, MessageRole


def _message(role, content):
    return ChatMessageOut(role=role, content=content, timestamp=datetime.now(timezone.utc))


def _append(store, chat_session_id, identity, n, metadata=None):
    total = 0
    for i in range(n):
        total = store.append_turn(
            chat_session_id,
            _message(MessageRole.USER, f"tanya {i}"),
            _message(MessageRole.ASSISTANT, f"jawab {i}"),
            identity,
            metadata,
        )
    return total


@pytest.mark.unit
class TestRegistration:

    def test_session_starts_with_greeting(self, registered, persona, identity):
        artifact, chat_session = registered

        assert artifact.identification_result.name == persona.name
        assert chat_session.title == "Chat dengan Keris Majapahit"
        assert chat_session.anonymous_session_id == identity.anonymous_session_id
        assert chat_session.user_id is None
        assert [m.role for m in chat_session.messages] == [MessageRole.ASSISTANT]

    def test_identification_interaction(self, store, chat_session_id):
        records = store.list_interactions(chat_session_id, "identification")

        assert len(records) == 1
        assert records[0]["metadata"]["isRecognized"] is True

    def test_artifact_summary(self, store, registered):
        artifact, _ = registered
        summary = store.get_artifact_summary(artifact.id)

        assert summary.name == "Keris Majapahit"
        assert summary.category == "senjata"
        assert summary.image_url == "https://cdn.example.com/keris.jpg"


@pytest.mark.unit
class TestTurns:

    def test_append_turn(self, store, chat_session_id, identity):
        total = _append(store, chat_session_id, identity, 1, {"quickQuestions": ["tanya 0"]})

        session = store.get_session(chat_session_id)
        assert total == 3
        assert [m.role for m in session.messages] == [
            MessageRole.ASSISTANT, MessageRole.USER, MessageRole.ASSISTANT,
        ]
        chats = store.list_interactions(chat_session_id, "chat")
        assert chats[0]["metadata"] == {"chatMessageCount": 3, "quickQuestions": ["tanya 0"]}

    def test_append_to_missing_session(self, store, identity):
        with pytest.raises(LookupError):
            _append(store, "missing", identity, 1)

    def test_turn_context_history_window(self, store, chat_session_id, identity):
        _append(store, chat_session_id, identity, 6)

        context = store.load_turn_context(chat_session_id, 10)

        assert context.message_count == 13
        assert len(context.history) == 10
        assert context.history[-1].content == "jawab 5"
        assert context.persona.name == "Keris Majapahit"
        assert context.artifact.name == "Keris Majapahit"

    def test_turn_context_missing_session(self, store):
        assert store.load_turn_context("missing", 10) is None


@pytest.mark.unit
class TestReads:

    def test_page_session(self, store, chat_session_id, identity):
        _append(store, chat_session_id, identity, 3)  # 7 messages

        first = store.page_session(chat_session_id, page=1, limit=4)
        second = store.page_session(chat_session_id, page=2, limit=4)

        assert [m.content for m in first.chat_session.messages] == ["tanya 1", "jawab 1", "tanya 2", "jawab 2"]
        assert len(first.chat_session.messages) == 4
        assert first.chat_session.messages[-1].content == "jawab 2"
        assert first.pagination.total == 7
        assert first.pagination.pages == 2
        assert first.pagination.has_more is True
        assert len(second.chat_session.messages) == 3
        assert second.pagination.has_more is False

    def test_history_is_scoped_to_identity(self, store, registered, persona, identity):
        other = Identity.anonymous("anon_someone_else")
        store.create_artifact_session(persona, other, title="Chat dengan Keris Majapahit", greeting="Halo!")

        history = store.list_history(identity)

        assert history.pagination.total == 1
        item = history.chat_sessions[0]
        assert item.id == registered[1].id
        assert item.message_count == 1
        assert item.has_rating is False

    def test_artifact_detail(self, store, registered):
        artifact, chat_session = registered

        detail = store.get_artifact_detail(artifact.id)

        assert detail.artifact.id == artifact.id
        assert [s.id for s in detail.chat_sessions] == [chat_session.id]
        assert store.get_artifact_detail("missing") is None


@pytest.mark.unit
class TestSideWrites:

    def test_rating_last_write_wins(self, store, chat_session_id, identity):
        store.save_rating(chat_session_id, "up", "mantap", identity)
        saved = store.save_rating(chat_session_id, "down", "", identity)

        session = store.get_session(chat_session_id)
        assert saved.rating == "down"
        assert session.rating == "down"
        assert session.rating_comment == ""
        assert len(store.list_interactions(chat_session_id, "rating")) == 2

    def test_rating_missing_session(self, store, identity):
        assert store.save_rating("missing", "up", "", identity) is None

    def test_metadata_merge_is_additive(self, store, chat_session_id, identity):
        interaction_id, _ = store.start_voice_call(chat_session_id, identity, datetime.now(timezone.utc))

        store.merge_interaction_metadata(interaction_id, {"timeSpent": 30, "transcript": "pertama"})
        merged = store.merge_interaction_metadata(interaction_id, {"timeSpent": 99, "extra": True})

        assert merged["timeSpent"] == 30
        assert merged["transcript"] == "pertama"
        assert merged["extra"] is True
        assert "voiceSessionStarted" in merged

    def test_delete_session(self, store, chat_session_id, identity):
        _append(store, chat_session_id, identity, 1)

        assert store.delete_session(chat_session_id) is True
        assert store.get_session(chat_session_id) is None
        assert store.list_interactions(chat_session_id) == []
        assert store.delete_session(chat_session_id) is False
