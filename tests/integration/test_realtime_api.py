"""
Integration tests for the WebSocket room protocol

Tests:
- join_chat handshake
- Full streamed turn over the socket
- Other members receive message_received, the sender does not
- Busy rejection while a reply streams
- Malformed frames and unknown events
"""

import pytest

WS_URL = "/api/v1/ws/chat?anonymous_session_id=anon_visitor_1"


def _join(ws, chat_session_id):
    ws.send_json({"event": "join_chat", "data": {"chatSessionId": chat_session_id}})
    return ws.receive_json()


def _receive_until(ws, event):
    frames = []
    while True:
        frame = ws.receive_json()
        frames.append(frame)
        if frame["event"] == event:
            return frames


@pytest.mark.integration
class TestRealtimeAPI:

    def test_join(self, client, chat_session_id):
        with client.websocket_connect(WS_URL) as ws:
            frame = _join(ws, chat_session_id)

        assert frame["event"] == "joined_chat"
        assert frame["data"]["session"]["title"] == "Chat dengan Keris Majapahit"
        assert frame["data"]["artifact"]["category"] == "senjata"

    def test_repeated_join_sends_nothing(self, client, chat_session_id):
        with client.websocket_connect(WS_URL) as ws:
            _join(ws, chat_session_id)
            ws.send_json({"event": "join_chat", "data": {"chatSessionId": chat_session_id}})
            ws.send_json({"event": "ping", "data": {}})

            frame = ws.receive_json()

        assert frame == {"event": "error", "data": {"message": "Event tidak dikenal: ping"}}

    def test_streamed_turn(self, client, store, chat_session_id, provider):
        with client.websocket_connect(WS_URL) as ws:
            _join(ws, chat_session_id)
            ws.send_json({"event": "send_message", "data": {"message": "Halo"}})
            frames = _receive_until(ws, "ai_stopped_typing")

        events = [f["event"] for f in frames]
        assert events[0] == "ai_typing"
        assert events[1] == "ai_response_start"
        assert "message_received" not in events
        chunks = [f["data"] for f in frames if f["event"] == "ai_response_chunk"]
        end = next(f["data"] for f in frames if f["event"] == "ai_response_end")
        assert "".join(c["chunk"] for c in chunks) == end["fullResponse"] == provider.full_text
        assert len(store.get_session(chat_session_id).messages) == 3

    def test_other_member_sees_user_message(self, client, chat_session_id):
        with client.websocket_connect(WS_URL) as sender, client.websocket_connect(WS_URL) as watcher:
            _join(sender, chat_session_id)
            _join(watcher, chat_session_id)

            sender.send_json({"event": "send_message", "data": {"message": "Halo"}})
            watcher_frames = _receive_until(watcher, "ai_stopped_typing")
            _receive_until(sender, "ai_stopped_typing")

        assert watcher_frames[0]["event"] == "message_received"
        assert watcher_frames[0]["data"]["message"]["content"] == "Halo"
        assert watcher_frames[0]["data"]["isQuickQuestion"] is False

    def test_busy_while_streaming(self, store, chat_session_id, server_factory, provider_factory):
        from fastapi.testclient import TestClient
        from backend.main import create_app

        server = server_factory(provider_factory(delay=0.2))
        with TestClient(create_app(chat_server=server)) as slow_client:
            with slow_client.websocket_connect(WS_URL) as ws:
                _join(ws, chat_session_id)
                ws.send_json({"event": "send_message", "data": {"message": "pertama"}})
                ws.send_json({"event": "send_message", "data": {"message": "kedua"}})
                frames = _receive_until(ws, "ai_stopped_typing")

        errors = [f["data"]["message"] for f in frames if f["event"] == "error"]
        assert len(errors) == 1
        messages = store.get_session(chat_session_id).messages
        assert [m.content for m in messages[1:2]] == ["pertama"]
        assert len(messages) == 3

    def test_send_before_join(self, client):
        with client.websocket_connect(WS_URL) as ws:
            ws.send_json({"event": "send_message", "data": {"message": "Halo"}})
            frame = ws.receive_json()

        assert frame["event"] == "error"

    def test_malformed_frame(self, client):
        with client.websocket_connect(WS_URL) as ws:
            ws.send_text("not json")
            first = ws.receive_json()
            ws.send_json({"data": {}})
            second = ws.receive_json()

        assert first == second == {"event": "error", "data": {"message": "Format pesan tidak valid"}}

    def test_rate_over_socket(self, client, store, chat_session_id):
        with client.websocket_connect(WS_URL) as ws:
            _join(ws, chat_session_id)
            ws.send_json({"event": "rate_chat", "data": {"rating": "up", "comment": "mantap"}})
            frame = ws.receive_json()

        assert frame == {"event": "rating_saved", "data": {"rating": "up", "comment": "mantap"}}
        assert store.get_session(chat_session_id).rating == "up"
