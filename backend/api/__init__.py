"""
API Routes and Endpoints

Routers:
    - chat: Send messages, rate, read and delete chat sessions
    - artifacts: Register identified artifacts, artifact lookups
    - voice: Voice call records
    - realtime: WebSocket room protocol
"""

from backend.api import chat, artifacts, voice, realtime

__all__ = ["chat", "artifacts", "voice", "realtime"]
