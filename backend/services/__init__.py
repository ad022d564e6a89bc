"""
Chat Core Services

Includes:
- ChatServer: service object wiring everything below, shared by both transports
- RoomRegistry: live connection membership per chat session
- PresenceSignaler: typing indicators
- MessageIngress: validation, single-flight and broadcast of user messages
- StreamingOrchestrator: persona prompt, streamed reply, fallback
- PersistenceCoordinator: serialized transcript writes with retry
- RatingHandler / VoiceCallLogger / IdentificationService: session side channels
- ChatStore: durable SQLAlchemy storage
"""

# Lazy imports to avoid circular dependencies
# Import services directly from their modules instead

__all__ = [
    "ChatServer",
    "RoomRegistry",
    "PresenceSignaler",
    "MessageIngress",
    "StreamingOrchestrator",
    "PersistenceCoordinator",
    "RatingHandler",
    "VoiceCallLogger",
    "IdentificationService",
    "ChatStore",
]
