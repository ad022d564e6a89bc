"""
Voice call API endpoints
Start and end records for voice conversations with an artifact
"""

from fastapi import APIRouter, Depends

from backend.api.deps import get_chat_server, get_identity
from backend.core.identity import Identity
from backend.schemas.artifact import VoiceCallEndRequest, VoiceCallEndResponse, VoiceCallStartResponse
from backend.services.chat_server import ChatServer
from backend.utils.error_handlers import raise_for_outcome

router = APIRouter(prefix="/voice", tags=["voice"])


@router.post("/start/{chat_session_id}", response_model=VoiceCallStartResponse)
async def start_voice_call(
    chat_session_id: str,
    identity: Identity = Depends(get_identity),
    server: ChatServer = Depends(get_chat_server),
):
    """Open a voice call record for a chat session"""
    return raise_for_outcome(await server.voice.start(chat_session_id, identity))


@router.post("/end/{interaction_id}", response_model=VoiceCallEndResponse)
async def end_voice_call(
    interaction_id: str,
    body: VoiceCallEndRequest,
    server: ChatServer = Depends(get_chat_server),
):
    """
    Close a voice call record with its duration and transcript

    Ending the same call twice keeps the first values.
    """
    return raise_for_outcome(await server.voice.end(interaction_id, body.transcript, body.duration))
