"""
Chat API endpoints
HTTP transport of the chat core; runs the same turn logic as the WebSocket room
"""

import logging
from fastapi import APIRouter, Depends, Query, Request, status

from backend.api.deps import get_chat_server, get_identity
from backend.core.exceptions import http_404_not_found
from backend.core.identity import Identity
from backend.middleware.rate_limiter import chat_rate_limit
from backend.schemas.chat import (
    ChatHistoryResponse,
    ChatSessionPage,
    QuickQuestionRequest,
    RateChatRequest,
    RatingResponse,
    SendMessageRequest,
    SendMessageResponse,
)
from backend.services.chat_server import ChatServer
from backend.utils.error_handlers import raise_for_outcome

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/chat", tags=["chat"])


@router.post("/{chat_session_id}/send", response_model=SendMessageResponse)
@chat_rate_limit()
async def send_message(
    request: Request,
    chat_session_id: str,
    body: SendMessageRequest,
    identity: Identity = Depends(get_identity),
    server: ChatServer = Depends(get_chat_server),
):
    """
    Send a message and wait for the artifact's reply

    The reply is also streamed to every WebSocket connection in the
    session's room. Both messages are stored together once the reply
    is complete.

    Example:
        ```json
        {"message": "Halo"}
        ```

    Returns:
        userMessage, aiResponse and the new transcript length

    Raises:
        400: Empty message
        404: Unknown chat session
        409: A reply is still being generated for this session
        503: The turn could not be stored (safe to re-send)
    """
    outcome = await server.send_turn(chat_session_id, body.message, identity)
    return raise_for_outcome(outcome)


@router.post("/{chat_session_id}/quick-question", response_model=SendMessageResponse)
@chat_rate_limit()
async def send_quick_question(
    request: Request,
    chat_session_id: str,
    body: QuickQuestionRequest,
    identity: Identity = Depends(get_identity),
    server: ChatServer = Depends(get_chat_server),
):
    """
    Send one of the suggested questions

    Same as /send, and the question text is recorded on the chat interaction.
    """
    outcome = await server.send_turn(chat_session_id, body.question_text, identity, is_quick_question=True)
    return raise_for_outcome(outcome)


@router.post("/{chat_session_id}/rate", response_model=RatingResponse)
async def rate_chat(
    chat_session_id: str,
    body: RateChatRequest,
    identity: Identity = Depends(get_identity),
    server: ChatServer = Depends(get_chat_server),
):
    """
    Rate a chat session thumbs up or down

    Rating again replaces the previous rating and comment.
    """
    outcome = await server.ratings.rate(chat_session_id, body.rating, identity, body.comment)
    return raise_for_outcome(outcome)


@router.get("/history", response_model=ChatHistoryResponse)
async def chat_history(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    identity: Identity = Depends(get_identity),
    server: ChatServer = Depends(get_chat_server),
):
    """
    List the caller's chat sessions, most recently active first

    Args:
        page: Page number (default: 1)
        limit: Sessions per page (default: 20)
    """
    return await server.run_read(server.store.list_history, identity, page, limit)


@router.get("/{chat_session_id}", response_model=ChatSessionPage)
async def get_chat_session(
    chat_session_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    server: ChatServer = Depends(get_chat_server),
):
    """
    Get a chat session with one page of its transcript

    Page 1 holds the newest messages; each page is ordered oldest first.

    Raises:
        404: Unknown chat session
    """
    result = await server.run_read(server.store.page_session, chat_session_id, page, limit)
    if result is None:
        raise http_404_not_found("Chat session not found")
    return result


@router.delete("/{chat_session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_chat_session(
    chat_session_id: str,
    server: ChatServer = Depends(get_chat_server),
):
    """
    Delete a chat session with its messages and interactions

    Raises:
        404: Unknown chat session
        409: A reply is still being generated
    """
    raise_for_outcome(await server.delete_session(chat_session_id))
    return None
