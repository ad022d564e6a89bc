"""
FastAPI dependencies
Chat server access and caller identity
"""

from fastapi import Depends, Header, Query, Request, Response
from typing import Optional

from backend.core.identity import Identity
from backend.services.chat_server import ChatServer


def get_chat_server(request: Request) -> ChatServer:
    """
    Get the ChatServer built during application startup

    Returns:
        ChatServer: Shared service object stored on app.state
    """
    return request.app.state.chat_server


async def get_identity(
    response: Response,
    authorization: Optional[str] = Header(None, description="Bearer API key"),
    x_anonymous_session: Optional[str] = Header(None, description="Anonymous session token"),
    anonymous_session_id: Optional[str] = Query(None, description="Anonymous session token"),
    server: ChatServer = Depends(get_chat_server),
) -> Identity:
    """
    Resolve the caller identity

    Authenticated callers present a Bearer API key. Anonymous callers
    present their session token in X-Anonymous-Session (or the
    anonymous_session_id query parameter); a new token is issued when
    none is given and echoed back in the X-Anonymous-Session header.

    Raises:
        HTTPException: 401 if an API key is presented but invalid
    """
    identity = await server.identity.resolve(authorization, x_anonymous_session or anonymous_session_id)
    if identity.is_anonymous:
        response.headers["X-Anonymous-Session"] = identity.anonymous_session_id
    return identity
