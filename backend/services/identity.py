"""
Identity Resolver - maps a request or connection to a caller identity

A Bearer API key resolves to its user; otherwise the caller is anonymous,
identified by the token it presents or a freshly generated one.
"""

import asyncio
from typing import Optional

from backend.core.exceptions import http_401_unauthorized
from backend.core.identity import Identity
from backend.core.security import generate_anonymous_session_token, hash_api_key
from backend.services.chat_store import ChatStore

MAX_ANONYMOUS_TOKEN_LENGTH = 64


class IdentityResolver:

    def __init__(self, store: ChatStore):
        self.store = store

    async def resolve(
        self,
        authorization: Optional[str] = None,
        anonymous_session_id: Optional[str] = None,
    ) -> Identity:
        """
        Resolve caller identity

        Args:
            authorization: Authorization header value ("Bearer ac_...")
            anonymous_session_id: Token of an anonymous visitor

        Raises:
            HTTPException: 401 for a malformed, unknown or expired API key
        """
        if authorization:
            if not authorization.startswith("Bearer "):
                raise http_401_unauthorized("Invalid authorization header format")

            api_key = authorization[7:]
            if not api_key:
                raise http_401_unauthorized("API key missing")

            user_id = await asyncio.to_thread(self.store.resolve_api_key, hash_api_key(api_key))
            if not user_id:
                raise http_401_unauthorized("Invalid API key")
            return Identity.for_user(user_id)

        token = (anonymous_session_id or "").strip()
        if not token or len(token) > MAX_ANONYMOUS_TOKEN_LENGTH:
            token = generate_anonymous_session_token()
        return Identity.anonymous(token)
