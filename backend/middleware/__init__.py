"""
Middleware Components

Provides cross-cutting concerns like rate limiting.
"""

from backend.middleware.rate_limiter import limiter, chat_rate_limit, setup_rate_limiting

__all__ = ["limiter", "chat_rate_limit", "setup_rate_limiting"]
