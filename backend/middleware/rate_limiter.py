"""
Rate Limiting Middleware

Protects the HTTP chat endpoints from abuse using SlowAPI.
Keys requests by API key when one is presented, otherwise by the
anonymous session token or client address.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from fastapi import Request, status
from fastapi.responses import JSONResponse
from backend.config import settings
import logging

logger = logging.getLogger(__name__)


def get_caller_key(request: Request) -> str:
    """
    Extract the caller credential used for rate limiting

    Checks:
    1. Authorization header (Bearer token)
    2. X-Anonymous-Session header
    3. Query parameter anonymous_session_id

    Returns:
        Credential or IP address as fallback
    """
    auth = request.headers.get("Authorization", "")
    if auth.startswith("Bearer "):
        return auth[7:]

    token = request.headers.get("X-Anonymous-Session")
    if token:
        return token

    token = request.query_params.get("anonymous_session_id")
    if token:
        return token

    return get_remote_address(request)


def rate_limit_key(request: Request) -> str:
    """
    Generate rate limit key based on caller credential or IP

    Format: "caller:{credential}" or "ip:{address}"
    """
    key = get_caller_key(request)

    if key and key != get_remote_address(request):
        return f"caller:{key}"

    return f"ip:{key}"


limiter = Limiter(
    key_func=rate_limit_key,
    storage_uri=settings.RATE_LIMIT_STORAGE_URI,
    enabled=settings.RATE_LIMIT_ENABLED
)


def _masked(key: str) -> str:
    return f"{key[:8]}..." if len(key) > 12 else key


async def custom_rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    """
    Custom handler for rate limit exceeded errors

    Returns:
        429 JSON response with retry hint
    """
    logger.warning(
        f"Rate limit exceeded for {_masked(get_caller_key(request))} "
        f"on {request.url.path}"
    )

    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content={
            "detail": {
                "error": "rate_limit_exceeded",
                "message": "Too many requests. Please slow down.",
                "limit": str(exc.detail),
                "endpoint": request.url.path
            }
        },
        headers={"Retry-After": "60"}
    )


def chat_rate_limit():
    """
    Rate limit for endpoints that start a generation

    Default: 30 requests per minute
    """
    return limiter.limit(settings.RATE_LIMIT_CHAT)


def setup_rate_limiting(app):
    """
    Setup rate limiting middleware

    Args:
        app: FastAPI application instance
    """
    app.state.limiter = limiter
    app.add_exception_handler(
        RateLimitExceeded,
        custom_rate_limit_exceeded_handler
    )
    if settings.RATE_LIMIT_ENABLED:
        logger.info(f"Rate limiting enabled ({settings.RATE_LIMIT_STORAGE_URI})")
    else:
        logger.warning("Rate limiting disabled")
