"""
Custom exceptions for the Artifact Chat API
"""

from fastapi import HTTPException, status


class ArtifactChatException(Exception):
    """Base exception for Artifact Chat"""
    pass


class GenerationFailure(ArtifactChatException):
    """Upstream generation timed out or failed; recovered by the fallback reply"""
    pass


class PersistenceFailure(ArtifactChatException):
    """Durable write failed after the retry budget was spent"""
    pass


# HTTP exception helpers
def http_400_bad_request(detail: str = "Bad request"):
    """Raise 400 Bad Request"""
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail=detail,
    )


def http_401_unauthorized(detail: str = "Invalid authentication credentials"):
    """Raise 401 Unauthorized"""
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def http_404_not_found(detail: str = "Resource not found"):
    """Raise 404 Not Found"""
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=detail,
    )


def http_409_conflict(detail: str = "Resource conflict"):
    """Raise 409 Conflict"""
    return HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail=detail,
    )


def http_503_service_unavailable(detail: str = "Service temporarily unavailable"):
    """Raise 503 Service Unavailable"""
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=detail,
    )
