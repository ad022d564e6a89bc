"""
Centralized Error Handling

Maps expected failure outcomes onto HTTP errors and registers global
handlers for database and unexpected errors.
"""

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, OperationalError, DBAPIError
from typing import Dict, Any
import logging
import traceback

from backend.core.exceptions import (
    http_400_bad_request,
    http_404_not_found,
    http_409_conflict,
    http_503_service_unavailable,
)
from backend.core.results import ErrorKind, Outcome

logger = logging.getLogger(__name__)


class ErrorHandler:
    """Centralized error handling"""

    @staticmethod
    def handle_database_error(error: Exception) -> Dict[str, Any]:
        """
        Handle database errors

        Args:
            error: Database exception

        Returns:
            Error dictionary with message and details
        """
        if isinstance(error, IntegrityError):
            logger.warning(f"Database integrity error: {error}")
            return {
                "error": "integrity_error",
                "message": "Data integrity violation. Duplicate entry or constraint failed.",
            }

        elif isinstance(error, OperationalError):
            logger.error(f"Database operational error: {error}")
            return {
                "error": "database_error",
                "message": "Database connection or operational error.",
            }

        elif isinstance(error, DBAPIError):
            logger.error(f"Database API error: {error}")
            return {
                "error": "database_error",
                "message": "Database error occurred.",
            }

        else:
            logger.error(f"Unknown database error: {error}")
            return {
                "error": "unknown",
                "message": "An unexpected database error occurred."
            }

    @staticmethod
    def handle_generic_error(error: Exception) -> Dict[str, Any]:
        """
        Handle generic/unknown errors

        Args:
            error: Exception

        Returns:
            Error dictionary
        """
        logger.error(f"Unexpected error: {error}\n{traceback.format_exc()}")
        return {
            "error": "internal_error",
            "message": "An unexpected error occurred. Please try again.",
            "type": type(error).__name__
        }

    @staticmethod
    def to_http_exception(outcome: Outcome) -> HTTPException:
        """
        Convert a failed outcome into the matching HTTP error

        validation -> 400, not_found -> 404, busy -> 409, persistence -> 503
        """
        if outcome.error == ErrorKind.VALIDATION:
            return http_400_bad_request(outcome.message)
        if outcome.error == ErrorKind.NOT_FOUND:
            return http_404_not_found(outcome.message)
        if outcome.error == ErrorKind.BUSY:
            return http_409_conflict(outcome.message)
        return http_503_service_unavailable(outcome.message)


def raise_for_outcome(outcome: Outcome):
    """
    Return the outcome value or raise the HTTP error for its failure kind

    Args:
        outcome: Result of a chat core operation

    Returns:
        outcome.value when the operation succeeded

    Raises:
        HTTPException: 400/404/409/503 depending on the error kind
    """
    if outcome.ok:
        return outcome.value
    raise ErrorHandler.to_http_exception(outcome)


# Global exception handlers for FastAPI

async def database_error_handler(request: Request, exc: DBAPIError):
    """FastAPI exception handler for database errors"""
    error_data = ErrorHandler.handle_database_error(exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_data
    )


async def generic_error_handler(request: Request, exc: Exception):
    """FastAPI exception handler for generic errors"""
    error_data = ErrorHandler.handle_generic_error(exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_data
    )


# Setup function for FastAPI app
def setup_error_handlers(app):
    """
    Setup global error handlers for FastAPI app

    Args:
        app: FastAPI application instance
    """
    app.add_exception_handler(DBAPIError, database_error_handler)
    app.add_exception_handler(Exception, generic_error_handler)

    logger.info("Error handlers registered")
