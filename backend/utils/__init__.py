"""
Utility Functions and Classes

Provides retry logic, error handling, and other helper functions.
"""

from backend.utils.retry import persistence_retrying
from backend.utils.error_handlers import (
    ErrorHandler,
    raise_for_outcome,
    setup_error_handlers
)

__all__ = [
    "persistence_retrying",
    "ErrorHandler",
    "raise_for_outcome",
    "setup_error_handlers"
]
