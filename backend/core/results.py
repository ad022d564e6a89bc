"""
Explicit result records for expected failures

Operations that can fail for ordinary reasons (empty message, unknown
session, generation already running, write failure) return an Outcome
instead of raising, so every caller has to look at the error kind.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class ErrorKind(str, Enum):
    """Expected failure categories"""
    VALIDATION = "validation"    # Rejected locally, nothing mutated
    NOT_FOUND = "not_found"      # Unknown session or artifact
    BUSY = "busy"                # A generation is already running for the session
    PERSISTENCE = "persistence"  # Durable write failed after retry


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Success value or an error kind with a user-facing message"""
    value: Optional[T] = None
    error: Optional[ErrorKind] = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T = None) -> "Outcome[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: ErrorKind, message: str) -> "Outcome[T]":
        return cls(error=error, message=message)
