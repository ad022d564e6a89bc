"""
Caller identity

A caller is either an authenticated user or an anonymous visitor holding
a session token, never both.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Identity:
    user_id: Optional[str] = None
    anonymous_session_id: Optional[str] = None

    def __post_init__(self):
        if bool(self.user_id) == bool(self.anonymous_session_id):
            raise ValueError("Identity needs exactly one of user_id or anonymous_session_id")

    @classmethod
    def for_user(cls, user_id: str) -> "Identity":
        return cls(user_id=user_id)

    @classmethod
    def anonymous(cls, token: str) -> "Identity":
        return cls(anonymous_session_id=token)

    @property
    def is_anonymous(self) -> bool:
        return self.user_id is None

    @property
    def key(self) -> str:
        """Stable identifier used in presence events"""
        return self.user_id or self.anonymous_session_id

    def owner_fields(self) -> dict:
        return {"user_id": self.user_id, "anonymous_session_id": self.anonymous_session_id}
