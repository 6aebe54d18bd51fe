"""
Session types.

The sync engine only needs to know who is signed in; token handling
stays with the authentication provider.
"""

from dataclasses import dataclass
from typing import Any


@dataclass
class SessionInfo:
    """Result of a session lookup.

    Attributes:
        user_id: Authenticated user, or None when signed out
        error: Provider error message, if the lookup failed
        email: Optional email of the signed-in user
    """

    user_id: str | None = None
    error: str | None = None
    email: str | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.error is None and bool(self.user_id)

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "error": self.error,
            "email": self.email,
        }
