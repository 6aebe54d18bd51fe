"""
Session provider abstract interface.

Defines the contract that authentication collaborators must implement.
"""

from abc import ABC, abstractmethod

from .types import SessionInfo


class SessionProvider(ABC):
    """Abstract session provider.

    Implementations wrap whatever handles authentication (an auth service
    SDK, a config file, a test double). The sync engine only calls these
    two operations and never manages tokens itself.
    """

    @abstractmethod
    async def get_session(self) -> SessionInfo:
        """Get the current session.

        Returns:
            SessionInfo; a failed lookup is reported through ``error``
            rather than raised
        """
        ...

    @abstractmethod
    async def sign_out(self) -> None:
        """Sign out and clear cached credentials."""
        ...
