"""
Identity for cloud state sync.

Provides the session provider abstraction the sync runtime consults
to learn which user is signed in.
"""

from .config_provider import ConfigFileSessionProvider
from .provider import SessionProvider
from .types import SessionInfo

__all__ = [
    "SessionInfo",
    "SessionProvider",
    "ConfigFileSessionProvider",
]
