"""
Remote snapshot stores.

Provides an in-memory store for tests and offline development and a
Cosmos DB store for production, with a consistent interface.

Example:
    >>> from cloud_state_sync.remote import CosmosRemoteConfig, CosmosRemoteStore
    >>> config = CosmosRemoteConfig(endpoint="https://example.documents.azure.com:443/")
    >>> remote = await CosmosRemoteStore.create(config)
    >>> remote.bind_user("user-123")
    >>> await remote.select_current()
"""

from .base import (
    HISTORY_SEPARATOR,
    RemoteRecord,
    RemoteStore,
    build_history_key,
    history_prefix,
)
from .cosmos import CosmosAuthMethod, CosmosRemoteConfig, CosmosRemoteStore
from .memory import InMemoryRemoteStore

__all__ = [
    # Interface
    "RemoteStore",
    "RemoteRecord",
    "HISTORY_SEPARATOR",
    "build_history_key",
    "history_prefix",
    # Implementations
    "InMemoryRemoteStore",
    "CosmosRemoteStore",
    "CosmosRemoteConfig",
    "CosmosAuthMethod",
]
