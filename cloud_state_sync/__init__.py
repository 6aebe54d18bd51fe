"""
Cloud State Sync

Keeps an application's local key/value state continuously backed up to a
per-user cloud store, and restores it on sign-in.

Provides:
- Debounced, coalesced backups of a tracked key subset
- Guarded hydration that never clobbers unsynced local edits
- Rolling remote history capped to the newest snapshots
- Immediate flush when leaving data-entry screens

Usage:

    >>> from cloud_state_sync import (
    ...     ConfigFileSessionProvider,
    ...     CosmosRemoteConfig,
    ...     CosmosRemoteStore,
    ...     FileLocalStore,
    ...     SyncRuntime,
    ... )
    >>> local = await FileLocalStore.load(Path("state.json"))
    >>> remote = await CosmosRemoteStore.create(CosmosRemoteConfig.from_env())
    >>> runtime = SyncRuntime(local, remote, ConfigFileSessionProvider())
    >>> result = await runtime.start_session()
    >>> runtime.local.set_item("tsms_theme", "dark")
    ...
    >>> # Leaving the sales screen writes unsaved changes right away
    >>> await runtime.flush.on_page_hide("sales")
    >>> await runtime.close()

Remote Stores:

    # Cosmos DB for production
    from cloud_state_sync.remote import CosmosRemoteStore, CosmosRemoteConfig

    # In-memory for tests and offline development
    from cloud_state_sync.remote import InMemoryRemoteStore
"""

# Configuration
from .config import SyncConfig

# Exceptions
from .exceptions import (
    AuthenticationError,
    AuthenticationRequiredError,
    CloudDataMissingError,
    HistoryError,
    HydrationError,
    RemoteError,
    StorageIOError,
    SyncStorageError,
    ValidationError,
)

# Identity
from .identity import ConfigFileSessionProvider, SessionInfo, SessionProvider

# Local stores
from .local import FileLocalStore, LocalStore, MemoryLocalStore

# Logging
from .logging_utils import configure_structured_logging

# Remote stores
from .remote import (
    CosmosAuthMethod,
    CosmosRemoteConfig,
    CosmosRemoteStore,
    InMemoryRemoteStore,
    RemoteRecord,
    RemoteStore,
)
from .retention import HistoryOutcome, HistoryRetentionPolicy
from .snapshot import SnapshotCodec, SnapshotSummary

# Sync engine
from .sync import (
    BackupResult,
    BackupScheduler,
    HydrationReason,
    HydrationResult,
    ObservedLocalStore,
    RestoreResult,
    SchedulerState,
    SessionBoundaryFlush,
    SessionStartResult,
    SyncRuntime,
    pull_unless_active,
    pull_when_empty,
)

__all__ = [
    # Runtime
    "SyncRuntime",
    "SessionStartResult",
    "SyncConfig",
    # Components
    "BackupScheduler",
    "SchedulerState",
    "BackupResult",
    "RestoreResult",
    "HydrationResult",
    "HydrationReason",
    "pull_when_empty",
    "pull_unless_active",
    "ObservedLocalStore",
    "SessionBoundaryFlush",
    "SnapshotCodec",
    "SnapshotSummary",
    "HistoryRetentionPolicy",
    "HistoryOutcome",
    # Stores
    "LocalStore",
    "MemoryLocalStore",
    "FileLocalStore",
    "RemoteStore",
    "RemoteRecord",
    "InMemoryRemoteStore",
    "CosmosRemoteStore",
    "CosmosRemoteConfig",
    "CosmosAuthMethod",
    # Identity
    "SessionProvider",
    "SessionInfo",
    "ConfigFileSessionProvider",
    # Logging
    "configure_structured_logging",
    # Exceptions
    "SyncStorageError",
    "RemoteError",
    "HydrationError",
    "HistoryError",
    "CloudDataMissingError",
    "StorageIOError",
    "ValidationError",
    "AuthenticationError",
    "AuthenticationRequiredError",
]

__version__ = "0.1.0"
