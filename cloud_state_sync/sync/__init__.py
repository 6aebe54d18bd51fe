"""
Sync engine for local/cloud state.

Components:
- BackupScheduler: debounced, coalesced remote writes
- HydrationController: guarded pull of the cloud snapshot
- ObservedLocalStore: reports tracked-key mutations
- SessionBoundaryFlush: immediate writes on page leave
- SyncRuntime: wires the above together for one signed-in user
"""

from .backup import BackupResult, BackupService, RestoreResult
from .cursor import SyncCursor
from .flush import SessionBoundaryFlush
from .hydration import (
    HydrationController,
    HydrationGuard,
    HydrationReason,
    HydrationResult,
    pull_unless_active,
    pull_when_empty,
)
from .interception import ObservedLocalStore
from .runtime import SessionStartResult, SyncRuntime
from .scheduler import BackupScheduler, SchedulerState

__all__ = [
    "BackupResult",
    "BackupService",
    "RestoreResult",
    "SyncCursor",
    "SessionBoundaryFlush",
    "HydrationController",
    "HydrationGuard",
    "HydrationReason",
    "HydrationResult",
    "pull_unless_active",
    "pull_when_empty",
    "ObservedLocalStore",
    "SessionStartResult",
    "SyncRuntime",
    "BackupScheduler",
    "SchedulerState",
]
