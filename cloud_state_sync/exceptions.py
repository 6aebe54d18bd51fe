"""
Custom exceptions for cloud state sync.

All components raise these exceptions so callers can tell
remote failures apart from local ones.
"""


class SyncStorageError(Exception):
    """Base exception for all cloud state sync errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class RemoteError(SyncStorageError):
    """Raised when a remote store call fails (transport, auth or query)."""

    def __init__(self, operation: str, cause: Exception | None = None):
        details = {"operation": operation}
        if cause:
            details["cause"] = str(cause)
        message = f"Remote store error during {operation}"
        if cause:
            message += f": {cause}"
        super().__init__(message, details)
        self.operation = operation
        self.cause = cause


class HydrationError(SyncStorageError):
    """Raised when the remote snapshot cannot be read during hydration."""

    def __init__(self, reason: str, cause: Exception | None = None):
        details = {"reason": reason}
        if cause:
            details["cause"] = str(cause)
        super().__init__(f"Hydration failed: {reason}", details)
        self.reason = reason
        self.cause = cause


class HistoryError(SyncStorageError):
    """Raised when a history snapshot cannot be written or pruned.

    Never escapes the retention policy.
    """

    def __init__(self, operation: str, cause: Exception | None = None):
        details = {"operation": operation}
        if cause:
            details["cause"] = str(cause)
        super().__init__(f"History {operation} failed", details)
        self.operation = operation
        self.cause = cause


class CloudDataMissingError(SyncStorageError):
    """Raised by an explicit restore when no remote snapshot exists."""

    def __init__(self, key: str, user_id: str | None = None):
        details = {"key": key}
        if user_id:
            details["user_id"] = user_id
        super().__init__(f"No cloud backup found for {key}", details)
        self.key = key
        self.user_id = user_id


class StorageIOError(SyncStorageError):
    """Raised when a local storage I/O operation fails."""

    def __init__(self, operation: str, path: str | None = None, cause: Exception | None = None):
        details = {"operation": operation}
        if path:
            details["path"] = path
        if cause:
            details["cause"] = str(cause)
        message = f"Storage I/O error during {operation}"
        if path:
            message += f": {path}"
        super().__init__(message, details)
        self.operation = operation
        self.path = path
        self.cause = cause


class ValidationError(SyncStorageError):
    """Raised when configuration validation fails."""

    def __init__(self, field: str, reason: str, value: str | None = None):
        details = {"field": field, "reason": reason}
        if value is not None:
            details["value"] = value
        super().__init__(f"Validation failed for {field}: {reason}", details)
        self.field = field
        self.reason = reason
        self.value = value


class AuthenticationError(SyncStorageError):
    """Raised when authentication to the remote store fails."""

    def __init__(self, endpoint: str, reason: str | None = None):
        details = {"endpoint": endpoint}
        if reason:
            details["reason"] = reason
        super().__init__(f"Authentication failed for {endpoint}", details)
        self.endpoint = endpoint
        self.reason = reason


class AuthenticationRequiredError(SyncStorageError):
    """Raised when an operation needs an authenticated user but none is bound."""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)
