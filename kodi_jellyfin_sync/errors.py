"""Errors raised by the sync job."""

from typing import Any


class SyncError(Exception):
    """Base exception for the sync job. Don't raise directly."""

    def __init__(self, message: str, *args: Any) -> None:
        super().__init__(message, *args)
        self.message = message


class ConfigurationError(SyncError):
    """Required configuration is missing or malformed.

    Raised at startup, before any store connection is attempted.
    """

    pass


class StoreUnavailable(SyncError):
    """Connection or query failure against the Kodi or Jellyfin database."""

    def __init__(self, store: str, message: str) -> None:
        super().__init__(f"{store} store unavailable: {message}")
        self.store = store


class RecordSyncFailed(SyncError):
    """A store error aborted the run while processing a single record."""

    def __init__(self, file_path: str, cause: Exception) -> None:
        super().__init__(f"Failed to sync {file_path!r}: {cause}")
        self.file_path = file_path


class InvalidIdentifierLength(SyncError, ValueError):
    """An identifier was not exactly 16 bytes."""

    def __init__(self, length: int) -> None:
        super().__init__(f"Identifier must be 16 bytes, got {length}")
        self.length = length
