"""
Exceptions raised by the collaborator layer.

The parsing/reconciliation core never raises for bad input: malformed
tickets become defaults or rejections. These exceptions cover the parts that
can genuinely fail a run (configuration, the ticket source, the store).
"""


class StatusSyncError(Exception):
    """Base exception for a failed sync run."""


class ConfigurationError(StatusSyncError):
    """Raised when configuration is invalid or missing."""


class SourceError(StatusSyncError):
    """Raised when the ticket source cannot be read."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class StoreError(StatusSyncError):
    """Raised when the persisted document cannot be read or written."""
