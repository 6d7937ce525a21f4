"""Exceptions raised by the offline store, queue and sync engine"""

from typing import Optional


class OfflineError(Exception):
    """Base exception for offline operations."""


class LocalStoreError(OfflineError):
    """The local database could not be read or written (quota, corruption, locked file)."""


class UnknownTableError(OfflineError):
    """No local table with that name."""


class RecordNotFoundError(OfflineError):
    """No local record with that id."""

    def __init__(self, table: str, record_id: int):
        super().__init__(f"Record {record_id} not found in table {table}")
        self.table = table
        self.record_id = record_id


class LocalSchemaOutdatedError(OfflineError):
    """The local database was created by another schema version and must be rebuilt."""

    def __init__(self, found: Optional[int], expected: int):
        super().__init__(f"Local database schema version {found} does not match {expected}; rebuild required")
        self.found = found
        self.expected = expected


class UnsyncedDataError(OfflineError):
    """Rebuilding or clearing the local database would lose queued operations."""

    def __init__(self, pending: int):
        super().__init__(
            f"{pending} operation(s) have not been synced and would be lost; "
            "pass confirm_data_loss=True to continue"
        )
        self.pending = pending


class SyncError(OfflineError):
    """Base exception for sync failures."""


class TransientSyncError(SyncError):
    """Network failure, timeout or server error; the operation stays queued."""


class PermanentSyncError(SyncError):
    """The server rejected the operation; retrying it unchanged cannot succeed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
