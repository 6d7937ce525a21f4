"""
Offline mode - local durable store, pending operation queue and sync protocol

Writes made through OfflineClient land in the local SQLite store first and are
queued as API requests. SyncEngine replays the queue in order once the network
is back, swapping temporary negative ids for the ids the server assigns.
RealtimeChannel listens on /ws and invalidates cached queries on change events.
"""

from .cache import QueryCache
from .channel import RealtimeChannel, RealtimeMessage, invalidation_keys
from .client import OfflineClient, build_offline_client
from .engine import SyncEngine
from .errors import (
    LocalSchemaOutdatedError,
    LocalStoreError,
    OfflineError,
    PermanentSyncError,
    RecordNotFoundError,
    SyncError,
    TransientSyncError,
    UnknownTableError,
    UnsyncedDataError,
)
from .network import ConnectivityProbe, NetworkStatus
from .queue import DrainResult, PendingOperation, PendingOperationQueue
from .store import LocalStore
from .submission import SubmissionState

__all__ = [
    "ConnectivityProbe",
    "DrainResult",
    "LocalSchemaOutdatedError",
    "LocalStore",
    "LocalStoreError",
    "NetworkStatus",
    "OfflineClient",
    "OfflineError",
    "PendingOperation",
    "PendingOperationQueue",
    "PermanentSyncError",
    "QueryCache",
    "RealtimeChannel",
    "RealtimeMessage",
    "RecordNotFoundError",
    "SubmissionState",
    "SyncEngine",
    "SyncError",
    "TransientSyncError",
    "UnknownTableError",
    "UnsyncedDataError",
    "build_offline_client",
    "invalidation_keys",
]
