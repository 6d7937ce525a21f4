"""
Offline client facade
Optimistic create/update/delete with a local write and a queued request in one transaction
"""

import logging
import re
import uuid
from typing import Any, Optional

import httpx

from ..config import API_PREFIX, OFFLINE_DATABASE_URL, WS_URL
from ..services.realtime_service import build_change_message
from .cache import QueryCache
from .channel import RealtimeChannel, invalidation_keys
from .engine import SyncEngine
from .errors import TransientSyncError
from .network import ConnectivityProbe, NetworkStatus
from .queue import PendingOperationQueue
from .store import LocalStore, clean_payload
from .submission import SubmissionState

logger = logging.getLogger(__name__)

PATH_PATTERN = re.compile(rf"^{re.escape(API_PREFIX)}/(?P<table>[a-z]+)(?:/(?P<id>-?\d+))?/?$")


class OfflineClient:
    """
    Entry point for reads and writes that must survive being offline.

    Writes are applied to the local store immediately and queued for the API.
    When the network is up the queue is drained before the write returns;
    otherwise the operation waits for the next reconnect.
    """

    def __init__(
        self,
        store: LocalStore,
        queue: PendingOperationQueue,
        network: NetworkStatus,
        engine: SyncEngine,
        cache: Optional[QueryCache] = None,
        channel: Optional[RealtimeChannel] = None,
        probe: Optional[ConnectivityProbe] = None,
        submission: Optional[SubmissionState] = None,
    ):
        self.store = store
        self.queue = queue
        self.network = network
        self.engine = engine
        self.cache = cache or QueryCache()
        self.channel = channel
        self.probe = probe
        self.submission = submission or SubmissionState()
        self._unsubscribe_queue = self.queue.subscribe(self.network.set_pending_count)
        self.network.set_pending_count(self.queue.count())

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create(self, table: str, payload: dict) -> dict:
        handle = self.store.get_table_by_name(table)
        sync_id = payload.get("sync_id") or str(uuid.uuid4())
        body = {**clean_payload(payload), "sync_id": sync_id}

        async with self.submission:
            with self.store.transaction() as db:
                temp_id = handle.add(body, sync_id=sync_id, session=db)
                self.queue.enqueue(
                    f"{API_PREFIX}/{handle.name}",
                    "POST",
                    "create",
                    handle.name,
                    temp_id,
                    body=body,
                    resource_sync_id=sync_id,
                    session=db,
                )
            self.queue.notify_changed()
            self._invalidate_queries(handle.name, handle.get(temp_id))
            logger.info(f"💾 Saved new {handle.model.entity_type} locally with temporary id {temp_id}")
            await self._sync_now()

        return handle.find_by_sync_id(sync_id)

    async def update(self, table: str, record_id: int, changes: dict) -> dict:
        handle = self.store.get_table_by_name(table)
        body = clean_payload(changes)

        async with self.submission:
            with self.store.transaction() as db:
                record = handle.update(record_id, body, session=db)
                self.queue.enqueue(
                    f"{API_PREFIX}/{handle.name}/{record_id}",
                    "PUT",
                    "update",
                    handle.name,
                    record_id,
                    body=body,
                    resource_sync_id=record.get("sync_id"),
                    session=db,
                )
            self.queue.notify_changed()
            self._invalidate_queries(handle.name, record)
            await self._sync_now()

        return self._current(handle, record_id, record.get("sync_id"))

    async def delete(self, table: str, record_id: int) -> dict:
        """Remove the record locally and queue the DELETE; returns the removed record"""
        handle = self.store.get_table_by_name(table)

        async with self.submission:
            with self.store.transaction() as db:
                record = handle.delete(record_id, session=db)
                self.queue.enqueue(
                    f"{API_PREFIX}/{handle.name}/{record_id}",
                    "DELETE",
                    "delete",
                    handle.name,
                    record_id,
                    resource_sync_id=record.get("sync_id"),
                    session=db,
                )
            self.queue.notify_changed()
            self._invalidate_queries(handle.name, record)
            await self._sync_now()

        return record

    def _invalidate_queries(self, table: str, record: Optional[dict]):
        """Drop cached reads that the local write just made stale"""
        if record is None:
            return
        for key in invalidation_keys(build_change_message(table, "UPDATED", record)):
            self.cache.invalidate(key)

    async def _sync_now(self):
        if not self.network.is_online:
            logger.info("📴 Offline, operation queued for later")
            return
        await self.engine.drain()

    @staticmethod
    def _current(handle, record_id: int, sync_id: Optional[str]) -> Optional[dict]:
        # The id may have been reconciled by the drain that just ran
        if sync_id:
            record = handle.find_by_sync_id(sync_id)
            if record is not None:
                return record
        return handle.get(record_id)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, table: str, record_id: int) -> Optional[dict]:
        return self.store.get_table_by_name(table).get(record_id)

    def list(self, table: str) -> list[dict]:
        return self.store.get_table_by_name(table).all()

    async def fetch(self, path: str) -> Any:
        """
        Read an API path through the query cache.

        Offline, or when the request fails, table paths (/api/services,
        /api/services/7) are answered from the local store.
        """
        cached = self.cache.get(path)
        if cached is not None:
            return cached

        if self.network.is_online:
            try:
                response = await self.engine.client.get(path)
                response.raise_for_status()
                data = response.json()
                self.cache.set(path, data)
                return data
            except httpx.HTTPError as e:
                logger.warning(f"⚠️ Fetch {path} failed, using local data: {e}")

        local = self._local_read(path)
        if local is None:
            raise TransientSyncError(f"{path} is not available offline")
        return local

    def _local_read(self, path: str):
        match = PATH_PATTERN.match(path)
        if match is None or match.group("table") not in self.store.table_names:
            return None
        handle = self.store.get_table_by_name(match.group("table"))
        if match.group("id") is None:
            return handle.all()
        return handle.get(int(match.group("id")))

    async def refresh(self, *tables: str) -> int:
        """Pull server copies of the given tables (all of them by default)"""
        total = 0
        for table in tables or self.store.table_names:
            total += await self.engine.pull(table)
        return total

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self):
        """Start the connectivity probe, periodic sync and realtime channel"""
        self.engine.attach()
        if self.probe is not None:
            self.probe.start()
        self.engine.start_periodic()
        if self.channel is not None:
            self.channel.start()
        if self.network.is_online:
            self.engine.trigger()

    async def aclose(self):
        self._unsubscribe_queue()
        if self.channel is not None:
            await self.channel.stop()
        if self.probe is not None:
            await self.probe.stop()
        await self.engine.aclose()
        self.store.close()


def build_offline_client(
    database_url: str = OFFLINE_DATABASE_URL,
    http_client: Optional[httpx.AsyncClient] = None,
    ws_url: Optional[str] = WS_URL,
    is_online: bool = True,
) -> OfflineClient:
    """Wire the store, queue, network monitor, sync engine and realtime channel together"""
    store = LocalStore(database_url)
    queue = PendingOperationQueue(store)
    network = NetworkStatus(is_online=is_online)
    engine = SyncEngine(store, queue, network, http_client=http_client)
    cache = QueryCache()
    channel = RealtimeChannel(ws_url, cache=cache) if ws_url else None
    probe = ConnectivityProbe(network, http_client=http_client)
    return OfflineClient(store, queue, network, engine, cache=cache, channel=channel, probe=probe)
