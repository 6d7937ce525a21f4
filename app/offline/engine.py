"""
Sync engine
Replays queued operations against the API and reconciles temporary ids
"""

import asyncio
import logging
from typing import Optional

import httpx

from ..config import (
    API_BASE_URL,
    API_PREFIX,
    API_SESSION_COOKIE,
    API_SESSION_COOKIE_NAME,
    SYNC_INTERVAL_SECONDS,
    SYNC_REQUEST_TIMEOUT,
)
from .errors import LocalStoreError, PermanentSyncError, TransientSyncError
from .network import NetworkStatus
from .queue import DrainResult, PendingOperation, PendingOperationQueue
from .store import LocalStore

logger = logging.getLogger(__name__)

# 4xx statuses that may succeed later without changing the request
RETRYABLE_STATUS_CODES = {401, 408, 429}


def classify_response(method: str, status_code: int) -> Optional[str]:
    """Return None for success, "transient" or "permanent" for failures"""
    if 200 <= status_code < 300:
        return None
    if method == "DELETE" and status_code == 404:
        return None
    if status_code >= 500 or status_code in RETRYABLE_STATUS_CODES:
        return "transient"
    if 400 <= status_code < 500:
        return "permanent"
    return "transient"


def _error_detail(response: httpx.Response) -> str:
    try:
        detail = response.json().get("detail")
    except (ValueError, AttributeError):
        detail = None
    return str(detail) if detail else response.text[:200]


class SyncEngine:
    """
    Drains the pending operation queue against the remote API.

    Only one drain runs at a time. trigger() keeps at most one scheduled drain,
    so reconnect, timer and manual triggers arriving together run it once.
    """

    def __init__(
        self,
        store: LocalStore,
        queue: PendingOperationQueue,
        network: NetworkStatus,
        http_client: Optional[httpx.AsyncClient] = None,
        base_url: str = API_BASE_URL,
        timeout: float = SYNC_REQUEST_TIMEOUT,
    ):
        self.store = store
        self.queue = queue
        self.network = network
        self._owns_client = http_client is None
        if http_client is None:
            cookies = {API_SESSION_COOKIE_NAME: API_SESSION_COOKIE} if API_SESSION_COOKIE else None
            http_client = httpx.AsyncClient(base_url=base_url, timeout=timeout, cookies=cookies)
        self.client = http_client
        self.timeout = timeout
        self._busy = False
        self._task: Optional[asyncio.Task] = None
        self._periodic_task: Optional[asyncio.Task] = None
        self._detach = None

    @property
    def is_draining(self) -> bool:
        return self._busy

    def attach(self):
        """Drain automatically whenever the network comes back"""
        if self._detach is None:
            self._detach = self.network.on_reconnect(self.trigger)
        return self._detach

    def trigger(self) -> Optional[asyncio.Task]:
        """Schedule a drain unless one is already scheduled or running"""
        if self._busy or (self._task is not None and not self._task.done()):
            logger.debug("Drain already scheduled, trigger ignored")
            return None
        self._task = asyncio.get_running_loop().create_task(self.drain())
        return self._task

    async def drain(self) -> Optional[DrainResult]:
        if self._busy:
            logger.debug("Drain already running")
            return None
        if not self.network.is_online:
            logger.info("📴 Offline, sync deferred")
            return None

        self._busy = True
        self.network.set_syncing(True)
        try:
            result = await self.queue.drain(self.send)
            if result.sent or result.failed or result.aborted:
                logger.info(
                    f"🔄 Sync finished: {result.sent} sent, {result.failed} failed, "
                    f"{result.remaining} remaining{' (aborted)' if result.aborted else ''}"
                )
            return result
        finally:
            self._busy = False
            self.network.set_syncing(False)
            self._publish_pending_count()

    def _publish_pending_count(self):
        try:
            self.network.set_pending_count(self.queue.count())
        except LocalStoreError as e:
            logger.error(f"❌ Could not read pending operation count: {e}")

    async def send(self, op: PendingOperation) -> dict:
        """Send one operation; raises TransientSyncError or PermanentSyncError on failure"""
        try:
            response = await self.client.request(op.method, op.url, json=op.body, timeout=self.timeout)
        except httpx.TimeoutException as e:
            raise TransientSyncError(f"Timed out sending {op.method} {op.url}") from e
        except httpx.HTTPError as e:
            raise TransientSyncError(f"Network error sending {op.method} {op.url}: {e}") from e

        outcome = classify_response(op.method, response.status_code)
        if outcome == "transient":
            raise TransientSyncError(f"HTTP {response.status_code} from {op.method} {op.url}")
        if outcome == "permanent":
            raise PermanentSyncError(
                f"HTTP {response.status_code}: {_error_detail(response)}", status_code=response.status_code
            )

        data = self._json(response)
        if op.operation_type == "create":
            server_id = data.get("id")
            if not isinstance(server_id, int):
                raise PermanentSyncError("Create response did not include an id", status_code=response.status_code)
            self.store.reconcile_id(op.table_name, op.resource_id, server_id, data, operation_id=op.id)
        elif op.operation_type == "update" and data.get("id") is not None:
            self.store.apply_server_payload(op.table_name, op.resource_id, data, operation_id=op.id)

        logger.debug(f"✅ {op.method} {op.url} -> {response.status_code}")
        return data

    @staticmethod
    def _json(response: httpx.Response) -> dict:
        if response.status_code == 204 or not response.content:
            return {}
        try:
            data = response.json()
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}

    async def pull(self, table: str) -> int:
        """Fetch a full table from the API into the local store"""
        name = self.store.get_table_by_name(table).name
        url = f"{API_PREFIX}/{name}"
        try:
            response = await self.client.get(url, timeout=self.timeout)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise TransientSyncError(f"Failed to pull {name}: {e}") from e
        return self.store.put_confirmed(name, response.json(), prune=True)

    async def run_periodic(self, interval: float = SYNC_INTERVAL_SECONDS):
        while True:
            await asyncio.sleep(interval)
            self.trigger()

    def start_periodic(self, interval: float = SYNC_INTERVAL_SECONDS) -> asyncio.Task:
        if self._periodic_task is None or self._periodic_task.done():
            self._periodic_task = asyncio.get_running_loop().create_task(self.run_periodic(interval))
        return self._periodic_task

    async def aclose(self):
        if self._detach is not None:
            self._detach()
            self._detach = None
        for task in (self._periodic_task, self._task):
            if task is not None and not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        if self._owns_client:
            await self.client.aclose()
