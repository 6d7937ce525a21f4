"""
Network status monitor and connectivity probe
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Optional

import httpx

from ..config import API_BASE_URL, API_PREFIX, CONNECTIVITY_CHECK_INTERVAL, CONNECTIVITY_CHECK_TIMEOUT

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NetworkSnapshot:
    is_online: bool
    is_syncing: bool
    pending_count: int


class NetworkStatus:
    """
    Online/syncing/pending state shared by the sync engine and its callers.

    Listeners run synchronously in registration order and only when a value
    actually changes. A failing listener is logged and the rest still run.
    """

    def __init__(self, is_online: bool = True):
        self._is_online = is_online
        self._is_syncing = False
        self._pending_count = 0
        self._listeners: list[Callable[[NetworkSnapshot], None]] = []
        self._reconnect_callbacks: list[Callable[[], None]] = []

    @property
    def is_online(self) -> bool:
        return self._is_online

    @property
    def is_syncing(self) -> bool:
        return self._is_syncing

    @property
    def pending_count(self) -> int:
        return self._pending_count

    def snapshot(self) -> NetworkSnapshot:
        return NetworkSnapshot(self._is_online, self._is_syncing, self._pending_count)

    def subscribe(self, listener: Callable[[NetworkSnapshot], None]) -> Callable[[], None]:
        self._listeners.append(listener)
        return lambda: self._remove(self._listeners, listener)

    def on_reconnect(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Run callback on every offline -> online transition"""
        self._reconnect_callbacks.append(callback)
        return lambda: self._remove(self._reconnect_callbacks, callback)

    def set_online(self, online: bool):
        if online == self._is_online:
            return
        self._is_online = online
        if online:
            logger.info("🌐 Connection restored")
        else:
            logger.warning("📴 Connection lost, working offline")
        self._notify()
        if online:
            for callback in list(self._reconnect_callbacks):
                try:
                    callback()
                except Exception as e:
                    logger.error(f"❌ Reconnect callback failed: {e}")

    def set_syncing(self, syncing: bool):
        if syncing == self._is_syncing:
            return
        self._is_syncing = syncing
        self._notify()

    def set_pending_count(self, count: int):
        if count == self._pending_count:
            return
        self._pending_count = count
        self._notify()

    def _notify(self):
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception as e:
                logger.error(f"❌ Network status listener failed: {e}")

    @staticmethod
    def _remove(items: list, item):
        if item in items:
            items.remove(item)


class ConnectivityProbe:
    """Polls the API health endpoint and feeds the result into a NetworkStatus"""

    def __init__(
        self,
        network: NetworkStatus,
        http_client: Optional[httpx.AsyncClient] = None,
        url: str = f"{API_BASE_URL}{API_PREFIX}/health",
        interval: float = CONNECTIVITY_CHECK_INTERVAL,
        timeout: float = CONNECTIVITY_CHECK_TIMEOUT,
    ):
        self.network = network
        self.url = url
        self.interval = interval
        self.timeout = timeout
        self._client = http_client
        self._owns_client = http_client is None
        self._task: Optional[asyncio.Task] = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def check(self) -> bool:
        try:
            response = await self._get_client().get(self.url, timeout=self.timeout)
            online = response.status_code < 500
        except httpx.HTTPError as e:
            logger.debug(f"Connectivity check failed: {e}")
            online = False
        self.network.set_online(online)
        return online

    async def run(self):
        while True:
            await self.check()
            await asyncio.sleep(self.interval)

    def start(self) -> asyncio.Task:
        if self._task is None or self._task.done():
            self._task = asyncio.get_running_loop().create_task(self.run())
        return self._task

    async def stop(self):
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None
