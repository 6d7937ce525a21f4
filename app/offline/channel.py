"""
Realtime notification channel
WebSocket client that listens for entity change events and invalidates cached queries
"""

import asyncio
import json
import logging
import random
from collections import defaultdict
from typing import Any, Awaitable, Callable, Optional, Union

import websockets
from websockets.exceptions import WebSocketException
from pydantic import BaseModel, ValidationError

from ..config import (
    API_PREFIX,
    WS_MAX_RECONNECT_ATTEMPTS,
    WS_RECONNECT_BASE_DELAY,
    WS_RECONNECT_MAX_DELAY,
    WS_URL,
)
from ..services.realtime_service import ENTITY_DATA_KEY, ENTITY_EVENT_PREFIX, utc_timestamp
from .backoff import backoff_delay
from .cache import QueryCache

logger = logging.getLogger(__name__)

# Sentinel returned by invalidation_keys when every cached query is stale
INVALIDATE_ALL = "*"

CONNECTION_EVENTS = ("connection_open", "connection_error", "connection_close")

# Tables whose changes move the dashboard numbers
DASHBOARD_TABLES = ("services", "clients")

EVENT_TABLES = {prefix: table for table, prefix in ENTITY_EVENT_PREFIX.items()}


class RealtimeMessage(BaseModel):
    type: str
    data: Optional[Any] = None
    message: Optional[str] = None
    timestamp: Optional[str] = None

    class Config:
        extra = "allow"


def invalidation_keys(message: Union[RealtimeMessage, dict]) -> list[str]:
    """
    Cache keys made stale by a change event.

    SERVICE_UPDATED for service 7 of client 3 invalidates /api/services,
    /api/services/7, /api/clients/3, /api/clients/3/services and the
    dashboard stats. REFRESH_COMMAND invalidates everything.
    """
    if isinstance(message, dict):
        message = RealtimeMessage.model_validate(message)

    if message.type == "REFRESH_COMMAND":
        return [INVALIDATE_ALL]

    prefix, _, action = message.type.rpartition("_")
    table = EVENT_TABLES.get(prefix)
    if table is None or action not in ("CREATED", "UPDATED", "DELETED"):
        return []

    data = message.data if isinstance(message.data, dict) else {}
    key = ENTITY_DATA_KEY[table]
    keys = [f"{API_PREFIX}/{table}"]

    if action == "DELETED":
        record_id = data.get(f"{key}Id")
        if record_id is not None:
            keys.append(f"{API_PREFIX}/{table}/{record_id}")
    else:
        record = data.get(key) or {}
        if record.get("id") is not None:
            keys.append(f"{API_PREFIX}/{table}/{record['id']}")
        client_id = record.get("client_id")
        if client_id is not None and table != "clients":
            keys.append(f"{API_PREFIX}/clients/{client_id}")
            keys.append(f"{API_PREFIX}/clients/{client_id}/{table}")

    if table in DASHBOARD_TABLES:
        keys.append(f"{API_PREFIX}/dashboard/stats")
    return keys


class RealtimeChannel:
    """
    One WebSocket connection with bounded reconnect.

    After a drop the channel waits backoff_delay(attempt) and reconnects, giving
    up quietly after max_attempts consecutive failures. A successful connection
    resets the counter. Messages sent while disconnected are never replayed.
    """

    def __init__(
        self,
        url: str = WS_URL,
        cache: Optional[QueryCache] = None,
        connect: Optional[Callable[[str], Any]] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        max_attempts: int = WS_MAX_RECONNECT_ATTEMPTS,
        base_delay: float = WS_RECONNECT_BASE_DELAY,
        max_delay: float = WS_RECONNECT_MAX_DELAY,
        rand: Callable[[], float] = random.random,
    ):
        self.url = url
        self.cache = cache
        self._connect = connect or websockets.connect
        self._sleep = sleep
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self._rand = rand
        self.reconnect_attempts = 0
        self.client_id: Optional[int] = None
        self._ws = None
        self._stopped = False
        self._task: Optional[asyncio.Task] = None
        self._listeners: dict[str, list[Callable[[Any], None]]] = defaultdict(list)

    @property
    def is_connected(self) -> bool:
        return self._ws is not None

    def add_listener(self, event_type: str, callback: Callable[[Any], None]) -> Callable[[], None]:
        """Register callback for a message type or connection event; returns a remover"""
        self._listeners[event_type].append(callback)

        def remove():
            if callback in self._listeners[event_type]:
                self._listeners[event_type].remove(callback)

        return remove

    def _emit(self, event_type: str, data: Any = None):
        for callback in list(self._listeners.get(event_type, ())):
            try:
                callback(data)
            except Exception as e:
                logger.error(f"❌ Listener for {event_type} failed: {e}")

    async def run(self):
        """Connect and process messages until stopped or out of reconnect attempts"""
        self._stopped = False
        while not self._stopped:
            try:
                async with self._connect(self.url) as ws:
                    self._ws = ws
                    self.reconnect_attempts = 0
                    logger.info(f"🔌 Realtime channel connected to {self.url}")
                    self._emit("connection_open")
                    async for raw in ws:
                        self.handle_raw(raw)
            except (OSError, asyncio.TimeoutError, WebSocketException) as e:
                logger.error(f"❌ Realtime channel error: {e}")
                self._emit("connection_error", e)
            finally:
                self._ws = None

            if self._stopped:
                break
            self._emit("connection_close")

            if self.reconnect_attempts >= self.max_attempts:
                logger.warning(f"⚠️ Realtime channel gave up after {self.max_attempts} reconnect attempts")
                break
            self.reconnect_attempts += 1
            delay = backoff_delay(self.reconnect_attempts, self.base_delay, self.max_delay, self._rand)
            logger.info(
                f"🔄 Reconnecting in {delay:.1f}s ({self.reconnect_attempts}/{self.max_attempts})"
            )
            await self._sleep(delay)

    def handle_raw(self, raw: Union[str, bytes]):
        try:
            message = RealtimeMessage.model_validate(json.loads(raw))
        except (ValueError, ValidationError) as e:
            logger.error(f"❌ Invalid realtime message: {e}")
            return

        if message.type == "CONNECTION_ESTABLISHED":
            self.client_id = getattr(message, "clientId", None)

        if self.cache is not None:
            keys = invalidation_keys(message)
            if INVALIDATE_ALL in keys:
                self.cache.invalidate_all()
            else:
                for key in keys:
                    self.cache.invalidate(key)

        self._emit(message.type, message.data)

    async def send_message(self, message_type: str, data: Any = None) -> bool:
        if self._ws is None:
            logger.error(f"❌ Realtime channel not connected, cannot send {message_type}")
            return False
        payload = {"type": message_type, "data": data, "timestamp": utc_timestamp()}
        await self._ws.send(json.dumps(payload))
        return True

    def start(self) -> asyncio.Task:
        if self._task is None or self._task.done():
            self._task = asyncio.get_running_loop().create_task(self.run())
        return self._task

    async def stop(self):
        self._stopped = True
        if self._ws is not None:
            await self._ws.close()
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
