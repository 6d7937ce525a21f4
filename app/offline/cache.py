"""
In-memory query cache for API reads
Keys are request paths (/api/services/7); realtime events invalidate them
"""
import logging
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class QueryCache:
    """Path-keyed cache of fetched API results"""

    def __init__(self):
        self._entries: dict[str, Any] = {}
        self._listeners: list[Callable[[list[str]], None]] = []

    def get(self, key: str) -> Optional[Any]:
        """Get value from cache"""
        if key in self._entries:
            logger.debug(f"✅ Cache HIT: {key}")
            return self._entries[key]
        logger.debug(f"❌ Cache MISS: {key}")
        return None

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def set(self, key: str, value: Any):
        self._entries[key] = value
        logger.debug(f"✅ Cache SET: {key}")

    def invalidate(self, key: str) -> int:
        """Drop key and every key below it (/api/clients/3 also drops /api/clients/3/services)"""
        prefix = key.rstrip("/") + "/"
        stale = [k for k in self._entries if k == key or k.startswith(prefix)]
        for k in stale:
            del self._entries[k]
        if stale:
            logger.debug(f"✅ Cache INVALIDATE: {key} ({len(stale)} keys)")
        self._notify([key])
        return len(stale)

    def invalidate_all(self) -> int:
        keys = list(self._entries)
        self._entries.clear()
        logger.debug(f"✅ Cache INVALIDATE ALL ({len(keys)} keys)")
        self._notify(keys)
        return len(keys)

    def subscribe(self, listener: Callable[[list[str]], None]) -> Callable[[], None]:
        """Listener receives the invalidated keys, e.g. to refetch visible queries"""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, keys: list[str]):
        for listener in list(self._listeners):
            try:
                listener(keys)
            except Exception as e:
                logger.error(f"❌ Cache listener error: {e}")
