"""Key-value store interface used by :class:`~qbrest.cache.ResponseCache`.

:class:`diskcache.Cache` already satisfies :class:`KeyValueStore`, so it is
used as-is for the persistent cache. :class:`MemoryStore` is a plain
dictionary-backed implementation for single-process use and tests.
"""

from __future__ import annotations

import threading
from typing import Any, Optional, Protocol


class KeyValueStore(Protocol):
    """Minimal structured-value store.

    Implementations may raise on any call; :class:`~qbrest.cache.ResponseCache`
    turns read and write failures into cache misses.
    """

    def get(self, key: str, default: Optional[Any] = None) -> Any: ...

    def set(self, key: str, value: Any) -> Any: ...

    def delete(self, key: str) -> Any: ...

    def clear(self) -> Any: ...


class MemoryStore:
    """Thread-safe in-memory :class:`KeyValueStore`.

    Store calls are made from worker threads by the response cache, so all
    access goes through a lock.
    """

    def __init__(self) -> None:
        self._data: dict[str, Any] = {}
        self._lock = threading.Lock()

    def get(self, key: str, default: Optional[Any] = None) -> Any:
        with self._lock:
            return self._data.get(key, default)

    def set(self, key: str, value: Any) -> bool:
        with self._lock:
            self._data[key] = value
        return True

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._data.pop(key, None) is not None

    def clear(self) -> int:
        with self._lock:
            count = len(self._data)
            self._data.clear()
        return count

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)
