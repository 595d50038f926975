"""TTL'd cache of raw QuickBase query responses.

Entries are :class:`~qbrest.models.CacheRecord` dicts stored in a
:class:`~qbrest.cache.store.KeyValueStore`. Staleness is decided only when
an entry is read: a record is served while ``now < expires_at`` and treated
as absent afterwards. There is no background sweep.

Cache keys are SHA-256 hashes of ``realm|table|query-shape`` where the
query shape is the JSON of ``fields``, ``where``, ``sort`` and ``options``.
Field order is significant; mapping keys inside ``sort``/``options`` are
sorted so that logically identical options always hash the same.

Store failures never fail a query. A failed read is a miss and a failed
write is skipped; both are logged at WARNING.
"""

from __future__ import annotations

import asyncio
import hashlib
import json
import logging
import time
from pathlib import Path
from typing import Any, Callable, Optional, Sequence

import diskcache
from pydantic import ValidationError

from qbrest.cache.store import KeyValueStore
from qbrest.models import CacheRecord

logger = logging.getLogger(__name__)


class ResponseCache:
    """Stores raw query payloads with a per-entry time-to-live.

    Store calls run in a worker thread via :func:`asyncio.to_thread` so a
    disk-backed store never blocks the event loop.

    Args:
        store: Backing key-value store.
        clock: Wall-clock time source in epoch seconds. Defaults to
            :func:`time.time`.

    Example::

        cache = ResponseCache.open(get_cache_dir())
        key = ResponseCache.compute_key("acme.quickbase.com", "bqxyz123", [3, 6], "{6.EX.'Bob'}")
        await cache.store(key, payload, ttl_seconds=300)
        hit = await cache.lookup(key)
    """

    def __init__(
        self,
        store: KeyValueStore,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._clock = clock

    @classmethod
    def open(cls, cache_dir: str | Path) -> ResponseCache:
        """Create a cache persisted by :mod:`diskcache` under ``<cache_dir>/responses``."""
        return cls(diskcache.Cache(str(Path(cache_dir) / "responses")))

    @staticmethod
    def compute_key(
        realm: str,
        table_id: str,
        fields: Sequence[Any],
        where: Optional[str],
        sort: Any = None,
        options: Optional[dict[str, Any]] = None,
    ) -> str:
        """Fingerprint a query's shape.

        Identical arguments always produce the same key; changing any of
        *fields* (including their order), *where*, *sort* or *options*
        produces a different one.
        """
        shape = json.dumps(
            {"fields": list(fields), "where": where, "sort": sort, "options": options},
            sort_keys=True,
            default=str,
        )
        raw = "|".join([realm, table_id, shape])
        return hashlib.sha256(raw.encode()).hexdigest()

    async def lookup(self, key: str) -> Optional[dict[str, Any]]:
        """Return the cached payload for *key*, or ``None`` on a miss.

        Expired entries are deleted when observed. Store errors and entries
        that no longer decode are reported as misses.
        """
        try:
            raw = await asyncio.to_thread(self._store.get, key)
        except Exception as exc:
            logger.warning("Cache read error for %s: %s", key, exc)
            return None
        if raw is None:
            logger.debug("Cache miss for %s", key)
            return None

        try:
            record = CacheRecord.model_validate(raw)
        except ValidationError as exc:
            logger.warning("Discarding undecodable cache entry %s: %s", key, exc)
            return None

        if self._clock() >= record.expires_at:
            logger.debug("Cache entry %s expired", key)
            await self._discard(key)
            return None
        logger.debug("Cache hit for %s", key)
        return record.payload

    async def store(self, key: str, payload: dict[str, Any], ttl_seconds: float) -> None:
        """Store *payload* under *key*, replacing any previous entry."""
        now = self._clock()
        record = CacheRecord(
            key=key,
            payload=payload,
            stored_at=now,
            expires_at=now + ttl_seconds,
        )
        try:
            await asyncio.to_thread(self._store.set, key, record.model_dump())
        except Exception as exc:
            logger.warning("Cache write error for %s: %s", key, exc)

    async def invalidate(self, key: str) -> None:
        """Remove a single entry."""
        await asyncio.to_thread(self._store.delete, key)

    async def clear_all(self) -> None:
        """Remove every entry regardless of key or expiry."""
        await asyncio.to_thread(self._store.clear)

    def stats(self) -> dict[str, Any]:
        """Return cache statistics.

        Returns:
            A ``dict`` with the store type and, when the store supports
            ``len()``, the number of entries (``size``).
        """
        info: dict[str, Any] = {"store": type(self._store).__name__}
        if hasattr(self._store, "__len__"):
            info["size"] = len(self._store)  # type: ignore[arg-type]
        directory = getattr(self._store, "directory", None)
        if directory is not None:
            info["directory"] = str(directory)
        return info

    def close(self) -> None:
        """Close the backing store if it holds resources."""
        close = getattr(self._store, "close", None)
        if close is not None:
            close()

    async def _discard(self, key: str) -> None:
        try:
            await asyncio.to_thread(self._store.delete, key)
        except Exception as exc:
            logger.warning("Cache delete error for %s: %s", key, exc)
