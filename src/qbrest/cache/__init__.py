"""Query response caching for qbrest.

This package provides :class:`ResponseCache`, which stores whole QuickBase
query responses under a fingerprint of the query's shape with a
caller-chosen TTL. Storage is delegated to any :class:`KeyValueStore`;
:meth:`ResponseCache.open` uses a :class:`diskcache.Cache` so entries
survive between processes, while :class:`MemoryStore` keeps them in-process.

The cache is consumed by
:meth:`~qbrest.client.async_client.QbClient.query_cached` and is controlled
by the ``cache`` section of the global configuration
(:class:`~qbrest.models.CacheConfig`).
"""

from qbrest.cache.cache import ResponseCache
from qbrest.cache.store import KeyValueStore, MemoryStore

__all__ = ["KeyValueStore", "MemoryStore", "ResponseCache"]
