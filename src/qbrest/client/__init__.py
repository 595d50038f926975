"""HTTP client module for qbrest.

Provides :class:`QbClient`, an asynchronous client backed by
:class:`httpx.AsyncClient` with per-table temporary-token auth, optional
response caching and typed error mapping, plus the
:class:`QueryResponse` / :class:`UpsertResponse` wrappers it returns.

Example::

    from qbrest.client import QbClient

    async with QbClient(profile) as client:
        record = await client.get_by_id("bqxyz123", 42, [3, 6, 7])
"""

from qbrest.client.async_client import QbClient
from qbrest.client.response import QueryResponse, UpsertResponse

__all__ = ["QbClient", "QueryResponse", "UpsertResponse"]
