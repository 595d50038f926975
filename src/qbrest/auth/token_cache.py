"""Per-table cache of short-lived QuickBase temporary tokens.

Each table id maps to at most one :class:`~qbrest.models.CredentialEntry`.
Entries expire a fixed lifetime after issuance; expiry is checked when the
entry is read, so no background timer is involved. A read at or after
``issued_at + lifetime`` drops the entry and fetches a new token.

Concurrent misses for the same table are coalesced: the first caller
fetches while the others wait on a per-table :class:`asyncio.Lock` and then
reuse its token. Different tables never wait on each other.

See Also:
    :class:`~qbrest.client.async_client.QbClient` -- supplies the fetch
    coroutine that calls ``/auth/temporary/{tableId}``.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional

from qbrest.models import CredentialEntry

logger = logging.getLogger(__name__)

TOKEN_LIFETIME_SECONDS = 4 * 60
"""How long a temporary token is served before a fresh one is fetched."""

TokenFetcher = Callable[[str], Awaitable[str]]
"""Coroutine function taking a table id and returning a temporary token."""


class TokenCache:
    """Holds one live temporary token per table id.

    Args:
        fetch: Coroutine function that obtains a new token for a table id.
            Its exceptions propagate to the caller of :meth:`get_token`
            and nothing is cached.
        lifetime: Seconds a token is served after issuance.
        clock: Time source in seconds. Defaults to :func:`time.monotonic`.

    Example::

        cache = TokenCache(client.fetch_temp_token)
        token = await cache.get_token("bqxyz123")
    """

    def __init__(
        self,
        fetch: TokenFetcher,
        lifetime: float = TOKEN_LIFETIME_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._fetch = fetch
        self._lifetime = lifetime
        self._clock = clock
        self._entries: dict[str, CredentialEntry] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    async def get_token(self, resource_id: str) -> str:
        """Return a live token for *resource_id*, fetching one if needed."""
        entry = self._live_entry(resource_id)
        if entry is not None:
            return entry.token

        lock = self._locks.setdefault(resource_id, asyncio.Lock())
        async with lock:
            # Another waiter may have fetched while we were blocked.
            entry = self._live_entry(resource_id)
            if entry is not None:
                return entry.token

            logger.debug("Fetching temporary token for %s", resource_id)
            token = await self._fetch(resource_id)
            issued_at = self._clock()
            self._entries[resource_id] = CredentialEntry(
                resource_id=resource_id,
                token=token,
                issued_at=issued_at,
                expires_at=issued_at + self._lifetime,
            )
            return token

    def invalidate(self, resource_id: str) -> None:
        """Drop the token for *resource_id* so the next read re-fetches."""
        self._entries.pop(resource_id, None)
        self._release_lock(resource_id)

    def clear(self) -> None:
        """Drop every cached token."""
        self._entries.clear()
        for resource_id in list(self._locks):
            self._release_lock(resource_id)

    def _release_lock(self, resource_id: str) -> None:
        # A held lock still has a fetch (and maybe waiters) behind it.
        lock = self._locks.get(resource_id)
        if lock is not None and not lock.locked():
            del self._locks[resource_id]

    def __contains__(self, resource_id: object) -> bool:
        return isinstance(resource_id, str) and self._live_entry(resource_id) is not None

    def __len__(self) -> int:
        return sum(1 for resource_id in list(self._entries) if resource_id in self)

    def _live_entry(self, resource_id: str) -> Optional[CredentialEntry]:
        entry = self._entries.get(resource_id)
        if entry is None:
            return None
        if self._clock() >= entry.expires_at:
            logger.debug("Temporary token for %s expired", resource_id)
            self._entries.pop(resource_id, None)
            return None
        return entry
