"""Temporary-token authentication for qbrest.

QuickBase scopes temporary tokens to a single table and lets them live for
about five minutes. :class:`TokenCache` keeps one live token per table id,
re-fetching through an injected coroutine once the token is older than
:data:`TOKEN_LIFETIME_SECONDS`.

Typical usage::

    from qbrest.auth import TokenCache

    cache = TokenCache(fetch_temp_token)
    token = await cache.get_token("bqxyz123")
"""

from qbrest.auth.token_cache import TOKEN_LIFETIME_SECONDS, TokenCache, TokenFetcher

__all__ = ["TOKEN_LIFETIME_SECONDS", "TokenCache", "TokenFetcher"]
