"""Asynchronous QuickBase REST client.

This module provides :class:`QbClient`, which wraps :class:`httpx.AsyncClient`
and layers on:

- **Temporary-token auth** -- every call is scoped to a table id; the
  client obtains a per-table token from ``/auth/temporary/{tableId}`` through
  a :class:`~qbrest.auth.TokenCache` and sends it as
  ``Authorization: QB-TEMP-TOKEN <token>``.
- **Response caching** -- :meth:`QbClient.query_cached` consults an optional
  :class:`~qbrest.cache.ResponseCache` before going to the network.
- **Error mapping** -- non-success statuses become
  :class:`~qbrest.exceptions.ApiRequestError`, network failures
  :class:`~qbrest.exceptions.TransportError`. Nothing is retried.
- **Record helpers** -- unique-field lookups, strict upserts, and
  single-record updates built on the two primitives :meth:`QbClient.query`
  and :meth:`QbClient.upsert`.

See Also:
    :mod:`qbrest.client.response` for the response wrappers.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Sequence

import httpx

from qbrest.auth import TokenCache
from qbrest.cache import ResponseCache
from qbrest.client.response import QueryResponse, UpsertResponse
from qbrest.client.user import parse_user_info
from qbrest.codec import RECORD_ID_FIELD, flatten, normalize
from qbrest.config import resolve_credential
from qbrest.exceptions import (
    AmbiguousMatchError,
    ApiRequestError,
    AuthenticationError,
    RecordNotFoundError,
    TransportError,
    UpsertPartialFailureError,
)
from qbrest.models import Profile, UserInfo

logger = logging.getLogger(__name__)

DEFAULT_CACHE_TTL_MINUTES = 5


class QbClient:
    """Asynchronous client for the QuickBase JSON API.

    Must be used as an async context manager so the underlying
    :class:`httpx.AsyncClient` is opened and closed.

    Args:
        profile: Realm, base URL, app-token source and request settings.
        app_token: The app token itself. When ``None`` it is resolved from
            ``profile.app_token`` on entry.
        token_cache: Temporary-token cache. A new one bound to this client
            is created when omitted.
        response_cache: Cache used by :meth:`query_cached`. Without one,
            :meth:`query_cached` behaves like :meth:`query`.
        transport: Optional httpx transport (e.g. :class:`httpx.MockTransport`).

    Example::

        async with QbClient(profile, response_cache=ResponseCache(MemoryStore())) as qb:
            response = await qb.query_cached("bqxyz123", [3, 6], "{6.EX.'Bob'}", ttl_minutes=10)
            rows = response.formatted_records
    """

    def __init__(
        self,
        profile: Profile,
        app_token: Optional[str] = None,
        token_cache: Optional[TokenCache] = None,
        response_cache: Optional[ResponseCache] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._profile = profile
        self._app_token = app_token
        self._tokens = token_cache or TokenCache(self.fetch_temp_token)
        self._response_cache = response_cache
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def realm(self) -> str:
        return self._profile.realm_hostname

    # ------------------------------------------------------------------ #
    # Async context manager
    # ------------------------------------------------------------------ #

    async def __aenter__(self) -> QbClient:
        if self._app_token is None:
            self._app_token = resolve_credential(self._profile.app_token)
        config = self._profile.request
        self._client = httpx.AsyncClient(
            base_url=self._profile.base_url,
            timeout=config.timeout,
            verify=config.verify_ssl,
            follow_redirects=True,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *args: object) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    # ------------------------------------------------------------------ #
    # Auth
    # ------------------------------------------------------------------ #

    async def fetch_temp_token(self, table_id: str) -> str:
        """Request a fresh temporary token for *table_id*.

        This bypasses the token cache; use :meth:`preauth_table` to warm it.

        Raises:
            AuthenticationError: On a non-success status, a network failure,
                or a body without ``temporaryAuthorization``.
        """
        client = self._require_client()
        headers = {
            "QB-Realm-Hostname": self.realm,
            "QB-App-Token": self._app_token or "",
        }
        try:
            response = await client.get(f"/auth/temporary/{table_id}", headers=headers)
        except httpx.TransportError as exc:
            raise AuthenticationError(
                f"Get token failed: {exc}", resource_id=table_id
            ) from exc

        if not response.is_success:
            raise AuthenticationError(
                f"Get token failed: {_error_message(response)}",
                resource_id=table_id,
                status_code=response.status_code,
            )
        token = _json_body(response).get("temporaryAuthorization")
        if not token:
            raise AuthenticationError(
                "Get token failed: response carried no temporaryAuthorization",
                resource_id=table_id,
                status_code=response.status_code,
            )
        return token

    async def preauth_table(self, table_id: str) -> None:
        """Warm the token cache for *table_id* ahead of later calls."""
        await self._tokens.get_token(table_id)

    # ------------------------------------------------------------------ #
    # Requests
    # ------------------------------------------------------------------ #

    async def request(
        self,
        method: str,
        endpoint: str,
        table_id: str,
        json_body: Optional[Any] = None,
        params: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        """Send an authenticated request scoped to *table_id*.

        Args:
            method: HTTP method.
            endpoint: Path below the API root, e.g. ``"records/query"``.
            table_id: Table whose temporary token authorises the call.
            json_body: JSON-serialisable request body.
            params: Query parameters.

        Returns:
            The decoded JSON body.

        Raises:
            AuthenticationError: If no token could be obtained.
            ApiRequestError: On a non-success status.
            TransportError: On network / timeout errors.
        """
        client = self._require_client()
        token = await self._tokens.get_token(table_id)
        headers = {
            "QB-Realm-Hostname": self.realm,
            "Content-Type": "application/json",
            "Authorization": f"QB-TEMP-TOKEN {token}",
        }
        logger.debug("%s %s (table %s)", method, endpoint, table_id)
        try:
            response = await client.request(
                method, f"/{endpoint.lstrip('/')}", headers=headers, json=json_body, params=params
            )
        except httpx.TransportError as exc:
            raise TransportError(f"{method} {endpoint} failed: {exc}") from exc

        self._map_response_error(response)
        return _json_body(response)

    async def query(
        self,
        table_id: str,
        select: Sequence[int],
        where: Optional[str] = None,
        sort: Any = None,
        options: Optional[dict[str, Any]] = None,
    ) -> QueryResponse:
        """Run a records query.

        Args:
            table_id: Table to query.
            select: Field ids to return.
            where: QuickBase query string such as ``"{3.EX.123}"``; sent verbatim.
                Left out of the body when ``None``, which matches every record.
            sort: ``sortBy`` value, e.g. ``[{"fieldId": 6, "order": "ASC"}]``.
            options: ``options`` value, e.g. ``{"skip": 0, "top": 100}``.
        """
        body: dict[str, Any] = {"from": table_id, "select": list(select)}
        if where is not None:
            body["where"] = where
        if sort:
            body["sortBy"] = sort
        if options:
            body["options"] = options
        raw = await self.request("POST", "records/query", table_id, json_body=body)
        return QueryResponse(raw, table_id)

    async def query_cached(
        self,
        table_id: str,
        select: Sequence[int],
        where: Optional[str] = None,
        sort: Any = None,
        options: Optional[dict[str, Any]] = None,
        ttl_minutes: float = DEFAULT_CACHE_TTL_MINUTES,
    ) -> QueryResponse:
        """Like :meth:`query`, but served from the response cache when fresh.

        On a miss the raw payload is stored for *ttl_minutes* before the
        response is returned.
        """
        if self._response_cache is None:
            return await self.query(table_id, select, where, sort, options)

        key = ResponseCache.compute_key(self.realm, table_id, select, where, sort, options)
        cached = await self._response_cache.lookup(key)
        if cached is not None:
            return QueryResponse(cached, table_id)

        response = await self.query(table_id, select, where, sort, options)
        await self._response_cache.store(key, response.raw, ttl_minutes * 60)
        return response

    async def clear_cache(self) -> None:
        """Remove every entry from the response cache, if one is configured."""
        if self._response_cache is not None:
            await self._response_cache.clear_all()

    async def upsert(
        self,
        table_id: str,
        records: Sequence[Mapping[str, Any]],
        merge_field_id: Optional[int] = None,
    ) -> UpsertResponse:
        """Insert or update records.

        Records must already be in wire format (see
        :func:`~qbrest.codec.normalize`). Include field 3, or the field named
        by *merge_field_id*, to update existing rows.
        """
        body: dict[str, Any] = {"to": table_id, "data": list(records)}
        if merge_field_id:
            body["mergeFieldId"] = merge_field_id
        raw = await self.request("POST", "records", table_id, json_body=body)
        return UpsertResponse(raw)

    async def strict_upsert(
        self,
        table_id: str,
        records: Sequence[Mapping[str, Any]],
    ) -> UpsertResponse:
        """Upsert, raising instead of returning when any line was rejected.

        Raises:
            UpsertPartialFailureError: Carrying the full line-error map.
        """
        response = await self.upsert(table_id, records)
        if response.has_errors:
            raise UpsertPartialFailureError(response.errors)
        return response

    async def update_record(
        self,
        table_id: str,
        record_id: int,
        fields: Mapping[Any, Any],
    ) -> UpsertResponse:
        """Update one record by Record ID#.

        *fields* may mix raw values and ``{"value": ...}`` wrappers. A field
        3 entry in *fields* is replaced by *record_id*.
        """
        record = {str(field_id): value for field_id, value in fields.items()}
        record[RECORD_ID_FIELD] = record_id
        return await self.upsert(table_id, [normalize(record)])

    async def get_by_unique_field(
        self,
        table_id: str,
        field_id: int | str,
        value: Any,
        select: Sequence[int],
        strict: bool = False,
    ) -> dict[str, Any]:
        """Fetch the single record whose *field_id* equals *value*.

        Returns:
            The record flattened with field ids as keys (plus ``"rid"``).
            Without *strict*, the first match wins.

        Raises:
            RecordNotFoundError: If nothing matched.
            AmbiguousMatchError: If *strict* and more than one record matched.
        """
        response = await self.query(table_id, select, f'{{{field_id}.EX."{value}"}}')
        if response.count == 0:
            raise RecordNotFoundError(table_id, field_id, value)
        if strict and response.count > 1:
            raise AmbiguousMatchError(table_id, field_id, value, response.count)
        return flatten(response.records[0])

    async def get_by_id(
        self,
        table_id: str,
        record_id: int,
        select: Sequence[int],
    ) -> dict[str, Any]:
        """Fetch one record by Record ID# (always strict)."""
        return await self.get_by_unique_field(
            table_id, RECORD_ID_FIELD, record_id, select, strict=True
        )

    # ------------------------------------------------------------------ #
    # Legacy XML API
    # ------------------------------------------------------------------ #

    async def get_user_xml(self) -> str:
        """Fetch the current user's details from the legacy XML API.

        Raises:
            ApiRequestError: On a non-success status.
            TransportError: On network / timeout errors.
        """
        client = self._require_client()
        url = f"https://{self.realm}/db/main"
        params = {"a": "API_GetUserInfo", "ticket": self._app_token or ""}
        try:
            response = await client.get(url, params=params)
        except httpx.TransportError as exc:
            raise TransportError(f"Get user info failed: {exc}") from exc
        if not response.is_success:
            raise ApiRequestError(response.status_code, response.reason_phrase)
        return response.text

    async def get_user(self) -> UserInfo:
        """Fetch and parse the current user's details.

        Raises:
            ResponseParseError: If the XML has no ``<user>`` element.
        """
        return parse_user_info(await self.get_user_xml())

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _require_client(self) -> httpx.AsyncClient:
        assert self._client is not None, "Client not initialised -- use as async context manager"
        return self._client

    def _map_response_error(self, response: httpx.Response) -> None:
        """Raise :class:`ApiRequestError` for non-success statuses."""
        if response.is_success:
            return
        raise ApiRequestError(response.status_code, _error_message(response))


def _json_body(response: httpx.Response) -> dict[str, Any]:
    if not response.content:
        return {}
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


def _error_message(response: httpx.Response) -> str:
    """QuickBase's ``message`` field, falling back to the reason phrase."""
    message = _json_body(response).get("message")
    return message or response.reason_phrase
