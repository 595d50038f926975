"""Canonical Pydantic models shared across all qbrest modules.

Every other module imports its data shapes from here rather than defining
its own. The models fall into two groups:

**Configuration models** -- serialised as JSON in the user's config directory:
    :class:`RequestConfig`, :class:`OutputConfig`, :class:`CacheConfig`,
    :class:`GlobalConfig`, and :class:`Profile`.

**Runtime models** -- produced while talking to QuickBase:
    :class:`CredentialEntry`, :class:`CacheRecord`, and :class:`UserInfo`.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_BASE_URL = "https://api.quickbase.com/v1"


# --- Config models ---


class RequestConfig(BaseModel):
    """Default HTTP request settings applied to every API call in a profile."""

    timeout: int = Field(default=30, description="Request timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")


class OutputConfig(BaseModel):
    """Default output format preferences stored in :class:`GlobalConfig`."""

    format: str = Field(
        default="auto", description="Output format: auto, json, plain, rich"
    )


class CacheConfig(BaseModel):
    """Query response cache settings stored in :class:`GlobalConfig`."""

    enabled: bool = Field(default=True, description="Enable query response caching")
    ttl_minutes: int = Field(default=5, description="Default cache TTL in minutes")


class GlobalConfig(BaseModel):
    """User-wide configuration persisted at ``~/.config/qbrest/config.json``.

    Loaded and saved by :func:`~qbrest.config.load_global_config` and
    :func:`~qbrest.config.save_global_config`. See
    :func:`~qbrest.config.resolve_config` for the precedence chain.
    """

    default_profile: Optional[str] = None
    auto_select_single_profile: bool = True
    output: OutputConfig = Field(default_factory=OutputConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)


class Profile(BaseModel):
    """Connection settings for one QuickBase realm.

    Stored as JSON under the ``profiles/`` config directory. ``app_token``
    is a credential *source* (``env:VAR``, ``file:/path`` or ``prompt``),
    never the secret itself; it is resolved with
    :func:`~qbrest.config.resolve_credential` when a client opens.

    Example::

        Profile(name="acme", realm="acme.quickbase.com", app_token="env:ACME_QB_TOKEN")
    """

    model_config = ConfigDict(extra="allow")

    name: str
    realm: str = Field(description="Realm hostname, e.g. example.quickbase.com")
    app_token: str = Field(
        default="env:QB_APP_TOKEN",
        description="Credential source for the app token: env:VAR, file:/path, prompt",
    )
    base_url: str = Field(default=DEFAULT_BASE_URL, description="REST API root")
    request: RequestConfig = Field(default_factory=RequestConfig)

    @property
    def realm_hostname(self) -> str:
        """The realm as a full hostname (``acme`` becomes ``acme.quickbase.com``)."""
        return self.realm if "." in self.realm else f"{self.realm}.quickbase.com"


# --- Runtime models ---


class CredentialEntry(BaseModel):
    """A temporary token held by :class:`~qbrest.auth.TokenCache`.

    Times are readings of the cache's clock (monotonic seconds by default),
    not wall-clock timestamps.
    """

    resource_id: str
    token: str
    issued_at: float
    expires_at: float


class CacheRecord(BaseModel):
    """A stored query response held by :class:`~qbrest.cache.ResponseCache`.

    ``stored_at`` and ``expires_at`` are epoch seconds so that records
    persisted by one process remain meaningful to the next.
    """

    key: str
    payload: dict[str, Any]
    stored_at: float
    expires_at: float


class UserInfo(BaseModel):
    """Current user details returned by the legacy ``API_GetUserInfo`` call."""

    id: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    login: Optional[str] = None
    email: Optional[str] = None
    screen_name: Optional[str] = None
    is_verified: bool = False
    external_auth: bool = False
