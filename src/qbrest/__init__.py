"""qbrest -- async client for the QuickBase JSON REST API.

This package wraps the QuickBase ``/v1`` REST API with per-table temporary
token handling, an optional TTL'd response cache, and helpers that turn
QuickBase's field-indexed records (``{"6": {"value": "Bob"}}``) into flat
dictionaries and back.

Typical usage::

    from qbrest import QbClient
    from qbrest.models import Profile

    profile = Profile(name="acme", realm="acme.quickbase.com")
    async with QbClient(profile) as client:
        response = await client.query("bqxyz123", [3, 6, 7], "{6.EX.'Bob'}")
        rows = response.formatted_records

A small Typer CLI (``qbrest``) is included for ad-hoc querying.

Modules:
    codec: Wire record <-> flat record conversion.
    auth: Per-table temporary token cache.
    cache: TTL'd response cache over a pluggable key-value store.
    client: The async request orchestrator and response wrappers.
    models: Pydantic models shared across the package.
    config: XDG-aware configuration and profile management.
    exceptions: Exception hierarchy with exit-code mapping.
    output: stdout/stderr formatting for the CLI.
"""

__version__ = "0.3.0"

from qbrest.client import QbClient, QueryResponse, UpsertResponse  # noqa: E402

__all__ = ["QbClient", "QueryResponse", "UpsertResponse", "__version__"]
