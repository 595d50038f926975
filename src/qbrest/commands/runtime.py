"""Helpers shared by commands that talk to QuickBase.

Commands build their work as a coroutine and hand it to :func:`run`, which
drives it with :func:`asyncio.run` and turns a
:class:`~qbrest.exceptions.QbRestError` into an error message plus the
error's exit code. Synchronous commands wrap their body in
:func:`reporting_errors` for the same behaviour.
"""

from __future__ import annotations

import asyncio
import contextlib
from typing import Any, Coroutine, Iterator, Optional, TypeVar

import typer

from qbrest.cache import ResponseCache
from qbrest.client import QbClient
from qbrest.config import get_cache_dir, resolve_config
from qbrest.exceptions import ConfigError, InvalidUsageError, QbRestError
from qbrest.models import GlobalConfig, Profile
from qbrest.output import debug, error

T = TypeVar("T")


def load_settings(ctx: typer.Context) -> tuple[GlobalConfig, Profile]:
    """Resolve the global config and the active profile for a command.

    Raises:
        ConfigError: If no profile can be resolved.
    """
    cli_profile = ctx.obj.get("profile") if ctx.obj else None
    config, profile = resolve_config(cli_profile=cli_profile)
    if profile is None:
        raise ConfigError("No profile configured. Run 'qbrest init --realm <realm>' first.")
    debug(f"Using profile {profile.name} ({profile.realm_hostname})")
    return config, profile


def open_response_cache(config: GlobalConfig) -> Optional[ResponseCache]:
    """Open the persistent response cache, or ``None`` when caching is disabled."""
    if not config.cache.enabled:
        return None
    return ResponseCache.open(get_cache_dir())


def make_client(profile: Profile, response_cache: Optional[ResponseCache] = None) -> QbClient:
    return QbClient(profile, response_cache=response_cache)


@contextlib.contextmanager
def reporting_errors() -> Iterator[None]:
    """Print a :class:`QbRestError` raised in the block and exit with its code."""
    try:
        yield
    except QbRestError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None


def run(coro: Coroutine[Any, Any, T]) -> T:
    """Run *coro* to completion under :func:`reporting_errors`."""
    with reporting_errors():
        return asyncio.run(coro)


def parse_field_ids(value: str) -> list[int]:
    """Parse ``"3,6,7"`` into ``[3, 6, 7]``.

    Raises:
        InvalidUsageError: If any element is not an integer.
    """
    try:
        return [int(part) for part in value.split(",") if part.strip()]
    except ValueError:
        raise InvalidUsageError(f"Field ids must be comma-separated integers: {value!r}") from None


def parse_sort(values: Optional[list[str]]) -> Optional[list[dict[str, Any]]]:
    """Parse ``["6:DESC", "3"]`` into QuickBase ``sortBy`` entries.

    Raises:
        InvalidUsageError: On a non-integer field id or an unknown order.
    """
    if not values:
        return None
    sort_by: list[dict[str, Any]] = []
    for item in values:
        field, _, order = item.partition(":")
        order = (order or "ASC").upper()
        if order not in ("ASC", "DESC"):
            raise InvalidUsageError(f"Sort order must be ASC or DESC: {item!r}")
        try:
            sort_by.append({"fieldId": int(field), "order": order})
        except ValueError:
            raise InvalidUsageError(f"Sort field must be an integer id: {item!r}") from None
    return sort_by
