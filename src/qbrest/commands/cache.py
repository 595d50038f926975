"""Cache commands -- inspect and clear the persistent response cache.

Provides the ``qbrest cache`` sub-command group. The cache lives under
:func:`~qbrest.config.get_cache_dir` and only holds query responses stored
by ``qbrest records query --cache-ttl``.
"""

from __future__ import annotations

import typer

from qbrest.cache import ResponseCache
from qbrest.commands.runtime import run
from qbrest.config import get_cache_dir, load_global_config
from qbrest.output import format_response, info, success

cache_app = typer.Typer(no_args_is_help=True)


@cache_app.command("info")
def cache_info() -> None:
    """Show cache location, size and default TTL.

    Example::

        qbrest cache info --json
    """
    config = load_global_config()
    cache = ResponseCache.open(get_cache_dir())
    try:
        stats = cache.stats()
    finally:
        cache.close()
    stats["enabled"] = config.cache.enabled
    stats["ttl_minutes"] = config.cache.ttl_minutes
    format_response(stats)


@cache_app.command("clear")
def cache_clear() -> None:
    """Remove every cached query response.

    Example::

        qbrest cache clear
    """
    cache = ResponseCache.open(get_cache_dir())
    try:
        run(cache.clear_all())
    finally:
        cache.close()
    success("Response cache cleared.")
    info(f"Cache directory: {get_cache_dir()}")
