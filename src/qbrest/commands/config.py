"""Config commands -- inspect and edit ``config.json``.

``qbrest config set`` addresses nested settings with dotted keys
(``cache.ttl_minutes``). The new value is parsed according to the type of
the value it replaces, and the whole document is re-validated as a
:class:`~qbrest.models.GlobalConfig` before anything is written.
"""

from __future__ import annotations

from typing import Any

import typer

from qbrest.commands.runtime import reporting_errors
from qbrest.exceptions import InvalidUsageError
from qbrest.output import format_response, info, success

config_app = typer.Typer(no_args_is_help=True)

_TRUTHY = ("true", "1", "yes", "on")


@config_app.command("show")
def config_show() -> None:
    """Print the global settings and the saved profile names.

    Example::

        qbrest --json config show
    """
    from qbrest.config import get_config_dir, list_profiles, load_global_config

    with reporting_errors():
        settings = load_global_config().model_dump(mode="json")
    info(f"Config directory: {get_config_dir()}")
    format_response({**settings, "profiles": list_profiles()})


@config_app.command("set")
def config_set(
    key: str = typer.Argument(help="Dotted setting name, e.g. 'cache.ttl_minutes'."),
    value: str = typer.Argument(help="New value."),
) -> None:
    """Change one global setting.

    Example::

        qbrest config set default_profile acme
        qbrest config set cache.enabled false
        qbrest config set cache.ttl_minutes 15
    """
    from qbrest.config import load_global_config, save_global_config
    from qbrest.models import GlobalConfig

    with reporting_errors():
        document = load_global_config().model_dump(mode="json")
        parent, leaf = _locate(document, key)
        parent[leaf] = _coerce(key, parent[leaf], value)
        try:
            updated = GlobalConfig.model_validate(document)
        except ValueError as exc:
            raise InvalidUsageError(f"Rejected value for {key}: {exc}") from None
        save_global_config(updated)
    success(f"Set {key} = {parent[leaf]}")


def _locate(document: dict[str, Any], key: str) -> tuple[dict[str, Any], str]:
    """Return the mapping that holds *key*'s last segment, and that segment."""
    *path, leaf = key.split(".")
    node: Any = document
    for segment in path:
        node = node.get(segment) if isinstance(node, dict) else None
    if not isinstance(node, dict) or leaf not in node:
        raise InvalidUsageError(f"Unknown config key: {key}")
    return node, leaf


def _coerce(key: str, current: Any, raw: str) -> Any:
    # bool before int: bool is an int subclass
    if isinstance(current, bool):
        return raw.strip().lower() in _TRUTHY
    if isinstance(current, int):
        try:
            return int(raw)
        except ValueError:
            raise InvalidUsageError(f"{key} expects an integer, got {raw!r}") from None
    return raw
