"""Profiles, global settings and app-token resolution for qbrest.

Everything lives in per-user directories chosen by :func:`_app_dir`:

==========  ===============================  =====================
kind        Linux / BSD (XDG)                macOS / Windows
==========  ===============================  =====================
``config``  ``$XDG_CONFIG_HOME/qbrest``      ``~/.qbrest``
``cache``   ``$XDG_CACHE_HOME/qbrest``       ``~/.qbrest/cache``
``data``    ``$XDG_DATA_HOME/qbrest``        ``~/.qbrest/logs``
==========  ===============================  =====================

The config directory holds ``config.json`` (:class:`~qbrest.models.GlobalConfig`)
and one ``profiles/<name>.json`` per realm (:class:`~qbrest.models.Profile`).
A project may pin its realm with a ``qbrest.json`` in the working directory.

Files are replaced atomically, so a crash mid-write never leaves a torn
profile behind. Unreadable or invalid files raise
:class:`~qbrest.exceptions.ConfigError`.
"""

from __future__ import annotations

import contextlib
import getpass
import json
import os
import platform
import sys
import tempfile
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel

from qbrest.exceptions import ConfigError
from qbrest.models import GlobalConfig, Profile

_APP_NAME = "qbrest"
_GLOBAL_CONFIG_FILENAME = "config.json"
_PROJECT_CONFIG_FILENAME = "qbrest.json"

# kind -> (XDG variable, default below $HOME, subdirectory of ~/.qbrest elsewhere)
_DIR_LAYOUT: dict[str, tuple[str, tuple[str, ...], Optional[str]]] = {
    "config": ("XDG_CONFIG_HOME", (".config",), None),
    "cache": ("XDG_CACHE_HOME", (".cache",), "cache"),
    "data": ("XDG_DATA_HOME", (".local", "share"), "logs"),
}


# --- Directories ---


def _is_xdg_platform() -> bool:
    """Linux and the BSDs follow the XDG base directory layout."""
    system = platform.system()
    return system == "Linux" or system.endswith("BSD")


def _app_dir(kind: str) -> Path:
    env_var, home_segments, fallback_sub = _DIR_LAYOUT[kind]
    if _is_xdg_platform():
        root = os.environ.get(env_var) or str(Path.home().joinpath(*home_segments))
        path = Path(root) / _APP_NAME
    else:
        path = Path.home() / f".{_APP_NAME}"
        if fallback_sub:
            path = path / fallback_sub
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_config_dir() -> Path:
    """Directory holding ``config.json`` and ``profiles/``."""
    return _app_dir("config")


def get_cache_dir() -> Path:
    """Directory holding the persistent query response cache.

    Safe to delete at any time; ``qbrest cache clear`` empties it.
    """
    return _app_dir("cache")


def get_data_dir() -> Path:
    """Directory for crash logs."""
    return _app_dir("data")


def get_profiles_dir() -> Path:
    path = get_config_dir() / "profiles"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- File helpers ---


def _atomic_write(path: Path, data: str) -> None:
    """Replace *path* with *data* in one rename.

    The temporary file is created next to *path* so ``os.replace`` stays on
    one filesystem. It is removed again if anything fails before the rename.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        with contextlib.suppress(FileNotFoundError):
            os.unlink(tmp_name)
        raise


def _read_json(path: Path, what: str) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise ConfigError(f"Invalid {what} at {path}: {exc}") from exc


def _write_model(path: Path, model: BaseModel) -> None:
    _atomic_write(path, json.dumps(model.model_dump(mode="json"), indent=2) + "\n")


# --- Global config ---


def load_global_config() -> GlobalConfig:
    """Read ``config.json``, or return defaults when it does not exist yet.

    Raises:
        ConfigError: If the file is not valid JSON or fails validation.
    """
    path = get_config_dir() / _GLOBAL_CONFIG_FILENAME
    if not path.is_file():
        return GlobalConfig()
    data = _read_json(path, "global config")
    try:
        return GlobalConfig.model_validate(data)
    except ValueError as exc:
        raise ConfigError(f"Invalid global config at {path}: {exc}") from exc


def save_global_config(config: GlobalConfig) -> None:
    _write_model(get_config_dir() / _GLOBAL_CONFIG_FILENAME, config)


# --- Profiles ---


def _profile_path(name: str) -> Path:
    return get_profiles_dir() / f"{name}.json"


def list_profiles() -> list[str]:
    """Names of all saved profiles, alphabetically."""
    return sorted(p.stem for p in get_profiles_dir().glob("*.json") if p.is_file())


def profile_exists(name: str) -> bool:
    return _profile_path(name).is_file()


def load_profile(name: str) -> Profile:
    """Read and validate the profile called *name*.

    Raises:
        ConfigError: If it is missing, not valid JSON, or fails validation.
    """
    path = _profile_path(name)
    if not path.is_file():
        raise ConfigError(f"Profile '{name}' not found at {path}")
    data = _read_json(path, f"profile '{name}'")
    try:
        return Profile.model_validate(data)
    except ValueError as exc:
        raise ConfigError(f"Invalid profile '{name}' at {path}: {exc}") from exc


def save_profile(profile: Profile) -> None:
    """Write *profile* to ``profiles/<profile.name>.json``."""
    _write_model(_profile_path(profile.name), profile)


# --- Project-local config ---


def load_project_config() -> Optional[dict[str, Any]]:
    """Read ``./qbrest.json`` if the working directory has one.

    Raises:
        ConfigError: If the file exists but is not valid JSON.
    """
    path = Path.cwd() / _PROJECT_CONFIG_FILENAME
    if not path.is_file():
        return None
    return _read_json(path, "project config")


# --- Resolution ---


def resolve_config(
    cli_profile: Optional[str] = None,
    cli_format: Optional[str] = None,
) -> tuple[GlobalConfig, Optional[Profile]]:
    """Work out the global settings and the active profile.

    The profile name is taken from the first of these that is set:

    1. ``--profile`` (*cli_profile*)
    2. ``QBREST_PROFILE``
    3. ``default_profile`` in ``./qbrest.json``
    4. ``default_profile`` in ``config.json``
    5. the only saved profile, when exactly one exists and
       ``auto_select_single_profile`` is on

    ``QBREST_REALM`` then overrides the chosen profile's realm.

    Returns:
        ``(global_config, profile)``; *profile* is ``None`` when no name
        could be determined.

    Raises:
        ConfigError: If the chosen profile cannot be loaded.
    """
    global_cfg = load_global_config()
    project = load_project_config() or {}

    candidates = (
        cli_profile,
        os.environ.get("QBREST_PROFILE"),
        project.get("default_profile"),
        global_cfg.default_profile,
    )
    name = next((c for c in candidates if c), None)
    if name is None and global_cfg.auto_select_single_profile:
        saved = list_profiles()
        if len(saved) == 1:
            name = saved[0]

    profile = load_profile(name) if name is not None else None
    if profile is not None and os.environ.get("QBREST_REALM"):
        profile.realm = os.environ["QBREST_REALM"]

    if cli_format is not None:
        global_cfg.output.format = cli_format
    return global_cfg, profile


def resolve_credential(source: str) -> str:
    """Turn an app-token source descriptor into the token itself.

    ``env:VAR`` reads an environment variable, ``file:PATH`` reads a file
    (``~`` expanded, whitespace stripped) and ``prompt`` asks on the
    terminal.

    Raises:
        ConfigError: If the source is unknown or cannot be read.
    """
    kind, _, target = source.partition(":")

    if kind == "env" and target:
        value = os.environ.get(target)
        if value is None:
            raise ConfigError(f"Environment variable '{target}' is not set (source: {source})")
        return value

    if kind == "file" and target:
        path = Path(target).expanduser()
        if not path.is_file():
            raise ConfigError(f"Credential file not found: {path} (source: {source})")
        try:
            return path.read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise ConfigError(f"Cannot read credential file {path}: {exc}") from exc

    if source == "prompt":
        if not sys.stdin.isatty():
            raise ConfigError("Cannot prompt for the app token: stdin is not a TTY")
        return getpass.getpass("QuickBase app token: ")

    raise ConfigError(f"Unknown credential source format: {source}")
