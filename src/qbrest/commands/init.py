"""Init command -- create a profile for a QuickBase realm.

Implements the ``qbrest init`` top-level command: it creates a
:class:`~qbrest.models.Profile`, saves it to the profiles directory and
writes a project-local ``qbrest.json`` pinning it as the default.
"""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Optional

import typer

from qbrest.models import DEFAULT_BASE_URL
from qbrest.output import info, success, suggest


def init_command(
    realm: str = typer.Option(
        ..., "--realm", "-r", help="Realm hostname, e.g. acme.quickbase.com."
    ),
    name: Optional[str] = typer.Option(
        None, "--name", "-n", help="Profile name (derived from the realm if omitted)."
    ),
    app_token: str = typer.Option(
        "env:QB_APP_TOKEN",
        "--app-token",
        help="App token source: env:VAR, file:/path or prompt.",
    ),
    base_url: str = typer.Option(DEFAULT_BASE_URL, "--base-url", help="REST API root."),
) -> None:
    """Create a profile for a QuickBase realm.

    Example::

        qbrest init --realm acme.quickbase.com
        qbrest init --realm acme --name acme-prod --app-token file:~/.acme-token
    """
    from qbrest.config import profile_exists, save_profile
    from qbrest.models import Profile

    profile_name = name or _slugify(realm.split(".")[0])
    if profile_exists(profile_name):
        info(f'Profile "{profile_name}" already exists and will be overwritten.')

    profile = Profile(name=profile_name, realm=realm, app_token=app_token, base_url=base_url)
    save_profile(profile)

    project_config_path = Path("qbrest.json")
    project_config_path.write_text(json.dumps({"default_profile": profile_name}, indent=2) + "\n")

    success(f'Profile "{profile_name}" created for {profile.realm_hostname}.')
    if app_token.startswith("env:"):
        suggest(f"Export your app token: export {app_token[4:]}=...")
    suggest("Check access: qbrest user")


def _slugify(text: str) -> str:
    """Convert text to a URL-safe slug."""
    slug = re.sub(r"[^a-z0-9]+", "-", text.lower().strip()).strip("-")
    return slug or "default"
