"""User command -- show the QuickBase user the app token belongs to.

Uses the legacy ``API_GetUserInfo`` XML endpoint, the only API that reports
the identity behind an app token.
"""

from __future__ import annotations

import typer

from qbrest.commands.runtime import load_settings, make_client, run
from qbrest.models import UserInfo
from qbrest.output import format_response


def user_command(ctx: typer.Context) -> None:
    """Show the current user.

    Example::

        qbrest user
        qbrest --json user
    """

    async def _user() -> UserInfo:
        _, profile = load_settings(ctx)
        async with make_client(profile) as client:
            return await client.get_user()

    format_response(run(_user()).model_dump())
