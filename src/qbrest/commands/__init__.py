"""Built-in CLI sub-commands for qbrest.

* :mod:`~qbrest.commands.init` -- create a realm profile.
* :mod:`~qbrest.commands.records` -- query, fetch, upsert and update records.
* :mod:`~qbrest.commands.cache` -- inspect and clear the response cache.
* :mod:`~qbrest.commands.config` -- view and modify global settings.
* :mod:`~qbrest.commands.user` -- show the current QuickBase user.

Each module exports either a :class:`typer.Typer` sub-application or a
plain callback registered directly on the root app. Shared plumbing for
opening a client lives in :mod:`~qbrest.commands.runtime`.
"""
