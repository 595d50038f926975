"""Root Typer application for the ``qbrest`` command.

Global flags are handled once in :func:`main_callback`, which installs the
:class:`~qbrest.output.OutputManager` every sub-command prints through and
remembers ``--profile`` in ``ctx.obj``. Sub-commands are registered at import
time so tests can drive :data:`app` directly with a ``CliRunner``.

:func:`main` is the console-script entry point. It adds what only a real
process needs: Ctrl-C handling, exit codes for errors that escape a
command, and a crash log for anything unexpected.
"""

from __future__ import annotations

import signal
import sys
import traceback
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import typer

from qbrest import __version__
from qbrest.commands.cache import cache_app
from qbrest.commands.config import config_app
from qbrest.commands.init import init_command
from qbrest.commands.records import records_app
from qbrest.commands.user import user_command
from qbrest.exceptions import QbRestError
from qbrest.exit_codes import EXIT_GENERIC_FAILURE
from qbrest.output import OutputFormat, OutputManager, configure_logging, error, set_output

EXIT_INTERRUPTED = 130

app = typer.Typer(
    name="qbrest",
    help="Query and update QuickBase tables from the command line.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

app.command("init")(init_command)
app.command("user")(user_command)
app.add_typer(records_app, name="records", help="Query, fetch, upsert and update records.")
app.add_typer(cache_app, name="cache", help="Inspect or clear the response cache.")
app.add_typer(config_app, name="config", help="Show or change global settings.")


def _print_version(requested: bool) -> None:
    if requested:
        typer.echo(f"qbrest {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False, "--version", callback=_print_version, is_eager=True, help="Show version and exit."
    ),
    profile: Optional[str] = typer.Option(
        None, "--profile", "-p", help="Profile (realm) to use instead of the default."
    ),
    json_output: bool = typer.Option(False, "--json", help="Print data as JSON."),
    plain_output: bool = typer.Option(False, "--plain", help="Print data as plain text / TSV."),
    no_color: bool = typer.Option(False, "--no-color", help="Disable colour."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only print data and errors."),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Print debug messages, including library logs."
    ),
) -> None:
    """Apply global flags before the sub-command runs."""
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN
    else:
        fmt = OutputFormat.AUTO

    output = OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose)
    set_output(output)
    configure_logging(output)

    ctx.obj = {"profile": profile, "verbose": verbose}


def _on_interrupt(signum: int, frame: Any) -> None:
    sys.stderr.write("\nCancelled.\n")
    sys.exit(EXIT_INTERRUPTED)


def _write_crash_log() -> Path:
    """Save the current traceback under the data directory."""
    from qbrest.config import get_data_dir

    log_dir = get_data_dir() / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / f"crash-{datetime.now():%Y%m%d-%H%M%S}.log"
    log_path.write_text(traceback.format_exc(), encoding="utf-8")
    return log_path


def main() -> None:
    """Console-script entry point."""
    signal.signal(signal.SIGINT, _on_interrupt)
    try:
        app()
    except QbRestError as exc:
        error(str(exc))
        sys.exit(exc.exit_code)
    except KeyboardInterrupt:
        _on_interrupt(signal.SIGINT, None)
    except Exception:
        error(f"Unexpected error. Debug log: {_write_crash_log()}")
        sys.exit(EXIT_GENERIC_FAILURE)


if __name__ == "__main__":
    main()
