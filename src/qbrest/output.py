"""Terminal output for the qbrest CLI.

Data and diagnostics never share a stream: records, upsert summaries and
settings go to **stdout**; progress notes, warnings and errors go to
**stderr**. That keeps ``qbrest --json records query ... | jq`` clean.

Three data formats are supported (:class:`OutputFormat`). ``auto`` picks
``rich`` on an interactive, colour-capable terminal and ``plain`` otherwise.
Colour is off when ``--no-color`` is given, ``NO_COLOR`` is set, or
``TERM=dumb``.

Commands call the module-level helpers (:func:`format_response`,
:func:`print_records`, :func:`info`, :func:`error`, ...), which forward to the
:class:`OutputManager` installed by :func:`~qbrest.app.main_callback`.
Library modules do not print; they log, and :func:`configure_logging`
sends those records to stderr.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from enum import Enum
from typing import Any, Iterable, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.syntax import Syntax
from rich.table import Table


class OutputFormat(str, Enum):
    """How data written to stdout is rendered."""

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


def _colour_disabled_by_env() -> bool:
    """``NO_COLOR`` (any value, even empty) or ``TERM=dumb`` turns colour off."""
    return "NO_COLOR" in os.environ or os.environ.get("TERM") == "dumb"


def _is_tty() -> bool:
    isatty = getattr(sys.stdout, "isatty", None)
    return bool(isatty and isatty())


def _to_json(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False, default=str)


def _cell(value: Any) -> str:
    """Render one value for a table cell or TSV column."""
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False, default=str)
    return str(value)


def _columns(records: Iterable[dict[str, Any]]) -> list[str]:
    """Union of the records' keys, in first-seen order."""
    seen: dict[str, None] = {}
    for record in records:
        seen.update(dict.fromkeys(record))
    return list(seen)


class OutputManager:
    """Holds the resolved format and the stdout/stderr consoles.

    Args:
        format: Requested data format; ``AUTO`` is resolved here.
        no_color: Force colour off.
        quiet: Drop :meth:`info`, :meth:`success` and :meth:`suggest` messages.
        verbose: Show :meth:`debug` messages.
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.AUTO,
        no_color: bool = False,
        quiet: bool = False,
        verbose: bool = False,
    ) -> None:
        self._no_color = no_color or _colour_disabled_by_env()
        self._quiet = quiet
        self._verbose = verbose
        if format is OutputFormat.AUTO:
            rich_ok = _is_tty() and not self._no_color
            format = OutputFormat.RICH if rich_ok else OutputFormat.PLAIN
        self._format = format

        self._stdout = Console(
            file=sys.stdout,
            no_color=self._no_color,
            force_terminal=format is OutputFormat.RICH,
        )
        self._stderr = Console(file=sys.stderr, no_color=self._no_color, stderr=True)

    @property
    def format(self) -> OutputFormat:
        return self._format

    @property
    def is_quiet(self) -> bool:
        return self._quiet

    @property
    def is_verbose(self) -> bool:
        return self._verbose

    @property
    def stderr_console(self) -> Console:
        return self._stderr

    # --- stdout ---

    def print_data(self, text: str) -> None:
        print(text, file=sys.stdout, flush=True)

    def format_response(self, data: Any) -> None:
        """Write one result object (a dict, list or scalar) to stdout."""
        if self._format is OutputFormat.JSON:
            self.print_data(_to_json(data))
        elif self._format is OutputFormat.RICH:
            self._stdout.print(Syntax(_to_json(data), "json", theme="monokai", word_wrap=True))
        elif isinstance(data, dict):
            for key, value in data.items():
                self.print_data(f"{key}\t{_cell(value)}")
        elif isinstance(data, list):
            for item in data:
                row = item.values() if isinstance(item, dict) else [item]
                self.print_data("\t".join(_cell(v) for v in row))
        else:
            self.print_data(str(data))

    def print_records(self, records: list[dict[str, Any]], title: Optional[str] = None) -> None:
        """Write flat records as a JSON array, TSV with a header row, or a Rich table."""
        if self._format is OutputFormat.JSON:
            self.print_data(_to_json(records))
            return

        columns = _columns(records)
        rows = [[_cell(record.get(col)) for col in columns] for record in records]
        if self._format is OutputFormat.PLAIN:
            for line in [columns, *rows]:
                self.print_data("\t".join(line))
            return

        table = Table(*columns, title=title, header_style="bold cyan")
        for row in rows:
            table.add_row(*row)
        self._stdout.print(table)

    # --- stderr ---

    def info(self, message: str) -> None:
        if not self._quiet:
            self._note(message)

    def success(self, message: str) -> None:
        if not self._quiet:
            self._note(message, style="green")

    def suggest(self, message: str) -> None:
        if not self._quiet:
            self._note(f"→ {message}", style="dim")

    def debug(self, message: str) -> None:
        if self._verbose:
            self._note(f"[debug] {message}", style="dim")

    def warning(self, message: str) -> None:
        """Always shown, even with ``--quiet``."""
        self._labelled("Warning", message, "yellow")

    def error(self, message: str) -> None:
        """Always shown, even with ``--quiet``."""
        self._labelled("Error", message, "bold red")

    def _note(self, message: str, style: Optional[str] = None) -> None:
        if self._no_color:
            print(message, file=sys.stderr, flush=True)
        elif style:
            self._stderr.print(f"[{style}]{escape(message)}[/{style}]", highlight=False)
        else:
            self._stderr.print(escape(message), highlight=False)

    def _labelled(self, label: str, message: str, style: str) -> None:
        if self._no_color:
            print(f"{label}: {message}", file=sys.stderr, flush=True)
        else:
            self._stderr.print(f"[{style}]{label}:[/{style}] {escape(message)}")


def configure_logging(output: OutputManager) -> None:
    """Send ``qbrest.*`` log records to *output*'s stderr console.

    DEBUG and up with ``--verbose``, WARNING and up otherwise. Calling it
    again replaces the previous handler.
    """
    logger = logging.getLogger("qbrest")
    for old in list(logger.handlers):
        logger.removeHandler(old)
    logger.addHandler(
        RichHandler(console=output.stderr_console, show_time=False, show_path=False, markup=False)
    )
    logger.setLevel(logging.DEBUG if output.is_verbose else logging.WARNING)
    logger.propagate = False


# --- Process-wide instance ---

_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """The installed :class:`OutputManager`; a default one is created on first use."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    global _output
    _output = output


def reset_output() -> None:
    """Forget the installed manager (tests use this between CLI invocations)."""
    global _output
    _output = None


def format_response(data: Any) -> None:
    get_output().format_response(data)


def print_records(records: list[dict[str, Any]], title: Optional[str] = None) -> None:
    get_output().print_records(records, title)


def info(message: str) -> None:
    get_output().info(message)


def success(message: str) -> None:
    get_output().success(message)


def suggest(message: str) -> None:
    get_output().suggest(message)


def debug(message: str) -> None:
    get_output().debug(message)


def warning(message: str) -> None:
    get_output().warning(message)


def error(message: str) -> None:
    get_output().error(message)
