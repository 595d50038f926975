"""Shared test fixtures for qbrest.

Provides isolated config environments, output state management, sample
QuickBase payloads and a CLI runner. These fixtures are automatically
discovered by pytest and available to all test modules without explicit
imports.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import pytest

from qbrest.models import Profile, RequestConfig
from qbrest.output import OutputFormat, OutputManager, reset_output, set_output


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time. When Typer's CliRunner redirects those streams during
    a test and the test finishes, the cached references become stale
    ("I/O operation on closed file"). Resetting forces a fresh manager
    to be created on next use.
    """
    yield
    reset_output()


@pytest.fixture(autouse=True)
def _reset_qbrest_logger() -> None:
    """Detach handlers installed by ``configure_logging`` during a test."""
    yield
    logger = logging.getLogger("qbrest")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


# ---------------------------------------------------------------------------
# QuickBase payload fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def query_payload() -> dict[str, Any]:
    """A two-record ``records/query`` response selecting fields 3 and 6."""
    return {
        "data": [
            {"3": {"value": 1}, "6": {"value": "Bob"}},
            {"3": {"value": 2}, "6": {"value": "Eve"}},
        ],
        "fields": [
            {"id": 3, "label": "Record ID#", "type": "recordid"},
            {"id": 6, "label": "Name", "type": "text"},
        ],
        "metadata": {"totalRecords": 2, "numRecords": 2, "numFields": 2, "skip": 0},
    }


# ---------------------------------------------------------------------------
# Profile fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def sample_profile() -> Profile:
    """A profile for the ``acme`` realm with relaxed request settings."""
    return Profile(
        name="acme",
        realm="acme.quickbase.com",
        app_token="env:TEST_QB_APP_TOKEN",
        request=RequestConfig(timeout=5, verify_ssl=False),
    )


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Forces XDG path resolution, points XDG_CONFIG_HOME, XDG_CACHE_HOME and
    XDG_DATA_HOME at subdirectories of tmp_path, clears all QBREST_*
    environment variables and changes the working directory to tmp_path.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setattr("qbrest.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))

    for var in ["QBREST_PROFILE", "QBREST_REALM"]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a PLAIN-format, quiet OutputManager for the test."""
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
