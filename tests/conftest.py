"""Shared test fixtures for difysync.

Provides reusable fixtures for isolating the ``.difyrc`` lookup, managing
output state, reserving loopback ports, and running CLI commands. These
fixtures are automatically discovered by pytest and available to all test
modules without explicit imports.
"""

from __future__ import annotations

import json
import logging
import socket
from pathlib import Path

import pytest

from difysync.output import reset_output


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time.  When Typer's CliRunner redirects those streams during
    a test and the test finishes, the cached references become stale
    ("I/O operation on closed file").  Resetting forces a fresh manager
    to be created on next use.  Log handlers installed by the root
    callback hold the same stale streams and are removed too.
    """
    yield
    reset_output()
    logger = logging.getLogger("difysync")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate ``.difyrc`` resolution to a temporary directory.

    The working directory becomes ``tmp_path/project`` and the home
    directory ``tmp_path/home``; ``DIFY_CONFIG`` is cleared and
    ``XDG_DATA_HOME`` points into ``tmp_path`` so crash logs never touch the
    real user directories.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    project = tmp_path / "project"
    home = tmp_path / "home"
    project.mkdir()
    home.mkdir()

    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.delenv("DIFY_CONFIG", raising=False)
    monkeypatch.chdir(project)
    return tmp_path


@pytest.fixture
def logged_in(isolated_config: Path) -> Path:
    """Write a project-local ``.difyrc`` holding a complete session.

    Returns:
        Path of the written config file.
    """
    path = isolated_config / "project" / ".difyrc"
    path.write_text(
        json.dumps(
            {
                "url": "https://dify.example.com",
                "accessToken": "acc-1",
                "refreshToken": "ref-1",
                "csrfToken": "csrf-1",
            }
        ),
        encoding="utf-8",
    )
    return path


# ---------------------------------------------------------------------------
# Network helpers
# ---------------------------------------------------------------------------


@pytest.fixture
def free_port() -> int:
    """A loopback port that was free a moment ago."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner.

    Returns a CliRunner instance that captures stdout/stderr and
    provides a consistent interface for invoking Typer apps in tests.
    """
    from typer.testing import CliRunner

    return CliRunner()
