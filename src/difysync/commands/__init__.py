"""Built-in CLI commands for difysync.

* :mod:`~difysync.commands.auth` -- ``login`` and ``logout``.
* :mod:`~difysync.commands.config` -- ``config`` and ``config:set``.
* :mod:`~difysync.commands.apps` -- ``import``, ``export``, ``list``,
  ``update`` and ``delete``.
* :mod:`~difysync.commands.bridge` -- ``bridge``, the extension poller run
  from a cookie export.

Each module exports plain callback functions that :mod:`difysync.app`
registers on the root Typer application.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

import typer

from difysync.config import ConfigResolver
from difysync.exceptions import DifySyncError
from difysync.models import StoredConfig
from difysync.output import error


@contextmanager
def report_failure(action: str) -> Iterator[None]:
    """Print ``<action> failed: <reason>`` and exit for any :class:`DifySyncError`."""
    try:
        yield
    except DifySyncError as exc:
        error(f"{action} failed: {exc}")
        raise typer.Exit(code=exc.exit_code) from None


def require_login(resolver: ConfigResolver) -> StoredConfig:
    """Return the stored config, exiting with code 1 when no session is stored."""
    cfg = resolver.load()
    if not resolver.has_credentials(cfg):
        error("Not logged in. Run 'dify login' first.")
        raise typer.Exit(code=1)
    return cfg


__all__ = ["report_failure", "require_login"]
