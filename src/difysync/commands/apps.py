"""Application commands -- move DSL documents to and from the platform.

* ``dify import <file>`` -- create an application from a DSL file (or
  overwrite one with ``--app-id``).
* ``dify export <appId> [output]`` -- write an application's DSL to disk.
* ``dify list`` -- list applications in the workspace.
* ``dify update <appId> <file>`` -- overwrite an application from a file.
* ``dify delete <appId>`` -- delete an application after confirmation.

Every command needs a stored session (``dify login``) and exits with code 1
on any failure.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from difysync.client import PlatformClient, import_status_message
from difysync.commands import report_failure, require_login
from difysync.config import ConfigResolver
from difysync.dsl import load_dsl_file
from difysync.exceptions import DifySyncError
from difysync.models import ImportResponse
from difysync.output import info, print_table, success, warning

LIST_LIMIT = 100


def _report_import(result: ImportResponse) -> None:
    success(import_status_message(result.status))
    if result.app_id:
        info(f"App ID: {result.app_id}")
    if result.warning:
        warning(result.warning)


def import_command(
    file: Path = typer.Argument(help="DSL file (.yml/.yaml) to import."),
    app_id: Optional[str] = typer.Option(
        None, "--app-id", help="Overwrite this existing application."
    ),
    name: Optional[str] = typer.Option(None, "--name", help="Name for the new application."),
) -> None:
    """Import a DSL file as an application.

    Example::

        dify import ./support-bot.yml
        dify import ./support-bot.yml --app-id 3f2a...
    """
    resolver = ConfigResolver()
    cfg = require_login(resolver)

    with report_failure("Import"):
        document = load_dsl_file(file)
        with PlatformClient(cfg) as client:
            result = client.import_and_confirm(document.content, app_id=app_id, name=name)

    _report_import(result)


def export_command(
    app_id: str = typer.Argument(help="Application ID."),
    output: Optional[Path] = typer.Argument(
        None, help="Output file (default: <appId>.yaml)."
    ),
    secret: bool = typer.Option(
        False, "--secret", help="Include secret environment variables."
    ),
) -> None:
    """Export an application's DSL to a file."""
    resolver = ConfigResolver()
    cfg = require_login(resolver)
    target = output or Path(f"{app_id}.yaml")

    with report_failure("Export"):
        with PlatformClient(cfg) as client:
            content = client.export_app(app_id, include_secret=secret)
        try:
            target.write_text(content, encoding="utf-8")
        except OSError as exc:
            raise DifySyncError(f"Cannot write {target}: {exc}") from exc

    success(f"Exported: {target}")


def list_command() -> None:
    """List applications in the current workspace."""
    resolver = ConfigResolver()
    cfg = require_login(resolver)

    with report_failure("List"):
        with PlatformClient(cfg) as client:
            page = client.list_apps(limit=LIST_LIMIT)

    if not page.data:
        info("No apps")
        return

    rows = [[app.id, app.mode, app.name] for app in page.data]
    print_table(["ID", "Mode", "Name"], rows, title=f"Apps ({len(rows)})")


def update_command(
    app_id: str = typer.Argument(help="Application ID to overwrite."),
    file: Path = typer.Argument(help="DSL file (.yml/.yaml)."),
) -> None:
    """Overwrite an existing application from a DSL file."""
    resolver = ConfigResolver()
    cfg = require_login(resolver)

    with report_failure("Update"):
        document = load_dsl_file(file)
        with PlatformClient(cfg) as client:
            result = client.import_and_confirm(document.content, app_id=app_id)

    _report_import(result)


def delete_command(
    app_id: str = typer.Argument(help="Application ID to delete."),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt."),
) -> None:
    """Delete an application.

    The application's name is fetched first so the prompt shows what is about
    to be removed. Declining the prompt exits with code 0.
    """
    resolver = ConfigResolver()
    cfg = require_login(resolver)

    with report_failure("Delete"):
        with PlatformClient(cfg) as client:
            app = client.get_app(app_id)
            label = app.name or app_id
            if not yes and not typer.confirm(f"Delete '{label}'?", default=False):
                info("Cancelled")
                raise typer.Exit(code=0)
            client.delete_app(app_id)

    success(f"Deleted: {label}")
