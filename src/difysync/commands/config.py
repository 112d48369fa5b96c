"""Config commands -- view and modify ``.difyrc``.

``dify config`` prints which file is active, the platform URL and whether a
session is stored. ``dify config:set url <value>`` changes the URL; ``url``
is the only settable key because tokens are written by ``dify login``.
"""

from __future__ import annotations

import json
from urllib.parse import urlparse

import typer

from difysync.commands import report_failure
from difysync.config import ConfigResolver
from difysync.exceptions import ConfigError
from difysync.output import OutputFormat, get_output, print_data, success

SETTABLE_KEYS = ("url",)


def config_show_command() -> None:
    """Show the active configuration."""
    summary = ConfigResolver().describe()
    if get_output().format == OutputFormat.JSON:
        print_data(json.dumps(summary, indent=2))
        return
    print_data(f"Config: {summary['config']}")
    print_data(f"URL:    {summary['url']}")
    print_data(f"Auth:   {'yes' if summary['authenticated'] else 'no'}")


def config_set_command(
    key: str = typer.Argument(help="Config key (only 'url' is supported)."),
    value: str = typer.Argument(help="Value to set."),
) -> None:
    """Set a configuration value.

    Example::

        dify config:set url https://dify.example.com
    """
    with report_failure("Config"):
        if key not in SETTABLE_KEYS:
            raise ConfigError(f"Unknown: {key}")
        parsed = urlparse(value)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ConfigError(f"Invalid URL: {value}")
        ConfigResolver().set_url(value)
    success(f"URL: {value}")
