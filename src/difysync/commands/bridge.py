"""Bridge command -- run the extension poller without a browser extension.

``dify bridge cookies.txt`` reads session cookies from a Netscape/Mozilla
cookie export and wakes the poller every few seconds. While a ``dify login``
is waiting in another terminal, the first wake that finds a complete session
hands it over.

Example::

    dify login                       # terminal 1
    dify bridge ~/cookies.txt        # terminal 2
    dify bridge ~/cookies.txt --once # single attempt, exit 1 on failure
"""

from __future__ import annotations

from pathlib import Path

import typer

from difysync.bridge import (
    DEFAULT_RELAY_URL,
    POLL_INTERVAL,
    CookieJarSource,
    ExtensionPoller,
    PollScheduler,
)
from difysync.output import debug, error, info, success


def bridge_command(
    cookie_file: Path = typer.Argument(help="Cookie export in cookies.txt format."),
    relay: str = typer.Option(DEFAULT_RELAY_URL, "--relay", help="Relay server base URL."),
    interval: float = typer.Option(
        POLL_INTERVAL, "--interval", min=0.1, help="Seconds between polls."
    ),
    once: bool = typer.Option(False, "--once", help="Poll once and exit."),
) -> None:
    """Hand browser cookies from a cookie export to a waiting ``dify login``."""
    if not cookie_file.is_file():
        error(f"Not found: {cookie_file}")
        raise typer.Exit(code=1)

    source = CookieJarSource(cookie_file)

    with ExtensionPoller(source, relay_url=relay) as poller:
        if once:
            if not poller.poll():
                error("No login waiting or no session in cookies")
                raise typer.Exit(code=1)
            success("Tokens sent")
            return

        def _on_result(sent: bool) -> None:
            if sent:
                success("Tokens sent")
            else:
                debug("bridge: nothing sent")

        info(f"Polling {relay} every {interval:g}s (Ctrl-C to stop)")
        # Ctrl-C exits through the SIGINT handler; the with blocks stop and close
        with PollScheduler(poller, interval=interval, on_result=_on_result) as scheduler:
            scheduler.wait()
