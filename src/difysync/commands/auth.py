"""Auth commands -- capture and forget the console session.

``dify login`` starts the local relay server, opens the platform in the
browser and waits (up to ten minutes) for the browser extension to hand over
the session cookies. The tokens are then written to the active ``.difyrc``.

Typical workflow::

    dify config:set url https://dify.example.com
    dify login
    dify logout
"""

from __future__ import annotations

from difysync.auth.relay import RelayServer
from difysync.commands import report_failure
from difysync.config import ConfigResolver
from difysync.output import info, success, suggest


def _announce(url: str) -> None:
    info(f"Login to Dify: {url}")
    info("Waiting for browser extension...")


def login_command() -> None:
    """Login via the browser extension.

    Exits with code 1 if the relay port is already in use (another login is
    running) or if no session arrives before the deadline.
    """
    resolver = ConfigResolver()
    cfg = resolver.load()

    relay = RelayServer(cfg.url, on_ready=_announce)
    with report_failure("Auth"):
        tokens = relay.run()

    resolver.save_tokens(tokens)
    success("Authenticated")
    suggest(f"Saved to {resolver.path}")


def logout_command() -> None:
    """Clear stored credentials (the platform URL is kept)."""
    resolver = ConfigResolver()
    resolver.clear()
    success("Logged out")
