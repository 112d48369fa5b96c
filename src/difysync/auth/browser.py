"""Open a URL in the user's default browser.

The browser is launched through the operating system's own "open" command in
a detached process that is never waited on, so a slow or hanging browser
start cannot block the login flow.
"""

from __future__ import annotations

import subprocess
import sys


def browser_command(url: str, platform: str | None = None) -> list[str]:
    """Return the argv that opens *url* on *platform* (``sys.platform`` by default)."""
    platform = platform or sys.platform
    if platform == "darwin":
        return ["open", url]
    if platform == "win32":
        # The empty string is the window title expected by ``start``.
        return ["cmd", "/c", "start", "", url]
    return ["xdg-open", url]


def open_browser(url: str) -> None:
    """Spawn a detached process that opens *url*.

    Raises:
        OSError: If the opener executable cannot be started.
    """
    kwargs: dict[str, object] = {
        "stdin": subprocess.DEVNULL,
        "stdout": subprocess.DEVNULL,
        "stderr": subprocess.DEVNULL,
        "close_fds": True,
    }
    if sys.platform == "win32":
        kwargs["creationflags"] = subprocess.DETACHED_PROCESS  # type: ignore[attr-defined]
    else:
        kwargs["start_new_session"] = True
    subprocess.Popen(browser_command(url), **kwargs)  # type: ignore[call-overload]
