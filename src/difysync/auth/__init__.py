"""Console authentication for difysync.

The platform authenticates console requests with session cookies. This
package obtains them without asking the user to copy anything by hand:

* :class:`~difysync.auth.relay.RelayServer` -- loopback server that the
  browser extension posts the session cookies to during ``dify login``.
* :func:`~difysync.auth.browser.open_browser` -- launches the login page.
* :func:`~difysync.auth.refresh.refresh_tokens` -- trades a refresh token
  for a new session.

See Also:
    :mod:`difysync.bridge` for the extension side of the relay protocol.
"""

from difysync.auth.browser import open_browser
from difysync.auth.refresh import refresh_tokens
from difysync.auth.relay import LOGIN_TIMEOUT, RELAY_HOST, RELAY_PORT, RelayServer

__all__ = [
    "LOGIN_TIMEOUT",
    "RELAY_HOST",
    "RELAY_PORT",
    "RelayServer",
    "open_browser",
    "refresh_tokens",
]
