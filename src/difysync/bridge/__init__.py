"""Browser-side agent of the login relay protocol.

* :class:`~difysync.bridge.poller.ExtensionPoller` -- one probe/extract/submit
  cycle against the relay server.
* :class:`~difysync.bridge.poller.PollScheduler` -- wakes the poller on a
  fixed interval.
* :class:`~difysync.bridge.cookies.CookieJarSource` -- cookie store backed by
  a ``cookies.txt`` export.
"""

from difysync.bridge.cookies import CookieJarSource, CookieSource, extract_tokens
from difysync.bridge.poller import (
    DEFAULT_RELAY_URL,
    POLL_INTERVAL,
    ExtensionPoller,
    PollScheduler,
)

__all__ = [
    "DEFAULT_RELAY_URL",
    "POLL_INTERVAL",
    "CookieJarSource",
    "CookieSource",
    "ExtensionPoller",
    "PollScheduler",
    "extract_tokens",
]
