"""Extension poller -- discover a running login relay and hand it the session cookies.

This is the browser side of the relay protocol in :mod:`difysync.auth.relay`.
The poller cannot be reached by the CLI, so it asks instead: on every wake it
probes ``GET /config``. Connection refused is the normal answer when no login
is in progress and is ignored. When the relay answers, the poller reads the
cookies for the returned URL and, if a complete session is present, posts
them to ``/submit-tokens``.

A cooldown after each accepted submission keeps the poller from re-reading
cookies and re-posting while the relay is shutting down. A rejected
submission does not start the cooldown, so the next wake tries again.

Apart from the time of the last accepted submission the poller keeps no state
between wakes, and no error ever leaves :meth:`ExtensionPoller.poll`.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional
from urllib.parse import urlparse

import httpx

from difysync.auth.relay import RELAY_HOST, RELAY_PORT
from difysync.bridge.cookies import CookieSource, extract_tokens

logger = logging.getLogger(__name__)

DEFAULT_RELAY_URL = f"http://{RELAY_HOST}:{RELAY_PORT}"
CONFIG_TIMEOUT = 1.0
COOLDOWN = 3.0
POLL_INTERVAL = 3.0


class ExtensionPoller:
    """One wake cycle of the extension: probe, extract, submit.

    Args:
        cookies: Where session cookies are read from.
        relay_url: Base URL of the relay server.
        cooldown: Minimum seconds between two accepted submissions.
        config_timeout: Timeout for the ``/config`` probe.
        client: Optional :class:`httpx.Client` (tests inject a mock transport).
        clock: Monotonic time source used for the cooldown.
    """

    def __init__(
        self,
        cookies: CookieSource,
        relay_url: str = DEFAULT_RELAY_URL,
        cooldown: float = COOLDOWN,
        config_timeout: float = CONFIG_TIMEOUT,
        client: Optional[httpx.Client] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._cookies = cookies
        self._relay_url = relay_url.rstrip("/")
        self._cooldown = cooldown
        self._config_timeout = config_timeout
        self._client = client or httpx.Client(trust_env=False)
        self._owns_client = client is None
        self._clock = clock
        self._last_sent: Optional[float] = None

    @property
    def last_sent(self) -> Optional[float]:
        """Clock value of the last accepted submission, or ``None``."""
        return self._last_sent

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> ExtensionPoller:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def poll(self) -> bool:
        """Run one wake cycle.

        Returns:
            ``True`` if tokens were submitted and accepted during this cycle.
        """
        url = self.fetch_target()
        if url is None:
            return False

        now = self._clock()
        if self._last_sent is not None and now - self._last_sent < self._cooldown:
            return False

        if self.submit(url):
            self._last_sent = now
            return True
        return False

    def fetch_target(self) -> Optional[str]:
        """Ask the relay which URL to read cookies for; ``None`` if no relay answers."""
        try:
            response = self._client.get(
                f"{self._relay_url}/config", timeout=self._config_timeout
            )
            if not response.is_success:
                return None
            url = response.json()["url"]
        except (httpx.HTTPError, ValueError, KeyError, TypeError):
            return None
        return url if isinstance(url, str) and url else None

    def submit(self, url: str) -> bool:
        """Read the session cookies for *url* and post them to the relay.

        Returns:
            ``True`` if the relay answered with a truthy ``success``. ``False``
            when tokens are missing or anything goes wrong.
        """
        try:
            host = urlparse(url).hostname or ""
            merged = [
                *self._cookies.cookies_for_domain(host),
                *self._cookies.cookies_for_url(url),
            ]
            tokens = extract_tokens(merged)
            if not tokens["accessToken"] or not tokens["refreshToken"]:
                return False

            response = self._client.post(
                f"{self._relay_url}/submit-tokens", json=tokens, timeout=None
            )
            result = response.json()
        except Exception as exc:  # the extension has no error channel
            logger.debug("bridge: submission attempt failed: %s", exc)
            return False

        accepted = isinstance(result, dict) and bool(result.get("success"))
        logger.debug("bridge: submission %s", "accepted" if accepted else "rejected")
        return accepted


class PollScheduler:
    """Wake an :class:`ExtensionPoller` on a fixed interval.

    Stands in for the browser's alarm API: one cycle runs right after
    :meth:`start`, then a timer is re-armed every *interval* seconds. A cycle
    never overlaps the previous one.

    Args:
        poller: The poller to wake.
        interval: Seconds between wakes.
        on_result: Optional callback receiving each cycle's result.
    """

    def __init__(
        self,
        poller: ExtensionPoller,
        interval: float = POLL_INTERVAL,
        on_result: Optional[Callable[[bool], None]] = None,
    ) -> None:
        self._poller = poller
        self._interval = interval
        self._on_result = on_result
        self._lock = threading.Lock()
        self._stopped = threading.Event()
        self._timer: Optional[threading.Timer] = None

    def start(self) -> None:
        self._stopped.clear()
        self._arm(0)

    def stop(self) -> None:
        self._stopped.set()
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until :meth:`stop` is called; returns False on timeout."""
        return self._stopped.wait(timeout)

    def __enter__(self) -> PollScheduler:
        self.start()
        return self

    def __exit__(self, *args: object) -> None:
        self.stop()

    def _arm(self, delay: float) -> None:
        with self._lock:
            if self._stopped.is_set():
                return
            self._timer = threading.Timer(delay, self._wake)
            self._timer.daemon = True
            self._timer.start()

    def _wake(self) -> None:
        try:
            result = self._poller.poll()
            if self._on_result is not None:
                self._on_result(result)
        finally:
            self._arm(self._interval)
