"""Local relay server -- receive console session tokens from the browser extension.

The Dify console keeps its session in browser cookies that the CLI cannot
read. During ``dify login`` this module runs a short-lived HTTP server on the
loopback interface; the companion browser extension polls it, and once the
user is logged in it posts the session cookies back:

============  ==================  =========================================
Method        Path                Response
============  ==================  =========================================
``GET``       ``/config``         ``{"url": <login url>}``
``POST``      ``/submit-tokens``  ``{"success": bool, "error"?: str}``
``OPTIONS``   any                 ``204`` (CORS preflight)
other         other               ``404 Not Found``
============  ==================  =========================================

Negative submission results (missing tokens, malformed body) are reported
in-band with HTTP 200 so the extension never has to tell transport errors
from protocol errors. The first valid submission trips a one-way latch;
later submissions get a neutral ``{"success": true}`` "done" answer.

A session ends in exactly one of two ways: tokens are returned from
:meth:`RelayServer.run`, or :class:`~difysync.exceptions.LoginTimeoutError`
is raised after the deadline. In both cases the listener is closed.
"""

from __future__ import annotations

import json
import logging
import threading
import time
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Callable, Optional
from urllib.parse import urlparse

from difysync.auth.browser import open_browser
from difysync.exceptions import AuthError, LoginTimeoutError
from difysync.models import RelayState, SessionTokens

logger = logging.getLogger(__name__)

RELAY_HOST = "127.0.0.1"
RELAY_PORT = 8765
LOGIN_TIMEOUT = 10 * 60.0
GRACE_DELAY = 0.1
REQUEST_TIMEOUT = 5.0

_CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}


class _RelayHTTPServer(ThreadingHTTPServer):
    """``ThreadingHTTPServer`` carrying a reference to the owning :class:`RelayServer`.

    Each connection gets its own daemon thread, so a stalled client can
    neither block other requests nor hold up :meth:`shutdown`.
    """

    daemon_threads = True
    block_on_close = False

    def __init__(self, address: tuple[str, int], relay: RelayServer) -> None:
        self.relay = relay
        super().__init__(address, RelayRequestHandler)


class RelayRequestHandler(BaseHTTPRequestHandler):
    """Maps HTTP requests onto :class:`RelayServer` operations."""

    server: _RelayHTTPServer
    server_version = "difysync-relay"
    # stalled reads (idle socket, short body) fail instead of hanging
    timeout = REQUEST_TIMEOUT

    def do_OPTIONS(self) -> None:
        self._send(204)

    def do_GET(self) -> None:
        if urlparse(self.path).path == "/config":
            self._send_json(self.server.relay.config_payload())
        else:
            self._not_found()

    def do_POST(self) -> None:
        if urlparse(self.path).path != "/submit-tokens":
            self._not_found()
            return
        try:
            length = int(self.headers.get("Content-Length") or 0)
        except ValueError:
            length = 0
        body = self.rfile.read(length) if length > 0 else b""
        self._send_json(self.server.relay.handle_submission(body))

    def do_HEAD(self) -> None:
        self._send(404, content_type="text/plain")

    def do_PUT(self) -> None:
        self._not_found()

    def do_PATCH(self) -> None:
        self._not_found()

    def do_DELETE(self) -> None:
        self._not_found()

    def _not_found(self) -> None:
        self._send(404, b"Not Found", "text/plain")

    def _send_json(self, payload: dict[str, Any]) -> None:
        self._send(200, json.dumps(payload).encode("utf-8"), "application/json")

    def _send(self, status: int, body: bytes = b"", content_type: Optional[str] = None) -> None:
        self.send_response(status)
        for key, value in _CORS_HEADERS.items():
            self.send_header(key, value)
        if content_type:
            self.send_header("Content-Type", content_type)
        if status != 204:
            self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        if body:
            self.wfile.write(body)

    def log_message(self, format: str, *args: Any) -> None:
        logger.debug("relay: " + format, *args)


class RelayServer:
    """One login session: bind, open the browser, wait for tokens or the deadline.

    Args:
        target_url: Platform URL the extension should read cookies for. Also
            the page opened in the browser.
        host: Interface to bind. Always loopback in production.
        port: Fixed, well-known port the extension polls. A busy port is a
            fatal error; there is no fallback port.
        timeout: Seconds from start until the session expires. Traffic does
            not extend it.
        grace_delay: Seconds to keep serving after the latch trips so the
            success response reaches the extension before the socket closes.
        opener: Callable invoked with *target_url* once the port is bound.
            Failures are logged and otherwise ignored.
        on_ready: Optional callable invoked with *target_url* once the port
            is bound, before the browser is opened.

    Example::

        tokens = RelayServer("https://cloud.dify.ai").run()
    """

    def __init__(
        self,
        target_url: str,
        host: str = RELAY_HOST,
        port: int = RELAY_PORT,
        timeout: float = LOGIN_TIMEOUT,
        grace_delay: float = GRACE_DELAY,
        opener: Optional[Callable[[str], None]] = open_browser,
        on_ready: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.target_url = target_url
        self.host = host
        self.port = port
        self.timeout = timeout
        self.grace_delay = grace_delay
        self._opener = opener
        self._on_ready = on_ready

        self._lock = threading.Lock()
        self._finished = threading.Event()
        self._state = RelayState.LISTENING
        self._tokens: Optional[SessionTokens] = None
        self._deadline: Optional[float] = None
        self._httpd: Optional[_RelayHTTPServer] = None

    @property
    def state(self) -> RelayState:
        """Current session state."""
        return self._state

    @property
    def deadline(self) -> Optional[float]:
        """``time.monotonic()`` value at which the session expires, once started."""
        return self._deadline

    @property
    def address(self) -> str:
        """Base URL of the relay, e.g. ``http://127.0.0.1:8765``."""
        return f"http://{self.host}:{self.port}"

    # ------------------------------------------------------------------ #
    # Protocol operations (called from the request handler)
    # ------------------------------------------------------------------ #

    def config_payload(self) -> dict[str, str]:
        """Body of ``GET /config``."""
        return {"url": self.target_url}

    def handle_submission(self, body: bytes) -> dict[str, Any]:
        """Process a ``POST /submit-tokens`` body and return the response payload.

        Only the first valid submission changes state; it stores the tokens,
        trips the latch and wakes :meth:`run`.
        """
        with self._lock:
            if self._state is not RelayState.LISTENING:
                return {"success": True, "message": "Done"}

            try:
                payload = json.loads(body.decode("utf-8"))
            except (UnicodeDecodeError, json.JSONDecodeError):
                return {"success": False, "error": "Invalid JSON"}
            if not isinstance(payload, dict):
                return {"success": False, "error": "Invalid JSON"}

            access = payload.get("accessToken")
            refresh = payload.get("refreshToken")
            csrf = payload.get("csrfToken")
            if not isinstance(access, str) or not access:
                return {"success": False, "error": "Missing tokens"}
            if not isinstance(refresh, str) or not refresh:
                return {"success": False, "error": "Missing tokens"}

            self._tokens = SessionTokens(
                access_token=access,
                refresh_token=refresh,
                csrf_token=csrf if isinstance(csrf, str) else "",
            )
            self._state = RelayState.SATISFIED

        logger.debug("relay: credentials received")
        self._finished.set()
        return {"success": True}

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    def run(self) -> SessionTokens:
        """Serve until tokens arrive or the deadline passes.

        Returns:
            The submitted :class:`~difysync.models.SessionTokens`.

        Raises:
            AuthError: If the port cannot be bound.
            LoginTimeoutError: If no valid submission arrives within
                :attr:`timeout` seconds.
        """
        try:
            self._httpd = _RelayHTTPServer((self.host, self.port), self)
        except OSError as exc:
            raise AuthError(
                f"Cannot start login server on {self.host}:{self.port}: {exc}"
            ) from exc
        # port 0 binds an ephemeral port
        self.port = self._httpd.server_address[1]

        self._deadline = time.monotonic() + self.timeout
        thread = threading.Thread(
            target=self._httpd.serve_forever,
            kwargs={"poll_interval": 0.05},
            name="difysync-relay",
            daemon=True,
        )
        thread.start()
        logger.debug("relay: listening on %s", self.address)

        try:
            if self._on_ready is not None:
                self._on_ready(self.target_url)
            self._launch_browser()

            self._finished.wait(max(0.0, self._deadline - time.monotonic()))
            with self._lock:
                if self._state is RelayState.LISTENING:
                    self._state = RelayState.EXPIRED
                state = self._state

            if state is RelayState.SATISFIED:
                time.sleep(self.grace_delay)
        finally:
            self._close(thread)

        if state is RelayState.EXPIRED:
            minutes = self.timeout / 60
            raise LoginTimeoutError(f"Login timed out ({minutes:g} minutes)")

        assert self._tokens is not None
        return self._tokens

    def _launch_browser(self) -> None:
        if self._opener is None:
            return
        try:
            self._opener(self.target_url)
        except Exception as exc:
            logger.warning("Could not open browser: %s", exc)

    def _close(self, thread: threading.Thread) -> None:
        assert self._httpd is not None
        self._httpd.shutdown()
        self._httpd.server_close()
        thread.join(timeout=5)
        logger.debug("relay: closed")
