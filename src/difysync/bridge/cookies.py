"""Cookie sources and session-token extraction for the extension poller.

The browser extension reads cookies through the browser's cookie API. Here
that API is modelled by the :class:`CookieSource` protocol with two lookups,
matching the two queries the extension makes:

* by URL -- cookies the browser would send with a request to that URL;
* by domain -- cookies whose domain is the given host or one of its
  subdomains.

:class:`CookieJarSource` implements the protocol over a Netscape
``cookies.txt`` export, which most browsers can produce through an
extension, so the poller can also run outside the browser.
"""

from __future__ import annotations

from http.cookiejar import Cookie, MozillaCookieJar
from pathlib import Path
from typing import Iterable, Protocol
from urllib.parse import urlparse

ACCESS_TOKEN_NAMES = ("access_token", "access_token_v2")
REFRESH_TOKEN_NAMES = ("refresh_token", "refresh_token_v2")
CSRF_TOKEN_NAMES = ("csrf_token",)


class CookieSource(Protocol):
    """Read-only view of a browser cookie store."""

    def cookies_for_url(self, url: str) -> Iterable[tuple[str, str]]:
        """Return ``(name, value)`` pairs that would be sent to *url*."""
        ...

    def cookies_for_domain(self, domain: str) -> Iterable[tuple[str, str]]:
        """Return ``(name, value)`` pairs set for *domain* or its subdomains."""
        ...


def extract_tokens(cookies: Iterable[tuple[str, str]]) -> dict[str, str]:
    """Pick the session tokens out of a cookie set.

    Both the legacy and the ``_v2`` cookie names are recognised for the access
    and refresh tokens. When a role appears more than once, the last cookie
    wins. Missing roles come back as empty strings.

    Returns:
        The ``/submit-tokens`` payload:
        ``{"accessToken": ..., "refreshToken": ..., "csrfToken": ...}``.
    """
    tokens = {"accessToken": "", "refreshToken": "", "csrfToken": ""}
    for name, value in cookies:
        if name in ACCESS_TOKEN_NAMES:
            tokens["accessToken"] = value
        if name in REFRESH_TOKEN_NAMES:
            tokens["refreshToken"] = value
        if name in CSRF_TOKEN_NAMES:
            tokens["csrfToken"] = value
    return tokens


def _cookie_domain(cookie: Cookie) -> str:
    return cookie.domain.lstrip(".").lower()


def _path_matches(request_path: str, cookie_path: str) -> bool:
    """RFC 6265 path-match: same path, or a prefix ending at a ``/`` boundary."""
    if request_path == cookie_path:
        return True
    if not request_path.startswith(cookie_path):
        return False
    return cookie_path.endswith("/") or request_path[len(cookie_path)] == "/"


class CookieJarSource:
    """A :class:`CookieSource` backed by a Netscape ``cookies.txt`` file.

    The file is re-read on every lookup so a poller picks up a fresh export
    without restarting.

    Args:
        path: Path to the cookie file.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> list[Cookie]:
        jar = MozillaCookieJar(str(self._path))
        jar.load(ignore_discard=True, ignore_expires=True)
        return list(jar)

    def cookies_for_domain(self, domain: str) -> list[tuple[str, str]]:
        domain = domain.lower()
        return [
            (c.name, c.value or "")
            for c in self._load()
            if _cookie_domain(c) == domain or _cookie_domain(c).endswith("." + domain)
        ]

    def cookies_for_url(self, url: str) -> list[tuple[str, str]]:
        parsed = urlparse(url)
        host = (parsed.hostname or "").lower()
        path = parsed.path or "/"
        secure = parsed.scheme == "https"

        matched = []
        for c in self._load():
            domain = _cookie_domain(c)
            if host != domain:
                if not c.domain.startswith(".") or not host.endswith("." + domain):
                    continue
            if not _path_matches(path, c.path or "/"):
                continue
            if c.secure and not secure:
                continue
            matched.append((c.name, c.value or ""))
        return matched
