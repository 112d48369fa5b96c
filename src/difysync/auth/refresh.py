"""Exchange a refresh token for a new console session.

The console's refresh endpoint takes the refresh token as a cookie and
answers with the new tokens in ``Set-Cookie`` headers rather than in the
body. No command calls this automatically; there is no refresh-on-401
policy.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from difysync.models import SessionTokens

logger = logging.getLogger(__name__)

REFRESH_PATH = "/console/api/refresh-token"

_TOKEN_COOKIES = ("access_token", "refresh_token", "csrf_token")


def parse_set_cookie(headers: list[str]) -> dict[str, str]:
    """Return ``{name: value}`` for each ``Set-Cookie`` header value.

    Only the leading ``name=value`` pair of each header is used; attributes
    such as ``Path`` or ``HttpOnly`` are ignored.
    """
    cookies: dict[str, str] = {}
    for header in headers:
        pair = header.split(";", 1)[0]
        name, sep, value = pair.partition("=")
        if sep:
            cookies[name.strip()] = value.strip()
    return cookies


def refresh_tokens(
    url: str,
    refresh_token: str,
    client: Optional[httpx.Client] = None,
) -> Optional[SessionTokens]:
    """Request fresh session tokens from the platform.

    Args:
        url: Platform base URL.
        refresh_token: The stored refresh token.
        client: Optional pre-configured client (used by tests).

    Returns:
        The new :class:`~difysync.models.SessionTokens`, or ``None`` if the
        request failed or the response lacked an access or refresh token.
    """
    endpoint = f"{url.rstrip('/')}{REFRESH_PATH}"
    headers = {
        "Content-Type": "application/json",
        "Cookie": f"refresh_token={refresh_token}",
    }
    try:
        if client is not None:
            response = client.post(endpoint, headers=headers)
        else:
            response = httpx.post(endpoint, headers=headers, timeout=30.0)
    except httpx.HTTPError as exc:
        logger.error("Token refresh error: %s", exc)
        return None

    if not response.is_success:
        logger.error("Token refresh failed: HTTP %s", response.status_code)
        return None

    found = parse_set_cookie(response.headers.get_list("set-cookie"))
    values = {name: found.get(name, "") for name in _TOKEN_COOKIES}
    if not values["access_token"] or not values["refresh_token"]:
        logger.error("Token refresh response did not set new tokens")
        return None
    return SessionTokens(**values)
