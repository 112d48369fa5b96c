"""Helpers that turn :class:`httpx.Response` objects into Python values.

Kept separate from :mod:`difysync.client.platform` so the error-message rules
can be tested without a client.
"""

from __future__ import annotations

from typing import Any

import httpx


def extract_error_message(response: httpx.Response) -> str:
    """Best-effort error message for a failed response.

    Uses the JSON body's ``message`` field, then its ``error`` field, and
    falls back to the raw response text.
    """
    text = response.text
    try:
        detail = response.json()
    except ValueError:
        return text
    if isinstance(detail, dict):
        return detail.get("message") or detail.get("error") or text
    return text


def extract_response_data(response: httpx.Response) -> Any:
    """Decode a successful response.

    JSON content types are decoded; anything else is returned as text.
    Empty bodies give ``None``.
    """
    if not response.content:
        return None
    content_type = response.headers.get("content-type", "")
    if "application/json" in content_type:
        return response.json()
    return response.text
