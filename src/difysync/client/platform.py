"""Synchronous client for the Dify console API.

:class:`PlatformClient` wraps :class:`httpx.Client` and adds:

- **Session injection** -- the stored access token (and CSRF token, when
  present) is sent as cookies, with the CSRF token repeated in the
  ``X-Csrf-Token`` header.
- **Error mapping** -- every non-2xx response raises
  :class:`~difysync.exceptions.ApiError`; network failures raise
  :class:`~difysync.exceptions.ConnectionError_`.

Requests are sent once. There is no retry or backoff.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from difysync.client.response import extract_error_message, extract_response_data
from difysync.exceptions import ApiError, ConnectionError_, ImportFailedError
from difysync.models import (
    AppInfo,
    AppPage,
    ImportResponse,
    ImportStatus,
    StoredConfig,
)

logger = logging.getLogger(__name__)

API_PREFIX = "/console/api"
DEFAULT_TIMEOUT = 60.0

_STATUS_MESSAGES = {
    ImportStatus.COMPLETED: "Import completed",
    ImportStatus.COMPLETED_WITH_WARNINGS: "Import completed with warnings",
    ImportStatus.PENDING: "Pending - confirmation required",
    ImportStatus.FAILED: "Import failed",
}


def import_status_message(status: str) -> str:
    """Human-readable label for an import status."""
    try:
        return _STATUS_MESSAGES[ImportStatus(status)]
    except ValueError:
        return f"Unknown: {status}"


class PlatformClient:
    """Console API client. Use as a context manager.

    Args:
        config: Stored configuration providing the base URL and tokens.
        timeout: Per-request timeout in seconds.
        transport: Optional httpx transport (tests pass a
            :class:`httpx.MockTransport`).

    Example::

        with PlatformClient(resolver.load()) as client:
            page = client.list_apps(limit=100)
    """

    def __init__(
        self,
        config: StoredConfig,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._base_url = config.url.rstrip("/")
        self._access_token = config.access_token or ""
        self._csrf_token = config.csrf_token or ""
        self._timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.Client] = None

    # ------------------------------------------------------------------ #
    # Context manager
    # ------------------------------------------------------------------ #

    def __enter__(self) -> PlatformClient:
        self._client = httpx.Client(
            base_url=self._base_url,
            timeout=self._timeout,
            transport=self._transport,
            follow_redirects=True,
        )
        return self

    def __exit__(self, *args: object) -> None:
        if self._client:
            self._client.close()
            self._client = None

    # ------------------------------------------------------------------ #
    # Core request
    # ------------------------------------------------------------------ #

    def session_headers(self) -> dict[str, str]:
        """Headers that authenticate a console request."""
        cookies = [f"access_token={self._access_token}"]
        if self._csrf_token:
            cookies.append(f"csrf_token={self._csrf_token}")
        headers = {
            "Content-Type": "application/json",
            "Cookie": "; ".join(cookies),
        }
        if self._csrf_token:
            headers["X-Csrf-Token"] = self._csrf_token
        return headers

    def request(
        self,
        method: str,
        path: str,
        params: Optional[dict[str, Any]] = None,
        json_body: Optional[Any] = None,
    ) -> Any:
        """Send one request and return the decoded body.

        Raises:
            ApiError: On any non-2xx status.
            ConnectionError_: On network or timeout errors.
        """
        assert self._client is not None, "Client not initialised -- use as context manager"

        kwargs: dict[str, Any] = {"headers": self.session_headers()}
        if params:
            kwargs["params"] = params
        if json_body is not None:
            kwargs["json"] = json_body

        logger.debug("%s %s%s", method, self._base_url, path)
        try:
            response = self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            raise ConnectionError_(f"Request to {self._base_url} failed: {exc}") from exc

        if not response.is_success:
            raise ApiError(response.status_code, extract_error_message(response))

        return extract_response_data(response)

    # ------------------------------------------------------------------ #
    # Applications
    # ------------------------------------------------------------------ #

    def import_app(
        self,
        yaml_content: str,
        app_id: Optional[str] = None,
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> ImportResponse:
        """Submit a DSL document. Passing *app_id* overwrites that application."""
        body: dict[str, Any] = {"mode": "yaml-content", "yaml_content": yaml_content}
        if name is not None:
            body["name"] = name
        if description is not None:
            body["description"] = description
        if app_id:
            body["app_id"] = app_id
        data = self.request("POST", f"{API_PREFIX}/apps/imports", json_body=body)
        return ImportResponse.model_validate(data)

    def confirm_import(self, import_id: str) -> ImportResponse:
        """Confirm a ``pending`` import (e.g. after a DSL version mismatch)."""
        data = self.request("POST", f"{API_PREFIX}/apps/imports/{import_id}/confirm")
        return ImportResponse.model_validate(data)

    def import_and_confirm(
        self,
        yaml_content: str,
        app_id: Optional[str] = None,
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> ImportResponse:
        """Import a DSL document, confirming it if the platform asks to.

        Returns:
            The final :class:`~difysync.models.ImportResponse`.

        Raises:
            ImportFailedError: If the final status is ``failed``; the message
                is the response's ``error`` field.
        """
        result = self.import_app(yaml_content, app_id=app_id, name=name, description=description)
        if result.status == ImportStatus.PENDING:
            logger.debug("Import %s pending, confirming", result.id)
            result = self.confirm_import(result.id)
        if result.status == ImportStatus.FAILED:
            raise ImportFailedError(result.error or "")
        return result

    def export_app(self, app_id: str, include_secret: bool = False) -> str:
        """Return the application's DSL document as YAML text."""
        params = {"include_secret": "true"} if include_secret else None
        data = self.request("GET", f"{API_PREFIX}/apps/{app_id}/export", params=params)
        if isinstance(data, dict):
            return str(data.get("data") or "")
        return str(data or "")

    def list_apps(self, page: int = 1, limit: int = 20) -> AppPage:
        data = self.request(
            "GET", f"{API_PREFIX}/apps", params={"page": page, "limit": limit}
        )
        return AppPage.model_validate(data)

    def get_app(self, app_id: str) -> AppInfo:
        data = self.request("GET", f"{API_PREFIX}/apps/{app_id}")
        return AppInfo.model_validate(data)

    def delete_app(self, app_id: str) -> Any:
        return self.request("DELETE", f"{API_PREFIX}/apps/{app_id}")

    def test_connection(self) -> bool:
        """Return True if the stored session can list applications."""
        try:
            self.list_apps(limit=1)
        except (ApiError, ConnectionError_):
            return False
        return True
