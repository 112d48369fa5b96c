"""Canonical Pydantic models shared across all difysync modules.

The models fall into three groups:

**Session models** -- produced by the login flow and persisted in ``.difyrc``:
    :class:`SessionTokens` and :class:`StoredConfig`. Both use the camelCase
    wire names of the relay protocol and the config file as aliases, while
    Python code uses snake_case attribute names.

**Platform models** -- shapes returned by the Dify console API:
    :class:`ImportStatus`, :class:`ImportResponse`, :class:`AppSummary`,
    :class:`AppPage`, and :class:`AppInfo`. They use ``extra="allow"`` so
    fields added by newer platform versions survive a round trip.

**Relay state** -- :class:`RelayState`, the terminal-state machine of a
login session.
"""

from __future__ import annotations

import enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


DEFAULT_URL = "https://cloud.dify.ai"
"""Platform endpoint used when no URL has been configured."""


# --- Session ---


class SessionTokens(BaseModel):
    """Console session tokens captured from the browser.

    Immutable once created. ``csrf_token`` may be empty because older
    platform versions do not issue one.

    Example::

        SessionTokens.model_validate(
            {"accessToken": "a", "refreshToken": "b", "csrfToken": ""}
        )
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    access_token: str = Field(alias="accessToken")
    refresh_token: str = Field(alias="refreshToken")
    csrf_token: str = Field(default="", alias="csrfToken")


class StoredConfig(BaseModel):
    """Contents of a ``.difyrc`` file.

    ``url`` is always present. Token fields are ``None`` until a login
    succeeds and are dropped again on logout.
    """

    model_config = ConfigDict(populate_by_name=True)

    url: str = DEFAULT_URL
    access_token: Optional[str] = Field(default=None, alias="accessToken")
    refresh_token: Optional[str] = Field(default=None, alias="refreshToken")
    csrf_token: Optional[str] = Field(default=None, alias="csrfToken")

    @field_validator("url", mode="before")
    @classmethod
    def _default_url(cls, value: Any) -> Any:
        # a missing or unusable URL never invalidates the stored tokens
        if not value or not isinstance(value, str):
            return DEFAULT_URL
        return value

    @field_validator("access_token", "refresh_token", "csrf_token", mode="before")
    @classmethod
    def _drop_non_string_token(cls, value: Any) -> Any:
        return value if isinstance(value, str) else None

    def to_file_dict(self) -> dict[str, str]:
        """Serialise to the on-disk form, omitting empty token fields."""
        data = {"url": self.url}
        for key, value in (
            ("accessToken", self.access_token),
            ("refreshToken", self.refresh_token),
            ("csrfToken", self.csrf_token),
        ):
            if value:
                data[key] = value
        return data


# --- Relay ---


class RelayState(str, enum.Enum):
    """Lifecycle of a relay login session.

    ``SATISFIED`` and ``EXPIRED`` are terminal: once the session leaves
    ``LISTENING`` it never returns.
    """

    LISTENING = "listening"
    SATISFIED = "satisfied"
    EXPIRED = "expired"


# --- Platform ---


class ImportStatus(str, enum.Enum):
    """Status values reported by the import and confirm endpoints."""

    COMPLETED = "completed"
    COMPLETED_WITH_WARNINGS = "completed-with-warnings"
    PENDING = "pending"
    FAILED = "failed"


class ImportResponse(BaseModel):
    """Result of ``POST /console/api/apps/imports`` or its confirm call."""

    model_config = ConfigDict(extra="allow")

    id: str
    status: str
    app_id: Optional[str] = None
    app_mode: Optional[str] = None
    current_dsl_version: Optional[str] = None
    imported_dsl_version: Optional[str] = None
    error: Optional[str] = None
    warning: Optional[str] = None


class AppSummary(BaseModel):
    """One entry of the application list."""

    model_config = ConfigDict(extra="allow")

    id: str
    name: str = ""
    mode: str = ""
    description: Optional[str] = None
    created_at: Any = None
    updated_at: Any = None


class AppPage(BaseModel):
    """A page of applications from ``GET /console/api/apps``."""

    model_config = ConfigDict(extra="allow")

    data: list[AppSummary] = Field(default_factory=list)
    total: int = 0
    page: int = 1
    limit: int = 20
    has_more: bool = False


class AppInfo(AppSummary):
    """Details of a single application from ``GET /console/api/apps/{id}``."""

    icon: Optional[str] = None
    icon_background: Optional[str] = None
