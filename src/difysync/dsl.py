"""Load and structurally validate Dify DSL documents.

A DSL document is a YAML file describing an application (``app`` block with a
``mode``, optional ``model_config``) or a workflow (``workflow.graph`` with
nodes and edges). The platform performs the real schema validation; this
module only rejects documents that are certain to fail, so that no network
call is made for an obviously broken file.

The two public functions are:

* :func:`validate_dsl` -- parse and check YAML text.
* :func:`load_dsl_file` -- read a file from disk and validate it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

from difysync.exceptions import DSLValidationError


@dataclass
class DSLDocument:
    """A validated DSL document.

    Attributes:
        content: The original YAML text, forwarded verbatim to the platform.
        data: The parsed mapping.
    """

    content: str
    data: dict[str, Any] = field(default_factory=dict)

    @property
    def name(self) -> Optional[str]:
        """The application name, if the document declares one."""
        app = self.data.get("app")
        if isinstance(app, dict) and app.get("name"):
            return str(app["name"])
        value = self.data.get("name")
        return str(value) if value else None

    @property
    def mode(self) -> Optional[str]:
        """The application mode (``chat``, ``workflow``, ...), if declared."""
        app = self.data.get("app")
        if isinstance(app, dict) and app.get("mode"):
            return str(app["mode"])
        value = self.data.get("mode")
        return str(value) if value else None


def validate_dsl(content: str) -> DSLDocument:
    """Parse *content* as YAML and check its top-level structure.

    Args:
        content: Raw YAML text.

    Returns:
        The validated :class:`DSLDocument`.

    Raises:
        DSLValidationError: If the YAML is malformed, empty, not a mapping,
            lacks both ``app`` and ``workflow``, or has an ``app`` block
            without ``mode``.
    """
    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as exc:
        raise DSLValidationError(f"YAML error: {exc}") from exc

    if not data:
        raise DSLValidationError("Empty YAML")

    if not isinstance(data, dict):
        raise DSLValidationError("Top level must be a mapping")

    if not data.get("app") and not data.get("workflow"):
        raise DSLValidationError("Missing 'app' or 'workflow'")

    app = data.get("app")
    if app and (not isinstance(app, dict) or not app.get("mode")):
        raise DSLValidationError("Missing app.mode")

    return DSLDocument(content=content, data=data)


def load_dsl_file(path: str | Path) -> DSLDocument:
    """Read a DSL file from disk and validate it.

    Raises:
        DSLValidationError: If the file does not exist, cannot be read, or
            fails :func:`validate_dsl`.
    """
    file_path = Path(path)
    if not file_path.is_file():
        raise DSLValidationError(f"Not found: {path}")
    try:
        content = file_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise DSLValidationError(f"Cannot read {path}: {exc}") from exc
    return validate_dsl(content)
