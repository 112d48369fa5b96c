"""Configuration management: ``.difyrc`` resolution, atomic writes, data paths.

This module handles all persistent state of the ``dify`` tool:

* **Config file** -- a small JSON object ``{url, accessToken?, refreshToken?,
  csrfToken?}`` stored in ``.difyrc``. :class:`ConfigResolver` decides which
  file is authoritative and reads/writes it.
* **Precedence** -- ``$DIFY_CONFIG`` (explicit file) > ``./.difyrc`` >
  ``~/.difyrc`` > defaults. When no file exists, writes target the working
  directory.
* **Data directory** -- XDG compliant location for crash logs, see
  :func:`get_data_dir`.

Resolution is a pure function of the filesystem at call time; nothing is
cached between calls, so tests can build a resolver per temporary directory.
The file is read-modify-written without locking.
"""

from __future__ import annotations

import json
import logging
import os
import platform
import tempfile
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from difysync.models import SessionTokens, StoredConfig

logger = logging.getLogger(__name__)

_APP_NAME = "difysync"
CONFIG_FILENAME = ".difyrc"
CONFIG_ENV_VAR = "DIFY_CONFIG"


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/difysync/`` (default ``~/.local/share/difysync/``).
    On macOS/Windows: ``~/.difysync/``.
    """
    if _is_xdg_platform():
        env_value = os.environ.get("XDG_DATA_HOME", "")
        base = Path(env_value) if env_value else Path.home() / ".local" / "share"
        path = base / _APP_NAME
    else:
        path = Path.home() / f".{_APP_NAME}"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def _atomic_write(path: Path, data: str) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created next to *path* with ``0o600`` permissions so
    tokens are never world-readable, and ``os.replace`` swaps it into place.
    On any failure the temp file is removed.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        os.chmod(tmp_path, 0o600)
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None  # prevent double-close below
        os.replace(tmp_path, path)
    except BaseException:
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- .difyrc ---


def resolve_config_path(cwd: Path, home: Path) -> Path:
    """Pick the authoritative config file for *cwd* and *home*.

    Precedence (high to low):
        1. ``$DIFY_CONFIG`` if set
        2. ``<cwd>/.difyrc`` if it exists
        3. ``<home>/.difyrc`` if it exists
        4. ``<cwd>/.difyrc`` (not yet created; the target of the first save)
    """
    explicit = os.environ.get(CONFIG_ENV_VAR)
    if explicit:
        return Path(explicit).expanduser()

    local = cwd / CONFIG_FILENAME
    if local.is_file():
        return local

    global_ = home / CONFIG_FILENAME
    if global_.is_file():
        return global_

    return local


class ConfigResolver:
    """Reads and writes the ``.difyrc`` holding the platform URL and tokens.

    Args:
        cwd: Working directory to look for a project-local file in.
            Defaults to :meth:`Path.cwd` at construction time.
        home: Home directory for the user-wide file. Defaults to
            :meth:`Path.home`.

    Example::

        resolver = ConfigResolver()
        cfg = resolver.load()
        if not resolver.has_credentials(cfg):
            ...
    """

    def __init__(self, cwd: Optional[Path] = None, home: Optional[Path] = None) -> None:
        self._cwd = cwd if cwd is not None else Path.cwd()
        self._home = home if home is not None else Path.home()

    @property
    def path(self) -> Path:
        """The file that :meth:`load` reads and :meth:`save` writes."""
        return resolve_config_path(self._cwd, self._home)

    def load(self) -> StoredConfig:
        """Load the stored configuration.

        Never raises: a missing, unreadable, or malformed file yields the
        default configuration (default URL, no tokens).
        """
        data = self._read_raw()
        if data is None:
            return StoredConfig()
        try:
            cfg = StoredConfig.model_validate(data)
        except ValidationError as exc:
            logger.debug("Ignoring invalid config at %s: %s", self.path, exc)
            return StoredConfig()
        return cfg

    def save(
        self,
        url: Optional[str] = None,
        access_token: Optional[str] = None,
        refresh_token: Optional[str] = None,
        csrf_token: Optional[str] = None,
    ) -> StoredConfig:
        """Merge the given fields over the persisted ones and write the file.

        ``None`` means "keep the stored value". Empty token values are
        omitted from the written file.

        Returns:
            The configuration as written.
        """
        old = self.load()
        merged = StoredConfig(
            url=url if url is not None else old.url,
            access_token=access_token if access_token is not None else old.access_token,
            refresh_token=refresh_token if refresh_token is not None else old.refresh_token,
            csrf_token=csrf_token if csrf_token is not None else old.csrf_token,
        )
        self._write(merged)
        return merged

    def save_tokens(self, tokens: SessionTokens) -> StoredConfig:
        """Persist the tokens captured by a login."""
        return self.save(
            access_token=tokens.access_token,
            refresh_token=tokens.refresh_token,
            csrf_token=tokens.csrf_token,
        )

    def set_url(self, url: str) -> StoredConfig:
        """Persist a new platform URL, keeping any stored tokens."""
        return self.save(url=url)

    def clear(self) -> None:
        """Drop stored tokens (logout), keeping the URL."""
        cfg = self.load()
        self._write(StoredConfig(url=cfg.url))

    @staticmethod
    def has_credentials(cfg: StoredConfig) -> bool:
        """Return True when both the access and refresh tokens are non-empty."""
        return bool(cfg.access_token and cfg.refresh_token)

    def describe(self) -> dict[str, Any]:
        """Summarise the active configuration for display."""
        cfg = self.load()
        return {
            "config": str(self.path),
            "url": cfg.url,
            "authenticated": self.has_credentials(cfg),
        }

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _read_raw(self) -> Optional[dict[str, Any]]:
        path = self.path
        if not path.is_file():
            return None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError, UnicodeDecodeError) as exc:
            logger.debug("Cannot read config at %s: %s", path, exc)
            return None
        if not isinstance(data, dict):
            return None
        return data

    def _write(self, cfg: StoredConfig) -> None:
        path = self.path
        _atomic_write(path, json.dumps(cfg.to_file_dict(), indent=2) + "\n")
        logger.debug("Wrote config to %s", path)
