"""Per-user configuration: a JSON key-value store plus optional static settings.

Layout (all inside the configuration directory):

    config.json        # key-value settings written by the app
    settings.toml      # optional, hand-edited

The directory is $CONFCURATE_CONFIG_DIR, else $XDG_CONFIG_HOME/confcurate,
else ~/.config/confcurate.

config.json example:

    {
      "websiteRepoPath": "/home/me/src/conference-site"
    }

websiteRepoPath is the only key the app requires; while it is missing the app
is "unconfigured" and shows the welcome flow.

settings.toml example:

    [logging]
    level = "INFO"

    [git]
    remote = "origin"
    base_branch = "main"
"""

from __future__ import annotations

import json
import logging
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from confcurate.errors import CorruptConfigError

REPO_PATH_KEY = "websiteRepoPath"

_CONFIG_FILENAME = "config.json"
_SETTINGS_FILENAME = "settings.toml"
_APP_DIRNAME = "confcurate"

logger = logging.getLogger("confcurate.config")


def default_config_dir() -> Path:
    explicit = os.environ.get("CONFCURATE_CONFIG_DIR")
    if explicit:
        return Path(explicit)
    xdg = os.environ.get("XDG_CONFIG_HOME")
    base = Path(xdg) if xdg else Path.home() / ".config"
    return base / _APP_DIRNAME


# ---------------------------------------------------------------------------
# Static settings (settings.toml)
# ---------------------------------------------------------------------------


@dataclass
class LoggingSettings:
    level: str = "INFO"


@dataclass
class GitSettings:
    remote: str = "origin"
    base_branch: str = "main"


@dataclass
class AppSettings:
    """Resolved settings.toml."""

    logging: LoggingSettings = field(default_factory=LoggingSettings)
    git: GitSettings = field(default_factory=GitSettings)


def load_settings(config_dir: Path | str | None = None) -> AppSettings:
    """Load settings.toml from config_dir; missing file or keys take defaults.

    CONFCURATE_LOG_LEVEL overrides [logging] level.
    """
    path = Path(config_dir or default_config_dir()) / _SETTINGS_FILENAME
    raw: dict[str, Any] = {}
    if path.exists():
        with path.open("rb") as f:
            raw = tomllib.load(f)

    log_section = raw.get("logging", {})
    git_section = raw.get("git", {})
    level = os.environ.get("CONFCURATE_LOG_LEVEL") or str(log_section.get("level", "INFO"))

    return AppSettings(
        logging=LoggingSettings(level=level.upper()),
        git=GitSettings(
            remote=str(git_section.get("remote", "origin")),
            base_branch=str(git_section.get("base_branch", "main")),
        ),
    )


# ---------------------------------------------------------------------------
# Key-value store (config.json)
# ---------------------------------------------------------------------------


class ConfigStore:
    """Persistent key-value settings. Construct once and pass it around.

    Writes rewrite the whole file; concurrent writers race and the last one wins.
    """

    def __init__(self, config_dir: Path | str | None = None) -> None:
        self.config_dir = Path(config_dir) if config_dir else default_config_dir()
        self.path = self.config_dir / _CONFIG_FILENAME

    def _read(self) -> dict[str, Any]:
        """Current settings. An unparsable file raises instead of reading as
        empty, so set() never writes over settings it could not read."""
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        if not text.strip():
            return {}
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise CorruptConfigError(self.path, f"invalid JSON ({exc.msg} at line {exc.lineno})") from exc
        if not isinstance(data, dict):
            raise CorruptConfigError(self.path, "top level is not an object")
        return data

    def _write(self, data: dict[str, Any]) -> None:
        self.config_dir.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(".json.tmp")
        tmp.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
        tmp.replace(self.path)

    def get(self, key: str) -> Any:
        return self._read().get(key)

    def set(self, key: str, value: Any) -> None:
        data = self._read()
        data[key] = value
        self._write(data)
        logger.debug("config set: %s", key)

    def get_all(self) -> dict[str, Any]:
        return self._read()

    @property
    def repo_path(self) -> Path | None:
        """Configured website repository root, or None when unconfigured."""
        value = self.get(REPO_PATH_KEY)
        return Path(value) if value else None

    @property
    def is_configured(self) -> bool:
        return self.repo_path is not None
