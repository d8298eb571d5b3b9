"""Application data directory and user settings."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Dict, Optional

logger = logging.getLogger(__name__)

APP_NAME = "LivePage"

DEFAULT_SETTINGS: Dict[str, str] = {
    "api_url": "http://localhost:3001/api/generate",
    "model": "claude-sonnet-4-20250514",
    "request_timeout": "120",
    "persist_delay_ms": "300",
    "viewport": "wide",
}

ENV_OVERRIDES = {
    "api_url": "LIVEPAGE_API_URL",
    "model": "LIVEPAGE_MODEL",
}


def app_data_dir() -> Path:
    """Return the platform-specific application data directory."""
    override = os.getenv("LIVEPAGE_DATA_DIR")
    if override:
        target = Path(override)
    elif os.name == "nt":
        target = Path(os.getenv("LOCALAPPDATA", Path.home())) / APP_NAME
    else:
        target = Path.home() / ".local" / "share" / APP_NAME
    target.mkdir(parents=True, exist_ok=True)
    return target


class SettingsManager:
    """Very small settings helper storing JSON data."""

    def __init__(self, path: Optional[Path] = None) -> None:
        self.path = Path(path) if path is not None else app_data_dir() / "settings.json"
        self._settings: Dict[str, str] = {}
        self.load()

    def load(self) -> None:
        if self.path.exists():
            try:
                self._settings = json.loads(self.path.read_text(encoding="utf-8"))
            except (OSError, ValueError):
                logger.warning("settings: unreadable %s, using defaults", self.path)
                self._settings = {}
        else:
            self._settings = {}

        changed = False
        for key, value in DEFAULT_SETTINGS.items():
            if self._settings.get(key, "") == "":
                self._settings[key] = value
                changed = True

        if changed:
            try:
                self.save()
            except OSError:
                logger.warning("settings: could not write defaults to %s", self.path)

    def save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(self._settings, indent=2), encoding="utf-8")

    def get(self, key: str, default: str = "") -> str:
        env_name = ENV_OVERRIDES.get(key)
        if env_name and os.getenv(env_name):
            return os.environ[env_name]
        return self._settings.get(key, default)

    def get_int(self, key: str, default: int) -> int:
        try:
            return int(self.get(key, str(default)))
        except ValueError:
            return default

    def set(self, key: str, value: str) -> None:
        self._settings[key] = value
        self.save()
