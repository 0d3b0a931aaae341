"""Persisted user settings: bridge path and last-used device address."""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import BaseModel, ValidationError

from droidlink.utils.logging import get_logger

logger = get_logger(__name__)

SETTINGS_PATH_ENV = "DROIDLINK_SETTINGS"


def default_settings_path() -> Path:
    """``$DROIDLINK_SETTINGS``, else ``~/.config/droidlink/settings.json``."""
    override = os.environ.get(SETTINGS_PATH_ENV)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".config" / "droidlink" / "settings.json"


class Settings(BaseModel):
    bridge_path: str = ""
    device_address: str = ""


class SettingsStore:
    """Loads settings once and writes them back on every change."""

    def __init__(self, path: str | Path | None = None) -> None:
        self._path = Path(path) if path is not None else default_settings_path()
        self._settings = self._load()

    @property
    def path(self) -> Path:
        return self._path

    @property
    def settings(self) -> Settings:
        return self._settings

    def update(self, **changes: str) -> Settings:
        self._settings = self._settings.model_copy(update=changes)
        self._save()
        return self._settings

    def _load(self) -> Settings:
        if not self._path.exists():
            return Settings()
        try:
            return Settings.model_validate_json(self._path.read_text(encoding="utf-8"))
        except (OSError, ValidationError) as exc:
            logger.warning("settings_load_failed", path=str(self._path), error=str(exc))
            return Settings()

    def _save(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(self._settings.model_dump_json(indent=2), encoding="utf-8")
        logger.debug("settings_saved", path=str(self._path))
