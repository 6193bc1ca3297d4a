"""Settings - Display and input preferences for timers.

Read from ``~/.timerdeck/settings.json``. Settings are only ever read here;
a missing or invalid file falls back to the defaults.
"""

import json
import logging
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, ValidationError, field_validator

from timerdeck.core.units import Unit, normalize_range

logger = logging.getLogger(__name__)

SETTINGS_FILE = Path.home() / ".timerdeck" / "settings.json"


class SettingsError(Exception):
    """Raised when a settings file cannot be used."""

    pass


class TimerSettings(BaseModel):
    """User preferences for how timers are read and displayed."""

    unit_range: tuple[Unit, Unit] = (Unit.S, Unit.D)
    auto_trim: bool = True
    update_interval_ms: int = Field(default=100, ge=10, le=5000)
    time_format: Literal["12h", "24h"] = "12h"
    separator: str = ":"

    @field_validator("unit_range")
    @classmethod
    def _order_range(cls, value: tuple[Unit, Unit]) -> tuple[Unit, Unit]:
        return normalize_range(value)

    @field_validator("separator")
    @classmethod
    def _check_separator(cls, value: str) -> str:
        if len(value) != 1:
            raise ValueError("separator must be a single character")
        if value.isalnum() or value in ".-" or value.isspace():
            raise ValueError(f"separator '{value}' clashes with numbers or units")
        if value in "+*()":
            raise ValueError(f"separator '{value}' clashes with sequence operators")
        return value


def read_settings(path: Path) -> TimerSettings:
    """Read and validate a settings file.

    Args:
        path: JSON file to read.

    Returns:
        The validated settings.

    Raises:
        SettingsError: If the file cannot be read or is invalid.
    """
    try:
        data = json.loads(path.read_text())
    except (OSError, json.JSONDecodeError) as e:
        raise SettingsError(f"Cannot read {path}: {e}") from e

    if not isinstance(data, dict):
        raise SettingsError(f"{path} must contain a JSON object")

    try:
        return TimerSettings.model_validate(data)
    except ValidationError as e:
        raise SettingsError(f"Invalid settings in {path}: {e}") from e


def load_settings(path: Path | None = None) -> TimerSettings:
    """Load settings, falling back to the defaults.

    Args:
        path: Settings file, defaults to ``~/.timerdeck/settings.json``.

    Returns:
        The loaded settings, or the defaults if the file is missing or invalid.
    """
    path = path or SETTINGS_FILE
    if not path.exists():
        return TimerSettings()

    try:
        settings = read_settings(path)
        logger.info("Settings loaded: %s", path)
        return settings
    except SettingsError as e:
        logger.warning("Failed to load settings: %s", e)
        return TimerSettings()


_settings: TimerSettings | None = None


def get_settings() -> TimerSettings:
    """Get the active settings, loading them on first use."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def set_settings(settings: TimerSettings | None) -> None:
    """Replace the active settings. None reloads them on next use."""
    global _settings
    _settings = settings
