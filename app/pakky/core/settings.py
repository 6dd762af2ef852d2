"""User settings.

This module provides the settings model and I/O functions for pakky's
engine tunables. Settings are stored in ~/.config/pakky/settings.toml;
a missing file means all defaults.
"""

import logging
import os
import tomllib
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Annotated

import tomli_w
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from pakky.core.paths import get_settings_path
from pakky.scripts.security import SecurityLevel

logger = logging.getLogger(__name__)


class PakkySettings(BaseModel):
    """Engine settings.

    Attributes:
        security_level: Which command categories scripts may run.
        max_log_lines: Most recent install log lines kept per package.
        reconcile_debounce_seconds: Quiet period before a reconciliation pass.
        command_timeout_seconds: Timeout for each script command (None = no timeout).
    """

    model_config = ConfigDict(extra="forbid")

    security_level: Annotated[
        SecurityLevel,
        Field(description="Command allow-list level for scripts"),
    ] = SecurityLevel.STANDARD
    max_log_lines: Annotated[
        int,
        Field(ge=10, le=10000, description="Install log lines kept per package"),
    ] = 500
    reconcile_debounce_seconds: Annotated[
        float,
        Field(ge=0, le=30, description="Debounce before reconciliation (seconds)"),
    ] = 0.5
    command_timeout_seconds: Annotated[
        int | None,
        Field(ge=1, le=3600, description="Script command timeout (seconds)"),
    ] = None


class SettingsError(Exception):
    """Raised when the settings file cannot be read, parsed or written."""


def load_settings(path: Path | None = None) -> PakkySettings:
    """Load settings from a TOML file.

    Args:
        path: Path to the settings file. If None, uses the default path.

    Returns:
        Validated PakkySettings (defaults if the file does not exist).

    Raises:
        SettingsError: If the file is unreadable, not TOML, or invalid.
    """
    settings_path = path or get_settings_path()

    if not settings_path.exists():
        logger.debug("No settings file at %s, using defaults", settings_path)
        return PakkySettings()

    try:
        with open(settings_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise SettingsError(f"Invalid TOML syntax in {settings_path}: {e}") from e
    except OSError as e:
        raise SettingsError(f"Failed to read settings: {e}") from e

    try:
        return PakkySettings.model_validate(data)
    except ValidationError as e:
        raise SettingsError(f"Invalid settings content: {e}") from e


def save_settings(settings: PakkySettings, path: Path | None = None) -> Path:
    """Save settings to a TOML file atomically.

    Args:
        settings: Settings to save.
        path: Path to save to. If None, uses the default path.

    Returns:
        Path where the settings were saved.

    Raises:
        SettingsError: If the file cannot be written.
    """
    settings_path = path or get_settings_path()
    settings_path.parent.mkdir(parents=True, exist_ok=True)

    # TOML has no null; unset optional values are omitted
    data = settings.model_dump(mode="json", exclude_none=True)

    tmp_path: Path | None = None
    try:
        with NamedTemporaryFile(
            mode="wb",
            dir=settings_path.parent,
            delete=False,
            suffix=".tmp",
        ) as f:
            tmp_path = Path(f.name)
            tomli_w.dump(data, f)
        os.replace(str(tmp_path), str(settings_path))
    except OSError as e:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()
        raise SettingsError(f"Failed to write settings: {e}") from e

    return settings_path
