"""Configuration and preset file I/O operations.

This module provides functions for loading and saving exported pakky
configurations and presets in TOML format with validation using
Pydantic models, plus conversion between configurations and queue items.
"""

import logging
import os
import tomllib
from collections.abc import Iterable
from datetime import UTC, datetime
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Any

import tomli_w
from pydantic import ValidationError

from pakky import __version__
from pakky.core.paths import get_presets_dir
from pakky.models.config import (
    ConfigMetadata,
    HomebrewPackages,
    PackageEntry,
    PackageListItem,
    PakkyConfig,
    Preset,
)
from pakky.models.package import PackageType, QueueItem
from pakky.models.script import ScriptStep

logger = logging.getLogger(__name__)

PRESET_SUFFIX = ".toml"


class ConfigError(Exception):
    """Base exception for configuration-related errors."""


class ConfigNotFoundError(ConfigError):
    """Raised when a configuration or preset file is not found."""


class ConfigParseError(ConfigError):
    """Raised when a configuration file cannot be parsed."""


class ConfigValidationError(ConfigError):
    """Raised when configuration content is invalid."""


def _read_toml(path: Path) -> dict[str, Any]:
    """Read a TOML document.

    Raises:
        ConfigNotFoundError: If the file doesn't exist.
        ConfigParseError: If the TOML syntax is invalid.
        ConfigError: If the file cannot be read.
    """
    if not path.exists():
        raise ConfigNotFoundError(f"Configuration not found: {path}")

    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigParseError(f"Invalid TOML syntax in {path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Failed to read {path}: {e}") from e


def load_config(path: Path) -> PakkyConfig:
    """Load and validate an exported configuration.

    Args:
        path: Path to the configuration file.

    Returns:
        Validated PakkyConfig.

    Raises:
        ConfigNotFoundError: If the file doesn't exist.
        ConfigParseError: If the TOML syntax is invalid.
        ConfigValidationError: If the content doesn't match the schema.
    """
    data = _read_toml(path)
    try:
        return PakkyConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigValidationError(f"Invalid configuration content: {e}") from e


def load_preset(path: Path) -> Preset:
    """Load and validate a preset; its id defaults to the file stem.

    Args:
        path: Path to the preset file.

    Returns:
        Validated Preset with ``id`` set.

    Raises:
        ConfigNotFoundError: If the file doesn't exist.
        ConfigParseError: If the TOML syntax is invalid.
        ConfigValidationError: If the content doesn't match the schema.
    """
    data = _read_toml(path)
    data.setdefault("id", path.stem)
    try:
        return Preset.model_validate(data)
    except ValidationError as e:
        raise ConfigValidationError(f"Invalid preset content: {e}") from e


def load_importable(path: Path) -> PakkyConfig | Preset:
    """Load a file that is either a configuration or a preset.

    Configurations are tried first; a document that is not a valid
    configuration but is a valid preset is returned as a preset.

    Raises:
        ConfigNotFoundError: If the file doesn't exist.
        ConfigParseError: If the TOML syntax is invalid.
        ConfigValidationError: If the content is neither a configuration nor a preset.
    """
    data = _read_toml(path)
    try:
        return PakkyConfig.model_validate(data)
    except ValidationError as config_error:
        try:
            return Preset.model_validate({"id": path.stem, **data})
        except ValidationError:
            raise ConfigValidationError(
                f"Invalid configuration content: {config_error}"
            ) from config_error


def save_config(config: PakkyConfig, path: Path) -> Path:
    """Save a configuration to a TOML file.

    The file is written atomically by first writing to a temporary file
    in the same directory and then using os.replace() for atomic rename.
    The temporary file is cleaned up on failure.

    Args:
        config: The configuration to save.
        path: Destination path.

    Returns:
        Path where the configuration was saved.

    Raises:
        ConfigError: If the file cannot be written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    data = config.model_dump(mode="json", exclude_none=True)

    tmp_path: Path | None = None
    try:
        with NamedTemporaryFile(
            mode="wb",
            dir=path.parent,
            delete=False,
            suffix=".tmp",
        ) as f:
            tmp_path = Path(f.name)
            tomli_w.dump(data, f)
        os.replace(str(tmp_path), str(path))
    except OSError as e:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()
        raise ConfigError(f"Failed to write configuration: {e}") from e

    logger.info("Saved configuration %r to %s", config.name, path)
    return path


def list_presets(presets_dir: Path | None = None) -> list[Preset]:
    """Load every preset in the presets directory, sorted by id.

    Invalid preset files are logged and skipped.

    Args:
        presets_dir: Directory to scan. Defaults to ~/.config/pakky/presets/.

    Returns:
        Valid presets.
    """
    directory = presets_dir or get_presets_dir()
    if not directory.is_dir():
        return []

    presets: list[Preset] = []
    for path in sorted(directory.glob(f"*{PRESET_SUFFIX}")):
        try:
            presets.append(load_preset(path))
        except ConfigError as e:
            logger.warning("Skipping preset %s: %s", path.name, e)
    return presets


def find_preset(preset_id: str, presets_dir: Path | None = None) -> Preset:
    """Find a preset by id.

    Raises:
        ConfigNotFoundError: If no valid preset has this id.
    """
    for preset in list_presets(presets_dir):
        if preset.id == preset_id:
            return preset
    raise ConfigNotFoundError(f"Preset not found: {preset_id}")


def _entry_name(entry: PackageListItem) -> str:
    return entry if isinstance(entry, str) else entry.name


def _entry_description(entry: PackageListItem) -> str | None:
    return None if isinstance(entry, str) else entry.description


def packages_to_items(homebrew: HomebrewPackages) -> list[QueueItem]:
    """Convert a homebrew section into pending queue items.

    Formulae come first, then casks, each in file order. Blank names
    are skipped.

    Args:
        homebrew: Packages from a configuration or preset.

    Returns:
        Queue items ready to merge.
    """
    items: list[QueueItem] = []
    sections: tuple[tuple[PackageType, list[PackageListItem]], ...] = (
        (PackageType.FORMULA, homebrew.formulae),
        (PackageType.CASK, homebrew.casks),
    )
    for package_type, entries in sections:
        for entry in entries:
            name = _entry_name(entry).strip()
            if not name:
                continue
            items.append(
                QueueItem(name=name, type=package_type, description=_entry_description(entry))
            )
    return items


def _to_entry(item: QueueItem) -> PackageListItem:
    if item.description:
        return PackageEntry(name=item.name, description=item.description)
    return item.name


def build_config(
    items: Iterable[QueueItem],
    *,
    name: str,
    description: str | None = None,
    scripts: Iterable[ScriptStep] = (),
) -> PakkyConfig:
    """Build an exportable configuration from queue items.

    Args:
        items: Queue items to export (all statuses).
        name: Configuration name.
        description: Optional description.
        scripts: Post-install steps to include.

    Returns:
        PakkyConfig with export metadata filled in.
    """
    formulae: list[PackageListItem] = []
    casks: list[PackageListItem] = []
    for item in items:
        if item.type == PackageType.CASK:
            casks.append(_to_entry(item))
        else:
            formulae.append(_to_entry(item))

    now = datetime.now(UTC)
    return PakkyConfig(
        name=name,
        description=description,
        homebrew=HomebrewPackages(formulae=formulae, casks=casks),
        scripts=list(scripts),
        metadata=ConfigMetadata(
            created_at=now,
            updated_at=now,
            pakky_version=__version__,
            exported_from="pakky",
        ),
    )
