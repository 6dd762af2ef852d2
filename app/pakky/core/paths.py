"""XDG-compliant path management for pakky.

This module provides standardized paths following the XDG Base Directory
Specification for configuration, state, and cache storage.

XDG defaults:
- Config: ~/.config/pakky/
- State: ~/.local/state/pakky/
- Cache: ~/.cache/pakky/
"""

import os
from pathlib import Path

# Application identifier for directory naming
APP_NAME = "pakky"


def _get_xdg_dir(env_var: str, default_subdir: str) -> Path:
    """Get XDG directory respecting environment variable override.

    Args:
        env_var: XDG environment variable name (e.g., "XDG_CONFIG_HOME").
        default_subdir: Default subdirectory under home (e.g., ".config").

    Returns:
        Path to the application-specific directory.
    """
    base = os.environ.get(env_var)
    if base:
        return Path(base) / APP_NAME
    return Path.home() / default_subdir / APP_NAME


def get_config_dir() -> Path:
    """Get the configuration directory path.

    Returns:
        Path to ~/.config/pakky/ (or XDG_CONFIG_HOME/pakky/).
    """
    return _get_xdg_dir("XDG_CONFIG_HOME", ".config")


def get_state_dir() -> Path:
    """Get the state directory path.

    State data includes the saved queue and remembered script inputs
    that should persist between runs but are not configuration.

    Returns:
        Path to ~/.local/state/pakky/ (or XDG_STATE_HOME/pakky/).
    """
    return _get_xdg_dir("XDG_STATE_HOME", ".local/state")


def get_cache_dir() -> Path:
    """Get the cache directory path.

    Returns:
        Path to ~/.cache/pakky/ (or XDG_CACHE_HOME/pakky/).
    """
    return _get_xdg_dir("XDG_CACHE_HOME", ".cache")


def get_settings_path() -> Path:
    """Get the settings file path.

    Returns:
        Path to ~/.config/pakky/settings.toml.
    """
    return get_config_dir() / "settings.toml"


def get_theme_path() -> Path:
    """Get the user theme file path.

    Returns:
        Path to ~/.config/pakky/theme.toml.
    """
    return get_config_dir() / "theme.toml"


def get_presets_dir() -> Path:
    """Get the user presets directory path.

    Returns:
        Path to ~/.config/pakky/presets/.
    """
    return get_config_dir() / "presets"


def get_queue_path() -> Path:
    """Get the saved queue file path.

    Returns:
        Path to ~/.local/state/pakky/queue.json.
    """
    return get_state_dir() / "queue.json"


def get_inputs_path() -> Path:
    """Get the saved script inputs file path.

    Returns:
        Path to ~/.local/state/pakky/inputs.json.
    """
    return get_state_dir() / "inputs.json"


def _ensure_dir(path: Path, name: str) -> Path:
    """Create directory if it doesn't exist.

    Args:
        path: Directory path to create.
        name: Human-readable name for error messages.

    Returns:
        The created/existing directory path.

    Raises:
        RuntimeError: If directory cannot be created.
    """
    try:
        path.mkdir(parents=True, exist_ok=True)
    except PermissionError as e:
        msg = f"Cannot create {name} directory {path}: Permission denied"
        raise RuntimeError(msg) from e
    except OSError as e:
        msg = f"Cannot create {name} directory {path}: {e}"
        raise RuntimeError(msg) from e
    return path


def ensure_config_dir() -> Path:
    """Create the configuration directory if it doesn't exist.

    Returns:
        Path to the configuration directory.

    Raises:
        RuntimeError: If the directory cannot be created.
    """
    return _ensure_dir(get_config_dir(), "config")


def ensure_state_dir() -> Path:
    """Create the state directory if it doesn't exist.

    Returns:
        Path to the state directory.

    Raises:
        RuntimeError: If the directory cannot be created.
    """
    return _ensure_dir(get_state_dir(), "state")


def ensure_presets_dir() -> Path:
    """Create the presets directory if it doesn't exist.

    Returns:
        Path to the presets directory.

    Raises:
        RuntimeError: If the directory cannot be created.
    """
    return _ensure_dir(get_presets_dir(), "presets")
