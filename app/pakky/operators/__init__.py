"""Package installers for executing queued installs.

This module provides the abstract installer interface and the Homebrew
implementation.
"""

from pakky.operators.base import Installer
from pakky.operators.homebrew import HomebrewInstaller

__all__ = ["HomebrewInstaller", "Installer"]
