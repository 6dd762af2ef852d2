"""Installed-package scanners.

This module exports the scanner classes for querying installed packages.
"""

from pakky.scanners.base import InstalledScanner
from pakky.scanners.homebrew import HomebrewScanner

__all__ = ["HomebrewScanner", "InstalledScanner"]
