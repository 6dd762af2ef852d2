"""Homebrew package installer implementation.

Installs formulae and casks one at a time using ``brew``.
"""

import logging
import re

from pakky.models.package import PackageAction, QueueItem
from pakky.models.result import InstallResult, failed_result, success_result
from pakky.operators.base import Installer, LineCallback
from pakky.utils.shell import command_exists, stream_command

logger = logging.getLogger(__name__)

# Allowed characters in formula/cask names, including tap paths and versions
_PACKAGE_NAME_PATTERN = re.compile(r"^[a-z0-9][a-z0-9\-_@/.]*$", re.IGNORECASE)

MAX_PACKAGE_NAME_LENGTH = 128

# Search queries may also contain spaces and plus signs (e.g. "c++")
_SEARCH_QUERY_PATTERN = re.compile(r"^[A-Za-z0-9_@/.+][A-Za-z0-9\-_@/.+ ]*$")

MIN_SEARCH_QUERY_LENGTH = 2
MAX_SEARCH_QUERY_LENGTH = 100

# Keep brew from running `brew update` before every install
BREW_ENV: dict[str, str] = {"HOMEBREW_NO_AUTO_UPDATE": "1"}


def is_valid_package_name(name: str) -> bool:
    """Check if a name is safe to pass to brew.

    Args:
        name: Formula or cask name.

    Returns:
        True if the name is well-formed.
    """
    if not name or len(name) > MAX_PACKAGE_NAME_LENGTH:
        return False
    return _PACKAGE_NAME_PATTERN.match(name) is not None


def is_valid_search_query(query: str) -> bool:
    """Check if a search query is safe to pass to brew.

    A query may not start with a dash so brew never reads it as an option.
    """
    if not MIN_SEARCH_QUERY_LENGTH <= len(query) <= MAX_SEARCH_QUERY_LENGTH:
        return False
    return _SEARCH_QUERY_PATTERN.match(query) is not None


def build_brew_args(item: QueueItem) -> list[str]:
    """Build the brew argument vector for a queue item.

    Args:
        item: Queue item to install.

    Returns:
        Arguments, e.g. ``["brew", "reinstall", "--cask", "firefox"]``.
    """
    command = "reinstall" if item.action == PackageAction.REINSTALL else "install"
    args = ["brew", command]
    if item.is_cask:
        args.append("--cask")
    args.append(item.name)
    return args


class HomebrewInstaller(Installer):
    """Installer for Homebrew formulae and casks.

    Each item is installed with its own ``brew install`` or
    ``brew reinstall`` invocation so output and failures stay per item.

    Attributes:
        dry_run: If True, print the brew command without running it.
    """

    def is_available(self) -> bool:
        """Check if brew is available."""
        return command_exists("brew")

    def install(self, item: QueueItem, on_line: LineCallback) -> InstallResult:
        """Install one formula or cask.

        Args:
            item: Queue item to install.
            on_line: Receives each output line in arrival order.

        Returns:
            InstallResult for the item.
        """
        if not is_valid_package_name(item.name):
            on_line(f"✗ Invalid package name: {item.name}")
            return failed_result(item.id, "Invalid package name")

        args = build_brew_args(item)
        on_line(f"$ {' '.join(args)}")

        if self.dry_run:
            logger.info("Dry-run: would execute %s", " ".join(args))
            return success_result(item.id, "Dry-run completed")

        logger.info("Executing %s", " ".join(args))
        try:
            returncode = stream_command(args, on_line, env=BREW_ENV)
        except OSError as e:
            on_line(f"✗ Error installing {item.name}: {e}")
            return failed_result(item.id, str(e))

        if returncode != 0:
            on_line(f"✗ Failed to install {item.name} (exit code: {returncode})")
            return failed_result(item.id, f"Installation failed with exit code {returncode}")

        on_line(f"✓ Successfully installed {item.name}")
        return success_result(item.id)
