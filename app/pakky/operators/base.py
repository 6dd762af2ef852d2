"""Abstract base class for package installers.

This module defines the Installer interface the install orchestrator
drives, one queued package at a time.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable

from pakky.models.package import QueueItem
from pakky.models.result import InstallResult

# Receives each output line of a running install
LineCallback = Callable[[str], None]


class Installer(ABC):
    """Abstract base class for all package installers.

    Installers run the external package manager for a single queue
    item and report a terminal result. Output lines are streamed to the
    callback as they arrive.

    Attributes:
        dry_run: If True, only simulate installs without executing them.

    Example:
        >>> installer = HomebrewInstaller(dry_run=True)
        >>> if installer.is_available():
        ...     result = installer.install(item, print)
        ...     print(f"{result.item_id}: {result.outcome.value}")
    """

    def __init__(self, dry_run: bool = False) -> None:
        """Initialize the installer.

        Args:
            dry_run: If True, only simulate installs without executing them.
        """
        self._dry_run = dry_run

    @property
    def dry_run(self) -> bool:
        """Check if installer is in dry-run mode."""
        return self._dry_run

    @abstractmethod
    def install(self, item: QueueItem, on_line: LineCallback) -> InstallResult:
        """Install (or reinstall) one queued package.

        Failures of the package manager are reported as FAILED results;
        implementations only raise for unexpected errors, which the
        orchestrator records as failures.

        Args:
            item: Queue item to install; its action selects install or reinstall.
            on_line: Receives each output line in arrival order.

        Returns:
            Terminal InstallResult for the item.
        """

    @abstractmethod
    def is_available(self) -> bool:
        """Check if this package manager is available on the system.

        Returns:
            True if the package manager can be used, False otherwise.
        """
