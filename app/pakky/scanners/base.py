"""Abstract base class for installed-package scanners.

This module defines the InstalledScanner interface used by the
reconciliation monitor and the install orchestrator's checking phase.
"""

from abc import ABC, abstractmethod

from pakky.core.reconcile import InstalledSet
from pakky.models.package import PackageType, SearchResult


class InstalledScanner(ABC):
    """Abstract base class for all installed-package scanners.

    Scanners query a package manager for the names of everything that
    is currently installed, split by package type.

    Example:
        >>> scanner = HomebrewScanner()
        >>> if scanner.is_available():
        ...     installed = scanner.installed()
        ...     print(len(installed.formulae), len(installed.casks))
    """

    @abstractmethod
    def installed(self) -> InstalledSet:
        """Query the installed package names.

        Returns:
            InstalledSet with formula and cask names.

        Raises:
            RuntimeError: If the package manager is not available or the query fails.
        """

    @abstractmethod
    def is_available(self) -> bool:
        """Check if this package manager is available on the system.

        Returns:
            True if the package manager can be used, False otherwise.
        """

    def describe(self, name: str, package_type: PackageType) -> str | None:
        """Look up a short description of a package.

        The default implementation knows no descriptions.

        Returns:
            Description text, or None if unknown.
        """
        return None

    def search(self, query: str) -> list[SearchResult]:
        """Search the package manager for packages matching a query.

        The default implementation finds nothing.

        Returns:
            Matching packages, formulae before casks.
        """
        return []
