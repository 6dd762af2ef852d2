"""Homebrew installed-package scanner implementation.

Lists installed formulae and casks with ``brew list``, looks up
descriptions with ``brew info`` and finds packages with ``brew search``.
"""

import json
import logging
import subprocess

from pakky.core.reconcile import InstalledSet
from pakky.models.package import PackageType, SearchResult
from pakky.operators.homebrew import BREW_ENV, is_valid_package_name, is_valid_search_query
from pakky.scanners.base import InstalledScanner
from pakky.utils.shell import command_exists, run_command

logger = logging.getLogger(__name__)


class HomebrewScanner(InstalledScanner):
    """Scanner for Homebrew formulae and casks."""

    # Timeout for brew queries in seconds
    _BREW_TIMEOUT: float = 60.0

    # Result limits per package type and overall
    SEARCH_LIMIT_PER_TYPE: int = 10
    SEARCH_LIMIT: int = 15

    def is_available(self) -> bool:
        """Check if brew is available."""
        return command_exists("brew")

    def installed(self) -> InstalledSet:
        """Query installed formulae and casks.

        Returns:
            InstalledSet with formula and cask names.

        Raises:
            RuntimeError: If brew is not available or a listing fails.
        """
        if not self.is_available():
            msg = "Homebrew is not available on this system"
            raise RuntimeError(msg)

        formulae = self._list("--formula")
        casks = self._list("--cask")
        logger.debug("Homebrew reports %d formulae and %d casks", len(formulae), len(casks))
        return InstalledSet.from_names(formulae=formulae, casks=casks)

    def _list(self, kind_flag: str) -> list[str]:
        """Run ``brew list`` for one package kind.

        Args:
            kind_flag: ``--formula`` or ``--cask``.

        Returns:
            Installed names.

        Raises:
            RuntimeError: If the command fails.
        """
        try:
            result = run_command(
                ["brew", "list", kind_flag, "-1"],
                timeout=self._BREW_TIMEOUT,
                env=BREW_ENV,
            )
        except subprocess.TimeoutExpired as e:
            msg = f"brew list {kind_flag} timed out"
            raise RuntimeError(msg) from e

        if not result.success:
            msg = f"brew list {kind_flag} failed: {result.stderr.strip()}"
            raise RuntimeError(msg)

        return [line.strip() for line in result.stdout.splitlines() if line.strip()]

    def describe(self, name: str, package_type: PackageType) -> str | None:
        """Look up a package description with ``brew info --json=v2``.

        Best effort: any failure yields None.

        Args:
            name: Formula or cask name.
            package_type: Formula or cask.

        Returns:
            Description text, or None if it could not be determined.
        """
        if not is_valid_package_name(name) or not self.is_available():
            return None

        kind_flag = "--cask" if package_type == PackageType.CASK else "--formula"
        try:
            result = run_command(
                ["brew", "info", "--json=v2", kind_flag, name],
                timeout=self._BREW_TIMEOUT,
                env=BREW_ENV,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.debug("brew info failed for %s: %s", name, e)
            return None

        if not result.success:
            logger.debug("brew info failed for %s: %s", name, result.stderr.strip())
            return None

        return parse_info_description(result.stdout, package_type)

    def search(self, query: str) -> list[SearchResult]:
        """Search formulae and casks with ``brew search``.

        Best effort: a failed search yields no results for that package
        type, and an invalid query yields none at all. Results are flagged
        as installed when brew lists them as installed.

        Args:
            query: Search text.

        Returns:
            Formula results followed by cask results.
        """
        query = query.strip()
        if not is_valid_search_query(query) or not self.is_available():
            return []

        try:
            installed = self.installed()
        except (RuntimeError, OSError) as e:
            logger.debug("Installed-set query failed during search: %s", e)
            installed = InstalledSet()

        results: list[SearchResult] = []
        for package_type, names in (
            (PackageType.FORMULA, installed.formulae),
            (PackageType.CASK, installed.casks),
        ):
            for name in self._search(query, package_type)[: self.SEARCH_LIMIT_PER_TYPE]:
                results.append(
                    SearchResult(name=name, type=package_type, installed=name.lower() in names)
                )
        logger.debug("brew search %r found %d package(s)", query, len(results))
        return results[: self.SEARCH_LIMIT]

    def _search(self, query: str, package_type: PackageType) -> list[str]:
        kind_flag = "--cask" if package_type == PackageType.CASK else "--formula"
        try:
            result = run_command(
                ["brew", "search", kind_flag, query],
                timeout=self._BREW_TIMEOUT,
                env=BREW_ENV,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.debug("brew search %s failed: %s", kind_flag, e)
            return []

        # brew exits non-zero when nothing matches
        if not result.success:
            return []
        return parse_search_output(result.stdout)


def parse_info_description(output: str, package_type: PackageType) -> str | None:
    """Extract the description from ``brew info --json=v2`` output.

    Args:
        output: JSON document printed by brew.
        package_type: Selects the ``formulae`` or ``casks`` section.

    Returns:
        The ``desc`` of the first entry, or None.
    """
    try:
        data = json.loads(output)
    except json.JSONDecodeError:
        return None
    if not isinstance(data, dict):
        return None

    section = "casks" if package_type == PackageType.CASK else "formulae"
    entries = data.get(section) or []
    if not entries or not isinstance(entries[0], dict):
        return None
    desc = entries[0].get("desc")
    if isinstance(desc, str) and desc.strip():
        return desc.strip()
    return None


def parse_search_output(output: str) -> list[str]:
    """Extract package names from ``brew search`` output.

    Section headers (``==> Formulae``) and blank lines are dropped.
    """
    return [
        line.strip()
        for line in output.splitlines()
        if line.strip() and not line.startswith("==>")
    ]
