"""Pytest configuration and shared fixtures.

This module contains fixtures used across all test modules.
"""

from collections.abc import Callable, Iterable, Iterator
from pathlib import Path
from unittest.mock import patch

import pytest
from pakky.core.reconcile import InstalledSet
from pakky.core.service import PakkyService
from pakky.core.state import StateManager
from pakky.models.package import PackageType, QueueItem, SearchResult
from pakky.models.result import InstallResult, failed_result, success_result
from pakky.operators.base import Installer, LineCallback
from pakky.scanners.base import InstalledScanner


class FakeInstaller(Installer):
    """Installer that records calls and returns scripted results.

    ``results`` maps item ids to a result factory; unknown ids succeed.
    """

    def __init__(
        self,
        results: dict[str, Callable[[QueueItem], InstallResult]] | None = None,
        lines: Iterable[str] = (),
    ) -> None:
        super().__init__()
        self.results = results or {}
        self.lines = tuple(lines)
        self.calls: list[QueueItem] = []
        self.before_install: Callable[[QueueItem], None] | None = None

    def is_available(self) -> bool:
        return True

    def install(self, item: QueueItem, on_line: LineCallback) -> InstallResult:
        self.calls.append(item)
        if self.before_install is not None:
            self.before_install(item)
        for line in self.lines:
            on_line(f"{item.name}: {line}")
        factory = self.results.get(item.id)
        if factory is None:
            return success_result(item.id)
        return factory(item)


class FakeScanner(InstalledScanner):
    """Scanner backed by fixed name sets and a search catalog; can be switched to fail."""

    def __init__(
        self,
        formulae: Iterable[str] = (),
        casks: Iterable[str] = (),
        descriptions: dict[str, str] | None = None,
        catalog: dict[str, PackageType] | None = None,
    ) -> None:
        self.formulae = set(formulae)
        self.casks = set(casks)
        self.descriptions = descriptions or {}
        self.catalog = catalog or {}
        self.searches: list[str] = []
        self.error: Exception | None = None
        self.queries = 0

    def is_available(self) -> bool:
        return self.error is None

    def installed(self) -> InstalledSet:
        self.queries += 1
        if self.error is not None:
            raise self.error
        return InstalledSet.from_names(formulae=self.formulae, casks=self.casks)

    def describe(self, name: str, package_type: PackageType) -> str | None:
        return self.descriptions.get(name)

    def search(self, query: str) -> list[SearchResult]:
        self.searches.append(query)
        installed = {PackageType.FORMULA: self.formulae, PackageType.CASK: self.casks}
        return [
            SearchResult(name=name, type=package_type, installed=name in installed[package_type])
            for name, package_type in self.catalog.items()
            if query in name
        ]


def fail_with(error: str) -> Callable[[QueueItem], InstallResult]:
    """Result factory for a failed install."""
    return lambda item: failed_result(item.id, error)


@pytest.fixture
def fake_installer() -> FakeInstaller:
    """Installer that succeeds for every item."""
    return FakeInstaller()


@pytest.fixture
def fake_scanner() -> FakeScanner:
    """Scanner reporting nothing installed."""
    return FakeScanner()


@pytest.fixture
def xdg_dirs(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point every XDG base directory into tmp_path."""
    for var, sub in (
        ("XDG_CONFIG_HOME", "config"),
        ("XDG_STATE_HOME", "state"),
        ("XDG_CACHE_HOME", "cache"),
    ):
        path = tmp_path / sub
        path.mkdir()
        monkeypatch.setenv(var, str(path))
    return tmp_path


@pytest.fixture
def mock_brew_formula_output() -> str:
    """Sample `brew list --formula -1` output for testing."""
    return """git
jq
node
python@3.12
ripgrep"""


@pytest.fixture
def mock_brew_cask_output() -> str:
    """Sample `brew list --cask -1` output for testing."""
    return """docker
firefox
visual-studio-code"""


@pytest.fixture
def mock_brew_info_output() -> str:
    """Sample `brew info --json=v2 --formula jq` output for testing."""
    return """{
  "formulae": [
    {"name": "jq", "desc": "Lightweight and flexible command-line JSON processor"}
  ],
  "casks": []
}"""


@pytest.fixture
def sample_items() -> list[QueueItem]:
    """A small mixed queue."""
    return [
        QueueItem(name="git", type=PackageType.FORMULA),
        QueueItem(name="jq", type=PackageType.FORMULA),
        QueueItem(name="docker", type=PackageType.CASK),
    ]


@pytest.fixture
def cli_service(
    tmp_path: Path, fake_installer: FakeInstaller, fake_scanner: FakeScanner
) -> Iterator[PakkyService]:
    """Service handed to CLI commands, backed by fakes and a temporary state dir."""
    service = PakkyService(
        fake_installer,
        fake_scanner,
        state=StateManager(tmp_path / "state"),
        auto_reconcile=False,
    )
    with patch("pakky.cli.context.create_service", return_value=service):
        yield service
