"""Unit tests for PakkyService."""

import threading
from pathlib import Path
from unittest.mock import patch

import pytest
from conftest import FakeInstaller, FakeScanner, fail_with
from pakky.core.boundary import Channel, Operation
from pakky.core.config import ConfigNotFoundError, load_config
from pakky.core.errors import ExternalFailureError, NotAllowedError, ValidationError
from pakky.core.queue import default_description
from pakky.core.service import PakkyService, create_service
from pakky.core.settings import PakkySettings
from pakky.core.state import StateManager
from pakky.models.package import PackageAction, PackageStatus, PackageType
from pakky.models.script import ScriptStep, StepOutcome
from pakky.models.session import SessionSnapshot, SessionStatus
from pakky.scripts.executor import CommandExecutor, StaticInputProvider
from pakky.scripts.interpolate import RenderedCommand
from pakky.scripts.security import SecurityLevel
from pakky.utils.shell import CommandResult


class EchoExecutor(CommandExecutor):
    """Executor that succeeds and records every command."""

    def __init__(self) -> None:
        self.commands: list[RenderedCommand] = []

    def execute(self, command: RenderedCommand) -> CommandResult:
        self.commands.append(command)
        return CommandResult(stdout="", stderr="", returncode=0)


@pytest.fixture
def state(tmp_path: Path) -> StateManager:
    """State manager in a temporary directory."""
    return StateManager(tmp_path / "state")


@pytest.fixture
def scanner() -> FakeScanner:
    """Scanner with git installed and a description for jq."""
    return FakeScanner(formulae=["git"], descriptions={"jq": "JSON processor"})


@pytest.fixture
def service(
    fake_installer: FakeInstaller, scanner: FakeScanner, state: StateManager
) -> PakkyService:
    """Service wired to fakes, without background reconciliation."""
    return PakkyService(fake_installer, scanner, state=state, auto_reconcile=False)


class TestQueueOperations:
    """Tests for adding, resolving and removing queue items."""

    def test_add_describes_new_items(self, service: PakkyService) -> None:
        """Descriptions come from the scanner with a generic fallback."""
        result = service.add_packages(["jq", "ripgrep"])

        assert [item.description for item in result.added] == [
            "JSON processor",
            default_description(PackageType.FORMULA),
        ]

    def test_add_duplicates_are_not_described(
        self, service: PakkyService, scanner: FakeScanner
    ) -> None:
        """Already queued names are reported as duplicates."""
        service.add_packages(["jq"])
        with patch.object(scanner, "describe") as mock_describe:
            result = service.add_packages(["jq"])

        assert result.duplicates == ("formula:jq",)
        mock_describe.assert_not_called()

    def test_add_rejects_invalid_names(self, service: PakkyService) -> None:
        """Names brew would misread are rejected before queuing."""
        with pytest.raises(ValidationError, match="Invalid package name"):
            service.add_packages(["git", "--force"])
        assert service.list_queue() == ()

    def test_add_cask(self, service: PakkyService) -> None:
        """Casks are queued with their own identity."""
        service.add_packages(["docker"], PackageType.CASK, describe=False)
        assert service.list_queue()[0].id == "cask:docker"

    def test_add_is_case_insensitive(self, service: PakkyService) -> None:
        """Names differing only in case are the same package."""
        service.add_packages(["Docker"], PackageType.CASK, describe=False)
        result = service.add_packages(["docker"], PackageType.CASK, describe=False)

        assert result.added == ()
        assert result.duplicates == ("cask:docker",)
        assert service.resolve("DOCKER") == "cask:docker"

    def test_resolve(self, service: PakkyService) -> None:
        """References resolve by id or unambiguous name."""
        service.add_packages(["git"], describe=False)
        service.add_packages(["docker"], PackageType.CASK, describe=False)

        assert service.resolve("git") == "formula:git"
        assert service.resolve("cask:docker") == "cask:docker"
        with pytest.raises(ValidationError, match="Not in queue"):
            service.resolve("node")

    def test_resolve_ambiguous(self, service: PakkyService) -> None:
        """A bare name queued as formula and cask is ambiguous."""
        service.add_packages(["docker"], describe=False)
        service.add_packages(["docker"], PackageType.CASK, describe=False)
        with pytest.raises(ValidationError, match="Ambiguous"):
            service.resolve("docker")

    def test_remove_and_clear(self, service: PakkyService) -> None:
        """Items can be removed one by one or all at once."""
        service.add_packages(["git", "jq", "node"], describe=False)

        assert service.remove("jq") == "formula:jq"
        assert service.clear() == 2
        assert service.list_queue() == ()

    def test_reinstall(self, service: PakkyService) -> None:
        """Reinstall resets an item to pending with the reinstall action."""
        service.add_packages(["git"], describe=False)
        service.start_install(background=False)

        item = service.reinstall("git")

        assert item.status == PackageStatus.PENDING
        assert item.action == PackageAction.REINSTALL

    def test_move(self, service: PakkyService) -> None:
        """Items move to a zero-based position by name."""
        service.add_packages(["git", "jq", "node"], describe=False)

        queue = service.move("node", 0)

        assert [item.name for item in queue] == ["node", "git", "jq"]
        with pytest.raises(ValidationError, match="Not in queue"):
            service.move("ripgrep", 0)


class TestSearch:
    """Tests for Homebrew search through the service."""

    def test_search_flags_installed(
        self, fake_installer: FakeInstaller, state: StateManager
    ) -> None:
        """Results come from the scanner with their installed flag."""
        scanner = FakeScanner(
            formulae=["ripgrep"],
            catalog={"ripgrep": PackageType.FORMULA, "ripgrep-all": PackageType.FORMULA},
        )
        service = PakkyService(fake_installer, scanner, state=state, auto_reconcile=False)

        results = service.search("  ripgrep ")

        assert [(r.name, r.installed) for r in results] == [
            ("ripgrep", True),
            ("ripgrep-all", False),
        ]
        assert scanner.searches == ["ripgrep"]

    @pytest.mark.parametrize("query", ["r", "x" * 101, "--help", "rg; rm -rf /", "$(id)"])
    def test_invalid_query(self, service: PakkyService, scanner: FakeScanner, query: str) -> None:
        """Unsafe or out-of-range queries never reach the scanner."""
        with pytest.raises(ValidationError, match="Invalid search query"):
            service.search(query)
        assert scanner.searches == []


class TestPersistence:
    """Tests for queue and input persistence through the service."""

    def test_queue_saved_on_change(
        self, service: PakkyService, fake_installer: FakeInstaller, scanner: FakeScanner
    ) -> None:
        """A new service sees the previous service's queue."""
        service.add_packages(["jq"], describe=False)

        reloaded = PakkyService(fake_installer, scanner, state=service.state, auto_reconcile=False)

        assert [item.id for item in reloaded.list_queue()] == ["formula:jq"]

    def test_save_failure_is_logged(self, service: PakkyService) -> None:
        """A failing save does not fail the queue change."""
        with patch.object(service.state, "save_queue", side_effect=OSError("disk full")):
            service.add_packages(["jq"], describe=False)
        assert len(service.list_queue()) == 1


class TestImportExport:
    """Tests for importing and exporting configurations."""

    def test_import_merges_and_reports(self, service: PakkyService, tmp_path: Path) -> None:
        """Imports add new items, report duplicates and rejected commands."""
        service.add_packages(["git"], describe=False)
        path = tmp_path / "setup.toml"
        path.write_text(
            'name = "Setup"\n'
            "[homebrew]\n"
            'formulae = ["git", "jq"]\n'
            'casks = ["docker"]\n'
            "[[scripts]]\n"
            'name = "Admin"\n'
            'commands = ["sudo true", "echo ok"]\n'
        )

        summary = service.import_file(path)

        assert summary.source == "Setup"
        assert [item.id for item in summary.added] == ["formula:jq", "cask:docker"]
        assert summary.duplicates == ("formula:git",)
        assert [command for command, _ in summary.rejected_commands] == ["sudo true"]
        assert len(summary.scripts) == 1

    def test_apply_preset(self, service: PakkyService, xdg_dirs: Path) -> None:
        """Presets are read from the presets directory."""
        presets = xdg_dirs / "config" / "pakky" / "presets"
        presets.mkdir(parents=True)
        (presets / "cli.toml").write_text('name = "CLI"\n[homebrew]\nformulae = ["jq"]\n')

        summary = service.apply_preset("cli")

        assert summary.source == "CLI"
        assert [item.id for item in service.list_queue()] == ["formula:jq"]

    def test_apply_unknown_preset(self, service: PakkyService, xdg_dirs: Path) -> None:
        """Unknown presets raise ConfigNotFoundError."""
        with pytest.raises(ConfigNotFoundError):
            service.apply_preset("gaming")

    def test_export_with_templates(self, service: PakkyService, tmp_path: Path) -> None:
        """Exports contain the queue and the chosen template steps."""
        service.add_packages(["git"], describe=False)

        path = service.export(tmp_path / "out.toml", name="Mine", template_ids=["git-config"])

        config = load_config(path)
        assert config.homebrew.formulae[0].name == "git"  # type: ignore[union-attr]
        assert [step.name for step in config.scripts] == ["Configure Git"]

    def test_export_unknown_template(self, service: PakkyService, tmp_path: Path) -> None:
        """Unknown template ids are rejected."""
        with pytest.raises(ValidationError, match="Unknown script template"):
            service.export(tmp_path / "out.toml", name="Mine", template_ids=["nope"])


class TestInstall:
    """Tests for install sessions through the service."""

    def test_foreground_install(self, service: PakkyService) -> None:
        """A foreground session returns the final snapshot."""
        service.add_packages(["git", "jq"], describe=False)

        snapshot = service.start_install(background=False)

        assert isinstance(snapshot, SessionSnapshot)
        # git is reported installed by the scanner
        statuses = {item.name: item.status for item in snapshot.items}
        assert statuses == {"git": PackageStatus.SKIPPED, "jq": PackageStatus.SUCCESS}

    def test_background_install(self, service: PakkyService) -> None:
        """A background session runs on a thread and calls back when done."""
        service.add_packages(["jq"], describe=False)
        done = threading.Event()

        thread = service.start_install(lambda snapshot: done.set())
        assert isinstance(thread, threading.Thread)
        thread.join(timeout=5)

        assert done.is_set()
        assert service.install_status().status == SessionStatus.COMPLETED

    def test_failure_is_persisted(self, state: StateManager, scanner: FakeScanner) -> None:
        """Failed items keep their error across restarts."""
        installer = FakeInstaller(results={"formula:jq": fail_with("exit 1")})
        service = PakkyService(installer, scanner, state=state, auto_reconcile=False)
        service.add_packages(["jq"], describe=False)
        service.start_install(background=False)

        reloaded = state.load_queue()

        assert reloaded[0].status == PackageStatus.FAILED
        assert reloaded[0].error == "exit 1"

    def test_reconciliation_rearmed_after_session(
        self, fake_installer: FakeInstaller, scanner: FakeScanner, state: StateManager
    ) -> None:
        """Background reconciliation is scheduled again once a session ends."""
        settings = PakkySettings(reconcile_debounce_seconds=30)
        service = PakkyService(
            fake_installer, scanner, state=state, settings=settings, auto_reconcile=True
        )
        try:
            service.add_packages(["jq"], describe=False)
            assert service.monitor.pending

            service.start_install(background=False)

            assert service.monitor.pending
        finally:
            service.close()
        assert not service.monitor.pending

    def test_cancel_without_session(self, service: PakkyService) -> None:
        """Cancelling without a session reports False."""
        assert service.cancel_install() is False


class TestInstalledSet:
    """Tests for installed-set queries."""

    def test_get_installed(self, service: PakkyService) -> None:
        """The scanner's installed set is returned."""
        assert service.get_installed().formulae == frozenset({"git"})

    def test_get_installed_failure(self, service: PakkyService, scanner: FakeScanner) -> None:
        """Scanner failures become ExternalFailureError."""
        scanner.error = RuntimeError("brew missing")
        with pytest.raises(ExternalFailureError, match="brew missing"):
            service.get_installed()

    def test_check_installed(self, service: PakkyService) -> None:
        """A pass marks pending items found installed."""
        service.add_packages(["git", "jq"], describe=False)

        assert service.check_installed() is True

        statuses = {item.name: item.status for item in service.list_queue()}
        assert statuses == {"git": PackageStatus.ALREADY_INSTALLED, "jq": PackageStatus.PENDING}


class TestScripts:
    """Tests for script suggestions and runs."""

    def test_suggest_defaults_to_queue(self, service: PakkyService) -> None:
        """Suggestions use the queued names when none are given."""
        service.add_packages(["git"], describe=False)
        ids = [template.id for template in service.suggest_scripts()]
        assert "git-config" in ids

    def test_run_scripts_saves_inputs(self, service: PakkyService) -> None:
        """Entered values are remembered for the next run."""
        executor = EchoExecutor()
        inputs = StaticInputProvider({"user.name": "Ada", "user.email": "ada@example.com"})

        result = service.run_scripts(inputs, template_ids=["git-config"], executor=executor)

        assert result.success
        assert len(executor.commands) == 4
        assert service.state.load_inputs()["user.email"] == "ada@example.com"

    def test_run_scripts_uses_security_level(
        self, fake_installer: FakeInstaller, scanner: FakeScanner, state: StateManager
    ) -> None:
        """The configured security level applies to every command."""
        settings = PakkySettings(security_level=SecurityLevel.STRICT)
        service = PakkyService(
            fake_installer, scanner, state=state, settings=settings, auto_reconcile=False
        )
        step = ScriptStep(name="net", commands=("curl https://example.com",))

        result = service.run_scripts(StaticInputProvider(), steps=[step], executor=EchoExecutor())

        assert result.steps[0].outcome == StepOutcome.FAILED

    def test_run_unknown_template(self, service: PakkyService) -> None:
        """Unknown template ids are rejected before anything runs."""
        with pytest.raises(ValidationError):
            service.run_scripts(StaticInputProvider(), template_ids=["nope"])

    def test_facts_fall_back_to_queue(self, service: PakkyService, scanner: FakeScanner) -> None:
        """Without brew, installed queue items stand in for the installed set."""
        service.add_packages(["jq", "node"], describe=False)
        service.start_install(background=False)
        service.remove("node")
        scanner.error = RuntimeError("brew missing")

        assert service.facts().installed_package_names == frozenset({"jq"})


class TestBoundary:
    """Tests for the service's boundary wiring."""

    def test_every_operation_is_registered(self, service: PakkyService) -> None:
        """All allow-listed operations have handlers."""
        assert set(service.build_boundary().operations) == set(Operation)

    def test_queue_add_through_boundary(self, service: PakkyService) -> None:
        """Operations route to the service."""
        boundary = service.build_boundary()
        boundary.invoke("queue:add", names=["jq"], describe=False)
        assert [item.id for item in boundary.invoke("queue:list")] == ["formula:jq"]

    def test_log_channel(self, service: PakkyService, fake_installer: FakeInstaller) -> None:
        """Install log lines are observable through the boundary."""
        fake_installer.lines = ("hello",)
        service.add_packages(["jq"], describe=False)
        boundary = service.build_boundary()
        received: list[dict[str, str]] = []
        boundary.subscribe(Channel.INSTALL_LOG, received.append)

        boundary.invoke(Operation.INSTALL_START, background=False)

        assert received == [{"package_id": "formula:jq", "line": "jq: hello"}]

    def test_unknown_operation(self, service: PakkyService) -> None:
        """Names outside the allow-list are rejected."""
        with pytest.raises(NotAllowedError):
            service.build_boundary().invoke("state:delete")


class TestCreateService:
    """Tests for create_service function."""

    def test_uses_settings_and_state_dirs(self, xdg_dirs: Path) -> None:
        """The default service reads settings and state from XDG dirs."""
        settings_path = xdg_dirs / "config" / "pakky" / "settings.toml"
        settings_path.parent.mkdir(parents=True)
        settings_path.write_text("max_log_lines = 42\n")

        service = create_service(dry_run=True)

        assert service.settings.max_log_lines == 42
        assert service.state.queue_path == xdg_dirs / "state" / "pakky" / "queue.json"
