"""Unit tests for InstallOrchestrator."""

import threading

import pytest
from conftest import FakeInstaller, FakeScanner, fail_with
from pakky.core.errors import SessionActiveError
from pakky.core.events import EventBus
from pakky.core.orchestrator import (
    ALREADY_INSTALLED_MESSAGE,
    LOG_CHANNEL,
    PROGRESS_CHANNEL,
    InstallOrchestrator,
    is_eligible,
)
from pakky.core.store import QueueStore
from pakky.models.package import PackageAction, PackageStatus, PackageType, QueueItem
from pakky.models.result import InstallOutcome, InstallResult
from pakky.models.session import SessionStatus


def _status(store: QueueStore, item_id: str) -> PackageStatus:
    item = store.get(item_id)
    assert item is not None
    return item.status


class TestIsEligible:
    """Tests for is_eligible function."""

    def test_pending_is_eligible(self) -> None:
        """Pending items are installed."""
        assert is_eligible(QueueItem(name="git", type=PackageType.FORMULA))

    def test_reinstall_is_eligible(self) -> None:
        """Items marked for reinstall are installed."""
        item = QueueItem(
            name="git",
            type=PackageType.FORMULA,
            status=PackageStatus.SUCCESS,
            action=PackageAction.REINSTALL,
        )
        assert is_eligible(item)

    def test_finished_is_not_eligible(self) -> None:
        """Finished items are left alone."""
        item = QueueItem(name="git", type=PackageType.FORMULA, status=PackageStatus.SUCCESS)
        assert not is_eligible(item)


class TestStart:
    """Tests for a full synchronous session."""

    def test_single_cask_completes(self) -> None:
        """One pending cask with a successful install ends completed."""
        store = QueueStore([QueueItem(name="docker", type=PackageType.CASK)])
        orchestrator = InstallOrchestrator(store, FakeInstaller())

        snapshot = orchestrator.start()

        assert snapshot.status == SessionStatus.COMPLETED
        assert _status(store, "cask:docker") == PackageStatus.SUCCESS
        assert not store.session_active

    def test_failure_does_not_halt_session(self, sample_items: list[QueueItem]) -> None:
        """A failed item is recorded and the next item still installs."""
        store = QueueStore(sample_items)
        installer = FakeInstaller(results={"formula:jq": fail_with("exit 1")})
        orchestrator = InstallOrchestrator(store, installer)

        snapshot = orchestrator.start()

        assert snapshot.status == SessionStatus.COMPLETED
        assert [item.name for item in installer.calls] == ["git", "jq", "docker"]
        jq = store.get("formula:jq")
        assert jq is not None
        assert jq.status == PackageStatus.FAILED
        assert jq.error == "exit 1"
        assert snapshot.failed_count == 1
        assert snapshot.completed_count == 2

    def test_installer_exception_is_contained(self) -> None:
        """An installer that raises yields a failed item with the exception text."""
        store = QueueStore([QueueItem(name="git", type=PackageType.FORMULA)])

        def explode(item: QueueItem) -> InstallResult:
            raise OSError("brew vanished")

        orchestrator = InstallOrchestrator(store, FakeInstaller(results={"formula:git": explode}))
        snapshot = orchestrator.start()

        item = store.get("formula:git")
        assert item is not None
        assert item.status == PackageStatus.FAILED
        assert item.error == "brew vanished"
        assert snapshot.status == SessionStatus.COMPLETED

    def test_skipped_outcome(self) -> None:
        """A skipped install result marks the item skipped."""
        store = QueueStore([QueueItem(name="git", type=PackageType.FORMULA)])
        installer = FakeInstaller(
            results={
                "formula:git": lambda item: InstallResult(
                    item_id=item.id, outcome=InstallOutcome.SKIPPED, message="nothing to do"
                )
            }
        )
        orchestrator = InstallOrchestrator(store, installer)
        orchestrator.start()

        assert _status(store, "formula:git") == PackageStatus.SKIPPED
        assert orchestrator.logs_for("formula:git") == ("nothing to do",)

    def test_only_eligible_items_installed(self) -> None:
        """Finished items are not installed again."""
        store = QueueStore(
            [
                QueueItem(name="git", type=PackageType.FORMULA, status=PackageStatus.SUCCESS),
                QueueItem(name="jq", type=PackageType.FORMULA),
            ]
        )
        installer = FakeInstaller()
        InstallOrchestrator(store, installer).start()
        assert [item.name for item in installer.calls] == ["jq"]

    def test_reinstall_clears_action(self) -> None:
        """The reinstall action is dropped once the install finishes."""
        store = QueueStore(
            [
                QueueItem(
                    name="git",
                    type=PackageType.FORMULA,
                    status=PackageStatus.FAILED,
                    error="boom",
                )
            ]
        )
        store.reinstall("formula:git")
        InstallOrchestrator(store, FakeInstaller()).start()

        item = store.get("formula:git")
        assert item is not None
        assert item.status == PackageStatus.SUCCESS
        assert item.action is None

    def test_logs_are_kept_in_order(self) -> None:
        """Each item's lines are kept in arrival order."""
        store = QueueStore([QueueItem(name="git", type=PackageType.FORMULA)])
        orchestrator = InstallOrchestrator(store, FakeInstaller(lines=["one", "two", "three"]))

        snapshot = orchestrator.start()

        assert snapshot.logs["formula:git"] == ("git: one", "git: two", "git: three")

    def test_log_retention_is_bounded(self) -> None:
        """Only the most recent lines are kept."""
        store = QueueStore([QueueItem(name="git", type=PackageType.FORMULA)])
        lines = [str(i) for i in range(20)]
        orchestrator = InstallOrchestrator(store, FakeInstaller(lines=lines), max_log_lines=5)

        orchestrator.start()

        assert orchestrator.logs_for("formula:git") == tuple(f"git: {i}" for i in range(15, 20))

    def test_logs_cleared_between_sessions(self) -> None:
        """A new session starts with empty logs."""
        store = QueueStore([QueueItem(name="git", type=PackageType.FORMULA)])
        orchestrator = InstallOrchestrator(store, FakeInstaller(lines=["hello"]))
        orchestrator.start()

        snapshot = orchestrator.start()

        assert snapshot.logs == {}

    def test_invalid_max_log_lines(self) -> None:
        """max_log_lines must be positive."""
        with pytest.raises(ValueError):
            InstallOrchestrator(QueueStore(), FakeInstaller(), max_log_lines=0)


class TestCheckingPhase:
    """Tests for the installed-set check before installing."""

    def test_already_installed_item_is_skipped(self) -> None:
        """Items found installed in the checking phase are skipped without installing."""
        store = QueueStore(
            [
                QueueItem(name="git", type=PackageType.FORMULA),
                QueueItem(name="jq", type=PackageType.FORMULA),
            ]
        )
        installer = FakeInstaller()
        orchestrator = InstallOrchestrator(store, installer, scanner=FakeScanner(formulae=["git"]))

        orchestrator.start()

        assert [item.name for item in installer.calls] == ["jq"]
        assert _status(store, "formula:git") == PackageStatus.SKIPPED
        assert orchestrator.logs_for("formula:git") == (ALREADY_INSTALLED_MESSAGE,)

    def test_reinstall_ignores_installed_set(self) -> None:
        """Reinstall requests always run the installer."""
        store = QueueStore(
            [
                QueueItem(
                    name="git",
                    type=PackageType.FORMULA,
                    status=PackageStatus.SUCCESS,
                    action=PackageAction.REINSTALL,
                )
            ]
        )
        installer = FakeInstaller()
        InstallOrchestrator(store, installer, scanner=FakeScanner(formulae=["git"])).start()
        assert len(installer.calls) == 1

    def test_scanner_failure_is_best_effort(self) -> None:
        """A failing query does not stop the session."""
        store = QueueStore([QueueItem(name="git", type=PackageType.FORMULA)])
        scanner = FakeScanner()
        scanner.error = RuntimeError("brew missing")

        snapshot = InstallOrchestrator(store, FakeInstaller(), scanner=scanner).start()

        assert snapshot.status == SessionStatus.COMPLETED
        assert _status(store, "formula:git") == PackageStatus.SUCCESS


class TestConcurrency:
    """Tests for session exclusivity and cancellation."""

    def test_second_start_rejected(self) -> None:
        """Starting while a session is active raises SessionActiveError."""
        store = QueueStore([QueueItem(name="git", type=PackageType.FORMULA)])
        installer = FakeInstaller()
        orchestrator = InstallOrchestrator(store, installer)
        errors: list[Exception] = []

        def try_again(item: QueueItem) -> None:
            try:
                orchestrator.start()
            except SessionActiveError as e:
                errors.append(e)

        installer.before_install = try_again
        orchestrator.start()

        assert len(errors) == 1

    def test_cancel_leaves_pending_items(self, sample_items: list[QueueItem]) -> None:
        """Cancelling mid-run finishes the current item and keeps the rest pending."""
        store = QueueStore(sample_items)
        installer = FakeInstaller()
        orchestrator = InstallOrchestrator(store, installer)
        installer.before_install = lambda item: orchestrator.cancel()

        snapshot = orchestrator.start()

        assert snapshot.status == SessionStatus.CANCELLED
        assert _status(store, "formula:git") == PackageStatus.SUCCESS
        assert _status(store, "formula:jq") == PackageStatus.PENDING
        assert _status(store, "cask:docker") == PackageStatus.PENDING

    def test_cancel_during_last_item(self) -> None:
        """Cancelling while the last item installs still ends the session as cancelled."""
        store = QueueStore([QueueItem(name="git", type=PackageType.FORMULA)])
        installer = FakeInstaller()
        orchestrator = InstallOrchestrator(store, installer)
        installer.before_install = lambda item: orchestrator.cancel()

        snapshot = orchestrator.start()

        assert snapshot.status == SessionStatus.CANCELLED
        assert _status(store, "formula:git") == PackageStatus.SUCCESS

    def test_cancel_when_idle(self) -> None:
        """cancel returns False without a session."""
        orchestrator = InstallOrchestrator(QueueStore(), FakeInstaller())
        assert orchestrator.cancel() is False

    def test_cancelled_session_can_resume(self, sample_items: list[QueueItem]) -> None:
        """A later session installs the items a cancelled one left pending."""
        store = QueueStore(sample_items)
        installer = FakeInstaller()
        orchestrator = InstallOrchestrator(store, installer)
        installer.before_install = lambda item: orchestrator.cancel()
        orchestrator.start()

        installer.before_install = None
        snapshot = orchestrator.start()

        assert snapshot.status == SessionStatus.COMPLETED
        assert snapshot.completed_count == 3

    def test_item_removed_mid_session_is_skipped(self, sample_items: list[QueueItem]) -> None:
        """Items removed while the session runs are not installed."""
        store = QueueStore(sample_items)
        installer = FakeInstaller()
        installer.before_install = lambda item: store.remove("cask:docker")

        InstallOrchestrator(store, installer).start()

        assert [item.name for item in installer.calls] == ["git", "jq"]

    def test_start_in_background(self) -> None:
        """A background session runs on its own thread and reports on finish."""
        store = QueueStore([QueueItem(name="git", type=PackageType.FORMULA)])
        orchestrator = InstallOrchestrator(store, FakeInstaller())
        finished = threading.Event()

        thread = orchestrator.start_in_background(lambda snapshot: finished.set())
        thread.join(timeout=5)

        assert finished.is_set()
        assert orchestrator.status == SessionStatus.COMPLETED

    def test_installing_status_visible_during_install(self) -> None:
        """The item is installing and current while the installer runs."""
        store = QueueStore([QueueItem(name="git", type=PackageType.FORMULA)])
        installer = FakeInstaller()
        orchestrator = InstallOrchestrator(store, installer)
        seen: list[tuple[PackageStatus, str | None, SessionStatus]] = []

        def record(item: QueueItem) -> None:
            snapshot = orchestrator.snapshot()
            seen.append((snapshot.items[0].status, snapshot.current_item, snapshot.status))

        installer.before_install = record
        orchestrator.start()

        assert seen == [(PackageStatus.INSTALLING, "formula:git", SessionStatus.INSTALLING)]


class TestEvents:
    """Tests for progress and log events."""

    def test_publishes_log_lines(self) -> None:
        """Each log line is published with its package id."""
        bus = EventBus()
        received: list[dict[str, str]] = []
        bus.subscribe(LOG_CHANNEL, received.append)
        store = QueueStore([QueueItem(name="git", type=PackageType.FORMULA)])

        InstallOrchestrator(store, FakeInstaller(lines=["hi"]), bus=bus).start()

        assert received == [{"package_id": "formula:git", "line": "git: hi"}]

    def test_publishes_progress(self) -> None:
        """Progress events cover the whole session lifecycle."""
        bus = EventBus()
        statuses: list[str] = []
        bus.subscribe(PROGRESS_CHANNEL, lambda payload: statuses.append(payload["status"]))
        store = QueueStore([QueueItem(name="git", type=PackageType.FORMULA)])

        InstallOrchestrator(store, FakeInstaller(), bus=bus).start()

        assert statuses[0] == "checking"
        assert "installing" in statuses
        assert statuses[-1] == "completed"
