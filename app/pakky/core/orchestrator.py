"""Sequential install orchestration.

The orchestrator drives one install session at a time across the
queue: an optional checking phase queries what is already installed,
then every eligible item is installed in queue order. Per-item output
is retained in bounded logs and published on the event bus.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from collections.abc import Callable
from types import MappingProxyType
from typing import TYPE_CHECKING

from pakky.core.errors import SessionActiveError
from pakky.models.package import PackageAction, PackageStatus, QueueItem
from pakky.models.result import InstallOutcome, failed_result
from pakky.models.session import SessionSnapshot, SessionStatus

if TYPE_CHECKING:
    from pakky.core.events import EventBus
    from pakky.core.reconcile import InstalledSet
    from pakky.core.store import QueueStore
    from pakky.operators.base import Installer
    from pakky.scanners.base import InstalledScanner

logger = logging.getLogger(__name__)

# Event channels published by the orchestrator
PROGRESS_CHANNEL = "install:progress"
LOG_CHANNEL = "install:log"

# Default number of log lines kept per item
DEFAULT_MAX_LOG_LINES = 500

ALREADY_INSTALLED_MESSAGE = "already installed"

FinishCallback = Callable[[SessionSnapshot], None]


def is_eligible(item: QueueItem) -> bool:
    """Check if an item should be processed by an install session."""
    return item.status == PackageStatus.PENDING or item.action == PackageAction.REINSTALL


def _status_for(outcome: InstallOutcome) -> PackageStatus:
    if outcome == InstallOutcome.SUCCESS:
        return PackageStatus.SUCCESS
    if outcome == InstallOutcome.FAILED:
        return PackageStatus.FAILED
    if outcome == InstallOutcome.SKIPPED:
        return PackageStatus.SKIPPED
    msg = f"Unknown install outcome: {outcome}"
    raise ValueError(msg)


class InstallOrchestrator:
    """Runs install sessions over the queue store.

    Only one session may be active at a time. Cancellation is
    cooperative: it is observed before each item starts, and a running
    install is always allowed to finish.

    Example:
        >>> orchestrator = InstallOrchestrator(store, HomebrewInstaller())
        >>> snapshot = orchestrator.start()
        >>> print(snapshot.completed_count, snapshot.failed_count)
    """

    def __init__(
        self,
        store: QueueStore,
        installer: Installer,
        *,
        scanner: InstalledScanner | None = None,
        bus: EventBus | None = None,
        max_log_lines: int = DEFAULT_MAX_LOG_LINES,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            store: Queue store the session operates on.
            installer: External install capability.
            scanner: Optional installed-set query used in the checking phase.
            bus: Optional event bus for progress and log events.
            max_log_lines: Most recent lines kept per item.
        """
        if max_log_lines < 1:
            msg = "max_log_lines must be at least 1"
            raise ValueError(msg)
        self._store = store
        self._installer = installer
        self._scanner = scanner
        self._bus = bus
        self._max_log_lines = max_log_lines

        self._lock = threading.Lock()
        self._status = SessionStatus.IDLE
        self._current_item: str | None = None
        self._logs: dict[str, deque[str]] = {}
        self._cancel_event = threading.Event()

    # -- Observation -------------------------------------------------------------

    @property
    def status(self) -> SessionStatus:
        """Current session status."""
        with self._lock:
            return self._status

    @property
    def is_active(self) -> bool:
        """Check if a session is running."""
        return self.status.is_active

    def snapshot(self) -> SessionSnapshot:
        """Return an immutable view of the session and the queue."""
        items = self._store.snapshot()
        with self._lock:
            logs = {item_id: tuple(lines) for item_id, lines in self._logs.items()}
            return SessionSnapshot(
                status=self._status,
                items=items,
                logs=MappingProxyType(logs),
                current_item=self._current_item,
            )

    def logs_for(self, item_id: str) -> tuple[str, ...]:
        """Return the retained log lines of one item."""
        with self._lock:
            return tuple(self._logs.get(item_id, ()))

    # -- Control -------------------------------------------------------------------

    def start(self, on_finish: FinishCallback | None = None) -> SessionSnapshot:
        """Run an install session in the calling thread.

        Args:
            on_finish: Called with the final snapshot.

        Returns:
            The final session snapshot.

        Raises:
            SessionActiveError: If a session is already active.
        """
        self._begin()
        return self._run(on_finish)

    def start_in_background(self, on_finish: FinishCallback | None = None) -> threading.Thread:
        """Run an install session on a daemon thread.

        A second session is rejected before the thread is created.

        Returns:
            The started thread.

        Raises:
            SessionActiveError: If a session is already active.
        """
        self._begin()
        thread = threading.Thread(
            target=self._run,
            args=(on_finish,),
            daemon=True,
            name="pakky-install",
        )
        thread.start()
        return thread

    def cancel(self) -> bool:
        """Request cooperative cancellation of the running session.

        Returns:
            False if no session is active.
        """
        if not self.is_active:
            return False
        self._cancel_event.set()
        logger.info("Install cancellation requested")
        return True

    # -- Session -------------------------------------------------------------------

    def _begin(self) -> None:
        with self._lock:
            if self._status.is_active:
                msg = "An install session is already in progress"
                raise SessionActiveError(msg)
            # Claims the store; raises if another orchestrator holds it
            self._store.begin_session()
            self._status = SessionStatus.CHECKING
            self._current_item = None
            self._logs = {}
            self._cancel_event.clear()
        self._publish_progress()

    def _run(self, on_finish: FinishCallback | None) -> SessionSnapshot:
        final_status = SessionStatus.COMPLETED
        try:
            installed = self._check_installed()
            self._set_status(SessionStatus.INSTALLING)
            if self._install_all(installed):
                final_status = SessionStatus.CANCELLED
        finally:
            # Also reached on unexpected errors; never leave the session claimed
            with self._lock:
                self._current_item = None
                self._status = final_status
            self._store.end_session()

        snapshot = self.snapshot()
        logger.info(
            "Install session %s: %d installed, %d failed, %d skipped",
            snapshot.status.value,
            snapshot.completed_count,
            snapshot.failed_count,
            snapshot.skipped_count,
        )
        self._publish_progress()
        if on_finish is not None:
            on_finish(snapshot)
        return snapshot

    def _check_installed(self) -> InstalledSet | None:
        if self._scanner is None:
            return None
        try:
            return self._scanner.installed()
        except (RuntimeError, OSError) as e:
            logger.warning("Could not query installed packages: %s", e)
            return None

    def _install_all(self, installed: InstalledSet | None) -> bool:
        """Install every eligible item; return True if cancelled."""
        eligible_ids = [item.id for item in self._store.snapshot() if is_eligible(item)]
        logger.debug("Install session has %d eligible items", len(eligible_ids))

        for item_id in eligible_ids:
            if self._cancel_event.is_set():
                return True

            # Re-read: the item may have been removed meanwhile
            item = self._store.get(item_id)
            if item is None or not is_eligible(item):
                continue

            if (
                installed is not None
                and item.action != PackageAction.REINSTALL
                and installed.contains(item)
            ):
                self._append_log(item_id, ALREADY_INSTALLED_MESSAGE)
                self._store.set_status(item_id, PackageStatus.SKIPPED, clear_action=True)
                self._publish_progress()
                continue

            self._install_one(item)

        return self._cancel_event.is_set()

    def _install_one(self, item: QueueItem) -> None:
        item_id = item.id
        with self._lock:
            self._current_item = item_id
        self._store.set_status(item_id, PackageStatus.INSTALLING)
        self._publish_progress()

        try:
            result = self._installer.install(item, lambda line: self._append_log(item_id, line))
        except Exception as e:
            logger.exception("Installer raised for %s", item_id)
            result = failed_result(item_id, str(e) or type(e).__name__)

        if result.message:
            self._append_log(item_id, result.message)
        status = _status_for(result.outcome)
        error = result.error if status == PackageStatus.FAILED else None
        self._store.set_status(item_id, status, error=error, clear_action=True)
        if error:
            logger.warning("Install of %s failed: %s", item_id, error)

        with self._lock:
            self._current_item = None
        self._publish_progress()

    # -- Helpers -------------------------------------------------------------------

    def _set_status(self, status: SessionStatus) -> None:
        with self._lock:
            self._status = status
        self._publish_progress()

    def _append_log(self, item_id: str, line: str) -> None:
        with self._lock:
            lines = self._logs.get(item_id)
            if lines is None:
                lines = deque(maxlen=self._max_log_lines)
                self._logs[item_id] = lines
            lines.append(line)
        if self._bus is not None:
            self._bus.publish(LOG_CHANNEL, {"package_id": item_id, "line": line})

    def _publish_progress(self) -> None:
        if self._bus is not None:
            self._bus.publish(PROGRESS_CHANNEL, self.snapshot().to_dict())
