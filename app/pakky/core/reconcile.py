"""Reconciliation of the queue with what is actually installed.

Packages installed outside pakky (e.g. straight from a terminal) are
detected by querying the package manager and marking matching queue
items as already installed. Passes are debounced and never run while
an install session owns the queue.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING

from pakky.models.package import PackageStatus, PackageType, QueueItem

if TYPE_CHECKING:
    from pakky.core.store import QueueStore
    from pakky.scanners.base import InstalledScanner

logger = logging.getLogger(__name__)

# Statuses reconciliation must never overwrite
_PROTECTED_STATUSES = frozenset(
    {
        PackageStatus.INSTALLING,
        PackageStatus.SUCCESS,
        PackageStatus.FAILED,
        PackageStatus.ALREADY_INSTALLED,
    }
)


@dataclass(frozen=True, slots=True)
class InstalledSet:
    """Names of installed packages, split by package type.

    Attributes:
        formulae: Installed formula names.
        casks: Installed cask names.
    """

    formulae: frozenset[str] = field(default_factory=frozenset)
    casks: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def from_names(
        cls, formulae: Iterable[str] = (), casks: Iterable[str] = ()
    ) -> InstalledSet:
        """Build an InstalledSet from plain name iterables."""
        return cls(formulae=frozenset(formulae), casks=frozenset(casks))

    @property
    def names(self) -> frozenset[str]:
        """All installed names regardless of type."""
        return self.formulae | self.casks

    def contains(self, item: QueueItem) -> bool:
        """Check if a queue item is installed under its own package type."""
        if item.type == PackageType.FORMULA:
            return item.name.lower() in self.formulae
        if item.type == PackageType.CASK:
            return item.name.lower() in self.casks
        msg = f"Unknown package type: {item.type}"
        raise ValueError(msg)


def is_reconcilable(item: QueueItem) -> bool:
    """Check if reconciliation may change this item.

    Items carrying an explicit action (e.g. reinstall) and items in a
    protected status are left alone.
    """
    return item.status not in _PROTECTED_STATUSES and item.action is None


def reconcile(
    queue: tuple[QueueItem, ...], installed: InstalledSet
) -> tuple[QueueItem, ...] | None:
    """Mark queue items found in ``installed`` as already installed.

    Args:
        queue: Current queue snapshot.
        installed: Installed package names.

    Returns:
        The updated queue, or None when nothing would change.
    """
    if not any(is_reconcilable(item) and installed.contains(item) for item in queue):
        return None

    return tuple(
        replace(item, status=PackageStatus.ALREADY_INSTALLED)
        if is_reconcilable(item) and installed.contains(item)
        else item
        for item in queue
    )


class ReconciliationMonitor:
    """Debounced background reconciliation of the queue.

    Call ``notify()`` whenever the queue changes. When the queue length
    differs from the last armed pass, a timer is (re)armed and a single
    pass runs once the queue has been quiet for ``debounce`` seconds.

    Example:
        >>> monitor = ReconciliationMonitor(store, HomebrewScanner())
        >>> store.on_change(lambda _queue: monitor.notify())
    """

    def __init__(
        self,
        store: QueueStore,
        scanner: InstalledScanner,
        *,
        debounce: float = 0.5,
        is_session_active: Callable[[], bool] | None = None,
    ) -> None:
        """Initialize the monitor.

        Args:
            store: Queue store to reconcile.
            scanner: Source of the installed package set.
            debounce: Quiet period in seconds before a pass runs.
            is_session_active: Extra check for a running install session.
        """
        self._store = store
        self._scanner = scanner
        self._debounce = debounce
        self._is_session_active = is_session_active or (lambda: store.session_active)
        self._lock = threading.Lock()
        self._timer: threading.Timer | None = None
        self._armed_length: int | None = None

    @property
    def pending(self) -> bool:
        """Check if a pass is scheduled."""
        with self._lock:
            return self._timer is not None

    def notify(self) -> None:
        """Schedule a pass if the queue length changed since the last one.

        Does nothing while an install session is running.
        """
        if self._is_session_active():
            return
        length = len(self._store)
        with self._lock:
            if length == self._armed_length:
                return
            self._armed_length = length
            if self._timer is not None:
                self._timer.cancel()
            if length == 0:
                self._timer = None
                return
            self._timer = threading.Timer(self._debounce, self._on_timer)
            self._timer.daemon = True
            self._timer.start()

    def cancel(self) -> None:
        """Disarm any scheduled pass.

        The armed length is forgotten, so the next ``notify()`` schedules a
        pass even if the queue length is unchanged.
        """
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = None
            self._armed_length = None

    def run_once(self) -> bool:
        """Run one reconciliation pass now.

        Returns:
            True if any queue item changed.
        """
        if self._is_session_active():
            logger.debug("Reconciliation skipped: install session active")
            return False
        if not self._store.snapshot():
            return False

        try:
            installed = self._scanner.installed()
        except (RuntimeError, OSError) as e:
            logger.debug("Installed-set query failed: %s", e)
            return False

        # The store re-checks the session flag under its lock
        changed = self._store.apply_installed(installed)
        if changed:
            logger.info("Reconciliation marked queue items as already installed")
        return changed

    def _on_timer(self) -> None:
        with self._lock:
            self._timer = None
        self.run_once()
