"""Thread-safe owner of the install queue.

QueueStore is the single source of truth for the queue. Other
components read immutable snapshots and change the queue only through
the methods below; while an install session is active, item statuses
are changed exclusively through the session hooks used by the
orchestrator.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable
from dataclasses import replace

from pakky.core import queue as queue_ops
from pakky.core.errors import ItemBusyError, SessionActiveError
from pakky.core.queue import AddResult, PackageCandidate, Queue
from pakky.core.reconcile import InstalledSet, reconcile
from pakky.models.package import PackageStatus, QueueItem

logger = logging.getLogger(__name__)

ChangeListener = Callable[[Queue], None]


class QueueStore:
    """Holds the queue and serializes every mutation.

    Attributes:
        session_active: Whether an install session currently owns item statuses.
    """

    def __init__(self, items: Iterable[QueueItem] = ()) -> None:
        """Initialize the store.

        Args:
            items: Initial queue contents (duplicates are dropped).
        """
        self._lock = threading.RLock()
        self._queue: Queue = queue_ops.merge((), items)
        self._session_active = False
        self._listeners: list[ChangeListener] = []

    # -- Reading -------------------------------------------------------------

    def snapshot(self) -> Queue:
        """Return the current queue as an immutable tuple."""
        with self._lock:
            return self._queue

    def get(self, item_id: str) -> QueueItem | None:
        """Return the item with the given id, if queued."""
        with self._lock:
            return queue_ops.find(self._queue, item_id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._queue)

    @property
    def session_active(self) -> bool:
        """Whether an install session currently owns item statuses."""
        with self._lock:
            return self._session_active

    def on_change(self, listener: ChangeListener) -> None:
        """Register a callback invoked with the new queue after each mutation."""
        with self._lock:
            self._listeners.append(listener)

    # -- User operations -----------------------------------------------------

    def add(self, candidate: PackageCandidate) -> AddResult:
        """Add a package; duplicates are reported, not raised."""
        with self._lock:
            result = queue_ops.add(self._queue, candidate)
            changed = self._set_queue(result.queue)
        if changed:
            self._notify(result.queue)
        return result

    def add_many(self, candidates: Iterable[PackageCandidate]) -> AddResult:
        """Add several packages in one mutation.

        Returns:
            AddResult covering every candidate.
        """
        with self._lock:
            current = self._queue
            added: list[QueueItem] = []
            duplicates: list[str] = []
            for candidate in candidates:
                result = queue_ops.add(current, candidate)
                current = result.queue
                added.extend(result.added)
                duplicates.extend(result.duplicates)
            changed = self._set_queue(current)
        if changed:
            self._notify(current)
        return AddResult(queue=current, added=tuple(added), duplicates=tuple(duplicates))

    def merge(self, items: Iterable[QueueItem]) -> tuple[QueueItem, ...]:
        """Merge imported items and return the ones that were added."""
        with self._lock:
            before = {item.id for item in self._queue}
            merged = queue_ops.merge(self._queue, items)
            changed = self._set_queue(merged)
        if changed:
            self._notify(merged)
        return tuple(item for item in merged if item.id not in before)

    def remove(self, item_id: str) -> bool:
        """Remove an item by id.

        Returns:
            True if an item was removed.

        Raises:
            ItemBusyError: If the item is currently installing.
        """
        with self._lock:
            item = queue_ops.find(self._queue, item_id)
            if item is None:
                return False
            if item.status == PackageStatus.INSTALLING:
                msg = f"{item_id} is installing and cannot be removed"
                raise ItemBusyError(msg)
            updated = queue_ops.remove(self._queue, item_id)
            self._set_queue(updated)
        self._notify(updated)
        return True

    def move(self, item_id: str, new_index: int) -> bool:
        """Move an item to a new zero-based position.

        A running session keeps the order it started with.

        Returns:
            True if the order changed.
        """
        with self._lock:
            updated = queue_ops.move(self._queue, item_id, new_index)
            changed = self._set_queue(updated)
        if changed:
            self._notify(updated)
        return changed

    def clear(self) -> int:
        """Remove every item.

        Returns:
            Number of removed items.

        Raises:
            ItemBusyError: If any item is currently installing.
        """
        with self._lock:
            busy = [item.id for item in self._queue if item.status == PackageStatus.INSTALLING]
            if busy:
                msg = f"Cannot clear the queue while installing: {', '.join(busy)}"
                raise ItemBusyError(msg)
            count = len(self._queue)
            self._set_queue(())
        if count:
            self._notify(())
        return count

    def reinstall(self, item_id: str) -> QueueItem | None:
        """Reset an item to pending with the reinstall action.

        Returns:
            The updated item, or None if the id is unknown.

        Raises:
            SessionActiveError: If an install session is running.
        """
        with self._lock:
            if self._session_active:
                msg = "Cannot change the queue while an install session is running"
                raise SessionActiveError(msg)
            try:
                updated = queue_ops.reinstall(self._queue, item_id)
            except ValueError as e:
                raise ItemBusyError(str(e)) from e
            changed = self._set_queue(updated)
            item = queue_ops.find(updated, item_id)
        if changed:
            self._notify(updated)
        return item

    def set_description(self, item_id: str, description: str) -> None:
        """Fill in a description found after the item was queued."""
        with self._lock:
            item = queue_ops.find(self._queue, item_id)
            if item is None:
                return
            updated = queue_ops.replace_item(self._queue, replace(item, description=description))
            self._set_queue(updated)
        self._notify(updated)

    # -- Session hooks (orchestrator only) -------------------------------------

    def begin_session(self) -> Queue:
        """Claim exclusive ownership of item statuses.

        Returns:
            The queue at the start of the session.

        Raises:
            SessionActiveError: If a session is already active.
        """
        with self._lock:
            if self._session_active:
                msg = "An install session is already in progress"
                raise SessionActiveError(msg)
            self._session_active = True
            return self._queue

    def end_session(self) -> None:
        """Release ownership of item statuses."""
        with self._lock:
            self._session_active = False

    def set_status(
        self,
        item_id: str,
        status: PackageStatus,
        *,
        error: str | None = None,
        clear_action: bool = False,
    ) -> QueueItem | None:
        """Transition an item to a new status (last writer wins).

        Used by the orchestrator while it owns the session. Items removed
        from the queue in the meantime are ignored.

        Args:
            item_id: Item to update.
            status: New status.
            error: Failure reason, only for FAILED.
            clear_action: Drop the item's action (set when an install finished).

        Returns:
            The updated item, or None if it is no longer queued.
        """
        with self._lock:
            item = queue_ops.find(self._queue, item_id)
            if item is None:
                return None
            action = None if clear_action else item.action
            new_item = replace(item, status=status, error=error, action=action)
            updated = queue_ops.replace_item(self._queue, new_item)
            self._set_queue(updated)
        self._notify(updated)
        return new_item

    # -- Reconciliation hook ---------------------------------------------------

    def apply_installed(self, installed: InstalledSet) -> bool:
        """Mark queued items found installed as already installed.

        Does nothing while an install session is active.

        Returns:
            True if any item changed.
        """
        with self._lock:
            if self._session_active:
                logger.debug("Skipping reconciliation: install session active")
                return False
            updated = reconcile(self._queue, installed)
            if updated is None:
                return False
            self._set_queue(updated)
        self._notify(updated)
        return True

    # -- Internals ---------------------------------------------------------------

    def _set_queue(self, new_queue: Queue) -> bool:
        if new_queue is self._queue:
            return False
        self._queue = new_queue
        return True

    def _notify(self, snapshot: Queue) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Queue change listener failed")
