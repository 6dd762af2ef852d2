"""Install session models.

A session is one run of the install orchestrator across the queue.
Observers never see the orchestrator's mutable state; they receive
immutable snapshots.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any

from pakky.models.package import PackageStatus, QueueItem


class SessionStatus(str, Enum):
    """Overall status of the install orchestrator."""

    IDLE = "idle"
    CHECKING = "checking"
    INSTALLING = "installing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def is_active(self) -> bool:
        """Check if a session is currently running."""
        return self in (SessionStatus.CHECKING, SessionStatus.INSTALLING)


def _empty_logs() -> Mapping[str, tuple[str, ...]]:
    return MappingProxyType({})


@dataclass(frozen=True, slots=True)
class SessionSnapshot:
    """Point-in-time view of an install session.

    Attributes:
        status: Overall session status.
        items: Queue items in install order.
        logs: Per-item log lines keyed by item id.
        current_item: Id of the item being installed, if any.
    """

    status: SessionStatus
    items: tuple[QueueItem, ...] = ()
    logs: Mapping[str, tuple[str, ...]] = field(default_factory=_empty_logs)
    current_item: str | None = None

    @property
    def total(self) -> int:
        """Number of items in the session's queue."""
        return len(self.items)

    @property
    def completed_count(self) -> int:
        """Number of items that are installed (by this session or before it)."""
        return sum(
            1
            for item in self.items
            if item.status in (PackageStatus.SUCCESS, PackageStatus.ALREADY_INSTALLED)
        )

    @property
    def failed_count(self) -> int:
        """Number of items that failed."""
        return sum(1 for item in self.items if item.status == PackageStatus.FAILED)

    @property
    def skipped_count(self) -> int:
        """Number of items that were skipped."""
        return sum(1 for item in self.items if item.status == PackageStatus.SKIPPED)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a plain dictionary for event payloads.

        Returns:
            Dictionary with status, counts and item records.
        """
        return {
            "status": self.status.value,
            "current_item": self.current_item,
            "total": self.total,
            "completed": self.completed_count,
            "failed": self.failed_count,
            "skipped": self.skipped_count,
            "items": [item.to_dict() for item in self.items],
        }
