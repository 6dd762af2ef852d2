"""Package models for the install queue.

This module defines the core data structures for representing
packages queued for installation through Homebrew.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class PackageType(str, Enum):
    """Kind of Homebrew package.

    Attributes:
        FORMULA: Command-line tool installed with ``brew install``.
        CASK: GUI application bundle installed with ``brew install --cask``.
    """

    FORMULA = "formula"
    CASK = "cask"


class PackageStatus(str, Enum):
    """Lifecycle status of a queued package."""

    PENDING = "pending"
    INSTALLING = "installing"
    SUCCESS = "success"
    FAILED = "failed"
    ALREADY_INSTALLED = "already_installed"
    SKIPPED = "skipped"

    @property
    def is_terminal(self) -> bool:
        """Check if the status ends the package's install lifecycle."""
        return self in _TERMINAL_STATUSES


_TERMINAL_STATUSES = frozenset(
    {
        PackageStatus.SUCCESS,
        PackageStatus.FAILED,
        PackageStatus.ALREADY_INSTALLED,
        PackageStatus.SKIPPED,
    }
)


class PackageAction(str, Enum):
    """Explicit install behavior override for a queued package.

    Attributes:
        INSTALL: Plain install (same as having no override).
        REINSTALL: Force ``brew reinstall`` even if the package is present.
    """

    INSTALL = "install"
    REINSTALL = "reinstall"


def make_item_id(package_type: PackageType, name: str) -> str:
    """Build the stable queue identity for a package.

    Args:
        package_type: Formula or cask.
        name: Package name.

    Returns:
        Identifier in ``type:name`` form (e.g. ``cask:docker``). Homebrew
        names are case-insensitive, so the name is lowercased.
    """
    return f"{package_type.value}:{name.strip().lower()}"


@dataclass(frozen=True, slots=True)
class QueueItem:
    """Represents one package in the install queue.

    Items are immutable; every status change produces a new instance
    which replaces the old one by ``id``.

    Attributes:
        name: Package name (e.g., 'git', 'docker').
        type: Formula or cask.
        status: Current lifecycle status.
        description: Human-readable description (may be filled lazily).
        action: Optional override of the default install behavior.
        error: Failure reason, only present when status is FAILED.
    """

    name: str
    type: PackageType
    status: PackageStatus = PackageStatus.PENDING
    description: str | None = field(default=None)
    action: PackageAction | None = field(default=None)
    error: str | None = field(default=None)

    def __post_init__(self) -> None:
        """Validate item data after initialization."""
        if not self.name or not self.name.strip():
            msg = "Package name cannot be empty"
            raise ValueError(msg)
        if self.name != self.name.strip():
            object.__setattr__(self, "name", self.name.strip())
        if self.error is not None and self.status != PackageStatus.FAILED:
            msg = f"Error is only allowed on failed items, got status {self.status.value}"
            raise ValueError(msg)

    @property
    def id(self) -> str:
        """Stable identity in ``type:name`` form."""
        return make_item_id(self.type, self.name)

    @property
    def is_cask(self) -> bool:
        """Check if this item is a cask."""
        return self.type == PackageType.CASK

    @property
    def is_reinstall(self) -> bool:
        """Check if this item carries an explicit reinstall request."""
        return self.action == PackageAction.REINSTALL

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON storage.

        Returns:
            Dictionary representation of the queue item.
        """
        result: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "type": self.type.value,
            "status": self.status.value,
        }
        if self.description is not None:
            result["description"] = self.description
        if self.action is not None:
            result["action"] = self.action.value
        if self.error is not None:
            result["error"] = self.error
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "QueueItem":
        """Deserialize from dictionary.

        The stored ``id`` is ignored; identity is always derived from
        type and name.

        Args:
            data: Dictionary containing item data.

        Returns:
            QueueItem instance.

        Raises:
            KeyError: If required fields are missing.
            ValueError: If type, status or action is invalid.
        """
        action = data.get("action")
        return cls(
            name=data["name"],
            type=PackageType(data["type"]),
            status=PackageStatus(data.get("status", PackageStatus.PENDING.value)),
            description=data.get("description"),
            action=PackageAction(action) if action else None,
            error=data.get("error"),
        )


@dataclass(frozen=True, slots=True)
class SearchResult:
    """A package found by a Homebrew search.

    Attributes:
        name: Package name as printed by brew.
        type: Formula or cask.
        installed: The package is already installed.
    """

    name: str
    type: PackageType
    installed: bool = False

    @property
    def id(self) -> str:
        """Queue identity the package would receive."""
        return make_item_id(self.type, self.name)
