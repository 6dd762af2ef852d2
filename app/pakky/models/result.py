"""Install result models.

This module defines the terminal result an installer reports for a
single queued package.
"""

from dataclasses import dataclass
from enum import Enum


class InstallOutcome(str, Enum):
    """Terminal outcome of one install operation.

    Attributes:
        SUCCESS: The package was installed.
        FAILED: The install command failed.
        SKIPPED: Nothing was done (e.g. already satisfied).
    """

    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True, slots=True)
class InstallResult:
    """Result of installing a single queued package.

    Attributes:
        item_id: Queue identity of the package (``type:name``).
        outcome: Terminal outcome.
        error: Failure reason, required when the outcome is FAILED.
        message: Optional informational message.
    """

    item_id: str
    outcome: InstallOutcome
    error: str | None = None
    message: str | None = None

    def __post_init__(self) -> None:
        """Validate result data after initialization."""
        if self.outcome == InstallOutcome.FAILED and not self.error:
            msg = "Failed results must carry an error"
            raise ValueError(msg)

    @property
    def success(self) -> bool:
        """Check if the install succeeded."""
        return self.outcome == InstallOutcome.SUCCESS

    @property
    def failed(self) -> bool:
        """Check if the install failed."""
        return self.outcome == InstallOutcome.FAILED


def success_result(item_id: str, message: str | None = None) -> InstallResult:
    """Create a successful install result."""
    return InstallResult(item_id=item_id, outcome=InstallOutcome.SUCCESS, message=message)


def failed_result(item_id: str, error: str) -> InstallResult:
    """Create a failed install result."""
    return InstallResult(item_id=item_id, outcome=InstallOutcome.FAILED, error=error)


def skipped_result(item_id: str, message: str | None = None) -> InstallResult:
    """Create a skipped install result."""
    return InstallResult(item_id=item_id, outcome=InstallOutcome.SKIPPED, message=message)
