"""Platform detection and facts for script conditions."""

import sys
from collections.abc import Iterable
from dataclasses import dataclass, field

MACOS = "macos"
LINUX = "linux"
WINDOWS = "windows"
UNKNOWN = "unknown"


def get_platform_name(platform: str | None = None) -> str:
    """Return a normalized platform name.

    Args:
        platform: Value of ``sys.platform`` to normalize (defaults to the current one).

    Returns:
        One of ``macos``, ``linux``, ``windows`` or ``unknown``.
    """
    value = platform if platform is not None else sys.platform
    if value == "darwin":
        return MACOS
    if value.startswith("linux"):
        return LINUX
    if value in ("win32", "cygwin"):
        return WINDOWS
    return UNKNOWN


@dataclass(frozen=True, slots=True)
class Facts:
    """What script conditions are evaluated against.

    Attributes:
        platform: Normalized platform name.
        installed_package_names: Names of installed packages (any type).
    """

    platform: str
    installed_package_names: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def from_installed(cls, installed: Iterable[str], platform: str | None = None) -> "Facts":
        """Build facts for the current platform from installed names."""
        return cls(
            platform=platform or get_platform_name(),
            installed_package_names=frozenset(installed),
        )

    @property
    def is_macos(self) -> bool:
        """Check if running on macOS."""
        return self.platform == MACOS
