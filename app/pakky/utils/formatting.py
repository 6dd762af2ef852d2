"""Rich console formatting utilities.

Provides consistent formatting for CLI output using Rich.
"""

import sys

from rich.console import Console
from rich.markup import escape

from pakky.core.theme import get_theme
from pakky.models.package import PackageStatus, PackageType

_STATUS_ICONS: dict[PackageStatus, str] = {
    PackageStatus.PENDING: "○",  # Empty circle
    PackageStatus.INSTALLING: "◐",  # Half circle
    PackageStatus.SUCCESS: "✓",
    PackageStatus.FAILED: "✗",
    PackageStatus.ALREADY_INSTALLED: "●",  # Filled circle
    PackageStatus.SKIPPED: "-",
}


def _detect_color_system() -> str | None:
    """Detect the best color system for the current terminal.

    Returns "truecolor" for interactive terminals to enable full hex color support,
    None otherwise to let Rich auto-detect.
    """
    if sys.stdout.isatty():
        return "truecolor"
    return None


# Shared console instances (theme loaded once at import)
console = Console(theme=get_theme(), color_system=_detect_color_system())
err_console = Console(theme=get_theme(), stderr=True, color_system=_detect_color_system())


def format_status(status: PackageStatus) -> str:
    """Format a queue item status with icon and color markup.

    Raises:
        ValueError: If the status has no display form.
    """
    icon = _STATUS_ICONS.get(status)
    if icon is None:
        msg = f"Unknown package status: {status}"
        raise ValueError(msg)
    label = status.value.replace("_", " ")
    return f"[status.{status.value}]{icon} {label}[/]"


def format_package_type(package_type: PackageType) -> str:
    """Format a package type with color markup."""
    return f"[package.{package_type.value}]{package_type.value}[/]"


def format_log_line(line: str) -> str:
    """Format one install or script log line.

    Command echo lines (``$ ...``) are highlighted; output is escaped so
    that brackets in tool output are never read as markup.
    """
    if line.startswith("$ "):
        return f"[log.command]{escape(line)}[/]"
    if line.startswith("✗"):
        return f"[error]{escape(line)}[/]"
    if line.startswith("✓"):
        return f"[success]{escape(line)}[/]"
    return f"[muted]{escape(line)}[/]"


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[info]{message}[/]")


def print_warning(message: str) -> None:
    """Print a warning message."""
    err_console.print(f"[warning]Warning:[/] {message}")


def print_error(message: str) -> None:
    """Print an error message."""
    err_console.print(f"[error]Error:[/] {message}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[success]{message}[/]")
