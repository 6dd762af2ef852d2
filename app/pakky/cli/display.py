"""Shared Rich display functions for the queue, sessions and scripts.

Provides reusable table builders and summary printers used across CLI
commands (queue, search, install, import, scripts).
"""

from collections.abc import Sequence

from rich.markup import escape
from rich.table import Table

from pakky.models.package import QueueItem, SearchResult
from pakky.models.script import ScriptRunResult, ScriptTemplate, StepOutcome
from pakky.models.session import SessionSnapshot, SessionStatus
from pakky.utils.formatting import console, format_package_type, format_status, print_success

_STEP_OUTCOME_TEXT: dict[StepOutcome, str] = {
    StepOutcome.RAN: "[success]ran[/success]",
    StepOutcome.SKIPPED: "[muted]skipped[/muted]",
    StepOutcome.FAILED: "[error]failed[/error]",
}


def create_queue_table(items: Sequence[QueueItem], title: str = "Install Queue") -> Table:
    """Create a Rich table displaying queue items in install order.

    Args:
        items: Queue items to display.
        title: Table title.

    Returns:
        Rich Table configured for queue display.
    """
    table = Table(
        title=title,
        show_header=True,
        header_style="bold_header",
        border_style="border",
        row_styles=["", "on grey7"],  # Zebra striping for readability
    )
    table.add_column("#", style="muted", justify="right", width=3)
    table.add_column("Package", no_wrap=True)
    table.add_column("Type", width=8)
    table.add_column("Status", no_wrap=True)
    table.add_column("Description", style="text", overflow="ellipsis")

    for index, item in enumerate(items, start=1):
        name = f"[package.name]{escape(item.name)}[/]"
        if item.is_reinstall:
            name += " [warning](reinstall)[/warning]"
        detail = item.error if item.error else (item.description or "-")
        detail_style = "error" if item.error else "text"
        table.add_row(
            str(index),
            name,
            format_package_type(item.type),
            format_status(item.status),
            f"[{detail_style}]{escape(detail)}[/{detail_style}]",
        )

    return table


def create_results_table(snapshot: SessionSnapshot) -> Table:
    """Create a Rich table displaying the items of a finished session.

    Args:
        snapshot: Final session snapshot.

    Returns:
        Rich Table configured for results display.
    """
    table = Table(
        title="Results",
        show_header=True,
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("Status", no_wrap=True)
    table.add_column("Package", no_wrap=True)
    table.add_column("Message")

    for item in snapshot.items:
        logs = snapshot.logs.get(item.id, ())
        if item.error:
            message = f"[error]{escape(item.error)}[/error]"
        elif logs:
            message = f"[muted]{escape(logs[-1])}[/muted]"
        else:
            message = ""
        table.add_row(format_status(item.status), escape(item.id), message)

    return table


def create_search_table(results: Sequence[SearchResult], title: str = "Search Results") -> Table:
    """Create a Rich table listing Homebrew search results."""
    table = Table(
        title=title,
        show_header=True,
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("Package", no_wrap=True)
    table.add_column("Type", width=8)
    table.add_column("Installed", no_wrap=True)

    for result in results:
        table.add_row(
            f"[package.name]{escape(result.name)}[/]",
            format_package_type(result.type),
            "[success]yes[/success]" if result.installed else "[muted]no[/muted]",
        )

    return table


def create_templates_table(templates: Sequence[ScriptTemplate], title: str = "Templates") -> Table:
    """Create a Rich table listing script templates."""
    table = Table(
        title=title,
        show_header=True,
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("ID", no_wrap=True, style="info")
    table.add_column("Name")
    table.add_column("Category", width=8)
    table.add_column("Suggested for", style="muted")
    table.add_column("Description", style="text")

    for template in templates:
        table.add_row(
            template.id,
            template.name,
            template.category,
            ", ".join(template.suggested_for) or "-",
            template.description,
        )

    return table


def create_script_results_table(result: ScriptRunResult) -> Table:
    """Create a Rich table with the outcome of every step that was reached."""
    table = Table(
        title="Script Results",
        show_header=True,
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("Outcome", width=8)
    table.add_column("Step")
    table.add_column("Error")

    for step in result.steps:
        table.add_row(
            _STEP_OUTCOME_TEXT[step.outcome],
            escape(step.name),
            f"[muted]{escape(step.error or '')}[/muted]",
        )

    return table


def print_session_summary(snapshot: SessionSnapshot) -> None:
    """Print a summary line for a finished install session.

    Args:
        snapshot: Final session snapshot.
    """
    if snapshot.status == SessionStatus.CANCELLED:
        pending = sum(1 for item in snapshot.items if not item.status.is_terminal)
        console.print(f"\n[warning]Install cancelled; {pending} package(s) left in queue[/warning]")

    if snapshot.failed_count == 0:
        print_success(f"All {snapshot.completed_count} package(s) installed.")
        return

    console.print(
        f"\n[success]{snapshot.completed_count} installed[/success], "
        f"[error]{snapshot.failed_count} failed[/error], "
        f"[muted]{snapshot.skipped_count} skipped[/muted]"
    )


def print_script_summary(result: ScriptRunResult) -> None:
    """Print a summary line for a finished script run."""
    ran = sum(1 for step in result.steps if step.outcome == StepOutcome.RAN)
    skipped = sum(1 for step in result.steps if step.outcome == StepOutcome.SKIPPED)
    failed = sum(1 for step in result.steps if step.outcome == StepOutcome.FAILED)

    if result.cancelled:
        console.print("\n[warning]Script run cancelled[/warning]")
    elif result.aborted:
        console.print("\n[error]Script run aborted after a failed step[/error]")

    console.print(
        f"[success]{ran} ran[/success], [muted]{skipped} skipped[/muted], "
        f"[error]{failed} failed[/error]"
    )
