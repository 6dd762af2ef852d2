"""Import command for configurations and presets.

This module provides the `pakky import` command, which merges the
packages of a saved configuration or preset file into the queue.
"""

from pathlib import Path
from typing import Annotated

import typer
from rich.markup import escape

from pakky.cli.context import get_service
from pakky.core.config import ConfigError
from pakky.core.service import ImportSummary
from pakky.utils.formatting import console, print_error, print_info, print_success, print_warning

app = typer.Typer(
    name="import",
    help="Import a configuration or preset file into the queue.",
    invoke_without_command=True,
)


def print_import_summary(summary: ImportSummary) -> None:
    """Print what an import added and what its scripts would need.

    Args:
        summary: Result of the import.
    """
    if summary.added:
        print_success(f"Added {len(summary.added)} package(s) from {summary.source!r}")
    else:
        print_info(f"Nothing new in {summary.source!r}")
    if summary.duplicates:
        console.print(f"[dim]{len(summary.duplicates)} package(s) were already queued[/dim]")

    if summary.scripts:
        names = ", ".join(step.name for step in summary.scripts)
        print_info(f"Contains {len(summary.scripts)} script step(s): {names}")
        console.print("[dim]Run them after installing with: pakky scripts run --config FILE[/dim]")
    for command, reason in summary.rejected_commands:
        print_warning(f"Script command would be blocked: {escape(command)} ({escape(reason)})")


@app.callback(invoke_without_command=True)
def import_file(
    ctx: typer.Context,
    path: Annotated[
        Path,
        typer.Argument(help="Configuration or preset TOML file."),
    ],
) -> None:
    """Merge packages from a configuration or preset into the queue.

    Packages that are already queued are left untouched. Script steps
    in the file are reported but never run on import.

    Examples:
        pakky import ~/dotfiles/pakky.toml
    """
    if ctx.invoked_subcommand is not None:
        return

    service = get_service()
    try:
        summary = service.import_file(path)
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    print_import_summary(summary)
