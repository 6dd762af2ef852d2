"""Check command.

This module provides the `pakky check` command, which marks queued
packages that were installed by other means as already installed.
"""

import typer

from pakky.cli.context import get_service
from pakky.cli.display import create_queue_table
from pakky.models.package import PackageStatus
from pakky.utils.formatting import console, print_info, print_success, print_warning

app = typer.Typer(
    name="check",
    help="Detect queued packages that are already installed.",
    invoke_without_command=True,
)


@app.callback(invoke_without_command=True)
def check(ctx: typer.Context) -> None:
    """Compare the queue against installed Homebrew packages.

    Pending packages found installed are marked as already installed.
    Packages marked for reinstall, installing or finished are never
    changed.
    """
    if ctx.invoked_subcommand is not None:
        return

    service = get_service()
    if not service.list_queue():
        print_info("Queue is empty. Nothing to check.")
        return

    if not service.check_installed():
        # Query failures are best effort and reported the same way
        print_info("No queued packages were found installed.")
        return

    found = [
        item for item in service.list_queue() if item.status == PackageStatus.ALREADY_INSTALLED
    ]
    print_success(f"{len(found)} queued package(s) are already installed.")
    console.print(create_queue_table(found, title="Already Installed"))
    if any(item.is_reinstall for item in service.list_queue()):
        print_warning("Packages marked for reinstall were left unchanged.")
