"""Install command.

This module provides the `pakky install` command, which installs every
pending package in queue order while streaming Homebrew's output.
"""

from typing import Annotated, Any

import typer
from rich.markup import escape

from pakky.cli.context import get_service, is_quiet
from pakky.cli.display import create_queue_table, create_results_table, print_session_summary
from pakky.core.boundary import Channel, Operation
from pakky.core.errors import NotAllowedError
from pakky.core.orchestrator import is_eligible
from pakky.models.session import SessionSnapshot
from pakky.utils.formatting import console, format_log_line, print_error, print_info

app = typer.Typer(
    name="install",
    help="Install the queued packages.",
    invoke_without_command=True,
)

# How often the waiting loop wakes up to notice Ctrl-C
_JOIN_INTERVAL = 0.2


@app.callback(invoke_without_command=True)
def install(
    ctx: typer.Context,
    yes: Annotated[
        bool,
        typer.Option(
            "--yes",
            "-y",
            help="Skip confirmation prompt and proceed.",
        ),
    ] = False,
    dry_run: Annotated[
        bool,
        typer.Option(
            "--dry-run",
            "-n",
            help="Show the brew commands without running them.",
        ),
    ] = False,
) -> None:
    """Install every pending package in the queue.

    Packages found already installed are skipped. Press Ctrl-C to stop
    after the package currently installing; the rest stay queued.

    Examples:
        pakky install --dry-run     # Preview brew commands
        pakky install --yes         # Install without confirmation
    """
    if ctx.invoked_subcommand is not None:
        return

    quiet = is_quiet(ctx)
    service = get_service(dry_run=dry_run)
    eligible = [item for item in service.list_queue() if is_eligible(item)]
    if not eligible:
        print_info("Nothing to install. Queue has no pending packages.")
        return

    title = "To Install (Dry Run)" if dry_run else "To Install"
    console.print(create_queue_table(eligible, title=title))
    if not yes and not dry_run:
        if not typer.confirm(f"\nInstall {len(eligible)} package(s)?", default=False):
            print_info("Aborted.")
            raise typer.Exit(code=0)

    boundary = service.build_boundary()

    def on_log(payload: dict[str, Any]) -> None:
        if not quiet:
            line = format_log_line(payload["line"])
            console.print(f"[muted]{escape(payload['package_id'])}[/muted] {line}")

    subscription = boundary.subscribe(Channel.INSTALL_LOG, on_log)
    try:
        try:
            thread = boundary.invoke(Operation.INSTALL_START)
        except NotAllowedError as e:
            print_error(str(e))
            raise typer.Exit(code=1) from e

        while thread.is_alive():
            try:
                thread.join(_JOIN_INTERVAL)
            except KeyboardInterrupt:
                if boundary.invoke(Operation.INSTALL_CANCEL):
                    console.print(
                        "\n[warning]Stopping after the current package finishes...[/warning]"
                    )
    finally:
        subscription.close()
        service.close()

    snapshot: SessionSnapshot = boundary.invoke(Operation.INSTALL_STATUS)
    console.print()
    console.print(create_results_table(snapshot))
    print_session_summary(snapshot)

    if snapshot.failed_count:
        raise typer.Exit(code=1)
