"""Export command.

This module provides the `pakky export` command, which saves the queue
(and optionally script templates) as a shareable configuration file.
"""

from pathlib import Path
from typing import Annotated

import typer

from pakky.cli.context import get_service
from pakky.core.config import ConfigError
from pakky.core.errors import PakkyError
from pakky.utils.formatting import print_error, print_info, print_success

app = typer.Typer(
    name="export",
    help="Export the queue as a configuration file.",
    invoke_without_command=True,
)


@app.callback(invoke_without_command=True)
def export_queue(
    ctx: typer.Context,
    path: Annotated[
        Path,
        typer.Argument(help="Destination TOML file."),
    ],
    name: Annotated[
        str,
        typer.Option("--name", "-n", help="Configuration name."),
    ] = "My Setup",
    description: Annotated[
        str | None,
        typer.Option("--description", "-d", help="Configuration description."),
    ] = None,
    templates: Annotated[
        list[str] | None,
        typer.Option("--template", "-t", help="Script template to include (repeatable)."),
    ] = None,
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Overwrite an existing file."),
    ] = False,
) -> None:
    """Save the queue as a configuration that can be imported elsewhere.

    Examples:
        pakky export setup.toml --name "Work laptop"
        pakky export setup.toml -t git-config -t ssh-keygen
    """
    if ctx.invoked_subcommand is not None:
        return

    if path.exists() and not force:
        print_error(f"{path} already exists. Use --force to overwrite.")
        raise typer.Exit(code=1)

    service = get_service()
    if not service.list_queue():
        print_info("Queue is empty; exporting scripts only.")

    try:
        written = service.export(
            path, name=name, description=description, template_ids=templates or []
        )
    except (PakkyError, ConfigError) as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    print_success(f"Configuration written to {written}")
