"""Queue commands.

Provides commands to list, add, remove, reorder, reinstall and clear
the packages waiting to be installed.
"""

import json
from enum import Enum
from typing import Annotated

import typer

from pakky.cli.context import get_service
from pakky.cli.display import create_queue_table
from pakky.core.errors import PakkyError
from pakky.models.package import PackageType
from pakky.utils.formatting import console, print_error, print_info, print_success, print_warning

app = typer.Typer(
    help="Manage the install queue.",
    invoke_without_command=True,
    no_args_is_help=True,
)


class OutputFormat(str, Enum):
    """Output format options for the queue listing."""

    TABLE = "table"
    JSON = "json"


@app.command("list")
def list_queue(
    output_format: Annotated[
        OutputFormat,
        typer.Option(
            "--format",
            "-f",
            help="Output format.",
            case_sensitive=False,
        ),
    ] = OutputFormat.TABLE,
) -> None:
    """Show queued packages in install order."""
    service = get_service()
    items = service.list_queue()

    if output_format == OutputFormat.JSON:
        console.print_json(json.dumps([item.to_dict() for item in items]))
        return

    if not items:
        print_info("Queue is empty. Add packages with: pakky queue add NAME...")
        return

    console.print(create_queue_table(items))
    console.print(f"\n[dim]{len(items)} package(s) queued[/dim]")


@app.command()
def add(
    names: Annotated[
        list[str],
        typer.Argument(help="Package names to queue."),
    ],
    cask: Annotated[
        bool,
        typer.Option("--cask", "-c", help="Queue as casks (GUI applications)."),
    ] = False,
    no_describe: Annotated[
        bool,
        typer.Option("--no-describe", help="Skip looking up package descriptions."),
    ] = False,
) -> None:
    """Add packages to the queue.

    Adding a package that is already queued does nothing.

    Examples:
        pakky queue add git jq ripgrep
        pakky queue add --cask docker visual-studio-code
    """
    package_type = PackageType.CASK if cask else PackageType.FORMULA
    service = get_service()
    try:
        result = service.add_packages(names, package_type, describe=not no_describe)
    except PakkyError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    for item in result.added:
        print_success(f"Queued {item.id}")
    for item_id in result.duplicates:
        print_warning(f"{item_id} is already queued")


@app.command()
def remove(
    packages: Annotated[
        list[str],
        typer.Argument(help="Packages to remove (name or type:name)."),
    ],
) -> None:
    """Remove packages from the queue."""
    service = get_service()
    failed = False
    for ref in packages:
        try:
            item_id = service.remove(ref)
        except PakkyError as e:
            print_error(str(e))
            failed = True
            continue
        print_success(f"Removed {item_id}")

    if failed:
        raise typer.Exit(code=1)


@app.command()
def move(
    package: Annotated[
        str,
        typer.Argument(help="Package to move (name or type:name)."),
    ],
    position: Annotated[
        int,
        typer.Argument(help="New position, starting at 1.", min=1),
    ],
) -> None:
    """Move a queued package to a new position in the install order.

    Positions past the end move the package to the end.

    Examples:
        pakky queue move docker 1
    """
    service = get_service()
    try:
        item_id = service.resolve(package)
        items = service.move(item_id, position - 1)
    except PakkyError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    index = [item.id for item in items].index(item_id)
    print_success(f"{item_id} is now at position {index + 1} of {len(items)}")


@app.command()
def reinstall(
    package: Annotated[
        str,
        typer.Argument(help="Package to reinstall (name or type:name)."),
    ],
) -> None:
    """Mark a queued package for reinstallation on the next install run."""
    service = get_service()
    try:
        item = service.reinstall(package)
    except PakkyError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e
    print_success(f"{item.id} will be reinstalled on the next install run")


@app.command()
def clear(
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Skip confirmation prompt."),
    ] = False,
) -> None:
    """Remove every package from the queue."""
    service = get_service()
    count = len(service.list_queue())
    if count == 0:
        print_info("Queue is already empty.")
        return

    if not yes and not typer.confirm(f"Remove all {count} queued package(s)?", default=False):
        print_info("Aborted.")
        raise typer.Exit(code=0)

    try:
        removed = service.clear()
    except PakkyError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e
    print_success(f"Removed {removed} package(s) from the queue")
