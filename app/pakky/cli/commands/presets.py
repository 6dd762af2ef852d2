"""Preset commands.

Presets are curated package selections stored as TOML files in
~/.config/pakky/presets/.
"""

from typing import Annotated

import typer
from rich.table import Table

from pakky.cli.commands.imports import print_import_summary
from pakky.cli.context import get_service
from pakky.core.config import ConfigError, list_presets
from pakky.core.paths import get_presets_dir
from pakky.utils.formatting import console, print_error, print_info

app = typer.Typer(
    help="List and apply package presets.",
    invoke_without_command=True,
    no_args_is_help=True,
)


@app.command("list")
def list_command() -> None:
    """Show available presets."""
    presets = list_presets()
    if not presets:
        print_info(f"No presets found in {get_presets_dir()}")
        return

    table = Table(
        title="Presets",
        show_header=True,
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("ID", no_wrap=True, style="info")
    table.add_column("Name")
    table.add_column("Packages", justify="right")
    table.add_column("Scripts", justify="right")
    table.add_column("Description", style="muted")

    for preset in presets:
        table.add_row(
            preset.id or "-",
            preset.name,
            str(preset.homebrew.package_count),
            str(len(preset.scripts)),
            preset.description,
        )

    console.print(table)


@app.command()
def apply(
    preset_id: Annotated[
        str,
        typer.Argument(help="Preset id (file name without .toml)."),
    ],
) -> None:
    """Merge a preset's packages into the queue."""
    service = get_service()
    try:
        summary = service.apply_preset(preset_id)
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    print_import_summary(summary)
