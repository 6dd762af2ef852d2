"""Main CLI application entry point.

Defines the Typer application and global options.
"""

import logging
from typing import Annotated

import typer
from rich.logging import RichHandler

from pakky import __version__
from pakky.cli.commands import (
    check,
    export,
    imports,
    install,
    presets,
    queue,
    scripts,
    search,
)
from pakky.utils.formatting import err_console

# Create main Typer app
app = typer.Typer(
    name="pakky",
    help="Queue, install and set up Homebrew packages.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"pakky version {__version__}")
        raise typer.Exit()


def configure_logging(verbose: bool) -> None:
    """Route log records to the shared stderr console."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=verbose, markup=False)],
        force=True,
    )


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable verbose output.",
        ),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option(
            "--quiet",
            "-q",
            help="Suppress non-essential output.",
        ),
    ] = False,
) -> None:
    """pakky - Queue, install and set up Homebrew packages.

    Build a queue of formulae and casks, install it with live output,
    then run post-install scripts suggested for what you installed.
    """
    configure_logging(verbose)
    # Store options in context for subcommands
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet


# Register commands
app.add_typer(queue.app, name="queue")
app.add_typer(imports.app, name="import")
app.add_typer(export.app, name="export")
app.add_typer(presets.app, name="presets")
app.add_typer(check.app, name="check")
app.add_typer(install.app, name="install")
app.add_typer(scripts.app, name="scripts")
app.command("search")(search.search)


if __name__ == "__main__":
    app()
