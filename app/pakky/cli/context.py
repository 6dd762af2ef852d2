"""Shared helpers for CLI commands."""

import typer

from pakky.core.service import PakkyService, create_service
from pakky.core.settings import SettingsError
from pakky.utils.formatting import print_error


def get_service(*, dry_run: bool = False) -> PakkyService:
    """Build the service for one command invocation.

    Raises:
        typer.Exit: If the settings file is invalid.
    """
    try:
        return create_service(dry_run=dry_run)
    except SettingsError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e


def is_quiet(ctx: typer.Context) -> bool:
    """Check if the global --quiet flag was given."""
    obj = ctx.find_root().obj
    return bool(obj and obj.get("quiet"))
