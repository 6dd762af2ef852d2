"""CLI package for pakky.

This package contains the Typer application and all subcommands.
"""

from pakky.cli.main import app

__all__ = ["app"]
