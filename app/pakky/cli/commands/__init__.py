"""CLI commands for pakky.

This package contains all subcommand implementations.
"""

from pakky.cli.commands import check, export, imports, install, presets, queue, scripts, search

__all__ = ["check", "export", "imports", "install", "presets", "queue", "scripts", "search"]
