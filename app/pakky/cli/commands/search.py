"""Search command.

This module provides the `pakky search` command, which finds Homebrew
formulae and casks and can queue what it finds.
"""

import json
from typing import Annotated

import typer

from pakky.cli.context import get_service
from pakky.cli.display import create_search_table
from pakky.core.errors import PakkyError
from pakky.models.package import PackageType
from pakky.utils.formatting import console, print_error, print_info, print_success, print_warning


def search(
    query: Annotated[
        str,
        typer.Argument(help="Search text (at least 2 characters)."),
    ],
    as_json: Annotated[
        bool,
        typer.Option("--json", help="Print results as JSON."),
    ] = False,
    add: Annotated[
        bool,
        typer.Option("--add", "-a", help="Queue every result that is not installed."),
    ] = False,
) -> None:
    """Search Homebrew and show which results are already installed.

    Examples:
        pakky search ripgrep
        pakky search --add firefox
    """
    service = get_service()
    try:
        results = service.search(query)
    except PakkyError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    if as_json:
        payload = [
            {"name": r.name, "type": r.type.value, "installed": r.installed} for r in results
        ]
        console.print_json(json.dumps(payload))
        return

    if not results:
        print_info(f"No packages found for {query!r}.")
        return

    console.print(create_search_table(results))

    if not add:
        return

    for package_type in (PackageType.FORMULA, PackageType.CASK):
        names = [r.name for r in results if r.type == package_type and not r.installed]
        if not names:
            continue
        try:
            added = service.add_packages(names, package_type)
        except PakkyError as e:
            print_error(str(e))
            raise typer.Exit(code=1) from e
        for item in added.added:
            print_success(f"Queued {item.id}")
        for item_id in added.duplicates:
            print_warning(f"{item_id} is already queued")
