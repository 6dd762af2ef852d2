"""Post-install script commands.

Provides commands to browse the built-in script templates, get
suggestions for the queued packages, and run templates or the scripts
of a configuration file.
"""

from pathlib import Path
from typing import Annotated, get_args

import typer

from pakky.cli.context import get_service, is_quiet
from pakky.cli.display import (
    create_script_results_table,
    create_templates_table,
    print_script_summary,
)
from pakky.cli.prompts import TerminalInputProvider
from pakky.core.boundary import Operation
from pakky.core.config import ConfigError, load_importable
from pakky.core.errors import PakkyError
from pakky.models.script import ScriptRunResult, ScriptStep, TemplateCategory
from pakky.scripts.templates import SCRIPT_TEMPLATES, get_templates_by_category
from pakky.utils.formatting import console, format_log_line, print_error, print_info

app = typer.Typer(
    help="Run post-install setup scripts.",
    invoke_without_command=True,
    no_args_is_help=True,
)


def parse_vars(pairs: list[str]) -> dict[str, str]:
    """Parse ``name=value`` pairs given with ``--var``.

    Raises:
        typer.BadParameter: If a pair has no ``=`` or an empty name.
    """
    values: dict[str, str] = {}
    for pair in pairs:
        name, sep, value = pair.partition("=")
        if not sep or not name.strip():
            msg = f"Expected NAME=VALUE, got {pair!r}"
            raise typer.BadParameter(msg, param_hint="--var")
        values[name.strip()] = value
    return values


@app.command("list")
def list_templates(
    category: Annotated[
        str | None,
        typer.Option("--category", "-c", help="Only show one category."),
    ] = None,
) -> None:
    """Show the built-in script templates."""
    if category is None:
        templates = list(SCRIPT_TEMPLATES)
    elif category in get_args(TemplateCategory):
        templates = get_templates_by_category(category)  # type: ignore[arg-type]
    else:
        choices = ", ".join(get_args(TemplateCategory))
        print_error(f"Unknown category {category!r}. Choose from: {choices}")
        raise typer.Exit(code=1)

    console.print(create_templates_table(templates))


@app.command()
def suggest(
    names: Annotated[
        list[str] | None,
        typer.Argument(help="Package names (default: the queued packages)."),
    ] = None,
) -> None:
    """Suggest script templates for packages."""
    service = get_service()
    boundary = service.build_boundary()
    templates = boundary.invoke(Operation.SCRIPTS_SUGGEST, names=names or None)
    if not templates:
        print_info("No script templates match these packages.")
        return
    console.print(create_templates_table(templates, title="Suggested Templates"))
    ids = " ".join(template.id for template in templates)
    console.print(f"\n[dim]Run them with: pakky scripts run {ids}[/dim]")


@app.command()
def run(
    ctx: typer.Context,
    template_ids: Annotated[
        list[str] | None,
        typer.Argument(help="Template ids to run, in order."),
    ] = None,
    variables: Annotated[
        list[str] | None,
        typer.Option("--var", help="Variable value as NAME=VALUE (repeatable)."),
    ] = None,
    config: Annotated[
        Path | None,
        typer.Option("--config", help="Also run the scripts of a configuration file."),
    ] = None,
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Answer yes to every step confirmation."),
    ] = False,
) -> None:
    """Run script templates and configuration scripts.

    Steps run in order. Each step's commands are checked against the
    command allow-list from settings.toml before they run.

    Examples:
        pakky scripts run git-config --var user.email=me@example.com
        pakky scripts run --config setup.toml --yes
    """
    extra_steps: list[ScriptStep] = []
    if config is not None:
        try:
            extra_steps = list(load_importable(config).scripts)
        except ConfigError as e:
            print_error(str(e))
            raise typer.Exit(code=1) from e

    if not template_ids and not extra_steps:
        print_error("Nothing to run. Give template ids or --config FILE.")
        raise typer.Exit(code=1)

    quiet = is_quiet(ctx)
    inputs = TerminalInputProvider(parse_vars(variables or []), assume_yes=yes)

    def on_log(line: str) -> None:
        if not quiet:
            console.print(format_log_line(line))

    service = get_service()
    boundary = service.build_boundary()
    try:
        result: ScriptRunResult = boundary.invoke(
            Operation.SCRIPTS_RUN,
            inputs=inputs,
            template_ids=template_ids or [],
            steps=extra_steps,
            on_log=on_log,
        )
    except PakkyError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e
    finally:
        service.close()

    console.print()
    console.print(create_script_results_table(result))
    print_script_summary(result)

    if not result.success:
        raise typer.Exit(code=1)
