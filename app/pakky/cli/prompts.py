"""Interactive input provider for script runs."""

from collections.abc import Mapping

import typer

from pakky.core.errors import CancelledError
from pakky.models.script import InputSpec
from pakky.scripts.executor import InputProvider
from pakky.utils.formatting import print_warning


class TerminalInputProvider(InputProvider):
    """Asks for confirmations and variables on the terminal.

    Values given with ``--var`` are used without asking. Ctrl-C or end
    of input at a prompt cancels the whole run.

    Attributes:
        preset: Values supplied up front.
        assume_yes: Answer every confirmation with yes.
    """

    def __init__(self, preset: Mapping[str, str] | None = None, assume_yes: bool = False) -> None:
        self.preset = dict(preset or {})
        self.assume_yes = assume_yes

    def confirm(self, message: str) -> bool:
        """Ask a yes/no question (defaults to no)."""
        if self.assume_yes:
            return True
        try:
            return typer.confirm(message, default=False)
        except typer.Abort as e:
            raise CancelledError("Cancelled at prompt") from e

    def request(
        self,
        name: str,
        spec: InputSpec,
        default: str | None,
        error: str | None = None,
    ) -> str | None:
        """Ask for a value; preset values are used once and re-asked if invalid."""
        if error is not None:
            print_warning(error)
        elif name in self.preset:
            return self.preset[name]

        try:
            value: str = typer.prompt(spec.message, default=default)
        except typer.Abort as e:
            raise CancelledError("Cancelled at prompt") from e
        return value.strip()
