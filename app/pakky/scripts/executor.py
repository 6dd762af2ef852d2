"""Command execution and variable input capabilities for the script engine.

The engine never touches subprocesses or terminals itself; it talks to
a CommandExecutor and an InputProvider so that both can be replaced in
tests and by different front ends.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping

from pakky.models.script import InputSpec
from pakky.scripts.interpolate import RenderedCommand
from pakky.utils.shell import CommandResult, run_command

logger = logging.getLogger(__name__)


class CommandExecutor(ABC):
    """Runs rendered commands.

    Example:
        >>> executor = SubprocessExecutor(timeout=300)
        >>> result = executor.execute(rendered)
        >>> print(result.returncode)
    """

    @abstractmethod
    def execute(self, command: RenderedCommand) -> CommandResult:
        """Run one command to completion.

        Args:
            command: Rendered command to run.

        Returns:
            CommandResult with output and exit code.

        Raises:
            OSError: If the command cannot be started.
            subprocess.TimeoutExpired: If the command exceeds its timeout.
        """


class SubprocessExecutor(CommandExecutor):
    """Executes commands as local subprocesses.

    Attributes:
        timeout: Per-command timeout in seconds (None = no timeout).
    """

    def __init__(self, timeout: float | None = None) -> None:
        self.timeout = timeout

    def execute(self, command: RenderedCommand) -> CommandResult:
        """Run the command's argument vector (never through an implicit shell)."""
        logger.debug("Executing %s (shell=%s)", command.display, command.shell)
        return run_command(list(command.argv), timeout=self.timeout)


class InputProvider(ABC):
    """Answers confirmation prompts and supplies variable values.

    Implementations may raise ``CancelledError`` to stop the whole run.
    """

    @abstractmethod
    def confirm(self, message: str) -> bool:
        """Ask a yes/no question.

        Returns:
            True if the user agreed.
        """

    @abstractmethod
    def request(
        self,
        name: str,
        spec: InputSpec,
        default: str | None,
        error: str | None = None,
    ) -> str | None:
        """Ask for a variable value.

        Args:
            name: Variable name.
            spec: Declaration from the step (message, validation).
            default: Suggested value (saved value or declared default).
            error: Why the previous answer was rejected, when re-asking.

        Returns:
            The value, or None if the user declined.
        """


class StaticInputProvider(InputProvider):
    """Non-interactive provider backed by a fixed mapping.

    Unknown variables fall back to their default; variables with no
    value and no default are declined.

    Attributes:
        values: Preset variable values.
        auto_confirm: Answer to every confirmation prompt.
    """

    def __init__(self, values: Mapping[str, str] | None = None, confirm: bool = True) -> None:
        self.values = dict(values or {})
        self.auto_confirm = confirm

    def confirm(self, message: str) -> bool:
        """Return the configured answer."""
        return self.auto_confirm

    def request(
        self,
        name: str,
        spec: InputSpec,
        default: str | None,
        error: str | None = None,
    ) -> str | None:
        """Return the preset value, or the default."""
        if name in self.values:
            return self.values[name]
        return default

