"""Post-install script engine.

Runs script steps in order: each step is gated by its condition and an
optional confirmation, collects its variables once, then runs its
commands through the allow-list, the renderer and the executor.
"""

import logging
import subprocess
import threading
from collections.abc import Callable, Iterable, Mapping

from pakky.core.errors import CancelledError, NotAllowedError, ValidationError
from pakky.models.script import (
    ConditionKind,
    ScriptRunResult,
    ScriptStep,
    StepOutcome,
    StepResult,
)
from pakky.scripts.executor import CommandExecutor, InputProvider
from pakky.scripts.interpolate import render_command, validate_value
from pakky.scripts.security import SecurityLevel, check_command
from pakky.utils.platform import Facts

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 3

LogCallback = Callable[[str], None]


class _InputDeclined(Exception):
    """The user declined to provide a value."""


class _StepInterrupted(Exception):
    """Cancellation was observed between two commands of a step."""

    def __init__(self, result: StepResult) -> None:
        super().__init__(result.name)
        self.result = result


class ScriptEngine:
    """Runs post-install script steps.

    Values entered for a variable are remembered and offered as the
    default the next time any step asks for the same variable.

    Example:
        >>> engine = ScriptEngine(SubprocessExecutor(), StaticInputProvider(), facts)
        >>> result = engine.run(templates_to_steps(["git-config"]))
        >>> print(result.success)
    """

    def __init__(
        self,
        executor: CommandExecutor,
        inputs: InputProvider,
        facts: Facts,
        *,
        security_level: SecurityLevel = SecurityLevel.STANDARD,
        saved_values: Mapping[str, str] | None = None,
        on_log: LogCallback | None = None,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ) -> None:
        """Initialize the engine.

        Args:
            executor: Runs rendered commands.
            inputs: Answers prompts and supplies variable values.
            facts: Platform and installed packages for conditions.
            security_level: Command allow-list level.
            saved_values: Previously entered values, used as defaults.
            on_log: Receives every log line as it is produced.
            max_attempts: How often an invalid value is asked for before the step fails.
        """
        if max_attempts < 1:
            msg = "max_attempts must be at least 1"
            raise ValueError(msg)
        self._executor = executor
        self._inputs = inputs
        self._facts = facts
        self._security_level = security_level
        self._values: dict[str, str] = dict(saved_values or {})
        self._on_log = on_log
        self._max_attempts = max_attempts

    @property
    def values(self) -> dict[str, str]:
        """Variable values known so far (saved and newly entered)."""
        return dict(self._values)

    def run(
        self,
        steps: Iterable[ScriptStep],
        cancel: threading.Event | None = None,
    ) -> ScriptRunResult:
        """Run steps in order.

        Args:
            steps: Steps to run.
            cancel: Set to stop before the next step or command starts.

        Returns:
            ScriptRunResult with one result per step that was reached.
        """
        results: list[StepResult] = []
        for step in steps:
            if cancel is not None and cancel.is_set():
                logger.info("Script run cancelled before step %r", step.name)
                return ScriptRunResult(steps=tuple(results), cancelled=True)

            try:
                result = self._run_step(step, cancel)
            except CancelledError:
                logger.info("Script run cancelled during step %r", step.name)
                return ScriptRunResult(steps=tuple(results), cancelled=True)
            except _StepInterrupted as e:
                logger.info("Script run cancelled during step %r", step.name)
                results.append(e.result)
                return ScriptRunResult(steps=tuple(results), cancelled=True)

            results.append(result)
            if result.outcome == StepOutcome.FAILED and not step.continue_on_error:
                logger.warning("Step %r failed; aborting script run", step.name)
                return ScriptRunResult(steps=tuple(results), aborted=True)

        return ScriptRunResult(steps=tuple(results))

    # -- Steps ---------------------------------------------------------------------

    def condition_met(self, step: ScriptStep) -> bool:
        """Evaluate a step's condition against the facts."""
        condition = step.parsed_condition()
        if condition.kind == ConditionKind.ALWAYS:
            return True
        if condition.kind == ConditionKind.MACOS:
            return self._facts.is_macos
        if condition.kind == ConditionKind.PACKAGE_INSTALLED:
            return condition.package in self._facts.installed_package_names
        msg = f"Unknown condition kind: {condition.kind}"
        raise ValueError(msg)

    def _run_step(self, step: ScriptStep, cancel: threading.Event | None = None) -> StepResult:
        logs: list[str] = []

        if not self.condition_met(step):
            logger.debug("Skipping step %r: condition %s not met", step.name, step.condition)
            return StepResult(name=step.name, outcome=StepOutcome.SKIPPED)

        if step.prompt and not self._inputs.confirm(step.prompt):
            logger.debug("Skipping step %r: declined", step.name)
            return StepResult(name=step.name, outcome=StepOutcome.SKIPPED)

        try:
            values = self._collect_values(step)
        except _InputDeclined:
            return StepResult(name=step.name, outcome=StepOutcome.SKIPPED)
        except ValidationError as e:
            self._log(logs, f"✗ {e}")
            return StepResult(
                name=step.name, outcome=StepOutcome.FAILED, logs=tuple(logs), error=str(e)
            )

        first_error: str | None = None
        for index, template in enumerate(step.commands):
            if cancel is not None and cancel.is_set():
                self._log(logs, f"✗ Cancelled before: {template}")
                if first_error:
                    outcome = StepOutcome.FAILED
                else:
                    outcome = StepOutcome.RAN if index else StepOutcome.SKIPPED
                raise _StepInterrupted(
                    StepResult(
                        name=step.name, outcome=outcome, logs=tuple(logs), error=first_error
                    )
                )
            error = self._run_command(template, values, logs)
            if error is None:
                continue
            first_error = first_error or error
            if not step.continue_on_error:
                break

        outcome = StepOutcome.FAILED if first_error else StepOutcome.RAN
        return StepResult(name=step.name, outcome=outcome, logs=tuple(logs), error=first_error)

    def _collect_values(self, step: ScriptStep) -> dict[str, str]:
        """Ask for every variable the step declares.

        Raises:
            _InputDeclined: If the user declined a value.
            ValidationError: If a value stayed invalid after all attempts.
            CancelledError: If the provider cancelled the run.
        """
        values = dict(self._values)
        for name, spec in step.prompt_for_input.items():
            default = self._values.get(name, spec.default)
            error: str | None = None
            for _attempt in range(self._max_attempts):
                value = self._inputs.request(name, spec, default, error)
                if value is None:
                    raise _InputDeclined(name)
                try:
                    values[name] = validate_value(value, spec.validation)
                except ValidationError as e:
                    error = str(e)
                    continue
                break
            else:
                msg = f"Invalid value for {name}: {error}"
                raise ValidationError(msg)

        if step.prompt_for_input:
            # Names only; values may be personal
            names = ", ".join(step.prompt_for_input)
            logger.debug("Collected inputs for %r: %s", step.name, names)
        self._values.update(values)
        return values

    def _run_command(self, template: str, values: Mapping[str, str], logs: list[str]) -> str | None:
        """Check, render and execute one command; return an error or None."""
        try:
            check_command(template, self._security_level)
            command = render_command(template, values)
        except (NotAllowedError, ValidationError) as e:
            self._log(logs, f"✗ Blocked: {e}")
            return str(e)

        self._log(logs, f"$ {command.display}")
        try:
            result = self._executor.execute(command)
        except subprocess.TimeoutExpired:
            error = f"Command timed out: {command.display}"
            self._log(logs, f"✗ {error}")
            return error
        except OSError as e:
            error = f"Command could not be started: {e}"
            self._log(logs, f"✗ {error}")
            return error

        for line in result.output_lines:
            self._log(logs, line)
        if not result.success:
            error = f"Command failed with exit code {result.returncode}: {command.display}"
            self._log(logs, f"✗ {error}")
            return error
        return None

    def _log(self, logs: list[str], line: str) -> None:
        logs.append(line)
        if self._on_log is not None:
            self._on_log(line)
