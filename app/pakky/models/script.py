"""Post-install script models.

This module defines the Pydantic models describing automation steps
and templates, plus the dataclasses the script engine reports with.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Prefix of the package_installed condition
PACKAGE_INSTALLED_PREFIX = "package_installed:"

# Template category values
TemplateCategory = Literal["git", "shell", "npm", "ssh", "system"]


class ConditionKind(str, Enum):
    """Kind of gate placed on a script step."""

    ALWAYS = "always"
    MACOS = "macos"
    PACKAGE_INSTALLED = "package_installed"


class ValidationKind(str, Enum):
    """Syntactic check applied to a user-supplied variable."""

    EMAIL = "email"
    URL = "url"
    PATH = "path"
    NONE = "none"


class StepOutcome(str, Enum):
    """Terminal outcome of one script step."""

    RAN = "ran"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class Condition:
    """Parsed step condition.

    Attributes:
        kind: Condition kind.
        package: Package name, only set for PACKAGE_INSTALLED.
    """

    kind: ConditionKind
    package: str | None = None


def parse_condition(text: str) -> Condition:
    """Parse a condition string.

    Args:
        text: One of ``always``, ``macos`` or ``package_installed:<name>``.

    Returns:
        Parsed Condition.

    Raises:
        ValueError: If the condition is not recognized.
    """
    value = text.strip()
    if value == ConditionKind.ALWAYS.value:
        return Condition(kind=ConditionKind.ALWAYS)
    if value == ConditionKind.MACOS.value:
        return Condition(kind=ConditionKind.MACOS)
    if value.startswith(PACKAGE_INSTALLED_PREFIX):
        package = value[len(PACKAGE_INSTALLED_PREFIX) :].strip()
        if not package:
            msg = "package_installed condition requires a package name"
            raise ValueError(msg)
        return Condition(kind=ConditionKind.PACKAGE_INSTALLED, package=package)
    msg = f"Unknown step condition: {text!r}"
    raise ValueError(msg)


class InputSpec(BaseModel):
    """Declaration of one variable a step asks the user for.

    Attributes:
        message: Prompt shown to the user.
        default: Value pre-filled in the prompt.
        validation: Syntactic check the value must pass.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    message: Annotated[str, Field(description="Prompt shown to the user")]
    default: Annotated[str | None, Field(description="Pre-filled value")] = None
    validation: Annotated[
        ValidationKind,
        Field(description="Syntactic check for the value"),
    ] = ValidationKind.NONE


class ScriptStep(BaseModel):
    """A named, conditionally gated unit of post-install automation.

    Attributes:
        name: Step name shown in logs.
        condition: Gate evaluated before the step runs.
        prompt: Optional yes/no confirmation shown before running.
        prompt_for_input: Variables collected once before the commands run.
        commands: Ordered shell command templates with ``{{variable}}`` placeholders.
        continue_on_error: Keep going after a failed command instead of aborting the run.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    name: Annotated[str, Field(min_length=1, description="Step name")]
    condition: Annotated[str, Field(description="Step gate")] = ConditionKind.ALWAYS.value
    prompt: Annotated[str | None, Field(description="Confirmation question")] = None
    prompt_for_input: Annotated[
        dict[str, InputSpec],
        Field(default_factory=dict, description="Variables to collect"),
    ]
    commands: Annotated[
        tuple[str, ...],
        Field(min_length=1, description="Command templates"),
    ]
    continue_on_error: Annotated[
        bool,
        Field(description="Continue after a failed command"),
    ] = False

    @field_validator("condition")
    @classmethod
    def validate_condition(cls, v: str) -> str:
        """Validate that the condition is one of the supported forms."""
        parse_condition(v)
        return v.strip()

    def parsed_condition(self) -> Condition:
        """Return the parsed condition of this step."""
        return parse_condition(self.condition)


class ScriptTemplate(BaseModel):
    """Catalogue entry wrapping exactly one script step.

    Attributes:
        id: Unique template identifier.
        name: Display name.
        description: What the template does.
        category: Grouping used for listing.
        suggested_for: Package-name substrings that make the template relevant.
        step: The step the template runs.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    id: str
    name: str
    description: str
    category: TemplateCategory
    suggested_for: tuple[str, ...] = ()
    step: ScriptStep


@dataclass(frozen=True, slots=True)
class StepResult:
    """Outcome of running one script step.

    Attributes:
        name: Step name.
        outcome: Terminal outcome of the step.
        logs: Command invocations and their output, in order.
        error: First failure reason, if any.
    """

    name: str
    outcome: StepOutcome
    logs: tuple[str, ...] = ()
    error: str | None = None


@dataclass(frozen=True, slots=True)
class ScriptRunResult:
    """Outcome of running a sequence of script steps.

    Attributes:
        steps: Results of the steps that were reached, in order.
        aborted: A step without continue_on_error failed and stopped the run.
        cancelled: Cancellation was observed before the run finished.
    """

    steps: tuple[StepResult, ...] = ()
    aborted: bool = False
    cancelled: bool = False

    @property
    def log(self) -> tuple[str, ...]:
        """All step logs concatenated in execution order."""
        lines: list[str] = []
        for step in self.steps:
            lines.extend(step.logs)
        return tuple(lines)

    @property
    def success(self) -> bool:
        """Check if the run finished without aborting and without failed steps."""
        if self.aborted or self.cancelled:
            return False
        return all(step.outcome != StepOutcome.FAILED for step in self.steps)
