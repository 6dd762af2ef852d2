"""Post-install script engine.

This module exports the engine, its capabilities and the built-in
template catalogue.
"""

from pakky.scripts.engine import ScriptEngine
from pakky.scripts.executor import (
    CommandExecutor,
    InputProvider,
    StaticInputProvider,
    SubprocessExecutor,
)
from pakky.scripts.interpolate import RenderedCommand, render_command, validate_value
from pakky.scripts.security import CommandCategory, SecurityLevel, check_command
from pakky.scripts.templates import (
    SCRIPT_TEMPLATES,
    get_suggested_templates,
    get_template_by_id,
    templates_to_steps,
)

__all__ = [
    "SCRIPT_TEMPLATES",
    "CommandCategory",
    "CommandExecutor",
    "InputProvider",
    "RenderedCommand",
    "ScriptEngine",
    "SecurityLevel",
    "StaticInputProvider",
    "SubprocessExecutor",
    "check_command",
    "get_suggested_templates",
    "get_template_by_id",
    "render_command",
    "templates_to_steps",
    "validate_value",
]
