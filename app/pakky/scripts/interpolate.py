"""Variable validation and escaping-aware command rendering.

Script commands are templates with ``{{name}}`` placeholders. Values
come from the user and are never trusted: a template that needs no
shell features is split into words first and values are substituted
inside single arguments; a template that does need the shell has every
value escaped for the quoting context it appears in, so a value can
never close its quotes or start a new command.
"""

import re
import shlex
from collections.abc import Mapping
from dataclasses import dataclass
from urllib.parse import urlparse

from pakky.core.errors import ValidationError
from pakky.models.script import ValidationKind

PLACEHOLDER_PATTERN = re.compile(r"\{\{([A-Za-z_][A-Za-z0-9_.\-]*)\}\}")

# Anything brace-delimited, used to reject placeholders written with spaces
_BRACED_PATTERN = re.compile(r"\{\{[^{}]*\}\}")

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

# Characters that only mean something to a shell
_SHELL_SYNTAX = re.compile(r"[$|&;<>`~*?\[\]()\\]")

SHELL_PATH = "/bin/sh"


@dataclass(frozen=True, slots=True)
class RenderedCommand:
    """A command ready to execute.

    Attributes:
        argv: Argument vector; for shell commands ``(/bin/sh, -c, text)``.
        shell: Whether the command is run through ``/bin/sh``.
        display: Human-readable form for logs.
    """

    argv: tuple[str, ...]
    shell: bool
    display: str


def placeholders(template: str) -> tuple[str, ...]:
    """Return the distinct placeholder names of a template in order."""
    seen: dict[str, None] = {}
    for match in PLACEHOLDER_PATTERN.finditer(template):
        seen.setdefault(match.group(1), None)
    return tuple(seen)


def validate_value(value: str, kind: ValidationKind) -> str:
    """Check a user-supplied value.

    Args:
        value: Value entered by the user.
        kind: Validation rule declared by the step.

    Returns:
        The value, unchanged.

    Raises:
        ValidationError: If the value does not pass the rule.
    """
    if "\x00" in value:
        msg = "Value must not contain NUL characters"
        raise ValidationError(msg)

    if kind == ValidationKind.NONE:
        return value
    if kind == ValidationKind.EMAIL:
        if not EMAIL_PATTERN.match(value):
            msg = f"Invalid email address: {value!r}"
            raise ValidationError(msg)
        return value
    if kind == ValidationKind.URL:
        parsed = urlparse(value)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            msg = f"Invalid URL (http or https required): {value!r}"
            raise ValidationError(msg)
        return value
    if kind == ValidationKind.PATH:
        if not value.strip() or "\n" in value or "\r" in value:
            msg = "Path must be non-empty and on a single line"
            raise ValidationError(msg)
        return value
    msg = f"Unknown validation kind: {kind}"
    raise ValueError(msg)


def needs_shell(template: str) -> bool:
    """Check if a template uses shell syntax outside its placeholders."""
    return _SHELL_SYNTAX.search(PLACEHOLDER_PATTERN.sub("", template)) is not None


def _check_values(template: str, values: Mapping[str, str]) -> None:
    for match in _BRACED_PATTERN.finditer(template):
        if not PLACEHOLDER_PATTERN.fullmatch(match.group(0)):
            msg = f"Malformed placeholder {match.group(0)!r}; write {{{{name}}}} without spaces"
            raise ValidationError(msg)
    missing = [name for name in placeholders(template) if name not in values]
    if missing:
        msg = f"No value for placeholder(s): {', '.join(missing)}"
        raise ValidationError(msg)
    for name in placeholders(template):
        if "\x00" in values[name]:
            msg = f"Value of {name} contains a NUL character"
            raise ValidationError(msg)


def _substitute(word: str, values: Mapping[str, str]) -> str:
    # Single pass so substituted text is never expanded again
    return PLACEHOLDER_PATTERN.sub(lambda m: values[m.group(1)], word)


def _escape_single(value: str) -> str:
    return value.replace("'", "'\\''")


def _escape_double(value: str) -> str:
    return re.sub(r'([\\"$`])', r"\\\1", value)


def _in_substitution(stack: list[str]) -> bool:
    return any(entry in ("$(", "`") for entry in stack)


def _render_shell_text(template: str, values: Mapping[str, str]) -> str:
    """Substitute values with escaping chosen by the enclosing quote context.

    Contexts nest: ``$(`` and backquotes start a new command in which
    quoting starts over, so the open contexts are kept on a stack.
    Placeholders inside a command substitution are rejected.
    """
    out: list[str] = []
    # Open contexts: "'", '"', "$(", "(" or "`"
    stack: list[str] = []
    i = 0
    while i < len(template):
        top = stack[-1] if stack else ""
        match = PLACEHOLDER_PATTERN.match(template, i)
        if match:
            if _in_substitution(stack):
                msg = f"Placeholders are not allowed inside command substitution: {template}"
                raise ValidationError(msg)
            value = values[match.group(1)]
            if top == "'":
                out.append(_escape_single(value))
            elif top == '"':
                out.append(_escape_double(value))
            else:
                out.append(shlex.quote(value))
            i = match.end()
            continue

        char = template[i]
        if top == "'":
            if char == "'":
                stack.pop()
            out.append(char)
            i += 1
            continue
        if char == "\\":
            out.append(template[i : i + 2])
            i += 2
            continue
        if template.startswith("$(", i):
            stack.append("$(")
            out.append("$(")
            i += 2
            continue

        if char == "`":
            if top == "`":
                stack.pop()
            else:
                stack.append("`")
        elif char == '"':
            if top == '"':
                stack.pop()
            else:
                stack.append('"')
        elif char == "'" and top != '"':
            stack.append("'")
        elif char == "(" and top != '"':
            stack.append("(")
        elif char == ")" and top in ("$(", "("):
            stack.pop()
        out.append(char)
        i += 1

    if stack:
        msg = f"Unterminated quote or substitution in command template: {template}"
        raise ValidationError(msg)
    return "".join(out)


def _split_words(template: str) -> list[str]:
    lexer = shlex.shlex(template, posix=True)
    lexer.whitespace_split = True
    lexer.commenters = ""
    try:
        return list(lexer)
    except ValueError as e:
        msg = f"Cannot parse command template {template!r}: {e}"
        raise ValidationError(msg) from e


def render_command(template: str, values: Mapping[str, str]) -> RenderedCommand:
    """Render a command template with user values.

    Args:
        template: Command template with ``{{name}}`` placeholders.
        values: Value for every placeholder.

    Returns:
        RenderedCommand ready for execution.

    Raises:
        ValidationError: If a placeholder is malformed, has no value or
            sits inside a command substitution, a value contains NUL, or
            the template cannot be parsed.
    """
    _check_values(template, values)

    if needs_shell(template):
        text = _render_shell_text(template, values)
        return RenderedCommand(argv=(SHELL_PATH, "-c", text), shell=True, display=text)

    argv = tuple(_substitute(word, values) for word in _split_words(template))
    if not argv:
        msg = "Command template is empty"
        raise ValidationError(msg)
    return RenderedCommand(argv=argv, shell=False, display=shlex.join(argv))
