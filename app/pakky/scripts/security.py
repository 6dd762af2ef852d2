"""Command allow-list for post-install scripts.

Every command a script step would run is checked before execution:
each command name in the template (across pipelines, ``&&``/``||``/``;``
lists and command substitutions) must belong to a category allowed by
the configured security level. Unknown commands are always rejected.
"""

import logging
import re
import shlex
from collections.abc import Iterable
from enum import Enum

from pakky.core.errors import NotAllowedError, ValidationError
from pakky.models.script import ScriptStep

logger = logging.getLogger(__name__)


class CommandCategory(str, Enum):
    """Trust category of a command."""

    SAFE = "safe"
    FILESYSTEM = "filesystem"
    NETWORK = "network"
    PACKAGE_MANAGERS = "package_managers"
    SYSTEM = "system"
    DANGEROUS = "dangerous"


class SecurityLevel(str, Enum):
    """Which command categories scripts may use.

    Attributes:
        STRICT: Read-only and file operations only.
        STANDARD: Adds network tools and package managers.
        PERMISSIVE: Adds system administration tools; use only for trusted scripts.
    """

    STRICT = "strict"
    STANDARD = "standard"
    PERMISSIVE = "permissive"

    @property
    def allowed_categories(self) -> frozenset[CommandCategory]:
        """Categories this level allows."""
        return _ALLOWED_CATEGORIES[self]

    @property
    def blocks_backquotes(self) -> bool:
        """Check if backquote command substitution is rejected."""
        return self != SecurityLevel.PERMISSIVE


_ALLOWED_CATEGORIES: dict[SecurityLevel, frozenset[CommandCategory]] = {
    SecurityLevel.STRICT: frozenset({CommandCategory.SAFE, CommandCategory.FILESYSTEM}),
    SecurityLevel.STANDARD: frozenset(
        {
            CommandCategory.SAFE,
            CommandCategory.FILESYSTEM,
            CommandCategory.NETWORK,
            CommandCategory.PACKAGE_MANAGERS,
        }
    ),
    SecurityLevel.PERMISSIVE: frozenset(
        {
            CommandCategory.SAFE,
            CommandCategory.FILESYSTEM,
            CommandCategory.NETWORK,
            CommandCategory.PACKAGE_MANAGERS,
            CommandCategory.SYSTEM,
        }
    ),
}

COMMAND_CATEGORIES: dict[CommandCategory, frozenset[str]] = {
    # Read-only, no network, no destructive side effects
    CommandCategory.SAFE: frozenset(
        {
            "echo", "printf", "cat", "head", "tail", "less", "more",
            "grep", "awk", "sed", "sort", "uniq", "wc", "cut", "tr",
            "ls", "pwd", "whoami", "date", "cal", "env", "printenv",
            "basename", "dirname", "realpath", "readlink",
            "test", "[", "[[", "true", "false",
            "seq", "yes", "sleep", "wait",
            "xargs", "tee", "diff", "comm", "join",
            "type", "which", "whereis", "whatis",
            "id", "groups", "hostname", "uname",
            "man", "info", "help",
            "clear", "reset", "tput",
        }
    ),
    # File operations within user space
    CommandCategory.FILESYSTEM: frozenset(
        {
            "mkdir", "touch", "cp", "mv", "ln",
            "chmod", "chown", "chgrp",
            "find", "locate", "stat", "file", "du", "df",
            "tar", "gzip", "gunzip", "zip", "unzip", "bzip2", "xz",
            "open", "xdg-open",
        }
    ),
    CommandCategory.NETWORK: frozenset(
        {
            "curl", "wget", "git", "ssh", "scp", "rsync", "sftp",
            "ssh-keygen", "ssh-add", "ssh-agent",
            "ping", "traceroute", "dig", "nslookup", "host",
            "gh",
        }
    ),
    CommandCategory.PACKAGE_MANAGERS: frozenset(
        {
            "brew", "npm", "npx", "yarn", "pnpm", "bun",
            "pip", "pip3", "pipx", "python", "python3",
            "gem", "bundle", "bundler",
            "cargo", "rustup",
            "go",
            "composer",
            "mas",
            "code",
        }
    ),
    # Changes the system or runs arbitrary scripts
    CommandCategory.SYSTEM: frozenset(
        {
            "sudo", "doas",
            "sh", "bash", "zsh",
            "apt", "apt-get", "dpkg",
            "yum", "dnf", "rpm",
            "pacman", "yay", "paru",
            "snap", "flatpak",
            "defaults", "launchctl", "pmset", "scutil",
            "systemctl", "service",
            "killall", "pkill",
        }
    ),
    # Never allowed
    CommandCategory.DANGEROUS: frozenset(
        {
            "rm", "rmdir", "shred",
            "dd", "mkfs", "fdisk", "parted",
            "nc", "ncat", "netcat", "socat",
            "eval", "exec",
            "su", "passwd", "chpasswd",
            "crontab", "at",
            "kill",
            "reboot", "shutdown", "poweroff", "halt",
            "iptables", "nft", "ufw",
        }
    ),
}  # fmt: skip

# Tokens after which a new command starts
_COMMAND_SEPARATORS = frozenset({"|", "||", "&&", ";", "&", "|&", "(", ")", ";;"})

# Reserved words that are followed by another command
_COMMAND_PREFIX_WORDS = frozenset({"if", "then", "else", "elif", "while", "until", "do", "!", "{"})

# Reserved words that end a compound command
_CLOSING_WORDS = frozenset({"fi", "done", "esac", "}"})

_ASSIGNMENT_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*=")

# Word substituted for command substitutions while tokenizing
_SUBSTITUTION_MARKER = "_"


def get_command_category(command: str) -> CommandCategory | None:
    """Return the category of a command name, or None if unknown."""
    normalized = command.strip().lower()
    for category, commands in COMMAND_CATEGORIES.items():
        if normalized in commands:
            return category
    return None


def _extract_substitutions(text: str) -> tuple[str, list[str]]:
    """Replace ``$( ... )`` and backquote spans with a marker word.

    Returns:
        The text with substitutions replaced, and the inner command texts.

    Raises:
        ValidationError: If a substitution is not closed.
    """
    inner: list[str] = []
    out: list[str] = []
    i = 0
    in_single = False
    in_double = False
    while i < len(text):
        char = text[i]
        if in_single:
            if char == "'":
                in_single = False
            out.append(char)
            i += 1
        elif char == "\\":
            out.append(text[i : i + 2])
            i += 2
        elif char == "'" and not in_double:
            in_single = True
            out.append(char)
            i += 1
        elif char == '"':
            in_double = not in_double
            out.append(char)
            i += 1
        elif text.startswith("$(", i):
            depth = 1
            j = i + 2
            while j < len(text) and depth:
                if text[j] == "(":
                    depth += 1
                elif text[j] == ")":
                    depth -= 1
                j += 1
            if depth:
                msg = f"Unclosed command substitution in: {text}"
                raise ValidationError(msg)
            inner.append(text[i + 2 : j - 1])
            out.append(_SUBSTITUTION_MARKER)
            i = j
        elif char == "`":
            end = text.find("`", i + 1)
            if end == -1:
                msg = f"Unclosed backquote in: {text}"
                raise ValidationError(msg)
            inner.append(text[i + 1 : end])
            out.append(_SUBSTITUTION_MARKER)
            i = end + 1
        else:
            out.append(char)
            i += 1
    return "".join(out), inner


def _tokenize(text: str) -> list[str]:
    lexer = shlex.shlex(text, posix=True, punctuation_chars=True)
    lexer.whitespace_split = True
    lexer.commenters = ""
    try:
        return list(lexer)
    except ValueError as e:
        msg = f"Cannot parse command {text!r}: {e}"
        raise ValidationError(msg) from e


def extract_command_names(command: str) -> list[str]:
    """Extract every command name a shell command line would run.

    Leading ``VAR=value`` assignments are skipped, redirection targets
    are ignored, and command substitutions are searched recursively.

    Args:
        command: Command line (template placeholders are left in place).

    Returns:
        Command names in order of appearance.

    Raises:
        ValidationError: If the command cannot be parsed.
    """
    stripped, substitutions = _extract_substitutions(command)

    names: list[str] = []
    expect_command = True
    skip_next = False
    for token in _tokenize(stripped):
        if skip_next:
            skip_next = False
            continue
        if token in _COMMAND_SEPARATORS:
            expect_command = True
            continue
        if token and set(token) <= set("<>&|"):
            # Redirection operator; the next word is its target
            skip_next = True
            continue
        if not expect_command:
            continue
        if token in _COMMAND_PREFIX_WORDS or _ASSIGNMENT_PATTERN.match(token):
            continue
        if token in _CLOSING_WORDS:
            continue
        names.append(token.rsplit("/", 1)[-1] if "/" in token else token)
        expect_command = False

    for inner in substitutions:
        names.extend(extract_command_names(inner))
    return names


def check_command(command: str, level: SecurityLevel) -> list[str]:
    """Check a command line against the allow-list of a security level.

    Args:
        command: Command template to check.
        level: Security level in effect.

    Returns:
        The command names found (all allowed).

    Raises:
        NotAllowedError: If a command is unknown or not allowed at this level,
            or the command uses backquotes where the level forbids them.
        ValidationError: If the command cannot be parsed.
    """
    if level.blocks_backquotes and "`" in command:
        msg = f"Backquote command substitution is not allowed at {level.value} level"
        raise NotAllowedError(msg)

    names = extract_command_names(command)
    if not names:
        msg = f"No command found in: {command!r}"
        raise ValidationError(msg)

    allowed = level.allowed_categories
    for name in names:
        category = get_command_category(name)
        if category is None:
            msg = f"Command '{name}' is not in the allow-list"
            raise NotAllowedError(msg)
        if category not in allowed:
            msg = (
                f"Command '{name}' ({category.value}) is not allowed "
                f"at {level.value} security level"
            )
            raise NotAllowedError(msg)
    return names


def scan_steps(steps: Iterable[ScriptStep], level: SecurityLevel) -> list[tuple[str, str]]:
    """Find every command template the security level would reject.

    Used to warn about imported configurations before anything runs.

    Returns:
        ``(command, reason)`` pairs for rejected templates.
    """
    rejected: list[tuple[str, str]] = []
    for step in steps:
        for command in step.commands:
            try:
                check_command(command, level)
            except (NotAllowedError, ValidationError) as e:
                rejected.append((command, str(e)))
    if rejected:
        logger.warning("%d script commands rejected at %s level", len(rejected), level.value)
    return rejected
