"""Utility modules for pakky.

This module exports commonly used utility functions.
"""

from pakky.utils.formatting import (
    console,
    err_console,
    format_log_line,
    format_package_type,
    format_status,
    print_error,
    print_info,
    print_success,
    print_warning,
)
from pakky.utils.platform import Facts, get_platform_name
from pakky.utils.shell import CommandResult, command_exists, run_command, stream_command

__all__ = [
    "CommandResult",
    "Facts",
    "command_exists",
    "console",
    "err_console",
    "format_log_line",
    "format_package_type",
    "format_status",
    "get_platform_name",
    "print_error",
    "print_info",
    "print_success",
    "print_warning",
    "run_command",
    "stream_command",
]
