"""
CLI Error Handling
==================

Provides consistent error reporting and exit codes for the fpio tool.
"""

import sys
import traceback
from enum import IntEnum
from typing import NoReturn

import click

from floppyio.errors import ChannelError, ConfigError


class ExitCode(IntEnum):
    """Standard exit codes for the CLI."""
    SUCCESS = 0
    CHANNEL_ERROR = 1    # Transfer, timeout or region access failure
    INVALID_ARGS = 2     # Invalid arguments, configuration or missing files
    INTERNAL_ERROR = 3   # Unexpected internal error


def format_channel_error(error: ChannelError) -> str:
    """Format a channel error as the banner printed on stderr."""
    return (
        "## FLOPPY I/O ERROR\n"
        f"## Message: {error.message}\n"
        f"## Error code = {int(error.code)}"
    )


def handle_cli_exception(error: Exception, verbose: bool = False) -> NoReturn:
    """
    Report an exception and exit with the matching exit code.

    Args:
        error: The exception that was raised
        verbose: If True, print full traceback for internal errors

    Raises:
        SystemExit: Always exits with an appropriate exit code
    """
    if isinstance(error, ChannelError):
        click.echo(format_channel_error(error), err=True)
        sys.exit(ExitCode.CHANNEL_ERROR)

    elif isinstance(error, ConfigError):
        click.echo(f"Error: {error}", err=True)
        sys.exit(ExitCode.INVALID_ARGS)

    elif isinstance(error, (FileNotFoundError, PermissionError)):
        # Local input/output file problems
        click.echo(f"Error: {error}", err=True)
        sys.exit(ExitCode.INVALID_ARGS)

    else:
        click.echo(f"Internal error: {error}", err=True)
        if verbose:
            traceback.print_exc()
        sys.exit(ExitCode.INTERNAL_ERROR)
