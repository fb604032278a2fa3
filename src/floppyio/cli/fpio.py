"""
fpio - FloppyIO Command-Line Interface
======================================

This module implements the command-line front end for FloppyIO. It moves
a byte stream through a floppy disk image, from either side of the
channel.

Usage Examples
--------------
Create (zero) a floppy image from the hypervisor:
    $ fpio -zH /var/vm/myvm/floppy.img

Send data from STDIN to the guest:
    Hypervisor:  fpio -H -s /var/vm/myvm/floppy.img < data
         Guest:  fpio -r > data

Send a file from the guest to the hypervisor:
    Hypervisor:  fpio -H -r /var/vm/myvm/floppy.img > data
         Guest:  fpio -S data

Use a block device other than /dev/fd0 in the guest:
    $ fpio -S data /dev/fd1

Defaults
--------
Without options fpio runs as the guest (peer) side, in binary framing,
synchronized, opening the existing device without wiping it. -H switches
to the hypervisor side, -c to text framing (compatible with the old Perl
guest scripts) and -z initializes the image.

Exit Codes
----------
0 - Success
1 - Channel error (timeout, I/O failure, aborted transfer)
2 - Invalid arguments or configuration error
3 - Unexpected internal error
"""

import logging
from pathlib import Path
from typing import Optional

import click

from floppyio import __version__
from floppyio.channel import FloppyIO
from floppyio.cli.errors import handle_cli_exception
from floppyio.config import DEFAULT_REGION_SIZE, ChannelConfig, OpenFlags
from floppyio.errors import FloppyIOError

# Configure logging
logger = logging.getLogger(__name__)

# Floppy device seen by a typical guest
DEFAULT_DEVICE = "/dev/fd0"

# Flags used when no option overrides them
DEFAULT_FLAGS = (
    OpenFlags.SYNCHRONIZED
    | OpenFlags.BINARY_FRAMING
    | OpenFlags.PEER_ROLE
    | OpenFlags.SKIP_INIT
    | OpenFlags.REQUIRE_EXISTING
)


def setup_logging(verbose: bool) -> None:
    """Configure logging on stderr; stdout may carry channel data."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s" if verbose else "%(message)s",
    )


def build_flags(host: bool, text: bool, zero: bool) -> OpenFlags:
    """Apply command-line switches to the default open flags."""
    flags = DEFAULT_FLAGS | OpenFlags.RAISE_ON_ERROR
    if text:
        flags &= ~OpenFlags.BINARY_FRAMING
    if zero:
        flags &= ~(OpenFlags.SKIP_INIT | OpenFlags.REQUIRE_EXISTING)
    if host:
        flags &= ~OpenFlags.PEER_ROLE
    return flags


# =============================================================================
# Main Command
# =============================================================================

@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.argument("floppy", default=DEFAULT_DEVICE, type=click.Path(dir_okay=False))
@click.option(
    "-H", "--hypervisor", "host",
    is_flag=True,
    help="Hypervisor mode. Use this when running from the hypervisor side.",
)
@click.option(
    "-c", "--text",
    is_flag=True,
    help="Use text instead of binary framing (compatible with Perl clients).",
)
@click.option(
    "-z", "--zero",
    is_flag=True,
    help="Zero-out (reset) the floppy image.",
)
@click.option(
    "-s", "--send", "send_stdin",
    is_flag=True,
    help="Read data from STDIN and send it.",
)
@click.option(
    "-S", "--send-file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Read data from the specified file and send it.",
)
@click.option(
    "-r", "--receive", "receive_stdout",
    is_flag=True,
    help="Receive data and write it on STDOUT.",
)
@click.option(
    "-R", "--receive-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Receive data and save it to the specified file.",
)
@click.option(
    "-t", "--timeout",
    type=click.IntRange(min=0),
    default=0,
    help="Seconds to wait for synchronization (default: 0, wait forever).",
)
@click.option(
    "--size",
    type=click.IntRange(min=4),
    default=DEFAULT_REGION_SIZE,
    help=f"Floppy image size in bytes (default: {DEFAULT_REGION_SIZE}).",
)
@click.option(
    "--layout", "show_layout",
    is_flag=True,
    help="Print the region layout on stderr.",
)
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Enable verbose output",
)
@click.version_option(version=__version__, prog_name="fpio")
def main(
    floppy: str,
    host: bool,
    text: bool,
    zero: bool,
    send_stdin: bool,
    send_file: Optional[Path],
    receive_stdout: bool,
    receive_file: Optional[Path],
    timeout: int,
    size: int,
    show_layout: bool,
    verbose: bool,
) -> None:
    """
    FloppyIO hypervisor-guest communication.

    FLOPPY is the image or block device to use (default: /dev/fd0).
    """
    setup_logging(verbose)

    sending = send_stdin or send_file is not None
    receiving = receive_stdout or receive_file is not None
    if sending and receiving or send_stdin and send_file or receive_stdout and receive_file:
        raise click.UsageError("Specify only one of -s, -S, -r or -R.")
    if not (sending or receiving or zero or show_layout):
        raise click.UsageError(
            "No mode specified! Please specify one of the -S/-s, "
            "the -R/-r or the -z option!"
        )

    flags = build_flags(host, text, zero)
    logger.debug("Opening %s with flags %r", floppy, flags)

    try:
        config = ChannelConfig.from_flags(flags, sync_timeout=timeout, region_size=size)
        with FloppyIO(floppy, config) as fio:
            if show_layout:
                click.echo(fio.layout.describe(), err=True)

            if sending:
                if send_file is not None:
                    with open(send_file, "rb") as source:
                        total = fio.send_stream(source)
                else:
                    total = fio.send_stream(click.get_binary_stream("stdin"))
                logger.info("Sent %d bytes", total)

            elif receiving:
                if receive_file is not None:
                    with open(receive_file, "wb") as target:
                        total = fio.receive_stream(target)
                else:
                    total = fio.receive_stream(click.get_binary_stream("stdout"))
                logger.info("Received %d bytes", total)

    except (FloppyIOError, OSError) as e:
        handle_cli_exception(e, verbose)


# =============================================================================
# Entry Point
# =============================================================================

if __name__ == "__main__":
    main()
