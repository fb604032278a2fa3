"""
FloppyIO - Hypervisor/Guest Communication Through a Shared Disk Image
=====================================================================

This package provides a bidirectional communication channel between a
controlling process (the "host", usually a hypervisor-side tool) and an
isolated process (the "peer", usually a virtual machine guest) using a
shared, randomly-addressable byte region as the only transport. The
region is typically an emulated floppy disk image attached to the VM.

There is no socket, lock or shared memory signal between the two sides.
All coordination is encoded in the region itself: each direction has a
buffer and a control byte, and frames are handed over by setting and
clearing bits in that byte.

Main Components
---------------
- **channel**: The FloppyIO class (send/receive/stream operations)
- **config**: ChannelConfig, OpenFlags and defaults
- **protocol**: Layout, framing, control byte state machine, polling
- **store**: File-backed and in-memory byte stores
- **cli**: The fpio command-line front end

Quick Start
-----------
Host side (hypervisor):
    >>> from floppyio import FloppyIO, ChannelConfig
    >>> host = FloppyIO("floppy.img", ChannelConfig(synchronized=True))
    >>> host.send(b"configure eth0")

Peer side (guest), opening the existing device without wiping it:
    >>> from floppyio import FloppyIO, ChannelConfig, OpenFlags
    >>> flags = OpenFlags.PEER_ROLE | OpenFlags.SKIP_INIT | OpenFlags.REQUIRE_EXISTING
    >>> peer = FloppyIO("/dev/fd0", ChannelConfig.from_flags(flags))
    >>> peer.receive()
    b'configure eth0'

Or use the command-line tool:
    $ fpio -H -s floppy.img < data.bin      # host sends
    $ fpio -R data.bin /dev/fd0             # guest receives

Version History
---------------
1.0.0 - Text and binary framing, synchronized streaming, fpio CLI
"""

__version__ = "1.0.0"

# =============================================================================
# Public API Exports
# =============================================================================

from floppyio.channel import FloppyIO
from floppyio.config import (
    DEFAULT_POLL_INTERVAL,
    DEFAULT_REGION_SIZE,
    DEFAULT_SYNC_TIMEOUT,
    ChannelConfig,
    OpenFlags,
    Role,
    TransferMode,
)
from floppyio.errors import (
    FloppyIOError,
    ConfigError,
    ChannelError,
    ErrorCode,
    IOError as ChannelIOError,  # Avoid collision with builtin
    TimeoutError as ChannelTimeoutError,  # Avoid collision with builtin
    CreateError,
    NotReadyError,
    InputError,
    AbortedError,
)
from floppyio.protocol import (
    ChannelLayout,
    ControlByte,
    ControlFlags,
    Frame,
    PollingWaiter,
    calculate_layout,
)
from floppyio.store import ByteStore, FileStore, MemoryStore, open_store

__all__ = [
    # Version info
    "__version__",
    # Channel
    "FloppyIO",
    # Configuration
    "DEFAULT_POLL_INTERVAL",
    "DEFAULT_REGION_SIZE",
    "DEFAULT_SYNC_TIMEOUT",
    "ChannelConfig",
    "OpenFlags",
    "Role",
    "TransferMode",
    # Exception hierarchy
    "FloppyIOError",
    "ConfigError",
    "ChannelError",
    "ErrorCode",
    "ChannelIOError",
    "ChannelTimeoutError",
    "CreateError",
    "NotReadyError",
    "InputError",
    "AbortedError",
    # Protocol
    "ChannelLayout",
    "ControlByte",
    "ControlFlags",
    "Frame",
    "PollingWaiter",
    "calculate_layout",
    # Stores
    "ByteStore",
    "FileStore",
    "MemoryStore",
    "open_store",
]
