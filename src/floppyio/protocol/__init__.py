"""
FloppyIO Channel Protocol
=========================

This package implements the protocol layers of the channel, leaves first:

- **layout**: Region layout calculation (buffer and control byte offsets)
- **codec**: Text and length-prefixed binary frame encoding
- **control**: Control byte format and the EMPTY/FULL state machine
- **waiter**: Fixed-interval polling with deadline
- **reporter**: Error code recording, message chaining and raising

None of these layers open files or spawn threads; they all operate on a
ByteStore handed in by the channel (see floppyio.channel).

Thread Safety
-------------
The protocol classes are NOT thread-safe. Each side of a channel is
expected to be driven from a single thread.
"""

# =============================================================================
# Public API Exports
# =============================================================================

# Layout
from floppyio.protocol.layout import (
    CONTROL_BYTES,
    MIN_REGION_SIZE,
    ChannelLayout,
    calculate_layout,
)

# Frame codec
from floppyio.protocol.codec import (
    LENGTH_FORMAT,
    LENGTH_PREFIX_SIZE,
    EncodedFrame,
    Frame,
    decode,
    encode,
    payload_capacity,
)

# Control bytes
from floppyio.protocol.control import (
    MAX_SESSION,
    ControlByte,
    ControlFlags,
    Synchronizer,
)

# Waiting and error reporting
from floppyio.protocol.waiter import PollingWaiter
from floppyio.protocol.reporter import ErrorReporter

__all__ = [
    # Layout
    "CONTROL_BYTES",
    "MIN_REGION_SIZE",
    "ChannelLayout",
    "calculate_layout",
    # Codec
    "LENGTH_FORMAT",
    "LENGTH_PREFIX_SIZE",
    "EncodedFrame",
    "Frame",
    "decode",
    "encode",
    "payload_capacity",
    # Control
    "MAX_SESSION",
    "ControlByte",
    "ControlFlags",
    "Synchronizer",
    # Waiter
    "PollingWaiter",
    # Reporter
    "ErrorReporter",
]
