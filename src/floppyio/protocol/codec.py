"""
Frame Codec
===========

This module converts between a logical payload and the fixed-width buffer
representation written into the region. Two framings are supported:

Text Framing
------------
The payload is copied verbatim and the rest of the buffer is zero-filled.
The last byte of the buffer is reserved as an implicit terminator, so at
most capacity - 1 bytes are carried. Decoding stops at the first zero
byte. Payloads containing zero bytes are truncated at the first zero; this
is the framing understood by the legacy Perl guest scripts.

    ┌─────────────────────────────┬────────────────────┐
    │ Payload (no 0x00 bytes)     │ 00 00 00 ... 00    │
    └─────────────────────────────┴────────────────────┘

Binary Framing
--------------
A 4-byte length in native byte order precedes the payload, so any byte
value is representable. The producer marks such frames with the
LENGTH_PREFIXED control bit.

    ┌────────────┬─────────────────────────┬──────────────┐
    │ Length (4) │ Payload (Length bytes)  │ 00 ... 00    │
    └────────────┴─────────────────────────┴──────────────┘

Oversized payloads are silently truncated in both framings; the returned
byte count tells the caller how much was actually carried.
"""

import logging
import struct
from dataclasses import dataclass
from typing import Final

from floppyio.config import TransferMode
from floppyio.errors import ConfigError
from floppyio.protocol.control import ControlByte

# Configure module logger
logger = logging.getLogger(__name__)


# =============================================================================
# Framing Constants
# =============================================================================

# Length header: unsigned 32-bit, native byte order, standard size
LENGTH_FORMAT: Final[str] = "=I"
LENGTH_PREFIX_SIZE: Final[int] = struct.calcsize(LENGTH_FORMAT)

# Text frames reserve one byte for the terminator
TERMINATOR_SIZE: Final[int] = 1


@dataclass(frozen=True)
class EncodedFrame:
    """
    A payload laid out for one output buffer.

    Attributes:
        data: Full buffer content (always exactly the buffer size)
        sent: Number of payload bytes carried after truncation
        length_prefixed: True if the frame carries a length header
    """

    data: bytes
    sent: int
    length_prefixed: bool


def payload_capacity(buffer_size: int, mode: TransferMode) -> int:
    """
    Largest payload a buffer can carry in the given framing.

    Raises:
        ConfigError: If the buffer cannot carry even one payload byte.
    """
    overhead = LENGTH_PREFIX_SIZE if mode is TransferMode.BINARY else TERMINATOR_SIZE
    capacity = buffer_size - overhead
    if capacity < 1:
        raise ConfigError(
            f"Buffer of {buffer_size} bytes too small for {mode.value} framing"
        )
    return capacity


def encode(payload: bytes, buffer_size: int, mode: TransferMode) -> EncodedFrame:
    """
    Lay out a payload in a zero-padded buffer.

    Args:
        payload: Data to send.
        buffer_size: Size of the output buffer.
        mode: TEXT or BINARY framing.

    Returns:
        EncodedFrame with the buffer content and carried byte count.
    """
    capacity = payload_capacity(buffer_size, mode)
    carried = bytes(payload[:capacity])
    if len(payload) > capacity:
        logger.debug(
            "Truncating payload from %d to %d bytes", len(payload), capacity
        )

    if mode is TransferMode.BINARY:
        body = struct.pack(LENGTH_FORMAT, len(carried)) + carried
    else:
        body = carried

    data = body + bytes(buffer_size - len(body))
    return EncodedFrame(
        data=data,
        sent=len(carried),
        length_prefixed=mode is TransferMode.BINARY,
    )


def decode(raw: bytes, length_prefixed: bool) -> bytes:
    """
    Extract the payload from a received buffer.

    Args:
        raw: Full input buffer content.
        length_prefixed: Value of the frame's LENGTH_PREFIXED control bit.

    Returns:
        Payload bytes. Length-prefixed frames return exactly the announced
        length, clamped to what the buffer can hold; other frames return
        everything before the first zero byte.
    """
    if length_prefixed and len(raw) >= LENGTH_PREFIX_SIZE:
        (length,) = struct.unpack_from(LENGTH_FORMAT, raw, 0)
        available = len(raw) - LENGTH_PREFIX_SIZE
        if length > available:
            logger.warning(
                "Frame length %d exceeds buffer, clamping to %d", length, available
            )
            length = available
        return bytes(raw[LENGTH_PREFIX_SIZE:LENGTH_PREFIX_SIZE + length])

    end = raw.find(b"\x00")
    return bytes(raw if end < 0 else raw[:end])


@dataclass(frozen=True)
class Frame:
    """
    A received frame.

    Attributes:
        payload: Decoded payload bytes
        control: Control byte as read before acknowledgment
    """

    payload: bytes
    control: ControlByte
