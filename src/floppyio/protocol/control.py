"""
Control Byte Synchronization
============================

Each direction of the channel has one control byte. It is the only
coordination primitive between the two sides: there are no locks and no
shared clock, so frame hand-over is encoded entirely in this byte.

Control Byte Format
-------------------
    ┌──────────────┬─────────┬───────────┬─────────┬─────────┐
    │ Session (4)  │ Aborted │ LengthPfx │ EndData │ Present │
    │   bits 7-4   │  bit 3  │   bit 2   │  bit 1  │  bit 0  │
    └──────────────┴─────────┴───────────┴─────────┴─────────┘

State Machine
-------------
A direction is either EMPTY (DATA_PRESENT clear) or FULL (DATA_PRESENT
set). Ownership of the bits is split between the two sides:

- The producer writes the payload first, then sets the control byte to
  FULL with a single byte write (EMPTY -> FULL). Only the producer sets
  DATA_PRESENT.
- The consumer reads the payload, then writes the same byte back with
  DATA_PRESENT cleared (FULL -> EMPTY). Only the consumer clears it; all
  other bits are echoed back unchanged so the meaning of the last frame
  (e.g. "final chunk") survives the acknowledgment.

Writing FULL over a FULL byte is a protocol violation. In unsynchronized
mode the producer does not check for it, and an unread frame can be
overwritten.

Every control byte write is flushed before returning, otherwise the other
side could poll a stale value.
"""

import logging
from dataclasses import dataclass, replace
from enum import IntFlag
from typing import Final

from floppyio.store import ByteStore

# Configure module logger
logger = logging.getLogger(__name__)


# =============================================================================
# Control Byte Bits
# =============================================================================

class ControlFlags(IntFlag):
    """Flag bits of a control byte (low nibble)."""

    NONE = 0x00
    DATA_PRESENT = 0x01     # A frame is waiting for the consumer
    END_OF_DATA = 0x02      # Last frame of a multi-chunk transfer
    LENGTH_PREFIXED = 0x04  # Payload preceded by a 4-byte length
    ABORTED = 0x08          # Producer signals the transfer failed


SESSION_SHIFT: Final[int] = 4
SESSION_MASK: Final[int] = 0xF0
MAX_SESSION: Final[int] = 0x0F


@dataclass(frozen=True)
class ControlByte:
    """
    Decoded control byte.

    Attributes:
        data_present: A frame is waiting for the consumer
        end_of_data: This frame ends a multi-chunk transfer
        length_prefixed: Payload is preceded by a length header
        aborted: The producer aborted the transfer
        session: Correlation tag (0-15), not interpreted by the channel
    """

    data_present: bool = False
    end_of_data: bool = False
    length_prefixed: bool = False
    aborted: bool = False
    session: int = 0

    def __post_init__(self) -> None:
        if not 0 <= self.session <= MAX_SESSION:
            raise ValueError(f"Session must be 0-{MAX_SESSION}, got {self.session}")

    @property
    def flags(self) -> ControlFlags:
        """Flag bits without the session tag."""
        flags = ControlFlags.NONE
        if self.data_present:
            flags |= ControlFlags.DATA_PRESENT
        if self.end_of_data:
            flags |= ControlFlags.END_OF_DATA
        if self.length_prefixed:
            flags |= ControlFlags.LENGTH_PREFIXED
        if self.aborted:
            flags |= ControlFlags.ABORTED
        return flags

    def to_byte(self) -> int:
        """Pack into the single on-region byte."""
        return int(self.flags) | (self.session << SESSION_SHIFT)

    @classmethod
    def from_byte(cls, value: int) -> "ControlByte":
        """Unpack an on-region byte."""
        return cls(
            data_present=bool(value & ControlFlags.DATA_PRESENT),
            end_of_data=bool(value & ControlFlags.END_OF_DATA),
            length_prefixed=bool(value & ControlFlags.LENGTH_PREFIXED),
            aborted=bool(value & ControlFlags.ABORTED),
            session=(value & SESSION_MASK) >> SESSION_SHIFT,
        )

    def acknowledged(self) -> "ControlByte":
        """Return this control byte with DATA_PRESENT cleared."""
        return replace(self, data_present=False)

    def __repr__(self) -> str:
        names = [flag.name for flag in ControlFlags if flag and flag in self.flags]
        return f"ControlByte({'|'.join(names) or 'EMPTY'}, session={self.session})"


# =============================================================================
# Synchronizer
# =============================================================================

class Synchronizer:
    """
    Performs the EMPTY/FULL transitions on control bytes.

    The synchronizer does not know which direction an offset belongs to;
    the channel passes its own output control offset to mark() and its
    input control offset to acknowledge(), which keeps each side writing
    only the bits it owns.
    """

    def __init__(self, store: ByteStore):
        self.store = store

    def inspect(self, offset: int) -> ControlByte:
        """Read and decode the control byte at offset."""
        return ControlByte.from_byte(self.store.read_at(offset, 1)[0])

    def mark(self, offset: int, control: ControlByte) -> ControlByte:
        """
        Producer transition EMPTY -> FULL.

        Args:
            offset: Output control byte offset.
            control: Flags for the frame; DATA_PRESENT is forced on.

        Returns:
            The control byte as written.
        """
        control = replace(control, data_present=True)
        self._write(offset, control)
        logger.debug("Marked frame at 0x%04X: %r", offset, control)
        return control

    def acknowledge(self, offset: int, control: ControlByte) -> ControlByte:
        """
        Consumer transition FULL -> EMPTY.

        Args:
            offset: Input control byte offset.
            control: Control byte as read when the frame was consumed.

        Returns:
            The control byte as written back (all non-presence bits kept).
        """
        cleared = control.acknowledged()
        self._write(offset, cleared)
        logger.debug("Acknowledged frame at 0x%04X: %r", offset, cleared)
        return cleared

    def _write(self, offset: int, control: ControlByte) -> None:
        self.store.write_at(offset, bytes([control.to_byte()]))
        self.store.flush()
