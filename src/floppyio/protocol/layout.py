"""
Region Layout Calculation
=========================

This module derives the byte ranges each side of the channel owns. The
region is split into two equal buffers followed by two control bytes:

    ┌──────────────────────┬──────────────────────┬────────┬────────┐
    │  Host -> Peer buffer │  Peer -> Host buffer │ Ctl HP │ Ctl PH │
    │     R/2 - 1 bytes    │     R/2 - 1 bytes    │ R - 2  │ R - 1  │
    └──────────────────────┴──────────────────────┴────────┴────────┘

For the default 28K region:

    0x0000 - 0x37FE  Host -> Peer buffer
    0x37FF - 0x6FFD  Peer -> Host buffer
    0x6FFE           "Data available for peer" control byte
    0x6FFF           "Data available for host" control byte

The peer layout is the exact mirror of the host layout: the host's output
range is the peer's input range and vice versa. Both sides compute their
layout independently from the region size, so no negotiation is needed.
"""

from dataclasses import dataclass

from floppyio.config import Role
from floppyio.errors import ConfigError

# Two control bytes, one per direction
CONTROL_BYTES = 2

# Smallest region holding two one-byte buffers plus two control bytes
MIN_REGION_SIZE = 4


@dataclass(frozen=True)
class ChannelLayout:
    """
    Byte ranges owned by one side of the channel.

    Attributes:
        role: Side this layout was computed for
        region_size: Total size of the region
        output_offset: Start of the buffer this side writes
        output_size: Size of the output buffer
        input_offset: Start of the buffer this side reads
        input_size: Size of the input buffer
        control_out_offset: Control byte for frames this side produces
        control_in_offset: Control byte for frames this side consumes
    """

    role: Role
    region_size: int
    output_offset: int
    output_size: int
    input_offset: int
    input_size: int
    control_out_offset: int
    control_in_offset: int

    def mirror(self) -> "ChannelLayout":
        """Return the layout seen by the other side of the channel."""
        other = Role.PEER if self.role is Role.HOST else Role.HOST
        return calculate_layout(self.region_size, other)

    def describe(self) -> str:
        """Format the region map as a table for diagnostics."""
        rows = [
            (self.output_offset, self.output_size, "Output buffer"),
            (self.input_offset, self.input_size, "Input buffer"),
            (self.control_out_offset, 1, "Output control byte"),
            (self.control_in_offset, 1, "Input control byte"),
        ]
        lines = [f"Region layout ({self.role.value}, {self.region_size} bytes)"]
        for offset, size, label in sorted(rows):
            if size == 1:
                span = f"    0x{offset:04X}    "
            else:
                span = f"0x{offset:04X} - 0x{offset + size - 1:04X}"
            lines.append(f"  {span}  {label}")
        return "\n".join(lines)


def calculate_layout(region_size: int, role: Role) -> ChannelLayout:
    """
    Derive the channel layout for one side of a region.

    Args:
        region_size: Total region size in bytes (even, at least 4).
        role: HOST or PEER.

    Returns:
        ChannelLayout for the requested role.

    Raises:
        ConfigError: If the region cannot hold two non-empty buffers and
            two control bytes.
    """
    if isinstance(region_size, bool) or not isinstance(region_size, int):
        raise ConfigError(f"Region size must be an integer, got {region_size!r}")
    if region_size < MIN_REGION_SIZE:
        raise ConfigError(
            f"Region too small: {region_size} bytes, minimum {MIN_REGION_SIZE}"
        )
    if region_size % 2:
        raise ConfigError(f"Region size must be even, got {region_size}")

    buffer_size = region_size // 2 - 1
    host_to_peer = 0
    peer_to_host = buffer_size
    control_host_to_peer = 2 * buffer_size
    control_peer_to_host = control_host_to_peer + 1

    if role is Role.HOST:
        return ChannelLayout(
            role=role,
            region_size=region_size,
            output_offset=host_to_peer,
            output_size=buffer_size,
            input_offset=peer_to_host,
            input_size=buffer_size,
            control_out_offset=control_host_to_peer,
            control_in_offset=control_peer_to_host,
        )

    return ChannelLayout(
        role=role,
        region_size=region_size,
        output_offset=peer_to_host,
        output_size=buffer_size,
        input_offset=host_to_peer,
        input_size=buffer_size,
        control_out_offset=control_peer_to_host,
        control_in_offset=control_host_to_peer,
    )
