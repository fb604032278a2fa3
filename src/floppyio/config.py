"""
FloppyIO Channel Configuration
==============================

Channel configuration: role, framing, synchronization and region defaults.
Configuration can come from:
- Default values (defined here)
- The historical combinable open flags (OpenFlags)
- Environment variables

A ChannelConfig is immutable once built. The same value is shared by the
channel, its layout and its polling waiter for the life of the channel.
"""

import os
from dataclasses import dataclass, replace
from enum import Enum, IntFlag
from typing import Final

from floppyio.errors import ConfigError


# =============================================================================
# Defaults
# =============================================================================

# Default region size in bytes. Hypervisors refuse larger emulated floppy
# images than 28K, although the medium itself goes up to 1.44MB.
DEFAULT_REGION_SIZE: Final[int] = 28672

# Default synchronization timeout in seconds (0 waits forever)
DEFAULT_SYNC_TIMEOUT: Final[int] = 5

# Interval between control byte polls in seconds
DEFAULT_POLL_INTERVAL: Final[float] = 0.01


# =============================================================================
# Enums
# =============================================================================

class Role(Enum):
    """Which half of the region this side owns."""

    HOST = "host"  # Controlling process (hypervisor)
    PEER = "peer"  # Isolated process (guest)


class TransferMode(Enum):
    """Frame encoding used for outgoing data."""

    TEXT = "text"      # Null-terminated, zero bytes not representable
    BINARY = "binary"  # 4-byte length prefix, any byte value allowed


class OpenFlags(IntFlag):
    """
    Combinable open flags.

    These keep the values of the legacy FPIO_OPT_* flag word, so command
    lines and scripts can keep passing a single integer.
    """

    NONE = 0
    SKIP_INIT = 1         # Do not zero the region at open
    REQUIRE_EXISTING = 2  # Do not create; fall back to create+init on failure
    SYNCHRONIZED = 4      # Block on send/receive until the peer acts
    RAISE_ON_ERROR = 8    # Raise instead of returning negative codes
    PEER_ROLE = 16        # Swap buffers for the non-controlling side
    BINARY_FRAMING = 32   # Length-prefixed framing (payload shrinks by 4)


# =============================================================================
# Channel Configuration
# =============================================================================

@dataclass(frozen=True)
class ChannelConfig:
    """
    Configuration for a FloppyIO channel.

    Attributes:
        role: HOST or PEER (default: HOST)
        mode: TEXT or BINARY framing (default: TEXT)
        synchronized: Wait for the peer on send/receive (default: False)
        sync_timeout: Seconds to wait for the peer, 0 = forever (default: 5)
        raise_on_error: Raise ChannelError instead of returning codes
        region_size: Total size of the shared region in bytes (default: 28672)
        skip_init: Leave existing region content untouched at open
        require_existing: Open an existing store instead of creating one
        poll_interval: Seconds between control byte polls (default: 0.01)
    """

    role: Role = Role.HOST
    mode: TransferMode = TransferMode.TEXT
    synchronized: bool = False
    sync_timeout: int = DEFAULT_SYNC_TIMEOUT
    raise_on_error: bool = False
    region_size: int = DEFAULT_REGION_SIZE
    skip_init: bool = False
    require_existing: bool = False
    poll_interval: float = DEFAULT_POLL_INTERVAL

    def __post_init__(self) -> None:
        """Validate configuration fields after initialization."""
        if self.sync_timeout < 0:
            raise ConfigError(
                f"Synchronization timeout must be >= 0, got {self.sync_timeout}"
            )
        if self.poll_interval <= 0:
            raise ConfigError(
                f"Poll interval must be positive, got {self.poll_interval}"
            )

    @property
    def binary(self) -> bool:
        """Return True if length-prefixed framing is enabled."""
        return self.mode is TransferMode.BINARY

    @property
    def flags(self) -> OpenFlags:
        """Return the OpenFlags equivalent of this configuration."""
        flags = OpenFlags.NONE
        if self.skip_init:
            flags |= OpenFlags.SKIP_INIT
        if self.require_existing:
            flags |= OpenFlags.REQUIRE_EXISTING
        if self.synchronized:
            flags |= OpenFlags.SYNCHRONIZED
        if self.raise_on_error:
            flags |= OpenFlags.RAISE_ON_ERROR
        if self.role is Role.PEER:
            flags |= OpenFlags.PEER_ROLE
        if self.binary:
            flags |= OpenFlags.BINARY_FRAMING
        return flags

    # ═══════════════════════════════════════════════════════════════════════════
    # FACTORY METHODS
    # ═══════════════════════════════════════════════════════════════════════════

    @classmethod
    def from_flags(cls, flags: int, **overrides) -> "ChannelConfig":
        """
        Create a ChannelConfig from combinable OpenFlags.

        Args:
            flags: Bitwise OR of OpenFlags values
            **overrides: Fields not expressible as flags (sync_timeout,
                region_size, poll_interval)

        Returns:
            ChannelConfig with the flag bits applied
        """
        flags = OpenFlags(flags)
        config = cls(
            role=Role.PEER if flags & OpenFlags.PEER_ROLE else Role.HOST,
            mode=(
                TransferMode.BINARY
                if flags & OpenFlags.BINARY_FRAMING
                else TransferMode.TEXT
            ),
            synchronized=bool(flags & OpenFlags.SYNCHRONIZED),
            raise_on_error=bool(flags & OpenFlags.RAISE_ON_ERROR),
            skip_init=bool(flags & OpenFlags.SKIP_INIT),
            require_existing=bool(flags & OpenFlags.REQUIRE_EXISTING),
        )
        return replace(config, **overrides) if overrides else config

    @classmethod
    def from_env(cls, **fields) -> "ChannelConfig":
        """
        Create a ChannelConfig with overrides from environment variables.

        Environment variables (all optional):
            FLOPPYIO_REGION_SIZE: Region size in bytes (integer)
            FLOPPYIO_TIMEOUT: Synchronization timeout in seconds (integer)
            FLOPPYIO_POLL_INTERVAL: Poll interval in seconds (float)

        Args:
            **fields: Explicit field values; environment variables are
                applied on top of these.

        Returns:
            ChannelConfig with values from environment variables

        Raises:
            ConfigError: If a variable does not parse
        """
        env_fields = {}

        if size := os.environ.get("FLOPPYIO_REGION_SIZE"):
            env_fields["region_size"] = _parse_env("FLOPPYIO_REGION_SIZE", size, int)

        if timeout := os.environ.get("FLOPPYIO_TIMEOUT"):
            env_fields["sync_timeout"] = _parse_env("FLOPPYIO_TIMEOUT", timeout, int)

        if interval := os.environ.get("FLOPPYIO_POLL_INTERVAL"):
            env_fields["poll_interval"] = _parse_env(
                "FLOPPYIO_POLL_INTERVAL", interval, float
            )

        return cls(**{**fields, **env_fields})


def _parse_env(name: str, value: str, convert):
    try:
        return convert(value)
    except ValueError:
        raise ConfigError(f"Invalid value for {name}: {value!r}") from None
