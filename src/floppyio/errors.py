"""
FloppyIO Error Hierarchy
========================

This module defines the exception hierarchy for the FloppyIO channel.
All exceptions inherit from FloppyIOError, allowing callers to catch all
channel-related errors with a single except clause if desired.

Exception Hierarchy
-------------------
FloppyIOError (base)
├── ConfigError - invalid configuration (region size, framing)
└── ChannelError (carries an ErrorCode)
    ├── IOError - byte store reported a bad/failed state
    ├── TimeoutError - polling wait exceeded its deadline
    ├── CreateError - region could not be opened or created
    ├── NotReadyError - channel already holds an error
    ├── InputError - source stream failed before end-of-stream
    └── AbortedError - remote peer aborted a chunked transfer

Error Codes
-----------
Every ChannelError maps to one code of the closed ErrorCode set. When a
channel is not configured to raise, these negative codes are returned by
send/receive instead, so the same taxonomy is visible either way.

Note that IOError and TimeoutError shadow the builtins inside this module.
The package root re-exports them as ChannelIOError and ChannelTimeoutError.
"""

from enum import IntEnum
from typing import Optional


# =============================================================================
# Error Codes
# =============================================================================

class ErrorCode(IntEnum):
    """
    Closed set of channel error codes.

    Codes are negative so they can share a return value with byte counts.
    """

    NONE = 0
    IO = -1
    TIMEOUT = -2
    CREATE = -3
    NOT_READY = -4
    INPUT = -5
    ABORTED = -6

    @classmethod
    def describe(cls, code: int) -> str:
        """Get human-readable description of error code."""
        descriptions = {
            0: "No error",
            -1: "I/O error",
            -2: "Timed out waiting for synchronization",
            -3: "Unable to open or create the region",
            -4: "Channel not ready",
            -5: "Input stream error",
            -6: "Transfer aborted by remote",
        }
        return descriptions.get(code, f"Unknown error ({code})")


# =============================================================================
# Base Exception Classes
# =============================================================================

class FloppyIOError(Exception):
    """
    Base exception for all FloppyIO errors.

        try:
            channel.send(b"hello")
        except FloppyIOError as e:
            print(f"Error: {e}")
    """
    pass


class ConfigError(FloppyIOError):
    """
    Invalid channel configuration.

    Raised when the region is too small or odd-sized, or when the requested
    framing cannot fit in the derived buffers. Configuration errors are
    always raised, regardless of the raise-on-error setting.
    """
    pass


class ChannelError(FloppyIOError):
    """
    Base exception for runtime channel failures.

    Attributes:
        code: ErrorCode of this failure
        message: Full chained message (newest cause first)
    """

    code: ErrorCode = ErrorCode.NONE

    def __init__(self, message: str, code: Optional[ErrorCode] = None):
        if code is not None:
            self.code = code
        self.message = message
        super().__init__(message)


class IOError(ChannelError):
    """
    The byte store failed during a read, write or seek.

    Polling waits abort immediately with this error; it is never retried.
    """
    code = ErrorCode.IO


class TimeoutError(ChannelError):
    """
    A synchronization wait exceeded its deadline.

    Raised when the remote side did not set or clear a control byte within
    the configured timeout.
    """
    code = ErrorCode.TIMEOUT


class CreateError(ChannelError):
    """The region could not be opened or created."""
    code = ErrorCode.CREATE


class NotReadyError(ChannelError):
    """
    An operation was attempted on a channel that already holds an error.

    Call FloppyIO.clear() to acknowledge the earlier failure first.
    """
    code = ErrorCode.NOT_READY


class InputError(ChannelError):
    """A source stream given to send_stream() failed mid-transfer."""
    code = ErrorCode.INPUT


class AbortedError(ChannelError):
    """
    The remote peer aborted a chunked transfer.

    The terminal frame of the transfer carried the ABORTED control bit.
    Bytes received before the abort have already been written out.
    """
    code = ErrorCode.ABORTED


# =============================================================================
# Code to Exception Mapping
# =============================================================================

ERROR_CLASSES: dict[ErrorCode, type[ChannelError]] = {
    ErrorCode.IO: IOError,
    ErrorCode.TIMEOUT: TimeoutError,
    ErrorCode.CREATE: CreateError,
    ErrorCode.NOT_READY: NotReadyError,
    ErrorCode.INPUT: InputError,
    ErrorCode.ABORTED: AbortedError,
}


def error_for_code(code: ErrorCode, message: str) -> ChannelError:
    """
    Build a new exception instance for an error code.

    A fresh instance is created on every call; error objects are never
    shared between reports.
    """
    cls = ERROR_CLASSES.get(ErrorCode(code), ChannelError)
    return cls(message, code=ErrorCode(code))
