"""
Error Reporter
==============

Records channel failures and decides how they reach the caller.

Each report stores an ErrorCode and chains its message onto the previous
one, so a sequence of failures reads newest-first:

    "Channel not ready (Unable to send frame (Timed out after 5s ...))"

Depending on configuration the reporter either raises a freshly built
ChannelError or returns the negative code for the caller to propagate.
The recorded state persists until clear() is called; while it is set the
channel refuses further transfers.
"""

import logging
from typing import Optional

from floppyio.errors import ErrorCode, error_for_code
from floppyio.store import ByteStore

# Configure module logger
logger = logging.getLogger(__name__)


class ErrorReporter:
    """
    Per-channel error state.

    Attributes:
        code: Last reported ErrorCode (ErrorCode.NONE when clear)
        message: Chained message of all reports since the last clear()
        raise_on_error: Raise on report instead of returning the code
    """

    def __init__(self, raise_on_error: bool = False, store: Optional[ByteStore] = None):
        self.raise_on_error = raise_on_error
        self.store = store
        self.code = ErrorCode.NONE
        self.message = ""

    def report(self, code: ErrorCode, message: str) -> int:
        """
        Record a failure.

        Args:
            code: ErrorCode of the failure.
            message: Description of this failure.

        Returns:
            The negative error code (only when not raising).

        Raises:
            ChannelError: Subclass matching code, when raise_on_error is set.
        """
        self.code = ErrorCode(code)
        if self.message:
            self.message = f"{message} ({self.message})"
        else:
            self.message = message

        logger.warning("%s [code %d]", self.message, int(self.code))

        if self.raise_on_error:
            raise error_for_code(self.code, self.message)
        return int(self.code)

    def clear(self) -> None:
        """Forget recorded errors and reset the store's error state."""
        self.code = ErrorCode.NONE
        self.message = ""
        if self.store is not None:
            self.store.clear_error()

    def ready(self) -> bool:
        """Return True if no error is recorded and the store is good."""
        if self.code != ErrorCode.NONE:
            return False
        return self.store is None or self.store.good
