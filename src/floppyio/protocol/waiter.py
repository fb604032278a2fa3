"""
Polling Waiter
==============

Blocks until a control byte reaches an expected value. Polling is the
only way to observe the other side: the region offers no change
notification, so the byte is re-read at a fixed interval until it matches
or the deadline passes.

This is the only place where the channel suspends the calling thread.
A timeout of 0 waits forever and cannot be interrupted from outside.
"""

import logging
import time
from typing import Callable, Optional

from floppyio.config import DEFAULT_POLL_INTERVAL
from floppyio.errors import TimeoutError
from floppyio.store import ByteStore

# Configure module logger
logger = logging.getLogger(__name__)


class PollingWaiter:
    """
    Fixed-interval poller for control bytes.

    The clock and sleep functions are injectable so tests can drive the
    waiter without real delays.

    Usage:
        waiter = PollingWaiter(store)
        # Wait up to 5s for the peer to clear DATA_PRESENT
        waiter.wait_until(layout.control_out_offset, 5, expected=0x00, mask=0x01)
    """

    def __init__(
        self,
        store: ByteStore,
        interval: float = DEFAULT_POLL_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.store = store
        self.interval = interval
        self.clock = clock
        self.sleep = sleep

    def wait_until(
        self,
        offset: int,
        timeout: float,
        expected: int,
        mask: int = 0xFF,
    ) -> int:
        """
        Wait until (byte & mask) == expected.

        Args:
            offset: Control byte offset to poll.
            timeout: Seconds to wait; 0 waits forever.
            expected: Value the masked byte must reach.
            mask: Bits of the byte that are compared.

        Returns:
            The full control byte value that matched.

        Raises:
            TimeoutError: If the deadline passes without a match.
            IOError: If the store fails while polling (not retried).
        """
        deadline: Optional[float] = self.clock() + timeout if timeout else None
        polls = 0

        while True:
            value = self.store.read_at(offset, 1)[0]
            polls += 1
            if value & mask == expected:
                logger.debug(
                    "Control byte 0x%04X matched %02X/%02X after %d polls",
                    offset, expected, mask, polls
                )
                return value

            now = self.clock()
            if deadline is not None and now >= deadline:
                raise TimeoutError(
                    f"Timed out after {timeout}s waiting for control byte "
                    f"0x{offset:04X} (value {value:02X}, "
                    f"expected {expected:02X} mask {mask:02X})"
                )

            delay = self.interval
            if deadline is not None:
                delay = min(delay, deadline - now)
            self.sleep(delay)
