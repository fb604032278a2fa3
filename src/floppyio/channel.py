"""
FloppyIO Channel
================

This module provides the FloppyIO class, one side of a bidirectional
channel running over a shared byte region (typically a floppy disk image
attached to a virtual machine). It combines the protocol layers:

    send:    encode -> write output buffer -> mark control byte FULL
             -> (synchronized) wait until the peer clears it
    receive: (synchronized) wait until control byte FULL
             -> read control byte + input buffer -> decode
             -> acknowledge (clear DATA_PRESENT, keep other bits)

Error Handling
--------------
Failures are reported through an ErrorReporter. By default the public
operations return negative ErrorCode values; with raise_on_error they
raise a ChannelError subclass instead. After a failure the channel
refuses further transfers until clear() is called:

    fio = FloppyIO("/tmp/floppy.img", ChannelConfig(synchronized=True))
    if fio.send(b"hello") < 0:
        print(fio.error_message)
        fio.clear()

Streaming
---------
send_stream() and receive_stream() move arbitrary amounts of data as a
sequence of buffer-sized frames, the last marked END_OF_DATA. Each frame
is handed over synchronously regardless of the synchronized setting, so
no chunk is overwritten before the peer has read it.

Usage:
    host = FloppyIO("floppy.img", ChannelConfig(synchronized=True))
    with open("payload.bin", "rb") as f:
        host.send_stream(f)
"""

import logging
import os
from dataclasses import replace
from pathlib import Path
from typing import BinaryIO, Optional, Union

from floppyio.config import ChannelConfig
from floppyio.errors import ChannelError, ConfigError, CreateError, ErrorCode
from floppyio.protocol import codec
from floppyio.protocol.codec import Frame
from floppyio.protocol.control import ControlByte, ControlFlags, Synchronizer
from floppyio.protocol.layout import ChannelLayout, calculate_layout
from floppyio.protocol.reporter import ErrorReporter
from floppyio.protocol.waiter import PollingWaiter
from floppyio.store import ByteStore, open_store

# Configure module logger
logger = logging.getLogger(__name__)


class FloppyIO:
    """
    One side of a FloppyIO channel.

    Attributes:
        config: Channel configuration (immutable)
        layout: Region layout for this side's role
        capacity: Largest payload a single frame carries
        store: Underlying byte store (None if it could not be opened)
        last_control: Control byte of the most recently received frame
    """

    def __init__(
        self,
        target: Union[str, Path, ByteStore],
        config: Optional[ChannelConfig] = None,
        waiter: Optional[PollingWaiter] = None,
    ):
        """
        Open a channel.

        Args:
            target: Disk image / device path, or an existing ByteStore.
            config: Channel configuration (default: ChannelConfig()).
            waiter: Polling waiter override, mainly for tests.

        Raises:
            ConfigError: If the region size or framing is invalid.
            CreateError: If the store cannot be opened and raise_on_error
                is set. Otherwise the channel starts in the error state.
        """
        self.config = config or ChannelConfig()
        self.layout: ChannelLayout = calculate_layout(
            self.config.region_size, self.config.role
        )
        self.capacity = codec.payload_capacity(
            self.layout.output_size, self.config.mode
        )
        self.last_control: Optional[ControlByte] = None
        self.store: Optional[ByteStore] = None
        self._reporter = ErrorReporter(self.config.raise_on_error)

        created = False
        if isinstance(target, (str, os.PathLike)):
            try:
                self.store, created = open_store(
                    target,
                    self.config.region_size,
                    require_existing=self.config.require_existing,
                )
            except CreateError as e:
                self._reporter.report(ErrorCode.CREATE, e.message)
                return
        else:
            self.store = target
            if self.store.size < self.config.region_size:
                raise ConfigError(
                    f"Store holds {self.store.size} bytes, "
                    f"region needs {self.config.region_size}"
                )

        self._reporter.store = self.store
        self._sync = Synchronizer(self.store)
        self._waiter = waiter or PollingWaiter(
            self.store, interval=self.config.poll_interval
        )

        logger.info(
            "Opened channel: role=%s mode=%s region=%d capacity=%d",
            self.config.role.value, self.config.mode.value,
            self.config.region_size, self.capacity
        )

        # Freshly created stores have no content to preserve
        if created or not self.config.skip_init:
            self.reset()

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def error(self) -> int:
        """Last recorded error code (0 if none)."""
        return int(self._reporter.code)

    @property
    def error_message(self) -> str:
        """Chained message of all errors since the last clear()."""
        return self._reporter.message

    def ready(self) -> bool:
        """Return True if the channel holds no error and the store is good."""
        return self.store is not None and self._reporter.ready()

    def clear(self) -> None:
        """Forget recorded errors and reset the store's error state."""
        self._reporter.clear()

    def close(self) -> None:
        """Close the underlying store."""
        if self.store is not None:
            self.store.close()

    def __enter__(self) -> "FloppyIO":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def reset(self) -> None:
        """Zero the entire region, buffers and control bytes included."""
        if self.store is None:
            self._reporter.report(ErrorCode.NOT_READY, "No store to reset")
            return
        try:
            self.store.write_at(0, bytes(self.config.region_size))
            self.store.flush()
        except ChannelError as e:
            self._reporter.report(e.code, f"Unable to reset region ({e.message})")
            return
        logger.info("Region reset (%d bytes)", self.config.region_size)

    # -------------------------------------------------------------------------
    # Single Frame Transfer
    # -------------------------------------------------------------------------

    def send(
        self,
        payload: bytes,
        end_of_data: bool = False,
        aborted: bool = False,
        session: int = 0,
    ) -> int:
        """
        Send one frame.

        Payloads larger than the frame capacity are truncated. In
        synchronized mode this blocks until the peer acknowledges the
        frame or the timeout expires. In unsynchronized mode an unread
        frame from an earlier send is overwritten.

        Args:
            payload: Bytes to send.
            end_of_data: Mark the frame as the last of a transfer.
            aborted: Signal a failed transfer to the peer.
            session: Correlation tag (0-15) carried in the control byte.

        Returns:
            Number of payload bytes sent, or a negative ErrorCode.

        Raises:
            TypeError: If payload is not bytes-like.
            ChannelError: On failure, if raise_on_error is set.
        """
        if isinstance(payload, str):
            raise TypeError("Payload must be bytes, got str")
        if not self.ready():
            return self._not_ready("Unable to send frame")

        control = ControlByte(end_of_data=end_of_data, aborted=aborted, session=session)
        try:
            return self._send_frame(payload, control, self.config.synchronized)
        except ChannelError as e:
            return self._reporter.report(e.code, f"Unable to send frame ({e.message})")

    def receive_frame(self) -> Union[Frame, int]:
        """
        Receive one frame with its control flags.

        In synchronized mode this blocks until the peer has placed a frame.
        In unsynchronized mode the input buffer is read as-is; check
        frame.control.data_present to see whether a frame was waiting.

        Returns:
            Frame (payload + control byte as read), or a negative ErrorCode.
        """
        if not self.ready():
            return self._not_ready("Unable to receive frame")
        try:
            return self._receive_frame(self.config.synchronized)
        except ChannelError as e:
            return self._reporter.report(e.code, f"Unable to receive frame ({e.message})")

    def receive(self) -> bytes:
        """
        Receive one frame and return its payload.

        Returns:
            Payload bytes, or b"" on failure (check ready()/error).
        """
        result = self.receive_frame()
        if isinstance(result, Frame):
            return result.payload
        return b""

    def receive_into(self, buffer: bytearray) -> int:
        """
        Receive one frame into a caller-supplied buffer.

        The buffer content is replaced by the payload. The frame's control
        flags are available as last_control afterwards.

        Returns:
            Number of bytes received, or a negative ErrorCode.
        """
        result = self.receive_frame()
        if isinstance(result, Frame):
            buffer[:] = result.payload
            return len(result.payload)
        return result

    # -------------------------------------------------------------------------
    # Streaming Transfer
    # -------------------------------------------------------------------------

    def send_stream(self, stream: BinaryIO) -> int:
        """
        Send a byte stream as a sequence of frames.

        The stream is sliced into capacity-sized chunks. A short chunk ends
        the transfer and carries END_OF_DATA; if the stream ends exactly on
        a chunk boundary an empty terminal frame is sent. If reading the
        stream fails, an empty frame marked ABORTED|END_OF_DATA tells the
        peer the transfer failed and InputError is reported locally.

        Args:
            stream: Binary stream to read until EOF.

        Returns:
            Total payload bytes sent, or a negative ErrorCode.
        """
        if not self.ready():
            return self._not_ready("Unable to send stream")

        total = 0
        frames = 0
        while True:
            try:
                chunk = self._read_chunk(stream)
            except (OSError, ValueError) as e:
                message = f"Input stream failed after {total} bytes: {e}"
                logger.warning("Aborting transfer: %s", e)
                try:
                    self._send_frame(
                        b"", ControlByte(end_of_data=True, aborted=True), True
                    )
                except ChannelError as abort_error:
                    message = f"{message} ({abort_error.message})"
                return self._reporter.report(ErrorCode.INPUT, message)

            last = len(chunk) < self.capacity
            try:
                total += self._send_frame(chunk, ControlByte(end_of_data=last), True)
            except ChannelError as e:
                return self._reporter.report(
                    e.code, f"Stream send failed after {total} bytes ({e.message})"
                )
            frames += 1
            if last:
                break

        logger.info("Stream sent: %d bytes in %d frames", total, frames)
        return total

    def receive_stream(self, stream: BinaryIO) -> int:
        """
        Receive frames into a byte stream until END_OF_DATA.

        Args:
            stream: Binary stream the payloads are appended to.

        Returns:
            Total payload bytes received, or a negative ErrorCode. If the
            peer aborted, AbortedError is reported after all bytes that did
            arrive have been written to the stream.
        """
        if not self.ready():
            return self._not_ready("Unable to receive stream")

        total = 0
        frames = 0
        while True:
            try:
                frame = self._receive_frame(True)
            except ChannelError as e:
                return self._reporter.report(
                    e.code, f"Stream receive failed after {total} bytes ({e.message})"
                )
            try:
                stream.write(frame.payload)
            except (OSError, ValueError) as e:
                return self._reporter.report(
                    ErrorCode.IO, f"Unable to write received data: {e}"
                )
            total += len(frame.payload)
            frames += 1
            if frame.control.end_of_data:
                break

        try:
            stream.flush()
        except (OSError, ValueError) as e:
            return self._reporter.report(ErrorCode.IO, f"Unable to flush output: {e}")

        if frame.control.aborted:
            return self._reporter.report(
                ErrorCode.ABORTED, f"Transfer aborted by remote after {total} bytes"
            )

        logger.info("Stream received: %d bytes in %d frames", total, frames)
        return total

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _send_frame(self, payload: bytes, control: ControlByte, wait: bool) -> int:
        """Write a frame, mark it FULL and optionally wait for the ack."""
        frame = codec.encode(payload, self.layout.output_size, self.config.mode)
        control = replace(control, length_prefixed=frame.length_prefixed)

        # Payload must be visible before the control byte announces it
        self.store.write_at(self.layout.output_offset, frame.data)
        self.store.flush()
        written = self._sync.mark(self.layout.control_out_offset, control)
        logger.debug("TX: frame len=%d ctl=%02X", frame.sent, written.to_byte())

        if wait:
            self._waiter.wait_until(
                self.layout.control_out_offset,
                self.config.sync_timeout,
                expected=0,
                mask=ControlFlags.DATA_PRESENT,
            )
        return frame.sent

    def _receive_frame(self, wait: bool) -> Frame:
        """Optionally wait for a FULL control byte, read and acknowledge."""
        if wait:
            self._waiter.wait_until(
                self.layout.control_in_offset,
                self.config.sync_timeout,
                expected=ControlFlags.DATA_PRESENT,
                mask=ControlFlags.DATA_PRESENT,
            )

        control = self._sync.inspect(self.layout.control_in_offset)
        raw = self.store.read_at(self.layout.input_offset, self.layout.input_size)
        payload = codec.decode(raw, control.length_prefixed)
        # Only a FULL byte belongs to the consumer; an EMPTY one may be
        # marked by the producer at any moment
        if control.data_present:
            self._sync.acknowledge(self.layout.control_in_offset, control)

        self.last_control = control
        logger.debug("RX: frame len=%d ctl=%02X", len(payload), control.to_byte())
        return Frame(payload=payload, control=control)

    def _read_chunk(self, stream: BinaryIO) -> bytes:
        # Raw and pipe streams may return short reads before EOF
        chunk = bytearray()
        while len(chunk) < self.capacity:
            data = stream.read(self.capacity - len(chunk))
            if not data:
                break
            chunk.extend(data)
        return bytes(chunk)

    def _not_ready(self, action: str) -> int:
        if self.store is None:
            reason = "no store open"
        elif not self.store.good:
            reason = "store in failed state"
        else:
            reason = "channel holds an error"
        return self._reporter.report(ErrorCode.NOT_READY, f"{action}: {reason}")
