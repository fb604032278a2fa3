"""
Tests for Streaming Transfers
=============================

send_stream() slices a byte stream into frames and receive_stream()
reassembles them. Each test runs the receiving side on a background
thread so both sides hand frames over synchronously, the way two
processes sharing a disk image would.
"""

import io
from unittest.mock import patch

import pytest

from floppyio import (
    AbortedError,
    ChannelTimeoutError,
    ErrorCode,
    InputError,
    TransferMode,
)


class FailingStream:
    """Source that yields one full chunk and then fails."""

    def __init__(self, chunk: bytes):
        self.chunk = chunk
        self.reads = 0

    def read(self, size: int) -> bytes:
        self.reads += 1
        if self.reads == 1:
            return self.chunk[:size]
        raise OSError("disk gone")


class TrickleStream(io.RawIOBase):
    """Raw stream returning at most 5 bytes per read, like a pipe."""

    def __init__(self, data: bytes):
        self.source = io.BytesIO(data)

    def readable(self) -> bool:
        return True

    def read(self, size: int = -1) -> bytes:
        return self.source.read(min(size, 5))


def stream_pair(make_pair, **fields):
    fields.setdefault("mode", TransferMode.BINARY)
    fields.setdefault("sync_timeout", 5)
    return make_pair(**fields)


# =============================================================================
# Chunking
# =============================================================================

class TestStreamChunking:
    """How a stream is cut into frames."""

    def test_multi_chunk_transfer(self, make_pair, background):
        """2.5 x capacity goes out as two full frames and one short final frame."""
        host, peer = stream_pair(make_pair)
        data = bytes(range(256))[:host.capacity * 2 + host.capacity // 2]
        received = io.BytesIO()

        thread, result = background(peer.receive_stream, received)
        with patch.object(host._sync, "mark", wraps=host._sync.mark) as mark:
            assert host.send_stream(io.BytesIO(data)) == len(data)
        thread.join(5)

        assert result["value"] == len(data)
        assert received.getvalue() == data
        controls = [call.args[1] for call in mark.call_args_list]
        assert len(controls) == 3
        assert [c.end_of_data for c in controls] == [False, False, True]

    def test_exact_multiple_sends_empty_terminal_frame(self, make_pair, background):
        host, peer = stream_pair(make_pair)
        data = b"\xaa" * (host.capacity * 2)
        received = io.BytesIO()

        thread, result = background(peer.receive_stream, received)
        with patch.object(host._sync, "mark", wraps=host._sync.mark) as mark:
            assert host.send_stream(io.BytesIO(data)) == len(data)
        thread.join(5)

        assert result["value"] == len(data)
        assert received.getvalue() == data
        assert mark.call_count == 3
        assert mark.call_args_list[-1].args[1].end_of_data

    def test_empty_stream(self, make_pair, background):
        """An empty source still produces one END_OF_DATA frame."""
        host, peer = stream_pair(make_pair)
        received = io.BytesIO()

        thread, result = background(peer.receive_stream, received)
        assert host.send_stream(io.BytesIO(b"")) == 0
        thread.join(5)

        assert result["value"] == 0
        assert received.getvalue() == b""

    def test_short_reads_fill_chunks(self, make_pair, background):
        """Pipe-like sources are read until a chunk is full."""
        host, peer = stream_pair(make_pair)
        data = bytes(range(60))
        received = io.BytesIO()

        thread, result = background(peer.receive_stream, received)
        with patch.object(host._sync, "mark", wraps=host._sync.mark) as mark:
            assert host.send_stream(TrickleStream(data)) == len(data)
        thread.join(5)

        assert received.getvalue() == data
        assert mark.call_count == 3

    def test_text_framing_stream(self, make_pair, background):
        host, peer = stream_pair(make_pair, mode=TransferMode.TEXT)
        data = b"line one\nline two\nline three\n" * 4
        received = io.BytesIO()

        thread, result = background(peer.receive_stream, received)
        assert host.send_stream(io.BytesIO(data)) == len(data)
        thread.join(5)

        assert received.getvalue() == data

    def test_unsynchronized_channel_still_hands_over(self, make_pair, background):
        """Streams never overwrite an unread chunk."""
        host, peer = stream_pair(make_pair, synchronized=False)
        data = bytes(range(200))
        received = io.BytesIO()

        thread, result = background(peer.receive_stream, received)
        assert host.send_stream(io.BytesIO(data)) == len(data)
        thread.join(5)

        assert result["value"] == len(data)
        assert received.getvalue() == data

    def test_peer_to_host_direction(self, make_pair, background):
        host, peer = stream_pair(make_pair)
        data = b"from the guest" * 10
        received = io.BytesIO()

        thread, result = background(host.receive_stream, received)
        assert peer.send_stream(io.BytesIO(data)) == len(data)
        thread.join(5)

        assert received.getvalue() == data


# =============================================================================
# Aborted Transfers
# =============================================================================

class TestStreamAbort:
    """Source failures propagated to the receiving side."""

    def test_input_failure_aborts_peer(self, make_pair, background):
        host, peer = stream_pair(make_pair)
        chunk = b"A" * host.capacity
        received = io.BytesIO()

        thread, result = background(peer.receive_stream, received)
        assert host.send_stream(FailingStream(chunk)) == ErrorCode.INPUT
        thread.join(5)

        assert "disk gone" in host.error_message
        assert "after 27 bytes" in host.error_message
        assert result["value"] == ErrorCode.ABORTED
        assert received.getvalue() == chunk
        assert "aborted by remote after 27 bytes" in peer.error_message

    def test_abort_frame_flags(self, make_pair, background):
        host, peer = stream_pair(make_pair)
        received = io.BytesIO()

        thread, result = background(peer.receive_stream, received)
        host.send_stream(FailingStream(b"B" * host.capacity))
        thread.join(5)

        assert peer.last_control.aborted
        assert peer.last_control.end_of_data
        assert peer.last_control.session == 0

    def test_abort_raises_when_configured(self, make_pair, background):
        host, peer = stream_pair(make_pair, raise_on_error=True)
        received = io.BytesIO()

        thread, result = background(peer.receive_stream, received)
        with pytest.raises(InputError):
            host.send_stream(FailingStream(b"C" * host.capacity))
        thread.join(5)

        assert isinstance(result["error"], AbortedError)
        assert received.getvalue() == b"C" * host.capacity


# =============================================================================
# Stream Errors
# =============================================================================

class TestStreamErrors:
    """Timeouts and local failures during streaming."""

    def test_send_without_receiver(self, make_lonely):
        channel = make_lonely()
        assert channel.send_stream(io.BytesIO(b"data")) == ErrorCode.TIMEOUT
        assert channel.error_message.startswith("Stream send failed after 0 bytes")

    def test_receive_without_sender(self, make_lonely):
        channel = make_lonely()
        received = io.BytesIO()
        assert channel.receive_stream(received) == ErrorCode.TIMEOUT
        assert channel.error_message.startswith("Stream receive failed after 0 bytes")

    def test_timeout_raises_when_configured(self, make_lonely):
        channel = make_lonely(raise_on_error=True)
        with pytest.raises(ChannelTimeoutError):
            channel.send_stream(io.BytesIO(b"data"))

    def test_stream_refused_while_not_ready(self, make_lonely):
        channel = make_lonely()
        channel.send(b"x")
        assert channel.send_stream(io.BytesIO(b"data")) == ErrorCode.NOT_READY
        assert channel.receive_stream(io.BytesIO()) == ErrorCode.NOT_READY

    def test_output_write_failure(self, make_pair, background):
        host, peer = stream_pair(make_pair)
        closed = io.BytesIO()
        closed.close()

        thread, _ = background(host.send_stream, io.BytesIO(b"payload"))
        assert peer.receive_stream(closed) == ErrorCode.IO
        thread.join(5)
        assert "Unable to write received data" in peer.error_message
