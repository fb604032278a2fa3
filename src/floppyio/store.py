"""
Random-Access Byte Stores
=========================

This module provides the byte store the channel runs on. The channel only
needs four capabilities from its storage:

- read a range at an absolute offset
- write a range at an absolute offset
- flush written bytes so the other side can see them
- report whether the store is still in a good state

Two implementations are provided:

- **FileStore**: an emulated disk image or block device (e.g. /dev/fd0)
- **MemoryStore**: a bytearray, used by tests and in-process pairs

FileStore opens the file unbuffered. A buffered reader may satisfy a seek
and read from its own cache, which would hide control byte changes made by
the other process; raw reads always go to the OS.

Error State
-----------
A failed operation marks the store as bad and raises IOError. The store
stays bad until clear_error() is called, mirroring the sticky fail bits of
a C++ stream.
"""

import io
import logging
import os
from pathlib import Path
from typing import Optional, Protocol, Union, runtime_checkable

from floppyio.errors import CreateError, IOError

# Configure module logger
logger = logging.getLogger(__name__)


# =============================================================================
# Store Protocol
# =============================================================================

@runtime_checkable
class ByteStore(Protocol):
    """Seekable random-access byte store shared by both channel sides."""

    @property
    def size(self) -> int:
        """Size of the addressable region in bytes."""
        ...

    @property
    def good(self) -> bool:
        """True while no operation has failed."""
        ...

    def read_at(self, offset: int, size: int) -> bytes:
        """Read exactly size bytes at offset."""
        ...

    def write_at(self, offset: int, data: bytes) -> None:
        """Write data at offset."""
        ...

    def flush(self) -> None:
        """Push written bytes to the underlying medium."""
        ...

    def clear_error(self) -> None:
        """Reset the error state."""
        ...

    def close(self) -> None:
        """Release the underlying resource."""
        ...


def _check_range(store_size: int, offset: int, size: int) -> None:
    if offset < 0 or size < 0 or offset + size > store_size:
        raise IOError(
            f"Access out of range: offset={offset} size={size} store={store_size}"
        )


# =============================================================================
# In-Memory Store
# =============================================================================

class MemoryStore:
    """
    Byte store backed by a bytearray.

    Two MemoryStore objects may wrap the same bytearray, which gives a host
    and a peer channel a shared region inside one process:

        region = bytearray(28672)
        host = FloppyIO(MemoryStore(region), ChannelConfig())
        peer = FloppyIO(MemoryStore(region), ChannelConfig(role=Role.PEER))
    """

    def __init__(self, buffer: Union[bytearray, int]):
        """
        Args:
            buffer: Shared bytearray, or a size to allocate a zeroed one.
        """
        if isinstance(buffer, int):
            buffer = bytearray(buffer)
        self.buffer = buffer
        self._good = True
        self.flush_count = 0

    @property
    def size(self) -> int:
        return len(self.buffer)

    @property
    def good(self) -> bool:
        return self._good

    def read_at(self, offset: int, size: int) -> bytes:
        self._require_good()
        _check_range(len(self.buffer), offset, size)
        return bytes(self.buffer[offset:offset + size])

    def write_at(self, offset: int, data: bytes) -> None:
        self._require_good()
        _check_range(len(self.buffer), offset, len(data))
        self.buffer[offset:offset + len(data)] = data

    def flush(self) -> None:
        self._require_good()
        self.flush_count += 1

    def clear_error(self) -> None:
        self._good = True

    def close(self) -> None:
        pass

    def _require_good(self) -> None:
        if not self._good:
            raise IOError("Store is in a failed state")


# =============================================================================
# File Store
# =============================================================================

class FileStore:
    """
    Byte store backed by a file or block device.

    The file object must be opened unbuffered in binary read/write mode.
    Use open_store() rather than constructing this directly.
    """

    def __init__(self, fileobj: io.RawIOBase, size: int, name: str = "<file>"):
        self.file = fileobj
        self.name = name
        self._size = size
        self._good = True

    @property
    def size(self) -> int:
        return self._size

    @property
    def good(self) -> bool:
        return self._good and not self.file.closed

    def read_at(self, offset: int, size: int) -> bytes:
        self._require_good()
        _check_range(self._size, offset, size)
        try:
            self.file.seek(offset)
            data = self._read_exact(size)
        except OSError as e:
            self._good = False
            raise IOError(f"Read failed at offset {offset}: {e}") from e
        if len(data) != size:
            self._good = False
            raise IOError(
                f"Short read at offset {offset}: got {len(data)} of {size} bytes"
            )
        return data

    def write_at(self, offset: int, data: bytes) -> None:
        self._require_good()
        _check_range(self._size, offset, len(data))
        try:
            self.file.seek(offset)
            view = memoryview(data)
            while view:
                written = self.file.write(view)
                if not written:
                    raise OSError("write returned no progress")
                view = view[written:]
        except OSError as e:
            self._good = False
            raise IOError(f"Write failed at offset {offset}: {e}") from e

    def flush(self) -> None:
        self._require_good()
        try:
            self.file.flush()
            os.fsync(self.file.fileno())
        except OSError as e:
            self._good = False
            raise IOError(f"Flush failed: {e}") from e

    def clear_error(self) -> None:
        self._good = True

    def close(self) -> None:
        if not self.file.closed:
            self.file.close()

    def _read_exact(self, size: int) -> bytes:
        # Raw reads may return fewer bytes than requested
        chunks = bytearray()
        while len(chunks) < size:
            chunk = self.file.read(size - len(chunks))
            if not chunk:
                break
            chunks.extend(chunk)
        return bytes(chunks)

    def _require_good(self) -> None:
        if not self.good:
            raise IOError(f"Store '{self.name}' is in a failed state")


def open_store(
    path: Union[str, Path],
    size: int,
    require_existing: bool = False,
) -> tuple[FileStore, bool]:
    """
    Open or create a file-backed byte store.

    Without require_existing the file is created (or truncated) and sized.
    With require_existing an existing file or device is opened read/write
    without truncation; if that open fails the store falls back to
    creating the file. An existing image shorter than the region is
    extended with zero bytes, which leaves both control bytes EMPTY.

    Args:
        path: Disk image or block device path.
        size: Region size in bytes.
        require_existing: Prefer opening an existing store.

    Returns:
        Tuple of (store, created). created is True if the file was created
        or truncated, in which case its content must be initialized.

    Raises:
        CreateError: If the file can neither be opened nor created, or is
            shorter than the region and cannot be extended.
    """
    name = str(path)
    fileobj: Optional[io.RawIOBase] = None
    created = False

    if require_existing:
        try:
            fileobj = open(path, "r+b", buffering=0)
            logger.debug("Opened existing store '%s'", name)
        except OSError as e:
            logger.info("Unable to open '%s' (%s), creating it", name, e)

    if fileobj is None:
        try:
            fileobj = open(path, "w+b", buffering=0)
        except OSError as e:
            raise CreateError(f"Error opening '{name}': {e}") from e
        created = True
        logger.info("Created store '%s' (%d bytes)", name, size)

    _ensure_size(fileobj, size, name)
    return FileStore(fileobj, size, name=name), created


def _ensure_size(fileobj: io.RawIOBase, size: int, name: str) -> None:
    # Block devices report their length through seek, not stat
    try:
        current = fileobj.seek(0, os.SEEK_END)
        if current < size:
            fileobj.truncate(size)
            logger.info("Extended store '%s' from %d to %d bytes", name, current, size)
    except OSError as e:
        fileobj.close()
        raise CreateError(
            f"Store '{name}' holds fewer than {size} bytes and cannot be extended: {e}"
        ) from e
