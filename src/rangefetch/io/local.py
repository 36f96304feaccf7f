"""Local output targets with positional writes."""

import io
import os
import threading
from pathlib import Path
from typing import BinaryIO, Union

from .base import OutputTarget


class LocalOutputTarget:
    """Output target over a filesystem path or an already-open binary stream.

    Paths are created (or truncated) and written with ``os.pwrite`` so that
    concurrent writers never share a file cursor. Seekable streams without a
    usable file descriptor (e.g. BytesIO) serialise seek+write under a lock.
    Non-seekable streams can only be appended to and are not addressable.
    """

    def __init__(self, destination: Union[Path, str, BinaryIO]):
        self._lock = threading.Lock()
        self._should_close_file = False
        self._written = 0

        if hasattr(destination, 'write'):
            # BinaryIO object
            self._file = destination
        else:
            # Path or str; unbuffered so pwrite never races a userspace buffer
            self._file = open(destination, 'w+b', buffering=0)
            self._should_close_file = True

        self._seekable = bool(getattr(self._file, 'seekable', lambda: False)())
        self._fd = None
        if self._seekable and hasattr(os, 'pwrite'):
            try:
                self._file.flush()
                self._fd = self._file.fileno()
            except (io.UnsupportedOperation, OSError, AttributeError):
                # BytesIO and friends
                self._fd = None

        self.addressable = self._seekable

    def allocate(self, size: int) -> None:
        """Resize the target to exactly `size` bytes."""
        if not self._seekable:
            # Streams grow as they are written; nothing to pre-size
            return
        if self._fd is not None:
            os.ftruncate(self._fd, size)
        else:
            with self._lock:
                self._file.truncate(size)
                # BytesIO.truncate never grows the buffer
                end = self._file.seek(0, 2)
                if end < size:
                    self._file.write(b"\x00" * (size - end))
                self._file.seek(0)

    def write_at(self, offset: int, data: bytes) -> int:
        """Write all of `data` at absolute `offset`."""
        if not self._seekable:
            raise io.UnsupportedOperation("target does not support positional writes")
        if self._fd is not None:
            view = memoryview(data)
            total = 0
            while total < len(view):
                total += os.pwrite(self._fd, view[total:], offset + total)
            return total
        with self._lock:
            self._file.seek(offset)
            self._file.write(data)
        return len(data)

    def write(self, data: bytes) -> int:
        """Append `data` at the stream's current position."""
        with self._lock:
            self._file.write(data)
            self._written += len(data)
        return len(data)

    @property
    def size(self) -> int:
        """Return the current size of the target in bytes."""
        if self._fd is not None:
            return os.fstat(self._fd).st_size
        if not self._seekable:
            return self._written
        with self._lock:
            pos = self._file.tell()
            self._file.seek(0, 2)  # Seek to end
            end = self._file.tell()
            self._file.seek(pos)
        return end

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self):
        """Close the file if we opened it, otherwise just flush."""
        if self._file is None:
            return
        if self._should_close_file:
            self._file.close()
        elif hasattr(self._file, 'flush'):
            self._file.flush()
        self._file = None
        self._fd = None


def open_output_target(destination: Union[Path, str, BinaryIO]) -> LocalOutputTarget:
    """Create a local output target for a path or binary stream."""
    return LocalOutputTarget(destination)
