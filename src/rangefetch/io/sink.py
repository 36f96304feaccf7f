"""Bounded, offset-addressed writer over a shared output target."""

from typing import Optional

from .base import OutputTarget


class SectionExhaustedError(IOError):
    """Raised when writing to a section whose window is already full."""


class SectionWriter:
    """Write window ``[base, base + size)`` of an output target.

    Writes that run past the window are clipped to it silently; once the
    window is full every further write raises SectionExhaustedError.

    Concurrent writers are only safe when the target is addressable. On a
    non-addressable target the writer appends through the target's own
    cursor, which is correct only when all sections are written in order
    by a single writer.
    """

    def __init__(self, target: OutputTarget, base: int, size: Optional[int]):
        self.target = target
        self.base = base
        self.size = size        # None = unbounded
        self.offset = 0

    @property
    def remaining(self) -> Optional[int]:
        if self.size is None:
            return None
        return max(self.size - self.offset, 0)

    def write(self, data: bytes) -> int:
        """Write as much of `data` as fits in the window; return bytes written."""
        if self.size is not None:
            if self.offset >= self.size:
                raise SectionExhaustedError("section exhausted")
            room = self.size - self.offset
            if len(data) > room:
                data = data[:room]

        if self.target.addressable:
            n = self.target.write_at(self.base + self.offset, data)
        else:
            n = self.target.write(data)

        self.offset += n
        return n
