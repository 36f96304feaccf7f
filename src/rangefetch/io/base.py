"""Base protocols and shared types for I/O layer."""

from typing import Protocol, runtime_checkable


@runtime_checkable
class OutputTarget(Protocol):
    """Protocol for the pre-sized destination of a download."""

    addressable: bool   # True when write_at is safe from concurrent writers

    def allocate(self, size: int) -> None:
        """Resize the target to exactly `size` bytes."""
        ...

    def write_at(self, offset: int, data: bytes) -> int:
        """Write `data` at absolute `offset` without touching any shared cursor."""
        ...

    def write(self, data: bytes) -> int:
        """Append `data` at the target's own cursor (sequential writers only)."""
        ...

    @property
    def size(self) -> int:
        ...

    def close(self) -> None:
        ...
