from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Literal


@dataclass(frozen=True, slots=True)
class Interval:
    """Inclusive byte range ``[start, end]``; ``end=None`` means "to end of resource"."""
    start: int
    end: int | None

    @property
    def length(self) -> int | None:
        if self.end is None:
            return None
        return self.end - self.start + 1

    def range_header(self) -> str | None:
        if self.end is None:
            return None
        return f"bytes={self.start}-{self.end}"


@dataclass(slots=True)
class ProbeResult:
    accepts_ranges: bool
    content_length: int | None


@dataclass(slots=True)
class FetchOutcome:
    index: int
    interval: Interval
    bytes_written: int = 0
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.error is None


@dataclass(slots=True)
class DownloadResult:
    destination: str
    mode: Literal["ranged", "whole"]
    expected_size: int | None
    actual_size: int
    elapsed: float                      # seconds
    outcomes: List[FetchOutcome] = field(default_factory=list)

    @property
    def size_matches(self) -> bool:
        return self.expected_size is None or self.actual_size == self.expected_size

    @property
    def throughput(self) -> float:
        """Bytes per second over the transfer step."""
        if self.elapsed <= 0:
            return 0.0
        return self.actual_size / self.elapsed


def describe_destination(destination) -> str:
    if isinstance(destination, (str, Path)):
        return str(destination)
    return getattr(destination, "name", None) or repr(destination)


class RangeFetchError(RuntimeError):
    """Base class for fatal download errors."""
    pass


class ProbeError(RangeFetchError):
    """Raised when the capability probe (HEAD) fails."""
    pass


class AllocationError(RangeFetchError):
    """Raised when the output target cannot be created or pre-sized."""
    pass


class FetchError(RangeFetchError):
    """Raised when the whole-resource fetch fails."""
    pass


class IncompleteDownloadError(RangeFetchError):
    """Raised after the join barrier when one or more ranged chunks failed."""

    def __init__(self, outcomes: List[FetchOutcome]):
        self.outcomes = outcomes
        failed = [o for o in outcomes if not o.success]
        detail = "; ".join(
            f"chunk {o.index} [{o.interval.start}-{o.interval.end}]: {o.error}" for o in failed
        )
        super().__init__(f"{len(failed)} of {len(outcomes)} chunks failed: {detail}")

    @property
    def failed(self) -> List[FetchOutcome]:
        return [o for o in self.outcomes if not o.success]
