from __future__ import annotations
from typing import List

from .model import Interval


def partition(total_size: int, chunk_count: int) -> List[Interval]:
    """Split ``[0, total_size - 1]`` into ``chunk_count`` contiguous intervals.

    Every interval gets ``total_size // chunk_count`` bytes except the last,
    which runs to ``total_size - 1`` and so absorbs the division remainder.

    An empty resource yields no intervals. When there are fewer bytes than
    chunks, ``chunk_count`` is clamped to ``total_size`` so no interval is empty.
    """
    if chunk_count <= 0:
        raise ValueError(f"chunk_count must be positive, got {chunk_count}")
    if total_size < 0:
        raise ValueError(f"total_size cannot be negative, got {total_size}")
    if total_size == 0:
        return []

    chunk_count = min(chunk_count, total_size)
    chunk_size = total_size // chunk_count

    intervals = []
    for i in range(chunk_count):
        start = i * chunk_size
        end = start + chunk_size - 1
        if i == chunk_count - 1:
            end = total_size - 1
        intervals.append(Interval(start, end))
    return intervals
