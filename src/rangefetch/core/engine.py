"""Download orchestration: probe, allocate, fetch (ranged or whole), verify."""

from __future__ import annotations
import asyncio
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import BinaryIO, List, Union

from .config import DEFAULT_WORKERS, FetchConfig
from .model import (
    AllocationError, DownloadResult, FetchError, FetchOutcome, IncompleteDownloadError,
    Interval, ProbeResult, describe_destination,
)
from .partition import partition
from ..io.http_async import fetch_range, make_client, probe
from ..io.http_sync import fetch_range_sync, probe_sync
from ..io.local import LocalOutputTarget, open_output_target

logger = logging.getLogger(__name__)

Destination = Union[Path, str, BinaryIO]

WHOLE = Interval(0, None)


def resolve_size(probed: ProbeResult, expected_size: int | None) -> int | None:
    """Prefer the probed Content-Length, fall back to the caller's size.

    A probed length of 0 counts as missing when the caller knows a size.
    """
    if probed.content_length == 0 and expected_size:
        logger.warning("Server reports 0 bytes; using expected size %d", expected_size)
        return expected_size
    if probed.content_length is not None:
        if expected_size is not None and expected_size != probed.content_length:
            logger.warning("Server reports %d bytes, expected %d; using server value",
                           probed.content_length, expected_size)
        return probed.content_length
    return expected_size


def _allocate(destination: Destination, total_size: int | None) -> LocalOutputTarget:
    try:
        target = open_output_target(destination)
    except OSError as e:
        raise AllocationError(f"cannot create {describe_destination(destination)}: {e}") from e
    if total_size is None:
        return target
    try:
        target.allocate(total_size)
    except OSError as e:
        target.close()
        raise AllocationError(f"cannot pre-size {describe_destination(destination)} "
                              f"to {total_size} bytes: {e}") from e
    return target


def _use_ranges(probed: ProbeResult, total_size: int | None, target: LocalOutputTarget) -> bool:
    if not probed.accepts_ranges:
        logger.info("Server does not accept byte ranges; fetching whole resource")
        return False
    if not total_size:
        logger.info("Resource size unknown; fetching whole resource")
        return False
    if not target.addressable:
        # Parallel sections need positional writes
        logger.info("Output target is not seekable; fetching whole resource")
        return False
    return True


def _check_outcomes(outcomes: List[FetchOutcome]) -> None:
    if any(not o.success for o in outcomes):
        raise IncompleteDownloadError(outcomes)


def _check_whole(outcome: FetchOutcome, target: LocalOutputTarget) -> None:
    if not outcome.success:
        raise FetchError(f"GET failed: {outcome.error}")
    if target.addressable and target.size > outcome.bytes_written:
        # Drop the pre-sized tail the body did not fill
        target.allocate(outcome.bytes_written)


def _verify(destination: Destination, mode: str, total_size: int | None,
            target: LocalOutputTarget, elapsed: float,
            outcomes: List[FetchOutcome]) -> DownloadResult:
    result = DownloadResult(
        destination=describe_destination(destination),
        mode=mode,
        expected_size=total_size,
        actual_size=target.size,
        elapsed=elapsed,
        outcomes=outcomes,
    )
    if not result.size_matches:
        logger.warning("Downloaded size %d differs from expected %d",
                       result.actual_size, result.expected_size)
    return result


def download_sync(url: str, destination: Destination, *, expected_size: int | None = None,
                  workers: int = DEFAULT_WORKERS, config: FetchConfig | None = None) -> DownloadResult:
    """Download `url` into `destination` using one thread per byte range.

    Raises ProbeError, AllocationError, FetchError or IncompleteDownloadError.
    A final size mismatch is only logged and reported on the result.
    """
    if workers <= 0:
        raise ValueError(f"workers must be positive, got {workers}")
    config = config or FetchConfig()

    probed = probe_sync(url, config=config)
    total_size = resolve_size(probed, expected_size)
    target = _allocate(destination, total_size)
    try:
        started = time.perf_counter()
        if _use_ranges(probed, total_size, target):
            mode = "ranged"
            intervals = partition(total_size, workers)
            logger.info("Fetching %d bytes in %d ranges", total_size, len(intervals))
            with ThreadPoolExecutor(max_workers=len(intervals),
                                    thread_name_prefix="rangefetch") as pool:
                futures = [pool.submit(fetch_range_sync, url, interval, target,
                                       config=config, index=i)
                           for i, interval in enumerate(intervals)]
            # executor exit is the join barrier
            outcomes = [f.result() for f in futures]
            _check_outcomes(outcomes)
        else:
            mode = "whole"
            outcome = fetch_range_sync(url, WHOLE, target, config=config)
            _check_whole(outcome, target)
            outcomes = [outcome]
        elapsed = time.perf_counter() - started
        return _verify(destination, mode, total_size, target, elapsed, outcomes)
    finally:
        target.close()


async def download(url: str, destination: Destination, *, expected_size: int | None = None,
                   workers: int = DEFAULT_WORKERS, config: FetchConfig | None = None) -> DownloadResult:
    """Download `url` into `destination` with concurrent httpx range requests.

    Same contract as download_sync; file writes are dispatched to threads.
    """
    if workers <= 0:
        raise ValueError(f"workers must be positive, got {workers}")
    config = config or FetchConfig()

    async with make_client(config) as client:
        probed = await probe(url, config=config, client=client)
        total_size = resolve_size(probed, expected_size)
        target = await asyncio.to_thread(_allocate, destination, total_size)
        try:
            started = time.perf_counter()
            if _use_ranges(probed, total_size, target):
                mode = "ranged"
                intervals = partition(total_size, workers)
                logger.info("Fetching %d bytes in %d ranges", total_size, len(intervals))
                tasks = [fetch_range(url, interval, target, config=config, index=i, client=client)
                         for i, interval in enumerate(intervals)]
                outcomes = list(await asyncio.gather(*tasks))
                _check_outcomes(outcomes)
            else:
                mode = "whole"
                outcome = await fetch_range(url, WHOLE, target, config=config, client=client)
                await asyncio.to_thread(_check_whole, outcome, target)
                outcomes = [outcome]
            elapsed = time.perf_counter() - started
            return await asyncio.to_thread(_verify, destination, mode, total_size,
                                           target, elapsed, outcomes)
        finally:
            await asyncio.to_thread(target.close)
