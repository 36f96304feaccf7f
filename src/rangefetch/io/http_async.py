"""Asynchronous HTTP probe and range fetcher using httpx."""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx

from ..core.config import FetchConfig
from ..core.model import FetchOutcome, Interval, ProbeError, ProbeResult
from .base import OutputTarget
from .http_sync import check_complete, check_status, parse_content_length, parse_probe_headers
from .sink import SectionWriter

logger = logging.getLogger(__name__)


def make_client(config: FetchConfig) -> httpx.AsyncClient:
    """Create an AsyncClient tuned for large-body transfers."""
    limits = httpx.Limits(max_connections=config.max_connections,
                          max_keepalive_connections=config.max_connections,
                          keepalive_expiry=config.keepalive_expiry)
    timeout = httpx.Timeout(config.chunk_timeout, connect=config.connect_timeout)
    return httpx.AsyncClient(limits=limits, timeout=timeout, follow_redirects=True)


@asynccontextmanager
async def _get_client(client: Optional[httpx.AsyncClient], config: FetchConfig):
    """Yield `client`, or a temporary one that is closed afterwards."""
    if client is not None:
        yield client
        return
    async with make_client(config) as own_client:
        yield own_client


async def probe(url: str, *, config: Optional[FetchConfig] = None,
                client: Optional[httpx.AsyncClient] = None) -> ProbeResult:
    """Issue a HEAD request and report range support and content length."""
    config = config or FetchConfig()
    async with _get_client(client, config) as c:
        try:
            response = await c.head(url, headers=config.headers(url=url), timeout=config.probe_timeout)
        except httpx.HTTPError as e:
            raise ProbeError(f"HEAD request failed: {e}") from e

    if response.status_code >= 400:
        raise ProbeError(f"HEAD request failed with status {response.status_code}")

    result = parse_probe_headers(response.headers)
    logger.debug("Probe %s: accepts_ranges=%s content_length=%s",
                 url, result.accepts_ranges, result.content_length)
    return result


async def fetch_range(url: str, interval: Interval, target: OutputTarget, *,
                      config: Optional[FetchConfig] = None, index: int = 0,
                      client: Optional[httpx.AsyncClient] = None) -> FetchOutcome:
    """Fetch one interval and stream it into its section of `target`.

    File writes run in worker threads so a slow disk does not stall the
    other transfers. Failures are returned as the outcome's error.
    """
    config = config or FetchConfig()
    sink = SectionWriter(target, interval.start, interval.length)
    outcome = FetchOutcome(index=index, interval=interval)
    read_timeout = config.chunk_timeout if interval.end is not None else config.whole_timeout
    timeout = httpx.Timeout(read_timeout, connect=config.connect_timeout)

    logger.debug("Chunk %d: fetching %s", index, interval.range_header() or "whole resource")
    try:
        async with _get_client(client, config) as c:
            async with c.stream("GET", url, headers=config.headers(interval.range_header(), url),
                                timeout=timeout) as response:
                check_status(response.status_code, response.reason_phrase, interval,
                             parse_content_length(response.headers))
                async for chunk in response.aiter_bytes(config.buffer_size):
                    if chunk:
                        await asyncio.to_thread(sink.write, chunk)
        check_complete(sink, interval)
    except (httpx.HTTPError, IOError) as e:
        outcome.error = str(e) or e.__class__.__name__
        logger.warning("Chunk %d [%s-%s] failed: %s", index, interval.start, interval.end, outcome.error)
    finally:
        outcome.bytes_written = sink.offset

    if outcome.success:
        logger.debug("Chunk %d: wrote %d bytes", index, outcome.bytes_written)
    return outcome
