"""Synchronous HTTP probe and range fetcher using requests."""

import logging
from typing import Mapping, Optional

import requests
from requests.adapters import HTTPAdapter

from ..core.config import FetchConfig
from ..core.model import FetchOutcome, Interval, ProbeError, ProbeResult
from .base import OutputTarget
from .sink import SectionWriter

logger = logging.getLogger(__name__)


# Module-level session for connection pooling
_session = None


def _get_session(config: Optional[FetchConfig] = None) -> requests.Session:
    """Get or create the global requests session."""
    global _session
    if _session is None:
        config = config or FetchConfig()
        _session = requests.Session()
        adapter = HTTPAdapter(pool_connections=config.max_connections,
                              pool_maxsize=config.max_connections)
        _session.mount('http://', adapter)
        _session.mount('https://', adapter)
    return _session


def close_global_session():
    """Close the global requests session. Call this at application shutdown."""
    global _session
    if _session is not None:
        _session.close()
        _session = None


def parse_probe_headers(headers: Mapping[str, str]) -> ProbeResult:
    """Build a ProbeResult from HEAD response headers (case-insensitive mapping)."""
    accept_ranges = (headers.get('accept-ranges') or '').strip()

    return ProbeResult(accepts_ranges=accept_ranges == 'bytes',
                       content_length=parse_content_length(headers))


def parse_content_length(headers: Mapping[str, str]) -> Optional[int]:
    content_length_header = headers.get('content-length')
    if not content_length_header:
        return None
    try:
        return int(content_length_header)
    except ValueError:
        logger.warning("Ignoring malformed Content-Length %r", content_length_header)
        return None


def check_status(status_code: int, reason: str, interval: Interval,
                 content_length: Optional[int] = None) -> None:
    """Raise IOError unless the status is an acceptable answer for `interval`.

    A 200 answer to a range request is only usable when its body is exactly
    the interval, i.e. the interval starts at 0 and spans the whole resource.
    """
    if status_code == 206:
        return
    if status_code == 200:
        if interval.end is not None and (interval.start > 0 or content_length != interval.length):
            raise IOError("server ignored Range header (200 OK)")
        return
    raise IOError(f"unexpected status: {status_code} {reason}".rstrip())


def check_complete(sink: SectionWriter, interval: Interval) -> None:
    if interval.length is not None and sink.offset < interval.length:
        raise IOError(f"short read: got {sink.offset} of {interval.length} bytes")


def probe_sync(url: str, *, config: Optional[FetchConfig] = None) -> ProbeResult:
    """Issue a HEAD request and report range support and content length."""
    config = config or FetchConfig()
    session = _get_session(config)
    try:
        response = session.head(url, headers=config.headers(url=url),
                                timeout=config.probe_timeout, allow_redirects=True)
    except requests.RequestException as e:
        raise ProbeError(f"HEAD request failed: {e}") from e

    if response.status_code >= 400:
        raise ProbeError(f"HEAD request failed with status {response.status_code}")

    result = parse_probe_headers(response.headers)
    logger.debug("Probe %s: accepts_ranges=%s content_length=%s",
                 url, result.accepts_ranges, result.content_length)
    return result


def fetch_range_sync(url: str, interval: Interval, target: OutputTarget, *,
                     config: Optional[FetchConfig] = None, index: int = 0) -> FetchOutcome:
    """Fetch one interval and stream it into its section of `target`.

    Never raises for network, protocol or sink failures; they are returned
    as the outcome's error.
    """
    config = config or FetchConfig()
    session = _get_session(config)
    sink = SectionWriter(target, interval.start, interval.length)
    outcome = FetchOutcome(index=index, interval=interval)
    timeout = config.chunk_timeout if interval.end is not None else config.whole_timeout

    logger.debug("Chunk %d: fetching %s", index, interval.range_header() or "whole resource")
    try:
        with session.get(url, headers=config.headers(interval.range_header(), url),
                         timeout=(config.connect_timeout, timeout), stream=True) as response:
            check_status(response.status_code, response.reason or '', interval,
                         parse_content_length(response.headers))
            for chunk in response.iter_content(chunk_size=config.buffer_size):
                if chunk:
                    sink.write(chunk)
        check_complete(sink, interval)
    except (requests.RequestException, IOError) as e:
        outcome.error = str(e) or e.__class__.__name__
        logger.warning("Chunk %d [%s-%s] failed: %s", index, interval.start, interval.end, outcome.error)
    finally:
        outcome.bytes_written = sink.offset

    if outcome.success:
        logger.debug("Chunk %d: wrote %d bytes", index, outcome.bytes_written)
    return outcome
