"""rangefetch - download one large HTTP resource as concurrent byte ranges."""

from .core.model import (                                              # re-export
    Interval, ProbeResult, FetchOutcome, DownloadResult,
    RangeFetchError, ProbeError, AllocationError, FetchError, IncompleteDownloadError,
)
from .core.config import FetchConfig, DEFAULT_WORKERS
from .core.partition import partition
from .core.engine import download, download_sync
from .io import SectionWriter, SectionExhaustedError, open_output_target


__all__ = [
    "download", "download_sync", "partition",
    "FetchConfig", "DEFAULT_WORKERS",
    "Interval", "ProbeResult", "FetchOutcome", "DownloadResult",
    "SectionWriter", "SectionExhaustedError", "open_output_target",
    "RangeFetchError", "ProbeError", "AllocationError", "FetchError", "IncompleteDownloadError",
]
