"""I/O layer for rangefetch - HTTP probes/fetchers and positional output targets."""

# Re-export these for import convenience
from .base import OutputTarget
from .sink import SectionWriter, SectionExhaustedError
from .local import LocalOutputTarget, open_output_target
from .http_sync import probe_sync, fetch_range_sync
from .http_async import probe, fetch_range
