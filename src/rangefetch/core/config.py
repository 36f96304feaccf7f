from __future__ import annotations
from dataclasses import dataclass
from typing import Dict
from urllib.parse import urlsplit

DEFAULT_WORKERS = 8

# Browser-like client profile; some media CDNs reject non-browser clients.
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
)
DEFAULT_ACCEPT = "video/mp4,video/*;q=0.9,*/*;q=0.8"
DEFAULT_ACCEPT_LANGUAGE = "ru-RU,ru;q=0.9,en-US;q=0.8,en;q=0.7"


@dataclass(frozen=True, slots=True)
class FetchConfig:
    user_agent: str = DEFAULT_USER_AGENT
    accept: str = DEFAULT_ACCEPT
    accept_language: str = DEFAULT_ACCEPT_LANGUAGE
    referer: str | None = None     # None = origin of the requested URL

    # seconds
    probe_timeout: float = 30.0
    connect_timeout: float = 30.0
    chunk_timeout: float = 10 * 60.0
    whole_timeout: float = 30 * 60.0

    # connection reuse
    max_connections: int = 100
    keepalive_expiry: float = 90.0

    buffer_size: int = 64 * 1024

    def headers(self, range_header: str | None = None, url: str | None = None) -> Dict[str, str]:
        """Request headers for the configured client profile.

        Without an explicit referer, the origin of `url` is sent.
        """
        headers = {
            "User-Agent": self.user_agent,
            "Accept": self.accept,
            "Accept-Language": self.accept_language,
            # the payload is already-compressed media
            "Accept-Encoding": "identity",
        }
        referer = self.referer
        if not referer and url:
            parts = urlsplit(url)
            if parts.scheme and parts.netloc:
                referer = f"{parts.scheme}://{parts.netloc}/"
        if referer:
            headers["Referer"] = referer
        if range_header:
            headers["Range"] = range_header
        return headers
