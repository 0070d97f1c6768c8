"""
Error taxonomy for the data acquisition layer.

None of these reach API callers: fetch and extraction errors move the
orchestrator on to the next source, cache errors are logged and ignored.
"""

from typing import Optional


class CricPulseError(Exception):
    """Base class for all CricPulse errors."""


class FetchError(CricPulseError):
    """A remote document could not be retrieved (HTTP status, timeout, DNS...)."""

    def __init__(self, url: str, reason: str, status_code: Optional[int] = None):
        self.url = url
        self.reason = reason
        self.status_code = status_code
        super().__init__(f"Failed to fetch {url}: {reason}")


class ExtractionEmpty(CricPulseError):
    """The document was fetched but no strategy produced any records."""

    def __init__(self, source: str, detail: str = "no records matched"):
        self.source = source
        super().__init__(f"{source}: {detail}")


class CacheReadError(CricPulseError):
    """Reading the cache table failed. Treated as a cache miss."""


class CacheWriteError(CricPulseError):
    """Writing the cache table failed. Logged; the fresh value is still returned."""
