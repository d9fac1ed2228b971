"""
SCOUT — Error Taxonomy
Every failure the crawler can observe. Only the feed client and the Fetcher
raise these; the resolver, aggregator and orchestrator catch them and degrade
to safe defaults.
"""

from typing import Optional


class ScoutError(Exception):
    """Base class for all crawler errors."""


class InvalidInput(ScoutError):
    """Malformed URL or candidate."""


class FetchTimeout(ScoutError):
    """A bounded network stage exceeded its budget."""

    def __init__(self, url: str, timeout: float, stage: str = "request"):
        super().__init__(f"{stage} timed out after {timeout:g}s: {url}")
        self.url = url
        self.timeout = timeout
        self.stage = stage


class NetworkError(ScoutError):
    """DNS / connection failure, or a non-2xx response where one was required."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class ParseError(ScoutError):
    """Malformed HTML / JSON met during extraction."""


class RateLimited(ScoutError):
    """Upstream signalled throttling (HTTP 429)."""

    def __init__(self, message: str = "rate limited", retry_after: Optional[float] = None):
        super().__init__(message)
        self.retry_after = retry_after


class ConcurrencyConflict(ScoutError):
    """A poll cycle was requested while another one holds the run-lock."""


class ExtractError(ScoutError):
    """A single extraction strategy failed."""

    def __init__(self, strategy: str, cause: BaseException):
        super().__init__(f"{strategy}: {cause}")
        self.strategy = strategy
        self.cause = cause
