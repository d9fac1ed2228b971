"""SCOUT Fetching — bounded HTTP GET, error taxonomy and retry policy."""
from .errors import (
    ScoutError,
    InvalidInput,
    FetchTimeout,
    NetworkError,
    ParseError,
    RateLimited,
    ConcurrencyConflict,
    ExtractError,
)
from .fetcher import Fetcher, FetchResult
from .retry import RetryPolicy

__all__ = [
    "ScoutError", "InvalidInput", "FetchTimeout", "NetworkError", "ParseError",
    "RateLimited", "ConcurrencyConflict", "ExtractError",
    "Fetcher", "FetchResult", "RetryPolicy",
]
