"""SCOUT Resolver — URL normalization and redirect-wrapper unwrapping."""
from .urls import (
    UrlResolver,
    is_valid_url,
    normalize_url,
    is_redirect_wrapper,
    is_listing_url,
)

__all__ = ["UrlResolver", "is_valid_url", "normalize_url", "is_redirect_wrapper", "is_listing_url"]
