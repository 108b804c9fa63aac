"""Core utilities for caching, rate limiting and error types."""

from .cache import AdvisoryCache, advisory_cache_key
from .exceptions import (
    AdvisoryQueryError,
    APIError,
    ClientError,
    ConfigurationError,
    InvalidConfigError,
    NetworkError,
    ParseError,
    RateLimitError,
    ReadError,
    ScannerError,
    SourceParseError,
    SourceReadError,
    TimeoutError,
    UnsupportedLanguage,
    UnsupportedLanguageError,
    VulnReachError,
)
from .rate_limiter import RateLimiter, get_osv_rate_limiter, get_rate_limiter

__all__ = [
    # Cache
    "AdvisoryCache",
    "advisory_cache_key",
    # Rate limiting
    "RateLimiter",
    "get_rate_limiter",
    "get_osv_rate_limiter",
    # Exceptions
    "VulnReachError",
    "ScannerError",
    "UnsupportedLanguageError",
    "SourceReadError",
    "SourceParseError",
    "UnsupportedLanguage",
    "ReadError",
    "ParseError",
    "ClientError",
    "AdvisoryQueryError",
    "NetworkError",
    "TimeoutError",
    "APIError",
    "RateLimitError",
    "ConfigurationError",
    "InvalidConfigError",
]
