"""Configuration model for the reachability analyzer."""

from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator

from .constants import (
    DEFAULT_MAX_CONCURRENCY,
    DEFAULT_MAX_RETRIES,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_RETRY_BACKOFF,
    MAX_SOURCE_FILE_SIZE,
)
from .core.exceptions import InvalidConfigError


class AnalyzerConfig(BaseModel):
    """Per-analyzer settings. Defaults come from ``vulnreach.constants``."""

    strict_parsing: bool = Field(
        default=False,
        description="Reject tree-sitter parses that contain error nodes",
    )
    max_file_size: int = Field(
        default=MAX_SOURCE_FILE_SIZE,
        description="Source files larger than this many bytes are skipped",
    )
    max_concurrency: int = Field(
        default=DEFAULT_MAX_CONCURRENCY,
        description="Concurrent advisory lookups in scan_async",
    )
    filter_by_ecosystem: bool = Field(
        default=True,
        description="Only match a dependency against files of its own ecosystem",
    )
    request_timeout: float = Field(default=DEFAULT_REQUEST_TIMEOUT)
    max_retries: int = Field(default=DEFAULT_MAX_RETRIES)
    retry_backoff: float = Field(default=DEFAULT_RETRY_BACKOFF)

    @field_validator("max_file_size", "max_concurrency")
    @classmethod
    def _positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("must be positive")
        return value

    @field_validator("max_retries")
    @classmethod
    def _non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("must not be negative")
        return value

    @classmethod
    def from_overrides(cls, **overrides: Any) -> "AnalyzerConfig":
        """Build a config from keyword overrides, raising InvalidConfigError on bad values."""
        try:
            return cls(**overrides)
        except ValidationError as e:
            raise InvalidConfigError(f"Invalid analyzer configuration: {e}") from e
