"""Custom exception hierarchy for vulnreach.

Every failure the analyzer knows how to recover from has its own type so
that the batch driver can skip exactly the unit of work that failed (one
file, or one dependency) and keep going.
"""


class VulnReachError(Exception):
    """Base exception for all vulnreach errors.

    All custom exceptions inherit from this class so callers can catch
    every vulnreach-specific error with a single except clause.
    """
    pass


# =============================================================================
# Scanner Errors (per file, never fatal to a batch)
# =============================================================================

class ScannerError(VulnReachError):
    """Base exception for source-scanning errors."""

    def __init__(self, message: str, file_path: str | None = None):
        super().__init__(message)
        self.file_path = file_path


class UnsupportedLanguageError(ScannerError):
    """File extension does not map to a supported language."""
    pass


class SourceReadError(ScannerError):
    """File could not be read (missing, unreadable, undecodable or too large)."""
    pass


class SourceParseError(ScannerError):
    """The grammar rejected the file content."""
    pass


# =============================================================================
# Client Errors (advisory source)
# =============================================================================

class ClientError(VulnReachError):
    """Base exception for advisory-source errors."""
    pass


class AdvisoryQueryError(ClientError):
    """The advisory source was unreachable or answered with a non-success status."""

    def __init__(
        self,
        message: str,
        package: str | None = None,
        status_code: int | None = None,
    ):
        super().__init__(message)
        self.package = package
        self.status_code = status_code


class NetworkError(AdvisoryQueryError):
    """Network connectivity or transport error."""
    pass


class TimeoutError(AdvisoryQueryError):
    """Advisory request timed out."""
    pass


class APIError(AdvisoryQueryError):
    """Advisory API returned a non-success status."""

    def __init__(
        self,
        message: str,
        package: str | None = None,
        status_code: int | None = None,
        response_body: str | None = None,
    ):
        super().__init__(message, package=package, status_code=status_code)
        self.response_body = response_body


class RateLimitError(APIError):
    """Advisory API rate limit exceeded."""

    def __init__(
        self,
        message: str,
        package: str | None = None,
        retry_after: float | None = None,
    ):
        super().__init__(message, package=package, status_code=429)
        self.retry_after = retry_after


# =============================================================================
# Configuration Errors
# =============================================================================

class ConfigurationError(VulnReachError):
    """Base exception for configuration errors."""
    pass


class InvalidConfigError(ConfigurationError):
    """Configuration value is invalid."""
    pass


# =============================================================================
# Convenience Aliases
# =============================================================================

UnsupportedLanguage = UnsupportedLanguageError
ReadError = SourceReadError
ParseError = SourceParseError
