import asyncio
import logging
import time
from datetime import datetime
from typing import Any, Protocol

import httpx
from pydantic import BaseModel, Field

from ..constants import (
    DEFAULT_MAX_RETRIES,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_RETRY_BACKOFF,
    MAX_RETRY_BACKOFF,
    OSV_API_URL,
    RETRYABLE_STATUS_CODES,
)
from ..core.cache import AdvisoryCache
from ..core.exceptions import (
    AdvisoryQueryError,
    APIError,
    NetworkError,
    RateLimitError,
    TimeoutError,
)
from ..core.rate_limiter import RateLimiter, get_osv_rate_limiter

logger = logging.getLogger(__name__)


class AffectedImport(BaseModel):
    """The vulnerable symbols of one ``ecosystem_specific.imports`` entry."""

    symbols: list[str] = Field(default_factory=list)


class Vulnerability(BaseModel):
    id: str
    summary: str | None = None
    details: str | None = None
    aliases: list[str] = Field(default_factory=list)
    modified: datetime | None = None
    published: datetime | None = None
    database_specific: dict[str, Any] = Field(default_factory=dict)
    affected: list[dict[str, Any]] = Field(default_factory=list)
    severity: list[dict[str, Any]] = Field(default_factory=list)
    references: list[dict[str, Any]] = Field(default_factory=list)

    @property
    def affected_imports(self) -> list[AffectedImport]:
        """Structured symbol entries across all affected packages."""
        imports = []
        for affected in self.affected:
            if not isinstance(affected, dict):
                continue
            ecosystem_specific = affected.get("ecosystem_specific") or {}
            if not isinstance(ecosystem_specific, dict):
                continue
            for entry in ecosystem_specific.get("imports") or []:
                if isinstance(entry, dict):
                    imports.append(AffectedImport(**entry))
        return imports

    @property
    def structured_symbols(self) -> list[str]:
        """All symbols named by structured advisory data, in document order."""
        symbols: list[str] = []
        for entry in self.affected_imports:
            for symbol in entry.symbols:
                if symbol and symbol not in symbols:
                    symbols.append(symbol)
        return symbols


class AdvisorySource(Protocol):
    """Anything that can answer advisory queries the way OSV does."""

    def query_package(
        self, package_name: str, version: str | None = None, ecosystem: str = "PyPI"
    ) -> list[Vulnerability]: ...

    async def query_package_async(
        self, package_name: str, version: str | None = None, ecosystem: str = "PyPI"
    ) -> list[Vulnerability]: ...


class OSVClient:
    """Client for the OSV ``/query`` endpoint.

    Every request has a timeout; transient failures (timeouts, transport
    errors, 429 and 5xx answers) are retried a bounded number of times with
    exponential backoff. Anything else, or exhausting the retries, raises
    ``AdvisoryQueryError``.
    """

    BASE_URL = OSV_API_URL

    def __init__(
        self,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        max_retries: int = DEFAULT_MAX_RETRIES,
        backoff: float = DEFAULT_RETRY_BACKOFF,
        cache: AdvisoryCache | None = None,
        rate_limiter: RateLimiter | None = None,
    ) -> None:
        self.timeout = timeout
        self.max_retries = max_retries
        self.backoff = backoff
        self.client = httpx.Client(timeout=timeout)
        self.cache = cache if cache is not None else AdvisoryCache()
        self.rate_limiter = rate_limiter or get_osv_rate_limiter()

    def __enter__(self) -> "OSVClient":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    def close(self) -> None:
        self.client.close()

    @staticmethod
    def _build_payload(
        package_name: str, version: str | None, ecosystem: str
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "package": {"name": package_name, "ecosystem": ecosystem}
        }
        if version:
            payload["version"] = version
        return payload

    @staticmethod
    def _parse_vulns(data: dict[str, Any]) -> list[Vulnerability]:
        return [Vulnerability(**vuln_data) for vuln_data in data.get("vulns", [])]

    def _retry_delay(self, attempt: int, retry_after: float | None = None) -> float:
        if retry_after is not None:
            return min(retry_after, MAX_RETRY_BACKOFF)
        return min(self.backoff * (2**attempt), MAX_RETRY_BACKOFF)

    def _classify_response(
        self, response: httpx.Response, package_name: str
    ) -> AdvisoryQueryError | None:
        """Return the error for a non-success response, or None on success."""
        if response.is_success:
            return None

        status = response.status_code
        if status == 429:
            retry_after: float | None = None
            header = response.headers.get("Retry-After")
            if header:
                try:
                    retry_after = float(header)
                except ValueError:
                    retry_after = None
            return RateLimitError(
                f"OSV rate limit exceeded for {package_name}",
                package=package_name,
                retry_after=retry_after,
            )

        return APIError(
            f"OSV API error for {package_name}: HTTP {status}",
            package=package_name,
            status_code=status,
            response_body=response.text[:500],
        )

    @staticmethod
    def _transport_error(exc: httpx.HTTPError, package_name: str) -> AdvisoryQueryError:
        if isinstance(exc, httpx.TimeoutException):
            return TimeoutError(
                f"OSV request timed out for {package_name}: {exc}", package=package_name
            )
        return NetworkError(
            f"OSV request failed for {package_name}: {exc}", package=package_name
        )

    @staticmethod
    def _is_retryable(error: AdvisoryQueryError) -> bool:
        if isinstance(error, (TimeoutError, NetworkError)):
            return True
        return error.status_code in RETRYABLE_STATUS_CODES

    def _decode(self, response: httpx.Response, package_name: str) -> list[Vulnerability]:
        try:
            return self._parse_vulns(response.json())
        except ValueError as e:
            raise APIError(
                f"OSV returned an undecodable response for {package_name}: {e}",
                package=package_name,
                status_code=response.status_code,
            ) from e

    def query_package(
        self, package_name: str, version: str | None = None, ecosystem: str = "PyPI"
    ) -> list[Vulnerability]:
        cached = self.cache.get(package_name, version, ecosystem)
        if cached is not None:
            return cached

        payload = self._build_payload(package_name, version, ecosystem)
        last_error: AdvisoryQueryError | None = None

        for attempt in range(self.max_retries + 1):
            self.rate_limiter.acquire()
            try:
                response = self.client.post(f"{self.BASE_URL}/query", json=payload)
            except httpx.HTTPError as e:
                last_error = self._transport_error(e, package_name)
            else:
                last_error = self._classify_response(response, package_name)
                if last_error is None:
                    vulns = self._decode(response, package_name)
                    self.cache.put(package_name, version, ecosystem, vulns)
                    return list(vulns)

            if not self._is_retryable(last_error) or attempt == self.max_retries:
                break

            delay = self._retry_delay(
                attempt, getattr(last_error, "retry_after", None)
            )
            logger.debug(
                f"OSV query for {package_name} failed ({last_error}); "
                f"retrying in {delay:.2f}s (attempt {attempt + 1}/{self.max_retries})"
            )
            time.sleep(delay)

        assert last_error is not None
        raise last_error

    async def query_package_async(
        self, package_name: str, version: str | None = None, ecosystem: str = "PyPI"
    ) -> list[Vulnerability]:
        cached = self.cache.get(package_name, version, ecosystem)
        if cached is not None:
            return cached

        payload = self._build_payload(package_name, version, ecosystem)
        last_error: AdvisoryQueryError | None = None

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            for attempt in range(self.max_retries + 1):
                await self.rate_limiter.acquire_async()
                try:
                    response = await client.post(f"{self.BASE_URL}/query", json=payload)
                except httpx.HTTPError as e:
                    last_error = self._transport_error(e, package_name)
                else:
                    last_error = self._classify_response(response, package_name)
                    if last_error is None:
                        vulns = self._decode(response, package_name)
                        self.cache.put(package_name, version, ecosystem, vulns)
                        return list(vulns)

                if not self._is_retryable(last_error) or attempt == self.max_retries:
                    break

                delay = self._retry_delay(
                    attempt, getattr(last_error, "retry_after", None)
                )
                logger.debug(
                    f"OSV query for {package_name} failed ({last_error}); "
                    f"retrying in {delay:.2f}s (attempt {attempt + 1}/{self.max_retries})"
                )
                await asyncio.sleep(delay)

        assert last_error is not None
        raise last_error

    def get_vulnerability_by_id(self, vuln_id: str) -> Vulnerability | None:
        try:
            response = self.client.get(f"{self.BASE_URL}/vulns/{vuln_id}")
        except httpx.HTTPError as e:
            raise self._transport_error(e, vuln_id) from e
        if response.status_code == 404:
            return None
        error = self._classify_response(response, vuln_id)
        if error is not None:
            raise error

        return Vulnerability(**response.json())
