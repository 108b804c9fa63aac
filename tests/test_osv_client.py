from datetime import datetime
from unittest.mock import patch

import httpx
import pytest

from vulnreach.clients.osv_client import AffectedImport, OSVClient, Vulnerability
from vulnreach.core.cache import AdvisoryCache
from vulnreach.core.exceptions import (
    AdvisoryQueryError,
    APIError,
    NetworkError,
    RateLimitError,
    TimeoutError,
)
from vulnreach.core.rate_limiter import RateLimiter

QUERY_URL = "https://api.osv.dev/v1/query"


def _response(status_code, json_data=None, headers=None, text=None):
    request = httpx.Request("POST", QUERY_URL)
    if json_data is not None:
        return httpx.Response(status_code, json=json_data, headers=headers, request=request)
    return httpx.Response(status_code, text=text or "", headers=headers, request=request)


VULNS_PAYLOAD = {
    "vulns": [
        {
            "id": "GO-2022-1059",
            "summary": "Denial of service via crafted Accept-Language header",
            "details": "The BCP 47 tag parser has quadratic time complexity.",
            "aliases": ["CVE-2022-32149"],
            "modified": "2023-06-12T18:45:41Z",
            "affected": [
                {
                    "package": {"name": "golang.org/x/text", "ecosystem": "Go"},
                    "ecosystem_specific": {
                        "imports": [
                            {
                                "path": "golang.org/x/text/language",
                                "symbols": ["MatchStrings", "ParseAcceptLanguage"],
                            }
                        ]
                    },
                }
            ],
        }
    ]
}


class TestVulnerability:
    def test_vulnerability_model(self):
        vuln = Vulnerability(**VULNS_PAYLOAD["vulns"][0])
        assert vuln.id == "GO-2022-1059"
        assert vuln.aliases == ["CVE-2022-32149"]
        assert isinstance(vuln.modified, datetime)

    def test_affected_imports(self):
        vuln = Vulnerability(**VULNS_PAYLOAD["vulns"][0])
        assert vuln.affected_imports == [
            AffectedImport(symbols=["MatchStrings", "ParseAcceptLanguage"])
        ]
        assert vuln.structured_symbols == ["MatchStrings", "ParseAcceptLanguage"]

    def test_structured_symbols_missing(self):
        vuln = Vulnerability(id="GHSA-1", affected=[{"package": {"name": "x"}}])
        assert vuln.affected_imports == []
        assert vuln.structured_symbols == []


class TestOSVClient:
    @pytest.fixture
    def client(self):
        client = OSVClient(
            timeout=10,
            max_retries=2,
            backoff=0.01,
            cache=AdvisoryCache(maxsize=10, ttl_seconds=60),
            rate_limiter=RateLimiter(calls=1000, period=60),
        )
        yield client
        client.close()

    def test_init(self):
        with OSVClient(timeout=30) as client:
            assert client.client.timeout.connect == 30
            assert client.BASE_URL == "https://api.osv.dev/v1"
            assert not client.client.is_closed

    def test_query_package(self, client):
        with patch.object(
            client.client, "post", return_value=_response(200, VULNS_PAYLOAD)
        ) as mock_post:
            vulns = client.query_package("golang.org/x/text", None, "Go")

        assert [v.id for v in vulns] == ["GO-2022-1059"]
        mock_post.assert_called_once_with(
            QUERY_URL,
            json={"package": {"name": "golang.org/x/text", "ecosystem": "Go"}},
        )

    def test_query_package_with_version(self, client):
        with patch.object(
            client.client, "post", return_value=_response(200, {})
        ) as mock_post:
            assert client.query_package("lodash", "4.17.20", "npm") == []

        mock_post.assert_called_once_with(
            QUERY_URL,
            json={
                "package": {"name": "lodash", "ecosystem": "npm"},
                "version": "4.17.20",
            },
        )

    def test_cache_hit_avoids_second_request(self, client):
        with patch.object(
            client.client, "post", return_value=_response(200, VULNS_PAYLOAD)
        ) as mock_post:
            first = client.query_package("golang.org/x/text", None, "Go")
            second = client.query_package("golang.org/x/text", None, "Go")

        assert mock_post.call_count == 1
        assert [v.id for v in first] == [v.id for v in second]

    @patch("vulnreach.clients.osv_client.time.sleep")
    def test_retries_server_errors_then_succeeds(self, mock_sleep, client):
        responses = [_response(503, text="unavailable"), _response(200, VULNS_PAYLOAD)]
        with patch.object(client.client, "post", side_effect=responses) as mock_post:
            vulns = client.query_package("golang.org/x/text", None, "Go")

        assert len(vulns) == 1
        assert mock_post.call_count == 2
        mock_sleep.assert_called_once()

    @patch("vulnreach.clients.osv_client.time.sleep")
    def test_retry_exhaustion_raises(self, mock_sleep, client):
        with patch.object(
            client.client, "post", side_effect=httpx.ConnectError("refused")
        ) as mock_post:
            with pytest.raises(NetworkError) as exc_info:
                client.query_package("requests", "2.0.0", "PyPI")

        assert mock_post.call_count == 3
        assert mock_sleep.call_count == 2
        assert isinstance(exc_info.value, AdvisoryQueryError)
        assert exc_info.value.package == "requests"

    @patch("vulnreach.clients.osv_client.time.sleep")
    def test_timeout_is_retried(self, mock_sleep, client):
        with patch.object(
            client.client, "post", side_effect=httpx.ReadTimeout("slow")
        ) as mock_post:
            with pytest.raises(TimeoutError):
                client.query_package("requests", None, "PyPI")

        assert mock_post.call_count == 3

    @patch("vulnreach.clients.osv_client.time.sleep")
    def test_client_error_is_not_retried(self, mock_sleep, client):
        with patch.object(
            client.client, "post", return_value=_response(400, text="bad request")
        ) as mock_post:
            with pytest.raises(APIError) as exc_info:
                client.query_package("requests", None, "PyPI")

        assert mock_post.call_count == 1
        mock_sleep.assert_not_called()
        assert exc_info.value.status_code == 400
        assert exc_info.value.response_body == "bad request"

    @patch("vulnreach.clients.osv_client.time.sleep")
    def test_rate_limit_honours_retry_after(self, mock_sleep, client):
        responses = [
            _response(429, text="slow down", headers={"Retry-After": "2"}),
            _response(200, {}),
        ]
        with patch.object(client.client, "post", side_effect=responses):
            assert client.query_package("requests", None, "PyPI") == []

        mock_sleep.assert_called_once_with(2.0)

    @patch("vulnreach.clients.osv_client.time.sleep")
    def test_rate_limit_exhaustion(self, mock_sleep, client):
        with patch.object(
            client.client, "post", return_value=_response(429, text="slow down")
        ):
            with pytest.raises(RateLimitError) as exc_info:
                client.query_package("requests", None, "PyPI")

        assert exc_info.value.status_code == 429

    def test_failures_are_not_cached(self, client):
        with patch.object(
            client.client, "post", return_value=_response(404, text="nope")
        ):
            with pytest.raises(APIError):
                client.query_package("requests", None, "PyPI")
        assert len(client.cache) == 0

    def test_undecodable_response(self, client):
        with patch.object(
            client.client, "post", return_value=_response(200, text="not json")
        ):
            with pytest.raises(APIError):
                client.query_package("requests", None, "PyPI")

    def test_get_vulnerability_by_id(self, client):
        vuln_data = VULNS_PAYLOAD["vulns"][0]
        response = httpx.Response(
            200, json=vuln_data, request=httpx.Request("GET", "https://api.osv.dev/v1/vulns/x")
        )
        with patch.object(client.client, "get", return_value=response) as mock_get:
            vuln = client.get_vulnerability_by_id("GO-2022-1059")

        assert vuln is not None
        assert vuln.id == "GO-2022-1059"
        mock_get.assert_called_once_with("https://api.osv.dev/v1/vulns/GO-2022-1059")

    def test_get_vulnerability_by_id_not_found(self, client):
        response = httpx.Response(
            404, text="", request=httpx.Request("GET", "https://api.osv.dev/v1/vulns/x")
        )
        with patch.object(client.client, "get", return_value=response):
            assert client.get_vulnerability_by_id("GHSA-none") is None


@pytest.mark.asyncio
class TestAsyncQuery:
    @pytest.fixture
    def client(self):
        client = OSVClient(
            timeout=10,
            max_retries=1,
            backoff=0.01,
            cache=AdvisoryCache(maxsize=10, ttl_seconds=60),
            rate_limiter=RateLimiter(calls=1000, period=60),
        )
        yield client
        client.close()

    @patch("httpx.AsyncClient.post")
    async def test_query_package_async(self, mock_post, client):
        mock_post.return_value = _response(200, VULNS_PAYLOAD)

        vulns = await client.query_package_async("golang.org/x/text", None, "Go")

        assert [v.id for v in vulns] == ["GO-2022-1059"]
        mock_post.assert_called_once()

    @patch("vulnreach.clients.osv_client.asyncio.sleep")
    @patch("httpx.AsyncClient.post")
    async def test_query_package_async_retry_exhaustion(self, mock_post, mock_sleep, client):
        mock_post.return_value = _response(500, text="boom")

        with pytest.raises(APIError):
            await client.query_package_async("lodash", None, "npm")

        assert mock_post.call_count == 2
        mock_sleep.assert_called_once()

    @patch("httpx.AsyncClient.post")
    async def test_async_uses_shared_cache(self, mock_post, client):
        mock_post.return_value = _response(200, VULNS_PAYLOAD)

        await client.query_package_async("golang.org/x/text", None, "Go")
        with patch.object(client.client, "post") as sync_post:
            vulns = client.query_package("golang.org/x/text", None, "Go")

        sync_post.assert_not_called()
        assert len(vulns) == 1
