from pathlib import Path

import pytest

from vulnreach.clients.osv_client import Vulnerability
from vulnreach.core.exceptions import APIError


class FakeAdvisorySource:
    """In-memory advisory source keyed by (module path, ecosystem)."""

    def __init__(self, advisories=None, failing=None):
        self.advisories = advisories or {}
        self.failing = set(failing or ())
        self.queries = []

    def _lookup(self, package_name, version, ecosystem):
        self.queries.append((package_name, version, ecosystem))
        if package_name in self.failing:
            raise APIError(
                f"OSV API error for {package_name}: HTTP 400",
                package=package_name,
                status_code=400,
            )
        return list(self.advisories.get((package_name, ecosystem), []))

    def query_package(self, package_name, version=None, ecosystem="PyPI"):
        return self._lookup(package_name, version, ecosystem)

    async def query_package_async(self, package_name, version=None, ecosystem="PyPI"):
        return self._lookup(package_name, version, ecosystem)


def make_vuln(vuln_id, summary="", details="", symbols=None, path=""):
    affected = []
    if symbols is not None:
        affected.append(
            {
                "package": {"name": path, "ecosystem": "Go"},
                "ecosystem_specific": {"imports": [{"path": path, "symbols": symbols}]},
            }
        )
    return Vulnerability(id=vuln_id, summary=summary, details=details, affected=affected)


@pytest.fixture
def write_source(tmp_path: Path):
    """Write a source file under tmp_path and return its path as a string."""

    def _write(name: str, content: str) -> str:
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return str(path)

    return _write
