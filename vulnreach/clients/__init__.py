"""Advisory database clients."""

from .osv_client import AdvisorySource, AffectedImport, OSVClient, Vulnerability

__all__ = [
    "AdvisorySource",
    "AffectedImport",
    "OSVClient",
    "Vulnerability",
]
