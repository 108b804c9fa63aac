"""vulnreach: decide whether vulnerable dependency code is reachable from your sources."""

from .clients import OSVClient, Vulnerability
from .config import AnalyzerConfig
from .reachability import (
    Dependency,
    ReachabilityAnalyzer,
    ScanReport,
    find_vulnerable_calls,
    hierarchical_paths,
)

__version__ = "0.1.0"

__all__ = [
    "AnalyzerConfig",
    "Dependency",
    "OSVClient",
    "ReachabilityAnalyzer",
    "ScanReport",
    "Vulnerability",
    "find_vulnerable_calls",
    "hierarchical_paths",
]
