"""Reachability analysis: which call sites can reach a vulnerable symbol."""

from .analyzer import ReachabilityAnalyzer, format_advisory_summary
from .matcher import find_vulnerable_calls, partition_bindings
from .models import (
    AdvisoryDetail,
    BindingKind,
    CandidatePaths,
    Dependency,
    DependencyReport,
    ExtractedFile,
    FileAnalysis,
    FileFindings,
    ImportBinding,
    ManualReviewReference,
    MatchConfidence,
    MatchMode,
    MatchResult,
    ScanReport,
    SkippedItem,
    SymbolSet,
    SymbolSource,
    VulnerableCall,
)
from .normalizer import binding_targets_package, dependency_name, normalize_imports
from .paths import (
    VersionLookup,
    hierarchical_paths,
    is_unknown_version,
    query_version,
    resolve_declared_version,
)
from .symbols import build_symbol_set, extract_mentioned_symbols, extract_possible_symbols

__all__ = [
    "AdvisoryDetail",
    "BindingKind",
    "CandidatePaths",
    "Dependency",
    "DependencyReport",
    "ExtractedFile",
    "FileAnalysis",
    "FileFindings",
    "ImportBinding",
    "ManualReviewReference",
    "MatchConfidence",
    "MatchMode",
    "MatchResult",
    "ReachabilityAnalyzer",
    "ScanReport",
    "SkippedItem",
    "SymbolSet",
    "SymbolSource",
    "VersionLookup",
    "VulnerableCall",
    "binding_targets_package",
    "build_symbol_set",
    "dependency_name",
    "extract_mentioned_symbols",
    "extract_possible_symbols",
    "find_vulnerable_calls",
    "format_advisory_summary",
    "hierarchical_paths",
    "is_unknown_version",
    "normalize_imports",
    "partition_bindings",
    "query_version",
    "resolve_declared_version",
]
