"""Pydantic models for reachability analysis.

Bindings, candidate paths and symbol sets are the inputs to the matcher;
``VulnerableCall``, ``ManualReviewReference`` and the report models are its
outputs, aggregated per file, per dependency and per scan.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class BindingKind(str, Enum):
    """How an import makes a package reachable from call sites.

    ``OBJECT`` bindings are called as ``alias.member()``, ``SYMBOL`` bindings
    as ``name()``. ``TAINT`` bindings merge every exported name into local
    scope. ``DROPPED`` bindings introduce no callable name.
    """

    OBJECT = "object"
    SYMBOL = "symbol"
    TAINT = "taint"
    DROPPED = "dropped"


class SymbolSource(str, Enum):
    STRUCTURED = "structured"
    TEXT = "text"


class MatchMode(str, Enum):
    """Which matcher pass produced a result.

    ``SYMBOL``: calls matched the advisory's symbols directly.
    ``FALLBACK``: symbols were known but none matched; calls that merely
    reach the package are reported instead.
    ``PACKAGE``: the advisory names no symbols; every call reaching the
    package is reported.
    """

    SYMBOL = "symbol"
    FALLBACK = "fallback"
    PACKAGE = "package"


class MatchConfidence(str, Enum):
    DIRECT = "direct"
    PACKAGE_WIDE = "package_wide"


class ImportBinding(BaseModel):
    """One import, normalized for matching.

    Attributes:
        package_name: Module specifier as written in the import.
        local_aliases: Identifiers the import makes usable at call sites.
        binding_kind: Object-like, symbol-like, taint marker, or dropped.
        file_path: File the import appears in.
        language: Language tag of that file.
        imported_name: Exported name for symbol-like bindings, before rename.
    """

    package_name: str
    local_aliases: list[str] = Field(default_factory=list)
    binding_kind: BindingKind
    file_path: str | None = None
    language: str = ""
    imported_name: str | None = None


class CandidatePaths(BaseModel):
    """Module paths to try for a package, most specific first."""

    ecosystem: str
    paths: list[str] = Field(default_factory=list)


class SymbolSet(BaseModel):
    """Case-folded symbols implicated by one advisory, with provenance.

    A symbol named both in structured data and in prose keeps both sources.
    """

    sources: dict[str, list[SymbolSource]] = Field(default_factory=dict)

    @property
    def symbols(self) -> set[str]:
        return set(self.sources)

    def add(self, symbol: str, source: SymbolSource) -> None:
        key = symbol.lower()
        if not key:
            return
        existing = self.sources.setdefault(key, [])
        if source not in existing:
            existing.append(source)

    def discard(self, symbol: str) -> None:
        self.sources.pop(symbol.lower(), None)

    def is_empty(self) -> bool:
        return not self.sources

    def structured(self) -> set[str]:
        return {s for s, src in self.sources.items() if SymbolSource.STRUCTURED in src}

    def mined(self) -> set[str]:
        return {s for s, src in self.sources.items() if SymbolSource.TEXT in src}

    def __contains__(self, symbol: object) -> bool:
        return isinstance(symbol, str) and symbol.lower() in self.sources

    def __len__(self) -> int:
        return len(self.sources)

    @classmethod
    def of(cls, *symbols: str, source: SymbolSource = SymbolSource.TEXT) -> SymbolSet:
        """Build a set from plain names."""
        result = cls()
        for symbol in symbols:
            result.add(symbol, source)
        return result


class MatchResult(BaseModel):
    calls: list[str] = Field(default_factory=list)
    mode: MatchMode = MatchMode.SYMBOL

    @property
    def confidence(self) -> MatchConfidence:
        if self.mode == MatchMode.SYMBOL:
            return MatchConfidence.DIRECT
        return MatchConfidence.PACKAGE_WIDE


class VulnerableCall(BaseModel):
    """A call site that can plausibly reach an advisory's vulnerable code."""

    call: str
    advisory_id: str
    confidence: MatchConfidence
    module_path: str = ""


class ManualReviewReference(BaseModel):
    """An advisory whose package is used but whose symbols are unknown."""

    advisory_id: str
    summary: str = ""
    module_path: str = ""


class Dependency(BaseModel):
    """An external package imported by the scanned sources.

    Attributes:
        name: Package name in its ecosystem's spelling.
        ecosystem: ``npm``, ``PyPI`` or ``Go``.
        version: Declared version from the manifest, if any.
        files: Files that import the package.
        in_manifest: Whether the version lookup knew the package.
    """

    name: str
    ecosystem: str
    version: str | None = None
    files: list[str] = Field(default_factory=list)
    in_manifest: bool = False


class ExtractedFile(BaseModel):
    """Normalized imports and calls of one file."""

    file_path: str
    language: str
    ecosystem: str
    bindings: list[ImportBinding] = Field(default_factory=list)
    calls: list[str] = Field(default_factory=list)


class FileAnalysis(BaseModel):
    file_path: str
    package: str
    result: MatchResult


class FileFindings(BaseModel):
    """Findings for one dependency in one file."""

    file_path: str
    vulnerable_calls: list[VulnerableCall] = Field(default_factory=list)
    manual_review: list[ManualReviewReference] = Field(default_factory=list)


class AdvisoryDetail(BaseModel):
    """One advisory found for a dependency.

    ``summary`` is prefixed with ``[HIERARCHICAL: name->path]`` when the
    advisory was filed under a parent path, and ``[UNKNOWN VERSION]`` when
    it was queried without a version.
    """

    id: str
    summary: str = ""
    module_path: str
    symbols: list[str] = Field(default_factory=list)
    structured_symbols: list[str] = Field(default_factory=list)
    reachable: bool = False


class DependencyReport(BaseModel):
    """Per-dependency outcome of a scan.

    Attributes:
        dependency: The dependency analyzed.
        advisories: Every advisory found for any candidate path.
        findings: Per-file vulnerable calls and manual-review references.
        unknown_version: True when advisories were queried without a version.
    """

    dependency: Dependency
    advisories: list[AdvisoryDetail] = Field(default_factory=list)
    findings: list[FileFindings] = Field(default_factory=list)
    unknown_version: bool = False

    @property
    def advisory_ids(self) -> list[str]:
        return [a.id for a in self.advisories]

    @property
    def vulnerable_calls(self) -> list[VulnerableCall]:
        return [call for f in self.findings for call in f.vulnerable_calls]

    @property
    def is_reachable(self) -> bool:
        return any(f.vulnerable_calls for f in self.findings)


class SkippedItem(BaseModel):
    name: str
    reason: str


class ScanReport(BaseModel):
    """Outcome of a batch scan."""

    files_scanned: int = 0
    dependencies: list[DependencyReport] = Field(default_factory=list)
    skipped_files: list[SkippedItem] = Field(default_factory=list)
    skipped_dependencies: list[SkippedItem] = Field(default_factory=list)

    @property
    def reachable(self) -> list[DependencyReport]:
        return [d for d in self.dependencies if d.is_reachable]
