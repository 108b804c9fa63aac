"""Reachability analysis across files, dependencies and advisories.

``ReachabilityAnalyzer`` discovers the external packages a set of source
files imports, fetches the advisories for each package (under every
candidate module path), and reports the call sites that can reach the
vulnerable code.

Failures are contained to the unit of work that failed: a file that cannot
be read or parsed is skipped, and a package whose advisory lookup fails is
skipped, while the rest of the scan continues.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from ..clients.osv_client import AdvisorySource, OSVClient, Vulnerability
from ..config import AnalyzerConfig
from ..constants import ECOSYSTEM_GO, LANGUAGE_ECOSYSTEMS
from ..core.exceptions import AdvisoryQueryError, ScannerError
from ..logging_config import get_scan_logger
from ..parsers.base import SourceParser
from ..parsers.factory import create_parser, detect_language
from .matcher import find_vulnerable_calls
from .models import (
    AdvisoryDetail,
    Dependency,
    DependencyReport,
    ExtractedFile,
    FileAnalysis,
    FileFindings,
    ManualReviewReference,
    MatchMode,
    ScanReport,
    SkippedItem,
    SymbolSet,
    VulnerableCall,
)
from .normalizer import dependency_name, is_go_stdlib, normalize_imports
from .paths import (
    VersionLookup,
    hierarchical_paths,
    is_unknown_version,
    query_version,
    resolve_declared_version,
)
from .symbols import build_symbol_set

logger = logging.getLogger(__name__)
scan_logger = get_scan_logger()

# (module path the advisory was found under, advisory)
FoundAdvisory = tuple[str, Vulnerability]


def format_advisory_summary(
    summary: str, dependency: Dependency, module_path: str, unknown_version: bool
) -> str:
    """Prefix an advisory summary with how it was found."""
    result = summary
    if module_path != dependency.name:
        result = f"[HIERARCHICAL: {dependency.name}->{module_path}] {result}"
    if unknown_version:
        result = f"[UNKNOWN VERSION] {result}"
    return result


class ReachabilityAnalyzer:
    """Match source call sites against vulnerability advisories.

    Args:
        advisory_source: Where advisories come from. Defaults to an
            ``OSVClient`` configured from *config*.
        config: Analyzer settings; defaults to ``AnalyzerConfig()``.
    """

    def __init__(
        self,
        advisory_source: AdvisorySource | None = None,
        config: AnalyzerConfig | None = None,
    ) -> None:
        self.config = config or AnalyzerConfig()
        self._owned_client: OSVClient | None = None
        if advisory_source is None:
            advisory_source = OSVClient(
                timeout=self.config.request_timeout,
                max_retries=self.config.max_retries,
                backoff=self.config.retry_backoff,
            )
            self._owned_client = advisory_source
        self.advisory_source = advisory_source
        self._parsers: dict[str, SourceParser] = {}

    def __enter__(self) -> ReachabilityAnalyzer:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    def close(self) -> None:
        """Release the HTTP client if this analyzer created it; passed-in sources are left open."""
        if self._owned_client is not None:
            self._owned_client.close()
            self._owned_client = None

    def _parser_for(self, language: str) -> SourceParser:
        parser = self._parsers.get(language)
        if parser is None:
            parser = create_parser(language, strict=self.config.strict_parsing)
            self._parsers[language] = parser
        return parser

    # ------------------------------------------------------------------
    # Per file
    # ------------------------------------------------------------------

    def extract_file(self, file_path: str | Path) -> ExtractedFile:
        """Parse one file into normalized bindings and call texts.

        Raises:
            UnsupportedLanguageError: Unknown file extension.
            SourceReadError: The file could not be read.
            SourceParseError: The grammar rejected the file.
        """
        path = str(file_path)
        language = detect_language(path)
        parser = self._parser_for(language)
        extraction = parser.extract_file(path, max_size=self.config.max_file_size)

        return ExtractedFile(
            file_path=path,
            language=language,
            ecosystem=LANGUAGE_ECOSYSTEMS[language],
            bindings=normalize_imports(extraction.imports, path, language),
            calls=extraction.calls,
        )

    def analyze_file(
        self,
        file_path: str | Path,
        target: str,
        symbols: SymbolSet | Iterable[str] | None,
        ecosystem: str | None = None,
    ) -> FileAnalysis:
        """Find the calls in one file that can reach *target*'s *symbols*."""
        extracted = self.extract_file(file_path)
        return self._match(extracted, target, symbols, ecosystem)

    @staticmethod
    def _match(
        extracted: ExtractedFile,
        target: str,
        symbols: SymbolSet | Iterable[str] | None,
        ecosystem: str | None = None,
    ) -> FileAnalysis:
        result = find_vulnerable_calls(
            extracted.bindings,
            extracted.calls,
            target,
            symbols,
            ecosystem or extracted.ecosystem,
        )
        return FileAnalysis(file_path=extracted.file_path, package=target, result=result)

    def _extract_all(
        self, files: Iterable[str | Path]
    ) -> tuple[list[ExtractedFile], list[SkippedItem]]:
        extracted: list[ExtractedFile] = []
        skipped: list[SkippedItem] = []
        seen: set[str] = set()

        for file_path in files:
            path = str(file_path)
            if path in seen:
                continue
            seen.add(path)
            try:
                extracted.append(self.extract_file(path))
            except ScannerError as e:
                skipped.append(SkippedItem(name=path, reason=str(e)))
                scan_logger.debug(
                    "FILE_SKIPPED",
                    extra={
                        "event": "file_skipped",
                        "file": path,
                        "reason": type(e).__name__,
                        "error": str(e),
                    },
                )
        return extracted, skipped

    # ------------------------------------------------------------------
    # Dependencies
    # ------------------------------------------------------------------

    def discover_dependencies(
        self,
        files: Iterable[str | Path],
        version_lookup: VersionLookup | None = None,
    ) -> list[Dependency]:
        """Collect the external packages the given files import.

        Files that cannot be extracted are skipped. Declared versions come
        from *version_lookup*, tried against each candidate module path.
        """
        extracted, _ = self._extract_all(files)
        return self._discover(extracted, version_lookup)

    def _discover(
        self,
        extracted: list[ExtractedFile],
        version_lookup: VersionLookup | None,
    ) -> list[Dependency]:
        dependencies: dict[tuple[str, str], Dependency] = {}

        for ef in extracted:
            for binding in ef.bindings:
                name = dependency_name(binding.package_name, ef.ecosystem)
                if name is None:
                    continue

                key = (ef.ecosystem, name)
                dep = dependencies.get(key)
                if dep is None:
                    version = resolve_declared_version(name, ef.ecosystem, version_lookup)
                    dep = Dependency(
                        name=name,
                        ecosystem=ef.ecosystem,
                        version=version,
                        in_manifest=version is not None,
                    )
                    dependencies[key] = dep
                if ef.file_path not in dep.files:
                    dep.files.append(ef.file_path)

        result = []
        for dep in dependencies.values():
            # Go standard library is only checked when the manifest pins it
            if dep.ecosystem == ECOSYSTEM_GO and is_go_stdlib(dep.name) and not dep.in_manifest:
                continue
            result.append(dep)
        return result

    # ------------------------------------------------------------------
    # Advisories
    # ------------------------------------------------------------------

    def _log_query(self, dependency: Dependency, module_path: str, version: str | None) -> None:
        logger.debug(f"Querying advisories for {module_path} ({dependency.ecosystem})")
        scan_logger.debug(
            "ADVISORY_QUERY",
            extra={
                "event": "advisory_query",
                "package": dependency.name,
                "ecosystem": dependency.ecosystem,
                "module_path": module_path,
                "version": version,
            },
        )

    @staticmethod
    def _collect(found: list[FoundAdvisory], module_path: str, vulns: list[Vulnerability]) -> None:
        seen = {adv.id for _, adv in found}
        for vuln in vulns:
            if vuln.id not in seen:
                seen.add(vuln.id)
                found.append((module_path, vuln))

    def fetch_advisories(self, dependency: Dependency) -> list[FoundAdvisory]:
        """Query every candidate module path of *dependency*.

        Advisories are deduplicated by id; each keeps the most specific path
        it was found under.

        Raises:
            AdvisoryQueryError: The advisory source failed.
        """
        version = query_version(dependency.version, dependency.ecosystem)
        found: list[FoundAdvisory] = []
        for module_path in hierarchical_paths(dependency.name, dependency.ecosystem).paths:
            self._log_query(dependency, module_path, version)
            vulns = self.advisory_source.query_package(
                module_path, version, dependency.ecosystem
            )
            self._collect(found, module_path, vulns)
        return found

    async def fetch_advisories_async(self, dependency: Dependency) -> list[FoundAdvisory]:
        """Async variant of ``fetch_advisories``."""
        version = query_version(dependency.version, dependency.ecosystem)
        found: list[FoundAdvisory] = []
        for module_path in hierarchical_paths(dependency.name, dependency.ecosystem).paths:
            self._log_query(dependency, module_path, version)
            vulns = await self.advisory_source.query_package_async(
                module_path, version, dependency.ecosystem
            )
            self._collect(found, module_path, vulns)
        return found

    def _build_report(
        self,
        dependency: Dependency,
        advisories: list[FoundAdvisory],
        extracted: list[ExtractedFile],
    ) -> DependencyReport:
        unknown_version = dependency.ecosystem == ECOSYSTEM_GO or is_unknown_version(
            dependency.version
        )
        report = DependencyReport(dependency=dependency, unknown_version=unknown_version)
        findings: dict[str, FileFindings] = {}

        files = extracted
        if self.config.filter_by_ecosystem:
            files = [ef for ef in extracted if ef.ecosystem == dependency.ecosystem]

        for module_path, advisory in advisories:
            symbols = build_symbol_set(advisory, module_path)
            summary = format_advisory_summary(
                advisory.summary or "", dependency, module_path, unknown_version
            )
            detail = AdvisoryDetail(
                id=advisory.id,
                summary=summary,
                module_path=module_path,
                symbols=sorted(symbols.symbols),
                structured_symbols=sorted(symbols.structured()),
            )

            for ef in files:
                analysis = self._match(ef, module_path, symbols, dependency.ecosystem)
                result = analysis.result
                if not result.calls:
                    continue

                detail.reachable = True
                file_findings = findings.setdefault(
                    ef.file_path, FileFindings(file_path=ef.file_path)
                )
                for call in result.calls:
                    file_findings.vulnerable_calls.append(
                        VulnerableCall(
                            call=call,
                            advisory_id=advisory.id,
                            confidence=result.confidence,
                            module_path=module_path,
                        )
                    )
                if result.mode == MatchMode.PACKAGE:
                    file_findings.manual_review.append(
                        ManualReviewReference(
                            advisory_id=advisory.id,
                            summary=summary,
                            module_path=module_path,
                        )
                    )
                if result.mode == MatchMode.FALLBACK:
                    scan_logger.info(
                        "FALLBACK_MATCH",
                        extra={
                            "event": "fallback_match",
                            "package": dependency.name,
                            "ecosystem": dependency.ecosystem,
                            "module_path": module_path,
                            "advisory_id": advisory.id,
                            "file": ef.file_path,
                            "mode": result.mode.value,
                            "calls": result.calls,
                        },
                    )

            report.advisories.append(detail)

        report.findings = list(findings.values())
        return report

    def analyze_dependency(
        self, dependency: Dependency, files: Iterable[str | Path]
    ) -> DependencyReport:
        """Report the reachable advisories of one dependency across *files*.

        Files that cannot be extracted are ignored.

        Raises:
            AdvisoryQueryError: The advisory source failed for this dependency.
        """
        extracted, _ = self._extract_all(files)
        advisories = self.fetch_advisories(dependency)
        return self._build_report(dependency, advisories, extracted)

    # ------------------------------------------------------------------
    # Batch
    # ------------------------------------------------------------------

    def _skip_dependency(
        self, report: ScanReport, dependency: Dependency, error: AdvisoryQueryError
    ) -> None:
        report.skipped_dependencies.append(
            SkippedItem(name=dependency.name, reason=str(error))
        )
        scan_logger.warning(
            "DEPENDENCY_SKIPPED",
            extra={
                "event": "dependency_skipped",
                "package": dependency.name,
                "ecosystem": dependency.ecosystem,
                "reason": type(error).__name__,
                "error": str(error),
            },
        )

    def _log_scan_complete(self, report: ScanReport) -> None:
        logger.info(
            f"Scanned {report.files_scanned} files: {len(report.dependencies)} dependencies "
            f"checked, {len(report.reachable)} reachable, "
            f"{len(report.skipped_files)} files and "
            f"{len(report.skipped_dependencies)} dependencies skipped"
        )

    def scan(
        self,
        files: Iterable[str | Path],
        version_lookup: VersionLookup | None = None,
    ) -> ScanReport:
        """Analyze every dependency imported by *files*.

        Unreadable, unparsable and unsupported files land in
        ``skipped_files``; dependencies whose advisory lookup fails land in
        ``skipped_dependencies``. Neither stops the scan.
        """
        extracted, skipped_files = self._extract_all(files)
        report = ScanReport(files_scanned=len(extracted), skipped_files=skipped_files)

        for dependency in self._discover(extracted, version_lookup):
            try:
                advisories = self.fetch_advisories(dependency)
            except AdvisoryQueryError as e:
                self._skip_dependency(report, dependency, e)
                continue
            report.dependencies.append(self._build_report(dependency, advisories, extracted))

        self._log_scan_complete(report)
        return report

    async def scan_async(
        self,
        files: Iterable[str | Path],
        version_lookup: VersionLookup | None = None,
    ) -> ScanReport:
        """Like ``scan``, fetching advisories for dependencies concurrently.

        At most ``config.max_concurrency`` dependencies are queried at once.
        Reports keep dependency discovery order.
        """
        extracted, skipped_files = self._extract_all(files)
        report = ScanReport(files_scanned=len(extracted), skipped_files=skipped_files)
        dependencies = self._discover(extracted, version_lookup)
        semaphore = asyncio.Semaphore(self.config.max_concurrency)

        async def _fetch(dep: Dependency) -> list[FoundAdvisory] | AdvisoryQueryError:
            async with semaphore:
                try:
                    return await self.fetch_advisories_async(dep)
                except AdvisoryQueryError as e:
                    return e

        results = await asyncio.gather(*(_fetch(dep) for dep in dependencies))

        for dependency, result in zip(dependencies, results):
            if isinstance(result, AdvisoryQueryError):
                self._skip_dependency(report, dependency, result)
                continue
            report.dependencies.append(self._build_report(dependency, result, extracted))

        self._log_scan_complete(report)
        return report
