"""Language-independent parser contract.

Every language module implements the same two extraction operations over
its own parse tree type: ``extract_imports`` and ``extract_calls``.
``SourceParser.extract`` runs both and returns an ``ExtractionResult``;
the tree never leaves that call.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from ..constants import MAX_SOURCE_FILE_SIZE
from ..core.exceptions import SourceReadError

logger = logging.getLogger(__name__)


class ImportForm(str, Enum):
    """Syntactic form of an import, before normalization."""

    # ES modules / CommonJS
    DEFAULT = "default"
    NAMESPACE = "namespace"
    NAMED = "named"
    REQUIRE = "require"
    REQUIRE_DESTRUCTURED = "require_destructured"
    SIDE_EFFECT = "side_effect"
    # Python
    MODULE = "module"
    MODULE_ALIAS = "module_alias"
    FROM_IMPORT = "from_import"
    WILDCARD = "wildcard"
    # Go
    DOT_IMPORT = "dot_import"
    BLANK_IMPORT = "blank_import"


@dataclass(frozen=True)
class RawImport:
    """An import as the parser saw it.

    Attributes:
        module: Module specifier as written (``"lodash"``, ``"a.b"``,
            ``"golang.org/x/text/language"``).
        form: Syntactic form of the import.
        local_names: Names the import introduces at call sites. Empty for
            side-effect-only and wildcard imports.
        imported_name: For named imports, the exported name before any
            local rename.
        line: 1-based line number.
    """

    module: str
    form: ImportForm
    local_names: tuple[str, ...] = ()
    imported_name: str | None = None
    line: int = 0


@dataclass
class ExtractionResult:
    """Imports and call sites extracted from one file."""

    language: str
    imports: list[RawImport] = field(default_factory=list)
    calls: list[str] = field(default_factory=list)
    file_path: str | None = None


def render_call(base: str, member: str | None = None) -> str:
    """Render a call site as ``identifier`` or ``object.member``."""
    if member:
        return f"{base}.{member}"
    return base


def dedupe_imports(imports: list[RawImport]) -> list[RawImport]:
    """Drop repeated imports, keeping first-seen order."""
    seen: set[tuple[str, ImportForm, tuple[str, ...], str | None]] = set()
    result = []
    for imp in imports:
        key = (imp.module, imp.form, imp.local_names, imp.imported_name)
        if key not in seen:
            seen.add(key)
            result.append(imp)
    return result


def dedupe_calls(calls: list[str]) -> list[str]:
    """Drop repeated call texts, keeping first-seen order."""
    return list(dict.fromkeys(calls))


def read_source(file_path: str | Path, max_size: int = MAX_SOURCE_FILE_SIZE) -> str:
    """Read a source file as UTF-8 text.

    Raises:
        SourceReadError: If the file is missing, unreadable, too large or
            not valid UTF-8.
    """
    path = Path(file_path)
    try:
        size = path.stat().st_size
    except OSError as e:
        raise SourceReadError(f"Cannot stat {path}: {e}", file_path=str(path)) from e

    if size > max_size:
        raise SourceReadError(
            f"File too large ({size} bytes, max {max_size}): {path}",
            file_path=str(path),
        )

    try:
        with open(path, encoding="utf-8-sig") as f:
            return f.read()
    except UnicodeDecodeError as e:
        raise SourceReadError(f"File is not valid UTF-8: {path}", file_path=str(path)) from e
    except OSError as e:
        raise SourceReadError(f"Cannot read {path}: {e}", file_path=str(path)) from e


class SourceParser(ABC):
    """Base class for per-language extractors.

    Subclasses set ``language`` and implement ``parse``, ``extract_imports``
    and ``extract_calls``. ``parse`` raises ``SourceParseError`` when the
    grammar rejects the content.
    """

    language: str = ""

    def __init__(self, strict: bool = False) -> None:
        self.strict = strict

    @abstractmethod
    def parse(self, source: str, file_path: str | None = None) -> Any:
        """Parse *source* into this language's tree type."""

    @abstractmethod
    def extract_imports(self, tree: Any) -> list[RawImport]:
        """Return every import in *tree*."""

    @abstractmethod
    def extract_calls(self, tree: Any) -> list[str]:
        """Return every call site in *tree*, rendered by ``render_call``."""

    def extract(self, source: str, file_path: str | None = None) -> ExtractionResult:
        """Parse *source* and extract imports and deduplicated calls."""
        tree = self.parse(source, file_path)
        imports = dedupe_imports(self.extract_imports(tree))
        calls = dedupe_calls(self.extract_calls(tree))

        return ExtractionResult(
            language=self.language,
            imports=imports,
            calls=calls,
            file_path=file_path,
        )

    def extract_file(
        self, file_path: str | Path, max_size: int = MAX_SOURCE_FILE_SIZE
    ) -> ExtractionResult:
        """Read and extract one file."""
        source = read_source(file_path, max_size=max_size)
        return self.extract(source, str(file_path))
