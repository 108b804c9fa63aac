"""Select a parser by language tag or file extension."""

from __future__ import annotations

from pathlib import Path

from ..core.exceptions import UnsupportedLanguageError
from .base import SourceParser
from .go import GoParser
from .javascript import JS_LANGUAGES, JavaScriptParser
from .python_parser import PythonParser

EXTENSION_LANGUAGES: dict[str, str] = {
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".ts": "typescript",
    ".mts": "typescript",
    ".cts": "typescript",
    ".tsx": "tsx",
    ".py": "python",
    ".pyi": "python",
    ".go": "go",
}

SUPPORTED_LANGUAGES = frozenset(EXTENSION_LANGUAGES.values())


def detect_language(file_path: str | Path) -> str:
    """Return the language tag for *file_path* from its extension.

    Raises:
        UnsupportedLanguageError: If the extension is not recognised.
    """
    suffix = Path(file_path).suffix.lower()
    language = EXTENSION_LANGUAGES.get(suffix)
    if language is None:
        raise UnsupportedLanguageError(
            f"No parser for {suffix or 'files without an extension'}: {file_path}",
            file_path=str(file_path),
        )
    return language


def create_parser(language_or_path: str | Path, strict: bool = False) -> SourceParser:
    """Build a parser from a language tag (``"go"``) or a file path (``"main.go"``)."""
    language = str(language_or_path)
    if language not in SUPPORTED_LANGUAGES:
        language = detect_language(language_or_path)

    if language in JS_LANGUAGES:
        return JavaScriptParser(language, strict=strict)
    if language == "python":
        return PythonParser(strict=strict)
    if language == "go":
        return GoParser(strict=strict)
    raise UnsupportedLanguageError(f"Unsupported language: {language!r}")
