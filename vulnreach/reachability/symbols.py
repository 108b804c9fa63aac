"""Mine probable symbol names from advisory prose.

Advisories often name the vulnerable function only in free text:
"Prototype pollution in the `merge()` function". The patterns below pick up
identifiers followed by ``()``, wrapped in backticks or quotes, or followed
by the word "function", then discard tokens that are clearly URLs, file
names, or ordinary English.
"""

from __future__ import annotations

import logging
import re

from ..clients.osv_client import Vulnerability
from .models import SymbolSet, SymbolSource

logger = logging.getLogger(__name__)

CALL_PATTERN = re.compile(r"\b([a-zA-Z_][a-zA-Z0-9_]*)\s*\(\)")
BACKTICK_PATTERN = re.compile(r"`([a-zA-Z_][a-zA-Z0-9_]*)`")
FUNCTION_WORD_PATTERN = re.compile(
    r"\b([a-zA-Z_][a-zA-Z0-9_]*)\b\s+function", re.IGNORECASE
)
QUOTED_PATTERN = re.compile(r"['\"]([a-zA-Z_][a-zA-Z0-9_]*)['\"]")

SYMBOL_PATTERNS = (CALL_PATTERN, BACKTICK_PATTERN, FUNCTION_WORD_PATTERN, QUOTED_PATTERN)

# Substrings that mark domains, hosts and file names
BLOCKED_SUBSTRINGS = (
    "github.com",
    ".com",
    ".org",
    ".io",
    ".rs",
    ".md",
    ".txt",
    ".png",
    ".html",
    ".exe",
    ".zip",
    ".cr",
    ".aarch64",
    ".x86_64",
    "http",
    "www.",
    "docs.",
    "lists.",
    "datatracker.",
    "main.ts",
    "go.mod",
    "core.rs",
    "faq.",
    "readme",
    "swhkd.sock",
    "swhks.pid",
    "libraries.html",
    "e.g",
    "i.e",
)

STOP_WORDS = frozenset(
    {
        "true",
        "false",
        "none",
        "object",
        "the",
        "previous",
        "vulnerable",
        # "a function", "this function", ...
        "a",
        "an",
        "this",
        "that",
        "its",
        "any",
        "each",
        "which",
        "another",
        "same",
        "affected",
    }
)


def is_symbol_like(token: str) -> bool:
    """Whether *token* could plausibly name a function or method."""
    lowered = token.lower()
    if any(blocked in lowered for blocked in BLOCKED_SUBSTRINGS):
        return False
    if lowered in STOP_WORDS:
        return False
    # snake_case slugs in prose are config keys and CVE tags, not calls
    if "_" in token and token == lowered:
        return False
    return True


def extract_mentioned_symbols(text: str) -> list[str]:
    """Return the sorted, deduplicated symbol-like tokens mentioned in *text*."""
    if not text:
        return []

    found: set[str] = set()
    for pattern in SYMBOL_PATTERNS:
        for match in pattern.finditer(text):
            found.add(match.group(1))

    return sorted(token for token in found if is_symbol_like(token))


def extract_possible_symbols(name: str, summary: str | None, details: str | None) -> list[str]:
    """Symbols mentioned in an advisory's summary and details, minus the package name."""
    text = f"{summary or ''} {details or ''}"
    excluded = name.lower()
    return [s for s in extract_mentioned_symbols(text) if s.lower() != excluded]


def build_symbol_set(advisory: Vulnerability, module_path: str) -> SymbolSet:
    """Union structured advisory symbols with symbols mined from its text.

    A structured ``Type.Method`` symbol also contributes ``Method``, since
    call sites are rendered as ``receiver.method``. The package's own name
    never appears in the result.
    """
    symbols = SymbolSet()

    for symbol in advisory.structured_symbols:
        symbols.add(symbol, SymbolSource.STRUCTURED)
        if "." in symbol:
            symbols.add(symbol.rsplit(".", 1)[1], SymbolSource.STRUCTURED)

    for symbol in extract_possible_symbols(module_path, advisory.summary, advisory.details):
        symbols.add(symbol, SymbolSource.TEXT)

    symbols.discard(module_path)

    logger.debug(
        f"Advisory {advisory.id}: {len(symbols.structured())} structured and "
        f"{len(symbols.mined())} mined symbols for {module_path}"
    )
    return symbols
