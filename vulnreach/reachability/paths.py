"""Expand package identifiers into candidate module paths.

Advisory databases do not always file an advisory under the exact name a
project imports. ``golang.org/x/text/language`` may be listed under
``golang.org/x/text``; ``@babel/core`` advisories may be filed against the
scope; a PyPI distribution may be spelled with ``_`` instead of ``-``. The
resolver returns every plausible spelling, most specific first.
"""

from __future__ import annotations

from collections.abc import Callable

from packaging.specifiers import InvalidSpecifier, SpecifierSet
from packaging.version import InvalidVersion, Version

from ..constants import (
    ECOSYSTEM_GO,
    ECOSYSTEM_NPM,
    ECOSYSTEM_PYPI,
    UNKNOWN_VERSION_MARKERS,
)
from .models import CandidatePaths

VersionLookup = Callable[[str, str], str | None]


def _dedupe(paths: list[str]) -> list[str]:
    return [p for p in dict.fromkeys(paths) if p]


def _go_paths(name: str) -> list[str]:
    parts = name.split("/")
    return ["/".join(parts[:i]) for i in range(len(parts), 0, -1)]


def _npm_paths(name: str) -> list[str]:
    paths = [name]
    if name.startswith("@"):
        parts = name.split("/")
        if len(parts) >= 2:
            scope = parts[0]
            paths.append(scope)
            if len(scope) > 1:
                paths.append(scope[1:])
    elif "/" in name:
        # lodash/merge is published as part of lodash
        paths.append(name.split("/")[0])
    return paths


def _pypi_paths(name: str) -> list[str]:
    paths = [name]
    if "-" in name:
        paths.append(name.replace("-", "_"))
    if "_" in name:
        paths.append(name.replace("_", "-"))

    if "." in name:
        parts = name.split(".")
        for i in range(len(parts) - 1, 0, -1):
            paths.append(".".join(parts[:i]))

    if "-" in name:
        paths.extend(part for part in name.split("-") if len(part) > 2)
    return paths


def hierarchical_paths(name: str, ecosystem: str) -> CandidatePaths:
    """Return candidate module paths for *name*, most specific first.

    Examples::

        hierarchical_paths("golang.org/x/text/language", "Go").paths
        # ['golang.org/x/text/language', 'golang.org/x/text', 'golang.org/x', 'golang.org']

        hierarchical_paths("@babel/core", "npm").paths
        # ['@babel/core', '@babel', 'babel']

        hierarchical_paths("python-dateutil", "PyPI").paths
        # ['python-dateutil', 'python_dateutil', 'python', 'dateutil']

    The result is deduplicated and never empty for a non-empty name.
    Unknown ecosystems get the name verbatim.
    """
    if not name:
        return CandidatePaths(ecosystem=ecosystem, paths=[])

    if ecosystem == ECOSYSTEM_GO:
        paths = _go_paths(name)
    elif ecosystem == ECOSYSTEM_NPM:
        paths = _npm_paths(name)
    elif ecosystem == ECOSYSTEM_PYPI:
        paths = _pypi_paths(name)
    else:
        paths = [name]

    return CandidatePaths(ecosystem=ecosystem, paths=_dedupe(paths))


def resolve_declared_version(
    name: str, ecosystem: str, lookup: VersionLookup | None
) -> str | None:
    """Find the manifest-declared version of *name*.

    Each candidate path is tried in order; the first one the lookup knows
    wins. Returns ``None`` when no candidate is declared.
    """
    if lookup is None:
        return None
    for path in hierarchical_paths(name, ecosystem).paths:
        version = lookup(path, ecosystem)
        if version is not None:
            return version
    return None


def is_unknown_version(version: str | None) -> bool:
    """Whether a declared version says nothing about what is installed.

    Empty, ``*``, ``latest``, ``x`` and caret/tilde ranges count as unknown.
    """
    if version is None:
        return True
    version = version.strip()
    if version.lower() in UNKNOWN_VERSION_MARKERS:
        return True
    return "^" in version or "~" in version


def _exact_pypi_version(version: str) -> str | None:
    try:
        return str(Version(version))
    except InvalidVersion:
        pass

    try:
        specifiers = list(SpecifierSet(version))
    except InvalidSpecifier:
        return None
    if len(specifiers) != 1:
        return None
    spec = specifiers[0]
    if spec.operator not in ("==", "===") or spec.version.endswith(".*"):
        return None
    return spec.version


def _exact_npm_version(version: str) -> str | None:
    candidate = version.lstrip("=v").strip()
    if not candidate or any(c in candidate for c in "<>| *"):
        return None
    if any(part.lower() == "x" for part in candidate.split(".")):
        return None
    return candidate


def query_version(version: str | None, ecosystem: str) -> str | None:
    """The version to send to the advisory source, or ``None`` for all advisories.

    Go modules are always queried without a version. Declared versions
    that are not a single exact version (ranges, wildcards, ``latest``)
    also query without one.
    """
    if ecosystem == ECOSYSTEM_GO:
        return None
    if is_unknown_version(version):
        return None
    assert version is not None
    version = version.strip()

    if ecosystem == ECOSYSTEM_PYPI:
        return _exact_pypi_version(version)
    if ecosystem == ECOSYSTEM_NPM:
        return _exact_npm_version(version)
    return version
