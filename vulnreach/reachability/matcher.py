"""Decide which call sites of a file can reach a vulnerable package symbol.

Matching runs in two passes. The strict pass only accepts calls whose name
is one of the advisory's symbols. If the advisory named symbols but none
matched, a package-wide pass reports every call that reaches the package
at all, flagged as lower confidence. An advisory without symbols goes
straight to the package-wide pass.

All name comparisons are case-insensitive.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from .models import BindingKind, ImportBinding, MatchMode, MatchResult, SymbolSet
from .normalizer import binding_targets_package

logger = logging.getLogger(__name__)


@dataclass
class PackageBindings:
    """The target package's bindings in one file, split by call shape."""

    object_aliases: set[str] = field(default_factory=set)
    # local alias -> names it may be known by in an advisory
    symbol_aliases: dict[str, set[str]] = field(default_factory=dict)
    tainted: bool = False

    @property
    def is_empty(self) -> bool:
        return not (self.object_aliases or self.symbol_aliases or self.tainted)


def partition_bindings(
    bindings: Iterable[ImportBinding], target: str, ecosystem: str | None = None
) -> PackageBindings:
    result = PackageBindings()
    for binding in bindings:
        if not binding_targets_package(binding, target, ecosystem):
            continue
        if binding.binding_kind == BindingKind.OBJECT:
            result.object_aliases.update(a.lower() for a in binding.local_aliases)
        elif binding.binding_kind == BindingKind.SYMBOL:
            for alias in binding.local_aliases:
                names = result.symbol_aliases.setdefault(alias.lower(), {alias.lower()})
                if binding.imported_name:
                    names.add(binding.imported_name.lower())
        elif binding.binding_kind == BindingKind.TAINT:
            result.tainted = True
    return result


def _normalize_symbols(symbols: SymbolSet | Iterable[str] | None) -> set[str]:
    if symbols is None:
        return set()
    if isinstance(symbols, SymbolSet):
        return symbols.symbols
    return {s.lower() for s in symbols if s}


def _match_pass(
    calls: Iterable[str], package: PackageBindings, symbols: set[str] | None
) -> list[str]:
    """One matching pass; ``symbols=None`` accepts any name reaching the package."""
    matched: list[str] = []
    for call in calls:
        if "." in call:
            obj, member = call.split(".", 1)
            member = member.rsplit(".", 1)[-1].lower()
            if obj.lower() in package.object_aliases and (
                symbols is None or member in symbols
            ):
                matched.append(call)
            continue

        name = call.lower()
        if name in package.symbol_aliases:
            known_as = package.symbol_aliases[name]
            if symbols is None or known_as & symbols:
                matched.append(call)
        elif package.tainted and (symbols is None or name in symbols):
            matched.append(call)

    return list(dict.fromkeys(matched))


def find_vulnerable_calls(
    bindings: Iterable[ImportBinding],
    calls: list[str],
    target: str,
    symbols: SymbolSet | Iterable[str] | None,
    ecosystem: str | None = None,
) -> MatchResult:
    """Return the calls in *calls* that can reach *target*'s vulnerable symbols.

    Args:
        bindings: Normalized imports of the file.
        calls: The file's extracted call texts.
        target: Package or module path the advisory was found under.
        symbols: Symbols implicated by the advisory; empty means unknown.
        ecosystem: Decides the subpath separator for matching *target*.

    Returns:
        A ``MatchResult`` whose calls are verbatim entries of *calls*, in
        order and deduplicated. ``mode`` tells which pass produced them.
    """
    package = partition_bindings(bindings, target, ecosystem)
    wanted = _normalize_symbols(symbols)

    if package.is_empty:
        mode = MatchMode.SYMBOL if wanted else MatchMode.PACKAGE
        return MatchResult(calls=[], mode=mode)

    if not wanted:
        return MatchResult(calls=_match_pass(calls, package, None), mode=MatchMode.PACKAGE)

    direct = _match_pass(calls, package, wanted)
    if direct:
        return MatchResult(calls=direct, mode=MatchMode.SYMBOL)

    fallback = _match_pass(calls, package, None)
    if fallback:
        logger.debug(
            f"No call to {target} matched {len(wanted)} advisory symbols; "
            f"{len(fallback)} package-wide calls reported instead"
        )
        return MatchResult(calls=fallback, mode=MatchMode.FALLBACK)
    return MatchResult(calls=[], mode=MatchMode.SYMBOL)
