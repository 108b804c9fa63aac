"""Collapse language-specific import forms into binding kinds."""

from __future__ import annotations

import sys
from collections.abc import Iterable

from ..constants import (
    ECOSYSTEM_GO,
    ECOSYSTEM_NPM,
    ECOSYSTEM_PYPI,
    ECOSYSTEM_SEPARATORS,
    NODE_BUILTIN_MODULES,
)
from ..parsers.base import ImportForm, RawImport
from .models import BindingKind, ImportBinding

BINDING_KINDS: dict[ImportForm, BindingKind] = {
    # alias.member()
    ImportForm.DEFAULT: BindingKind.OBJECT,
    ImportForm.NAMESPACE: BindingKind.OBJECT,
    ImportForm.REQUIRE: BindingKind.OBJECT,
    ImportForm.MODULE: BindingKind.OBJECT,
    ImportForm.MODULE_ALIAS: BindingKind.OBJECT,
    # name()
    ImportForm.NAMED: BindingKind.SYMBOL,
    ImportForm.REQUIRE_DESTRUCTURED: BindingKind.SYMBOL,
    ImportForm.FROM_IMPORT: BindingKind.SYMBOL,
    # every exported name lands in local scope
    ImportForm.WILDCARD: BindingKind.TAINT,
    ImportForm.DOT_IMPORT: BindingKind.TAINT,
    # no callable name
    ImportForm.SIDE_EFFECT: BindingKind.DROPPED,
    ImportForm.BLANK_IMPORT: BindingKind.DROPPED,
}


def binding_kind_for(form: ImportForm) -> BindingKind:
    return BINDING_KINDS[form]


def normalize_imports(
    raw_imports: Iterable[RawImport],
    file_path: str | None = None,
    language: str = "",
) -> list[ImportBinding]:
    """Turn parser imports into ``ImportBinding`` objects for one file.

    Every raw import yields exactly one binding. Dropped bindings are kept
    (with no aliases) so callers can still see that the package is used.
    """
    bindings = []
    for imp in raw_imports:
        kind = binding_kind_for(imp.form)
        aliases = [] if kind in (BindingKind.DROPPED, BindingKind.TAINT) else list(imp.local_names)
        bindings.append(
            ImportBinding(
                package_name=imp.module,
                local_aliases=aliases,
                binding_kind=kind,
                file_path=file_path,
                language=language,
                imported_name=imp.imported_name if kind == BindingKind.SYMBOL else None,
            )
        )
    return bindings


def _comparable(name: str, ecosystem: str | None) -> str:
    name = name.lower()
    if ecosystem == ECOSYSTEM_PYPI:
        # PyPI treats - and _ as the same character; import names use _
        name = name.replace("-", "_")
    return name


def binding_targets_package(
    binding: ImportBinding, target: str, ecosystem: str | None = None
) -> bool:
    """Whether *binding* imports *target* or one of its subpaths.

    Comparison is case-insensitive. ``lodash/merge`` targets ``lodash`` and
    ``requests.adapters`` targets ``requests``; ``lodash-es`` does not
    target ``lodash``.
    """
    if not target:
        return False
    name = _comparable(binding.package_name, ecosystem)
    wanted = _comparable(target, ecosystem)
    if name == wanted:
        return True
    separator = ECOSYSTEM_SEPARATORS.get(ecosystem or "", "/")
    return name.startswith(wanted + separator)


def is_go_stdlib(import_path: str) -> bool:
    """Standard library import paths have no dot in their first element."""
    return "." not in import_path.split("/", 1)[0]


def dependency_name(module: str, ecosystem: str) -> str | None:
    """Map an import specifier to the package it belongs to.

    Returns ``None`` for relative imports and for modules that ship with
    the language. Go standard library paths are returned as written; the
    caller decides whether the manifest overrides that.

    Examples::

        dependency_name("lodash/merge", "npm")         # 'lodash'
        dependency_name("@babel/core/lib/x", "npm")    # '@babel/core'
        dependency_name("requests.adapters", "PyPI")   # 'requests'
        dependency_name("os.path", "PyPI")             # None
    """
    if not module:
        return None

    if ecosystem == ECOSYSTEM_NPM:
        if module.startswith((".", "/")) or module.startswith("node:"):
            return None
        parts = module.split("/")
        if module.startswith("@"):
            return "/".join(parts[:2]) if len(parts) >= 2 else None
        if parts[0] in NODE_BUILTIN_MODULES:
            return None
        return parts[0]

    if ecosystem == ECOSYSTEM_PYPI:
        if module.startswith("."):
            return None
        top_level = module.split(".")[0]
        if top_level in sys.stdlib_module_names or top_level == "__future__":
            return None
        return top_level

    if ecosystem == ECOSYSTEM_GO:
        if module.startswith(("./", "../")):
            return None
        return module

    return module
