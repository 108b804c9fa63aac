"""Import and call extraction for Python, using the standard ``ast`` module."""

from __future__ import annotations

import ast

from ..core.exceptions import SourceParseError
from .base import ImportForm, RawImport, SourceParser, render_call


class PythonParser(SourceParser):
    """Extractor for ``.py``/``.pyi`` sources.

    Relative imports (``from . import x``) refer to local code and are
    ignored.
    """

    language = "python"

    def parse(self, source: str, file_path: str | None = None) -> ast.Module:
        try:
            return ast.parse(source, filename=file_path or "<source>")
        except (SyntaxError, ValueError) as e:
            raise SourceParseError(
                f"Python syntax error in {file_path or '<source>'}: {e}",
                file_path=file_path,
            ) from e

    def extract_imports(self, tree: ast.Module) -> list[RawImport]:
        imports: list[RawImport] = []

        for node in ast.walk(tree):
            if isinstance(node, ast.Import):
                for alias in node.names:
                    if alias.asname:
                        imports.append(
                            RawImport(
                                module=alias.name,
                                form=ImportForm.MODULE_ALIAS,
                                local_names=(alias.asname,),
                                line=node.lineno,
                            )
                        )
                    else:
                        # import a.b.c binds "a"; the dotted path stays usable too
                        top_level = alias.name.split(".")[0]
                        names = tuple(dict.fromkeys((alias.name, top_level)))
                        imports.append(
                            RawImport(
                                module=alias.name,
                                form=ImportForm.MODULE,
                                local_names=names,
                                line=node.lineno,
                            )
                        )
            elif isinstance(node, ast.ImportFrom) and node.module and node.level == 0:
                for alias in node.names:
                    if alias.name == "*":
                        imports.append(
                            RawImport(
                                module=node.module,
                                form=ImportForm.WILDCARD,
                                line=node.lineno,
                            )
                        )
                        continue
                    imports.append(
                        RawImport(
                            module=node.module,
                            form=ImportForm.FROM_IMPORT,
                            local_names=(alias.asname or alias.name,),
                            imported_name=alias.name,
                            line=node.lineno,
                        )
                    )

        imports.sort(key=lambda imp: imp.line)
        return imports

    def extract_calls(self, tree: ast.Module) -> list[str]:
        found: list[tuple[int, int, str]] = []

        for node in ast.walk(tree):
            if not isinstance(node, ast.Call):
                continue
            func = node.func
            if isinstance(func, ast.Name):
                found.append((node.lineno, node.col_offset, func.id))
            elif isinstance(func, ast.Attribute):
                base = func.value
                while isinstance(base, ast.Attribute):
                    base = base.value
                if isinstance(base, ast.Name):
                    found.append(
                        (node.lineno, node.col_offset, render_call(base.id, func.attr))
                    )

        # ast.walk is breadth-first; report calls in source order
        found.sort(key=lambda item: (item[0], item[1]))
        return [text for _, _, text in found]
