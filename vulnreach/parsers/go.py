"""Import and call extraction for Go."""

from __future__ import annotations

import re

import tree_sitter as ts

from .base import ImportForm, RawImport, render_call
from .treesitter import ParsedAST, TreeSitterParser, string_literal_value

# Major-version path element (".../v2") and gopkg.in suffix ("yaml.v3")
_MAJOR_VERSION_ELEMENT = re.compile(r"^v\d+$")
_GOPKG_SUFFIX = re.compile(r"\.v\d+$")


def default_package_name(import_path: str) -> str:
    """Identifier an unaliased Go import binds.

    ``github.com/go-chi/chi/v5`` binds ``chi``; ``gopkg.in/yaml.v3`` binds
    ``yaml``.
    """
    elements = [e for e in import_path.split("/") if e]
    if not elements:
        return import_path
    name = elements[-1]
    if _MAJOR_VERSION_ELEMENT.match(name) and len(elements) > 1:
        name = elements[-2]
    return _GOPKG_SUFFIX.sub("", name)


class GoParser(TreeSitterParser):
    """Extractor for ``.go`` sources."""

    def __init__(self, strict: bool = False) -> None:
        super().__init__("go", strict=strict)

    def extract_imports(self, tree: ParsedAST) -> list[RawImport]:
        imports: list[RawImport] = []

        def _visitor(node: ts.Node) -> bool | None:
            if node.type == "import_spec":
                imp = self._from_import_spec(tree, node)
                if imp is not None:
                    imports.append(imp)
                return False
            # Imports only appear at the top of the file
            if node.type in ("function_declaration", "method_declaration"):
                return False
            return None

        tree.walk(_visitor)
        return imports

    @staticmethod
    def _from_import_spec(ast: ParsedAST, node: ts.Node) -> RawImport | None:
        path_node = node.child_by_field_name("path")
        if path_node is None:
            return None
        path = string_literal_value(ast, path_node)
        if not path:
            return None

        line = node.start_point.row + 1
        name_node = node.child_by_field_name("name")
        if name_node is None:
            return RawImport(
                module=path,
                form=ImportForm.MODULE,
                local_names=(default_package_name(path),),
                line=line,
            )
        if name_node.type == "dot":
            return RawImport(module=path, form=ImportForm.DOT_IMPORT, line=line)
        if name_node.type == "blank_identifier":
            return RawImport(module=path, form=ImportForm.BLANK_IMPORT, line=line)
        return RawImport(
            module=path,
            form=ImportForm.MODULE_ALIAS,
            local_names=(ast.get_text(name_node),),
            line=line,
        )

    def extract_calls(self, tree: ParsedAST) -> list[str]:
        calls: list[str] = []

        def _visitor(node: ts.Node) -> None:
            if node.type != "call_expression":
                return
            fn_node = node.child_by_field_name("function")
            if fn_node is None:
                return
            if fn_node.type == "identifier":
                calls.append(tree.get_text(fn_node))
            elif fn_node.type == "selector_expression":
                field_node = fn_node.child_by_field_name("field")
                operand = fn_node.child_by_field_name("operand")
                while operand is not None and operand.type == "selector_expression":
                    operand = operand.child_by_field_name("operand")
                if field_node is not None and operand is not None and operand.type == "identifier":
                    calls.append(render_call(tree.get_text(operand), tree.get_text(field_node)))

        tree.walk(_visitor)
        return calls
