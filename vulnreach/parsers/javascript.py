"""Import and call extraction for JavaScript and TypeScript.

Handles ES module imports (default, namespace, named with rename, mixed),
CommonJS ``require()`` bound to an identifier or a destructuring pattern,
TypeScript ``import x = require("y")``, and dynamic ``import()``.

Usage::

    parser = JavaScriptParser("typescript")
    result = parser.extract("import _ from 'lodash'; _.merge(a, b);")
    result.imports   # [RawImport(module='lodash', form=DEFAULT, ...)]
    result.calls     # ['_.merge']
"""

from __future__ import annotations

import tree_sitter as ts

from ..core.exceptions import UnsupportedLanguageError
from .base import ImportForm, RawImport, render_call
from .treesitter import ParsedAST, TreeSitterParser, string_literal_value

JS_LANGUAGES = frozenset({"javascript", "typescript", "tsx"})

_STRING_TYPES = frozenset({"string", "template_string"})

# Expressions that wrap a value without changing what it refers to
_TRANSPARENT_WRAPPERS = frozenset(
    {
        "await_expression",
        "parenthesized_expression",
        "non_null_expression",
        "as_expression",
        "satisfies_expression",
    }
)


def _line(node: ts.Node) -> int:
    return node.start_point.row + 1


def _unwrap(node: ts.Node | None) -> ts.Node | None:
    """Strip ``await``, parentheses, ``!`` and ``as``/``satisfies`` casts."""
    while node is not None and node.type in _TRANSPARENT_WRAPPERS:
        node = node.named_children[0] if node.named_children else None
    return node


class JavaScriptParser(TreeSitterParser):
    """Extractor for ``.js``/``.jsx``/``.mjs``/``.cjs``/``.ts``/``.tsx`` sources."""

    def __init__(self, language: str = "javascript", strict: bool = False) -> None:
        if language not in JS_LANGUAGES:
            raise UnsupportedLanguageError(
                f"Unsupported language: {language!r}. "
                f"Supported: {', '.join(sorted(JS_LANGUAGES))}"
            )
        super().__init__(language, strict=strict)

    # ------------------------------------------------------------------
    # Imports
    # ------------------------------------------------------------------

    def extract_imports(self, tree: ParsedAST) -> list[RawImport]:
        imports: list[RawImport] = []

        def _visitor(node: ts.Node) -> None:
            if node.type == "import_statement":
                imports.extend(self._from_import_statement(tree, node))
            elif node.type == "call_expression":
                imp = self._from_require_call(tree, node)
                if imp is not None:
                    imports.append(imp)

        tree.walk(_visitor)
        return imports

    def _from_import_statement(self, ast: ParsedAST, node: ts.Node) -> list[RawImport]:
        source_node = node.child_by_field_name("source")
        line = _line(node)

        for child in node.children:
            if child.type == "import_require_clause":
                # TypeScript: import fs = require("fs")
                return self._from_import_require_clause(ast, child, line)

        if source_node is None:
            return []
        module = string_literal_value(ast, source_node)
        if not module:
            return []

        clause = None
        for child in node.children:
            if child.type == "import_clause":
                clause = child
                break

        if clause is None:
            # import "polyfill";
            return [RawImport(module=module, form=ImportForm.SIDE_EFFECT, line=line)]

        imports: list[RawImport] = []
        for child in clause.children:
            if child.type == "identifier":
                imports.append(
                    RawImport(
                        module=module,
                        form=ImportForm.DEFAULT,
                        local_names=(ast.get_text(child),),
                        imported_name="default",
                        line=line,
                    )
                )
            elif child.type == "namespace_import":
                for sub in child.children:
                    if sub.type == "identifier":
                        imports.append(
                            RawImport(
                                module=module,
                                form=ImportForm.NAMESPACE,
                                local_names=(ast.get_text(sub),),
                                line=line,
                            )
                        )
                        break
            elif child.type == "named_imports":
                imports.extend(self._from_named_imports(ast, child, module, line))
        return imports

    def _from_named_imports(
        self, ast: ParsedAST, node: ts.Node, module: str, line: int
    ) -> list[RawImport]:
        imports: list[RawImport] = []
        for spec in node.children:
            if spec.type != "import_specifier":
                continue
            name_node = spec.child_by_field_name("name")
            alias_node = spec.child_by_field_name("alias")
            if name_node is None:
                continue
            imported = (
                string_literal_value(ast, name_node)
                if name_node.type in _STRING_TYPES
                else ast.get_text(name_node)
            )
            local = ast.get_text(alias_node) if alias_node is not None else imported
            imports.append(
                RawImport(
                    module=module,
                    form=ImportForm.NAMED,
                    local_names=(local,),
                    imported_name=imported,
                    line=line,
                )
            )
        return imports

    def _from_import_require_clause(
        self, ast: ParsedAST, clause: ts.Node, line: int
    ) -> list[RawImport]:
        local = None
        module = None
        for child in clause.children:
            if child.type == "identifier" and local is None:
                local = ast.get_text(child)
            elif child.type == "string":
                module = string_literal_value(ast, child)
        if not module or not local:
            return []
        return [
            RawImport(
                module=module,
                form=ImportForm.REQUIRE,
                local_names=(local,),
                line=line,
            )
        ]

    def _from_require_call(self, ast: ParsedAST, node: ts.Node) -> RawImport | None:
        """Turn ``require("x")`` / ``import("x")`` into a RawImport, if it is one."""
        fn_node = node.child_by_field_name("function")
        args_node = node.child_by_field_name("arguments")
        if fn_node is None or args_node is None:
            return None

        is_require = fn_node.type == "identifier" and ast.get_text(fn_node) == "require"
        is_dynamic_import = fn_node.type == "import"
        if not (is_require or is_dynamic_import):
            return None

        module = None
        for arg in args_node.named_children:
            if arg.type == "string":
                module = string_literal_value(ast, arg)
            break
        if not module:
            return None

        target = self._binding_target(node)
        line = _line(node)
        if target is None:
            return RawImport(module=module, form=ImportForm.SIDE_EFFECT, line=line)

        if target.type == "identifier":
            return RawImport(
                module=module,
                form=ImportForm.REQUIRE,
                local_names=(ast.get_text(target),),
                line=line,
            )

        if target.type == "object_pattern":
            names = self._names_from_object_pattern(ast, target)
            if names:
                return RawImport(
                    module=module,
                    form=ImportForm.REQUIRE_DESTRUCTURED,
                    local_names=tuple(names),
                    line=line,
                )

        return RawImport(module=module, form=ImportForm.SIDE_EFFECT, line=line)

    @staticmethod
    def _binding_target(call_node: ts.Node) -> ts.Node | None:
        """Return the pattern a require()/import() result is bound to.

        Handles ``const x = require(...)``, ``x = require(...)`` and
        ``const x = await import(...)``, also through parentheses, ``!`` and
        ``as``/``satisfies`` casts. Anything else (bare statement,
        argument position, member access on the result) has no binding.
        """
        node = call_node
        parent = node.parent
        while parent is not None and parent.type in _TRANSPARENT_WRAPPERS:
            node = parent
            parent = node.parent
        if parent is None:
            return None

        if parent.type == "variable_declarator":
            value = parent.child_by_field_name("value")
            if value is not None and value.id == node.id:
                return parent.child_by_field_name("name")
        elif parent.type == "assignment_expression":
            right = parent.child_by_field_name("right")
            left = parent.child_by_field_name("left")
            if right is not None and right.id == node.id and left is not None:
                if left.type == "identifier":
                    return left
        return None

    @staticmethod
    def _names_from_object_pattern(ast: ParsedAST, pattern: ts.Node) -> list[str]:
        """Local names bound by ``{ a, b: c, d = 1 }``."""
        names: list[str] = []
        for child in pattern.children:
            if child.type == "shorthand_property_identifier_pattern":
                names.append(ast.get_text(child))
            elif child.type == "pair_pattern":
                value = child.child_by_field_name("value")
                if value is not None and value.type == "assignment_pattern":
                    value = value.child_by_field_name("left")
                if value is not None and value.type == "identifier":
                    names.append(ast.get_text(value))
            elif child.type == "object_assignment_pattern":
                left = child.child_by_field_name("left")
                if left is not None:
                    names.append(ast.get_text(left))
        return names

    # ------------------------------------------------------------------
    # Calls
    # ------------------------------------------------------------------

    def extract_calls(self, tree: ParsedAST) -> list[str]:
        calls: list[str] = []

        def _visitor(node: ts.Node) -> None:
            if node.type != "call_expression":
                return
            fn_node = node.child_by_field_name("function")
            if fn_node is None:
                return
            rendered = self._render_callee(tree, fn_node)
            if rendered:
                calls.append(rendered)

        tree.walk(_visitor)
        return calls

    @staticmethod
    def _render_callee(ast: ParsedAST, fn_node: ts.Node) -> str | None:
        fn_node = _unwrap(fn_node)
        if fn_node is None:
            return None
        if fn_node.type == "identifier":
            return ast.get_text(fn_node)

        if fn_node.type != "member_expression":
            return None

        prop = fn_node.child_by_field_name("property")
        if prop is None:
            return None

        base = _unwrap(fn_node.child_by_field_name("object"))
        while base is not None and base.type == "member_expression":
            base = _unwrap(base.child_by_field_name("object"))
        if base is None or base.type != "identifier":
            return None

        return render_call(ast.get_text(base), ast.get_text(prop))
