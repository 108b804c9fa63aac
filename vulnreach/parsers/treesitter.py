"""Shared tree-sitter plumbing for the JavaScript/TypeScript and Go parsers.

Grammar ``Language`` objects are loaded once per process and cached; each
``TreeSitterParser`` owns its own ``tree_sitter.Parser``.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from functools import lru_cache

import tree_sitter as ts
import tree_sitter_go as ts_go
import tree_sitter_javascript as ts_js
import tree_sitter_typescript as ts_ts

from ..core.exceptions import SourceParseError, UnsupportedLanguageError
from .base import SourceParser

logger = logging.getLogger(__name__)

TREE_SITTER_LANGUAGES = frozenset({"javascript", "typescript", "tsx", "go"})


@lru_cache(maxsize=None)
def load_language(language: str) -> ts.Language:
    """Return the tree-sitter ``Language`` for *language*.

    Raises:
        UnsupportedLanguageError: If no tree-sitter grammar is bundled for it.
    """
    if language == "javascript":
        return ts.Language(ts_js.language())
    if language == "typescript":
        return ts.Language(ts_ts.language_typescript())
    if language == "tsx":
        return ts.Language(ts_ts.language_tsx())
    if language == "go":
        return ts.Language(ts_go.language())
    raise UnsupportedLanguageError(
        f"Unsupported language: {language!r}. "
        f"Supported: {', '.join(sorted(TREE_SITTER_LANGUAGES))}"
    )


class ParsedAST:
    """Wrapper around a tree-sitter parse tree with convenience methods.

    Attributes:
        tree: The underlying ``tree_sitter.Tree``.
        source_code: Original source string that was parsed.
        language: Language identifier.
    """

    __slots__ = ("tree", "source_code", "language", "_source_bytes")

    def __init__(self, tree: ts.Tree, source_code: str, language: str) -> None:
        self.tree = tree
        self.source_code = source_code
        self.language = language
        self._source_bytes: bytes = source_code.encode("utf-8")

    @property
    def root_node(self) -> ts.Node:
        return self.tree.root_node

    @property
    def has_errors(self) -> bool:
        """Return ``True`` if the tree contains any parse errors."""
        return self.tree.root_node.has_error

    def get_text(self, node: ts.Node) -> str:
        """Extract the source text spanned by *node*."""
        return self._source_bytes[node.start_byte:node.end_byte].decode(
            "utf-8", errors="replace"
        )

    def walk(self, visitor: Callable[[ts.Node], bool | None]) -> None:
        """Pre-order walk of the AST.

        If the visitor returns ``False`` explicitly, the subtree rooted at
        that node is skipped. The walk is iterative so deeply nested
        (minified) sources do not hit the recursion limit.
        """
        stack = [self.tree.root_node]
        while stack:
            node = stack.pop()
            if visitor(node) is False:
                continue
            stack.extend(reversed(node.children))

    def first_error_line(self) -> int | None:
        """1-based line of the first error or missing node, if any."""
        found: list[int] = []

        def _visitor(node: ts.Node) -> bool | None:
            if found:
                return False
            if node.type == "ERROR" or node.is_missing:
                found.append(node.start_point.row + 1)
                return False
            if not node.has_error:
                return False
            return None

        self.walk(_visitor)
        return found[0] if found else None


def string_literal_value(ast: ParsedAST, node: ts.Node) -> str:
    """Return the content of a string literal node without its quotes."""
    text = ast.get_text(node)
    if len(text) >= 2 and text[0] in "\"'`" and text[-1] == text[0]:
        return text[1:-1]
    return text


class TreeSitterParser(SourceParser):
    """``SourceParser`` backed by a tree-sitter grammar.

    Tree-sitter always produces a tree, recovering from syntax errors with
    ``ERROR`` nodes. By default the recovered tree is used; with
    ``strict=True`` any error node rejects the file.
    """

    def __init__(self, language: str, strict: bool = False) -> None:
        super().__init__(strict=strict)
        self.language = language
        self._parser = ts.Parser(load_language(language))

    def parse(self, source: str, file_path: str | None = None) -> ParsedAST:
        tree = self._parser.parse(source.encode("utf-8"))
        if tree is None:
            raise SourceParseError(
                f"tree-sitter returned no tree for {file_path or '<source>'}",
                file_path=file_path,
            )

        ast = ParsedAST(tree=tree, source_code=source, language=self.language)
        if ast.has_errors:
            line = ast.first_error_line()
            if self.strict:
                raise SourceParseError(
                    f"{self.language} syntax error in {file_path or '<source>'}"
                    f" near line {line}",
                    file_path=file_path,
                )
            logger.debug(
                f"{file_path or '<source>'} parsed with errors near line {line}; "
                "using recovered tree"
            )
        return ast
