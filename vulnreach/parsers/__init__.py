"""Per-language import and call extraction.

JavaScript, TypeScript and Go are parsed with tree-sitter; Python with the
standard library ``ast`` module.
"""

from .base import (
    ExtractionResult,
    ImportForm,
    RawImport,
    SourceParser,
    read_source,
    render_call,
)
from .factory import EXTENSION_LANGUAGES, create_parser, detect_language
from .go import GoParser, default_package_name
from .javascript import JavaScriptParser
from .python_parser import PythonParser
from .treesitter import ParsedAST, TreeSitterParser

__all__ = [
    "EXTENSION_LANGUAGES",
    "ExtractionResult",
    "GoParser",
    "ImportForm",
    "JavaScriptParser",
    "ParsedAST",
    "PythonParser",
    "RawImport",
    "SourceParser",
    "TreeSitterParser",
    "create_parser",
    "default_package_name",
    "detect_language",
    "read_source",
    "render_call",
]
