"""
grammars.py - Language kinds and the grammar registry.

Every file maps to a LanguageKind via its extension. Each kind has exactly
one Grammar:

- PythonAstGrammar   Python's own ast module
- TreeSitterGrammar  a tree-sitter grammar package per language
- NoGrammar          everything else; callers fall back to line windows

A Grammar parses source and answers one question: which code unit
(function, method, class, struct...) is the nearest one enclosing a
position? The registry is built once per process and only read afterwards.
Parsers are created per call, so no parser object is shared between threads.
"""

from __future__ import annotations

import ast
import importlib
import logging
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Any

from tree_sitter import Language, Parser

from .errors import ParseError
from .models import LanguageInfo

logger = logging.getLogger(__name__)


class LanguageKind(str, Enum):
    PYTHON = "python"
    JAVASCRIPT = "javascript"
    TYPESCRIPT = "typescript"
    TSX = "tsx"
    GO = "go"
    RUST = "rust"
    JAVA = "java"
    C = "c"
    CPP = "cpp"
    RUBY = "ruby"
    CSHARP = "csharp"
    PHP = "php"
    SHELL = "bash"
    MARKDOWN = "markdown"
    YAML = "yaml"
    JSON = "json"
    TOML = "toml"
    HTML = "html"
    CSS = "css"
    SQL = "sql"
    NONE = "text"


EXTENSION_MAP: dict[str, LanguageKind] = {
    ".py": LanguageKind.PYTHON,
    ".pyi": LanguageKind.PYTHON,
    ".js": LanguageKind.JAVASCRIPT,
    ".jsx": LanguageKind.JAVASCRIPT,
    ".mjs": LanguageKind.JAVASCRIPT,
    ".cjs": LanguageKind.JAVASCRIPT,
    ".ts": LanguageKind.TYPESCRIPT,
    ".mts": LanguageKind.TYPESCRIPT,
    ".cts": LanguageKind.TYPESCRIPT,
    ".tsx": LanguageKind.TSX,
    ".go": LanguageKind.GO,
    ".rs": LanguageKind.RUST,
    ".java": LanguageKind.JAVA,
    ".c": LanguageKind.C,
    ".h": LanguageKind.C,
    ".cpp": LanguageKind.CPP,
    ".cc": LanguageKind.CPP,
    ".cxx": LanguageKind.CPP,
    ".hpp": LanguageKind.CPP,
    ".hh": LanguageKind.CPP,
    ".rb": LanguageKind.RUBY,
    ".cs": LanguageKind.CSHARP,
    ".php": LanguageKind.PHP,
    ".sh": LanguageKind.SHELL,
    ".bash": LanguageKind.SHELL,
    ".zsh": LanguageKind.SHELL,
    ".md": LanguageKind.MARKDOWN,
    ".yaml": LanguageKind.YAML,
    ".yml": LanguageKind.YAML,
    ".json": LanguageKind.JSON,
    ".toml": LanguageKind.TOML,
    ".html": LanguageKind.HTML,
    ".css": LanguageKind.CSS,
    ".scss": LanguageKind.CSS,
    ".sql": LanguageKind.SQL,
}


def language_for_path(path: str | Path) -> LanguageKind:
    return EXTENSION_MAP.get(Path(path).suffix.lower(), LanguageKind.NONE)


@dataclass(frozen=True)
class CodeUnit:
    """A function/class-level range. Lines are 1-based and inclusive."""

    unit_type: str  # 'function', 'class', or the raw tree-sitter node type
    name: str | None
    start_line: int
    end_line: int

    @property
    def label(self) -> str:
        return f"{self.unit_type}:{self.name}" if self.name else self.unit_type

    def contains(self, line: int) -> bool:
        return self.start_line <= line <= self.end_line


class Grammar:
    """Parse-and-locate capability for one LanguageKind."""

    parser_name = "none"

    def __init__(self, kind: LanguageKind):
        self.kind = kind

    @property
    def available(self) -> bool:
        return False

    def parse(self, source: str, path: str = "<source>") -> Any:
        raise ParseError(path, self.kind.value, "no grammar available")

    def enclosing_unit(self, tree: Any, line: int, column: int, line_text: str) -> CodeUnit | None:
        return None


class NoGrammar(Grammar):
    """Default variant: nothing to parse, callers use line windows."""


class PythonAstGrammar(Grammar):
    """Python via the standard library ast module. The tree is the list of def/class units."""

    parser_name = "ast"

    @property
    def available(self) -> bool:
        return True

    def parse(self, source: str, path: str = "<source>") -> list[CodeUnit]:
        try:
            tree = ast.parse(source)
        except (SyntaxError, ValueError) as e:
            raise ParseError(path, self.kind.value, str(e)) from e
        except (RecursionError, MemoryError) as e:
            # Deeply nested expressions exhaust the parser before any syntax error shows.
            raise ParseError(path, self.kind.value, f"too deeply nested ({type(e).__name__})") from e

        units = []
        for node in ast.walk(tree):
            if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)):
                unit_type = "function"
            elif isinstance(node, ast.ClassDef):
                unit_type = "class"
            else:
                continue

            start_line = node.lineno
            if node.decorator_list:
                start_line = min(d.lineno for d in node.decorator_list)
            units.append(
                CodeUnit(unit_type, node.name, start_line, node.end_lineno or node.lineno)
            )
        return sorted(units, key=lambda u: (u.start_line, -u.end_line))

    def enclosing_unit(self, tree: list[CodeUnit], line: int, column: int, line_text: str) -> CodeUnit | None:
        """Innermost def/class whose range holds the line."""
        containing = None
        for unit in tree:
            if unit.contains(line):
                if containing is None or (unit.end_line - unit.start_line) < (
                    containing.end_line - containing.start_line
                ):
                    containing = unit
        return containing


# Node types that count as code units, per tree-sitter grammar
JS_UNITS = frozenset(
    {
        "function_declaration",
        "generator_function_declaration",
        "class_declaration",
        "method_definition",
    }
)
TS_UNITS = JS_UNITS | {
    "abstract_class_declaration",
    "interface_declaration",
    "type_alias_declaration",
    "enum_declaration",
    "internal_module",
}
# Declarations that only count at file level (const handler = () => {...})
JS_TOP_LEVEL_UNITS = frozenset({"lexical_declaration", "variable_declaration"})
TOP_LEVEL_PARENTS = frozenset({"program", "export_statement"})


class TreeSitterGrammar(Grammar):
    """
    A tree-sitter backed grammar.

    module/attr name the grammar package and its language function, e.g.
    tree_sitter_typescript.language_tsx. A missing package leaves the
    grammar unavailable; that language is then served by line windows.
    """

    parser_name = "tree-sitter"

    def __init__(
        self,
        kind: LanguageKind,
        module: str,
        unit_types: frozenset[str],
        attr: str = "language",
        top_level_types: frozenset[str] = frozenset(),
    ):
        super().__init__(kind)
        self.module = module
        self.attr = attr
        self.unit_types = unit_types
        self.top_level_types = top_level_types
        self._language = self._load_language()

    def _load_language(self) -> Language | None:
        try:
            grammar_module = importlib.import_module(self.module)
        except ImportError:
            logger.debug(f"{self.module} not installed; {self.kind.value} uses line windows")
            return None
        return Language(getattr(grammar_module, self.attr)())

    @property
    def available(self) -> bool:
        return self._language is not None

    def parse(self, source: str, path: str = "<source>") -> Any:
        if self._language is None:
            raise ParseError(path, self.kind.value, f"{self.module} is not installed")
        tree = Parser(self._language).parse(source.encode("utf-8"))
        if tree.root_node.has_error:
            raise ParseError(path, self.kind.value, "syntax errors in tree")
        return tree

    def _is_unit(self, node: Any) -> bool:
        if node.type in self.unit_types:
            return True
        if node.type in self.top_level_types:
            return node.parent is not None and node.parent.type in TOP_LEVEL_PARENTS
        return False

    def enclosing_unit(self, tree: Any, line: int, column: int, line_text: str) -> CodeUnit | None:
        """Walk up from the smallest node at the position to the nearest unit."""
        byte_column = len(line_text[:column].encode("utf-8"))
        point = (line - 1, byte_column)
        node = tree.root_node.descendant_for_point_range(point, point)
        while node is not None and not self._is_unit(node):
            node = node.parent
        if node is None:
            return None
        return CodeUnit(node.type, _node_name(node), node.start_point[0] + 1, node.end_point[0] + 1)


def _node_name(node: Any, depth: int = 0) -> str | None:
    """Best-effort declared name: the `name` field, or one found through declarators."""
    if depth > 4:
        return None
    name = node.child_by_field_name("name")
    if name is not None:
        if name.type in ("identifier", "type_identifier", "property_identifier", "field_identifier"):
            return name.text.decode("utf-8", errors="replace")
        return _node_name(name, depth + 1) or name.text.decode("utf-8", errors="replace")
    declarator = node.child_by_field_name("declarator")
    if declarator is not None:
        if declarator.type in ("identifier", "field_identifier", "qualified_identifier", "destructor_name"):
            return declarator.text.decode("utf-8", errors="replace")
        return _node_name(declarator, depth + 1)
    for child in node.named_children:
        if child.type in ("variable_declarator", "type_spec", "init_declarator"):
            return _node_name(child, depth + 1)
    return None


class GrammarRegistry:
    """LanguageKind -> Grammar. Kinds without an entry get NoGrammar."""

    def __init__(self, grammars: dict[LanguageKind, Grammar] | None = None):
        self._grammars = dict(grammars or {})

    def get(self, kind: LanguageKind) -> Grammar:
        grammar = self._grammars.get(kind)
        if grammar is None or not grammar.available:
            return NoGrammar(kind)
        return grammar

    def for_path(self, path: str | Path) -> Grammar:
        return self.get(language_for_path(path))

    def describe(self) -> list[LanguageInfo]:
        """Every language kind with its extensions and grammar status."""
        extensions: dict[LanguageKind, list[str]] = {}
        for ext, kind in EXTENSION_MAP.items():
            extensions.setdefault(kind, []).append(ext)

        infos = []
        for kind in LanguageKind:
            grammar = self.get(kind)
            infos.append(
                LanguageInfo(
                    name=kind.value,
                    extensions=tuple(sorted(extensions.get(kind, []))),
                    grammar_available=grammar.available,
                    parser=grammar.parser_name,
                )
            )
        return infos


C_UNITS = frozenset({"function_definition", "struct_specifier", "union_specifier", "enum_specifier"})


@lru_cache(maxsize=1)
def default_registry() -> GrammarRegistry:
    """Process-wide registry, built on first use."""
    grammars: dict[LanguageKind, Grammar] = {
        LanguageKind.PYTHON: PythonAstGrammar(LanguageKind.PYTHON),
        LanguageKind.JAVASCRIPT: TreeSitterGrammar(
            LanguageKind.JAVASCRIPT, "tree_sitter_javascript", JS_UNITS,
            top_level_types=JS_TOP_LEVEL_UNITS,
        ),
        LanguageKind.TYPESCRIPT: TreeSitterGrammar(
            LanguageKind.TYPESCRIPT, "tree_sitter_typescript", TS_UNITS,
            attr="language_typescript", top_level_types=JS_TOP_LEVEL_UNITS,
        ),
        LanguageKind.TSX: TreeSitterGrammar(
            LanguageKind.TSX, "tree_sitter_typescript", TS_UNITS,
            attr="language_tsx", top_level_types=JS_TOP_LEVEL_UNITS,
        ),
        LanguageKind.GO: TreeSitterGrammar(
            LanguageKind.GO, "tree_sitter_go",
            frozenset({"function_declaration", "method_declaration", "type_declaration"}),
        ),
        LanguageKind.RUST: TreeSitterGrammar(
            LanguageKind.RUST, "tree_sitter_rust",
            frozenset({
                "function_item", "impl_item", "struct_item", "enum_item",
                "trait_item", "union_item", "macro_definition",
            }),
        ),
        LanguageKind.JAVA: TreeSitterGrammar(
            LanguageKind.JAVA, "tree_sitter_java",
            frozenset({
                "class_declaration", "interface_declaration", "enum_declaration",
                "record_declaration", "annotation_type_declaration",
                "method_declaration", "constructor_declaration",
            }),
        ),
        LanguageKind.C: TreeSitterGrammar(LanguageKind.C, "tree_sitter_c", C_UNITS),
        LanguageKind.CPP: TreeSitterGrammar(
            LanguageKind.CPP, "tree_sitter_cpp", C_UNITS | {"class_specifier"},
        ),
    }
    available = sorted(k.value for k, g in grammars.items() if g.available)
    logger.info(f"Grammars available: {', '.join(available)}")
    return GrammarRegistry(grammars)
