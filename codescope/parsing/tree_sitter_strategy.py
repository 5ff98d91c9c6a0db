"""Tree-sitter backed parsing strategy for JavaScript and TypeScript.

Wraps the tree-sitter grammars for JS/JSX, TypeScript and TSX, and walks the
resulting syntax tree to collect the structural elements of a file.

Usage::

    strategy = TreeSitterStrategy()
    structure = strategy.parse(SourceFile(path="a.ts", content=src, language="typescript"))
    for fn in structure.functions:
        print(fn.name, fn.complexity)
"""

from __future__ import annotations

import logging
import re
import threading
from collections.abc import Iterator

import tree_sitter as ts
import tree_sitter_javascript as ts_js
import tree_sitter_typescript as ts_ts

from ..core.exceptions import ParseError, UnsupportedLanguageError
from ..models import (
    ClassInfo,
    CodeStructure,
    ExportInfo,
    FunctionInfo,
    InterfaceInfo,
    ParameterInfo,
    SourceFile,
    TypeAliasInfo,
)
from .lexical import parse_parameters, split_top_level

logger = logging.getLogger(__name__)

# Language tag -> grammar. The JavaScript grammar covers JSX.
_GRAMMARS = {
    "javascript": "javascript",
    "jsx": "javascript",
    "typescript": "typescript",
    "tsx": "tsx",
}

_FUNCTION_DECLARATIONS = {
    "function_declaration": "function",
    "generator_function_declaration": "generator",
}

_FUNCTION_VALUES = {
    "arrow_function": "arrow",
    "function_expression": "function",
    "function": "function",
    "generator_function": "generator",
}

_CLASS_NODES = ("class_declaration", "abstract_class_declaration", "class")

_EXPORT_KINDS = {
    "function_declaration": "function",
    "generator_function_declaration": "function",
    "class_declaration": "class",
    "abstract_class_declaration": "class",
    "interface_declaration": "interface",
    "type_alias_declaration": "type",
    "enum_declaration": "enum",
    "lexical_declaration": "const",
    "variable_declaration": "const",
}

# Syntax nodes that add a path through a function.
_DECISION_NODES = frozenset(
    (
        "if_statement",
        "for_statement",
        "for_in_statement",
        "while_statement",
        "do_statement",
        "switch_case",
        "catch_clause",
        "ternary_expression",
    )
)
_LOGICAL_OPERATORS = frozenset(("&&", "||", "??", "&&=", "||=", "??="))

_EXTENDS_RE = re.compile(r"\bextends\s+([\w$.]+)")
_IMPLEMENTS_RE = re.compile(r"\bimplements\s+(.+)$", re.DOTALL)


class ParsedAST:
    """Wrapper around a tree-sitter parse tree with convenience methods.

    Attributes:
        tree: The underlying ``tree_sitter.Tree``.
        source_code: Original source string that was parsed.
        language: Language tag of the file (``"jsx"`` parses with the
            JavaScript grammar).
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

    def iter_nodes(self, start: ts.Node | None = None) -> Iterator[ts.Node]:
        """Pre-order traversal in document order, without recursion.

        Walks the subtree under *start*, or the whole tree when omitted.
        Deeply nested files would otherwise exhaust the interpreter stack.
        """
        stack = [start if start is not None else self.tree.root_node]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))


class TreeSitterStrategy:
    """Parsing strategy backed by tree-sitter grammars.

    ``Language`` objects are created lazily and shared. ``Parser`` objects
    are not thread-safe, so each worker thread gets its own.
    """

    name = "tree-sitter"

    def __init__(self) -> None:
        self._languages: dict[str, ts.Language] = {}
        self._lock = threading.Lock()
        self._local = threading.local()

    def supports(self, language: str) -> bool:
        return language in _GRAMMARS

    # ------------------------------------------------------------------
    # Language / parser initialisation
    # ------------------------------------------------------------------

    def _get_language(self, grammar: str) -> ts.Language:
        with self._lock:
            if grammar not in self._languages:
                if grammar == "javascript":
                    self._languages[grammar] = ts.Language(ts_js.language())
                elif grammar == "typescript":
                    self._languages[grammar] = ts.Language(ts_ts.language_typescript())
                else:  # tsx
                    self._languages[grammar] = ts.Language(ts_ts.language_tsx())
            return self._languages[grammar]

    def _get_parser(self, grammar: str) -> ts.Parser:
        parsers: dict[str, ts.Parser] | None = getattr(self._local, "parsers", None)
        if parsers is None:
            parsers = self._local.parsers = {}
        if grammar not in parsers:
            parsers[grammar] = ts.Parser(language=self._get_language(grammar))
        return parsers[grammar]

    # ------------------------------------------------------------------
    # Parsing
    # ------------------------------------------------------------------

    def parse_ast(self, source_code: str, language: str) -> ParsedAST:
        """Parse *source_code* into a ``ParsedAST``.

        Raises:
            UnsupportedLanguageError: If *language* has no grammar.
        """
        grammar = _GRAMMARS.get(language)
        if grammar is None:
            raise UnsupportedLanguageError(
                f"Unsupported language: {language!r}. "
                f"Supported: {', '.join(sorted(_GRAMMARS))}"
            )
        tree = self._get_parser(grammar).parse(source_code.encode("utf-8"))
        return ParsedAST(tree=tree, source_code=source_code, language=language)

    def parse(self, file: SourceFile) -> CodeStructure:
        try:
            ast = self.parse_ast(file.content, file.language)
        except (ValueError, RuntimeError) as e:
            raise ParseError(f"tree-sitter failed: {e}", file.path, self.name) from e
        if ast.has_errors:
            # tree-sitter recovers from syntax errors; keep what it found
            logger.debug(
                "Syntax errors in file, using recovered tree",
                extra={"file_path": file.path, "strategy": self.name},
            )
        return _StructureCollector(ast, file.path).collect()


class _StructureCollector:
    """Single pass over one parse tree that fills a ``CodeStructure``."""

    def __init__(self, ast: ParsedAST, file_path: str) -> None:
        self.ast = ast
        self.file_path = file_path
        self.functions: list[FunctionInfo] = []
        self.classes: list[ClassInfo] = []
        self.interfaces: list[InterfaceInfo] = []
        self.types: list[TypeAliasInfo] = []
        self.exports: list[ExportInfo] = []

    def collect(self) -> CodeStructure:
        stack: list[tuple[ts.Node, str | None]] = [(self.ast.root_node, None)]
        while stack:
            node, class_name = stack.pop()
            kind = node.type
            child_class = class_name

            if kind in _FUNCTION_DECLARATIONS:
                self._add_function(node, node, _FUNCTION_DECLARATIONS[kind])
            elif kind == "method_definition":
                self._add_function(node, node, "method", class_name=class_name)
            elif kind == "variable_declarator":
                value = node.child_by_field_name("value")
                if value is not None and value.type in _FUNCTION_VALUES:
                    self._add_function(value, node, _FUNCTION_VALUES[value.type])
            elif kind in ("public_field_definition", "field_definition"):
                value = node.child_by_field_name("value")
                if value is not None and value.type in _FUNCTION_VALUES:
                    self._add_function(
                        value, node, _FUNCTION_VALUES[value.type], class_name=class_name
                    )
            elif kind in _CLASS_NODES:
                child_class = self._add_class(node) or class_name
            elif kind == "interface_declaration":
                self._add_interface(node)
            elif kind == "type_alias_declaration":
                self._add_type_alias(node)
            elif kind == "export_statement":
                self._add_exports(node)

            for child in reversed(node.children):
                stack.append((child, child_class))

        return CodeStructure(
            functions=self.functions,
            classes=self.classes,
            interfaces=self.interfaces,
            types=self.types,
            exports=self.exports,
        )

    # ------------------------------------------------------------------
    # Element builders
    # ------------------------------------------------------------------

    def _add_function(
        self,
        fn_node: ts.Node,
        decl_node: ts.Node,
        kind: str,
        class_name: str | None = None,
    ) -> None:
        name_node = (
            decl_node.child_by_field_name("name")
            or decl_node.child_by_field_name("property")
        )
        if name_node is None:
            return

        body = fn_node.child_by_field_name("body")
        complexity = self._complexity(body) if body is not None else 1
        calls = self._calls(body) if body is not None else []

        return_type = fn_node.child_by_field_name("return_type")
        anchor = self._anchor(decl_node)

        self.functions.append(
            FunctionInfo(
                name=self.ast.get_text(name_node),
                file_path=self.file_path,
                start_line=anchor.start_point.row + 1,
                end_line=fn_node.end_point.row + 1,
                parameters=self._parameters(fn_node),
                return_type=(
                    self.ast.get_text(return_type).lstrip(":").strip()
                    if return_type is not None
                    else None
                ),
                is_async=self._has_async(fn_node),
                is_exported=self._is_exported(decl_node),
                complexity=complexity,
                kind=kind,
                calls_to=calls,
                class_name=class_name,
            )
        )

    def _add_class(self, node: ts.Node) -> str | None:
        name_node = node.child_by_field_name("name")
        if name_node is None:
            return None
        name = self.ast.get_text(name_node)

        superclass: str | None = None
        interfaces: list[str] = []
        for child in node.children:
            if child.type == "class_heritage":
                heritage = self.ast.get_text(child)
                ext = _EXTENDS_RE.search(heritage)
                if ext:
                    superclass = ext.group(1)
                impl = _IMPLEMENTS_RE.search(heritage)
                if impl:
                    interfaces = split_top_level(impl.group(1))

        methods: list[str] = []
        body = node.child_by_field_name("body")
        if body is not None:
            for member in body.children:
                if member.type == "method_definition":
                    member_name = member.child_by_field_name("name")
                    if member_name is not None:
                        methods.append(self.ast.get_text(member_name))

        self.classes.append(
            ClassInfo(
                name=name,
                file_path=self.file_path,
                start_line=self._anchor(node).start_point.row + 1,
                end_line=node.end_point.row + 1,
                methods=methods,
                superclass=superclass,
                interfaces=interfaces,
                is_exported=self._is_exported(node),
            )
        )
        return name

    def _add_interface(self, node: ts.Node) -> None:
        name_node = node.child_by_field_name("name")
        if name_node is None:
            return

        extends: list[str] = []
        properties: list[str] = []
        for child in node.children:
            if child.type == "extends_type_clause":
                text = self.ast.get_text(child)
                extends = split_top_level(re.sub(r"^\s*extends\b", "", text))
        body = node.child_by_field_name("body")
        if body is not None:
            for member in body.children:
                if member.type in ("property_signature", "method_signature"):
                    member_name = member.child_by_field_name("name")
                    if member_name is not None:
                        properties.append(self.ast.get_text(member_name))

        self.interfaces.append(
            InterfaceInfo(
                name=self.ast.get_text(name_node),
                file_path=self.file_path,
                start_line=self._anchor(node).start_point.row + 1,
                end_line=node.end_point.row + 1,
                extends=extends,
                properties=properties,
                is_exported=self._is_exported(node),
            )
        )

    def _add_type_alias(self, node: ts.Node) -> None:
        name_node = node.child_by_field_name("name")
        if name_node is None:
            return
        value = node.child_by_field_name("value")
        definition = " ".join(self.ast.get_text(value).split()) if value else ""
        self.types.append(
            TypeAliasInfo(
                name=self.ast.get_text(name_node),
                file_path=self.file_path,
                start_line=self._anchor(node).start_point.row + 1,
                end_line=node.end_point.row + 1,
                definition=definition,
                is_exported=self._is_exported(node),
            )
        )

    def _add_exports(self, node: ts.Node) -> None:
        line = node.start_point.row + 1
        is_default = any(child.type == "default" for child in node.children)
        declaration = node.child_by_field_name("declaration")

        if declaration is not None:
            names: list[str] = []
            if declaration.type in ("lexical_declaration", "variable_declaration"):
                for child in declaration.children:
                    if child.type == "variable_declarator":
                        name_node = child.child_by_field_name("name")
                        if name_node is not None:
                            names.append(self.ast.get_text(name_node))
            else:
                name_node = declaration.child_by_field_name("name")
                names.append(self.ast.get_text(name_node) if name_node else "default")
            kind = "default" if is_default else _EXPORT_KINDS.get(declaration.type, "const")
            for name in names:
                self._export(name, kind, line)
            return

        if is_default:
            value = node.child_by_field_name("value")
            name = "default"
            if value is not None and value.type == "identifier":
                name = self.ast.get_text(value)
            self._export(name, "default", line)
            return

        has_source = node.child_by_field_name("source") is not None
        kind = "reexport" if has_source else "named"
        clause_found = False
        for child in node.children:
            if child.type != "export_clause":
                continue
            clause_found = True
            for spec in child.children:
                if spec.type != "export_specifier":
                    continue
                alias = spec.child_by_field_name("alias")
                name_node = alias or spec.child_by_field_name("name")
                if name_node is not None:
                    self._export(self.ast.get_text(name_node), kind, line)
        if not clause_found and has_source:
            # export * from '...'
            self._export("*", "reexport", line)

    def _export(self, name: str, kind: str, line: int) -> None:
        self.exports.append(
            ExportInfo(name=name, kind=kind, file_path=self.file_path, line=line)
        )

    # ------------------------------------------------------------------
    # Shared helpers
    # ------------------------------------------------------------------

    def _complexity(self, body: ts.Node) -> int:
        """Return ``1 + decision points`` counted on the syntax tree."""
        decisions = 0
        for node in self.ast.iter_nodes(body):
            kind = node.type
            if kind in _DECISION_NODES:
                decisions += 1
            elif kind in ("binary_expression", "augmented_assignment_expression"):
                operator = node.child_by_field_name("operator")
                if operator is not None and operator.type in _LOGICAL_OPERATORS:
                    decisions += 1
        return 1 + decisions

    def _calls(self, body: ts.Node) -> list[str]:
        """Called names in source order; member calls give the member name."""
        found: list[tuple[int, str]] = []
        for node in self.ast.iter_nodes(body):
            if node.type != "call_expression":
                continue
            callee = node.child_by_field_name("function")
            if callee is not None and callee.type == "member_expression":
                callee = callee.child_by_field_name("property")
            if callee is not None and callee.type in ("identifier", "property_identifier"):
                found.append((callee.start_byte, self.ast.get_text(callee)))
        calls: list[str] = []
        for _, name in sorted(found):
            if name not in calls:
                calls.append(name)
        return calls

    def _parameters(self, fn_node: ts.Node) -> list[ParameterInfo]:
        params_node = fn_node.child_by_field_name("parameters")
        if params_node is not None:
            text = self.ast.get_text(params_node).strip()
            if text.startswith("(") and text.endswith(")"):
                text = text[1:-1]
            return parse_parameters(text)
        # Single-param arrow without parens: x => ...
        single = fn_node.child_by_field_name("parameter")
        if single is not None:
            return [ParameterInfo(name=self.ast.get_text(single))]
        return []

    def _has_async(self, node: ts.Node) -> bool:
        for child in node.children:
            if child.type == "async" or self.ast.get_text(child) == "async":
                return True
            # Stop checking after we hit the function keyword or name
            if child.type in (
                "function",
                "identifier",
                "property_identifier",
                "formal_parameters",
            ):
                break
        return False

    @staticmethod
    def _anchor(node: ts.Node) -> ts.Node:
        """Outermost statement node that owns a declaration.

        Doc comments sit above ``export const x = ...`` rather than above the
        declarator, so line numbers are taken from the enclosing statement.
        """
        anchor = node
        parent = anchor.parent
        if anchor.type == "variable_declarator" and parent is not None:
            anchor = parent
            parent = anchor.parent
        if parent is not None and parent.type == "export_statement":
            anchor = parent
        return anchor

    @staticmethod
    def _is_exported(node: ts.Node) -> bool:
        parent = node.parent
        if node.type == "variable_declarator" and parent is not None:
            parent = parent.parent
        return parent is not None and parent.type == "export_statement"
