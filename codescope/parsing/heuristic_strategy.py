"""Regex and brace-matching parsing strategy.

Used for single-file components (Vue, Svelte), whose script blocks are
scanned in place, and for JS/TS whenever tree-sitter is disabled. All
matching runs on masked source so comments and strings never produce
declarations; text that is reported back (parameters, return types, type
definitions) is sliced from the raw source at the same offsets.
"""

from __future__ import annotations

import re

from ..models import (
    ClassInfo,
    CodeStructure,
    ExportInfo,
    FunctionInfo,
    InterfaceInfo,
    SourceFile,
    TypeAliasInfo,
)
from .lexical import (
    LineIndex,
    cyclomatic_complexity,
    find_calls,
    find_matching_brace,
    mask_source,
    parse_parameters,
    split_top_level,
)

_IDENT = r"[A-Za-z_$][\w$]*"

_SCRIPT_BLOCK_RE = re.compile(
    r"(<script\b[^>]*>)(.*?)(</script\s*>)", re.DOTALL | re.IGNORECASE
)

_FUNCTION_RE = re.compile(
    r"(?P<export>\bexport\s+(?:default\s+)?)?"
    r"(?P<async>\basync\s+)?"
    rf"\bfunction\b\s*(?P<gen>\*)?\s*(?P<name>{_IDENT})\s*"
    r"(?:<[^>(]*>)?\s*\((?P<params>[^)]*)\)"
    r"(?:\s*:\s*(?P<ret>[^{;]+?))?\s*\{"
)

_ARROW_RE = re.compile(
    r"(?P<export>\bexport\s+)?\b(?:const|let|var)\s+"
    rf"(?P<name>{_IDENT})\s*(?::[^=;]+)?=\s*(?P<async>async\s+)?"
    rf"(?:\((?P<params>[^)]*)\)|(?P<single>{_IDENT}))"
    r"(?:\s*:\s*(?P<ret>[^=;{]+?))?\s*=>"
)

_CLASS_RE = re.compile(
    r"(?P<export>\bexport\s+(?:default\s+)?)?(?:abstract\s+)?"
    rf"\bclass\s+(?P<name>{_IDENT})(?:\s*<[^>{{]*>)?"
    r"(?:\s+extends\s+(?P<super>[\w$.]+)(?:\s*<[^>{]*>)?)?"
    r"(?:\s+implements\s+(?P<impl>[^{]+))?\s*\{"
)

_METHOD_RE = re.compile(
    r"^[ \t]*(?:@\w+(?:\([^)]*\))?\s*)*"
    r"(?P<mods>(?:(?:public|private|protected|static|async|readonly|override|abstract|get|set)\s+)*)"
    rf"(?P<gen>\*\s*)?(?P<name>#?{_IDENT})\s*(?:<[^>(]*>)?\s*\((?P<params>[^)]*)\)"
    r"(?:\s*:\s*(?P<ret>[^{;]+?))?\s*\{",
    re.MULTILINE,
)

_INTERFACE_RE = re.compile(
    r"(?P<export>\bexport\s+)?\binterface\s+"
    rf"(?P<name>{_IDENT})(?:\s*<[^>{{]*>)?"
    r"(?:\s+extends\s+(?P<ext>[^{]+))?\s*\{"
)

_INTERFACE_MEMBER_RE = re.compile(
    rf"^[ \t]*(?:readonly\s+)?(?P<name>{_IDENT})\??\s*[:(]", re.MULTILINE
)

_TYPE_ALIAS_RE = re.compile(
    rf"(?P<export>\bexport\s+)?\btype\s+(?P<name>{_IDENT})"
    r"(?:\s*<[^>=]*>)?\s*=\s*(?P<def>[^;\n]+)"
)

_EXPORT_DECL_RE = re.compile(
    r"\bexport\s+(?P<default>default\s+)?(?:declare\s+)?(?:abstract\s+)?(?:async\s+)?"
    rf"(?P<kind>function\*?|class|interface|type|const|let|var|enum)\s+(?P<name>{_IDENT})"
)

_EXPORT_DEFAULT_EXPR_RE = re.compile(
    r"\bexport\s+default\s+(?!(?:async\s+)?(?:function|class|abstract)\b)"
    rf"(?P<name>{_IDENT})?"
)

_EXPORT_CLAUSE_RE = re.compile(
    r"\bexport\s+(?:type\s+)?\{(?P<names>[^}]*)\}(?P<from>\s*from\b)?"
)

_EXPORT_STAR_RE = re.compile(r"\bexport\s+\*\s*(?:as\s+(?P<name>\w+)\s+)?from\b")

_METHOD_EXCLUDED = frozenset({
    "if", "for", "while", "switch", "catch", "function", "return", "with",
    "super", "new", "else", "do", "try",
})

_KIND_MAP = {
    "function": "function",
    "function*": "function",
    "class": "class",
    "interface": "interface",
    "type": "type",
    "enum": "enum",
    "const": "const",
    "let": "const",
    "var": "const",
}

_COMPONENT_LANGUAGES = frozenset({"vue", "svelte"})


def script_view(content: str, language: str) -> str:
    """Return *content* with everything outside ``<script>`` blocks blanked.

    Only applies to single-file component languages; other content is
    returned unchanged. Offsets and line breaks are preserved.
    """
    if language not in _COMPONENT_LANGUAGES:
        return content
    chars = [c if c == "\n" else " " for c in content]
    for match in _SCRIPT_BLOCK_RE.finditer(content):
        start, end = match.span(2)
        chars[start:end] = content[start:end]
    return "".join(chars)


class HeuristicStrategy:
    """Pattern-based fallback strategy that accepts any language tag."""

    name = "heuristic"

    def supports(self, language: str) -> bool:
        return True

    def parse(self, file: SourceFile) -> CodeStructure:
        raw = script_view(file.content, file.language)
        return _HeuristicParser(raw, file.path).collect()


class _HeuristicParser:
    def __init__(self, raw: str, file_path: str) -> None:
        self.raw = raw
        self.masked = mask_source(raw)
        self.lines = LineIndex(raw)
        self.file_path = file_path

    def collect(self) -> CodeStructure:
        classes, methods = self._classes()
        functions = self._functions() + methods
        functions.sort(key=lambda f: (f.start_line, f.name))
        return CodeStructure(
            functions=functions,
            classes=classes,
            interfaces=self._interfaces(),
            types=self._type_aliases(),
            exports=self._exports(),
        )

    # ------------------------------------------------------------------

    def _body_end(self, open_index: int) -> int:
        close = find_matching_brace(self.masked, open_index)
        return close if close != -1 else len(self.masked) - 1

    def _group(self, match: re.Match, name: str) -> str | None:
        """Raw text of a named group (the masked text hides literals)."""
        if match.group(name) is None:
            return None
        start, end = match.span(name)
        return self.raw[start:end].strip()

    def _functions(self) -> list[FunctionInfo]:
        functions: list[FunctionInfo] = []

        for m in _FUNCTION_RE.finditer(self.masked):
            open_index = m.end() - 1
            close = self._body_end(open_index)
            functions.append(
                FunctionInfo(
                    name=m.group("name"),
                    file_path=self.file_path,
                    start_line=self.lines.line_of(m.start()),
                    end_line=self.lines.line_of(close),
                    parameters=parse_parameters(self._group(m, "params") or ""),
                    return_type=self._group(m, "ret"),
                    is_async=bool(m.group("async")),
                    is_exported=bool(m.group("export")),
                    complexity=cyclomatic_complexity(self.raw[open_index:close + 1]),
                    calls_to=find_calls(self.masked[open_index:close + 1]),
                    kind="generator" if m.group("gen") else "function",
                )
            )

        for m in _ARROW_RE.finditer(self.masked):
            body_start = m.end()
            while body_start < len(self.masked) and self.masked[body_start].isspace():
                body_start += 1
            if body_start < len(self.masked) and self.masked[body_start] == "{":
                body_end = self._body_end(body_start)
            else:
                # Expression body: runs to the end of the statement
                newline = self.masked.find("\n", body_start)
                semicolon = self.masked.find(";", body_start)
                candidates = [i for i in (newline, semicolon) if i != -1]
                body_end = min(candidates) if candidates else len(self.masked) - 1

            if m.group("single"):
                params = parse_parameters(m.group("single"))
            else:
                params = parse_parameters(self._group(m, "params") or "")

            functions.append(
                FunctionInfo(
                    name=m.group("name"),
                    file_path=self.file_path,
                    start_line=self.lines.line_of(m.start()),
                    end_line=self.lines.line_of(body_end),
                    parameters=params,
                    return_type=self._group(m, "ret"),
                    is_async=bool(m.group("async")),
                    is_exported=bool(m.group("export")),
                    complexity=cyclomatic_complexity(self.raw[body_start:body_end + 1]),
                    calls_to=find_calls(self.masked[body_start:body_end + 1]),
                    kind="arrow",
                )
            )

        return functions

    def _classes(self) -> tuple[list[ClassInfo], list[FunctionInfo]]:
        classes: list[ClassInfo] = []
        methods: list[FunctionInfo] = []

        for m in _CLASS_RE.finditer(self.masked):
            name = m.group("name")
            body_open = m.end() - 1
            body_close = self._body_end(body_open)
            class_methods = self._methods(name, body_open + 1, body_close)
            methods.extend(class_methods)

            impl = self._group(m, "impl")
            classes.append(
                ClassInfo(
                    name=name,
                    file_path=self.file_path,
                    start_line=self.lines.line_of(m.start()),
                    end_line=self.lines.line_of(body_close),
                    methods=[fn.name for fn in class_methods],
                    superclass=m.group("super"),
                    interfaces=split_top_level(impl) if impl else [],
                    is_exported=bool(m.group("export")),
                )
            )

        return classes, methods

    def _methods(self, class_name: str, start: int, end: int) -> list[FunctionInfo]:
        methods: list[FunctionInfo] = []
        pos = start
        while True:
            m = _METHOD_RE.search(self.masked, pos, end)
            if m is None:
                break
            open_index = m.end() - 1
            close = self._body_end(open_index)
            pos = close + 1
            name = m.group("name")
            if name in _METHOD_EXCLUDED:
                continue
            mods = m.group("mods") or ""
            methods.append(
                FunctionInfo(
                    name=name,
                    file_path=self.file_path,
                    start_line=self.lines.line_of(m.start("mods")),
                    end_line=self.lines.line_of(close),
                    parameters=parse_parameters(self._group(m, "params") or ""),
                    return_type=self._group(m, "ret"),
                    is_async="async" in mods.split(),
                    complexity=cyclomatic_complexity(self.raw[open_index:close + 1]),
                    calls_to=find_calls(self.masked[open_index:close + 1]),
                    kind="generator" if m.group("gen") else "method",
                    class_name=class_name,
                )
            )
        return methods

    def _interfaces(self) -> list[InterfaceInfo]:
        interfaces: list[InterfaceInfo] = []
        for m in _INTERFACE_RE.finditer(self.masked):
            body_open = m.end() - 1
            body_close = self._body_end(body_open)
            body = self.masked[body_open + 1:body_close]
            ext = self._group(m, "ext")
            interfaces.append(
                InterfaceInfo(
                    name=m.group("name"),
                    file_path=self.file_path,
                    start_line=self.lines.line_of(m.start()),
                    end_line=self.lines.line_of(body_close),
                    extends=split_top_level(ext) if ext else [],
                    properties=[p.group("name") for p in _INTERFACE_MEMBER_RE.finditer(body)],
                    is_exported=bool(m.group("export")),
                )
            )
        return interfaces

    def _type_aliases(self) -> list[TypeAliasInfo]:
        types: list[TypeAliasInfo] = []
        for m in _TYPE_ALIAS_RE.finditer(self.masked):
            line = self.lines.line_of(m.start())
            types.append(
                TypeAliasInfo(
                    name=m.group("name"),
                    file_path=self.file_path,
                    start_line=line,
                    end_line=self.lines.line_of(m.end("def")),
                    definition=" ".join((self._group(m, "def") or "").split()),
                    is_exported=bool(m.group("export")),
                )
            )
        return types

    def _exports(self) -> list[ExportInfo]:
        found: list[tuple[int, ExportInfo]] = []

        def add(offset: int, name: str, kind: str) -> None:
            found.append((
                offset,
                ExportInfo(
                    name=name,
                    kind=kind,
                    file_path=self.file_path,
                    line=self.lines.line_of(offset),
                ),
            ))

        for m in _EXPORT_DECL_RE.finditer(self.masked):
            kind = "default" if m.group("default") else _KIND_MAP[m.group("kind")]
            add(m.start(), m.group("name"), kind)
        for m in _EXPORT_DEFAULT_EXPR_RE.finditer(self.masked):
            add(m.start(), m.group("name") or "default", "default")
        for m in _EXPORT_CLAUSE_RE.finditer(self.masked):
            kind = "reexport" if m.group("from") else "named"
            for spec in split_top_level(m.group("names")):
                parts = spec.split()
                # ``a as b`` exports ``b``
                add(m.start(), parts[-1], kind)
        for m in _EXPORT_STAR_RE.finditer(self.masked):
            add(m.start(), m.group("name") or "*", "reexport")

        found.sort(key=lambda item: item[0])
        return [export for _, export in found]
