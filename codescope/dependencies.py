"""Import dependency graph: extraction, resolution, cycles and rankings.

Import extraction is per file and runs in the parallel phase. Graph
assembly, cycle detection and rankings run once in the reducer.
"""

from __future__ import annotations

import logging
import posixpath
import re
from collections import Counter
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Protocol

from . import constants
from .config import AnalyzerConfig
from .intake import node_id
from .models import (
    DependencyEdge,
    DependencyGraph,
    DependencyNode,
    EdgeKind,
    NodeKind,
    RankedNode,
    SourceFile,
    UnresolvedImport,
)
from .parsing import LineIndex, mask_comments, script_view

logger = logging.getLogger(__name__)

_IMPORT_PATTERNS: tuple[tuple[re.Pattern[str], EdgeKind], ...] = (
    (
        re.compile(
            r"\bimport\s+(?:type\s+)?"
            r"(?:(?:[\w$]+\s*,\s*)?(?:\{[^}]*\}|\*\s*as\s+[\w$]+)\s*from\s*|[\w$]+\s+from\s*)?"
            r"['\"]([^'\"]+)['\"]"
        ),
        EdgeKind.IMPORT,
    ),
    (
        re.compile(
            r"\bexport\s+(?:type\s+)?(?:\*(?:\s*as\s+[\w$]+)?|\{[^}]*\})\s*from\s*['\"]([^'\"]+)['\"]"
        ),
        EdgeKind.IMPORT,
    ),
    (re.compile(r"\brequire\s*\(\s*['\"]([^'\"]+)['\"]\s*\)"), EdgeKind.REQUIRE),
    (re.compile(r"\bimport\s*\(\s*['\"]([^'\"]+)['\"]\s*\)"), EdgeKind.DYNAMIC),
)


@dataclass(frozen=True)
class ImportRef:
    """One import target string found in a file."""

    target: str
    kind: EdgeKind
    line: int


@dataclass(frozen=True)
class ResolvedTarget:
    """Outcome of resolving an import target.

    ``kind`` is ``"file"`` (``id`` is a file node ID), ``"package"`` (``id`` is
    the package name), ``"asset"`` (ignored) or ``"unresolved"``.
    """

    kind: str
    id: str = ""


class ModuleResolver(Protocol):
    """Resolution backend used by the graph builder.

    Implementations raise ``ResolverUnavailableError`` when they cannot
    operate at all; the engine then degrades the dependency section.
    """

    def resolve(self, source_path: str, target: str) -> ResolvedTarget: ...


def package_name(target: str) -> str:
    """First path segment of a bare specifier; scoped packages keep two."""
    parts = target.split("/")
    if target.startswith("@") and len(parts) > 1:
        return "/".join(parts[:2])
    return parts[0]


class PathResolver:
    """Resolves relative and aliased imports against the known file IDs."""

    def __init__(self, file_ids: Iterable[str], aliases: Mapping[str, str] | None = None) -> None:
        self.file_ids = set(file_ids)
        # Longest prefix first so ``@/lib/`` beats ``@/``
        self.aliases = sorted((aliases or {}).items(), key=lambda kv: -len(kv[0]))

    def resolve(self, source_path: str, target: str) -> ResolvedTarget:
        if posixpath.splitext(target)[1].lower() in constants.ASSET_EXTENSIONS:
            return ResolvedTarget("asset")

        for prefix, base in self.aliases:
            if target.startswith(prefix):
                return self._file(posixpath.join(base, target[len(prefix):]))

        if target.startswith("."):
            return self._file(posixpath.join(posixpath.dirname(source_path), target))
        if target.startswith("/"):
            return self._file(target.lstrip("/"))

        return ResolvedTarget("package", package_name(target))

    def _file(self, candidate: str) -> ResolvedTarget:
        normalized = posixpath.normpath(candidate) if candidate else "."
        if normalized == ".":
            normalized = "index"
        if normalized.startswith(".."):
            return ResolvedTarget("unresolved")
        file_id = node_id(normalized)
        if file_id in self.file_ids:
            return ResolvedTarget("file", file_id)
        return ResolvedTarget("unresolved")


ResolverFactory = Callable[[Iterable[str], Mapping[str, str]], ModuleResolver]


def find_cycles(adjacency: Mapping[str, Sequence[str]], max_cycles: int) -> list[list[str]]:
    """Iterative DFS cycle detection with an explicit stack and on-stack set.

    When traversal reaches a node that is already on the stack, the path from
    that node's first occurrence to the current node is a cycle. Cycles are
    deduplicated by rotation; self-loops are ignored.
    """
    cycles: list[list[str]] = []
    if max_cycles <= 0:
        return cycles

    seen: set[tuple[str, ...]] = set()
    visited: set[str] = set()

    for root in adjacency:
        if root in visited:
            continue
        visited.add(root)
        path = [root]
        on_stack = {root}
        stack = [(root, iter(adjacency.get(root, ())))]

        while stack:
            node, neighbors = stack[-1]
            nxt = next(neighbors, None)
            if nxt is None:
                stack.pop()
                path.pop()
                on_stack.discard(node)
                continue
            if nxt == node:
                continue
            if nxt in on_stack:
                cycle = path[path.index(nxt):]
                key = _rotation_key(cycle)
                if key not in seen:
                    seen.add(key)
                    cycles.append(cycle)
                    if len(cycles) >= max_cycles:
                        return cycles
            elif nxt not in visited:
                visited.add(nxt)
                on_stack.add(nxt)
                path.append(nxt)
                stack.append((nxt, iter(adjacency.get(nxt, ()))))

    return cycles


def _rotation_key(cycle: list[str]) -> tuple[str, ...]:
    start = cycle.index(min(cycle))
    return tuple(cycle[start:] + cycle[:start])


class DependencyGraphBuilder:
    """Builds the import graph of a run.

    Usage::

        builder = DependencyGraphBuilder(config)
        imports = {f.path: builder.extract_imports(f) for f in files}
        graph = builder.build(files, imports)
    """

    def __init__(
        self,
        config: AnalyzerConfig,
        resolver_factory: ResolverFactory | None = None,
    ) -> None:
        self.config = config
        self.resolver_factory: ResolverFactory = resolver_factory or PathResolver

    def extract_imports(self, file: SourceFile) -> list[ImportRef]:
        """Import/require/dynamic-import targets of *file*, in source order."""
        masked = mask_comments(script_view(file.content, file.language))
        lines = LineIndex(masked)
        found: list[tuple[int, ImportRef]] = []
        for pattern, kind in _IMPORT_PATTERNS:
            for match in pattern.finditer(masked):
                offset = match.start(1)
                found.append((offset, ImportRef(match.group(1), kind, lines.line_of(offset))))
        found.sort(key=lambda item: item[0])
        return [ref for _, ref in found]

    def build(
        self,
        files: Sequence[SourceFile],
        imports: Mapping[str, Sequence[ImportRef]],
        complexity: Mapping[str, int] | None = None,
    ) -> DependencyGraph:
        """Assemble nodes and edges, then derive cycles, orphans and rankings.

        Args:
            files: The normalized file set.
            imports: Import references keyed by file path. Files missing from
                the mapping (failed extraction) contribute no edges.
            complexity: Optional summed function complexity per file path.

        Raises:
            ResolverUnavailableError: Propagated from the resolver.
        """
        complexity = complexity or {}
        nodes: dict[str, DependencyNode] = {}
        for file in files:
            file_id = node_id(file.path)
            nodes[file_id] = DependencyNode(
                id=file_id,
                kind=NodeKind.FILE,
                name=posixpath.basename(file.path),
                path=file.path,
                size=file.size,
                complexity=complexity.get(file.path),
            )
        file_ids = list(nodes)
        resolver = self.resolver_factory(file_ids, self.config.path_aliases)

        edges: list[DependencyEdge] = []
        edge_keys: set[tuple[str, str, EdgeKind]] = set()
        unresolved: list[UnresolvedImport] = []

        for file in files:
            source = node_id(file.path)
            for ref in imports.get(file.path, ()):
                resolved = resolver.resolve(file.path, ref.target)
                if resolved.kind == "file":
                    target = resolved.id
                elif resolved.kind == "package":
                    target = self._package_node(nodes, resolved.id)
                elif resolved.kind == "unresolved":
                    unresolved.append(UnresolvedImport(file_path=file.path, target=ref.target))
                    continue
                else:
                    continue

                key = (source, target, ref.kind)
                if key in edge_keys:
                    continue
                edge_keys.add(key)
                edges.append(DependencyEdge(source=source, target=target, kind=ref.kind))

        adjacency: dict[str, list[str]] = {file_id: [] for file_id in file_ids}
        for edge in edges:
            if edge.target in adjacency and edge.target not in adjacency[edge.source]:
                adjacency[edge.source].append(edge.target)
        cycles = find_cycles(adjacency, self.config.max_cycles)

        touched = {e.source for e in edges} | {e.target for e in edges}
        orphans = [
            node.path
            for node in nodes.values()
            if node.kind is NodeKind.FILE and node.id not in touched
        ]

        fan_in = Counter(e.target for e in edges)
        fan_out = Counter(e.source for e in edges)

        logger.debug(
            f"Dependency graph built: {len(nodes)} nodes, {len(edges)} edges, "
            f"{len(cycles)} cycles",
            extra={"event": "graph_built", "stage": "dependencies"},
        )

        return DependencyGraph(
            nodes=list(nodes.values()),
            edges=edges,
            circular_dependencies=cycles,
            orphan_files=orphans,
            most_imported=self._ranking(fan_in),
            most_dependent=self._ranking(fan_out),
            unresolved_imports=unresolved,
        )

    @staticmethod
    def _package_node(nodes: dict[str, DependencyNode], name: str) -> str:
        package_id = name
        existing = nodes.get(package_id)
        if existing is not None and existing.kind is NodeKind.FILE:
            # A local file already owns this ID
            package_id = f"pkg:{name}"
        if package_id not in nodes:
            nodes[package_id] = DependencyNode(
                id=package_id, kind=NodeKind.PACKAGE, name=name, path=name
            )
        return package_id

    def _ranking(self, counts: Counter[str]) -> list[RankedNode]:
        ranked = sorted(counts.items(), key=lambda kv: -kv[1])
        return [RankedNode(id=node, count=count) for node, count in ranked[: self.config.top_n]]
