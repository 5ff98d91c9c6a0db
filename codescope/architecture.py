"""
Architecture and design-pattern detection.

Classifies files into layers by path, recognizes common design patterns
from the extracted structure and file content, and collects API endpoints,
data-flow edges, technology signatures and the environment variables the
code reads.
"""

from __future__ import annotations

import logging
import posixpath
import re
from collections.abc import Sequence

from .models import (
    ArchitectureInfo,
    CodeStructure,
    DataFlowEdge,
    DetectedPattern,
    Endpoint,
    EnvVarInfo,
    Layer,
    LayerType,
    SourceFile,
)
from .parsing import LineIndex, mask_comments

logger = logging.getLogger(__name__)

# First match wins
_LAYER_RULES: tuple[tuple[str, LayerType, re.Pattern[str]], ...] = (
    ("Presentation", LayerType.PRESENTATION, re.compile(r"component|page|view")),
    ("Business Logic", LayerType.BUSINESS, re.compile(r"service|controller|handler")),
    ("Data Access", LayerType.DATA, re.compile(r"model|schema|(?<![a-z])db(?![a-z])")),
    ("Shared", LayerType.SHARED, re.compile(r"util|helper|type")),
)

_HTTP_METHODS = "GET|POST|PUT|PATCH|DELETE|HEAD|OPTIONS"

_NEXT_ROUTE_FILE = re.compile(r"(?:^|/)app/(?P<route>(?:.*/)?)route\.[jt]sx?$")
_NEXT_PAGES_API_FILE = re.compile(r"(?:^|/)pages/api/(?P<route>.+)\.[jt]sx?$")
_DEFAULT_EXPORT = re.compile(r"\bexport\s+default\b")
_NEXT_HANDLER = re.compile(
    rf"\bexport\s+(?:async\s+function\s+|function\s+|const\s+)(?P<method>{_HTTP_METHODS})\b"
)
_EXPRESS_ROUTE = re.compile(
    r"\b(?P<router>app|router|server|api)\.(?P<method>get|post|put|patch|delete|all)\s*\(\s*"
    r"['\"`](?P<path>/[^'\"`]*)['\"`]\s*(?:,\s*(?!async\b|function\b)(?P<handler>[\w$.]+)\s*[,)])?"
)

_FETCH_CALL = re.compile(r"\bfetch\s*\(\s*['\"`](?P<url>[^'\"`]+)['\"`]")
_AXIOS_CALL = re.compile(
    r"\baxios(?:\.(?:get|post|put|patch|delete|request))?\s*\(\s*['\"`](?P<url>[^'\"`]+)['\"`]"
)
_PRISMA_CALL = re.compile(r"\bprisma\.(?P<model>[A-Za-z_]\w*)\.")
_DB_CALL = re.compile(r"\.(?:query|execute)\s*\(")

_SINGLETON_STATIC = re.compile(r"\bstatic\s+(?:async\s+)?getInstance\s*\(")
_PRIVATE_CONSTRUCTOR = re.compile(r"\bprivate\s+constructor\s*\(")
_FACTORY_NAME = re.compile(r"\b\w*Factory\b|\bfactory\b")
_CREATE_CALL = re.compile(r"\bcreate[A-Z]\w*\s*[(<]")
_SUBSCRIBE = re.compile(r"\bsubscribe\s*\(")
_NOTIFY = re.compile(r"\b(?:notify\w*|emit|unsubscribe)\s*\(")

_TECHNOLOGIES: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("React", re.compile(r"from\s+['\"]react['\"]|\bimport\s+React\b|require\(\s*['\"]react['\"]\s*\)")),
    ("Next.js", re.compile(r"from\s+['\"]next(?:/[^'\"]*)?['\"]")),
    ("Prisma", re.compile(r"@prisma/client")),
    ("Express", re.compile(r"from\s+['\"]express['\"]|require\(\s*['\"]express['\"]\s*\)")),
    ("Tailwind CSS", re.compile(r"tailwind", re.IGNORECASE)),
    ("Zod", re.compile(r"from\s+['\"]zod['\"]")),
    ("Redux", re.compile(r"@reduxjs/toolkit|\bcreateSlice\s*\(|from\s+['\"](?:react-)?redux['\"]")),
    ("GraphQL", re.compile(r"graphql|\bgql`")),
)

_NEXT_APP_FILES = re.compile(r"(?:^|/)app/(?:.*/)?(?:page|layout|route)\.[jt]sx?$")

_ENV_VAR = re.compile(
    r"\bprocess\.env\.(?P<dot>[A-Za-z_$][\w$]*)"
    r"|\bprocess\.env\[\s*['\"](?P<key>[^'\"]+)['\"]\s*\]"
    r"|(?<![\w$.])env\(\s*['\"](?P<call>[^'\"]+)['\"]"
)


def classify_layer(path: str) -> tuple[str, LayerType] | None:
    lowered = path.lower()
    for name, layer_type, pattern in _LAYER_RULES:
        if pattern.search(lowered):
            return name, layer_type
    return None


def _route_path(raw: str) -> str:
    """Turn a route directory into a URL path, dropping ``(group)`` segments."""
    segments = [
        s for s in raw.strip("/").split("/")
        if s and not (s.startswith("(") and s.endswith(")"))
    ]
    return "/" + "/".join(segments)


class ArchitectureDetector:
    """Derives patterns and architecture information for a run."""

    def detect(
        self,
        files: Sequence[SourceFile],
        structure: CodeStructure,
    ) -> tuple[list[DetectedPattern], ArchitectureInfo]:
        masked = {f.path: mask_comments(f.content) for f in files}
        patterns = self.detect_patterns(files, structure, masked)
        info = ArchitectureInfo(
            layers=self.detect_layers(files),
            endpoints=self.detect_endpoints(files, masked),
            data_flow=self.detect_data_flow(files, masked),
            technologies=self.detect_technologies(files),
            env_vars=self.detect_env_vars(files, masked),
        )
        return patterns, info

    def detect_layers(self, files: Sequence[SourceFile]) -> list[Layer]:
        grouped: dict[str, list[str]] = {}
        for file in files:
            match = classify_layer(file.path)
            if match is not None:
                grouped.setdefault(match[0], []).append(file.path)
        return [
            Layer(name=name, type=layer_type, files=grouped[name])
            for name, layer_type, _ in _LAYER_RULES
            if name in grouped
        ]

    def detect_patterns(
        self,
        files: Sequence[SourceFile],
        structure: CodeStructure,
        masked: dict[str, str],
    ) -> list[DetectedPattern]:
        found: dict[str, list[str]] = {}

        def add(name: str, path: str) -> None:
            paths = found.setdefault(name, [])
            if path not in paths:
                paths.append(path)

        for cls in structure.classes:
            if "Repository" in cls.name:
                add("Repository", cls.file_path)
        for iface in structure.interfaces:
            if "Repository" in iface.name:
                add("Repository", iface.file_path)

        for file in files:
            text = masked[file.path]
            if _SINGLETON_STATIC.search(text) or (
                "getInstance" in text and _PRIVATE_CONSTRUCTOR.search(text)
            ):
                add("Singleton", file.path)
            if _FACTORY_NAME.search(text) and _CREATE_CALL.search(text):
                add("Factory", file.path)
            if _SUBSCRIBE.search(text) and _NOTIFY.search(text):
                add("Observer", file.path)

        order = ("Repository", "Singleton", "Factory", "Observer")
        return [DetectedPattern(name=name, files=found[name]) for name in order if name in found]

    def detect_endpoints(self, files: Sequence[SourceFile], masked: dict[str, str]) -> list[Endpoint]:
        endpoints: list[Endpoint] = []
        for file in files:
            text = masked[file.path]
            lines = LineIndex(text)

            route_file = _NEXT_ROUTE_FILE.search(file.path)
            if route_file:
                route = _route_path(route_file.group("route"))
                for m in _NEXT_HANDLER.finditer(text):
                    endpoints.append(
                        Endpoint(
                            method=m.group("method"),
                            path=route,
                            handler=m.group("method"),
                            file_path=file.path,
                            line=lines.line_of(m.start()),
                        )
                    )

            pages_api = _NEXT_PAGES_API_FILE.search(file.path)
            default_export = _DEFAULT_EXPORT.search(text) if pages_api else None
            if pages_api and default_export:
                route = pages_api.group("route")
                if route == "index" or route.endswith("/index"):
                    route = posixpath.dirname(route)
                endpoints.append(
                    Endpoint(
                        method="ALL",
                        path=_route_path("api/" + route),
                        handler="default",
                        file_path=file.path,
                        line=lines.line_of(default_export.start()),
                    )
                )

            for m in _EXPRESS_ROUTE.finditer(text):
                endpoints.append(
                    Endpoint(
                        method=m.group("method").upper(),
                        path=m.group("path"),
                        handler=m.group("handler") or "anonymous",
                        file_path=file.path,
                        line=lines.line_of(m.start()),
                    )
                )
        return endpoints

    def detect_data_flow(self, files: Sequence[SourceFile], masked: dict[str, str]) -> list[DataFlowEdge]:
        edges: list[DataFlowEdge] = []
        seen: set[tuple[str, str, str]] = set()

        def add(source: str, target: str, flow_type: str) -> None:
            key = (source, target, flow_type)
            if key not in seen:
                seen.add(key)
                edges.append(DataFlowEdge(source=source, target=target, type=flow_type))

        for file in files:
            text = masked[file.path]
            for pattern in (_FETCH_CALL, _AXIOS_CALL):
                for m in pattern.finditer(text):
                    add(file.path, m.group("url"), "api_call")
            for m in _PRISMA_CALL.finditer(text):
                add(file.path, f"prisma.{m.group('model')}", "database")
            if _DB_CALL.search(text):
                add(file.path, "database", "database")
        return edges

    def detect_technologies(self, files: Sequence[SourceFile]) -> list[str]:
        found: set[str] = set()
        for file in files:
            if file.language in ("typescript", "tsx"):
                found.add("TypeScript")
            if _NEXT_APP_FILES.search(file.path):
                found.add("Next.js")
            for name, pattern in _TECHNOLOGIES:
                if name not in found and pattern.search(file.content):
                    found.add(name)
        ordered = [name for name, _ in _TECHNOLOGIES]
        ordered.insert(ordered.index("Tailwind CSS"), "TypeScript")
        return [name for name in ordered if name in found]

    def detect_env_vars(self, files: Sequence[SourceFile], masked: dict[str, str]) -> list[EnvVarInfo]:
        """Environment variables in order of first use, with the files using them."""
        used_in: dict[str, list[str]] = {}
        for file in files:
            for m in _ENV_VAR.finditer(masked[file.path]):
                name = m.group("dot") or m.group("key") or m.group("call")
                paths = used_in.setdefault(name, [])
                if file.path not in paths:
                    paths.append(file.path)
        return [EnvVarInfo(name=name, used_in=paths) for name, paths in used_in.items()]
