"""Pydantic models for codebase analysis inputs and results.

This module defines the data model shared by every analyzer: the immutable
``SourceFile`` input, per-file structural records, the dependency graph,
issues, quality metrics, architecture information and the terminal
``AnalysisResult``.

All models are frozen. Attributes are snake_case in Python and serialize to
camelCase (``model_dump(by_alias=True)``) so the JSON shape matches what the
documentation and analytics consumers expect.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class Severity(str, Enum):
    """Severity levels for security and performance issues."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class IssueCategory(str, Enum):
    """Categories handled by the pattern scanner."""

    VULNERABILITY = "vulnerability"
    PERFORMANCE = "performance"


class SmellSeverity(str, Enum):
    """Severity levels for code smells."""

    MINOR = "minor"
    MAJOR = "major"
    CRITICAL = "critical"


class NodeKind(str, Enum):
    FILE = "file"
    PACKAGE = "package"


class EdgeKind(str, Enum):
    IMPORT = "import"
    REQUIRE = "require"
    DYNAMIC = "dynamic"


class LayerType(str, Enum):
    PRESENTATION = "presentation"
    BUSINESS = "business"
    DATA = "data"
    SHARED = "shared"


class AnalysisStatus(str, Enum):
    """Terminal state of one engine invocation."""

    COMPLETED = "completed"
    PARTIAL = "partial"


class FrozenModel(BaseModel):
    """Base for all engine models: immutable, camelCase on the wire."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


# ---------------------------------------------------------------------------
# Input
# ---------------------------------------------------------------------------


class SourceFile(FrozenModel):
    """A single file of the repository snapshot.

    Attributes:
        path: Repository-relative path as supplied by the caller.
        content: Raw file content.
        language: Language tag; empty when the caller did not provide one
            (intake detects it from the extension).
        size: Byte size of the UTF-8 encoded content. Computed when omitted.
    """

    path: str
    content: str
    language: str = ""
    size: int = 0

    @model_validator(mode="before")
    @classmethod
    def _fill_size(cls, data: object) -> object:
        if isinstance(data, dict) and data.get("size") is None:
            content = data.get("content") or ""
            data = {**data, "size": len(content.encode("utf-8"))}
        return data


class SkippedFile(FrozenModel):
    path: str
    reason: str


# ---------------------------------------------------------------------------
# Structure
# ---------------------------------------------------------------------------


class ParameterInfo(FrozenModel):
    name: str
    type: str | None = None
    optional: bool = False
    default_value: str | None = None


class FunctionInfo(FrozenModel):
    """A function, method, arrow function or generator.

    Attributes:
        name: Declared name (the variable name for arrow functions).
        file_path: Path of the owning file.
        start_line: 1-based first line of the declaration.
        end_line: 1-based last line of the body.
        parameters: Declared parameters in order.
        return_type: Annotated return type, if any.
        is_async: ``True`` when declared ``async``.
        is_exported: ``True`` when exported from its module.
        complexity: Cyclomatic complexity, never below 1.
        kind: One of ``"function"``, ``"arrow"``, ``"method"`` or
            ``"generator"``.
        class_name: Owning class for methods.
        calls_to: Names this function calls, in order of first call.
        called_by: Names of the functions in the run that call this one.
    """

    name: str
    file_path: str
    start_line: int
    end_line: int
    parameters: list[ParameterInfo] = Field(default_factory=list)
    return_type: str | None = None
    is_async: bool = False
    is_exported: bool = False
    complexity: int = Field(default=1, ge=1)
    kind: str = "function"
    class_name: str | None = None
    calls_to: list[str] = Field(default_factory=list)
    called_by: list[str] = Field(default_factory=list)

    @property
    def line_count(self) -> int:
        return self.end_line - self.start_line + 1


class ClassInfo(FrozenModel):
    name: str
    file_path: str
    start_line: int
    end_line: int
    methods: list[str] = Field(default_factory=list)
    superclass: str | None = None
    interfaces: list[str] = Field(default_factory=list)
    is_exported: bool = False


class InterfaceInfo(FrozenModel):
    name: str
    file_path: str
    start_line: int
    end_line: int
    extends: list[str] = Field(default_factory=list)
    properties: list[str] = Field(default_factory=list)
    is_exported: bool = False


class TypeAliasInfo(FrozenModel):
    name: str
    file_path: str
    start_line: int
    end_line: int
    definition: str = ""
    is_exported: bool = False


class ExportInfo(FrozenModel):
    """An exported symbol.

    ``kind`` is one of ``function``, ``class``, ``interface``, ``type``,
    ``const``, ``enum``, ``default`` or ``reexport``.
    """

    name: str
    kind: str
    file_path: str
    line: int


class CodeStructure(FrozenModel):
    """Structural elements of one file (a partial structure) or of a run."""

    functions: list[FunctionInfo] = Field(default_factory=list)
    classes: list[ClassInfo] = Field(default_factory=list)
    interfaces: list[InterfaceInfo] = Field(default_factory=list)
    types: list[TypeAliasInfo] = Field(default_factory=list)
    exports: list[ExportInfo] = Field(default_factory=list)

    @classmethod
    def combine(cls, parts: list[CodeStructure]) -> CodeStructure:
        """Concatenate per-file structures in the given order."""
        return cls(
            functions=[f for p in parts for f in p.functions],
            classes=[c for p in parts for c in p.classes],
            interfaces=[i for p in parts for i in p.interfaces],
            types=[t for p in parts for t in p.types],
            exports=[e for p in parts for e in p.exports],
        )


# Per-file output of a parsing strategy
PartialStructure = CodeStructure


class ParseFailure(FrozenModel):
    """Returned by the extractor instead of raising when a file cannot be parsed."""

    file_path: str
    strategy: str
    error: str


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------


class DependencyNode(FrozenModel):
    id: str
    kind: NodeKind
    name: str
    path: str
    size: int | None = None
    complexity: int | None = None


class DependencyEdge(FrozenModel):
    source: str
    target: str
    kind: EdgeKind


class RankedNode(FrozenModel):
    id: str
    count: int


class UnresolvedImport(FrozenModel):
    file_path: str
    target: str


class DependencyGraph(FrozenModel):
    """Import graph of a run. The all-empty instance is the degraded default."""

    nodes: list[DependencyNode] = Field(default_factory=list)
    edges: list[DependencyEdge] = Field(default_factory=list)
    circular_dependencies: list[list[str]] = Field(default_factory=list)
    orphan_files: list[str] = Field(default_factory=list)
    most_imported: list[RankedNode] = Field(default_factory=list)
    most_dependent: list[RankedNode] = Field(default_factory=list)
    unresolved_imports: list[UnresolvedImport] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Issues
# ---------------------------------------------------------------------------


class Issue(FrozenModel):
    """A security vulnerability or performance anti-pattern.

    Attributes:
        rule_id: Identifier of the rule that matched (e.g., ``"SEC017"``).
        kind: Issue kind such as ``"sql_injection"`` or ``"n_squared"``.
        category: Vulnerability or performance.
        severity: low, medium, high or critical.
        file_path: Path of the file containing the match.
        line: 1-based line number.
        message: Short human-readable description.
        remediation: Actionable remediation advice.
        code_snippet: Truncated source line.
        cwe_id: Optional CWE reference such as ``"CWE-95"``.
    """

    rule_id: str
    kind: str
    category: IssueCategory
    severity: Severity
    file_path: str
    line: int
    message: str
    remediation: str = ""
    code_snippet: str = ""
    cwe_id: str | None = None


class SecuritySummary(FrozenModel):
    total_issues: int = 0
    by_severity: dict[str, int] = Field(
        default_factory=lambda: {s.value: 0 for s in Severity}
    )
    by_kind: dict[str, int] = Field(default_factory=dict)
    affected_files: int = 0
    score: int = 100
    grade: str = "A"


# ---------------------------------------------------------------------------
# Quality
# ---------------------------------------------------------------------------


class LineMetrics(FrozenModel):
    total: int = 0
    code: int = 0
    comments: int = 0
    blank: int = 0


class ComplexityEntry(FrozenModel):
    name: str
    file_path: str
    value: int


class ComplexityDistribution(FrozenModel):
    low: int = 0
    medium: int = 0
    high: int = 0
    very_high: int = 0


class ComplexityMetrics(FrozenModel):
    average: float = 0.0
    highest: list[ComplexityEntry] = Field(default_factory=list)
    distribution: ComplexityDistribution = Field(default_factory=ComplexityDistribution)


class DuplicationMetrics(FrozenModel):
    percentage: float = 0.0
    duplicated_blocks: int = 0
    duplicated_lines: int = 0
    scanned_lines: int = 0


class DocumentationMetrics(FrozenModel):
    coverage: float = 100.0
    documented: int = 0
    total: int = 0
    undocumented_functions: list[str] = Field(default_factory=list)
    undocumented_classes: list[str] = Field(default_factory=list)
    undocumented_function_count: int = 0
    undocumented_class_count: int = 0


class CodeSmell(FrozenModel):
    rule_id: str
    type: str
    severity: SmellSeverity
    file_path: str
    line: int
    message: str
    suggestion: str = ""


class MaintainabilityScore(FrozenModel):
    score: int = 0
    grade: str = "F"
    issues: list[str] = Field(default_factory=list)


class TechnicalDebt(FrozenModel):
    minutes: int = 0
    rating: str = "A"


class TestCoverageEstimate(FrozenModel):
    __test__ = False  # not a pytest test class

    estimated: int = 0
    has_tests: bool = False
    test_files: int = 0


class OverallScore(FrozenModel):
    score: int = 0
    grade: str = "F"


class QualityMetrics(FrozenModel):
    line_metrics: LineMetrics = Field(default_factory=LineMetrics)
    complexity: ComplexityMetrics = Field(default_factory=ComplexityMetrics)
    duplication: DuplicationMetrics = Field(default_factory=DuplicationMetrics)
    documentation: DocumentationMetrics = Field(default_factory=DocumentationMetrics)
    code_smells: list[CodeSmell] = Field(default_factory=list)
    total_code_smells: int = 0
    maintainability: MaintainabilityScore = Field(default_factory=MaintainabilityScore)
    technical_debt: TechnicalDebt = Field(default_factory=TechnicalDebt)
    test_coverage: TestCoverageEstimate = Field(default_factory=TestCoverageEstimate)
    overall: OverallScore = Field(default_factory=OverallScore)


# ---------------------------------------------------------------------------
# Architecture
# ---------------------------------------------------------------------------


class DetectedPattern(FrozenModel):
    name: str
    files: list[str] = Field(default_factory=list)


class Layer(FrozenModel):
    name: str
    type: LayerType
    files: list[str] = Field(default_factory=list)


class Endpoint(FrozenModel):
    method: str
    path: str
    handler: str
    file_path: str
    line: int


class DataFlowEdge(FrozenModel):
    source: str = Field(alias="from")
    target: str = Field(alias="to")
    type: str


class EnvVarInfo(FrozenModel):
    """An environment variable read by the code, with the files reading it."""

    name: str
    used_in: list[str] = Field(default_factory=list)


class ArchitectureInfo(FrozenModel):
    layers: list[Layer] = Field(default_factory=list)
    endpoints: list[Endpoint] = Field(default_factory=list)
    data_flow: list[DataFlowEdge] = Field(default_factory=list)
    technologies: list[str] = Field(default_factory=list)
    env_vars: list[EnvVarInfo] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------


class AnalysisResult(FrozenModel):
    """The terminal aggregate of one engine invocation.

    Every section is always present; a section whose analysis failed holds
    its empty default instead of ``None``.
    """

    status: AnalysisStatus = AnalysisStatus.COMPLETED
    structure: CodeStructure = Field(default_factory=CodeStructure)
    dependencies: DependencyGraph = Field(default_factory=DependencyGraph)
    quality: QualityMetrics = Field(default_factory=QualityMetrics)
    security_issues: list[Issue] = Field(default_factory=list)
    performance_issues: list[Issue] = Field(default_factory=list)
    security_summary: SecuritySummary = Field(default_factory=SecuritySummary)
    patterns: list[DetectedPattern] = Field(default_factory=list)
    architecture: ArchitectureInfo = Field(default_factory=ArchitectureInfo)
    files_analyzed: int = 0
    skipped_files: list[SkippedFile] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    analysis_time_seconds: float = 0.0
