"""Configuration models for the codescope analysis engine."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator
from pydantic.alias_generators import to_camel

from . import constants
from .core.exceptions import InvalidConfigError


class _SettingsModel(BaseModel):
    """Accepts snake_case or camelCase keys and rejects unknown ones."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


class ComplexityThresholds(_SettingsModel):
    """Upper bounds of the complexity distribution buckets."""

    low: int = Field(default=constants.COMPLEXITY_LOW, ge=1)
    medium: int = Field(default=constants.COMPLEXITY_MEDIUM, ge=1)
    high: int = Field(default=constants.COMPLEXITY_HIGH, ge=1)

    @model_validator(mode="after")
    def _check_order(self) -> "ComplexityThresholds":
        if not self.low < self.medium < self.high:
            raise ValueError("complexity thresholds must satisfy low < medium < high")
        return self


class SmellThresholds(_SettingsModel):
    """Limits used by the function-level code smell rules."""

    long_function_lines: int = Field(default=constants.LONG_FUNCTION_LINES, ge=1)
    critical_function_lines: int = Field(default=constants.CRITICAL_FUNCTION_LINES, ge=1)
    max_parameters: int = Field(default=constants.MAX_PARAMETERS, ge=0)
    deep_nesting_indent: int = Field(default=constants.DEEP_NESTING_INDENT, ge=1)


class MaintainabilityThresholds(_SettingsModel):
    """Steps of the maintainability score and what each one costs."""

    complexity_high: float = Field(default=constants.MAINTAINABILITY_COMPLEXITY_HIGH, ge=0)
    complexity_moderate: float = Field(default=constants.MAINTAINABILITY_COMPLEXITY_MODERATE, ge=0)
    documentation_low: float = Field(
        default=constants.MAINTAINABILITY_DOCUMENTATION_LOW, ge=0, le=100
    )
    documentation_moderate: float = Field(
        default=constants.MAINTAINABILITY_DOCUMENTATION_MODERATE, ge=0, le=100
    )
    duplication_high: float = Field(
        default=constants.MAINTAINABILITY_DUPLICATION_HIGH, ge=0, le=100
    )
    duplication_moderate: float = Field(
        default=constants.MAINTAINABILITY_DUPLICATION_MODERATE, ge=0, le=100
    )
    high_penalty: int = Field(default=constants.MAINTAINABILITY_HIGH_PENALTY, ge=0)
    moderate_penalty: int = Field(default=constants.MAINTAINABILITY_MODERATE_PENALTY, ge=0)
    critical_smell_penalty: int = Field(
        default=constants.MAINTAINABILITY_CRITICAL_SMELL_PENALTY, ge=0
    )
    major_smell_limit: int = Field(default=constants.MAINTAINABILITY_MAJOR_SMELL_LIMIT, ge=0)
    major_smells_penalty: int = Field(
        default=constants.MAINTAINABILITY_MAJOR_SMELLS_PENALTY, ge=0
    )

    @model_validator(mode="after")
    def _check_order(self) -> "MaintainabilityThresholds":
        if not (
            self.complexity_moderate < self.complexity_high
            and self.documentation_low < self.documentation_moderate
            and self.duplication_moderate < self.duplication_high
        ):
            raise ValueError("each moderate step must be milder than its high step")
        return self


class ScoringWeights(_SettingsModel):
    """Weights of the overall quality score; they should sum to 1."""

    maintainability: float = Field(default=0.3, ge=0)
    complexity: float = Field(default=0.2, ge=0)
    documentation: float = Field(default=0.2, ge=0)
    duplication: float = Field(default=0.15, ge=0)
    smells: float = Field(default=0.15, ge=0)


class AnalyzerConfig(_SettingsModel):
    """Settings carried by an ``AnalysisEngine`` instance."""

    extensions: dict[str, str] = Field(
        default_factory=lambda: dict(constants.SOURCE_EXTENSIONS),
        description="Allowed source extensions mapped to language tags",
    )
    excluded_dirs: set[str] = Field(
        default_factory=lambda: set(constants.EXCLUDED_DIRS),
        description="Directory names whose files are never analyzed",
    )
    path_aliases: dict[str, str] = Field(
        default_factory=lambda: dict(constants.DEFAULT_PATH_ALIASES),
        description="Import prefixes rewritten to a repository-relative path",
    )
    max_workers: int = Field(
        default=constants.DEFAULT_MAX_WORKERS, ge=1, description="Worker pool size"
    )
    time_budget_seconds: float | None = Field(
        default=constants.DEFAULT_TIME_BUDGET_SECONDS,
        gt=0,
        description="Deadline after which the run is returned as partial (None disables it)",
    )
    max_total_bytes: int = Field(default=constants.MAX_TOTAL_BYTES, ge=1)
    max_file_bytes: int = Field(default=constants.MAX_FILE_BYTES, ge=1)
    max_line_length: int = Field(
        default=constants.MAX_LINE_LENGTH,
        ge=1,
        description="Files with a longer line are treated as minified and skipped",
    )
    scan_line_limit: int = Field(default=constants.SCAN_LINE_LIMIT, ge=1)
    snippet_length: int = Field(default=constants.SNIPPET_LENGTH, ge=1)
    nested_loop_window: int = Field(default=constants.NESTED_LOOP_WINDOW, ge=1)
    use_tree_sitter: bool = Field(
        default=True, description="Parse JS/TS with tree-sitter instead of the heuristic strategy"
    )
    max_cycles: int = Field(default=constants.MAX_REPORTED_CYCLES, ge=0)
    top_n: int = Field(default=constants.TOP_N_RANKING, ge=1)
    complexity: ComplexityThresholds = Field(default_factory=ComplexityThresholds)
    duplication_window: int = Field(default=constants.DUPLICATION_WINDOW, ge=1)
    duplication_min_chars: int = Field(default=constants.DUPLICATION_MIN_CHARS, ge=0)
    smells: SmellThresholds = Field(default_factory=SmellThresholds)
    maintainability: MaintainabilityThresholds = Field(default_factory=MaintainabilityThresholds)
    scoring: ScoringWeights = Field(default_factory=ScoringWeights)
    max_code_smells: int = Field(default=constants.MAX_CODE_SMELLS_REPORTED, ge=0)
    max_undocumented: int = Field(default=constants.MAX_UNDOCUMENTED_REPORTED, ge=0)

    @classmethod
    def from_mapping(cls, data: dict[str, Any] | None) -> "AnalyzerConfig":
        """Build a config from untrusted input (e.g. a tool call argument).

        Raises:
            InvalidConfigError: If the mapping fails validation.
        """
        try:
            return cls.model_validate(data or {})
        except ValidationError as e:
            raise InvalidConfigError(f"Invalid analyzer configuration: {e}") from e
