"""Joins the sub-results of a run into one immutable ``AnalysisResult``."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from .models import (
    AnalysisResult,
    AnalysisStatus,
    ArchitectureInfo,
    CodeStructure,
    DependencyGraph,
    DetectedPattern,
    Issue,
    QualityMetrics,
    SecuritySummary,
    SkippedFile,
)


@dataclass
class SectionResults:
    """Sub-results of a run. ``None`` marks a section that failed or never ran."""

    structure: CodeStructure | None = None
    dependencies: DependencyGraph | None = None
    quality: QualityMetrics | None = None
    security_issues: list[Issue] | None = None
    performance_issues: list[Issue] | None = None
    security_summary: SecuritySummary | None = None
    patterns: list[DetectedPattern] | None = None
    architecture: ArchitectureInfo | None = None


def aggregate(
    sections: SectionResults,
    *,
    status: AnalysisStatus,
    files_analyzed: int,
    skipped_files: Sequence[SkippedFile] = (),
    warnings: Sequence[str] = (),
    analysis_time_seconds: float = 0.0,
) -> AnalysisResult:
    """Build the final result, substituting the empty default for missing sections."""
    return AnalysisResult(
        status=status,
        structure=sections.structure if sections.structure is not None else CodeStructure(),
        dependencies=(
            sections.dependencies if sections.dependencies is not None else DependencyGraph()
        ),
        quality=sections.quality if sections.quality is not None else QualityMetrics(),
        security_issues=list(sections.security_issues or []),
        performance_issues=list(sections.performance_issues or []),
        security_summary=(
            sections.security_summary
            if sections.security_summary is not None
            else SecuritySummary()
        ),
        patterns=list(sections.patterns or []),
        architecture=(
            sections.architecture if sections.architecture is not None else ArchitectureInfo()
        ),
        files_analyzed=files_analyzed,
        skipped_files=list(skipped_files),
        warnings=list(warnings),
        analysis_time_seconds=round(analysis_time_seconds, 3),
    )
