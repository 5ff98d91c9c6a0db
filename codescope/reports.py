"""Markdown and Mermaid renderings of analysis results."""

from __future__ import annotations

import re
from collections.abc import Sequence

from . import constants
from .models import (
    AnalysisResult,
    DependencyGraph,
    EdgeKind,
    Issue,
    NodeKind,
    QualityMetrics,
    SecuritySummary,
    Severity,
    SmellSeverity,
)

_UNSAFE_ID = re.compile(r"[^a-zA-Z0-9]")

_SEVERITY_SECTIONS = (
    (Severity.CRITICAL, "Critical Issues"),
    (Severity.HIGH, "High Priority Issues"),
    (Severity.MEDIUM, "Medium Priority Issues"),
    (Severity.LOW, "Low Priority Issues"),
)


def _diagram_id(node_id: str) -> str:
    return _UNSAFE_ID.sub("_", node_id)[:50]


def quality_report(metrics: QualityMetrics) -> str:
    """Render quality metrics as a Markdown report."""
    lines = [
        "# Code Quality Report",
        "",
        "## Overall Score",
        "",
        f"**Score**: {metrics.overall.score}/100 (Grade: {metrics.overall.grade})",
        "",
        "## Metrics Summary",
        "",
        "| Metric | Value |",
        "|--------|-------|",
        f"| Maintainability | {metrics.maintainability.score}/100 |",
        f"| Avg Complexity | {metrics.complexity.average} |",
        f"| Documentation | {metrics.documentation.coverage}% |",
        f"| Duplication | {metrics.duplication.percentage}% |",
        f"| Tech Debt | {metrics.technical_debt.minutes} min ({metrics.technical_debt.rating}) |",
        f"| Test Coverage (est.) | {metrics.test_coverage.estimated}% |",
        "",
        "## Line Metrics",
        "",
        f"- Total Lines: {metrics.line_metrics.total}",
        f"- Code Lines: {metrics.line_metrics.code}",
        f"- Comments: {metrics.line_metrics.comments}",
        f"- Blank: {metrics.line_metrics.blank}",
    ]

    if metrics.complexity.highest:
        lines.extend(
            [
                "",
                "## High Complexity Functions",
                "",
                "| Function | Complexity | File |",
                "|----------|------------|------|",
            ]
        )
        for entry in metrics.complexity.highest[:10]:
            lines.append(f"| {entry.name} | {entry.value} | {entry.file_path} |")

    if metrics.maintainability.issues:
        lines.extend(["", "## Maintainability Issues", ""])
        lines.extend(f"- {issue}" for issue in metrics.maintainability.issues)

    critical = [s for s in metrics.code_smells if s.severity is SmellSeverity.CRITICAL]
    major = [s for s in metrics.code_smells if s.severity is SmellSeverity.MAJOR]
    if critical or major:
        lines.extend(["", "## Code Smells"])
        if critical:
            lines.extend(["", "### Critical", ""])
            for smell in critical[: constants.REPORT_MAX_CRITICAL_SMELLS]:
                lines.append(f"- **{smell.type}** in `{smell.file_path}:{smell.line}`")
                if smell.suggestion:
                    lines.append(f"  - {smell.suggestion}")
        if major:
            lines.extend(["", "### Major", ""])
            for smell in major[: constants.REPORT_MAX_MAJOR_SMELLS]:
                lines.append(f"- **{smell.type}** in `{smell.file_path}:{smell.line}`")

    return "\n".join(lines) + "\n"


def security_report(issues: Sequence[Issue], summary: SecuritySummary) -> str:
    """Render security findings as a Markdown report grouped by severity."""
    lines = [
        "# Security Scan Report",
        "",
        "## Summary",
        "",
        f"- **Security Score**: {summary.score}/100 (Grade: {summary.grade})",
        f"- **Total Issues**: {summary.total_issues}",
        f"- **Affected Files**: {summary.affected_files}",
        "",
        "### Issues by Severity",
        "",
        "| Severity | Count |",
        "|----------|-------|",
    ]
    for severity, _ in _SEVERITY_SECTIONS:
        lines.append(f"| {severity.value.title()} | {summary.by_severity.get(severity.value, 0)} |")

    if not issues:
        lines.extend(
            [
                "",
                "## No Issues Found",
                "",
                "No security issues were detected in the scanned codebase.",
            ]
        )
        return "\n".join(lines) + "\n"

    lines.extend(["", "## Detailed Findings"])
    for severity, title in _SEVERITY_SECTIONS:
        section = [issue for issue in issues if issue.severity is severity]
        if not section:
            continue
        lines.extend(["", f"### {title}"])
        for issue in section:
            lines.extend(
                [
                    "",
                    f"#### {issue.message}",
                    "",
                    f"- **File**: `{issue.file_path}:{issue.line}`",
                    f"- **Severity**: {issue.severity.value.upper()}",
                    f"- **Rule**: {issue.rule_id}",
                ]
            )
            if issue.cwe_id:
                lines.append(f"- **CWE**: {issue.cwe_id}")
            lines.extend(
                [
                    "",
                    "**Code**:",
                    "```",
                    issue.code_snippet,
                    "```",
                    "",
                    f"**Recommendation**: {issue.remediation}",
                    "",
                    "---",
                ]
            )

    return "\n".join(lines) + "\n"


def mermaid_diagram(
    graph: DependencyGraph,
    max_nodes: int = constants.DIAGRAM_MAX_NODES,
    max_edges: int = constants.DIAGRAM_MAX_EDGES,
) -> str:
    """Render the file-to-file part of *graph* as a Mermaid flowchart.

    Package nodes are left out. Nodes whose summed complexity is high are
    styled, and dynamic imports are drawn as dashed edges.
    """
    file_nodes = [n for n in graph.nodes if n.kind is NodeKind.FILE][:max_nodes]
    shown = {n.id for n in file_nodes}

    lines = ["graph TD"]
    for node in file_nodes:
        label = _UNSAFE_ID.sub("_", node.name)
        style = ""
        if node.complexity and node.complexity > constants.DIAGRAM_HIGH_COMPLEXITY:
            style = ":::highComplexity"
        elif node.complexity and node.complexity > constants.DIAGRAM_MEDIUM_COMPLEXITY:
            style = ":::mediumComplexity"
        lines.append(f'  {_diagram_id(node.id)}["{label}"]{style}')

    edges = [e for e in graph.edges if e.source in shown and e.target in shown][:max_edges]
    for edge in edges:
        arrow = "-.->" if edge.kind is EdgeKind.DYNAMIC else "-->"
        lines.append(f"  {_diagram_id(edge.source)} {arrow} {_diagram_id(edge.target)}")

    lines.extend(
        [
            "",
            "  classDef highComplexity fill:#ff6b6b,stroke:#c92a2a",
            "  classDef mediumComplexity fill:#ffd43b,stroke:#fab005",
        ]
    )
    return "\n".join(lines) + "\n"


def analysis_report(result: AnalysisResult) -> str:
    """Full Markdown report of one run: overview, quality, security, graph."""
    deps = result.dependencies
    lines = [
        "# Codebase Analysis Report",
        "",
        f"- **Status**: {result.status.value}",
        f"- **Files analyzed**: {result.files_analyzed}",
        f"- **Skipped files**: {len(result.skipped_files)}",
        f"- **Functions**: {len(result.structure.functions)}",
        f"- **Classes**: {len(result.structure.classes)}",
        f"- **Analysis time**: {result.analysis_time_seconds}s",
    ]
    if result.architecture.technologies:
        lines.append(f"- **Technologies**: {', '.join(result.architecture.technologies)}")
    if result.patterns:
        lines.append(f"- **Patterns**: {', '.join(p.name for p in result.patterns)}")

    if result.warnings:
        lines.extend(["", "## Warnings", ""])
        lines.extend(f"- {warning}" for warning in result.warnings)

    lines.extend(["", "## Dependencies", ""])
    lines.append(f"- Nodes: {len(deps.nodes)}, edges: {len(deps.edges)}")
    lines.append(f"- Circular dependencies: {len(deps.circular_dependencies)}")
    for cycle in deps.circular_dependencies:
        lines.append(f"  - {' -> '.join(cycle + cycle[:1])}")
    lines.append(f"- Orphan files: {len(deps.orphan_files)}")
    if deps.nodes:
        lines.extend(["", "```mermaid", mermaid_diagram(deps).rstrip("\n"), "```"])

    if result.architecture.env_vars:
        lines.extend(["", "## Environment Variables", ""])
        for var in result.architecture.env_vars:
            lines.append(f"- `{var.name}`: {', '.join(var.used_in)}")

    if result.performance_issues:
        lines.extend(["", "## Performance Issues", ""])
        for issue in result.performance_issues:
            lines.append(
                f"- [{issue.severity.value.upper()}] {issue.message} "
                f"(`{issue.file_path}:{issue.line}`)"
            )

    return "\n\n".join(
        [
            "\n".join(lines),
            quality_report(result.quality).rstrip("\n"),
            security_report(result.security_issues, result.security_summary).rstrip("\n"),
        ]
    ) + "\n"
