"""Quality metrics: lines, complexity, duplication, documentation, smells and scores.

Per-file measurements (``QualityCalculator.analyze_file``) run in the worker
pool; ``QualityCalculator.summarize`` folds them into ``QualityMetrics`` in
the reducer.
"""

from __future__ import annotations

import hashlib
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from . import constants
from .config import AnalyzerConfig
from .models import (
    CodeSmell,
    CodeStructure,
    ComplexityDistribution,
    ComplexityEntry,
    ComplexityMetrics,
    DocumentationMetrics,
    DuplicationMetrics,
    FunctionInfo,
    LineMetrics,
    MaintainabilityScore,
    OverallScore,
    QualityMetrics,
    SmellSeverity,
    SourceFile,
    TechnicalDebt,
    TestCoverageEstimate,
)
from .parsing import script_view
from .rules import (
    DEEP_NESTING_RULE_ID,
    EXCESSIVE_PARAMETERS_RULE_ID,
    LONG_FUNCTION_RULE_ID,
    SMELL_RULES,
)

logger = logging.getLogger(__name__)


def letter_grade(score: float) -> str:
    """Map a 0-100 score to A-F."""
    for lower_bound, grade in constants.GRADE_BANDS:
        if score >= lower_bound:
            return grade
    return "F"


def debt_rating(minutes: int) -> str:
    """Map technical debt minutes to A-E."""
    for upper_bound, rating in constants.DEBT_RATING_BANDS:
        if minutes <= upper_bound:
            return rating
    return "E"


def count_lines(content: str) -> LineMetrics:
    total = code = comments = blank = 0
    for line in content.split("\n"):
        total += 1
        stripped = line.strip()
        if not stripped:
            blank += 1
        elif stripped.startswith(("//", "/*", "*")):
            comments += 1
        else:
            code += 1
    return LineMetrics(total=total, code=code, comments=comments, blank=blank)


def block_fingerprints(content: str, window: int, min_chars: int) -> list[str]:
    """Hashes of every *window*-line block of at least *min_chars* characters.

    Lines are trimmed before hashing so indentation does not hide copies.
    """
    lines = [line.strip() for line in content.split("\n")]
    hashes: list[str] = []
    for i in range(len(lines) - window + 1):
        block = "\n".join(lines[i:i + window]).strip()
        if len(block) < min_chars:
            continue
        hashes.append(hashlib.sha256(block.encode("utf-8")).hexdigest())
    return hashes


def is_documented(lines: Sequence[str], start_line: int) -> bool:
    """Return ``True`` when a ``/** ... */`` block precedes *start_line*.

    Blank lines and decorator lines between the comment and the declaration
    are skipped. *lines* are the raw file lines; *start_line* is 1-based.
    """
    j = start_line - 2
    while j >= 0:
        stripped = lines[j].strip()
        if not stripped or stripped.startswith("@"):
            j -= 1
            continue
        break
    if j < 0 or not lines[j].rstrip().endswith("*/"):
        return False

    # Find where the closing block comment opens
    while j >= 0:
        opening = lines[j].rfind("/*")
        if opening != -1:
            return lines[j][opening:].startswith("/**")
        j -= 1
    return False


@dataclass
class DocItem:
    kind: str  # "function" or "class"
    label: str
    documented: bool


@dataclass
class FileQuality:
    """Per-file quality measurements produced in the parallel phase."""

    path: str
    line_metrics: LineMetrics
    fingerprints: list[str] = field(default_factory=list)
    doc_items: list[DocItem] = field(default_factory=list)
    smells: list[CodeSmell] = field(default_factory=list)


class QualityCalculator:
    """Computes quality metrics with thresholds from an ``AnalyzerConfig``."""

    def __init__(self, config: AnalyzerConfig) -> None:
        self.config = config

    # ------------------------------------------------------------------
    # Per-file phase
    # ------------------------------------------------------------------

    def analyze_file(self, file: SourceFile, structure: CodeStructure | None) -> FileQuality:
        """Measure one file. *structure* is ``None`` when parsing failed."""
        text = script_view(file.content, file.language)
        lines = text.split("\n")
        result = FileQuality(
            path=file.path,
            line_metrics=count_lines(file.content),
            fingerprints=block_fingerprints(
                text, self.config.duplication_window, self.config.duplication_min_chars
            ),
            smells=self._content_smells(file.path, lines),
        )
        if structure is not None:
            for fn in structure.functions:
                result.doc_items.append(
                    DocItem("function", f"{fn.name} ({file.path})", is_documented(lines, fn.start_line))
                )
            for cls in structure.classes:
                result.doc_items.append(
                    DocItem("class", f"{cls.name} ({file.path})", is_documented(lines, cls.start_line))
                )
            for fn in structure.functions:
                result.smells.extend(self._function_smells(fn))
        return result

    def _content_smells(self, path: str, lines: list[str]) -> list[CodeSmell]:
        smells: list[CodeSmell] = []
        for index, line in enumerate(lines):
            for rule in SMELL_RULES:
                if rule.pattern.search(line):
                    smells.append(
                        CodeSmell(
                            rule_id=rule.rule_id,
                            type=rule.type,
                            severity=rule.severity,
                            file_path=path,
                            line=index + 1,
                            message=rule.message,
                            suggestion=rule.suggestion,
                        )
                    )

        # One deep-nesting smell per file, at the first offending line
        threshold = self.config.smells.deep_nesting_indent
        for index, line in enumerate(lines):
            if not line.strip():
                continue
            expanded = line.expandtabs(4)
            indent = len(expanded) - len(expanded.lstrip())
            if indent >= threshold:
                smells.append(
                    CodeSmell(
                        rule_id=DEEP_NESTING_RULE_ID,
                        type="deep_nesting",
                        severity=SmellSeverity.MAJOR,
                        file_path=path,
                        line=index + 1,
                        message=f"Code nested {indent} columns deep",
                        suggestion="Reduce nesting by extracting functions or using early returns",
                    )
                )
                break
        return smells

    def _function_smells(self, fn: FunctionInfo) -> list[CodeSmell]:
        limits = self.config.smells
        smells: list[CodeSmell] = []
        length = fn.line_count
        if length > limits.long_function_lines:
            critical = length > limits.critical_function_lines
            smells.append(
                CodeSmell(
                    rule_id=LONG_FUNCTION_RULE_ID,
                    type="long_function",
                    severity=SmellSeverity.CRITICAL if critical else SmellSeverity.MAJOR,
                    file_path=fn.file_path,
                    line=fn.start_line,
                    message=f"Function '{fn.name}' is {length} lines long",
                    suggestion="Break it down into smaller functions with a single responsibility",
                )
            )
        if len(fn.parameters) > limits.max_parameters:
            smells.append(
                CodeSmell(
                    rule_id=EXCESSIVE_PARAMETERS_RULE_ID,
                    type="too_many_parameters",
                    severity=SmellSeverity.MAJOR,
                    file_path=fn.file_path,
                    line=fn.start_line,
                    message=f"Function '{fn.name}' takes {len(fn.parameters)} parameters",
                    suggestion="Group related parameters into an options object",
                )
            )
        return smells

    # ------------------------------------------------------------------
    # Reduce phase
    # ------------------------------------------------------------------

    def summarize(
        self,
        files: Sequence[FileQuality],
        structure: CodeStructure,
        test_files: int = 0,
        source_files: int | None = None,
    ) -> QualityMetrics:
        """Fold per-file measurements into run-level ``QualityMetrics``.

        Args:
            files: Per-file results in input order.
            structure: The merged structure of the run.
            test_files: Number of test files seen by intake.
            source_files: Number of analyzed source files; defaults to
                ``len(files)``.
        """
        line_metrics = LineMetrics(
            total=sum(f.line_metrics.total for f in files),
            code=sum(f.line_metrics.code for f in files),
            comments=sum(f.line_metrics.comments for f in files),
            blank=sum(f.line_metrics.blank for f in files),
        )
        complexity = self.complexity_metrics(structure.functions)
        duplication = self.duplication_metrics([f.fingerprints for f in files])
        documentation = self.documentation_metrics([item for f in files for item in f.doc_items])
        smells = [smell for f in files for smell in f.smells]

        maintainability = self.maintainability(complexity, documentation, duplication, smells)
        debt = self.technical_debt(smells, structure.functions, documentation)
        coverage = self.test_coverage(test_files, len(files) if source_files is None else source_files)
        overall = self.overall_score(
            maintainability.score, complexity.average, documentation.coverage,
            duplication.percentage, len(smells),
        )

        return QualityMetrics(
            line_metrics=line_metrics,
            complexity=complexity,
            duplication=duplication,
            documentation=documentation,
            code_smells=smells[: self.config.max_code_smells],
            total_code_smells=len(smells),
            maintainability=maintainability,
            technical_debt=debt,
            test_coverage=coverage,
            overall=overall,
        )

    def complexity_metrics(self, functions: Sequence[FunctionInfo]) -> ComplexityMetrics:
        thresholds = self.config.complexity
        low = medium = high = very_high = 0
        for fn in functions:
            if fn.complexity <= thresholds.low:
                low += 1
            elif fn.complexity <= thresholds.medium:
                medium += 1
            elif fn.complexity <= thresholds.high:
                high += 1
            else:
                very_high += 1

        average = sum(fn.complexity for fn in functions) / len(functions) if functions else 0.0
        ranked = sorted(functions, key=lambda fn: -fn.complexity)[: self.config.top_n]
        return ComplexityMetrics(
            average=round(average, 1),
            highest=[
                ComplexityEntry(name=fn.name, file_path=fn.file_path, value=fn.complexity)
                for fn in ranked
            ],
            distribution=ComplexityDistribution(
                low=low, medium=medium, high=high, very_high=very_high
            ),
        )

    def duplication_metrics(self, fingerprints: Sequence[Sequence[str]]) -> DuplicationMetrics:
        """Count repeated blocks across all files, in input order.

        Any block whose hash was seen before adds a full window of
        duplicated lines; the second sighting of a hash adds a block.
        """
        window = self.config.duplication_window
        seen: dict[str, int] = {}
        scanned = duplicated_lines = duplicated_blocks = 0
        for file_hashes in fingerprints:
            for digest in file_hashes:
                count = seen.get(digest, 0)
                seen[digest] = count + 1
                if count > 0:
                    duplicated_lines += window
                    if count == 1:
                        duplicated_blocks += 1
                scanned += window

        percentage = round(duplicated_lines / scanned * 100, 1) if scanned else 0.0
        return DuplicationMetrics(
            percentage=percentage,
            duplicated_blocks=duplicated_blocks,
            duplicated_lines=duplicated_lines,
            scanned_lines=scanned,
        )

    def documentation_metrics(self, items: Sequence[DocItem]) -> DocumentationMetrics:
        documented = sum(1 for item in items if item.documented)
        undocumented_functions = [i.label for i in items if i.kind == "function" and not i.documented]
        undocumented_classes = [i.label for i in items if i.kind == "class" and not i.documented]
        coverage = round(documented / len(items) * 100, 1) if items else 100.0
        cap = self.config.max_undocumented
        return DocumentationMetrics(
            coverage=coverage,
            documented=documented,
            total=len(items),
            undocumented_functions=undocumented_functions[:cap],
            undocumented_classes=undocumented_classes[:cap],
            undocumented_function_count=len(undocumented_functions),
            undocumented_class_count=len(undocumented_classes),
        )

    def maintainability(
        self,
        complexity: ComplexityMetrics,
        documentation: DocumentationMetrics,
        duplication: DuplicationMetrics,
        smells: Sequence[CodeSmell],
    ) -> MaintainabilityScore:
        steps = self.config.maintainability
        score = 100
        issues: list[str] = []

        if complexity.average > steps.complexity_high:
            score -= steps.high_penalty
            issues.append("High average cyclomatic complexity")
        elif complexity.average > steps.complexity_moderate:
            score -= steps.moderate_penalty
            issues.append("Moderate cyclomatic complexity")

        if documentation.coverage < steps.documentation_low:
            score -= steps.high_penalty
            issues.append("Low documentation coverage")
        elif documentation.coverage < steps.documentation_moderate:
            score -= steps.moderate_penalty
            issues.append("Moderate documentation coverage")

        if duplication.percentage > steps.duplication_high:
            score -= steps.high_penalty
            issues.append("High code duplication")
        elif duplication.percentage > steps.duplication_moderate:
            score -= steps.moderate_penalty
            issues.append("Moderate code duplication")

        critical = sum(1 for s in smells if s.severity is SmellSeverity.CRITICAL)
        major = sum(1 for s in smells if s.severity is SmellSeverity.MAJOR)
        if critical:
            score -= critical * steps.critical_smell_penalty
            issues.append(f"{critical} critical code smells")
        if major > steps.major_smell_limit:
            score -= steps.major_smells_penalty
            issues.append(f"{major} major code smells")

        score = max(0, min(100, score))
        return MaintainabilityScore(score=score, grade=letter_grade(score), issues=issues)

    def technical_debt(
        self,
        smells: Sequence[CodeSmell],
        functions: Sequence[FunctionInfo],
        documentation: DocumentationMetrics,
    ) -> TechnicalDebt:
        per_smell = {
            SmellSeverity.CRITICAL: constants.DEBT_MINUTES_CRITICAL_SMELL,
            SmellSeverity.MAJOR: constants.DEBT_MINUTES_MAJOR_SMELL,
            SmellSeverity.MINOR: constants.DEBT_MINUTES_MINOR_SMELL,
        }
        minutes = sum(per_smell[s.severity] for s in smells)

        high = self.config.complexity.high
        medium = self.config.complexity.medium
        for fn in functions:
            if fn.complexity > high:
                minutes += constants.DEBT_MINUTES_VERY_COMPLEX_FUNCTION
            elif fn.complexity > medium:
                minutes += constants.DEBT_MINUTES_COMPLEX_FUNCTION

        minutes += documentation.undocumented_function_count * constants.DEBT_MINUTES_UNDOCUMENTED_FUNCTION
        minutes += documentation.undocumented_class_count * constants.DEBT_MINUTES_UNDOCUMENTED_CLASS
        return TechnicalDebt(minutes=minutes, rating=debt_rating(minutes))

    @staticmethod
    def test_coverage(test_files: int, source_files: int) -> TestCoverageEstimate:
        estimated = 0
        if test_files and source_files:
            estimated = min(100, round(test_files / source_files * 100))
        return TestCoverageEstimate(
            estimated=estimated, has_tests=test_files > 0, test_files=test_files
        )

    def overall_score(
        self,
        maintainability: int,
        average_complexity: float,
        doc_coverage: float,
        duplication_percentage: float,
        smell_count: int,
    ) -> OverallScore:
        weights = self.config.scoring
        complexity_score = max(0.0, 100 - average_complexity * 5)
        duplication_score = max(0.0, 100 - duplication_percentage * 2)
        smell_score = max(0.0, 100 - smell_count * 2)
        score = round(
            maintainability * weights.maintainability
            + complexity_score * weights.complexity
            + doc_coverage * weights.documentation
            + duplication_score * weights.duplication
            + smell_score * weights.smells
        )
        return OverallScore(score=score, grade=letter_grade(score))
