"""Analysis engine: intake, bounded parallel per-file work, single reducer.

Usage::

    engine = AnalysisEngine(AnalyzerConfig(max_workers=8))
    result = engine.analyze([
        {"path": "src/a.ts", "content": "import { b } from './b'"},
        {"path": "src/b.ts", "content": "export const b = 1"},
    ])
    print(result.dependencies.circular_dependencies)
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import defaultdict
from collections.abc import Callable, Iterable, Mapping, Sequence
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Any, TypeVar

from .aggregator import SectionResults, aggregate
from .architecture import ArchitectureDetector
from .config import AnalyzerConfig
from .core.exceptions import EmptyFileSetError, ResolverUnavailableError
from .dependencies import DependencyGraphBuilder, ImportRef, ResolverFactory
from .intake import FileIntake
from .models import (
    AnalysisResult,
    AnalysisStatus,
    CodeStructure,
    Issue,
    ParseFailure,
    SourceFile,
)
from .parsing import ParsingStrategy
from .pattern_scanner import PatternScanner, split_issues, summarize_security
from .quality import FileQuality, QualityCalculator
from .rules import PATTERN_RULES, PatternRule
from .structure import StructuralExtractor, build_strategies, link_calls

logger = logging.getLogger(__name__)

T = TypeVar("T")

RawFile = SourceFile | Mapping[str, Any]


@dataclass
class FilePartial:
    """Everything the parallel phase learned about one file.

    A stage that failed leaves its field as ``None``; the file is then
    excluded from that stage only.
    """

    file: SourceFile
    structure: CodeStructure | None = None
    parse_failure: ParseFailure | None = None
    imports: list[ImportRef] | None = None
    issues: list[Issue] | None = None
    quality: FileQuality | None = None
    errors: list[str] = field(default_factory=list)


class AnalysisEngine:
    """Runs one analysis per ``analyze`` call; no state survives between runs.

    Args:
        config: Engine settings; defaults to ``AnalyzerConfig()``.
        strategies: Parsing strategies in priority order; defaults to
            tree-sitter (when enabled) followed by the heuristic strategy.
        resolver_factory: Builds the module resolver for the dependency
            graph from the file IDs and path aliases.
        rules: Pattern rule table for the scanner.
    """

    def __init__(
        self,
        config: AnalyzerConfig | None = None,
        *,
        strategies: Sequence[ParsingStrategy] | None = None,
        resolver_factory: ResolverFactory | None = None,
        rules: Sequence[PatternRule] | None = None,
    ) -> None:
        self.config = config or AnalyzerConfig()
        self.intake = FileIntake(self.config)
        self.extractor = StructuralExtractor(strategies or build_strategies(self.config))
        self.graph_builder = DependencyGraphBuilder(self.config, resolver_factory)
        self.scanner = PatternScanner(self.config, PATTERN_RULES if rules is None else rules)
        self.quality = QualityCalculator(self.config)
        self.architecture = ArchitectureDetector()

    async def analyze_async(self, files: Iterable[RawFile]) -> AnalysisResult:
        """Run ``analyze`` in a worker thread so the event loop stays free."""
        return await asyncio.to_thread(self.analyze, list(files))

    def analyze(self, files: Iterable[RawFile]) -> AnalysisResult:
        """Analyze a snapshot of source files.

        Raises:
            EmptyFileSetError: If *files* is empty or holds no analyzable
                source file after filtering.
        """
        started = time.monotonic()
        raw_files = list(files)
        if not raw_files:
            raise EmptyFileSetError("No files supplied for analysis")

        intake = self.intake.run(raw_files)
        if not intake.files:
            raise EmptyFileSetError(
                f"None of the {len(raw_files)} supplied files is an analyzable source file"
            )

        logger.info(
            "Analysis started",
            extra={
                "event": "analysis_started",
                "files": len(intake.files),
                "skipped": len(intake.skipped),
                "workers": self.config.max_workers,
            },
        )

        warnings = [f"Skipped {s.path}: {s.reason}" for s in intake.skipped]
        degraded = intake.budget_exceeded

        partials, timed_out = self._run_workers(intake.files, started)
        if timed_out:
            degraded = True
            warnings.append(
                f"Time budget of {self.config.time_budget_seconds}s exceeded; "
                f"{len(intake.files) - len(partials)} files were not analyzed"
            )
        for partial in partials:
            if partial.parse_failure is not None:
                warnings.append(
                    f"Parse failed for {partial.file.path} "
                    f"({partial.parse_failure.strategy}): {partial.parse_failure.error}"
                )
            warnings.extend(partial.errors)

        sections, section_warnings = self._reduce(partials, intake.test_files)
        if section_warnings:
            degraded = True
            warnings.extend(section_warnings)

        status = AnalysisStatus.PARTIAL if degraded else AnalysisStatus.COMPLETED
        elapsed = time.monotonic() - started
        result = aggregate(
            sections,
            status=status,
            files_analyzed=len(partials),
            skipped_files=intake.skipped,
            warnings=warnings,
            analysis_time_seconds=elapsed,
        )

        logger.info(
            "Analysis finished",
            extra={
                "event": "analysis_finished",
                "files": len(partials),
                "status": status.value,
                "duration_ms": round(elapsed * 1000),
            },
        )
        return result

    # ------------------------------------------------------------------
    # Parallel phase
    # ------------------------------------------------------------------

    def _run_workers(
        self, files: list[SourceFile], started: float
    ) -> tuple[list[FilePartial], bool]:
        """Analyze files in the bounded pool until done or out of time.

        Returns the completed partials in input order and whether the
        deadline cut the run short.
        """
        budget = self.config.time_budget_seconds
        timeout = None if budget is None else max(0.0, budget - (time.monotonic() - started))

        executor = ThreadPoolExecutor(
            max_workers=self.config.max_workers, thread_name_prefix="codescope"
        )
        try:
            futures: dict[Future[FilePartial], int] = {
                executor.submit(self._analyze_file, file): index
                for index, file in enumerate(files)
            }
            done, not_done = wait(futures, timeout=timeout)
        finally:
            # Running workers cannot be interrupted; queued ones are dropped
            executor.shutdown(wait=False, cancel_futures=True)

        results: list[FilePartial | None] = [None] * len(files)
        for future in done:
            index = futures[future]
            error = future.exception()
            if error is not None:
                logger.error(
                    f"Worker failed for {files[index].path}: {error}",
                    extra={"file_path": files[index].path, "stage": "worker", "error": str(error)},
                )
                continue
            results[index] = future.result()

        if not_done:
            logger.warning(
                f"Time budget exceeded with {len(not_done)} files pending",
                extra={"event": "deadline_exceeded", "files": len(not_done)},
            )
        return [r for r in results if r is not None], bool(not_done)

    def _analyze_file(self, file: SourceFile) -> FilePartial:
        partial = FilePartial(file=file)

        extracted = self.extractor.extract(file)
        if isinstance(extracted, ParseFailure):
            partial.parse_failure = extracted
        else:
            partial.structure = extracted

        partial.imports = self._stage(partial, "dependencies", self.graph_builder.extract_imports)
        partial.issues = self._stage(partial, "patterns", self.scanner.scan)
        partial.quality = self._stage(
            partial, "quality", lambda f: self.quality.analyze_file(f, partial.structure)
        )
        return partial

    @staticmethod
    def _stage(
        partial: FilePartial, stage: str, fn: Callable[[SourceFile], T]
    ) -> T | None:
        try:
            return fn(partial.file)
        except Exception as e:
            logger.warning(
                f"Stage {stage} failed for {partial.file.path}: {e}",
                extra={
                    "event": "stage_failed",
                    "file_path": partial.file.path,
                    "stage": stage,
                    "error": str(e),
                },
            )
            partial.errors.append(f"{stage} failed for {partial.file.path}: {e}")
            return None

    # ------------------------------------------------------------------
    # Reduce phase
    # ------------------------------------------------------------------

    def _reduce(
        self, partials: list[FilePartial], test_files: int
    ) -> tuple[SectionResults, list[str]]:
        warnings: list[str] = []
        files = [p.file for p in partials]
        structure = link_calls(
            CodeStructure.combine([p.structure for p in partials if p.structure is not None])
        )
        sections = SectionResults(structure=structure)

        complexity: dict[str, int] = defaultdict(int)
        for fn in structure.functions:
            complexity[fn.file_path] += fn.complexity
        imports = {p.file.path: p.imports for p in partials if p.imports is not None}

        try:
            sections.dependencies = self.graph_builder.build(files, imports, complexity)
        except ResolverUnavailableError as e:
            logger.warning(
                f"Module resolver unavailable, dependency graph left empty: {e}",
                extra={"event": "section_degraded", "stage": "dependencies", "error": str(e)},
            )
            warnings.append(f"Dependency graph unavailable: {e}")
        except Exception as e:
            self._section_failed("dependencies", e, warnings)

        try:
            issues = [issue for p in partials if p.issues is not None for issue in p.issues]
            sections.security_issues, sections.performance_issues = split_issues(issues)
            sections.security_summary = summarize_security(sections.security_issues)
        except Exception as e:
            self._section_failed("patterns", e, warnings)

        try:
            sections.quality = self.quality.summarize(
                [p.quality for p in partials if p.quality is not None],
                structure,
                test_files=test_files,
                source_files=len(files),
            )
        except Exception as e:
            self._section_failed("quality", e, warnings)

        try:
            sections.patterns, sections.architecture = self.architecture.detect(files, structure)
        except Exception as e:
            self._section_failed("architecture", e, warnings)

        return sections, warnings

    @staticmethod
    def _section_failed(stage: str, error: Exception, warnings: list[str]) -> None:
        logger.error(
            f"Section {stage} failed: {error}",
            exc_info=True,
            extra={"event": "section_degraded", "stage": stage, "error": str(error)},
        )
        warnings.append(f"{stage} analysis failed: {error}")
