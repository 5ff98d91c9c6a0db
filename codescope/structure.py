"""Structural extraction: dispatch a file to the first capable parsing strategy."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from .config import AnalyzerConfig
from .core.exceptions import ParseError, UnsupportedLanguageError
from .models import CodeStructure, ParseFailure, PartialStructure, SourceFile
from .parsing import HeuristicStrategy, ParsingStrategy, TreeSitterStrategy

logger = logging.getLogger(__name__)


def build_strategies(config: AnalyzerConfig) -> list[ParsingStrategy]:
    """Strategies in priority order for *config*."""
    strategies: list[ParsingStrategy] = []
    if config.use_tree_sitter:
        strategies.append(TreeSitterStrategy())
    strategies.append(HeuristicStrategy())
    return strategies


class StructuralExtractor:
    """Extracts functions, classes, interfaces, types and exports per file.

    Strategies are tried in order; the first one whose ``supports`` accepts
    the file's language parses it.
    """

    def __init__(self, strategies: Sequence[ParsingStrategy]) -> None:
        if not strategies:
            raise ValueError("at least one parsing strategy is required")
        self.strategies = list(strategies)

    def strategy_for(self, language: str) -> ParsingStrategy:
        """Return the strategy that handles *language*.

        Raises:
            UnsupportedLanguageError: If no strategy supports it.
        """
        for strategy in self.strategies:
            if strategy.supports(language):
                return strategy
        raise UnsupportedLanguageError(f"No parsing strategy for language {language!r}")

    def extract(self, file: SourceFile) -> PartialStructure | ParseFailure:
        """Parse *file* into a partial structure.

        Never raises: any failure of the strategy is logged with the file
        path and returned as a ``ParseFailure``.
        """
        strategy_name = "none"
        try:
            strategy = self.strategy_for(file.language)
            strategy_name = strategy.name
            return strategy.parse(file)
        except Exception as e:
            if isinstance(e, ParseError) and e.strategy:
                strategy_name = e.strategy
            logger.warning(
                f"Failed to parse {file.path}: {e}",
                extra={
                    "event": "parse_failed",
                    "file_path": file.path,
                    "strategy": strategy_name,
                    "stage": "structure",
                    "error": str(e),
                },
            )
            return ParseFailure(file_path=file.path, strategy=strategy_name, error=str(e))


def link_calls(structure: CodeStructure) -> CodeStructure:
    """Fill every function's ``called_by`` from the ``calls_to`` of the run.

    Calls are matched by name, so functions sharing a name share callers.
    """
    callers: dict[str, list[str]] = {}
    for fn in structure.functions:
        for name in fn.calls_to:
            names = callers.setdefault(name, [])
            if fn.name not in names:
                names.append(fn.name)
    functions = [
        fn.model_copy(update={"called_by": list(callers.get(fn.name, []))})
        for fn in structure.functions
    ]
    return structure.model_copy(update={"functions": functions})
