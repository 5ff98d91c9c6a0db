"""Parsing strategies that turn one source file into its structure."""

from .base import ParsingStrategy
from .heuristic_strategy import HeuristicStrategy, script_view
from .lexical import (
    LineIndex,
    cyclomatic_complexity,
    find_calls,
    find_matching_brace,
    mask_comments,
    mask_source,
    parse_parameters,
)
from .tree_sitter_strategy import ParsedAST, TreeSitterStrategy

__all__ = [
    "HeuristicStrategy",
    "LineIndex",
    "ParsedAST",
    "ParsingStrategy",
    "TreeSitterStrategy",
    "cyclomatic_complexity",
    "find_calls",
    "find_matching_brace",
    "mask_comments",
    "mask_source",
    "parse_parameters",
    "script_view",
]
