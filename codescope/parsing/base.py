"""Capability interface implemented by every parsing strategy."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from ..models import PartialStructure, SourceFile


@runtime_checkable
class ParsingStrategy(Protocol):
    """Turns one source file into its partial structure.

    Implementations must be safe to call from several worker threads at
    once and may raise any exception on malformed input; the structural
    extractor turns such failures into a ``ParseFailure``.
    """

    name: str

    def supports(self, language: str) -> bool:
        """Return ``True`` if this strategy can parse *language*."""
        ...

    def parse(self, file: SourceFile) -> PartialStructure:
        """Extract functions, classes, interfaces, types and exports."""
        ...
