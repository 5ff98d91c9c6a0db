"""Static analysis engine for JavaScript and TypeScript codebases."""

__version__ = "0.1.0"

from .config import AnalyzerConfig
from .engine import AnalysisEngine
from .models import AnalysisResult, AnalysisStatus, SourceFile

__all__ = [
    "AnalysisEngine",
    "AnalysisResult",
    "AnalysisStatus",
    "AnalyzerConfig",
    "SourceFile",
    "__version__",
]
