"""Custom exception hierarchy for codescope.

Per-file problems are normally caught inside the engine and turned into
logged warnings; only whole-run failures reach the caller.
"""


class CodescopeError(Exception):
    """Base exception for all codescope errors.

    Callers can catch every codescope-specific error with a single
    except clause when appropriate.
    """
    pass


# =============================================================================
# Analysis Errors
# =============================================================================

class AnalysisError(CodescopeError):
    """Base exception for analysis-related errors."""
    pass


class EmptyFileSetError(AnalysisError):
    """The input file set is empty or contains no analyzable source file."""
    pass


class ParseError(AnalysisError):
    """A parsing strategy could not extract structure from a file."""

    def __init__(self, message: str, file_path: str | None = None, strategy: str | None = None):
        super().__init__(message)
        self.file_path = file_path
        self.strategy = strategy


class ResolverUnavailableError(AnalysisError):
    """The module resolution backend used by the dependency graph is unavailable."""
    pass


class FileTooLargeError(AnalysisError):
    """File exceeds the maximum allowed size for analysis."""

    def __init__(self, message: str, size: int | None = None, limit: int | None = None):
        super().__init__(message)
        self.size = size
        self.limit = limit


class UnsupportedLanguageError(AnalysisError):
    """No parsing strategy supports the language of a file."""
    pass


# =============================================================================
# Configuration Errors
# =============================================================================

class ConfigurationError(CodescopeError):
    """Base exception for configuration errors."""
    pass


class InvalidConfigError(ConfigurationError):
    """Configuration is invalid or malformed."""
    pass
