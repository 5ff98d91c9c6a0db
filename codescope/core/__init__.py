"""Core utilities shared across the analysis engine."""

from .exceptions import (
    AnalysisError,
    CodescopeError,
    ConfigurationError,
    EmptyFileSetError,
    FileTooLargeError,
    InvalidConfigError,
    ParseError,
    ResolverUnavailableError,
    UnsupportedLanguageError,
)

__all__ = [
    "CodescopeError",
    "AnalysisError",
    "EmptyFileSetError",
    "ParseError",
    "ResolverUnavailableError",
    "FileTooLargeError",
    "UnsupportedLanguageError",
    "ConfigurationError",
    "InvalidConfigError",
]
