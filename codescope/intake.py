"""File intake: filter, normalize and deduplicate the raw input file set."""

from __future__ import annotations

import logging
import posixpath
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from . import constants
from .config import AnalyzerConfig
from .core.exceptions import FileTooLargeError
from .models import SkippedFile, SourceFile

logger = logging.getLogger(__name__)

_TEST_DIRS = frozenset({"__tests__", "__mocks__", "test", "tests", "e2e"})


def normalize_path(path: str) -> str:
    """Forward slashes, no ``./`` prefix, no ``..`` or duplicate separators."""
    p = path.replace("\\", "/").strip()
    if not p:
        return p
    p = posixpath.normpath(p)
    return p[2:] if p.startswith("./") else p


def node_id(path: str) -> str:
    """Turn a file path into its dependency-graph node ID.

    ``src\\lib\\index.ts`` -> ``src/lib``; ``src/app.tsx`` -> ``src/app``.
    """
    p = path.replace("\\", "/")
    for ext in constants.ID_STRIPPED_EXTENSIONS:
        if p.endswith(ext):
            p = p[: -len(ext)]
            break
    if p.endswith("/index"):
        p = p[: -len("/index")]
    return p


def is_test_file(path: str) -> bool:
    name = posixpath.basename(path).lower()
    if any(marker in name for marker in constants.TEST_FILE_MARKERS):
        return True
    return any(segment in _TEST_DIRS for segment in path.split("/")[:-1])


def detect_language(path: str, extensions: Mapping[str, str]) -> str | None:
    """Language tag for *path* from the extension allow-list, or ``None``."""
    lowered = path.lower()
    best: str | None = None
    for ext in extensions:
        if lowered.endswith(ext) and (best is None or len(ext) > len(best)):
            best = ext
    return extensions[best] if best is not None else None


def _longest_line(content: str) -> int:
    return max((len(line) for line in content.splitlines()), default=0)


@dataclass
class IntakeResult:
    """Normalized file set handed to the analyzers.

    Attributes:
        files: Accepted files in input order, paths normalized and language
            tags filled in.
        skipped: Files refused for size or minification, with the reason.
        test_files: Number of test files seen before they were excluded.
        budget_exceeded: ``True`` when the cumulative size budget cut the
            file set short.
        total_bytes: Byte size of the accepted files.
    """

    files: list[SourceFile] = field(default_factory=list)
    skipped: list[SkippedFile] = field(default_factory=list)
    test_files: int = 0
    budget_exceeded: bool = False
    total_bytes: int = 0


class FileIntake:
    """Applies the extension allow-list and path exclusions to raw input."""

    def __init__(self, config: AnalyzerConfig) -> None:
        self.config = config

    def _coerce(self, raw: SourceFile | Mapping[str, Any]) -> SourceFile | None:
        if isinstance(raw, SourceFile):
            return raw
        try:
            return SourceFile.model_validate(dict(raw))
        except (ValidationError, TypeError, ValueError) as e:
            logger.warning(
                f"Dropping malformed file record: {e}",
                extra={"event": "file_dropped", "stage": "intake", "error": str(e)},
            )
            return None

    def _is_excluded(self, path: str) -> bool:
        """Generated files and files under vendored or build directories.

        Test directories are left to ``is_test_file`` so that only the
        project's own tests are counted.
        """
        lowered = path.lower()
        if lowered.endswith(constants.GENERATED_FILE_SUFFIXES):
            return True
        excluded = self.config.excluded_dirs - _TEST_DIRS
        return any(segment in excluded for segment in path.split("/")[:-1])

    def _check_size(self, file: SourceFile) -> None:
        limit = self.config.max_file_bytes
        if file.size > limit:
            raise FileTooLargeError(
                f"file too large ({file.size} bytes, limit {limit})", size=file.size, limit=limit
            )

    def _skip(self, result: IntakeResult, path: str, reason: str) -> None:
        logger.warning(
            f"Skipping {path}: {reason}",
            extra={"event": "file_skipped", "file_path": path, "stage": "intake"},
        )
        result.skipped.append(SkippedFile(path=path, reason=reason))

    def run(self, raw_files: Iterable[SourceFile | Mapping[str, Any]]) -> IntakeResult:
        result = IntakeResult()
        seen_ids: set[str] = set()

        for raw in raw_files:
            file = self._coerce(raw)
            if file is None:
                continue

            path = normalize_path(file.path)
            language = detect_language(path, self.config.extensions)
            if not path or language is None:
                continue

            if self._is_excluded(path):
                continue
            if is_test_file(path):
                result.test_files += 1
                continue

            file_id = node_id(path)
            if file_id in seen_ids:
                logger.debug(
                    "Duplicate file ID, keeping first occurrence",
                    extra={"file_path": path, "stage": "intake"},
                )
                continue
            seen_ids.add(file_id)

            try:
                self._check_size(file)
            except FileTooLargeError as e:
                self._skip(result, path, str(e))
                continue
            if _longest_line(file.content) > self.config.max_line_length:
                self._skip(result, path, "minified or generated content")
                continue
            if result.total_bytes + file.size > self.config.max_total_bytes:
                result.budget_exceeded = True
                self._skip(result, path, "total size budget exceeded")
                continue

            result.total_bytes += file.size
            result.files.append(
                file.model_copy(
                    update={"path": path, "language": (file.language or language).lower()}
                )
            )

        return result
