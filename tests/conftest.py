"""Shared fixtures for codescope tests."""

import pytest

from codescope.config import AnalyzerConfig
from codescope.models import SourceFile


def _make_file(path: str, content: str, language: str = "") -> SourceFile:
    """Build a SourceFile, inferring the language from the extension when omitted."""
    if not language:
        language = {
            ".ts": "typescript",
            ".tsx": "tsx",
            ".js": "javascript",
            ".jsx": "jsx",
            ".vue": "vue",
        }.get(path[path.rfind("."):], "")
    return SourceFile(path=path, content=content, language=language)


@pytest.fixture
def make_file():
    """Factory for SourceFile objects."""
    return _make_file


@pytest.fixture
def config():
    """Engine config without a deadline and with a small pool."""
    return AnalyzerConfig(max_workers=2, time_budget_seconds=None)


@pytest.fixture
def heuristic_config():
    """Config that routes JS/TS through the heuristic strategy."""
    return AnalyzerConfig(max_workers=2, time_budget_seconds=None, use_tree_sitter=False)


@pytest.fixture
def cycle_files():
    """Five files: a -> b -> c -> a plus two files with no imports at all."""
    return [
        {
            "path": "src/a.ts",
            "content": "import { b } from './b'\n\nexport function a(): number {\n  return b() + 1\n}\n",
        },
        {
            "path": "src/b.ts",
            "content": "import { c } from './c'\n\nexport function b(): number {\n  return c() * 2\n}\n",
        },
        {
            "path": "src/c.ts",
            "content": "import { a } from './a'\n\nexport function c(): number {\n  return 3\n}\n\nexport const loop = () => a()\n",
        },
        {
            "path": "src/d.ts",
            "content": "export const d = 4\n",
        },
        {
            "path": "src/e.ts",
            "content": "export function e(value: string) {\n  return value.trim()\n}\n",
        },
    ]
