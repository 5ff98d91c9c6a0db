"""Rule-driven scanner for security vulnerabilities and performance anti-patterns."""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Sequence

from .config import AnalyzerConfig
from .models import Issue, IssueCategory, SecuritySummary, Severity, SourceFile
from .parsing import mask_comments, mask_source, script_view
from .quality import letter_grade
from .rules import PATTERN_RULES, PatternRule

logger = logging.getLogger(__name__)

# Score deduction per issue of each severity
_SEVERITY_PENALTY = {
    Severity.CRITICAL: 20,
    Severity.HIGH: 10,
    Severity.MEDIUM: 5,
    Severity.LOW: 2,
}


class PatternScanner:
    """Matches the rule table against every line of a file.

    Regular rules see comment-masked lines (string literals intact, since
    secrets and SQL live in strings). Window rules see fully masked lines so
    braces and keywords inside literals do not count.
    """

    def __init__(
        self,
        config: AnalyzerConfig,
        rules: Sequence[PatternRule] = PATTERN_RULES,
    ) -> None:
        self.config = config
        self.rules = tuple(rules)

    def scan(self, file: SourceFile) -> list[Issue]:
        """Return the issues found in *file*, deduplicated by line and message."""
        text = script_view(file.content, file.language)
        limit = self.config.scan_line_limit
        raw_lines = text.split("\n")
        comment_masked = mask_comments(text)
        masked_lines = [line[:limit] for line in comment_masked.split("\n")]
        code_lines = [line[:limit] for line in mask_source(text).split("\n")]

        active = [
            rule
            for rule in self.rules
            if rule.file_suppress_pattern is None
            or not rule.file_suppress_pattern.search(comment_masked)
        ]

        issues: list[Issue] = []
        seen: set[tuple[str, int, str]] = set()
        for index, line in enumerate(masked_lines):
            for rule in active:
                candidate = code_lines[index] if rule.window_pattern else line
                if not rule.pattern.search(candidate):
                    continue
                if rule.suppress_pattern and rule.suppress_pattern.search(line):
                    continue
                if rule.window_pattern and not self._window_matches(rule, code_lines, index):
                    continue

                key = (file.path, index + 1, rule.message)
                if key in seen:
                    continue
                seen.add(key)
                issues.append(
                    Issue(
                        rule_id=rule.rule_id,
                        kind=rule.kind,
                        category=rule.category,
                        severity=rule.severity,
                        file_path=file.path,
                        line=index + 1,
                        message=rule.message,
                        remediation=rule.remediation,
                        code_snippet=raw_lines[index].strip()[: self.config.snippet_length],
                        cwe_id=rule.cwe_id,
                    )
                )
        return issues

    def _window_matches(self, rule: PatternRule, lines: list[str], index: int) -> bool:
        """Look for ``window_pattern`` in the block opened on line *index*.

        The window ends after ``window_size`` lines or as soon as the block
        opened by the matching line is closed again.
        """
        size = rule.window_size or self.config.nested_loop_window
        first = lines[index]
        depth = first.count("{") - first.count("}")
        opened = depth > 0
        for j in range(index + 1, min(index + 1 + size, len(lines))):
            line = lines[j]
            if rule.window_pattern.search(line):
                return True
            depth += line.count("{") - line.count("}")
            if depth > 0:
                opened = True
            elif opened:
                return False
        return False


def split_issues(issues: Sequence[Issue]) -> tuple[list[Issue], list[Issue]]:
    """Partition issues into ``(security, performance)`` preserving order."""
    security = [i for i in issues if i.category is IssueCategory.VULNERABILITY]
    performance = [i for i in issues if i.category is IssueCategory.PERFORMANCE]
    return security, performance


def summarize_security(issues: Sequence[Issue]) -> SecuritySummary:
    """Severity and kind counts, affected files, score and grade."""
    by_severity = Counter(issue.severity for issue in issues)
    score = 100 - sum(_SEVERITY_PENALTY[sev] * count for sev, count in by_severity.items())
    score = max(0, score)
    return SecuritySummary(
        total_issues=len(issues),
        by_severity={sev.value: by_severity.get(sev, 0) for sev in Severity},
        by_kind=dict(Counter(issue.kind for issue in issues)),
        affected_files=len({issue.file_path for issue in issues}),
        score=score,
        grade=letter_grade(score),
    )
