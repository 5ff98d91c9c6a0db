"""
Rule tables for the pattern scanner and the code smell detector.

Rules are data: adding a detection means adding a table entry, not code.
Each pattern rule includes:
- A unique rule ID (``SEC*`` for vulnerabilities, ``PERF*`` for performance)
- Category, issue kind and severity
- A line regex, matched against comment-masked source
- Optional window regex for multi-line structural rules (nested loops,
  DOM queries in loops, effects that fetch)
- Optional suppression regexes, per line or per file
- Remediation advice and a CWE reference where one applies

Table order is the order issues are reported in for a given line.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from .models import IssueCategory, Severity, SmellSeverity


@dataclass(frozen=True)
class PatternRule:
    """A single-line or windowed detection rule.

    Attributes:
        rule_id: Unique identifier (e.g., "SEC017").
        category: Vulnerability or performance.
        kind: Issue kind reported on matches (e.g., "sql_injection").
        severity: Severity of every match.
        pattern: Regex searched in each (truncated, comment-masked) line.
        message: Short description attached to the issue.
        remediation: How to fix the detected issue.
        cwe_id: Applicable CWE identifier, if any.
        window_pattern: When set, the rule only fires if this regex also
            matches one of the following lines inside the opened block.
        window_size: Number of following lines searched for
            ``window_pattern``; 0 uses the configured default.
        suppress_pattern: A line matching this regex never fires.
        file_suppress_pattern: A file whose content matches this regex is
            exempt from the rule.
    """

    rule_id: str
    category: IssueCategory
    kind: str
    severity: Severity
    pattern: re.Pattern[str]
    message: str
    remediation: str = ""
    cwe_id: str | None = None
    window_pattern: re.Pattern[str] | None = None
    window_size: int = 0
    suppress_pattern: re.Pattern[str] | None = None
    file_suppress_pattern: re.Pattern[str] | None = None


@dataclass(frozen=True)
class SmellRule:
    """A line-level code smell rule matched against raw source lines."""

    rule_id: str
    type: str
    severity: SmellSeverity
    pattern: re.Pattern[str]
    message: str
    suggestion: str = ""


_VULN = IssueCategory.VULNERABILITY
_PERF = IssueCategory.PERFORMANCE

_SQL_CONTEXT = r"(?:\bSELECT\b[^;]*?\bFROM\b|\bINSERT\s+INTO\b|\bUPDATE\s+[\w.\"`]+\s+SET\b|\bDELETE\s+FROM\b)"
_LOOP_START = r"\b(?:for|while)\s*\(|\.(?:forEach|map|filter|reduce|some|every)\s*\("


# ---------------------------------------------------------------------------
# Security rules
# ---------------------------------------------------------------------------

SECURITY_RULES: tuple[PatternRule, ...] = (
    PatternRule(
        rule_id="SEC001",
        category=_VULN,
        kind="sql_injection",
        severity=Severity.CRITICAL,
        pattern=re.compile(
            _SQL_CONTEXT + r"[^;]*?(?:\$\{|['\"`]\s*\+\s*[\w$(])", re.IGNORECASE
        ),
        message="SQL statement built with string interpolation or concatenation",
        remediation="Use parameterized queries or prepared statements instead of string interpolation",
        cwe_id="CWE-89",
    ),
    PatternRule(
        rule_id="SEC002",
        category=_VULN,
        kind="sql_injection",
        severity=Severity.HIGH,
        pattern=re.compile(r"\$(?:query|execute)RawUnsafe\s*\("),
        message="Unsafe raw SQL query",
        remediation="Prefer ORM methods or the tagged-template $queryRaw form, which parameterizes values",
        cwe_id="CWE-89",
    ),
    PatternRule(
        rule_id="SEC003",
        category=_VULN,
        kind="xss",
        severity=Severity.HIGH,
        pattern=re.compile(r"dangerouslySetInnerHTML\s*=\s*\{\s*\{\s*__html\s*:"),
        message="Potential XSS via dangerouslySetInnerHTML",
        remediation="Sanitize HTML content using DOMPurify or a similar library before rendering",
        cwe_id="CWE-79",
    ),
    PatternRule(
        rule_id="SEC004",
        category=_VULN,
        kind="xss",
        severity=Severity.MEDIUM,
        pattern=re.compile(r"\.(?:inner|outer)HTML\s*=(?!=)|\bdocument\.write(?:ln)?\s*\("),
        message="Direct HTML assignment",
        remediation="Use textContent instead of innerHTML, or sanitize the content",
        cwe_id="CWE-79",
    ),
    PatternRule(
        rule_id="SEC005",
        category=_VULN,
        kind="command_injection",
        severity=Severity.CRITICAL,
        pattern=re.compile(
            r"\b(?:exec|execSync|spawn|spawnSync)\s*\(\s*(?:`[^`]*\$\{|['\"][^'\"]*['\"]\s*\+)"
        ),
        message="Shell command built from dynamic input",
        remediation="Avoid shell commands with user input; use execFile() with an argument array and an allowlist",
        cwe_id="CWE-78",
    ),
    PatternRule(
        rule_id="SEC006",
        category=_VULN,
        kind="command_injection",
        severity=Severity.HIGH,
        pattern=re.compile(r"\bchild_process\.exec\s*\("),
        message="Shell command execution through child_process.exec()",
        remediation="Replace exec() with execFile() and pass arguments as an array",
        cwe_id="CWE-78",
    ),
    PatternRule(
        rule_id="SEC007",
        category=_VULN,
        kind="path_traversal",
        severity=Severity.HIGH,
        pattern=re.compile(
            r"\b(?:readFile|readFileSync|writeFile|writeFileSync|createReadStream|createWriteStream)"
            r"\s*\([^)]*(?:\+|\breq\.(?:params|query|body))"
        ),
        message="File path built from dynamic input",
        remediation="Use path.resolve() and check the resolved path stays inside the expected directory",
        cwe_id="CWE-22",
    ),
    PatternRule(
        rule_id="SEC008",
        category=_VULN,
        kind="hardcoded_secret",
        severity=Severity.CRITICAL,
        pattern=re.compile(
            r"(?:api[_-]?key|secret|password|passwd|token|auth)\w*['\"]?\s*[:=]\s*['\"][A-Za-z0-9_\-]{20,}['\"]",
            re.IGNORECASE,
        ),
        message="Hardcoded API key or secret",
        remediation="Read secrets from environment variables; never commit credentials to source control",
        cwe_id="CWE-798",
    ),
    PatternRule(
        rule_id="SEC009",
        category=_VULN,
        kind="hardcoded_secret",
        severity=Severity.CRITICAL,
        pattern=re.compile(r"-----BEGIN (?:RSA |EC |OPENSSH |DSA )?PRIVATE KEY-----"),
        message="Hardcoded private key",
        remediation="Store private keys in a key management system or environment variables",
        cwe_id="CWE-321",
    ),
    PatternRule(
        rule_id="SEC010",
        category=_VULN,
        kind="insecure_crypto",
        severity=Severity.HIGH,
        pattern=re.compile(r"createHash\s*\(\s*['\"]md5['\"]\s*\)", re.IGNORECASE),
        message="Weak cryptographic algorithm (MD5)",
        remediation="Use SHA-256 or stronger for hashing; use bcrypt or argon2 for passwords",
        cwe_id="CWE-328",
    ),
    PatternRule(
        rule_id="SEC011",
        category=_VULN,
        kind="insecure_crypto",
        severity=Severity.HIGH,
        pattern=re.compile(r"createHash\s*\(\s*['\"]sha1['\"]\s*\)", re.IGNORECASE),
        message="Weak cryptographic algorithm (SHA1)",
        remediation="Use SHA-256 or SHA-3 for cryptographic hashing",
        cwe_id="CWE-328",
    ),
    PatternRule(
        rule_id="SEC012",
        category=_VULN,
        kind="insecure_random",
        severity=Severity.MEDIUM,
        pattern=re.compile(r"\bMath\.random\s*\(\s*\)"),
        message="Math.random() is not cryptographically secure",
        remediation="Use crypto.randomBytes() or crypto.randomUUID() for security-sensitive values",
        cwe_id="CWE-330",
    ),
    PatternRule(
        rule_id="SEC013",
        category=_VULN,
        kind="cors_misconfiguration",
        severity=Severity.MEDIUM,
        pattern=re.compile(
            r"(?:Access-Control-Allow-Origin['\"]?|\borigin)\s*[:=,]\s*['\"]\*['\"]", re.IGNORECASE
        ),
        message="Wildcard CORS origin",
        remediation="List allowed origins explicitly instead of using a wildcard",
        cwe_id="CWE-942",
    ),
    PatternRule(
        rule_id="SEC014",
        category=_VULN,
        kind="insecure_cookie",
        severity=Severity.MEDIUM,
        pattern=re.compile(r"\b(?:res\.cookie|cookies\(\)\.set|cookies\.set)\s*\("),
        message="Cookie set without the Secure flag",
        remediation="Set Secure, HttpOnly and SameSite on sensitive cookies",
        cwe_id="CWE-614",
        suppress_pattern=re.compile(r"\bsecure\b", re.IGNORECASE),
    ),
    PatternRule(
        rule_id="SEC015",
        category=_VULN,
        kind="prototype_pollution",
        severity=Severity.HIGH,
        pattern=re.compile(
            r"Object\.assign\s*\([^,]+,\s*(?:req\.body|req\.query|params)\b|\[\s*['\"]__proto__['\"]\s*\]"
        ),
        message="User input merged directly into an object",
        remediation="Validate input before merging; use Object.create(null) for lookup objects",
        cwe_id="CWE-1321",
    ),
    PatternRule(
        rule_id="SEC016",
        category=_VULN,
        kind="open_redirect",
        severity=Severity.MEDIUM,
        pattern=re.compile(
            r"(?:\bres\.redirect\s*\(|\blocation\.href\s*=|\bwindow\.location\s*=)\s*"
            r"(?:req\.(?:query|params|body)|params|searchParams)"
        ),
        message="Redirect to a user-controlled URL",
        remediation="Validate redirect targets against an allowlist of trusted destinations",
        cwe_id="CWE-601",
    ),
    PatternRule(
        rule_id="SEC017",
        category=_VULN,
        kind="code_injection",
        severity=Severity.CRITICAL,
        pattern=re.compile(r"\beval\s*\("),
        message="Use of eval()",
        remediation="Avoid eval(); use JSON.parse() for data or an explicit dispatch table",
        cwe_id="CWE-95",
    ),
    PatternRule(
        rule_id="SEC018",
        category=_VULN,
        kind="regex_dos",
        severity=Severity.MEDIUM,
        pattern=re.compile(r"\bnew\s+RegExp\s*\([^)]*(?:\+|\breq\.|\$\{)"),
        message="Regular expression built from dynamic input",
        remediation="Do not build regexes from user input; escape it or use a safe-regex check",
        cwe_id="CWE-1333",
    ),
    PatternRule(
        rule_id="SEC019",
        category=_VULN,
        kind="code_injection",
        severity=Severity.HIGH,
        pattern=re.compile(r"\bnew\s+Function\s*\("),
        message="Dynamic code construction with new Function()",
        remediation="Replace generated functions with static code",
        cwe_id="CWE-95",
    ),
    PatternRule(
        rule_id="SEC020",
        category=_VULN,
        kind="sensitive_data",
        severity=Severity.MEDIUM,
        pattern=re.compile(
            r"\bconsole\.(?:log|info|debug|warn)\s*\([^)]*\b(?:password|token|secret)", re.IGNORECASE
        ),
        message="Sensitive value written to the console",
        remediation="Never log credentials or tokens",
        cwe_id="CWE-532",
    ),
    PatternRule(
        rule_id="SEC021",
        category=_VULN,
        kind="missing_auth",
        severity=Severity.MEDIUM,
        pattern=re.compile(r"\bexport\s+(?:async\s+)?function\s+(?:GET|POST|PUT|DELETE|PATCH)\b"),
        message="API route handler without an authentication check",
        remediation="Check the session or require authentication before handling the request",
        cwe_id="CWE-306",
        file_suppress_pattern=re.compile(
            r"\b(?:requireAuth|getSession|getServerSession|auth|currentUser|verifyToken)\s*\("
        ),
    ),
    PatternRule(
        rule_id="SEC022",
        category=_VULN,
        kind="hardcoded_url",
        severity=Severity.LOW,
        pattern=re.compile(r"\bhttps?://(?:localhost|127\.0\.0\.1)\b", re.IGNORECASE),
        message="Hardcoded localhost URL",
        remediation="Read the base URL from configuration or an environment variable",
        cwe_id="CWE-547",
    ),
)


# ---------------------------------------------------------------------------
# Performance rules
# ---------------------------------------------------------------------------

PERFORMANCE_RULES: tuple[PatternRule, ...] = (
    PatternRule(
        rule_id="PERF001",
        category=_PERF,
        kind="n_squared",
        severity=Severity.HIGH,
        pattern=re.compile(_LOOP_START),
        message="Nested loop detected - O(n^2) complexity",
        remediation="Index one side with a Map or Set to avoid the inner loop",
        window_pattern=re.compile(_LOOP_START),
    ),
    PatternRule(
        rule_id="PERF002",
        category=_PERF,
        kind="memory_leak",
        severity=Severity.MEDIUM,
        pattern=re.compile(r"\bsetInterval\s*\("),
        message="Interval timer is never cleared",
        remediation="Keep the timer handle and call clearInterval() on cleanup",
        file_suppress_pattern=re.compile(r"\bclearInterval\s*\("),
    ),
    PatternRule(
        rule_id="PERF003",
        category=_PERF,
        kind="memory_leak",
        severity=Severity.MEDIUM,
        pattern=re.compile(r"\baddEventListener\s*\("),
        message="Event listener is never removed",
        remediation="Call removeEventListener() (or use an AbortSignal) on cleanup",
        file_suppress_pattern=re.compile(r"\bremoveEventListener\s*\(|\bsignal\s*:"),
    ),
    PatternRule(
        rule_id="PERF004",
        category=_PERF,
        kind="blocking_io",
        severity=Severity.MEDIUM,
        pattern=re.compile(
            r"\b(?:readFileSync|writeFileSync|appendFileSync|readdirSync|statSync|existsSync|execSync)\s*\("
        ),
        message="Synchronous I/O blocks the event loop",
        remediation="Use the promise-based fs API or run the call off the request path",
    ),
    PatternRule(
        rule_id="PERF005",
        category=_PERF,
        kind="inefficient_clone",
        severity=Severity.LOW,
        pattern=re.compile(r"JSON\.parse\s*\(\s*JSON\.stringify\s*\("),
        message="Deep clone via JSON - slow for large objects",
        remediation="Use structuredClone()",
    ),
    PatternRule(
        rule_id="PERF006",
        category=_PERF,
        kind="sequential_async",
        severity=Severity.HIGH,
        pattern=re.compile(r"\.forEach\s*\(\s*async\b"),
        message="async callback inside forEach is not awaited",
        remediation="Use Promise.all with map, or a for...of loop with await",
    ),
    PatternRule(
        rule_id="PERF007",
        category=_PERF,
        kind="large_allocation",
        severity=Severity.MEDIUM,
        pattern=re.compile(r"\bnew\s+Array\s*\(\s*\d{6,}\s*\)"),
        message="Very large array allocation",
        remediation="Stream or paginate the data instead",
    ),
    PatternRule(
        rule_id="PERF008",
        category=_PERF,
        kind="dom_query_in_loop",
        severity=Severity.MEDIUM,
        pattern=re.compile(_LOOP_START),
        message="DOM query inside loop",
        remediation="Query the element once before the loop and reuse the reference",
        window_pattern=re.compile(
            r"\bdocument\.(?:querySelector(?:All)?|getElementById|getElementsBy\w+)\s*\("
        ),
    ),
    PatternRule(
        rule_id="PERF009",
        category=_PERF,
        kind="missing_cleanup",
        severity=Severity.LOW,
        pattern=re.compile(r"\buseEffect\s*\("),
        message="Fetch in useEffect without cleanup",
        remediation="Pass an AbortController signal to fetch and abort it in the effect cleanup",
        window_pattern=re.compile(r"\bfetch\s*\("),
        file_suppress_pattern=re.compile(r"\bAbortController\b|\bsignal\s*:"),
    ),
)


PATTERN_RULES: tuple[PatternRule, ...] = SECURITY_RULES + PERFORMANCE_RULES


# ---------------------------------------------------------------------------
# Code smell rules (line level; function-level smells use thresholds)
# ---------------------------------------------------------------------------

SMELL_RULES: tuple[SmellRule, ...] = (
    SmellRule(
        rule_id="SMELL001",
        type="promise_chain",
        severity=SmellSeverity.MAJOR,
        pattern=re.compile(r"\.then\s*\(.*\.then\s*\(.*\.then\s*\("),
        message="Deeply chained promises",
        suggestion="Rewrite the chain with async/await",
    ),
    SmellRule(
        rule_id="SMELL002",
        type="type_check_suppressed",
        severity=SmellSeverity.MAJOR,
        pattern=re.compile(r"@ts-(?:ignore|nocheck)\b"),
        message="TypeScript checking suppressed",
        suggestion="Fix the type error instead of suppressing it",
    ),
    SmellRule(
        rule_id="SMELL003",
        type="lint_suppressed",
        severity=SmellSeverity.MINOR,
        pattern=re.compile(r"eslint-disable"),
        message="ESLint rule disabled",
        suggestion="Fix the linting issue instead of disabling the rule",
    ),
    SmellRule(
        rule_id="SMELL004",
        type="todo_comment",
        severity=SmellSeverity.MINOR,
        pattern=re.compile(r"\b(?:TODO|FIXME|HACK|XXX)\b"),
        message="Unresolved TODO marker",
        suggestion="Resolve the marker or track it in the issue tracker",
    ),
    SmellRule(
        rule_id="SMELL005",
        type="console_statement",
        severity=SmellSeverity.MINOR,
        pattern=re.compile(r"\bconsole\.(?:log|debug|info|trace)\s*\("),
        message="Console statement left in code",
        suggestion="Use a logger or remove the statement",
    ),
    SmellRule(
        rule_id="SMELL006",
        type="explicit_any",
        severity=SmellSeverity.MINOR,
        pattern=re.compile(r":\s*any\b(?!\w)|\bas\s+any\b|<any>"),
        message='Use of "any" type reduces type safety',
        suggestion="Use a specific type or unknown",
    ),
    SmellRule(
        rule_id="SMELL007",
        type="empty_catch",
        severity=SmellSeverity.MAJOR,
        pattern=re.compile(r"\bcatch\s*(?:\(\s*[\w$]*\s*\))?\s*\{\s*\}"),
        message="Empty catch block - errors are silently ignored",
        suggestion="Handle or log the error",
    ),
)

# Function and file level smells, evaluated in code
LONG_FUNCTION_RULE_ID = "SMELL101"
EXCESSIVE_PARAMETERS_RULE_ID = "SMELL102"
DEEP_NESTING_RULE_ID = "SMELL103"
