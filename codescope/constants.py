"""Constants and configuration values for codescope.

This module centralizes magic numbers and default thresholds that are used
across the engine. Values that operators commonly tune can be overridden
through environment variables.
"""

import os

# =============================================================================
# File Intake
# =============================================================================

# Source extensions accepted by the engine, mapped to their language tag
SOURCE_EXTENSIONS: dict[str, str] = {
    ".ts": "typescript",
    ".tsx": "tsx",
    ".js": "javascript",
    ".jsx": "jsx",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".vue": "vue",
    ".svelte": "svelte",
}

# Extensions stripped when turning a path into a node ID
ID_STRIPPED_EXTENSIONS = (".tsx", ".ts", ".jsx", ".js", ".mjs", ".cjs", ".vue", ".svelte")

# Directory names that never contain first-party source
EXCLUDED_DIRS = frozenset({
    "node_modules",
    "bower_components",
    "vendor",
    "dist",
    "build",
    "out",
    "coverage",
    ".next",
    ".nuxt",
    ".git",
    ".cache",
    "__tests__",
    "__mocks__",
    "test",
    "tests",
    "e2e",
})

# File name markers for tests and generated bundles
TEST_FILE_MARKERS = (".test.", ".spec.", "_test.", "-test.")
GENERATED_FILE_SUFFIXES = (".min.js", ".bundle.js", ".d.ts")

# Imported assets that never become graph nodes
ASSET_EXTENSIONS = frozenset({
    ".css", ".scss", ".sass", ".less", ".json", ".svg", ".png", ".jpg",
    ".jpeg", ".gif", ".webp", ".ico", ".woff", ".woff2", ".ttf", ".md",
    ".html", ".txt",
})

# Path aliases resolved like relative imports against the repository root
DEFAULT_PATH_ALIASES: dict[str, str] = {"@/": "", "~/": ""}

# Maximum size of a single file in bytes (1MB)
MAX_FILE_BYTES = int(os.environ.get("CODESCOPE_MAX_FILE_BYTES", 1024 * 1024))

# Maximum cumulative size of one analysis run in bytes (200MB)
MAX_TOTAL_BYTES = int(os.environ.get("CODESCOPE_MAX_TOTAL_BYTES", 200 * 1024 * 1024))

# Any line longer than this marks a file as minified/generated
MAX_LINE_LENGTH = 1000


# =============================================================================
# Execution
# =============================================================================

# Bounded worker pool size for per-file analysis
DEFAULT_MAX_WORKERS = int(os.environ.get("CODESCOPE_MAX_WORKERS", 4))

# Overall time budget in seconds before a run is returned as partial
DEFAULT_TIME_BUDGET_SECONDS = float(os.environ.get("CODESCOPE_TIME_BUDGET", 120))


# =============================================================================
# Pattern Scanning
# =============================================================================

# Code snippets attached to issues are truncated to this many characters
SNIPPET_LENGTH = 120

# Lines are truncated to this length before regex matching
SCAN_LINE_LIMIT = 500

# Look-ahead window (in lines) for multi-line structural rules
NESTED_LOOP_WINDOW = 20


# =============================================================================
# Dependency Graph
# =============================================================================

MAX_REPORTED_CYCLES = 10
TOP_N_RANKING = 10


# =============================================================================
# Quality Metrics
# =============================================================================

# Complexity distribution upper bounds: low <= 5 < medium <= 10 < high <= 20 < very high
COMPLEXITY_LOW = 5
COMPLEXITY_MEDIUM = 10
COMPLEXITY_HIGH = 20

# Duplicate block detection
DUPLICATION_WINDOW = 4
DUPLICATION_MIN_CHARS = 50

# Code smell thresholds
LONG_FUNCTION_LINES = 50
CRITICAL_FUNCTION_LINES = 150
MAX_PARAMETERS = 5
DEEP_NESTING_INDENT = 24

# Maintainability score steps. Above the high (below the low) bound costs
# the high penalty, above (below) the moderate bound the moderate penalty.
MAINTAINABILITY_COMPLEXITY_HIGH = 15
MAINTAINABILITY_COMPLEXITY_MODERATE = 10
MAINTAINABILITY_DOCUMENTATION_LOW = 30
MAINTAINABILITY_DOCUMENTATION_MODERATE = 60
MAINTAINABILITY_DUPLICATION_HIGH = 20
MAINTAINABILITY_DUPLICATION_MODERATE = 10
MAINTAINABILITY_HIGH_PENALTY = 20
MAINTAINABILITY_MODERATE_PENALTY = 10
MAINTAINABILITY_CRITICAL_SMELL_PENALTY = 5
MAINTAINABILITY_MAJOR_SMELL_LIMIT = 5
MAINTAINABILITY_MAJOR_SMELLS_PENALTY = 10

# Reported list caps
MAX_UNDOCUMENTED_REPORTED = 20
MAX_CODE_SMELLS_REPORTED = 500

# Technical debt minutes per item
DEBT_MINUTES_CRITICAL_SMELL = 60
DEBT_MINUTES_MAJOR_SMELL = 30
DEBT_MINUTES_MINOR_SMELL = 10
DEBT_MINUTES_VERY_COMPLEX_FUNCTION = 45
DEBT_MINUTES_COMPLEX_FUNCTION = 20
DEBT_MINUTES_UNDOCUMENTED_FUNCTION = 10
DEBT_MINUTES_UNDOCUMENTED_CLASS = 20

# Technical debt rating upper bounds in minutes (A..D, anything above is E)
DEBT_RATING_BANDS = ((60, "A"), (240, "B"), (480, "C"), (960, "D"))

# Score to letter grade lower bounds (anything below is F)
GRADE_BANDS = ((90, "A"), (80, "B"), (70, "C"), (60, "D"))


# =============================================================================
# Reports
# =============================================================================

DIAGRAM_MAX_NODES = 30
DIAGRAM_MAX_EDGES = 100

# Summed file complexity above which a diagram node is highlighted
DIAGRAM_HIGH_COMPLEXITY = 20
DIAGRAM_MEDIUM_COMPLEXITY = 10

REPORT_MAX_CRITICAL_SMELLS = 5
REPORT_MAX_MAJOR_SMELLS = 10


# =============================================================================
# Server
# =============================================================================

DEFAULT_PORT = int(os.environ.get("CODESCOPE_PORT", 3000))
