import asyncio
import logging
import os
import sys
from typing import Annotated, Any, Literal

from fastmcp import FastMCP
from pydantic import Field

from . import __version__, constants
from .config import AnalyzerConfig
from .core.exceptions import CodescopeError
from .engine import AnalysisEngine
from .logging_config import configure_analysis_logging
from .models import AnalysisResult
from .reports import analysis_report, mermaid_diagram, quality_report, security_report

logger = logging.getLogger("codescope.server")

mcp: FastMCP = FastMCP("codescope-mcp")

ReportSection = Literal["full", "quality", "security", "dependencies"]


def run_analysis(
    files: list[dict[str, Any]], config: dict[str, Any] | None = None
) -> AnalysisResult:
    """Analyze *files* with a fresh engine built from the *config* mapping.

    Raises:
        InvalidConfigError: If *config* fails validation.
        EmptyFileSetError: If no analyzable source file was supplied.
    """
    engine = AnalysisEngine(AnalyzerConfig.from_mapping(config))
    return engine.analyze(files)


def render_report(result: AnalysisResult, section: ReportSection = "full") -> str:
    """Render one section of *result* as Markdown."""
    if section == "quality":
        return quality_report(result.quality)
    if section == "security":
        return security_report(result.security_issues, result.security_summary)
    if section == "dependencies":
        return "```mermaid\n" + mermaid_diagram(result.dependencies) + "```\n"
    return analysis_report(result)


_FILES_DESCRIPTION = (
    "List of source files to analyze. Each file needs 'path' (repository-relative "
    "path) and 'content' (file text) keys and may carry a 'language' tag. "
    "Example: [{'path': 'src/app.ts', 'content': 'export const x = 1'}, ...]"
)

_CONFIG_DESCRIPTION = (
    "Optional analyzer settings, e.g. {'maxWorkers': 8, 'timeBudgetSeconds': 60, "
    "'pathAliases': {'@/': 'src/'}, 'useTreeSitter': false}"
)


@mcp.tool
async def analyze_codebase(
    files: Annotated[list[dict[str, Any]], Field(description=_FILES_DESCRIPTION)],
    config: Annotated[
        dict[str, Any] | None,
        Field(description=_CONFIG_DESCRIPTION, default=None),
    ] = None,
) -> dict[str, Any]:
    """Statically analyze a JavaScript/TypeScript codebase snapshot.

    USE THIS TOOL WHEN:
    - You need the functions, classes, interfaces and exports of a codebase
    - You want the import dependency graph, circular dependencies or orphan files
    - The user asks for code quality, complexity, duplication or documentation metrics
    - You want pattern-based security and performance findings for JS/TS code

    Returns the full analysis result (camelCase keys). On failure returns an
    object with a single 'error' key.
    """
    try:
        logger.info(f"Starting codebase analysis of {len(files)} files")
        engine = AnalysisEngine(AnalyzerConfig.from_mapping(config))
        result = await engine.analyze_async(files)
        return result.model_dump(mode="json", by_alias=True)
    except CodescopeError as e:
        logger.error(f"Codebase analysis of {len(files)} files failed: {e}")
        return {"error": str(e)}


@mcp.tool
async def render_analysis_report(
    files: Annotated[list[dict[str, Any]], Field(description=_FILES_DESCRIPTION)],
    section: Annotated[
        ReportSection,
        Field(
            description="Report section: 'full', 'quality', 'security' or 'dependencies' (Mermaid diagram)",
            default="full",
        ),
    ] = "full",
    config: Annotated[
        dict[str, Any] | None,
        Field(description=_CONFIG_DESCRIPTION, default=None),
    ] = None,
) -> str:
    """Analyze a JavaScript/TypeScript codebase snapshot and return a Markdown report.

    USE THIS TOOL WHEN:
    - The user wants a human-readable quality or security report
    - You need a Mermaid diagram of the file dependency graph

    Returns Markdown text, or a line starting with 'Error:' on failure.
    """
    try:
        engine = AnalysisEngine(AnalyzerConfig.from_mapping(config))
        result = await engine.analyze_async(files)
        return render_report(result, section)
    except CodescopeError as e:
        logger.error(f"Report rendering for {len(files)} files failed: {e}")
        return f"Error: {str(e)}"


def main() -> None:
    """Run the MCP server with HTTP streaming transport."""
    configure_analysis_logging(
        log_file=os.environ.get("CODESCOPE_LOG_FILE"),
        log_level=os.environ.get("CODESCOPE_LOG_LEVEL", "INFO"),
    )

    port = constants.DEFAULT_PORT
    print(f"codescope MCP Server v{__version__} (HTTP Streaming)", file=sys.stderr)
    print("=" * 50, file=sys.stderr)
    print(f"Starting HTTP streaming server on port {port}...", file=sys.stderr)
    print(f"HTTP endpoint will be available at: http://localhost:{port}/mcp", file=sys.stderr)

    try:
        asyncio.run(mcp.run_http_async(transport="streamable-http", host="0.0.0.0", port=port))
    except KeyboardInterrupt:
        print("\nShutting down...", file=sys.stderr)
        sys.exit(0)
    except Exception as e:
        print(f"MCP server error: {e}", file=sys.stderr)
        import traceback

        traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main()
