"""MCP Server exposing the CSS coverage scanner.

Supports both STDIO and HTTP transports.

Usage:
    # STDIO (for desktop MCP clients)
    python -m cssscan.mcp_server

    # HTTP (for remote access)
    python -m cssscan.mcp_server --transport http --port 8000

    # Or via FastMCP CLI
    fastmcp run cssscan/mcp_server.py:mcp --transport http --port 8000
"""

from __future__ import annotations

import argparse
import json
import logging
from enum import Enum

from fastmcp import FastMCP

from .cli_output import format_summary_markdown, result_to_dict
from .config import load_env_config, options_from_env

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%H:%M:%S",
)
LOGGER = logging.getLogger(__name__)

load_env_config()

mcp = FastMCP(
    name="CSS Coverage Scanner",
    instructions="""
    Measures how much of a website's CSS is applied while rendering.

    Tool:
       - scan_css_coverage: Crawl a site within its origin, render every page
         at desktop, tablet and mobile sizes, and report used vs unused CSS.
         used.css and unused.css are written to the output directory.

    Output formats:
    - markdown: Summary table and page list (default)
    - json: Full scan result
    """,
)


class OutputFormat(str, Enum):
    """Output format for scan results."""

    markdown = "markdown"
    json = "json"


async def scan_css_coverage(
    url: str,
    depth: int = 0,
    max_pages: int = 1,
    output_dir: str = ".",
    output_format: str = "markdown",
):
    """
    Measure used and unused CSS across pages and viewports.

    Args:
        url: The seed URL (http or https)
        depth: Link depth to crawl (default: 0, seed page only)
        max_pages: Maximum number of pages to scan (default: 1)
        output_dir: Directory receiving used.css and unused.css (default: ".")
        output_format: "markdown" (default) or "json"

    Returns:
        Coverage summary in the specified format, or a JSON error object.

    Examples:
        scan_css_coverage(url="https://example.com")
        scan_css_coverage(url="https://example.com", depth=2, max_pages=10)
    """
    from . import scan_css_coverage_async

    try:
        fmt = OutputFormat(output_format.lower())
    except ValueError:
        fmt = OutputFormat.markdown

    LOGGER.info(
        "Starting CSS scan: %s (depth=%d, max_pages=%d)", url, depth, max_pages
    )

    try:
        options = options_from_env(
            depth=depth, max_pages=max_pages, output_dir=output_dir
        )
        result = await scan_css_coverage_async(url, options=options)
    except Exception as exc:
        error_msg = f"Scan failed: {exc}"
        LOGGER.error(error_msg)
        return json.dumps({"error": error_msg, "url": url}, ensure_ascii=False)

    if fmt == OutputFormat.json:
        return json.dumps(result_to_dict(result), indent=2, ensure_ascii=False)
    return format_summary_markdown(result)


mcp.tool(name="scan_css_coverage")(scan_css_coverage)


def main():
    """CLI entry point for running the MCP server."""
    parser = argparse.ArgumentParser(
        description="Run the CSS coverage MCP server.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # STDIO transport (default)
    python -m cssscan.mcp_server

    # HTTP transport (for remote access)
    python -m cssscan.mcp_server --transport http --port 8000
""",
    )
    parser.add_argument(
        "--transport",
        choices=["stdio", "http"],
        default="stdio",
        help="Transport protocol (default: stdio)",
    )
    parser.add_argument(
        "--host",
        default="127.0.0.1",
        help="Host to bind to for HTTP transport (default: 127.0.0.1)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port to bind to for HTTP transport (default: 8000)",
    )

    args = parser.parse_args()

    if args.transport == "http":
        LOGGER.info("Starting MCP server on http://%s:%d/mcp", args.host, args.port)
        mcp.run(transport="http", host=args.host, port=args.port)
    else:
        LOGGER.info("Starting MCP server with STDIO transport")
        mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
