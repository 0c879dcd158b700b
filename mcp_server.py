#!/usr/bin/env python3
"""
MCP Server for junit-report-analyzer.
Provides tools for parsing JUnit-style XML reports into normalized results.
"""

import asyncio
import json
import logging

from fastmcp import FastMCP

import core
from junit_report_parser.config import load_config

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# FastMCP server
mcp = FastMCP("junit-report-analyzer")


@mcp.tool(
    name="parse_report",
    description="""Parse a JUnit-style XML report into normalized suites and cases.
        Args:
            path: Path of the report file
            keep_long_stdio: Keep console output whole instead of truncating it (default: False)
            diagnostics: Include which fallback rules recovered each field (default: False)
    """
)
async def parse_report(path: str, keep_long_stdio: bool = False, diagnostics: bool = False) -> str:
    try:
        result = core.parse_report(path, core.get_parser(keep_long_stdio, diagnostics))
        if "error" in result:
            return json.dumps({"path": path, "error": result["error"], "suites": []})
        return json.dumps({"path": path, "suites": [core.suite_to_dict(s) for s in result["suites"]]},
                          indent=2, default=str)
    except Exception as e:
        logger.error(f"Error in parse_report: {str(e)}")
        return json.dumps({"error": str(e), "suites": []})


@mcp.tool(
    name="summarize_report",
    description="""Summarize pass/fail counts and failed tests of one or more JUnit-style XML reports.
        Args:
            paths: Report file paths
    """
)
async def summarize_report(paths: list[str]) -> str:
    try:
        results = core.parse_reports(paths)
        suites = [s for r in results for s in r["suites"]]
        summary = core.summarize(suites)
        summary["errors"] = [r["error"] for r in results if r.get("error")]
        return json.dumps(summary, indent=2, default=str)
    except Exception as e:
        logger.error(f"Error in summarize_report: {str(e)}")
        return json.dumps({"error": str(e)})


async def main():
    port = int(load_config().get("FASTMCP_PORT", "8978"))
    logger.info(f"Starting MCP server on port {port}")
    await mcp.run_async(transport="sse", host="0.0.0.0", port=port)


if __name__ == "__main__":
    asyncio.run(main())
