"""MCP server wiring for github-mcp.

Lists the tools, dispatches calls, and serializes results as JSON text content.
"""

from __future__ import annotations

import json
import logging
import sys
from typing import Any

try:
    from mcp.server import Server
    from mcp.types import TextContent, Tool
except ImportError as exc:  # pragma: no cover
    raise ImportError("MCP library not installed. Install with: pip install mcp") from exc

from .errors import SafeError, internal_error
from .tools import dispatch_tool, initialize_runtime_from_env, tool_metadata
from .translations import TranslationTable

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stderr)],
)
logger = logging.getLogger(__name__)

server = Server("github-mcp")

translations = TranslationTable()


def build_tools() -> list[Tool]:
    """Build the MCP tool list with descriptions from the translation table."""
    return [
        Tool(name=name, description=meta["description"], inputSchema=meta["inputSchema"])
        for name, meta in tool_metadata(translations).items()
    ]


@server.list_tools()
async def list_tools() -> list[Tool]:
    """List all available tools."""
    tools = build_tools()
    logger.info("Listed %s tools", len(tools))
    return tools


# Arguments are validated by the tool handlers, which report the offending parameter.
@server.call_tool(validate_input=False)
async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
    """Execute a tool and return MCP-compliant TextContent."""
    if not isinstance(arguments, dict):
        arguments = {}

    logger.info("Tool called: %s", name)

    try:
        raw_result = await dispatch_tool(name, arguments)
    except Exception as exc:  # pylint: disable=broad-exception-caught
        logger.error("Tool %s failed: %s", name, exc)
        raw_result = internal_error("Tool execution failed")
    return [TextContent(type="text", text=json.dumps(raw_result, indent=2, default=str))]


async def run_server() -> None:
    """Run the server over stdio."""
    # Fail fast on invalid/missing host configuration.
    try:
        _ = initialize_runtime_from_env()
    except SafeError as exc:
        logger.error("Startup configuration error: %s", exc.message)
        raise

    from mcp.server.stdio import stdio_server

    async with stdio_server() as (read_stream, write_stream):
        await server.run(read_stream, write_stream, server.create_initialization_options())


async def test_server() -> None:
    """Lightweight self-test to ensure tool listing works."""
    tools = build_tools()
    logger.info("Self-test built %s tools: %s", len(tools), ", ".join(t.name for t in tools))
