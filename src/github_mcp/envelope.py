"""Canonical MCP request envelopes.

Every tool handler reads its arguments from the same envelope shape, whether
the call came from the stdio transport or from a test harness.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from mcp.types import CallToolRequest, CallToolRequestParams


def create_mcp_request(arguments: Mapping[str, Any] | None = None, *, name: str = "") -> CallToolRequest:
    """Build a ``tools/call`` request carrying a copy of ``arguments``."""
    return CallToolRequest(
        method="tools/call",
        params=CallToolRequestParams(name=name, arguments=dict(arguments or {})),
    )


def request_arguments(request: CallToolRequest) -> dict[str, Any]:
    """Return the argument bag of a ``tools/call`` request (``{}`` when none was sent)."""
    return dict(request.params.arguments or {})
