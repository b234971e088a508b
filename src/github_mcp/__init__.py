"""GitHub MCP Server.

A Model Context Protocol server exposing a small set of GitHub operations.
Every tool validates its untyped argument bag through the shared typed
accessors in ``github_mcp.params`` before touching the GitHub API.

Run with: python -m github_mcp
"""

__version__ = "0.3.0"
