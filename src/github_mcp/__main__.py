#!/usr/bin/env python3
"""github-mcp MCP Server entry point.

Run:
  python -m github_mcp                          # start server (stdio)
  python -m github_mcp --test                   # run lightweight self-tests then exit
  python -m github_mcp --export-translations    # print every description key as JSON
"""

import argparse
import asyncio
import json
import sys

from github_mcp.server import build_tools, run_server, test_server, translations


def parse_args(argv: list[str]) -> argparse.Namespace:
    """Parse CLI arguments."""
    parser = argparse.ArgumentParser(prog="github_mcp", add_help=True)
    parser.add_argument(
        "--test",
        action="store_true",
        help="Run built-in server self tests (tool listing) then exit.",
    )
    parser.add_argument(
        "--export-translations",
        action="store_true",
        help="Print the resolved tool description strings as JSON then exit.",
    )
    return parser.parse_args(argv)


def main() -> None:
    """CLI dispatcher for the MCP server."""
    args = parse_args(sys.argv[1:])
    try:
        if args.export_translations:
            _ = build_tools()
            print(json.dumps(translations.export(), indent=2))
        elif args.test:
            asyncio.run(test_server())
        else:
            asyncio.run(run_server())
    except KeyboardInterrupt:
        print("\nServer stopped by user", file=sys.stderr)
    except Exception as exc:  # pylint: disable=broad-exception-caught
        print(f"Server error: {exc}", file=sys.stderr)
        raise


if __name__ == "__main__":
    main()
