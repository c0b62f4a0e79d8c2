"""
Run Bridge — discover remote MCP servers and call their tools.

This is the script for poking at a bridge config from a terminal. It:
1. Loads the bridge config (YAML or JSON)
2. Runs blocking discovery against every configured server
3. Lists the bridged tools, or
4. Calls one of them and prints the result

Usage:
    # List every bridged tool
    python run_bridge.py --config bridge.yaml --list

    # Call a tool with the server's static token
    python run_bridge.py --config bridge.yaml --call notion_search --args '{"query": "roadmap"}'

    # Call a tool as an end user, with tokens from the token store
    python run_bridge.py --config bridge.yaml --call gmail_search --args '{}' \\
        --user 12345 --tokens ~/.mcp-bridge/tokens.db
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

import yaml

from mcp_bridge.config import load_config_file
from mcp_bridge.manager import BridgeManager
from mcp_bridge.token_store import TokenStore

logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
logger = logging.getLogger(__name__)


def print_tools(manager: BridgeManager) -> None:
    """Print bridged tools grouped by server."""
    for server_name, ok in manager.list_servers().items():
        tools = manager.list_tools(server_name)
        status = f"{len(tools)} tools" if ok else "discovery failed"
        print(f"  [{server_name}] ({status})")
        for tool in tools:
            required = tool.parameters.get("required", [])
            params = ", ".join(tool.parameters.get("properties", {}).keys()) or "none"
            print(f"    {tool.name:<35} params: {params}" + (f" (required: {', '.join(required)})" if required else ""))
        print()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Discover MCP HTTP servers and call their tools through the bridge.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python run_bridge.py --config bridge.yaml --list
  python run_bridge.py --config bridge.yaml --call notion_search --args '{"query": "roadmap"}'
        """,
    )
    parser.add_argument("--config", "-c", type=Path, required=True, help="Bridge config file (YAML or JSON)")
    parser.add_argument("--list", action="store_true", help="List bridged tools and exit")
    parser.add_argument("--call", type=str, help="Bridged tool name to call (e.g. notion_search)")
    parser.add_argument("--args", type=str, default="{}", help="Tool arguments as a JSON object")
    parser.add_argument("--user", type=str, default=None, help="End-user id for per-user tokens")
    parser.add_argument("--tokens", type=Path, default=None, help="Token store database path")
    parser.add_argument("--verbose", "-v", action="store_true", help="Show debug output")

    args = parser.parse_args(argv)

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    if not args.list and not args.call:
        parser.error("--list or --call is required")

    try:
        arguments = json.loads(args.args)
    except json.JSONDecodeError as e:
        parser.error(f"--args is not valid JSON: {e}")
    if not isinstance(arguments, dict):
        parser.error("--args must be a JSON object")

    # ── Load config ───────────────────────────────────────
    try:
        config, warnings = load_config_file(args.config)
    except (OSError, ValueError, yaml.YAMLError) as e:
        print(f"Error: could not load {args.config}: {e}", file=sys.stderr)
        return 2

    for warning in warnings:
        logger.warning(f"[mcp-bridge] config: {warning}")

    if not config.servers:
        print("Error: no valid servers in config.", file=sys.stderr)
        return 2

    token_store = TokenStore(args.tokens) if args.tokens else None

    # ── Discover ──────────────────────────────────────────
    manager = BridgeManager(config, token_store=token_store)
    print("Discovering MCP servers...")
    manager.discover_all()

    try:
        if args.list:
            print(f"\nBridged tools ({len(manager.list_tools())}):\n")
            print_tools(manager)
            return 0

        # ── Call ──────────────────────────────────────────
        try:
            result = asyncio.run(manager.call(args.call, arguments, user_id=args.user))
        except ValueError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1

        print("=" * 60)
        for block in result["content"]:
            print(block["text"])
        print("=" * 60)
        return 0
    finally:
        if token_store:
            token_store.close()


if __name__ == "__main__":
    sys.exit(main())
