"""MCP server for featlink.

Exposes graph validation, auto-fix, impact analysis, and linking as MCP
tools over stdio. Reads and writes the same .featlink/ files as the CLI.

Usage:
    featlink-mcp                              # Auto-discover .featlink/ from cwd
    featlink-mcp --project /path/to/project   # Explicit project root
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from featlink.config import Config
from featlink.mcp_tools import graph as _graph_tools
from featlink.mcp_tools import links as _link_tools
from featlink.mcp_tools.common import _error
from featlink.store import FEATLINK_DIR_NAME, FeatureStore, find_featlink_root, read_config

server = Server("featlink")
store: FeatureStore | None = None
config: Config | None = None
_featlink_dir: Path | None = None
_logger: logging.Logger | None = None


def _collect() -> tuple[list[Tool], dict[str, Callable[..., Any]]]:
    tools: list[Tool] = []
    handlers: dict[str, Callable[..., Any]] = {}
    for module in (_graph_tools, _link_tools):
        module_tools, module_handlers = module.register()
        tools.extend(module_tools)
        handlers.update(module_handlers)
    return tools, handlers


_TOOLS, _HANDLERS = _collect()


def _get_project() -> tuple[FeatureStore, Config]:
    if store is None or config is None:
        msg = "Project not initialized"
        raise RuntimeError(msg)
    return store, config


# ---------------------------------------------------------------------------
# Tool definitions and dispatch
# ---------------------------------------------------------------------------


@server.list_tools()  # type: ignore[untyped-decorator,no-untyped-call]
async def list_tools() -> list[Tool]:
    return list(_TOOLS)


@server.call_tool()  # type: ignore[untyped-decorator]
async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
    handler = _HANDLERS.get(name)
    if handler is None:
        return _error(f"Unknown tool: {name}", "unknown_tool")
    t0 = time.monotonic()

    try:
        result: list[TextContent] = await handler(arguments)
    except Exception:
        if _logger:
            _logger.error("tool_error", extra={"tool": name, "args_data": arguments}, exc_info=True)
        raise
    else:
        duration_ms = round((time.monotonic() - t0) * 1000, 1)
        if _logger:
            _logger.info("tool_call", extra={"tool": name, "args_data": arguments, "duration_ms": duration_ms})
        return result


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------


async def _run(project_path: Path | None) -> None:
    global store, config, _featlink_dir, _logger

    if project_path:
        featlink_dir = project_path / FEATLINK_DIR_NAME
        if not featlink_dir.is_dir():
            print(f"Error: {featlink_dir} not found. Run 'featlink init' first.", file=sys.stderr)
            sys.exit(1)
    else:
        try:
            featlink_dir = find_featlink_root()
        except FileNotFoundError:
            print(f"Error: No {FEATLINK_DIR_NAME}/ found. Run 'featlink init' first.", file=sys.stderr)
            sys.exit(1)

    _featlink_dir = featlink_dir
    config = read_config(featlink_dir)
    store = FeatureStore.from_project(featlink_dir)

    from featlink.logging import setup_logging

    _logger = setup_logging(featlink_dir)
    _logger.info("mcp_server_start", extra={"tool": "server", "args_data": {"project": str(featlink_dir.parent)}})

    async with stdio_server() as (read_stream, write_stream):
        await server.run(read_stream, write_stream, server.create_initialization_options())


def main() -> None:
    import asyncio

    parser = argparse.ArgumentParser(description="featlink MCP server")
    parser.add_argument("--project", type=Path, default=None, help="Project root (auto-discovers .featlink/ if omitted)")
    args = parser.parse_args()

    asyncio.run(_run(args.project))


if __name__ == "__main__":
    main()
