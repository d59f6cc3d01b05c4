"""MCP tools for creating and removing relationships."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from mcp.types import TextContent, Tool

from featlink.errors import FeatlinkError
from featlink.linking import link, unlink, unlink_by_target
from featlink.mcp_tools.common import _error, _error_from, _text


def register() -> tuple[list[Tool], dict[str, Callable[..., Any]]]:
    """Return (tool_definitions, handler_map) for link tools."""
    tools = [
        Tool(
            name="link_features",
            description=(
                "Create a typed relationship source -> target. Rejected if the type is unknown or it would "
                "close a cycle in a strict category. The inverse is added to the target when configured."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "source": {"type": "string", "description": "Source feature ID, ID prefix, or name"},
                    "target": {"type": "string", "description": "Target feature ID, ID prefix, or name"},
                    "type": {"type": "string", "description": "Relationship type or alias (default: config tree type)"},
                    "description": {"type": "string", "default": ""},
                    "version_constraint": {"type": "string", "description": "e.g. '>=2' or '>=1.0.0'"},
                },
                "required": ["source", "target"],
            },
        ),
        Tool(
            name="unlink_features",
            description="Remove a relationship from source, by relationship ID (prefix) or by target",
            inputSchema={
                "type": "object",
                "properties": {
                    "source": {"type": "string", "description": "Source feature ID, ID prefix, or name"},
                    "relationship_id": {"type": "string", "description": "Relationship ID or prefix"},
                    "target": {"type": "string", "description": "Target feature (if no relationship_id)"},
                    "type": {"type": "string", "description": "Relationship type (with target)"},
                },
                "required": ["source"],
            },
        ),
    ]

    handlers: dict[str, Callable[..., Any]] = {
        "link_features": _handle_link_features,
        "unlink_features": _handle_unlink_features,
    }

    return tools, handlers


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


async def _handle_link_features(arguments: dict[str, Any]) -> list[TextContent]:
    from featlink.mcp_server import _get_project

    store, config = _get_project()
    try:
        source = store.find(arguments["source"])
        target = store.find(arguments["target"])
        result = link(
            store,
            source,
            target,
            arguments.get("type") or config.relationships.defaults.tree_type,
            config,
            description=arguments.get("description", ""),
            version_constraint=arguments.get("version_constraint", ""),
        )
    except (FeatlinkError, OSError) as e:
        return _error_from(e)
    return _text(
        {
            "status": "linked",
            "relationship": result.relationship.to_dict(),
            "inverse": result.inverse.to_dict() if result.inverse else None,
            "warning": result.cycle_warning,
        }
    )


async def _handle_unlink_features(arguments: dict[str, Any]) -> list[TextContent]:
    from featlink.mcp_server import _get_project

    store, _config = _get_project()
    rel_id = arguments.get("relationship_id")
    target_ref = arguments.get("target")
    if not rel_id and not target_ref:
        return _error("relationship_id or target is required", "validation_error")
    try:
        source = store.find(arguments["source"])
        if rel_id:
            removed = unlink(store, source, rel_id)
        else:
            target = store.find(target_ref)
            removed = unlink_by_target(store, source, target, arguments.get("type"))
    except (FeatlinkError, OSError) as e:
        return _error_from(e)
    return _text({"status": "removed", "relationship": removed.to_dict()})
