"""MCP tools for graph health: validation, auto-fix, impact analysis, cycles."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from mcp.types import TextContent, Tool

from featlink.autofix import AutoFixer
from featlink.errors import FeatlinkError
from featlink.impacts import ImpactOptions, analyze_impacts
from featlink.mcp_tools.common import _error, _error_from, _text, _validate_int_range, _validate_str_list
from featlink.validator import Validator


def register() -> tuple[list[Tool], dict[str, Callable[..., Any]]]:
    """Return (tool_definitions, handler_map) for graph-health tools."""
    tools = [
        Tool(
            name="validate_graph",
            description=(
                "Check every feature relationship for consistency problems: orphaned targets (E001), "
                "missing or dangling inverses (E002/E003), unknown types (E004), forbidden cycles (E005), "
                "unsatisfied version constraints (E006)."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "severity": {
                        "type": "string",
                        "enum": ["error", "warning"],
                        "description": "Only return issues of this severity",
                    },
                },
            },
        ),
        Tool(
            name="fix_graph",
            description="Validate, then repair fixable issues (E001, E002, E003). Use dry_run to preview.",
            inputSchema={
                "type": "object",
                "properties": {
                    "dry_run": {"type": "boolean", "default": False, "description": "Report fixes without writing"},
                },
            },
        ),
        Tool(
            name="analyze_impacts",
            description="List features affected, directly or transitively, if the given feature changes",
            inputSchema={
                "type": "object",
                "properties": {
                    "feature": {"type": "string", "description": "Feature ID, ID prefix, or name"},
                    "max_depth": {"type": "integer", "default": 0, "description": "0 = unlimited"},
                    "include": {"type": "array", "items": {"type": "string"}, "description": "Extra categories"},
                    "exclude": {"type": "array", "items": {"type": "string"}, "description": "Categories to skip"},
                    "all_categories": {"type": "boolean", "default": False},
                },
                "required": ["feature"],
            },
        ),
        Tool(
            name="list_cycles",
            description="List every relationship cycle within one category",
            inputSchema={
                "type": "object",
                "properties": {
                    "category": {"type": "string", "description": "Category name, e.g. structural"},
                },
                "required": ["category"],
            },
        ),
    ]

    handlers: dict[str, Callable[..., Any]] = {
        "validate_graph": _handle_validate_graph,
        "fix_graph": _handle_fix_graph,
        "analyze_impacts": _handle_analyze_impacts,
        "list_cycles": _handle_list_cycles,
    }

    return tools, handlers


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


async def _handle_validate_graph(arguments: dict[str, Any]) -> list[TextContent]:
    from featlink.mcp_server import _get_project

    store, config = _get_project()
    severity = arguments.get("severity")
    if severity is not None and severity not in ("error", "warning"):
        return _error("severity must be 'error' or 'warning'", "validation_error")
    try:
        result = Validator(store, config).validate()
    except (FeatlinkError, OSError) as e:
        return _error_from(e)
    data = result.to_dict()
    if severity is not None:
        data["issues"] = [i.to_dict() for i in result.filter_by_severity(severity)]
    return _text(data)


async def _handle_fix_graph(arguments: dict[str, Any]) -> list[TextContent]:
    from featlink.mcp_server import _get_project

    store, config = _get_project()
    dry_run = bool(arguments.get("dry_run", False))
    try:
        validator = Validator(store, config)
        before = validator.validate()
        fixed = AutoFixer(store, config, dry_run=dry_run).attempt_fixes(before.issues)
        after = before if dry_run else validator.validate()
    except (FeatlinkError, OSError) as e:
        return _error_from(e)
    return _text(
        {
            "fix": fixed.to_dict(),
            "issues_before": len(before.issues),
            "issues_after": len(after.issues),
        }
    )


async def _handle_analyze_impacts(arguments: dict[str, Any]) -> list[TextContent]:
    from featlink.mcp_server import _get_project

    store, config = _get_project()
    for err in (
        _validate_int_range(arguments.get("max_depth"), "max_depth", min_val=0),
        _validate_str_list(arguments.get("include"), "include"),
        _validate_str_list(arguments.get("exclude"), "exclude"),
    ):
        if err:
            return err
    options = ImpactOptions(
        max_depth=arguments.get("max_depth") or 0,
        include_categories=tuple(arguments.get("include") or ()),
        exclude_categories=tuple(arguments.get("exclude") or ()),
        all_categories=bool(arguments.get("all_categories", False)),
    )
    try:
        feature = store.find(arguments["feature"])
        result = analyze_impacts(feature, store, config, options.categories(config), options.max_depth)
    except (FeatlinkError, OSError) as e:
        return _error_from(e)
    return _text(result.to_dict())


async def _handle_list_cycles(arguments: dict[str, Any]) -> list[TextContent]:
    from featlink.mcp_server import _get_project

    store, config = _get_project()
    category = arguments["category"]
    if category not in config.relationships.categories:
        return _error(f"Unknown category: {category}", "validation_error")
    try:
        cycles = Validator(store, config).detect_all_cycles(category)
    except (FeatlinkError, OSError) as e:
        return _error_from(e)
    return _text({"category": category, "cycles": cycles, "count": len(cycles)})
