"""Pure helpers shared across MCP tool modules.

This module has NO dependency on ``mcp_server`` module globals, so it can
be imported freely without triggering circular-import issues.
"""

from __future__ import annotations

import json
from typing import Any

from mcp.types import TextContent

from featlink.errors import (
    CycleError,
    DuplicateRelationshipError,
    FeatureNotFoundError,
    OperationCancelledError,
    RelationshipNotFoundError,
)


def _text(content: object) -> list[TextContent]:
    if isinstance(content, str):
        return [TextContent(type="text", text=content)]
    return [TextContent(type="text", text=json.dumps(content, indent=2, default=str))]


def _error(message: str, code: str) -> list[TextContent]:
    return _text({"error": message, "code": code})


def _error_code(exc: Exception) -> str:
    """Map an engine exception onto the error ``code`` returned to MCP clients."""
    if isinstance(exc, FeatureNotFoundError | RelationshipNotFoundError):
        return "not_found"
    if isinstance(exc, CycleError):
        return "cycle"
    if isinstance(exc, DuplicateRelationshipError):
        return "conflict"
    if isinstance(exc, OperationCancelledError):
        return "cancelled"
    if isinstance(exc, ValueError):
        return "validation_error"
    return "error"


def _error_from(exc: Exception) -> list[TextContent]:
    return _error(str(exc), _error_code(exc))


def _validate_int_range(value: Any, name: str, min_val: int | None = None) -> list[TextContent] | None:
    """Return a validation error if *value* is not ``None`` and not an int >= *min_val*."""
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        return _error(f"{name} must be an integer", "validation_error")
    if min_val is not None and value < min_val:
        return _error(f"{name} must be >= {min_val}", "validation_error")
    return None


def _validate_str_list(value: Any, name: str) -> list[TextContent] | None:
    """Return a validation error if *value* is not ``None`` and not a list of strings."""
    if value is None:
        return None
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        return _error(f"{name} must be a list of strings", "validation_error")
    return None
