"""Exception hierarchy shared by the engine, the store, and the entry points.

Lookup failures subclass ``KeyError`` and input/policy failures subclass
``ValueError`` so callers can keep catching the builtin types.
"""

from __future__ import annotations


class FeatlinkError(Exception):
    """Base class for all featlink errors."""


# -- Lookup -----------------------------------------------------------------


class FeatureNotFoundError(FeatlinkError, KeyError):
    def __init__(self, identifier: str) -> None:
        super().__init__(identifier)
        self.identifier = identifier

    def __str__(self) -> str:
        return f"feature not found: {self.identifier}"


class RelationshipNotFoundError(FeatlinkError, KeyError):
    def __init__(self, identifier: str) -> None:
        super().__init__(identifier)
        self.identifier = identifier

    def __str__(self) -> str:
        return f"relationship not found: {self.identifier}"


# -- Input / policy ---------------------------------------------------------


class FeatureAlreadyExistsError(FeatlinkError, ValueError):
    pass


class EmptyTargetIDError(FeatlinkError, ValueError):
    def __init__(self) -> None:
        super().__init__("target ID cannot be empty")


class DuplicateRelationshipError(FeatlinkError, ValueError):
    def __init__(self, rel_type: str = "", target_id: str = "") -> None:
        msg = "relationship already exists"
        if rel_type and target_id:
            msg = f"relationship already exists: {rel_type} -> {target_id}"
        super().__init__(msg)


class SchemaError(FeatlinkError, ValueError):
    """Relationship type or category does not resolve against the config."""


class InvalidVersionConstraintError(FeatlinkError, ValueError):
    pass


class CycleError(FeatlinkError, ValueError):
    """Adding a relationship would close a cycle the category forbids."""


class ConfigError(FeatlinkError, ValueError):
    pass


# -- Control flow -----------------------------------------------------------


class OperationCancelledError(FeatlinkError):
    """Raised when an externally supplied cancel event is set mid-operation."""

    def __init__(self, operation: str = "") -> None:
        super().__init__(f"{operation} cancelled" if operation else "operation cancelled")
        self.operation = operation


class FixError(FeatlinkError):
    """An auto-fix handler could not act on the issue it was given."""
