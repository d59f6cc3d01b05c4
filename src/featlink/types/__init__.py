# IMPORT CONSTRAINT: types/ modules must only import from typing, stdlib, and each other.
# NEVER import from models.py, store.py, or any engine module (circular imports).
"""Typed return-value contracts for featlink models and reports."""

from __future__ import annotations

from featlink.types.core import (
    FeatureDict,
    FeatureVersionDict,
    ISOTimestamp,
    RelationshipDict,
    VersionConstraintDict,
)
from featlink.types.reports import (
    FixResultDict,
    ImpactedFeatureDict,
    ImpactResultDict,
    ValidationIssueDict,
    ValidationResultDict,
)

__all__ = [
    "FeatureDict",
    "FeatureVersionDict",
    "FixResultDict",
    "ISOTimestamp",
    "ImpactResultDict",
    "ImpactedFeatureDict",
    "RelationshipDict",
    "ValidationIssueDict",
    "ValidationResultDict",
    "VersionConstraintDict",
]
