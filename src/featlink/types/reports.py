"""TypedDicts for validation, fix, and impact reports."""

from __future__ import annotations

from typing import TypedDict


class ValidationIssueDict(TypedDict):
    code: str
    severity: str
    feature_id: str
    feature_name: str
    file_name: str
    message: str
    fixable: bool
    context: dict[str, str]


class ValidationResultDict(TypedDict):
    issues: list[ValidationIssueDict]
    features_count: int
    rel_count: int
    errors: int
    warnings: int


class FixResultDict(TypedDict):
    fixed: list[str]
    failed: list[str]
    skipped: list[str]
    dry_run: bool


class ImpactedFeatureDict(TypedDict):
    name: str
    id: str
    relationship: str
    depth: int
    path: list[str]
    warning: str


class ImpactResultDict(TypedDict):
    feature: str
    impacted_features: list[ImpactedFeatureDict]
    total_affected: int
    categories_included: list[str]
