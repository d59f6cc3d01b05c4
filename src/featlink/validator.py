"""Relationship graph validation.

``Validator.validate()`` loads every feature once and runs six independent
checks over that snapshot:

- E001 orphaned relationship (target missing)
- E002 missing inverse (forward type without its auto-created inverse)
- E003 dangling inverse (inverse type without its forward relationship)
- E004 schema violation (type does not resolve, even via aliases)
- E005 cycle in a category that forbids cycles under strict detection
- E006 version constraint not satisfied by the target's current version

Checks never mutate features. Integrity problems are reported as issues,
not raised; only a failing ``repo.list()`` makes validation itself fail.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Literal

from featlink.base import GraphSnapshot, Repository, check_cancelled
from featlink.config import Config
from featlink.cycles import cycle_key, detect_all_cycles, directed_edge, strict_categories
from featlink.models import Feature
from featlink.store import feature_file_name
from featlink.types.reports import ValidationIssueDict, ValidationResultDict

Severity = Literal["error", "warning"]
IssueCode = Literal["E001", "E002", "E003", "E004", "E005", "E006"]

CODE_ORPHANED: IssueCode = "E001"
CODE_MISSING_INVERSE: IssueCode = "E002"
CODE_DANGLING_INVERSE: IssueCode = "E003"
CODE_SCHEMA: IssueCode = "E004"
CODE_CYCLE: IssueCode = "E005"
CODE_VERSION: IssueCode = "E006"

ISSUE_CODE_DESCRIPTIONS: dict[str, str] = {
    CODE_ORPHANED: "Orphaned relationship - target feature doesn't exist",
    CODE_MISSING_INVERSE: "Missing inverse relationship - inverse pair incomplete",
    CODE_DANGLING_INVERSE: "Dangling inverse - inverse exists but forward relationship missing",
    CODE_SCHEMA: "Schema violation - invalid relationship structure",
    CODE_CYCLE: "Cycle violation - cycles in categories where not allowed",
    CODE_VERSION: "Version constraint violation - target version doesn't satisfy constraint",
}


@dataclass(frozen=True)
class ValidationIssue:
    code: IssueCode
    severity: Severity
    feature_id: str
    feature_name: str
    file_name: str
    message: str
    fixable: bool
    context: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> ValidationIssueDict:
        return {
            "code": self.code,
            "severity": self.severity,
            "feature_id": self.feature_id,
            "feature_name": self.feature_name,
            "file_name": self.file_name,
            "message": self.message,
            "fixable": self.fixable,
            "context": dict(self.context),
        }


@dataclass
class ValidationResult:
    issues: list[ValidationIssue] = field(default_factory=list)
    features_count: int = 0
    rel_count: int = 0
    errors: int = 0
    warnings: int = 0

    def has_errors(self) -> bool:
        return self.errors > 0

    def has_warnings(self) -> bool:
        return self.warnings > 0

    def has_fixable_issues(self) -> bool:
        return any(issue.fixable for issue in self.issues)

    def filter_by_severity(self, severity: Severity) -> list[ValidationIssue]:
        return [issue for issue in self.issues if issue.severity == severity]

    def by_code(self) -> dict[str, list[ValidationIssue]]:
        grouped: dict[str, list[ValidationIssue]] = {}
        for issue in self.issues:
            grouped.setdefault(issue.code, []).append(issue)
        return grouped

    def to_dict(self) -> ValidationResultDict:
        return {
            "issues": [i.to_dict() for i in self.issues],
            "features_count": self.features_count,
            "rel_count": self.rel_count,
            "errors": self.errors,
            "warnings": self.warnings,
        }


def _issue(
    feature: Feature,
    code: IssueCode,
    message: str,
    *,
    fixable: bool,
    context: dict[str, str],
    severity: Severity = "error",
) -> ValidationIssue:
    return ValidationIssue(
        code=code,
        severity=severity,
        feature_id=feature.id,
        feature_name=feature.name,
        file_name=feature_file_name(feature.name),
        message=message,
        fixable=fixable,
        context=context,
    )


# ---------------------------------------------------------------------------
# Checks
# ---------------------------------------------------------------------------

_Check = Callable[[GraphSnapshot, Config, threading.Event | None], list[ValidationIssue]]


def check_orphaned_relationships(
    snapshot: GraphSnapshot, config: Config, cancel: threading.Event | None = None
) -> list[ValidationIssue]:
    """E001: relationships whose target is not in the snapshot."""
    issues: list[ValidationIssue] = []
    for feature in snapshot.features:
        check_cancelled(cancel, "validation")
        for rel in feature.relationships:
            if rel.target_id in snapshot.by_id:
                continue
            issues.append(
                _issue(
                    feature,
                    CODE_ORPHANED,
                    f"Orphaned relationship {rel.type} -> target '{rel.target_id}' not found",
                    fixable=True,
                    context={"relationType": rel.type, "targetID": rel.target_id, "relationID": rel.id},
                )
            )
    return issues


def check_missing_inverses(
    snapshot: GraphSnapshot, config: Config, cancel: threading.Event | None = None
) -> list[ValidationIssue]:
    """E002: forward relationships whose target lacks the configured inverse."""
    if not config.relationships.system.auto_create_inverse:
        return []
    index = snapshot.index
    issues: list[ValidationIssue] = []
    for feature in snapshot.features:
        check_cancelled(cancel, "validation")
        for rel in feature.relationships:
            target = snapshot.by_id.get(rel.target_id)
            if target is None or index.is_inverse_type(rel.type):
                continue
            inverse = index.inverse_of(rel.type)
            if not inverse:
                continue
            if any(index.canonical(r.type) == inverse and r.target_id == feature.id for r in target.relationships):
                continue
            issues.append(
                _issue(
                    feature,
                    CODE_MISSING_INVERSE,
                    f"Missing inverse - {rel.type} -> {target.name}, but {feature_file_name(target.name)} "
                    f"has no {inverse} -> {feature.name}",
                    fixable=True,
                    context={
                        "relationType": rel.type,
                        "inverseType": inverse,
                        "targetID": target.id,
                        "targetName": target.name,
                        "relationID": rel.id,
                    },
                )
            )
    return issues


def check_dangling_inverses(
    snapshot: GraphSnapshot, config: Config, cancel: threading.Event | None = None
) -> list[ValidationIssue]:
    """E003: inverse-type relationships whose target lacks the forward relationship."""
    index = snapshot.index
    issues: list[ValidationIssue] = []
    for feature in snapshot.features:
        check_cancelled(cancel, "validation")
        for rel in feature.relationships:
            forward = index.forward_of(rel.type)
            if not forward:
                continue
            target = snapshot.by_id.get(rel.target_id)
            if target is None:
                continue
            if any(index.canonical(r.type) == forward and r.target_id == feature.id for r in target.relationships):
                continue
            issues.append(
                _issue(
                    feature,
                    CODE_DANGLING_INVERSE,
                    f"Dangling inverse - has {rel.type} -> {target.name}, but target has no {forward} -> {feature.name}",
                    fixable=True,
                    context={
                        "relationType": rel.type,
                        "forwardType": forward,
                        "targetID": target.id,
                        "targetName": target.name,
                        "relationID": rel.id,
                    },
                )
            )
    return issues


def check_schema_violations(
    snapshot: GraphSnapshot, config: Config, cancel: threading.Event | None = None
) -> list[ValidationIssue]:
    """E004: relationship types that resolve neither directly nor via an alias."""
    issues: list[ValidationIssue] = []
    for feature in snapshot.features:
        check_cancelled(cancel, "validation")
        for rel in feature.relationships:
            if snapshot.index.is_known(rel.type):
                continue
            issues.append(
                _issue(
                    feature,
                    CODE_SCHEMA,
                    f"Unknown relationship type: '{rel.type}'",
                    fixable=False,
                    context={"relationType": rel.type, "relationID": rel.id},
                )
            )
    return issues


def _format_cycle(snapshot: GraphSnapshot, cycle: list[str]) -> str:
    names = [snapshot.by_id[fid].name if fid in snapshot.by_id else fid for fid in [*cycle, cycle[0]]]
    return " -> ".join(names)


def check_cycles(snapshot: GraphSnapshot, config: Config, cancel: threading.Event | None = None) -> list[ValidationIssue]:
    """E005: one issue per distinct cycle in each strict, cycle-forbidding category.

    The issue is reported on the cycle's first feature and names the
    relationship that closes the cycle back to it.
    """
    issues: list[ValidationIssue] = []
    for category in strict_categories(config):
        reported: set[str] = set()
        for closed in detect_all_cycles(snapshot, category, cancel=cancel):
            cycle = closed[:-1]
            key = cycle_key(cycle)
            if key in reported:
                continue
            reported.add(key)
            feature = snapshot.by_id.get(cycle[0])
            if feature is None:
                continue
            path = _format_cycle(snapshot, cycle)
            context = {"category": category, "cycle": path}
            closing = _closing_edge(snapshot, category, cycle)
            if closing is not None:
                context["relationType"], context["targetID"], context["sourceID"] = closing
            issues.append(
                _issue(
                    feature,
                    CODE_CYCLE,
                    f"Cycle detected in {category} category: {path}",
                    fixable=False,
                    context=context,
                )
            )
    return issues


def _closing_edge(snapshot: GraphSnapshot, category: str, cycle: list[str]) -> tuple[str, str, str] | None:
    """(type, target, source) of the stored relationship for the edge cycle[-1] -> cycle[0]."""
    tail, head = cycle[-1], cycle[0]
    for fid in (tail, head):
        owner = snapshot.by_id.get(fid)
        if owner is None:
            continue
        for rel in owner.relationships:
            if snapshot.index.category_of(rel.type) != category:
                continue
            if directed_edge(snapshot.index, owner.id, rel) == (tail, head):
                return rel.type, rel.target_id, owner.id
    return None


def check_version_constraints(
    snapshot: GraphSnapshot, config: Config, cancel: threading.Event | None = None
) -> list[ValidationIssue]:
    """E006: version constraints the target's current version does not satisfy."""
    issues: list[ValidationIssue] = []
    for feature in snapshot.features:
        check_cancelled(cancel, "validation")
        for rel in feature.relationships:
            vc = rel.version_constraint
            if vc is None:
                continue
            target = snapshot.by_id.get(rel.target_id)
            if target is None:
                continue
            target_version = target.current_version_key()
            if not target_version or vc.is_satisfied_by(target_version):
                continue
            issues.append(
                _issue(
                    feature,
                    CODE_VERSION,
                    f"Version constraint not satisfied: {rel.type} {vc}, "
                    f"but '{target.name}' is at v{target_version}",
                    fixable=False,
                    context={
                        "relationType": rel.type,
                        "targetID": target.id,
                        "targetName": target.name,
                        "targetVersion": target_version,
                        "constraintOp": vc.operator,
                        "constraintVersion": vc.version_string(),
                        "relationID": rel.id,
                    },
                )
            )
    return issues


CHECKS: tuple[_Check, ...] = (
    check_orphaned_relationships,
    check_missing_inverses,
    check_dangling_inverses,
    check_schema_violations,
    check_cycles,
    check_version_constraints,
)


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------


def validate_snapshot(
    snapshot: GraphSnapshot, config: Config, *, cancel: threading.Event | None = None
) -> ValidationResult:
    result = ValidationResult(features_count=len(snapshot.features), rel_count=snapshot.relationship_count)
    for check in CHECKS:
        result.issues.extend(check(snapshot, config, cancel))
    for issue in result.issues:
        if issue.severity == "error":
            result.errors += 1
        elif issue.severity == "warning":
            result.warnings += 1
    return result


def validate_features(
    features: list[Feature], config: Config, *, cancel: threading.Event | None = None
) -> ValidationResult:
    """Validate an in-memory feature list without touching any repository."""
    return validate_snapshot(GraphSnapshot.build(features, config), config, cancel=cancel)


class Validator:
    """Runs every check against a fresh snapshot from *repo* on each call."""

    def __init__(self, repo: Repository, config: Config) -> None:
        self.repo = repo
        self.config = config

    def validate(self, *, cancel: threading.Event | None = None) -> ValidationResult:
        snapshot = GraphSnapshot.load(self.repo, self.config)
        return validate_snapshot(snapshot, self.config, cancel=cancel)

    def detect_all_cycles(self, category: str, *, cancel: threading.Event | None = None) -> list[list[str]]:
        """All cycles in *category* as closed paths of feature IDs."""
        snapshot = GraphSnapshot.load(self.repo, self.config)
        return detect_all_cycles(snapshot, category, cancel=cancel)
