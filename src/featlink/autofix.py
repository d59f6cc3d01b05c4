"""Mechanical repair of fixable validation issues.

Handlers exist for E001 (drop orphaned relationships), E002 (create the
missing inverse), and E003 (drop the dangling inverse). Every other code is
skipped. Each fixed issue is persisted with its own ``repo.update`` call;
handlers mutate the features of one snapshot in place, so several fixes to
the same feature accumulate instead of overwriting each other.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field

from featlink.base import GraphSnapshot, Repository, check_cancelled
from featlink.config import Config
from featlink.errors import DuplicateRelationshipError, FeatlinkError, FixError
from featlink.models import Feature, Relationship
from featlink.types.reports import FixResultDict
from featlink.validator import (
    CODE_DANGLING_INVERSE,
    CODE_MISSING_INVERSE,
    CODE_ORPHANED,
    ValidationIssue,
)

logger = logging.getLogger(__name__)


@dataclass
class FixResult:
    fixed: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    dry_run: bool = False

    @property
    def total_fixed(self) -> int:
        return len(self.fixed)

    @property
    def total_failed(self) -> int:
        return len(self.failed)

    def has_fixes(self) -> bool:
        return bool(self.fixed)

    def has_failures(self) -> bool:
        return bool(self.failed)

    def to_dict(self) -> FixResultDict:
        return {
            "fixed": list(self.fixed),
            "failed": list(self.failed),
            "skipped": list(self.skipped),
            "dry_run": self.dry_run,
        }


@dataclass
class _FixRun:
    """Per-call state: the snapshot plus changes already planned in dry-run."""

    snapshot: GraphSnapshot
    planned: set[tuple[str, str, str]] = field(default_factory=set)
    removed: set[tuple[str, str]] = field(default_factory=set)

    def feature(self, feature_id: str, role: str = "feature") -> Feature:
        feature = self.snapshot.by_id.get(feature_id)
        if feature is None:
            msg = f"{role} not found: {feature_id}"
            raise FixError(msg)
        return feature


_Handler = Callable[["AutoFixer", _FixRun, ValidationIssue], bool]


class AutoFixer:
    """Applies fix handlers to a batch of validation issues.

    In dry-run mode nothing is written and the snapshot is left untouched;
    an issue is reported as fixed when its handler would have changed
    something.
    """

    def __init__(self, repo: Repository, config: Config, *, dry_run: bool = False) -> None:
        self.repo = repo
        self.config = config
        self.dry_run = dry_run
        self._handlers: dict[str, _Handler] = {
            CODE_ORPHANED: AutoFixer._fix_orphaned,
            CODE_MISSING_INVERSE: AutoFixer._fix_missing_inverse,
            CODE_DANGLING_INVERSE: AutoFixer._fix_dangling_inverse,
        }

    def attempt_fixes(
        self, issues: list[ValidationIssue], *, cancel: threading.Event | None = None
    ) -> FixResult:
        run = _FixRun(GraphSnapshot.load(self.repo, self.config))
        result = FixResult(dry_run=self.dry_run)

        for issue in issues:
            check_cancelled(cancel, "auto-fix")
            label = f"[{issue.code}] {issue.file_name}"
            if not issue.fixable:
                result.skipped.append(f"{label}: not fixable")
                continue
            handler = self._handlers.get(issue.code)
            if handler is None:
                result.skipped.append(f"{label}: no fix handler")
                continue
            try:
                fixed = handler(self, run, issue)
            except (FeatlinkError, OSError) as exc:
                logger.warning(
                    "Fix failed for %s: %s", label, exc, extra={"feature": issue.feature_id, "code": issue.code}
                )
                result.failed.append(f"{label}: {exc}")
                continue
            if fixed:
                result.fixed.append(label)
        return result

    # -- Persistence ------------------------------------------------------------

    def _persist(self, feature: Feature, previous: list[Relationship]) -> None:
        """Write *feature*; on failure restore *previous* so the snapshot matches disk."""
        try:
            self.repo.update(feature)
        except (FeatlinkError, OSError) as exc:
            feature.relationships = previous
            msg = f"failed to update feature: {exc}"
            raise FixError(msg) from exc

    def _remove_matching(self, run: _FixRun, feature: Feature, keep: Callable[[Relationship], bool]) -> bool:
        if self.dry_run:
            doomed = {
                (feature.id, rel.id)
                for rel in feature.relationships
                if not keep(rel) and (feature.id, rel.id) not in run.removed
            }
            run.removed.update(doomed)
            return bool(doomed)

        previous = list(feature.relationships)
        remaining = [rel for rel in previous if keep(rel)]
        if len(remaining) == len(previous):
            return False
        feature.relationships = remaining
        feature.touch()
        self._persist(feature, previous)
        return True

    # -- Handlers ---------------------------------------------------------------

    def _fix_orphaned(self, run: _FixRun, issue: ValidationIssue) -> bool:
        feature = run.feature(issue.feature_id)
        target_id = issue.context.get("targetID", "")
        if not target_id:
            msg = "missing targetID in issue context"
            raise FixError(msg)
        return self._remove_matching(run, feature, lambda rel: rel.target_id != target_id)

    def _fix_missing_inverse(self, run: _FixRun, issue: ValidationIssue) -> bool:
        source = run.feature(issue.feature_id, "source feature")
        target_id = issue.context.get("targetID", "")
        inverse_type = issue.context.get("inverseType", "")
        if not target_id or not inverse_type:
            msg = "missing context for fix"
            raise FixError(msg)
        target = run.feature(target_id, "target feature")

        index = run.snapshot.index
        canonical = index.canonical(inverse_type) or inverse_type
        if any(index.canonical(r.type) == canonical and r.target_id == source.id for r in target.relationships):
            return False

        if self.dry_run:
            key = (target.id, canonical, source.id)
            if key in run.planned:
                return False
            run.planned.add(key)
            return True

        previous = list(target.relationships)
        try:
            target.add_relationship(Relationship.new(canonical, source.id, source.name))
        except DuplicateRelationshipError:
            return False
        self._persist(target, previous)
        return True

    def _fix_dangling_inverse(self, run: _FixRun, issue: ValidationIssue) -> bool:
        feature = run.feature(issue.feature_id)
        relation_id = issue.context.get("relationID", "")
        if relation_id:
            return self._remove_matching(run, feature, lambda rel: rel.id != relation_id)

        relation_type = issue.context.get("relationType", "")
        target_id = issue.context.get("targetID", "")
        if not relation_type or not target_id:
            msg = "missing context for fix"
            raise FixError(msg)
        return self._remove_matching(
            run, feature, lambda rel: not (rel.type == relation_type and rel.target_id == target_id)
        )
