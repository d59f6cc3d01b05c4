"""Impact analysis: which features are affected when one feature changes.

Walks the *reverse* relationship graph breadth-first from the changed
feature. A feature reached first at depth N is reported once, at depth N,
with the name path that reached it.
"""

from __future__ import annotations

import threading
from collections import deque
from collections.abc import Iterable
from dataclasses import dataclass, field

from featlink.base import GraphSnapshot, Repository, check_cancelled
from featlink.config import Config
from featlink.models import Feature, VersionConstraint
from featlink.relations import included_categories
from featlink.types.reports import ImpactedFeatureDict, ImpactResultDict


@dataclass
class ImpactedFeature:
    name: str
    id: str
    relationship: str
    depth: int
    path: list[str]
    warning: str = ""

    def to_dict(self) -> ImpactedFeatureDict:
        return {
            "name": self.name,
            "id": self.id,
            "relationship": self.relationship,
            "depth": self.depth,
            "path": list(self.path),
            "warning": self.warning,
        }


@dataclass
class ImpactResult:
    feature: str
    impacted_features: list[ImpactedFeature] = field(default_factory=list)
    categories_included: list[str] = field(default_factory=list)

    @property
    def total_affected(self) -> int:
        return len(self.impacted_features)

    def to_dict(self) -> ImpactResultDict:
        return {
            "feature": self.feature,
            "impacted_features": [f.to_dict() for f in self.impacted_features],
            "total_affected": self.total_affected,
            "categories_included": list(self.categories_included),
        }


@dataclass(frozen=True)
class ImpactOptions:
    """Caller-facing knobs; ``categories(config)`` turns them into the traversal set."""

    max_depth: int = 0
    include_categories: tuple[str, ...] = ()
    exclude_categories: tuple[str, ...] = ()
    all_categories: bool = False

    def categories(self, config: Config) -> list[str]:
        return included_categories(
            config,
            include=self.include_categories,
            exclude=self.exclude_categories,
            all_categories=self.all_categories,
        )


@dataclass(frozen=True)
class _ReverseEdge:
    source: Feature
    rel_type: str
    constraint: VersionConstraint | None


def _reverse_edges(snapshot: GraphSnapshot, categories: set[str]) -> dict[str, list[_ReverseEdge]]:
    reverse: dict[str, list[_ReverseEdge]] = {}
    for feature in snapshot.features:
        for rel in feature.relationships:
            if snapshot.index.category_of(rel.type) not in categories:
                continue
            reverse.setdefault(rel.target_id, []).append(_ReverseEdge(feature, rel.type, rel.version_constraint))
    return reverse


def analyze_impacts(
    feature: Feature,
    repo: Repository,
    config: Config,
    categories: Iterable[str],
    max_depth: int = 0,
    *,
    cancel: threading.Event | None = None,
) -> ImpactResult:
    """Breadth-first blast radius of *feature* over edges in *categories*.

    ``max_depth <= 0`` is unlimited. Otherwise features at ``max_depth`` are
    reported but not expanded. A relationship whose version constraint the
    feature it points at no longer satisfies gets a warning; the walk goes on.
    """
    wanted = set(categories)
    result = ImpactResult(feature=feature.name, categories_included=sorted(wanted))
    snapshot = GraphSnapshot.load(repo, config)
    reverse = _reverse_edges(snapshot, wanted)

    # Prefer the snapshot copy so the root's version matches its neighbours'.
    root = snapshot.by_id.get(feature.id, feature)
    visited = {root.id}
    queue: deque[tuple[Feature, int, list[str]]] = deque([(root, 0, [root.name])])
    while queue:
        check_cancelled(cancel, "impact analysis")
        current, depth, path = queue.popleft()
        if max_depth > 0 and depth >= max_depth:
            continue
        for edge in reverse.get(current.id, ()):
            dependent = edge.source
            if dependent.id in visited:
                continue
            visited.add(dependent.id)
            new_path = [*path, dependent.name]
            result.impacted_features.append(
                ImpactedFeature(
                    name=dependent.name,
                    id=dependent.id,
                    relationship=edge.rel_type,
                    depth=depth + 1,
                    path=new_path,
                    warning=_constraint_warning(edge.constraint, current),
                )
            )
            queue.append((dependent, depth + 1, new_path))
    return result


def _constraint_warning(constraint: VersionConstraint | None, target: Feature) -> str:
    if constraint is None:
        return ""
    current = target.current_version_key()
    if constraint.is_satisfied_by(current):
        return ""
    return f"version constraint {constraint} not satisfied (current: {current})"
