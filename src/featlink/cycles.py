"""Category-scoped cycle detection.

Two entry points share one idea: only edges whose category matches are
followed. ``detect_cycle_with_config`` runs before a new relationship is
stored and applies the category's cycle policy; ``detect_all_cycles`` sweeps
a whole snapshot and reports every cycle it finds.

Edges of an inverse type (``B required-by A``) are read in their forward
direction (``A -> B``), so a relationship and its inverse count as one edge.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from collections.abc import Iterable, Mapping

from featlink.base import GraphSnapshot, Repository, check_cancelled
from featlink.config import Config
from featlink.errors import CycleError, SchemaError
from featlink.models import Feature, Relationship
from featlink.relations import TypeIndex

logger = logging.getLogger(__name__)

_WHITE, _GRAY, _BLACK = 0, 1, 2


def directed_edge(index: TypeIndex, source_id: str, rel: Relationship) -> tuple[str, str]:
    """(from, to) for *rel*, flipped when its type is the inverse member of a pair."""
    if index.is_inverse_type(rel.type):
        return rel.target_id, source_id
    return source_id, rel.target_id


def category_adjacency(
    snapshot: GraphSnapshot,
    category: str,
    *,
    cancel: threading.Event | None = None,
) -> dict[str, list[str]]:
    """Successor lists for every edge in *category*, duplicates collapsed."""
    adjacency: dict[str, list[str]] = {}
    for feature in snapshot.features:
        check_cancelled(cancel, "cycle detection")
        for rel in feature.relationships:
            if snapshot.index.category_of(rel.type) != category:
                continue
            src, dst = directed_edge(snapshot.index, feature.id, rel)
            successors = adjacency.setdefault(src, [])
            if dst not in successors:
                successors.append(dst)
    return adjacency


# ---------------------------------------------------------------------------
# Reachability (proactive)
# ---------------------------------------------------------------------------


def is_reachable(
    adjacency: Mapping[str, list[str]],
    start: str,
    goal: str,
    *,
    cancel: threading.Event | None = None,
) -> bool:
    """BFS from *start*; each feature is expanded at most once."""
    visited: set[str] = set()
    queue = deque([start])
    while queue:
        current = queue.popleft()
        if current == goal:
            return True
        if current in visited:
            continue
        visited.add(current)
        check_cancelled(cancel, "cycle detection")
        for nxt in adjacency.get(current, ()):
            if nxt not in visited:
                queue.append(nxt)
    return False


def detect_cycle_with_config(
    source: Feature,
    rel: Relationship,
    repo: Repository,
    config: Config,
    *,
    cancel: threading.Event | None = None,
) -> str | None:
    """Apply the category cycle policy to a relationship before it is stored.

    Raises CycleError for self-references and, under ``strict`` detection,
    for edges that would close a cycle. Under ``warn`` the cycle is logged and
    its message returned; otherwise returns None.
    """
    if source.id == rel.target_id:
        msg = "cannot create relationship to self"
        raise CycleError(msg)

    index = TypeIndex(config)
    category = index.category_of(rel.type)
    policy = index.category(category)
    if policy is None:
        msg = f"unknown category: {category}"
        raise SchemaError(msg)
    if policy.allow_cycles:
        return None

    snapshot = GraphSnapshot.build(repo.list(), config)
    adjacency = category_adjacency(snapshot, category, cancel=cancel)
    # Adding src -> dst closes a cycle iff dst already reaches src.
    src, dst = directed_edge(index, source.id, rel)
    if not is_reachable(adjacency, dst, src, cancel=cancel):
        return None

    msg = f"cycle detected: adding this relationship would create a circular dependency in {category} relationships"
    if policy.cycle_detection == "warn":
        logger.warning(
            "Cycle detected in %s relationship: %s -> %s",
            category,
            source.id,
            rel.target_id,
            extra={"feature": source.id, "target": rel.target_id, "rel_type": rel.type, "category": category},
        )
        return msg
    if policy.cycle_detection == "none":
        return None
    raise CycleError(msg)


# ---------------------------------------------------------------------------
# Enumeration (retrospective)
# ---------------------------------------------------------------------------


def _enumerate_cycles(
    adjacency: Mapping[str, list[str]],
    roots: Iterable[str],
    cancel: threading.Event | None,
) -> list[list[str]]:
    """White/gray/black DFS over *adjacency* with an explicit stack.

    Each back edge yields the path suffix starting at the revisited node.
    """
    color: dict[str, int] = {}
    cycles: list[list[str]] = []
    for root in roots:
        if color.get(root, _WHITE) != _WHITE:
            continue
        check_cancelled(cancel, "cycle detection")
        path: list[str] = [root]
        position: dict[str, int] = {root: 0}
        color[root] = _GRAY
        stack = [iter(adjacency.get(root, ()))]
        while stack:
            descended = False
            for neighbor in stack[-1]:
                state = color.get(neighbor, _WHITE)
                if state == _WHITE:
                    color[neighbor] = _GRAY
                    position[neighbor] = len(path)
                    path.append(neighbor)
                    stack.append(iter(adjacency.get(neighbor, ())))
                    descended = True
                    break
                if state == _GRAY:
                    cycles.append(path[position[neighbor] :])
            if not descended:
                stack.pop()
                done = path.pop()
                del position[done]
                color[done] = _BLACK
    return cycles


def detect_all_cycles(
    snapshot: GraphSnapshot,
    category: str,
    *,
    cancel: threading.Event | None = None,
) -> list[list[str]]:
    """Every cycle found in *category*, each closed by repeating its first feature ID."""
    adjacency = category_adjacency(snapshot, category, cancel=cancel)
    cycles = _enumerate_cycles(adjacency, [f.id for f in snapshot.features], cancel)
    return [[*cycle, cycle[0]] for cycle in cycles]


def strict_categories(config: Config) -> list[str]:
    """Categories where cycles are forbidden and detection is strict."""
    return sorted(
        name
        for name, cat in config.relationships.categories.items()
        if not cat.allow_cycles and cat.cycle_detection == "strict"
    )


def cycle_key(cycle: list[str]) -> str:
    """Rotation-invariant identity for a cycle given as an open path."""
    if not cycle:
        return ""
    start = min(range(len(cycle)), key=lambda i: cycle[i])
    return "->".join(cycle[start:] + cycle[:start])
