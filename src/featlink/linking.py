"""Adding and removing relationships between stored features.

``link`` is the guarded write path: the relationship is checked against the
config and the category cycle policy before it is stored, and the inverse is
mirrored onto the target when the config asks for it.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable
from dataclasses import dataclass

from featlink.base import Repository
from featlink.config import Config
from featlink.cycles import detect_cycle_with_config
from featlink.errors import DuplicateRelationshipError, FeatlinkError, RelationshipNotFoundError
from featlink.models import Feature, Relationship, parse_version_constraint
from featlink.relations import TypeIndex, validate_relationship

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LinkResult:
    relationship: Relationship
    inverse: Relationship | None = None
    cycle_warning: str | None = None


def link(
    repo: Repository,
    source: Feature,
    target: Feature,
    rel_type: str,
    config: Config,
    *,
    description: str = "",
    version_constraint: str = "",
    cancel: threading.Event | None = None,
) -> LinkResult:
    """Create ``source --rel_type--> target`` and persist it.

    Raises InvalidVersionConstraintError, SchemaError, EmptyTargetIDError,
    CycleError or DuplicateRelationshipError before anything is written.
    Failing to store the inverse is logged and does not undo the forward link.
    """
    index = TypeIndex(config)
    rel = Relationship.new(rel_type, target.id, target.name)
    rel.description = description
    rel.version_constraint = parse_version_constraint(version_constraint)
    validate_relationship(rel, config, index)

    cycle_warning = detect_cycle_with_config(source, rel, repo, config, cancel=cancel)

    source.add_relationship(rel)
    repo.update(source)
    logger.info(
        "Linked %s -[%s]-> %s",
        source.id,
        rel.type,
        target.id,
        extra={"feature": source.id, "target": target.id, "rel_type": rel.type},
    )

    inverse_type = index.inverse_of(rel.type)
    if not config.relationships.system.auto_create_inverse or not inverse_type:
        return LinkResult(rel, cycle_warning=cycle_warning)

    inverse = Relationship.new(inverse_type, source.id, source.name)
    inverse.description = description
    try:
        target.add_relationship(inverse)
    except DuplicateRelationshipError:
        return LinkResult(rel, cycle_warning=cycle_warning)
    except FeatlinkError as exc:
        logger.warning("Failed to create inverse relationship on %s: %s", target.name, exc)
        return LinkResult(rel, cycle_warning=cycle_warning)
    try:
        repo.update(target)
    except (FeatlinkError, OSError) as exc:
        logger.warning("Failed to save inverse relationship on %s: %s", target.name, exc)
        return LinkResult(rel, cycle_warning=cycle_warning)
    return LinkResult(rel, inverse=inverse, cycle_warning=cycle_warning)


def unlink(repo: Repository, source: Feature, rel_id: str) -> Relationship:
    """Remove the first relationship whose ID equals or starts with *rel_id*."""
    for rel in source.relationships:
        if rel.id == rel_id or (rel_id and rel.id.startswith(rel_id)):
            break
    else:
        raise RelationshipNotFoundError(rel_id)
    removed = source.remove_relationship_by_id(rel.id)
    repo.update(source)
    return removed


def unlink_by_target(
    repo: Repository, source: Feature, target: Feature, rel_type: str | None = None
) -> Relationship:
    """Remove ``source -> target``; without *rel_type* the first match is taken."""
    if rel_type is None:
        match = next((r for r in source.relationships if r.target_id == target.id), None)
        if match is None:
            raise RelationshipNotFoundError(f"{source.name} -> {target.name}")
        rel_type = match.type
    removed = source.remove_relationship(rel_type, target.id)
    repo.update(source)
    return removed


def clear_relationships(repo: Repository, source: Feature, config: Config) -> list[Relationship]:
    """Remove every outgoing relationship of *source* plus the inverses it auto-created."""
    if not source.relationships:
        return []
    by_id = {f.id: f for f in repo.list()}
    index = TypeIndex(config)
    removed = list(source.relationships)

    for rel in removed:
        target = by_id.get(rel.target_id)
        if target is None:
            continue
        if not rel.target_name:
            rel.target_name = target.name
        inverse_type = index.inverse_of(rel.type)
        if not config.relationships.system.auto_create_inverse or not inverse_type:
            continue
        try:
            target.remove_relationship(inverse_type, source.id)
        except RelationshipNotFoundError:
            continue
        try:
            repo.update(target)
        except (FeatlinkError, OSError) as exc:
            logger.warning("Failed to save inverse removal on %s: %s", target.name, exc)

    source.relationships = []
    source.touch()
    repo.update(source)
    return removed


def cleanup_incoming(repo: Repository, deleted_id: str) -> int:
    """Drop relationships on other features that point at *deleted_id*; return how many."""
    removed = 0
    for feature in repo.list():
        if feature.id == deleted_id:
            continue
        remaining = [r for r in feature.relationships if r.target_id != deleted_id]
        dropped = len(feature.relationships) - len(remaining)
        if not dropped:
            continue
        feature.relationships = remaining
        feature.touch()
        repo.update(feature)
        removed += dropped
    return removed


@dataclass(frozen=True)
class IncomingRelationship:
    source_id: str
    source_name: str
    relationship: Relationship


def find_incoming(repo: Repository, target_id: str, types: Iterable[str] = ()) -> list[IncomingRelationship]:
    """Relationships on any feature that point at *target_id*, optionally filtered by type."""
    wanted = set(types)
    return [
        IncomingRelationship(feature.id, feature.name, rel)
        for feature in repo.list()
        for rel in feature.relationships
        if rel.target_id == target_id and (not wanted or rel.type in wanted)
    ]
