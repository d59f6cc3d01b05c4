"""Feature records, relationships, and version constraints.

Features are the nodes of the relationship graph; each one owns the ordered
list of relationships it is the source of. Versions are keyed either by a
positive integer ("1", "2") or by a semantic version ("1.4.0").
"""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Literal

from featlink.errors import (
    DuplicateRelationshipError,
    EmptyTargetIDError,
    InvalidVersionConstraintError,
    RelationshipNotFoundError,
)
from featlink.types.core import (
    FeatureDict,
    FeatureVersionDict,
    ISOTimestamp,
    RelationshipDict,
    VersionConstraintDict,
)

Operator = Literal["=", ">", "<", ">=", "<="]

VALID_OPERATORS: tuple[str, ...] = ("=", ">", "<", ">=", "<=")

_SEMVER_RE = re.compile(r"^\d+\.\d+\.\d+$")
_INT_RE = re.compile(r"^[+-]?\d+$")
_CONSTRAINT_RE = re.compile(r"^(>=|<=|>|<|=)(.+)$")


def _now_iso() -> ISOTimestamp:
    return ISOTimestamp(datetime.now(UTC).isoformat())


def _parse_int(text: str) -> int | None:
    text = text.strip()
    if _INT_RE.match(text):
        return int(text)
    return None


# ---------------------------------------------------------------------------
# Version parsing
# ---------------------------------------------------------------------------


def major_version(version: str) -> int:
    """"3" -> 3, "2.1.0" -> 2, anything unparseable -> 0."""
    value = _parse_int(version)
    if value is not None:
        return value
    head = _parse_int(version.split(".", 1)[0])
    return head if head is not None else 0


def semver_parts(version: str) -> tuple[int, int, int]:
    """Parse into (major, minor, patch); a bare integer N becomes (N, 0, 0).

    Components that don't parse are taken as 0.
    """
    value = _parse_int(version)
    if value is not None:
        return (value, 0, 0)
    parts = version.split(".")
    result = [0, 0, 0]
    for i, part in enumerate(parts[:3]):
        parsed = _parse_int(part)
        if parsed is not None:
            result[i] = parsed
    return (result[0], result[1], result[2])


def _compare(op: str, left: Any, right: Any) -> bool:
    if op == "=":
        return bool(left == right)
    if op == ">":
        return bool(left > right)
    if op == "<":
        return bool(left < right)
    if op == ">=":
        return bool(left >= right)
    if op == "<=":
        return bool(left <= right)
    return False


# ---------------------------------------------------------------------------
# VersionConstraint
# ---------------------------------------------------------------------------


@dataclass
class VersionConstraint:
    """Operator + version predicate evaluated against a target's current version."""

    operator: str
    version: int | str
    note: str = ""

    def is_simple(self) -> bool:
        if isinstance(self.version, bool):
            return False
        if isinstance(self.version, int):
            return True
        return isinstance(self.version, str) and _parse_int(self.version) is not None and "." not in self.version

    def is_semantic(self) -> bool:
        return isinstance(self.version, str) and bool(_SEMVER_RE.match(self.version))

    def simple_version(self) -> int:
        if isinstance(self.version, int) and not isinstance(self.version, bool):
            return self.version
        if isinstance(self.version, str):
            parsed = _parse_int(self.version)
            if parsed is not None:
                return parsed
        return 0

    def version_string(self) -> str:
        return str(self.version)

    def __str__(self) -> str:
        return f"{self.operator}{self.version_string()}"

    def check(self) -> None:
        """Raise InvalidVersionConstraintError if operator or version is malformed."""
        if self.operator not in VALID_OPERATORS:
            msg = f"invalid version constraint operator '{self.operator}', must be one of: =, >, <, >=, <="
            raise InvalidVersionConstraintError(msg)
        if self.is_simple():
            if self.simple_version() < 1:
                msg = f"version constraint version must be a positive integer >= 1, got {self.simple_version()}"
                raise InvalidVersionConstraintError(msg)
        elif not self.is_semantic():
            msg = (
                f"invalid version constraint version '{self.version}', "
                "must be a positive integer or semantic version (x.y.z)"
            )
            raise InvalidVersionConstraintError(msg)

    def is_satisfied_by(self, target_version: str) -> bool:
        if self.is_semantic():
            return _compare(self.operator, semver_parts(target_version), semver_parts(str(self.version)))
        return _compare(self.operator, major_version(target_version), self.simple_version())

    def to_dict(self) -> VersionConstraintDict:
        out = VersionConstraintDict(operator=self.operator, version=self.version)
        if self.note:
            out["note"] = self.note
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> VersionConstraint:
        return cls(
            operator=str(data.get("operator", "")),
            version=data.get("version", ""),
            note=str(data.get("note", "")),
        )


def constraint_satisfied(constraint: VersionConstraint | None, target_version: str) -> bool:
    """A missing constraint accepts any version."""
    if constraint is None:
        return True
    return constraint.is_satisfied_by(target_version)


def parse_version_constraint(text: str) -> VersionConstraint | None:
    """Parse ">=2", "<3", "=1.0.0" and the like. Empty input means no constraint."""
    text = text.strip()
    if not text:
        return None
    match = _CONSTRAINT_RE.match(text)
    if match is None:
        msg = f"invalid version constraint format '{text}', expected format like '>=2', '>1', '=3', '>=1.0.0'"
        raise InvalidVersionConstraintError(msg)
    operator, version_text = match.group(1), match.group(2).strip()

    simple = _parse_int(version_text)
    if simple is not None:
        vc = VersionConstraint(operator=operator, version=simple)
    elif _SEMVER_RE.match(version_text):
        vc = VersionConstraint(operator=operator, version=version_text)
    else:
        msg = f"invalid version '{version_text}', expected positive integer (e.g., 2) or semantic version (e.g., 1.0.0)"
        raise InvalidVersionConstraintError(msg)
    vc.check()
    return vc


# ---------------------------------------------------------------------------
# Relationship
# ---------------------------------------------------------------------------


@dataclass
class Relationship:
    id: str
    type: str
    target_id: str
    target_name: str = ""
    description: str = ""
    created_at: str = ""
    version_constraint: VersionConstraint | None = None

    @classmethod
    def new(cls, rel_type: str, target_id: str, target_name: str = "") -> Relationship:
        return cls(
            id=str(uuid.uuid4()),
            type=rel_type,
            target_id=target_id,
            target_name=target_name,
            created_at=_now_iso(),
        )

    def to_dict(self) -> RelationshipDict:
        out = RelationshipDict(
            id=self.id,
            type=self.type,
            target_id=self.target_id,
            target_name=self.target_name,
            created_at=ISOTimestamp(self.created_at),
        )
        if self.description:
            out["description"] = self.description
        if self.version_constraint is not None:
            out["version_constraint"] = self.version_constraint.to_dict()
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Relationship:
        vc_raw = data.get("version_constraint")
        return cls(
            id=str(data.get("id", "")),
            type=str(data.get("type", "")),
            target_id=str(data.get("target_id", "")),
            target_name=str(data.get("target_name", "")),
            description=str(data.get("description", "")),
            created_at=str(data.get("created_at", "")),
            version_constraint=VersionConstraint.from_dict(vc_raw) if isinstance(vc_raw, dict) else None,
        )


# ---------------------------------------------------------------------------
# Feature
# ---------------------------------------------------------------------------


@dataclass
class FeatureVersion:
    created_at: str = ""
    modified_at: str = ""
    closed_at: str | None = None
    branch: str = ""
    authors: list[str] = field(default_factory=list)
    notes: str = ""

    def to_dict(self) -> FeatureVersionDict:
        out = FeatureVersionDict(created_at=ISOTimestamp(self.created_at))
        if self.modified_at:
            out["modified_at"] = ISOTimestamp(self.modified_at)
        if self.closed_at:
            out["closed_at"] = ISOTimestamp(self.closed_at)
        if self.branch:
            out["branch"] = self.branch
        if self.authors:
            out["authors"] = list(self.authors)
        if self.notes:
            out["notes"] = self.notes
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FeatureVersion:
        return cls(
            created_at=str(data.get("created_at", "")),
            modified_at=str(data.get("modified_at", "")),
            closed_at=data.get("closed_at"),
            branch=str(data.get("branch", "")),
            authors=list(data.get("authors", [])),
            notes=str(data.get("notes", "")),
        )


def _version_rank(key: str) -> int | None:
    simple = _parse_int(key)
    if simple is not None:
        return simple
    if "." in key:
        parts = key.split(".")
        if len(parts) >= 3 and all(_parse_int(p) is not None for p in parts[:3]):
            major, minor, patch = (int(p) for p in parts[:3])
            return major * 1_000_000 + minor * 1_000 + patch
    return None


@dataclass
class Feature:
    id: str
    name: str
    description: str = ""
    tags: list[str] = field(default_factory=list)
    versions: dict[str, FeatureVersion] = field(default_factory=dict)
    relationships: list[Relationship] = field(default_factory=list)
    files: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def new(cls, name: str, *, description: str = "", version: str = "1") -> Feature:
        now = _now_iso()
        return cls(
            id=str(uuid.uuid4()),
            name=name,
            description=description,
            versions={version: FeatureVersion(created_at=now, modified_at=now)},
        )

    # -- Versions -------------------------------------------------------------

    def current_version_key(self) -> str:
        """Highest-ordered version key, or "" when the feature has no versions."""
        best_key = ""
        best_rank = -1
        for key in self.versions:
            rank = _version_rank(key)
            if rank is not None and rank > best_rank:
                best_rank = rank
                best_key = key
        return best_key

    def current_version(self) -> FeatureVersion | None:
        key = self.current_version_key()
        return self.versions.get(key) if key else None

    def touch(self) -> None:
        current = self.current_version()
        if current is not None:
            current.modified_at = _now_iso()

    # -- Relationships --------------------------------------------------------

    def add_relationship(self, rel: Relationship) -> None:
        if not rel.target_id:
            raise EmptyTargetIDError
        for existing in self.relationships:
            if existing.type == rel.type and existing.target_id == rel.target_id:
                raise DuplicateRelationshipError(rel.type, rel.target_id)
        self.relationships.append(rel)
        self.touch()

    def remove_relationship(self, rel_type: str, target_id: str) -> Relationship:
        for i, rel in enumerate(self.relationships):
            if rel.type == rel_type and rel.target_id == target_id:
                del self.relationships[i]
                self.touch()
                return rel
        raise RelationshipNotFoundError(f"{rel_type} -> {target_id}")

    def remove_relationship_by_id(self, rel_id: str) -> Relationship:
        for i, rel in enumerate(self.relationships):
            if rel.id == rel_id:
                del self.relationships[i]
                self.touch()
                return rel
        raise RelationshipNotFoundError(rel_id)

    def has_relationship(self, rel_type: str, target_id: str) -> bool:
        return any(r.type == rel_type and r.target_id == target_id for r in self.relationships)

    def get_relationships(self, rel_type: str | None = None) -> list[Relationship]:
        if rel_type is None:
            return list(self.relationships)
        return [r for r in self.relationships if r.type == rel_type]

    # -- Serialization ----------------------------------------------------------

    def to_dict(self) -> FeatureDict:
        out = FeatureDict(id=self.id, name=self.name)
        if self.description:
            out["description"] = self.description
        if self.tags:
            out["tags"] = list(self.tags)
        if self.versions:
            out["versions"] = {k: v.to_dict() for k, v in self.versions.items()}
        if self.relationships:
            out["relationships"] = [r.to_dict() for r in self.relationships]
        if self.files:
            out["files"] = list(self.files)
        if self.metadata:
            out["metadata"] = dict(self.metadata)
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Feature:
        versions_raw = data.get("versions") or {}
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            description=str(data.get("description", "")),
            tags=list(data.get("tags") or []),
            versions={str(k): FeatureVersion.from_dict(v) for k, v in versions_raw.items()},
            relationships=[Relationship.from_dict(r) for r in data.get("relationships") or []],
            files=list(data.get("files") or []),
            metadata=dict(data.get("metadata") or {}),
        )
