"""Foundational TypedDicts for dataclass to_dict() returns."""

from __future__ import annotations

from typing import Any, NewType, NotRequired, TypedDict

ISOTimestamp = NewType("ISOTimestamp", str)


class VersionConstraintDict(TypedDict):
    operator: str
    version: int | str
    note: NotRequired[str]


class RelationshipDict(TypedDict):
    id: str
    type: str
    target_id: str
    target_name: str
    description: NotRequired[str]
    created_at: ISOTimestamp
    version_constraint: NotRequired[VersionConstraintDict]


class FeatureVersionDict(TypedDict):
    created_at: ISOTimestamp
    modified_at: NotRequired[ISOTimestamp]
    closed_at: NotRequired[ISOTimestamp | None]
    branch: NotRequired[str]
    authors: NotRequired[list[str]]
    notes: NotRequired[str]


class FeatureDict(TypedDict):
    id: str
    name: str
    description: NotRequired[str]
    tags: NotRequired[list[str]]
    versions: NotRequired[dict[str, FeatureVersionDict]]
    relationships: NotRequired[list[RelationshipDict]]
    files: NotRequired[list[str]]
    metadata: NotRequired[dict[str, Any]]
