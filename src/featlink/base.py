"""Shared Protocol, snapshot type, and cancellation helper for engine modules."""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from featlink.config import Config
from featlink.errors import OperationCancelledError
from featlink.models import Feature
from featlink.relations import TypeIndex

FeatureFilter = Callable[[Feature], bool]


class Repository(Protocol):
    """Feature storage consumed by the engine.

    The engine only calls ``list`` and ``update``; the other methods belong
    to callers that create and delete features.
    """

    def create(self, feature: Feature) -> None: ...

    def get(self, feature_id: str) -> Feature: ...

    def list(self, filter: FeatureFilter | None = None) -> list[Feature]: ...

    def update(self, feature: Feature) -> None: ...

    def delete(self, feature_id: str) -> None: ...


def check_cancelled(cancel: threading.Event | None, operation: str) -> None:
    if cancel is not None and cancel.is_set():
        raise OperationCancelledError(operation)


@dataclass(frozen=True)
class GraphSnapshot:
    """Features loaded by one top-level call, plus lookups derived from them.

    Lives only for the duration of that call. ``features`` is sorted by ID so
    every pass over it is reproducible.
    """

    features: list[Feature]
    by_id: dict[str, Feature]
    index: TypeIndex

    @classmethod
    def build(cls, features: list[Feature], config: Config) -> GraphSnapshot:
        ordered = sorted(features, key=lambda f: f.id)
        return cls(features=ordered, by_id={f.id: f for f in ordered}, index=TypeIndex(config))

    @classmethod
    def load(cls, repo: Repository, config: Config) -> GraphSnapshot:
        return cls.build(repo.list(), config)

    @property
    def relationship_count(self) -> int:
        return sum(len(f.relationships) for f in self.features)
