"""Shared pytest fixtures for featlink tests."""

from __future__ import annotations

from pathlib import Path

import pytest
from click.testing import CliRunner

from featlink.config import Config, default_config
from featlink.models import Feature, Relationship, parse_version_constraint
from featlink.store import FEATLINK_DIR_NAME, FEATURES_DIRNAME, FeatureStore, write_config
from tests._helpers import MakeFeature, RawLink


@pytest.fixture
def config() -> Config:
    """Default relationship config (structural strict, workflow warn, informational allows cycles)."""
    return default_config("test")


@pytest.fixture
def store(tmp_path: Path) -> FeatureStore:
    """Fresh FeatureStore for each test."""
    return FeatureStore.from_project(tmp_path / FEATLINK_DIR_NAME)


@pytest.fixture
def make_feature(store: FeatureStore) -> MakeFeature:
    """Create and persist a feature: ``make_feature("Login", version="2")``."""

    def _make(name: str, *, version: str = "1") -> Feature:
        feature = Feature.new(name, version=version)
        store.create(feature)
        return feature

    return _make


@pytest.fixture
def raw_link(store: FeatureStore) -> RawLink:
    """Store a relationship directly, bypassing type, cycle, and inverse handling.

    Used to build graphs in states the guarded ``link`` path would refuse,
    the way hand-edited files can.
    """

    def _link(source: Feature, rel_type: str, target: Feature | str, constraint: str = "") -> Relationship:
        target_id = target.id if isinstance(target, Feature) else target
        target_name = target.name if isinstance(target, Feature) else ""
        rel = Relationship.new(rel_type, target_id, target_name)
        rel.version_constraint = parse_version_constraint(constraint)
        source.add_relationship(rel)
        store.update(source)
        return rel

    return _link


@pytest.fixture
def featlink_project(tmp_path: Path) -> Path:
    """A tmp directory set up as a featlink project (.featlink/ with config + features/).

    Returns the project root (parent of .featlink/).
    """
    featlink_dir = tmp_path / FEATLINK_DIR_NAME
    featlink_dir.mkdir()
    (featlink_dir / FEATURES_DIRNAME).mkdir()
    write_config(featlink_dir, default_config("proj"))
    return tmp_path


@pytest.fixture
def cli_runner() -> CliRunner:
    """Click CLI test runner."""
    return CliRunner()
