"""Tests for the guarded link path and relationship removal helpers."""

from __future__ import annotations

import logging
from dataclasses import replace

import pytest

from featlink.config import Config, RelationshipSystem
from featlink.errors import (
    CycleError,
    DuplicateRelationshipError,
    InvalidVersionConstraintError,
    RelationshipNotFoundError,
    SchemaError,
)
from featlink.linking import clear_relationships, cleanup_incoming, find_incoming, link, unlink, unlink_by_target
from featlink.models import VersionConstraint
from featlink.store import FeatureStore
from featlink.validator import Validator
from tests._helpers import MakeFeature, RawLink


class TestLink:
    def test_creates_forward_and_inverse(self, store: FeatureStore, config: Config, make_feature: MakeFeature) -> None:
        a, b = make_feature("A"), make_feature("B")
        result = link(store, a, b, "depends-on", config, description="auth needs sessions")
        assert result.relationship.type == "depends-on"
        assert result.inverse is not None
        assert result.inverse.type == "required-by"
        assert result.cycle_warning is None

        stored_a, stored_b = store.get(a.id), store.get(b.id)
        assert [(r.type, r.target_id, r.description) for r in stored_a.relationships] == [
            ("depends-on", b.id, "auth needs sessions")
        ]
        assert [(r.type, r.target_id, r.target_name) for r in stored_b.relationships] == [("required-by", a.id, "A")]
        assert Validator(store, config).validate().issues == []

    def test_alias_is_stored_canonically(self, store: FeatureStore, config: Config, make_feature: MakeFeature) -> None:
        a, b = make_feature("A"), make_feature("B")
        result = link(store, a, b, "needs", config)
        assert result.relationship.type == "depends-on"
        assert store.get(a.id).relationships[0].type == "depends-on"

    def test_bidirectional_has_no_inverse(self, store: FeatureStore, config: Config, make_feature: MakeFeature) -> None:
        a, b = make_feature("A"), make_feature("B")
        result = link(store, a, b, "related-to", config)
        assert result.inverse is None
        assert store.get(b.id).relationships == []

    def test_auto_inverse_disabled(self, store: FeatureStore, config: Config, make_feature: MakeFeature) -> None:
        a, b = make_feature("A"), make_feature("B")
        manual = replace(
            config,
            relationships=replace(config.relationships, system=RelationshipSystem(auto_create_inverse=False)),
        )
        assert link(store, a, b, "depends-on", manual).inverse is None
        assert store.get(b.id).relationships == []

    def test_existing_inverse_is_left_alone(
        self, store: FeatureStore, config: Config, make_feature: MakeFeature, raw_link: RawLink
    ) -> None:
        a, b = make_feature("A"), make_feature("B")
        raw_link(b, "required-by", a)
        result = link(store, a, b, "depends-on", config)
        assert result.inverse is None
        assert len(store.get(b.id).relationships) == 1

    def test_version_constraint_persisted(self, store: FeatureStore, config: Config, make_feature: MakeFeature) -> None:
        a, b = make_feature("A"), make_feature("B")
        link(store, a, b, "depends-on", config, version_constraint=">=2")
        assert store.get(a.id).relationships[0].version_constraint == VersionConstraint(">=", 2)

    def test_logs_the_link(
        self, store: FeatureStore, config: Config, make_feature: MakeFeature, caplog: pytest.LogCaptureFixture
    ) -> None:
        a, b = make_feature("A"), make_feature("B")
        with caplog.at_level(logging.INFO, logger="featlink.linking"):
            link(store, a, b, "references", config)
        assert any("Linked" in r.getMessage() for r in caplog.records)


class TestLinkRejections:
    def test_cycle_rejected_before_write(self, store: FeatureStore, config: Config, make_feature: MakeFeature) -> None:
        a, b = make_feature("A"), make_feature("B")
        link(store, a, b, "depends-on", config)
        with pytest.raises(CycleError):
            link(store, b, a, "depends-on", config)
        assert [r.type for r in store.get(b.id).relationships] == ["required-by"]

    def test_self_link(self, store: FeatureStore, config: Config, make_feature: MakeFeature) -> None:
        a = make_feature("A")
        with pytest.raises(CycleError, match="self"):
            link(store, a, a, "references", config)

    def test_warn_category_links_with_warning(
        self, store: FeatureStore, config: Config, make_feature: MakeFeature
    ) -> None:
        a, b = make_feature("A"), make_feature("B")
        link(store, a, b, "blocks", config)
        result = link(store, b, a, "blocks", config)
        assert result.cycle_warning is not None
        assert "workflow" in result.cycle_warning
        assert any(r.type == "blocks" for r in store.get(b.id).relationships)

    def test_unknown_type(self, store: FeatureStore, config: Config, make_feature: MakeFeature) -> None:
        a, b = make_feature("A"), make_feature("B")
        with pytest.raises(SchemaError, match="not defined"):
            link(store, a, b, "frobnicates", config)
        assert store.get(a.id).relationships == []

    @pytest.mark.parametrize("constraint", ["~2", ">=0", ">=1.0", ">=abc"])
    def test_bad_constraint(
        self, store: FeatureStore, config: Config, make_feature: MakeFeature, constraint: str
    ) -> None:
        a, b = make_feature("A"), make_feature("B")
        with pytest.raises(InvalidVersionConstraintError):
            link(store, a, b, "depends-on", config, version_constraint=constraint)
        assert store.get(a.id).relationships == []

    def test_duplicate(self, store: FeatureStore, config: Config, make_feature: MakeFeature) -> None:
        a, b = make_feature("A"), make_feature("B")
        link(store, a, b, "depends-on", config)
        with pytest.raises(DuplicateRelationshipError):
            link(store, a, b, "needs", config)


class TestUnlink:
    def test_by_id_prefix(self, store: FeatureStore, config: Config, make_feature: MakeFeature) -> None:
        a, b = make_feature("A"), make_feature("B")
        rel = link(store, a, b, "references", config).relationship
        removed = unlink(store, a, rel.id[:8])
        assert removed.id == rel.id
        assert store.get(a.id).relationships == []

    def test_unknown_id(self, store: FeatureStore, make_feature: MakeFeature) -> None:
        a = make_feature("A")
        with pytest.raises(RelationshipNotFoundError):
            unlink(store, a, "nope")

    def test_by_target(self, store: FeatureStore, config: Config, make_feature: MakeFeature) -> None:
        a, b = make_feature("A"), make_feature("B")
        link(store, a, b, "references", config)
        link(store, a, b, "related-to", config)
        removed = unlink_by_target(store, a, b, "related-to")
        assert removed.type == "related-to"
        assert [r.type for r in store.get(a.id).relationships] == ["references"]
        assert unlink_by_target(store, a, b).type == "references"

    def test_by_target_missing(self, store: FeatureStore, make_feature: MakeFeature) -> None:
        a, b = make_feature("A"), make_feature("B")
        with pytest.raises(RelationshipNotFoundError):
            unlink_by_target(store, a, b)
        with pytest.raises(RelationshipNotFoundError):
            unlink_by_target(store, a, b, "depends-on")


class TestBulkRemoval:
    def test_clear_removes_inverses(self, store: FeatureStore, config: Config, make_feature: MakeFeature) -> None:
        a, b, c = (make_feature(n) for n in "ABC")
        link(store, a, b, "depends-on", config)
        link(store, a, c, "references", config)
        removed = clear_relationships(store, store.get(a.id), config)
        assert {r.target_id for r in removed} == {b.id, c.id}
        assert all(store.get(f.id).relationships == [] for f in (a, b, c))

    def test_clear_with_nothing_to_do(self, store: FeatureStore, config: Config, make_feature: MakeFeature) -> None:
        assert clear_relationships(store, make_feature("A"), config) == []

    def test_cleanup_incoming(self, store: FeatureStore, config: Config, make_feature: MakeFeature) -> None:
        a, b, c = (make_feature(n) for n in "ABC")
        link(store, a, c, "depends-on", config)
        link(store, b, c, "references", config)
        assert cleanup_incoming(store, c.id) == 2
        store.delete(c.id)
        assert store.get(a.id).relationships == []
        assert store.get(b.id).relationships == []
        assert Validator(store, config).validate().issues == []

    def test_find_incoming(self, store: FeatureStore, config: Config, make_feature: MakeFeature) -> None:
        a, b, c = (make_feature(n) for n in "ABC")
        link(store, a, c, "depends-on", config)
        link(store, b, c, "references", config)
        incoming = find_incoming(store, c.id)
        assert sorted(i.source_name for i in incoming) == ["A", "B"]
        only_refs = find_incoming(store, c.id, ["references"])
        assert [(i.source_id, i.relationship.type) for i in only_refs] == [(b.id, "references")]
