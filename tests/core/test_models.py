"""Tests for features, relationships, and version constraints."""

from __future__ import annotations

import pytest

from featlink.errors import (
    DuplicateRelationshipError,
    EmptyTargetIDError,
    InvalidVersionConstraintError,
    RelationshipNotFoundError,
)
from featlink.models import (
    Feature,
    FeatureVersion,
    Relationship,
    VersionConstraint,
    constraint_satisfied,
    parse_version_constraint,
)


class TestVersionConstraintSatisfaction:
    @pytest.mark.parametrize(
        ("target", "expected"),
        [("2", True), ("1", False), ("2.0.0", True), ("1.9.9", False), ("3", True)],
    )
    def test_simple_constraint(self, target: str, expected: bool) -> None:
        assert VersionConstraint(">=", 2).is_satisfied_by(target) is expected

    def test_semantic_constraint_against_simple_target(self) -> None:
        """A bare integer target compares as N.0.0."""
        assert VersionConstraint(">=", "1.0.0").is_satisfied_by("1") is True
        assert VersionConstraint(">", "1.0.0").is_satisfied_by("1") is False

    def test_semantic_compares_minor_then_patch(self) -> None:
        vc = VersionConstraint("<", "1.2.3")
        assert vc.is_satisfied_by("1.2.2")
        assert vc.is_satisfied_by("1.1.9")
        assert not vc.is_satisfied_by("1.2.3")
        assert not vc.is_satisfied_by("2.0.0")

    def test_equality(self) -> None:
        assert VersionConstraint("=", 3).is_satisfied_by("3")
        assert not VersionConstraint("=", 3).is_satisfied_by("4")
        assert VersionConstraint("<=", "2.0.0").is_satisfied_by("2.0.0")

    def test_malformed_target_parses_as_zero(self) -> None:
        assert not VersionConstraint(">=", 1).is_satisfied_by("garbage")
        assert not VersionConstraint(">=", "0.0.1").is_satisfied_by("x.y.z")
        assert VersionConstraint("<", 1).is_satisfied_by("")

    def test_missing_constraint_always_satisfied(self) -> None:
        assert constraint_satisfied(None, "anything")
        assert constraint_satisfied(None, "")


class TestParseVersionConstraint:
    def test_simple(self) -> None:
        vc = parse_version_constraint(">=2")
        assert vc is not None
        assert vc.operator == ">="
        assert vc.version == 2
        assert vc.is_simple()
        assert str(vc) == ">=2"

    def test_semantic(self) -> None:
        vc = parse_version_constraint("=1.0.0")
        assert vc is not None
        assert vc.is_semantic()
        assert vc.version_string() == "1.0.0"

    def test_empty_means_no_constraint(self) -> None:
        assert parse_version_constraint("") is None
        assert parse_version_constraint("   ") is None

    @pytest.mark.parametrize("text", ["2", "~2", ">=0", ">=1.0", ">=abc", "=>2"])
    def test_rejects_malformed(self, text: str) -> None:
        with pytest.raises(InvalidVersionConstraintError):
            parse_version_constraint(text)

    def test_check_rejects_bad_operator(self) -> None:
        with pytest.raises(InvalidVersionConstraintError, match="operator"):
            VersionConstraint("!=", 1).check()


class TestFeatureRelationships:
    def test_add_rejects_empty_target(self) -> None:
        f = Feature.new("A")
        with pytest.raises(EmptyTargetIDError):
            f.add_relationship(Relationship.new("depends-on", ""))

    def test_add_rejects_duplicate_pair(self) -> None:
        f = Feature.new("A")
        f.add_relationship(Relationship.new("depends-on", "b"))
        with pytest.raises(DuplicateRelationshipError):
            f.add_relationship(Relationship.new("depends-on", "b"))
        # Same target with a different type is fine.
        f.add_relationship(Relationship.new("references", "b"))
        assert len(f.relationships) == 2

    def test_remove_by_pair_and_id(self) -> None:
        f = Feature.new("A")
        keep = Relationship.new("depends-on", "b")
        drop = Relationship.new("references", "c")
        f.add_relationship(keep)
        f.add_relationship(drop)
        assert f.remove_relationship_by_id(drop.id) is drop
        assert f.remove_relationship("depends-on", "b") is keep
        assert f.relationships == []

    def test_remove_missing_raises_key_error(self) -> None:
        f = Feature.new("A")
        with pytest.raises(RelationshipNotFoundError):
            f.remove_relationship("depends-on", "nope")
        with pytest.raises(KeyError):
            f.remove_relationship_by_id("nope")

    def test_get_relationships_filters_by_type(self) -> None:
        f = Feature.new("A")
        f.add_relationship(Relationship.new("depends-on", "b"))
        f.add_relationship(Relationship.new("references", "c"))
        assert [r.target_id for r in f.get_relationships("references")] == ["c"]
        assert len(f.get_relationships()) == 2
        assert f.has_relationship("depends-on", "b")
        assert not f.has_relationship("depends-on", "c")

    def test_new_relationship_has_id_and_timestamp(self) -> None:
        rel = Relationship.new("depends-on", "b", "B")
        assert len(rel.id) == 36
        assert rel.created_at
        assert rel.target_name == "B"


class TestCurrentVersion:
    def test_integer_keys_compare_numerically(self) -> None:
        f = Feature.new("A", version="1")
        f.versions["2"] = FeatureVersion()
        f.versions["10"] = FeatureVersion()
        assert f.current_version_key() == "10"

    def test_semantic_keys(self) -> None:
        f = Feature.new("A", version="1.2.0")
        f.versions["1.10.0"] = FeatureVersion()
        assert f.current_version_key() == "1.10.0"

    def test_unparseable_keys_ignored(self) -> None:
        f = Feature.new("A", version="draft")
        assert f.current_version_key() == ""
        f.versions["3"] = FeatureVersion()
        assert f.current_version_key() == "3"

    def test_no_versions(self) -> None:
        f = Feature(id="x", name="X")
        assert f.current_version_key() == ""
        assert f.current_version() is None


class TestSerialization:
    def test_version_constraint_survives_json_form(self) -> None:
        f = Feature.new("A")
        rel = Relationship.new("depends-on", "b", "B")
        rel.version_constraint = VersionConstraint(">=", "1.2.0", note="needs new API")
        f.add_relationship(rel)
        restored = Feature.from_dict(f.to_dict())
        vc = restored.relationships[0].version_constraint
        assert vc is not None
        assert (vc.operator, vc.version, vc.note) == (">=", "1.2.0", "needs new API")

    def test_minimal_dict(self) -> None:
        f = Feature.from_dict({"id": "x", "name": "X"})
        assert f.relationships == []
        assert f.versions == {}
