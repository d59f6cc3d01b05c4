"""Tests for FeatureStore, slugs, and project discovery."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from featlink.errors import ConfigError, FeatureAlreadyExistsError, FeatureNotFoundError
from featlink.models import Feature
from featlink.store import (
    CONFIG_FILENAME,
    FEATLINK_DIR_NAME,
    FeatureStore,
    feature_file_name,
    find_featlink_root,
    read_config,
    slugify,
)
from tests._helpers import MakeFeature


class TestSlugify:
    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("User Login", "user-login"),
            ("  OAuth2.0 / SSO  ", "oauth2-0-sso"),
            ("snake_case_name", "snake-case-name"),
            ("---a---b---", "a-b"),
            ("Ünïcödé!", "ncd"),
        ],
    )
    def test_slugify(self, text: str, expected: str) -> None:
        assert slugify(text) == expected

    def test_truncates_without_trailing_hyphen(self) -> None:
        slug = slugify("word " * 50, max_length=12)
        assert len(slug) <= 12
        assert not slug.endswith("-")

    def test_file_name_fallback(self) -> None:
        assert feature_file_name("!!!") == "feature.json"
        assert feature_file_name("Login Form") == "login-form.json"


class TestFeatureStore:
    def test_create_and_get(self, store: FeatureStore) -> None:
        f = Feature.new("Login Form")
        store.create(f)
        assert (store.features_dir / "login-form.json").exists()
        assert store.get(f.id).name == "Login Form"

    def test_create_duplicate_id(self, store: FeatureStore) -> None:
        f = Feature.new("A")
        store.create(f)
        with pytest.raises(FeatureAlreadyExistsError):
            store.create(f)

    def test_name_collisions_get_suffixes(self, store: FeatureStore) -> None:
        for _ in range(3):
            store.create(Feature.new("Same Name"))
        names = sorted(p.name for p in store.features_dir.glob("*.json"))
        assert names == ["same-name-2.json", "same-name-3.json", "same-name.json"]

    def test_get_missing(self, store: FeatureStore) -> None:
        with pytest.raises(FeatureNotFoundError):
            store.get("nope")
        with pytest.raises(KeyError):
            store.get("nope")

    def test_update_persists(self, store: FeatureStore, make_feature: MakeFeature) -> None:
        f = make_feature("A")
        f.description = "changed"
        store.update(f)
        assert store.get(f.id).description == "changed"

    def test_delete(self, store: FeatureStore, make_feature: MakeFeature) -> None:
        f = make_feature("A")
        store.delete(f.id)
        assert store.list() == []

    def test_list_with_filter(self, store: FeatureStore, make_feature: MakeFeature) -> None:
        make_feature("A")
        b = make_feature("B")
        assert [f.id for f in store.list(lambda f: f.name == "B")] == [b.id]

    def test_unreadable_files_are_skipped(self, store: FeatureStore, make_feature: MakeFeature) -> None:
        make_feature("Good")
        (store.features_dir / "broken.json").write_text("{not json")
        (store.features_dir / "no-id.json").write_text(json.dumps({"name": "x"}))
        assert [f.name for f in store.list()] == ["Good"]

    def test_picks_up_external_edits(self, store: FeatureStore, make_feature: MakeFeature) -> None:
        f = make_feature("A")
        path = store.features_dir / "a.json"
        data = json.loads(path.read_text())
        data["description"] = "edited by hand"
        path.write_text(json.dumps(data))
        assert store.get(f.id).description == "edited by hand"


class TestFind:
    def test_by_id_prefix_and_name(self, store: FeatureStore, make_feature: MakeFeature) -> None:
        f = make_feature("Checkout Flow")
        assert store.find(f.id).id == f.id
        assert store.find(f.id[:8]).id == f.id
        assert store.find("Checkout Flow").id == f.id
        assert store.find("checkout flow").id == f.id

    def test_missing(self, store: FeatureStore) -> None:
        with pytest.raises(FeatureNotFoundError):
            store.find("ghost")

    def test_ambiguous_name(self, store: FeatureStore, make_feature: MakeFeature) -> None:
        make_feature("Twin")
        make_feature("Twin")
        with pytest.raises(FeatureNotFoundError, match="ambiguous"):
            store.find("Twin")


class TestProjectFiles:
    def test_find_root_walks_up(self, tmp_path: Path) -> None:
        (tmp_path / FEATLINK_DIR_NAME).mkdir()
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)
        assert find_featlink_root(nested) == (tmp_path / FEATLINK_DIR_NAME).resolve()

    def test_find_root_missing(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            find_featlink_root(tmp_path)

    def test_missing_config_gives_defaults(self, tmp_path: Path) -> None:
        assert "depends-on" in read_config(tmp_path).relationships.types

    def test_corrupt_config_gives_defaults(self, tmp_path: Path) -> None:
        (tmp_path / CONFIG_FILENAME).write_text("{oops")
        assert "depends-on" in read_config(tmp_path).relationships.types

    def test_inconsistent_config_raises(self, tmp_path: Path) -> None:
        bad = {"relationships": {"types": {"a": {"category": "structural", "inverse": "ghost"}}}}
        (tmp_path / CONFIG_FILENAME).write_text(json.dumps(bad))
        with pytest.raises(ConfigError):
            read_config(tmp_path)
