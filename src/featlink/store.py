"""File-backed feature storage and project discovery.

Convention-based discovery: each project has a `.featlink/` directory
containing `config.json` (relationship types and categories) and a
`features/` directory with one JSON file per feature, named after a slug of
the feature name. Files are meant to be hand-editable; the engine copes with
whatever state they are left in.
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
import re
from pathlib import Path
from typing import Any

from featlink.base import FeatureFilter
from featlink.config import Config, default_config, parse_config
from featlink.errors import ConfigError, FeatureAlreadyExistsError, FeatureNotFoundError
from featlink.models import Feature

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Convention-based discovery
# ---------------------------------------------------------------------------

FEATLINK_DIR_NAME = ".featlink"
FEATURES_DIRNAME = "features"
CONFIG_FILENAME = "config.json"
FEATURE_SUFFIX = ".json"


def find_featlink_root(start: Path | None = None) -> Path:
    """Walk up from start (default cwd) looking for .featlink/ directory.

    Returns the .featlink/ directory path (not the project root).
    """
    current = (start or Path.cwd()).resolve()
    for parent in [current, *current.parents]:
        candidate = parent / FEATLINK_DIR_NAME
        if candidate.is_dir():
            return candidate
    msg = f"No {FEATLINK_DIR_NAME}/ directory found in {current} or any parent"
    raise FileNotFoundError(msg)


def read_config(featlink_dir: Path, *, check: bool = True) -> Config:
    """Read .featlink/config.json. Returns defaults if missing or unreadable.

    A file that parses but fails integrity checks raises ConfigError; silently
    falling back would validate the graph against the wrong schema. Pass
    ``check=False`` to get the inconsistent config back for inspection.
    """
    config_path = featlink_dir / CONFIG_FILENAME
    if not config_path.exists():
        return default_config()
    try:
        raw: dict[str, Any] = json.loads(config_path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError) as exc:
        logger.warning("Failed to read %s, using defaults: %s", config_path, exc)
        return default_config()
    if not isinstance(raw, dict):
        msg = f"{config_path} must contain a JSON object"
        raise ConfigError(msg)
    return parse_config(raw, check=check)


def write_config(featlink_dir: Path, config: Config) -> None:
    """Write .featlink/config.json."""
    write_atomic(featlink_dir / CONFIG_FILENAME, json.dumps(config.to_dict(), indent=2) + "\n")


def write_atomic(path: Path, content: str) -> None:
    """Write content to path atomically via temp file + os.replace()."""
    tmp = path.with_suffix(path.suffix + ".tmp")
    try:
        tmp.write_text(content, encoding="utf-8")
        os.replace(tmp, path)
    except BaseException:
        with contextlib.suppress(OSError):
            tmp.unlink()
        raise


# ---------------------------------------------------------------------------
# Slugs
# ---------------------------------------------------------------------------

_SEPARATORS = re.compile(r"[\s._]+")
_NON_SLUG = re.compile(r"[^a-z0-9-]+")
_HYPHENS = re.compile(r"-+")
_MAX_SLUG_LENGTH = 100


def slugify(text: str, max_length: int = _MAX_SLUG_LENGTH) -> str:
    slug = _SEPARATORS.sub("-", text.lower())
    slug = _NON_SLUG.sub("", slug)
    slug = _HYPHENS.sub("-", slug).strip("-")
    if len(slug) > max_length:
        slug = slug[:max_length].rstrip("-")
    return slug


def feature_file_name(name: str) -> str:
    return (slugify(name) or "feature") + FEATURE_SUFFIX


# ---------------------------------------------------------------------------
# FeatureStore
# ---------------------------------------------------------------------------


class FeatureStore:
    """Repository over a directory of feature JSON files.

    The ID -> path index is rebuilt on every ``list()`` and refreshed lazily
    when a lookup misses, so edits made behind the store's back are picked up.
    """

    def __init__(self, features_dir: Path) -> None:
        self.features_dir = features_dir
        self._paths: dict[str, Path] = {}

    @classmethod
    def from_project(cls, featlink_dir: Path) -> FeatureStore:
        features_dir = featlink_dir / FEATURES_DIRNAME
        features_dir.mkdir(parents=True, exist_ok=True)
        return cls(features_dir)

    # -- Internals ------------------------------------------------------------

    def _read(self, path: Path) -> Feature:
        return Feature.from_dict(json.loads(path.read_text(encoding="utf-8")))

    def _write(self, path: Path, feature: Feature) -> None:
        write_atomic(path, json.dumps(feature.to_dict(), indent=2, sort_keys=False) + "\n")

    def _scan(self) -> list[Feature]:
        features: list[Feature] = []
        paths: dict[str, Path] = {}
        if not self.features_dir.is_dir():
            self._paths = paths
            return features
        for path in sorted(self.features_dir.glob(f"*{FEATURE_SUFFIX}")):
            try:
                feature = self._read(path)
            except (json.JSONDecodeError, KeyError, TypeError, ValueError) as exc:
                logger.warning("Skipping unreadable feature file %s: %s", path.name, exc)
                continue
            if feature.id in paths:
                logger.warning("Duplicate feature id %s in %s and %s", feature.id, paths[feature.id].name, path.name)
                continue
            paths[feature.id] = path
            features.append(feature)
        self._paths = paths
        return features

    def _path_for(self, feature_id: str) -> Path:
        path = self._paths.get(feature_id)
        if path is None or not path.exists():
            self._scan()
            path = self._paths.get(feature_id)
        if path is None:
            raise FeatureNotFoundError(feature_id)
        return path

    def _free_path(self, name: str) -> Path:
        base = slugify(name) or "feature"
        candidate = self.features_dir / f"{base}{FEATURE_SUFFIX}"
        n = 2
        while candidate.exists():
            candidate = self.features_dir / f"{base}-{n}{FEATURE_SUFFIX}"
            n += 1
        return candidate

    # -- Repository -----------------------------------------------------------

    def create(self, feature: Feature) -> None:
        self._scan()
        if feature.id in self._paths:
            msg = f"feature already exists: {feature.id}"
            raise FeatureAlreadyExistsError(msg)
        self.features_dir.mkdir(parents=True, exist_ok=True)
        path = self._free_path(feature.name)
        self._write(path, feature)
        self._paths[feature.id] = path

    def get(self, feature_id: str) -> Feature:
        return self._read(self._path_for(feature_id))

    def list(self, filter: FeatureFilter | None = None) -> list[Feature]:
        features = self._scan()
        if filter is None:
            return features
        return [f for f in features if filter(f)]

    def update(self, feature: Feature) -> None:
        self._write(self._path_for(feature.id), feature)

    def delete(self, feature_id: str) -> None:
        path = self._path_for(feature_id)
        path.unlink()
        del self._paths[feature_id]

    # -- Lookup helpers ---------------------------------------------------------

    def find(self, ref: str) -> Feature:
        """Resolve *ref* as an exact ID, a unique ID prefix, or an exact name."""
        features = self.list()
        for f in features:
            if f.id == ref:
                return f
        by_prefix = [f for f in features if f.id.startswith(ref)]
        if len(by_prefix) == 1:
            return by_prefix[0]
        by_name = [f for f in features if f.name == ref] or [f for f in features if f.name.lower() == ref.lower()]
        if len(by_name) == 1:
            return by_name[0]
        if len(by_prefix) > 1 or len(by_name) > 1:
            msg = f"ambiguous feature reference '{ref}'"
            raise FeatureNotFoundError(msg)
        raise FeatureNotFoundError(ref)
