"""Relationship configuration -- categories, types, and integrity checks.

The engine modules consume a ``Config`` as an already-validated value. This
module owns how one is built: ``default_config()`` for fresh projects and
``parse_config()`` for ``.featlink/config.json`` contents, followed by
``validate_config()`` which enforces the cross-references between types,
inverses, and categories.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Literal

from featlink.errors import ConfigError

logger = logging.getLogger(__name__)

CycleDetection = Literal["strict", "warn", "none"]
VersionFormat = Literal["simple", "semantic"]

VALID_CYCLE_DETECTION: frozenset[str] = frozenset({"strict", "warn", "none"})
VALID_VERSION_FORMATS: frozenset[str] = frozenset({"simple", "semantic"})

# ---------------------------------------------------------------------------
# Frozen dataclasses
# ---------------------------------------------------------------------------
# Config values are immutable for the lifetime of a validation pass. Dict
# fields are never mutated after parse_config() builds them.
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RelationshipCategory:
    """Cycle policy and impact participation for a group of relationship types."""

    description: str = ""
    allow_cycles: bool = False
    cycle_detection: CycleDetection = "strict"
    include_in_impact: bool = False

    def __post_init__(self) -> None:
        if self.cycle_detection not in VALID_CYCLE_DETECTION:
            allowed = sorted(VALID_CYCLE_DETECTION)
            msg = f"Invalid cycle_detection '{self.cycle_detection}': must be one of {allowed}"
            raise ConfigError(msg)


@dataclass(frozen=True)
class RelationshipTypeConfig:
    category: str
    inverse: str = ""
    bidirectional: bool = False
    description: str = ""
    aliases: tuple[str, ...] = ()
    # Of an inverse pair, exactly one member is marked; its edges read as the partner reversed.
    is_inverse: bool = False


@dataclass(frozen=True)
class RelationshipSystem:
    allow_custom_types: bool = True
    allow_custom_categories: bool = True
    auto_create_inverse: bool = True


@dataclass(frozen=True)
class RelationshipDefaults:
    category: str = "informational"
    tree_type: str = "depends-on"


@dataclass(frozen=True)
class RelationshipsConfig:
    system: RelationshipSystem = field(default_factory=RelationshipSystem)
    categories: dict[str, RelationshipCategory] = field(default_factory=dict)
    types: dict[str, RelationshipTypeConfig] = field(default_factory=dict)
    defaults: RelationshipDefaults = field(default_factory=RelationshipDefaults)


@dataclass(frozen=True)
class Config:
    """Top-level project configuration."""

    name: str = ""
    version_format: VersionFormat = "simple"
    relationships: RelationshipsConfig = field(default_factory=RelationshipsConfig)

    def to_dict(self) -> dict[str, Any]:
        rels = self.relationships
        return {
            "name": self.name,
            "version_format": self.version_format,
            "relationships": {
                "system": {
                    "allow_custom_types": rels.system.allow_custom_types,
                    "allow_custom_categories": rels.system.allow_custom_categories,
                    "auto_create_inverse": rels.system.auto_create_inverse,
                },
                "categories": {
                    name: {
                        "description": cat.description,
                        "allow_cycles": cat.allow_cycles,
                        "cycle_detection": cat.cycle_detection,
                        "include_in_impact": cat.include_in_impact,
                    }
                    for name, cat in rels.categories.items()
                },
                "types": {name: _type_to_dict(tc) for name, tc in rels.types.items()},
                "defaults": {
                    "category": rels.defaults.category,
                    "tree_type": rels.defaults.tree_type,
                },
            },
        }


def _type_to_dict(tc: RelationshipTypeConfig) -> dict[str, Any]:
    out: dict[str, Any] = {"category": tc.category, "bidirectional": tc.bidirectional}
    if tc.inverse:
        out["inverse"] = tc.inverse
    if tc.description:
        out["description"] = tc.description
    if tc.aliases:
        out["aliases"] = list(tc.aliases)
    if tc.is_inverse:
        out["is_inverse"] = True
    return out


# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

_DEFAULT_CATEGORIES: dict[str, RelationshipCategory] = {
    "structural": RelationshipCategory(
        description="Dependencies that form system architecture",
        allow_cycles=False,
        cycle_detection="strict",
        include_in_impact=True,
    ),
    "informational": RelationshipCategory(
        description="References and associations",
        allow_cycles=True,
        cycle_detection="none",
        include_in_impact=False,
    ),
    "workflow": RelationshipCategory(
        description="Process and approval relationships",
        allow_cycles=False,
        cycle_detection="warn",
        include_in_impact=True,
    ),
    "compliance": RelationshipCategory(
        description="Regulatory and audit trail relationships",
        allow_cycles=False,
        cycle_detection="strict",
        include_in_impact=False,
    ),
}


def _pair(
    forward: str,
    inverse: str,
    category: str,
    forward_desc: str,
    inverse_desc: str,
    aliases: tuple[str, ...] = (),
) -> dict[str, RelationshipTypeConfig]:
    return {
        forward: RelationshipTypeConfig(category, inverse=inverse, description=forward_desc, aliases=aliases),
        inverse: RelationshipTypeConfig(category, inverse=forward, description=inverse_desc, is_inverse=True),
    }


_DEFAULT_TYPES: dict[str, RelationshipTypeConfig] = {
    **_pair(
        "depends-on",
        "required-by",
        "structural",
        "Feature requires another feature to function",
        "Feature is required by another feature",
        ("requires", "needs"),
    ),
    **_pair(
        "contains",
        "contained-by",
        "structural",
        "Feature contains another feature as a component",
        "Feature is contained by another feature",
        ("has", "includes"),
    ),
    **_pair(
        "implements",
        "implemented-by",
        "structural",
        "Feature implements a specification or interface",
        "Feature is implemented by another feature",
    ),
    **_pair(
        "replaces",
        "replaced-by",
        "structural",
        "Feature supersedes another feature",
        "Feature is superseded by another feature",
    ),
    **_pair(
        "references",
        "referenced-by",
        "informational",
        "Feature references another feature",
        "Feature is referenced by another feature",
        ("uses", "mentions"),
    ),
    "related-to": RelationshipTypeConfig(
        "informational",
        bidirectional=True,
        description="Features are related without specific dependency",
        aliases=("relates", "associated-with"),
    ),
    "conflicts-with": RelationshipTypeConfig(
        "informational",
        bidirectional=True,
        description="Features cannot coexist in the same system",
        aliases=("incompatible-with",),
    ),
    **_pair(
        "tested-by",
        "tests",
        "informational",
        "Feature is tested by another feature",
        "Feature tests another feature",
    ),
    **_pair(
        "blocks",
        "blocked-by",
        "workflow",
        "Feature blocks progress on another feature",
        "Feature is blocked by another feature",
    ),
}


def default_config(name: str = "") -> Config:
    """Return the configuration a freshly initialized project starts with."""
    return Config(
        name=name,
        relationships=RelationshipsConfig(
            categories=dict(_DEFAULT_CATEGORIES),
            types=dict(_DEFAULT_TYPES),
        ),
    )


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def _parse_category(name: str, raw: Any) -> RelationshipCategory:
    if not isinstance(raw, dict):
        msg = f"category '{name}' must be an object"
        raise ConfigError(msg)
    return RelationshipCategory(
        description=str(raw.get("description", "")),
        allow_cycles=bool(raw.get("allow_cycles", False)),
        cycle_detection=raw.get("cycle_detection", "strict"),
        include_in_impact=bool(raw.get("include_in_impact", False)),
    )


def _parse_type(name: str, raw: Any) -> RelationshipTypeConfig:
    if not isinstance(raw, dict):
        msg = f"relationship type '{name}' must be an object"
        raise ConfigError(msg)
    category = raw.get("category")
    if not isinstance(category, str) or not category:
        msg = f"relationship type '{name}' is missing a category"
        raise ConfigError(msg)
    aliases = raw.get("aliases", [])
    if not isinstance(aliases, list) or not all(isinstance(a, str) for a in aliases):
        msg = f"relationship type '{name}' aliases must be a list of strings"
        raise ConfigError(msg)
    return RelationshipTypeConfig(
        category=category,
        inverse=str(raw.get("inverse") or ""),
        bidirectional=bool(raw.get("bidirectional", False)),
        description=str(raw.get("description", "")),
        aliases=tuple(aliases),
        is_inverse=bool(raw.get("is_inverse", False)),
    )


def parse_config(data: dict[str, Any], *, check: bool = True) -> Config:
    """Build a Config from its JSON form, filling missing sections from defaults.

    Types and categories are merged as a unit: a config that omits
    ``types`` gets the default types, but an explicit empty object is kept
    empty. Raises ConfigError on malformed input, and on inconsistent input
    unless *check* is false.
    """
    defaults = default_config()
    rels_raw = data.get("relationships") or {}
    if not isinstance(rels_raw, dict):
        msg = "relationships must be an object"
        raise ConfigError(msg)

    system_raw = rels_raw.get("system") or {}
    system = RelationshipSystem(
        allow_custom_types=bool(system_raw.get("allow_custom_types", True)),
        allow_custom_categories=bool(system_raw.get("allow_custom_categories", True)),
        auto_create_inverse=bool(system_raw.get("auto_create_inverse", True)),
    )

    if "categories" in rels_raw:
        categories = {name: _parse_category(name, raw) for name, raw in rels_raw["categories"].items()}
    else:
        categories = dict(defaults.relationships.categories)

    if "types" in rels_raw:
        types = {name: _parse_type(name, raw) for name, raw in rels_raw["types"].items()}
    else:
        types = dict(defaults.relationships.types)

    defaults_raw = rels_raw.get("defaults") or {}
    default_category = defaults_raw.get("category", "")
    if not default_category and defaults.relationships.defaults.category in categories:
        default_category = defaults.relationships.defaults.category
    tree_type = defaults_raw.get("tree_type", "")
    if not tree_type and defaults.relationships.defaults.tree_type in types:
        tree_type = defaults.relationships.defaults.tree_type

    version_format = data.get("version_format", "simple")
    if version_format not in VALID_VERSION_FORMATS:
        msg = f"version_format '{version_format}' is invalid (must be: simple, semantic)"
        raise ConfigError(msg)

    config = Config(
        name=str(data.get("name", "")),
        version_format=version_format,
        relationships=RelationshipsConfig(
            system=system,
            categories=categories,
            types=types,
            defaults=RelationshipDefaults(category=default_category, tree_type=tree_type),
        ),
    )
    if check:
        validate_config(config)
    return config


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def config_errors(config: Config) -> list[str]:
    """Return every integrity problem in *config* (empty list when valid)."""
    rels = config.relationships
    errors: list[str] = []

    if rels.defaults.tree_type and rels.defaults.tree_type not in rels.types:
        errors.append(f"defaults.tree_type '{rels.defaults.tree_type}' not defined in relationship types")
    if rels.defaults.category and rels.defaults.category not in rels.categories:
        errors.append(f"defaults.category '{rels.defaults.category}' not defined in relationship categories")

    seen_aliases: dict[str, str] = {}
    for type_name in sorted(rels.types):
        tc = rels.types[type_name]
        if tc.category not in rels.categories:
            errors.append(f"relationship type '{type_name}' references unknown category '{tc.category}'")
        if tc.bidirectional and tc.inverse:
            errors.append(
                f"relationship type '{type_name}' is bidirectional but also defines inverse '{tc.inverse}' "
                "(bidirectional types don't need inverses)"
            )
        elif tc.inverse:
            inverse = rels.types.get(tc.inverse)
            if inverse is None:
                errors.append(f"relationship type '{type_name}' specifies inverse '{tc.inverse}' which is not defined")
            elif inverse.inverse != type_name:
                errors.append(
                    f"relationship type '{type_name}' has inverse '{tc.inverse}', but '{tc.inverse}' inverse is "
                    f"'{inverse.inverse}' (should be '{type_name}')"
                )
            elif type_name < tc.inverse and tc.is_inverse == inverse.is_inverse:
                errors.append(
                    f"inverse pair '{type_name}'/'{tc.inverse}' must set is_inverse on exactly one member "
                    f"(the type stored on the target side)"
                )
        elif tc.is_inverse:
            errors.append(f"relationship type '{type_name}' sets is_inverse but has no inverse pair")
        for alias in tc.aliases:
            if alias in rels.types:
                errors.append(f"alias '{alias}' of '{type_name}' shadows a relationship type")
            elif alias in seen_aliases:
                errors.append(f"alias '{alias}' is claimed by both '{seen_aliases[alias]}' and '{type_name}'")
            else:
                seen_aliases[alias] = type_name

    for cat_name in sorted(rels.categories):
        cat = rels.categories[cat_name]
        if cat.allow_cycles and cat.cycle_detection != "none":
            errors.append(
                f"category '{cat_name}' has allow_cycles=true but cycle_detection='{cat.cycle_detection}' "
                "(should be 'none' when cycles allowed)"
            )

    return errors


def validate_config(config: Config) -> None:
    """Raise ConfigError naming the first integrity problem, if any."""
    errors = config_errors(config)
    if errors:
        raise ConfigError(errors[0])
