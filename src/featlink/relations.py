"""Relationship type resolution against the configured types and categories.

``TypeIndex`` is built once per pass and answers alias, category, and
inverse lookups in constant time. The module-level helpers build a
throwaway index for one-off callers.
"""

from __future__ import annotations

from collections.abc import Iterable

from featlink.config import Config, RelationshipCategory, RelationshipTypeConfig
from featlink.errors import EmptyTargetIDError, SchemaError
from featlink.models import Relationship


class TypeIndex:
    """Precomputed lookup tables for one Config."""

    def __init__(self, config: Config) -> None:
        rels = config.relationships
        self.config = config
        self._types: dict[str, RelationshipTypeConfig] = dict(rels.types)
        self._categories: dict[str, RelationshipCategory] = dict(rels.categories)
        self._default_category = rels.defaults.category
        self._canonical: dict[str, str] = {name: name for name in rels.types}
        # Iterate sorted so an alias claimed by two types resolves the same way every run.
        for name in sorted(rels.types):
            for alias in rels.types[name].aliases:
                self._canonical.setdefault(alias, name)
        # Inverse types are the ones marked is_inverse, never inferred from key order.
        self._inverse_members: set[str] = {
            name
            for name, tc in rels.types.items()
            if tc.is_inverse and tc.inverse and not tc.bidirectional and tc.inverse in rels.types
        }

    def canonical(self, rel_type: str) -> str | None:
        return self._canonical.get(rel_type)

    def is_known(self, rel_type: str) -> bool:
        return rel_type in self._canonical

    def resolve(self, rel_type: str) -> tuple[str, str]:
        """Return (canonical_type, category); raise SchemaError if unresolvable."""
        name = self._canonical.get(rel_type)
        if name is None:
            msg = f"relationship type '{rel_type}' not defined in config"
            raise SchemaError(msg)
        return name, self._types[name].category

    def type_config(self, rel_type: str) -> RelationshipTypeConfig | None:
        name = self._canonical.get(rel_type)
        return self._types[name] if name is not None else None

    def category_of(self, rel_type: str) -> str:
        """Category for *rel_type*, falling back to the default category when unknown."""
        tc = self.type_config(rel_type)
        return tc.category if tc is not None else self._default_category

    def category(self, name: str) -> RelationshipCategory | None:
        return self._categories.get(name)

    @property
    def category_names(self) -> list[str]:
        return sorted(self._categories)

    def inverse_of(self, rel_type: str) -> str:
        """Configured inverse of *rel_type* ("" for bidirectional or unpaired types)."""
        tc = self.type_config(rel_type)
        if tc is None or tc.bidirectional:
            return ""
        return tc.inverse

    def is_inverse_type(self, rel_type: str) -> bool:
        name = self._canonical.get(rel_type)
        return name is not None and name in self._inverse_members

    def forward_of(self, rel_type: str) -> str:
        """Forward partner of an inverse type, or "" when *rel_type* is not one."""
        name = self._canonical.get(rel_type)
        if name is None or name not in self._inverse_members:
            return ""
        return self._types[name].inverse


def resolve_type(rel_type: str, config: Config) -> tuple[str, str]:
    return TypeIndex(config).resolve(rel_type)


def get_category(rel_type: str, config: Config) -> str:
    return TypeIndex(config).category_of(rel_type)


def validate_relationship(rel: Relationship, config: Config, index: TypeIndex | None = None) -> None:
    """Check a relationship about to be inserted.

    Rewrites ``rel.type`` to its canonical name when it was given as an alias.
    Raises SchemaError for unknown types or categories and EmptyTargetIDError
    for a missing target.
    """
    index = index or TypeIndex(config)
    canonical, category = index.resolve(rel.type)
    rel.type = canonical
    if index.category(category) is None:
        msg = f"relationship type '{canonical}' references unknown category '{category}'"
        raise SchemaError(msg)
    if not rel.target_id:
        raise EmptyTargetIDError


def included_categories(
    config: Config,
    *,
    include: Iterable[str] = (),
    exclude: Iterable[str] = (),
    all_categories: bool = False,
) -> list[str]:
    """Categories that take part in impact analysis.

    ``(include_in_impact ∪ include) \\ exclude``, or every category when
    *all_categories* is set (which ignores include_in_impact entirely).
    """
    categories = config.relationships.categories
    if all_categories:
        return sorted(categories)
    chosen = {name for name, cat in categories.items() if cat.include_in_impact}
    chosen.update(include)
    chosen.difference_update(exclude)
    return sorted(chosen)
