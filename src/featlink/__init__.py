"""featlink: typed feature relationships with consistency checks and impact analysis."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("featlink")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"

from featlink.autofix import AutoFixer, FixResult
from featlink.config import Config, default_config
from featlink.impacts import ImpactResult, analyze_impacts
from featlink.models import Feature, Relationship, VersionConstraint
from featlink.store import FeatureStore
from featlink.validator import ValidationIssue, ValidationResult, Validator

__all__ = [
    "AutoFixer",
    "Config",
    "Feature",
    "FeatureStore",
    "FixResult",
    "ImpactResult",
    "Relationship",
    "ValidationIssue",
    "ValidationResult",
    "Validator",
    "VersionConstraint",
    "__version__",
    "analyze_impacts",
    "default_config",
]
