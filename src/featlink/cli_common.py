"""Shared CLI helpers.

Provides ``get_project()`` and the error-to-exit-code mapping so that
``cli.py`` and the ``cli_commands/*.py`` modules can use them without
circular imports.
"""

from __future__ import annotations

import json as json_mod
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import NoReturn

import click

from featlink.config import Config
from featlink.errors import (
    ConfigError,
    CycleError,
    DuplicateRelationshipError,
    FeatureAlreadyExistsError,
    FeatureNotFoundError,
    OperationCancelledError,
    RelationshipNotFoundError,
)
from featlink.logging import setup_logging
from featlink.store import FEATLINK_DIR_NAME, FeatureStore, find_featlink_root, read_config

EXIT_ERROR = 1
EXIT_NOT_FOUND = 3
EXIT_VALIDATION = 4
EXIT_CONFIG = 5
EXIT_CONFLICT = 7


@dataclass
class Project:
    featlink_dir: Path
    config: Config
    store: FeatureStore


def get_project() -> Project:
    """Discover .featlink/ and return its config and feature store."""
    try:
        featlink_dir = find_featlink_root()
    except FileNotFoundError:
        click.echo(f"No {FEATLINK_DIR_NAME}/ found. Run 'featlink init' first.", err=True)
        sys.exit(EXIT_ERROR)
    setup_logging(featlink_dir)
    try:
        config = read_config(featlink_dir)
    except ConfigError as e:
        click.echo(f"Invalid config: {e}", err=True)
        sys.exit(EXIT_CONFIG)
    return Project(featlink_dir, config, FeatureStore.from_project(featlink_dir))


def exit_code_for(exc: Exception) -> int:
    if isinstance(exc, FeatureNotFoundError | RelationshipNotFoundError):
        return EXIT_NOT_FOUND
    if isinstance(exc, ConfigError):
        return EXIT_CONFIG
    if isinstance(exc, CycleError | DuplicateRelationshipError | FeatureAlreadyExistsError):
        return EXIT_CONFLICT
    if isinstance(exc, OperationCancelledError):
        return EXIT_ERROR
    if isinstance(exc, ValueError):
        return EXIT_VALIDATION
    return EXIT_ERROR


def fail(exc: Exception, *, as_json: bool = False) -> NoReturn:
    """Report *exc* on stderr (or as a JSON error object) and exit with its code."""
    code = exit_code_for(exc)
    if as_json:
        click.echo(json_mod.dumps({"error": str(exc), "exit_code": code}))
    else:
        click.echo(f"Error: {exc}", err=True)
    sys.exit(code)
