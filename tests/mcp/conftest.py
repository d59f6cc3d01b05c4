"""Fixtures for MCP server tests."""

from __future__ import annotations

from collections.abc import Generator
from pathlib import Path

import pytest

from featlink.config import default_config
from featlink.store import FEATLINK_DIR_NAME, FeatureStore, write_config


@pytest.fixture
def mcp_store(tmp_path: Path) -> Generator[FeatureStore, None, None]:
    """Set up a FeatureStore and patch the MCP module globals."""
    featlink_dir = tmp_path / FEATLINK_DIR_NAME
    featlink_dir.mkdir()
    cfg = default_config("mcp")
    write_config(featlink_dir, cfg)
    s = FeatureStore.from_project(featlink_dir)

    import featlink.mcp_server as mcp_mod

    original_store = mcp_mod.store
    original_config = mcp_mod.config
    original_dir = mcp_mod._featlink_dir
    mcp_mod.store = s
    mcp_mod.config = cfg
    mcp_mod._featlink_dir = featlink_dir

    yield s

    mcp_mod.store = original_store
    mcp_mod.config = original_config
    mcp_mod._featlink_dir = original_dir
