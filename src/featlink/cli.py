"""CLI for featlink.

Convention-based: discovers .featlink/ by walking up from cwd.

Usage:
    featlink init                                 # Initialize .featlink/ in cwd
    featlink create "Login form"                  # Create feature
    featlink show <feature>                       # Show feature and its links
    featlink list                                 # List features
    featlink link <src> <dst> --type depends-on   # Link two features
    featlink unlink <src> <dst>                   # Remove a link
    featlink validate [--fix] [--dry-run]         # Check graph consistency
    featlink impacts <feature> --depth 2          # What breaks if this changes
    featlink cycles structural                    # List cycles in a category
    featlink config-check                         # Check config integrity

Features may be addressed by ID, unique ID prefix, or exact name.
"""

from __future__ import annotations

import click

from featlink import __version__
from featlink.cli_commands import features as _features
from featlink.cli_commands import graph as _graph


@click.group()
@click.version_option(version=__version__, prog_name="featlink")
def cli() -> None:
    """featlink: typed feature relationships with consistency checks."""


_features.register(cli)
_graph.register(cli)


if __name__ == "__main__":
    cli()
