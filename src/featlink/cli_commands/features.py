"""CLI commands for features and links: init, create, show, list, link, unlink."""

from __future__ import annotations

import json as json_mod
from pathlib import Path

import click

from featlink.cli_common import fail, get_project
from featlink.config import default_config
from featlink.errors import FeatlinkError
from featlink.linking import clear_relationships, link, unlink, unlink_by_target
from featlink.models import Feature
from featlink.store import FEATLINK_DIR_NAME, FEATURES_DIRNAME, read_config, write_config


@click.command()
@click.option("--name", default=None, help="Project name (default: directory name)")
def init(name: str | None) -> None:
    """Initialize .featlink/ in the current directory."""
    cwd = Path.cwd()
    featlink_dir = cwd / FEATLINK_DIR_NAME

    if featlink_dir.exists():
        click.echo(f"{FEATLINK_DIR_NAME}/ already exists in {cwd}")
        (featlink_dir / FEATURES_DIRNAME).mkdir(exist_ok=True)
        read_config(featlink_dir)
        return

    featlink_dir.mkdir()
    (featlink_dir / FEATURES_DIRNAME).mkdir()
    write_config(featlink_dir, default_config(name or cwd.name))
    click.echo(f"Initialized {FEATLINK_DIR_NAME}/ in {cwd}")
    click.echo("Next: featlink create \"My feature\"")


@click.command()
@click.argument("name")
@click.option("--description", "-d", default="", help="Description")
@click.option("--version", "version_key", default="1", help="Initial version key (default 1)")
@click.option("--tag", "-t", multiple=True, help="Tags (repeatable)")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def create(name: str, description: str, version_key: str, tag: tuple[str, ...], as_json: bool) -> None:
    """Create a new feature."""
    project = get_project()
    feature = Feature.new(name, description=description, version=version_key)
    feature.tags = list(tag)
    try:
        project.store.create(feature)
    except (FeatlinkError, OSError) as e:
        fail(e, as_json=as_json)
    if as_json:
        click.echo(json_mod.dumps(feature.to_dict(), indent=2, default=str))
    else:
        click.echo(f"Created {feature.id}: {feature.name}")


@click.command()
@click.argument("feature_ref")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def show(feature_ref: str, as_json: bool) -> None:
    """Show feature details and relationships."""
    project = get_project()
    try:
        feature = project.store.find(feature_ref)
    except KeyError as e:
        fail(e, as_json=as_json)

    if as_json:
        click.echo(json_mod.dumps(feature.to_dict(), indent=2, default=str))
        return

    click.echo(f"ID:       {feature.id}")
    click.echo(f"Name:     {feature.name}")
    click.echo(f"Version:  {feature.current_version_key() or '-'}")
    if feature.tags:
        click.echo(f"Tags:     {', '.join(feature.tags)}")
    if feature.description:
        click.echo(f"\n--- Description ---\n{feature.description}")
    if feature.relationships:
        click.echo("\n--- Relationships ---")
        for rel in feature.relationships:
            constraint = f" ({rel.version_constraint})" if rel.version_constraint else ""
            target = rel.target_name or rel.target_id
            click.echo(f"  {rel.id[:8]}  {rel.type:<14} -> {target}{constraint}")


@click.command("list")
@click.option("--tag", default=None, help="Filter by tag")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def list_features(tag: str | None, as_json: bool) -> None:
    """List features."""
    project = get_project()
    features = project.store.list(None if tag is None else lambda f: tag in f.tags)
    features.sort(key=lambda f: f.name.lower())

    if as_json:
        click.echo(json_mod.dumps([f.to_dict() for f in features], indent=2, default=str))
        return

    if not features:
        click.echo("No features found.")
        return
    for f in features:
        click.echo(f"{f.id[:8]}  v{f.current_version_key() or '-':<6} {f.name}  ({len(f.relationships)} links)")
    click.echo(f"\n{len(features)} features")


@click.command("link")
@click.argument("source_ref")
@click.argument("target_ref")
@click.option("--type", "rel_type", default=None, help="Relationship type (default: config tree type)")
@click.option("--description", "-d", default="", help="Relationship description")
@click.option("--version-constraint", "-v", "version_constraint", default="", help="e.g. '>=2' or '>=1.0.0'")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def link_cmd(
    source_ref: str,
    target_ref: str,
    rel_type: str | None,
    description: str,
    version_constraint: str,
    as_json: bool,
) -> None:
    """Link SOURCE to TARGET with a typed relationship."""
    project = get_project()
    try:
        source = project.store.find(source_ref)
        target = project.store.find(target_ref)
        result = link(
            project.store,
            source,
            target,
            rel_type or project.config.relationships.defaults.tree_type,
            project.config,
            description=description,
            version_constraint=version_constraint,
        )
    except (FeatlinkError, OSError) as e:
        fail(e, as_json=as_json)

    if as_json:
        payload = {
            "relationship": result.relationship.to_dict(),
            "inverse": result.inverse.to_dict() if result.inverse else None,
            "warning": result.cycle_warning,
        }
        click.echo(json_mod.dumps(payload, indent=2, default=str))
        return
    click.echo(f"Linked: {source.name} -> {target.name} ({result.relationship.type})")
    if result.inverse is not None:
        click.echo(f"Auto-created inverse: {target.name} -> {source.name} ({result.inverse.type})")
    if result.cycle_warning:
        click.echo(f"Warning: {result.cycle_warning}", err=True)


@click.command("unlink")
@click.argument("source_ref")
@click.argument("target_ref", required=False)
@click.option("--id", "rel_id", default=None, help="Relationship ID or ID prefix")
@click.option("--type", "rel_type", default=None, help="Relationship type (with TARGET)")
@click.option("--all", "clear_all", is_flag=True, help="Remove every outgoing relationship")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def unlink_cmd(
    source_ref: str,
    target_ref: str | None,
    rel_id: str | None,
    rel_type: str | None,
    clear_all: bool,
    as_json: bool,
) -> None:
    """Remove relationships from SOURCE (by --id, by TARGET, or --all)."""
    if sum(bool(x) for x in (target_ref, rel_id, clear_all)) != 1:
        raise click.UsageError("Give exactly one of TARGET, --id, or --all")

    project = get_project()
    try:
        source = project.store.find(source_ref)
        if clear_all:
            removed = clear_relationships(project.store, source, project.config)
        elif rel_id:
            removed = [unlink(project.store, source, rel_id)]
        else:
            assert target_ref is not None
            target = project.store.find(target_ref)
            removed = [unlink_by_target(project.store, source, target, rel_type)]
    except (FeatlinkError, OSError) as e:
        fail(e, as_json=as_json)

    if as_json:
        click.echo(json_mod.dumps({"removed": [r.to_dict() for r in removed]}, indent=2, default=str))
        return
    if not removed:
        click.echo(f"{source.name} has no relationships.")
        return
    for rel in removed:
        click.echo(f"Unlinked: {source.name} -> {rel.target_name or rel.target_id} ({rel.type})")


def register(cli: click.Group) -> None:
    """Register feature and link commands with the CLI group."""
    cli.add_command(init)
    cli.add_command(create)
    cli.add_command(show)
    cli.add_command(list_features, "list")
    cli.add_command(link_cmd, "link")
    cli.add_command(unlink_cmd, "unlink")
