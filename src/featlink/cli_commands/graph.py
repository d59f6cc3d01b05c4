"""CLI commands for graph health: validate, impacts, cycles, config-check."""

from __future__ import annotations

import json as json_mod
import logging
import sys

import click

from featlink.autofix import AutoFixer
from featlink.cli_common import EXIT_CONFIG, EXIT_VALIDATION, fail, get_project
from featlink.config import config_errors
from featlink.errors import ConfigError, FeatlinkError
from featlink.impacts import ImpactOptions, analyze_impacts
from featlink.store import CONFIG_FILENAME, find_featlink_root, read_config
from featlink.validator import ISSUE_CODE_DESCRIPTIONS, ValidationResult, Validator

logger = logging.getLogger(__name__)


def _print_issues(result: ValidationResult) -> None:
    for code, issues in sorted(result.by_code().items()):
        click.echo(f"\n{code} {ISSUE_CODE_DESCRIPTIONS.get(code, '')} ({len(issues)})")
        for issue in issues:
            fix_note = " [fixable]" if issue.fixable else ""
            click.echo(f"  {issue.file_name}: {issue.message}{fix_note}")


@click.command()
@click.option("--fix", is_flag=True, help="Repair fixable issues (E001, E002, E003)")
@click.option("--dry-run", is_flag=True, help="With --fix, report what would change without writing")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def validate(fix: bool, dry_run: bool, as_json: bool) -> None:
    """Check the relationship graph for consistency problems."""
    project = get_project()
    validator = Validator(project.store, project.config)
    try:
        result = validator.validate()
        fix_result = None
        if fix and result.has_fixable_issues():
            fixer = AutoFixer(project.store, project.config, dry_run=dry_run)
            fix_result = fixer.attempt_fixes(result.issues)
            if not dry_run and fix_result.has_fixes():
                result = validator.validate()
    except (FeatlinkError, OSError) as e:
        fail(e, as_json=as_json)

    logger.info(
        "Validated %d features",
        result.features_count,
        extra={"command": "validate", "args_data": {"errors": result.errors, "fix": fix, "dry_run": dry_run}},
    )

    if as_json:
        payload: dict[str, object] = dict(result.to_dict())
        if fix_result is not None:
            payload["fix"] = fix_result.to_dict()
        click.echo(json_mod.dumps(payload, indent=2, default=str))
    else:
        click.echo(f"Checked {result.features_count} features, {result.rel_count} relationships")
        if fix_result is not None:
            verb = "Would fix" if dry_run else "Fixed"
            for line in fix_result.fixed:
                click.echo(f"  {verb}: {line}")
            for line in fix_result.failed:
                click.echo(f"  Failed: {line}", err=True)
            click.echo(f"{verb} {fix_result.total_fixed} issue(s), {fix_result.total_failed} failed")
        if not result.issues:
            click.echo("No issues found.")
        else:
            _print_issues(result)
            click.echo(f"\n{result.errors} errors, {result.warnings} warnings")
            if not fix and result.has_fixable_issues():
                click.echo("Next: featlink validate --fix")

    if result.has_errors():
        sys.exit(EXIT_VALIDATION)


@click.command()
@click.argument("feature_ref")
@click.option("--depth", "max_depth", default=0, type=int, help="Max traversal depth (0 = unlimited)")
@click.option("--include", "include", multiple=True, help="Also include this category (repeatable)")
@click.option("--exclude", "exclude", multiple=True, help="Exclude this category (repeatable)")
@click.option("--all", "all_categories", is_flag=True, help="Traverse every category")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def impacts(
    feature_ref: str,
    max_depth: int,
    include: tuple[str, ...],
    exclude: tuple[str, ...],
    all_categories: bool,
    as_json: bool,
) -> None:
    """Show which features are affected if FEATURE changes."""
    project = get_project()
    options = ImpactOptions(
        max_depth=max_depth,
        include_categories=include,
        exclude_categories=exclude,
        all_categories=all_categories,
    )
    try:
        feature = project.store.find(feature_ref)
        result = analyze_impacts(
            feature,
            project.store,
            project.config,
            options.categories(project.config),
            options.max_depth,
        )
    except (FeatlinkError, OSError) as e:
        fail(e, as_json=as_json)

    if as_json:
        click.echo(json_mod.dumps(result.to_dict(), indent=2, default=str))
        return

    click.echo(f"Impact of changes to {result.feature} (categories: {', '.join(result.categories_included) or 'none'})")
    if not result.impacted_features:
        click.echo("No features affected.")
        return
    for item in result.impacted_features:
        indent = "  " * item.depth
        click.echo(f"{indent}{item.name} ({item.relationship}, depth {item.depth})")
        if item.warning:
            click.echo(f"{indent}  WARNING: {item.warning}")
    click.echo(f"\n{result.total_affected} features affected")


@click.command()
@click.argument("category")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def cycles(category: str, as_json: bool) -> None:
    """List every cycle in CATEGORY."""
    project = get_project()
    if category not in project.config.relationships.categories:
        click.echo(f"Unknown category: {category}", err=True)
        sys.exit(EXIT_VALIDATION)
    try:
        found = Validator(project.store, project.config).detect_all_cycles(category)
        names = {f.id: f.name for f in project.store.list()}
    except (FeatlinkError, OSError) as e:
        fail(e, as_json=as_json)

    if as_json:
        click.echo(json_mod.dumps({"category": category, "cycles": found}, indent=2))
        return
    if not found:
        click.echo(f"No cycles in {category}.")
        return
    for cycle in found:
        click.echo("  " + " -> ".join(names.get(fid, fid) for fid in cycle))
    click.echo(f"\n{len(found)} cycles")


@click.command("config-check")
def config_check() -> None:
    """Check .featlink/config.json for integrity problems."""
    try:
        featlink_dir = find_featlink_root()
    except FileNotFoundError as e:
        fail(e)
    try:
        problems = config_errors(read_config(featlink_dir, check=False))
    except ConfigError as e:
        problems = [str(e)]
    if not problems:
        click.echo(f"{CONFIG_FILENAME}: OK")
        return
    for problem in problems:
        click.echo(f"  {problem}", err=True)
    sys.exit(EXIT_CONFIG)


def register(cli: click.Group) -> None:
    """Register graph commands with the CLI group."""
    cli.add_command(validate)
    cli.add_command(impacts)
    cli.add_command(cycles)
    cli.add_command(config_check)
