"""rigcheck CLI entry point."""

from __future__ import annotations

import json
import logging
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, NoReturn

import click

from rigcheck import __version__

if TYPE_CHECKING:
    import sqlite3
    from collections.abc import Iterator

    from rigcheck.compat.registry import Rule
    from rigcheck.infrastructure.config import Settings

_project_option = click.option(
    "--project",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
    help="Project root (default: current directory).",
)


@click.group()
@click.version_option(version=__version__, prog_name="rigcheck")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Minimal output (errors only).")
@click.pass_context
def main(ctx: click.Context, *, verbose: bool, quiet: bool) -> None:
    """rigcheck - PC build compatibility checker."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    level = logging.DEBUG if verbose else logging.ERROR if quiet else logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def _load_settings(project: Path | None) -> Settings:
    """Load project settings and apply the configured log level."""
    from rigcheck.infrastructure.config import load_settings

    settings = load_settings(project or Path.cwd())
    ctx = click.get_current_context()
    obj = ctx.find_object(dict) or {}
    if not obj.get("verbose") and not obj.get("quiet"):
        logging.getLogger().setLevel(settings.log_level)
    return settings


@contextmanager
def _open_rules_db(settings: Settings) -> Iterator[sqlite3.Connection]:
    """Open the rule database, exiting with code 2 if it has not been initialized."""
    from rigcheck.infrastructure.db import open_db

    if not settings.db_path.exists():
        click.echo("Error: database not found. Run `rigcheck init` first.", err=True)
        sys.exit(2)
    conn = open_db(settings.db_path)
    try:
        yield conn
    finally:
        conn.close()


def _fail(exc: Exception) -> NoReturn:
    click.echo(f"Error: {exc}", err=True)
    sys.exit(2)


def _echo_rule(rule: Rule) -> None:
    state = "active" if rule.is_active else "inactive"
    click.echo(f"Rule #{rule.rule_number} (id {rule.id}): {rule.name} [{rule.severity}, {state}]")


# ---------------------------------------------------------------------------
# init
# ---------------------------------------------------------------------------


@main.command()
@click.option(
    "--seed",
    "seed_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Seed rules from this YAML file (default: configured rules_path if present).",
)
@_project_option
def init(*, seed_path: Path | None, project: Path | None) -> None:
    """Create the rule database and seed it from rules.yml."""
    from rigcheck.compat.errors import CompatError
    from rigcheck.compat.provisioning import load_rule_definitions, seed_rules
    from rigcheck.infrastructure.db import create_schema, open_db

    settings = _load_settings(project)
    settings.db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = open_db(settings.db_path)
    try:
        create_schema(conn)
        rules_path = seed_path or settings.rules_path
        if not rules_path.is_file():
            click.echo(f"Initialized {settings.db_path} (no rules file to seed)")
            return
        try:
            definitions = load_rule_definitions(rules_path)
            inserted = seed_rules(conn, definitions)
        except (CompatError, ValueError) as exc:
            _fail(exc)
        click.echo(f"Initialized {settings.db_path}, seeded {inserted} rule(s)")
    finally:
        conn.close()


# ---------------------------------------------------------------------------
# rules
# ---------------------------------------------------------------------------


@main.group()
def rules() -> None:
    """List, inspect and tune compatibility rules."""


@rules.command("list")
@click.option("--all", "show_all", is_flag=True, help="Include inactive rules.")
@click.option("--json", "as_json", is_flag=True, help="JSON output.")
@_project_option
def list_rules(*, show_all: bool, as_json: bool, project: Path | None) -> None:
    """List rules in evaluation order."""
    from rigcheck.compat.errors import CompatError
    from rigcheck.compat.registry import RuleRegistry

    settings = _load_settings(project)
    with _open_rules_db(settings) as conn:
        try:
            stored = RuleRegistry(conn).list(active_only=not show_all)
        except CompatError as exc:
            _fail(exc)

    if as_json:
        click.echo(json.dumps([r.to_dict() for r in stored], ensure_ascii=False, indent=2))
        return

    from rich.console import Console
    from rich.table import Table

    table = Table(title="Compatibility Rules")
    table.add_column("#", justify="right")
    table.add_column("ID", justify="right")
    table.add_column("Name", style="cyan")
    table.add_column("Severity")
    table.add_column("Status")
    for rule in stored:
        severity_style = "red" if rule.severity == "error" else "yellow"
        status = "[green]Active[/]" if rule.is_active else "[dim]Inactive[/]"
        table.add_row(
            str(rule.rule_number),
            str(rule.id),
            rule.name,
            f"[{severity_style}]{rule.severity}[/]",
            status,
        )
    Console().print(table)


@rules.command("show")
@click.argument("rule_id", type=int)
@click.option("--json", "as_json", is_flag=True, help="JSON output.")
@_project_option
def show_rule(rule_id: int, *, as_json: bool, project: Path | None) -> None:
    """Show one rule including its message template and config."""
    from rigcheck.compat.errors import CompatError
    from rigcheck.compat.registry import RuleRegistry

    settings = _load_settings(project)
    with _open_rules_db(settings) as conn:
        try:
            rule = RuleRegistry(conn).get(rule_id)
        except CompatError as exc:
            _fail(exc)

    if as_json:
        click.echo(json.dumps(rule.to_dict(), ensure_ascii=False, indent=2))
        return

    _echo_rule(rule)
    if rule.description:
        click.echo(f"  {rule.description}")
    click.echo(f"  Message: {rule.message_template}")
    click.echo(f"  Config: {json.dumps(dict(rule.rule_config), sort_keys=True)}")


def _apply_admin_change(project: Path | None, rule_id: int, **change: object) -> None:
    from rigcheck.compat.admin import AdminRuleManager
    from rigcheck.compat.errors import CompatError
    from rigcheck.compat.registry import RuleRegistry

    settings = _load_settings(project)
    with _open_rules_db(settings) as conn:
        manager = AdminRuleManager(RuleRegistry(conn))
        try:
            if "active" in change:
                rule = manager.set_active(rule_id, bool(change["active"]))
            else:
                rule = manager.set_severity(rule_id, str(change["severity"]))
        except CompatError as exc:
            _fail(exc)
    _echo_rule(rule)


@rules.command("enable")
@click.argument("rule_id", type=int)
@_project_option
def enable_rule(rule_id: int, *, project: Path | None) -> None:
    """Activate a rule."""
    _apply_admin_change(project, rule_id, active=True)


@rules.command("disable")
@click.argument("rule_id", type=int)
@_project_option
def disable_rule(rule_id: int, *, project: Path | None) -> None:
    """Deactivate a rule; it is no longer evaluated."""
    _apply_admin_change(project, rule_id, active=False)


@rules.command("severity")
@click.argument("rule_id", type=int)
@click.argument("level")
@_project_option
def set_severity(rule_id: int, level: str, *, project: Path | None) -> None:
    """Set a rule's severity to 'error' or 'warning'."""
    _apply_admin_change(project, rule_id, severity=level)


@rules.command("seed")
@click.argument(
    "rules_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    required=False,
)
@_project_option
def seed(rules_path: Path | None, *, project: Path | None) -> None:
    """Insert rules from a YAML file that are not stored yet."""
    from rigcheck.compat.errors import CompatError
    from rigcheck.compat.provisioning import load_rule_definitions, seed_rules

    settings = _load_settings(project)
    path = rules_path or settings.rules_path
    if not path.is_file():
        click.echo(f"Error: rules file not found: {path}", err=True)
        sys.exit(2)
    with _open_rules_db(settings) as conn:
        try:
            inserted = seed_rules(conn, load_rule_definitions(path))
        except (CompatError, ValueError) as exc:
            _fail(exc)
    click.echo(f"Seeded {inserted} rule(s) from {path}")


@rules.command("validate")
@_project_option
def validate(*, project: Path | None) -> None:
    """Report stored rules whose config cannot be evaluated.

    Exit codes: 0 = all rules valid, 1 = misconfigured rules found.
    """
    from rigcheck.compat.errors import CompatError
    from rigcheck.compat.evaluator import RuleEvaluator
    from rigcheck.compat.registry import RuleRegistry

    settings = _load_settings(project)
    with _open_rules_db(settings) as conn:
        try:
            warnings = RuleEvaluator(RuleRegistry(conn)).audit()
        except CompatError as exc:
            _fail(exc)

    if not warnings:
        click.echo("All rules are valid.")
        return
    for warning in warnings:
        click.echo(f"⚠ {warning}")
    sys.exit(1)


# ---------------------------------------------------------------------------
# check
# ---------------------------------------------------------------------------


@main.command()
@click.argument("selection_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["rich", "json", "porcelain"]),
    default=None,
    help="Output format (default: rich if TTY, porcelain if piped).",
)
@click.option("--strict", is_flag=True, default=False, help="Exit 1 if errors found.")
@click.option(
    "--fail-on-warn",
    is_flag=True,
    default=False,
    help="Exit 1 if errors or warnings found.",
)
@click.option(
    "--no-totals",
    is_flag=True,
    default=False,
    help="Do not derive the 'build' totals pseudo-part.",
)
@_project_option
def check(
    selection_path: Path,
    *,
    fmt: str | None,
    strict: bool,
    fail_on_warn: bool,
    no_totals: bool,
    project: Path | None,
) -> None:
    """Check a part selection against the active compatibility rules.

    Exit codes: 0 = compatible or issues without --strict/--fail-on-warn,
    1 = blocking issues, 2 = configuration error.
    """
    from rigcheck.compat.errors import CompatError
    from rigcheck.compat.evaluator import RuleEvaluator
    from rigcheck.compat.registry import RuleRegistry
    from rigcheck.compat.report import format_json, format_porcelain, format_rich
    from rigcheck.selection import load_selection, with_build_totals

    settings = _load_settings(project)

    if fmt is None:
        fmt = "rich" if sys.stdout.isatty() else "porcelain"

    try:
        selection = load_selection(selection_path)
    except CompatError as exc:
        _fail(exc)
    if not no_totals:
        selection = with_build_totals(selection, power_attributes=settings.power_attributes)

    with _open_rules_db(settings) as conn:
        evaluator = RuleEvaluator(RuleRegistry(conn), category_aliases=settings.category_aliases)
        try:
            result = evaluator.check(selection)
        except CompatError as exc:
            _fail(exc)

    formatters = {
        "rich": format_rich,
        "json": format_json,
        "porcelain": format_porcelain,
    }
    output = formatters[fmt](result)
    if output:
        click.echo(output)

    has_errors = any(issue.severity == "error" for issue in result.issues)
    if (strict and has_errors) or (fail_on_warn and result.issues):
        sys.exit(1)
