"""dbconventions CLI entry point."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click

from dbconventions import __version__
from dbconventions.exclusions import UnusedExclusionPolicy
from dbconventions.rules import RULE_CATALOGUE, RuleId


@click.group()
@click.version_option(version=__version__, prog_name="dbconventions")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Minimal output (errors only).")
@click.pass_context
def main(ctx: click.Context, *, verbose: bool, quiet: bool) -> None:
    """dbconventions - naming and shape conventions for mapped database models."""
    ctx.ensure_object(dict)
    ctx.obj["quiet"] = quiet

    level = logging.WARNING
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.ERROR
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


@main.command()
@click.argument(
    "model",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "--exclusions",
    "-x",
    "exclusions_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Exclusions YAML file.",
)
@click.option(
    "--rule",
    "-r",
    "selected_rules",
    multiple=True,
    type=click.Choice([r.value for r in RuleId]),
    help="Run only this rule (repeatable).",
)
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["rich", "json", "porcelain"]),
    default=None,
    help="Output format (default: rich for TTY, porcelain for pipes).",
)
@click.option("--strict", is_flag=True, help="Exit 1 when violations are found.")
@click.option(
    "--strict-exclusions",
    is_flag=True,
    help="Treat exclusions that match nothing in the model as errors.",
)
@click.pass_context
def lint(
    ctx: click.Context,
    *,
    model: Path,
    exclusions_path: Path | None,
    selected_rules: tuple[str, ...],
    fmt: str | None,
    strict: bool,
    strict_exclusions: bool,
) -> None:
    """Check a YAML model snapshot against every convention rule.

    Exit codes: 0 = clean or violations without --strict,
    1 = violations with --strict, 2 = configuration error.
    """
    from dbconventions.linter import LintError
    from dbconventions.linter import format_json as _format_json
    from dbconventions.linter import format_porcelain as _format_porcelain
    from dbconventions.linter import format_rich as _format_rich
    from dbconventions.linter import lint as run_lint

    # Resolve output format: explicit flag > TTY detection.
    if fmt is None:
        fmt = "rich" if sys.stdout.isatty() else "porcelain"

    try:
        result = run_lint(
            model,
            exclusions_path=exclusions_path,
            unused_exclusions=UnusedExclusionPolicy.ERROR if strict_exclusions else None,
            rules=list(selected_rules) or None,
        )
    except LintError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(2)

    formatters = {
        "rich": _format_rich,
        "json": _format_json,
        "porcelain": _format_porcelain,
    }
    # --quiet drops the rich report for a clean run.
    if ctx.obj["quiet"] and fmt == "rich" and not result.failed and not result.warnings:
        output = ""
    else:
        output = formatters[fmt](result)
    if output:
        click.echo(output)

    if strict and result.failed:
        sys.exit(1)


@main.command()
def rules() -> None:
    """List the convention rule catalogue."""
    from rich.console import Console
    from rich.table import Table

    table = Table(title="Convention rules")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Rule", style="cyan", no_wrap=True)
    table.add_column("Description")

    for idx, rule in enumerate(RULE_CATALOGUE, start=1):
        table.add_row(str(idx), rule.rule_id.value, rule.name)

    console = Console()
    console.print(table)
