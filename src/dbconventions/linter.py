"""Linter orchestrator: load model and exclusions, run every check, format results."""

from __future__ import annotations

import json
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from dbconventions.exclusions import (
    ExclusionConfiguration,
    UnusedExclusionPolicy,
    load_exclusions,
)
from dbconventions.harness import CheckOutcome, ConventionHarness
from dbconventions.sources import load_contexts

if TYPE_CHECKING:
    from pathlib import Path

    from dbconventions.exclusions import RuleRef
    from dbconventions.model import ViolationRecord


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class LintError(Exception):
    """Raised when lint encounters a model or configuration error."""


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass
class LintResult:
    """Result of a lint run."""

    outcomes: list[CheckOutcome] = field(default_factory=list)
    rules_evaluated: int = 0
    contexts_scanned: int = 0
    entities_scanned: int = 0
    elapsed_ms: float = 0.0
    warnings: list[str] = field(default_factory=list)

    @property
    def failed(self) -> list[CheckOutcome]:
        return [o for o in self.outcomes if not o.passed]

    @property
    def violation_count(self) -> int:
        return sum(len(o.violations) for o in self.outcomes)


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


def lint(
    model_path: Path,
    *,
    exclusions_path: Path | None = None,
    unused_exclusions: UnusedExclusionPolicy | None = None,
    rules: list[RuleRef] | None = None,
) -> LintResult:
    """Run the lint process: load the model, load exclusions, run checks.

    Parameters
    ----------
    model_path:
        YAML model snapshot describing the mapping contexts.
    exclusions_path:
        Optional exclusions YAML.  When *None* nothing is excluded.
    unused_exclusions:
        Overrides the policy declared in the exclusions file.
    rules:
        Optional subset of rule identifiers; all fourteen run when *None*.

    Returns
    -------
    LintResult
        Per-check outcomes, counts, warnings, and timing.

    Raises
    ------
    LintError
        When the model or exclusions file is invalid, or when unused
        exclusions are found under the ``error`` policy.
    """
    start = time.monotonic()

    try:
        contexts = load_contexts(model_path)
    except ValueError as exc:
        msg = f"Invalid model: {exc}"
        raise LintError(msg) from exc

    configuration = ExclusionConfiguration()
    policy = UnusedExclusionPolicy.WARN
    if exclusions_path is not None:
        try:
            configuration, policy = load_exclusions(exclusions_path)
        except ValueError as exc:
            msg = f"Invalid exclusions configuration: {exc}"
            raise LintError(msg) from exc
    if unused_exclusions is not None:
        policy = unused_exclusions

    harness = ConventionHarness(
        lambda: contexts,
        lambda builder: builder.merge(configuration),
        unused_exclusions=policy,
    )
    try:
        harness.setup()
    except ValueError as exc:
        msg = f"Invalid exclusions configuration: {exc}"
        raise LintError(msg) from exc

    try:
        outcomes = harness.run_all(rules)
    except ValueError as exc:
        msg = f"Invalid rule selection: {exc}"
        raise LintError(msg) from exc
    finally:
        harness.teardown()

    elapsed = (time.monotonic() - start) * 1000
    return LintResult(
        outcomes=outcomes,
        rules_evaluated=len(outcomes),
        contexts_scanned=len(contexts),
        entities_scanned=sum(len(c.entities) for c in contexts),
        elapsed_ms=elapsed,
        warnings=list(harness.warnings),
    )


# ---------------------------------------------------------------------------
# Formatters
# ---------------------------------------------------------------------------


def format_rich(result: LintResult) -> str:
    """Format a LintResult as human-readable text.

    Example output with violations::

        Rules: 14 evaluated
        Model: 1 context, 3 entities

        ✗ Table names must be plural (TableNamesMustBePlural)
          SampleContext (BlogPost)

        1 violation found in 1 rule (14 rules evaluated, 0.0s)
    """
    lines: list[str] = []

    lines.append(f"Rules: {result.rules_evaluated} evaluated")
    context_label = "context" if result.contexts_scanned == 1 else "contexts"
    lines.append(
        f"Model: {result.contexts_scanned} {context_label}, {result.entities_scanned} entities"
    )
    lines.append("")

    for warning in result.warnings:
        lines.append(f"! {warning}")
    if result.warnings:
        lines.append("")

    elapsed_str = f"{result.elapsed_ms / 1000:.1f}s"

    failed = result.failed
    if failed:
        for outcome in failed:
            lines.append(f"✗ {outcome.rule_name} ({outcome.rule_id.value})")
            lines.extend(f"  {v}" for v in outcome.violations)
            lines.append("")

        count = result.violation_count
        noun = "violation" if count == 1 else "violations"
        rule_noun = "rule" if len(failed) == 1 else "rules"
        lines.append(
            f"{count} {noun} found in {len(failed)} {rule_noun} "
            f"({result.rules_evaluated} rules evaluated, {elapsed_str})"
        )
    else:
        lines.append(
            f"✓ No violations found ({result.rules_evaluated} rules evaluated, {elapsed_str})"
        )

    return "\n".join(lines)


def _violation_dict(rule_id: str, v: ViolationRecord) -> dict[str, object]:
    return {
        "rule_id": rule_id,
        "context": v.context_name,
        "entity": v.entity_name,
        "property": v.property_name,
        "message": str(v),
    }


def format_json(result: LintResult) -> str:
    """Format a LintResult as structured JSON with ``checks`` and ``summary``."""
    checks: list[dict[str, object]] = []
    for outcome in result.outcomes:
        checks.append(
            {
                "rule_id": outcome.rule_id.value,
                "name": outcome.rule_name,
                "passed": outcome.passed,
                "violations": [
                    _violation_dict(outcome.rule_id.value, v) for v in outcome.violations
                ],
            }
        )

    output: dict[str, object] = {
        "checks": checks,
        "warnings": result.warnings,
        "summary": {
            "rules_evaluated": result.rules_evaluated,
            "rules_failed": len(result.failed),
            "violations_count": result.violation_count,
            "contexts_scanned": result.contexts_scanned,
            "entities_scanned": result.entities_scanned,
            "elapsed_ms": result.elapsed_ms,
        },
    }

    return json.dumps(output, indent=2)


def format_porcelain(result: LintResult) -> str:
    """Format a LintResult as one line per violation.

    Format: ``rule_id:context:entity:property``; entity-level violations
    leave the property field empty.  Returns an empty string when clean.
    """
    lines: list[str] = []
    for outcome in result.outcomes:
        for v in outcome.violations:
            prop = v.property_name if v.property_name is not None else ""
            lines.append(f"{outcome.rule_id.value}:{v.context_name}:{v.entity_name}:{prop}")
    return "\n".join(lines)
