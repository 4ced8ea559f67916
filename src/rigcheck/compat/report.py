"""Check result formatting: severity split plus rich, json and porcelain output."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from rigcheck.compat.evaluator import CheckResult, Issue


def partition_issues(issues: Iterable[Issue]) -> tuple[list[Issue], list[Issue]]:
    """Split issues into ``(errors, warnings)``, keeping rule order within each."""
    errors: list[Issue] = []
    warnings: list[Issue] = []
    for issue in issues:
        if issue.severity == "error":
            errors.append(issue)
        else:
            warnings.append(issue)
    return errors, warnings


def format_rich(result: CheckResult) -> str:
    """Format a CheckResult as human-readable text.

    Example output with issues::

        Errors:
          ✗ CPU socket AM5 does not match motherboard socket AM4
        Warnings:
          ⚠ PSU wattage 450 is below estimated draw 500

        1 error, 1 warning (2 rules evaluated, 0.1s)

    Example output without issues::

        ✓ All parts are compatible (2 rules evaluated, 0.1s)
    """
    lines: list[str] = []
    elapsed_str = f"{result.elapsed_ms / 1000:.1f}s"
    stats = f"{result.rules_evaluated} rules evaluated"
    if result.rules_skipped:
        skipped = ", ".join(f"#{n}" for n in result.rules_skipped)
        stats += f", skipped misconfigured {skipped}"

    errors, warnings = partition_issues(result.issues)
    if not errors and not warnings:
        lines.append(f"✓ All parts are compatible ({stats}, {elapsed_str})")
        return "\n".join(lines)

    if errors:
        lines.append("Errors:")
        lines.extend(f"  ✗ {issue.message}" for issue in errors)
    if warnings:
        lines.append("Warnings:")
        lines.extend(f"  ⚠ {issue.message}" for issue in warnings)
    lines.append("")

    error_word = "error" if len(errors) == 1 else "errors"
    warning_word = "warning" if len(warnings) == 1 else "warnings"
    lines.append(
        f"{len(errors)} {error_word}, {len(warnings)} {warning_word} ({stats}, {elapsed_str})"
    )
    return "\n".join(lines)


def format_json(result: CheckResult) -> str:
    """Format a CheckResult as structured JSON with ``issues`` and ``summary``."""
    errors, warnings = partition_issues(result.issues)
    output: dict[str, object] = {
        "issues": [issue.to_dict() for issue in result.issues],
        "summary": {
            "rules_evaluated": result.rules_evaluated,
            "rules_skipped": list(result.rules_skipped),
            "errors_count": len(errors),
            "warnings_count": len(warnings),
            "elapsed_ms": result.elapsed_ms,
        },
    }
    return json.dumps(output, indent=2, ensure_ascii=False)


def format_porcelain(result: CheckResult) -> str:
    """Format a CheckResult as one ``rule_id:severity:message`` line per issue.

    Returns empty string when there are no issues.
    """
    return "\n".join(
        f"{issue.rule_id}:{issue.severity}:{issue.message}" for issue in result.issues
    )
