"""Rule evaluator: turn a part selection into an ordered list of issues."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from rigcheck.compat.errors import MisconfiguredRule
from rigcheck.compat.messages import render
from rigcheck.compat.predicates import evaluate_predicate, parse_predicate

if TYPE_CHECKING:
    from collections.abc import Mapping

    from rigcheck.compat.registry import Rule, RuleRegistry

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Issue:
    """A single failed rule."""

    rule_id: int
    severity: str  # "error" | "warning"
    message: str

    def to_dict(self) -> dict[str, object]:
        return {"rule_id": self.rule_id, "severity": self.severity, "message": self.message}


@dataclass
class CheckResult:
    """Result of a check run."""

    issues: list[Issue] = field(default_factory=list)
    rules_evaluated: int = 0
    rules_skipped: list[int] = field(default_factory=list)  # misconfigured rule numbers
    elapsed_ms: float = 0.0


# ---------------------------------------------------------------------------
# Evaluator
# ---------------------------------------------------------------------------


class RuleEvaluator:
    """Evaluate the registry's active rules against a part selection.

    The registry is read on every call; results are never memoized, so
    callers re-run :meth:`evaluate` whenever the selection or the rule set
    may have changed.
    """

    def __init__(
        self,
        registry: RuleRegistry,
        *,
        category_aliases: Mapping[str, str] | None = None,
    ) -> None:
        self._registry = registry
        self._category_aliases: Mapping[str, str] = dict(category_aliases or {})

    def _evaluate_rule(
        self, rule: Rule, selection: Mapping[str, Mapping[str, object]]
    ) -> Issue | None:
        """Return the rule's issue, or ``None`` if it passes or is skipped.

        Raises :class:`MisconfiguredRule` when the rule cannot be interpreted.
        """
        predicate = parse_predicate(rule.rule_config, context=f"Rule #{rule.rule_number}")
        result = evaluate_predicate(
            predicate, selection, category_aliases=self._category_aliases
        )
        if result.skipped or result.satisfied:
            return None
        return Issue(
            rule_id=rule.id,
            severity=rule.severity,
            message=render(rule.message_template, result.substitutions),
        )

    def check(self, selection: Mapping[str, Mapping[str, object]]) -> CheckResult:
        """Evaluate all active rules and return issues with run statistics.

        Misconfigured rules are logged and skipped; they never abort the run.
        :class:`PersistenceError` from the registry propagates.
        """
        start = time.monotonic()
        rules = self._registry.list(active_only=True)

        issues: list[Issue] = []
        skipped: list[int] = []
        for rule in rules:
            try:
                issue = self._evaluate_rule(rule, selection)
            except MisconfiguredRule as exc:
                logger.warning("Skipping rule #%d '%s': %s", rule.rule_number, rule.name, exc)
                skipped.append(rule.rule_number)
                continue
            if issue is not None:
                issues.append(issue)

        elapsed = (time.monotonic() - start) * 1000
        logger.debug(
            "Evaluated %d rules: %d issues, %d skipped (%.1f ms)",
            len(rules),
            len(issues),
            len(skipped),
            elapsed,
        )
        return CheckResult(
            issues=issues,
            rules_evaluated=len(rules) - len(skipped),
            rules_skipped=skipped,
            elapsed_ms=elapsed,
        )

    def evaluate(self, selection: Mapping[str, Mapping[str, object]]) -> list[Issue]:
        """Return issues for *selection* ordered by ascending ``rule_number``."""
        return self.check(selection).issues

    def audit(self) -> list[str]:
        """Return one warning per stored rule (active or not) whose config is invalid."""
        warnings: list[str] = []
        for rule in self._registry.list():
            try:
                parse_predicate(rule.rule_config, context=f"Rule #{rule.rule_number}")
            except MisconfiguredRule as exc:
                warnings.append(str(exc))
        return warnings
