"""Admin-facing rule mutations.

No permission checks happen here; callers are expected to have confirmed
admin privilege already.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from rigcheck.compat.registry import Rule, RuleRegistry


class AdminRuleManager:
    """Toggle a rule's activity or change its severity."""

    def __init__(self, registry: RuleRegistry) -> None:
        self._registry = registry

    def set_active(self, rule_id: int, active: bool) -> Rule:
        return self._registry.update(rule_id, {"is_active": active})

    def set_severity(self, rule_id: int, severity: str) -> Rule:
        """Change severity; :class:`InvalidSeverity` propagates unchanged."""
        return self._registry.update(rule_id, {"severity": severity})
