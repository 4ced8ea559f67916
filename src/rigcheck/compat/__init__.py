"""Compatibility domain — rule registry, predicates, evaluator, admin, provisioning."""

from rigcheck.compat.admin import AdminRuleManager
from rigcheck.compat.errors import (
    CompatError,
    InvalidPatch,
    InvalidSeverity,
    MisconfiguredRule,
    NotFound,
    PersistenceError,
    SelectionError,
)
from rigcheck.compat.evaluator import CheckResult, Issue, RuleEvaluator
from rigcheck.compat.messages import render
from rigcheck.compat.predicates import (
    AttributePath,
    EqualsPredicate,
    Predicate,
    PredicateResult,
    PresencePredicate,
    ThresholdPredicate,
    evaluate_predicate,
    parse_predicate,
)
from rigcheck.compat.provisioning import RuleDefinition, load_rule_definitions, seed_rules
from rigcheck.compat.registry import VALID_SEVERITIES, Rule, RuleRegistry
from rigcheck.compat.report import (
    format_json,
    format_porcelain,
    format_rich,
    partition_issues,
)

__all__ = [
    "VALID_SEVERITIES",
    "AdminRuleManager",
    "AttributePath",
    "CheckResult",
    "CompatError",
    "EqualsPredicate",
    "InvalidPatch",
    "InvalidSeverity",
    "Issue",
    "MisconfiguredRule",
    "NotFound",
    "PersistenceError",
    "Predicate",
    "PredicateResult",
    "PresencePredicate",
    "Rule",
    "RuleDefinition",
    "RuleEvaluator",
    "RuleRegistry",
    "SelectionError",
    "ThresholdPredicate",
    "evaluate_predicate",
    "format_json",
    "format_porcelain",
    "format_rich",
    "load_rule_definitions",
    "parse_predicate",
    "partition_issues",
    "render",
    "seed_rules",
]
