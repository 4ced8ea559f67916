"""Exception taxonomy for the compatibility engine."""

from __future__ import annotations


class CompatError(Exception):
    """Base class for every error raised by the compatibility engine."""


class NotFound(CompatError, LookupError):
    """Raised when an operation targets an unknown rule id."""

    def __init__(self, rule_id: object) -> None:
        self.rule_id = rule_id
        super().__init__(f"Rule {rule_id!r} not found")


class InvalidSeverity(CompatError, ValueError):
    """Raised when an update requests a severity outside the allowed set."""

    def __init__(self, severity: object) -> None:
        self.severity = severity
        super().__init__(f"Invalid severity {severity!r}, must be one of ['error', 'warning']")


class InvalidPatch(CompatError, ValueError):
    """Raised when an update names a field that cannot be changed."""


class PersistenceError(CompatError):
    """Raised when the underlying rule store fails a read or write."""


class MisconfiguredRule(CompatError):
    """A rule's config cannot be interpreted.

    Soft failure: the evaluator logs it and skips the rule.
    """


class SelectionError(CompatError):
    """Raised when a part selection file cannot be read or has a bad shape."""
