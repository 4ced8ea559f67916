"""Rule registry: the in-process view of stored compatibility rules.

Reads go to the database on every call; nothing is cached, so an admin
change is visible to the very next evaluation.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from rigcheck.compat.errors import InvalidPatch, InvalidSeverity, NotFound, PersistenceError

if TYPE_CHECKING:
    from collections.abc import Mapping

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

VALID_SEVERITIES: frozenset[str] = frozenset({"error", "warning"})
MUTABLE_FIELDS: frozenset[str] = frozenset({"is_active", "severity"})

_RULE_COLUMNS = (
    "id, rule_number, name, description, severity, is_active, message_template, rule_config"
)

# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Rule:
    """A stored compatibility rule."""

    id: int
    rule_number: int
    name: str
    description: str
    severity: str  # "error" | "warning"
    is_active: bool
    message_template: str
    rule_config: Mapping[str, object] = field(default_factory=dict)

    def to_dict(self) -> dict[str, object]:
        """Return the wire representation of this rule."""
        return {
            "id": self.id,
            "rule_number": self.rule_number,
            "name": self.name,
            "description": self.description,
            "severity": self.severity,
            "is_active": self.is_active,
            "message_template": self.message_template,
            "rule_config": dict(self.rule_config),
        }


def _decode_config(raw: object, rule_number: int) -> dict[str, object]:
    """Decode the JSON ``rule_config`` column.

    Undecodable text yields an empty mapping, which the evaluator reports as
    a misconfigured rule rather than failing the whole read.
    """
    try:
        data = json.loads(str(raw))
    except (json.JSONDecodeError, TypeError):
        logger.warning("Rule #%d has undecodable rule_config", rule_number)
        return {}
    if not isinstance(data, dict):
        logger.warning("Rule #%d rule_config is not a JSON object", rule_number)
        return {}
    return data


def _row_to_rule(row: sqlite3.Row) -> Rule:
    rule_number = int(row["rule_number"])
    return Rule(
        id=int(row["id"]),
        rule_number=rule_number,
        name=str(row["name"]),
        description=str(row["description"]),
        severity=str(row["severity"]),
        is_active=bool(row["is_active"]),
        message_template=str(row["message_template"]),
        rule_config=_decode_config(row["rule_config"], rule_number),
    )


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class RuleRegistry:
    """CRUD view over the ``compatibility_rules`` table.

    Only ``is_active`` and ``severity`` can be changed through :meth:`update`.
    Database failures are raised as :class:`PersistenceError`.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def list(self, *, active_only: bool = False) -> list[Rule]:
        """Return rules ordered by ascending ``rule_number``."""
        query = f"SELECT {_RULE_COLUMNS} FROM compatibility_rules"  # noqa: S608
        if active_only:
            query += " WHERE is_active = 1"
        query += " ORDER BY rule_number"
        try:
            rows = self._conn.execute(query).fetchall()
        except sqlite3.Error as exc:
            msg = f"Failed to list rules: {exc}"
            raise PersistenceError(msg) from exc
        return [_row_to_rule(row) for row in rows]

    def get(self, rule_id: int) -> Rule:
        """Return the rule with *rule_id*, raising :class:`NotFound` if absent."""
        try:
            row = self._conn.execute(
                f"SELECT {_RULE_COLUMNS} FROM compatibility_rules WHERE id = ?",  # noqa: S608
                (rule_id,),
            ).fetchone()
        except sqlite3.Error as exc:
            msg = f"Failed to read rule {rule_id}: {exc}"
            raise PersistenceError(msg) from exc
        if row is None:
            raise NotFound(rule_id)
        return _row_to_rule(row)

    def update(self, rule_id: int, patch: Mapping[str, object]) -> Rule:
        """Apply *patch* to the rule and return the stored result.

        Raises :class:`InvalidPatch` for fields other than ``is_active`` and
        ``severity``, :class:`InvalidSeverity` for an unknown severity, and
        :class:`NotFound` for an unknown id.  Validation happens before any
        write, so a rejected patch leaves the rule unchanged.
        """
        unknown = sorted(str(key) for key in patch if key not in MUTABLE_FIELDS)
        if unknown:
            msg = f"Cannot update field(s) {unknown}, only {sorted(MUTABLE_FIELDS)} are mutable"
            raise InvalidPatch(msg)

        assignments: list[str] = []
        params: list[object] = []
        if "severity" in patch:
            severity = patch["severity"]
            if not isinstance(severity, str) or severity not in VALID_SEVERITIES:
                raise InvalidSeverity(severity)
            assignments.append("severity = ?")
            params.append(severity)
        if "is_active" in patch:
            is_active = patch["is_active"]
            if not isinstance(is_active, bool):
                msg = f"is_active must be a boolean, got {type(is_active).__name__}"
                raise InvalidPatch(msg)
            assignments.append("is_active = ?")
            params.append(int(is_active))

        if not assignments:
            return self.get(rule_id)

        set_clause = ", ".join(assignments)
        # The connection context commits on success and rolls back on error.
        try:
            with self._conn:
                cursor = self._conn.execute(
                    f"UPDATE compatibility_rules SET {set_clause} WHERE id = ?",  # noqa: S608
                    (*params, rule_id),
                )
        except sqlite3.Error as exc:
            msg = f"Failed to update rule {rule_id}: {exc}"
            raise PersistenceError(msg) from exc
        if cursor.rowcount == 0:
            raise NotFound(rule_id)

        logger.info("Updated rule %s: %s", rule_id, ", ".join(sorted(patch)))
        return self.get(rule_id)
