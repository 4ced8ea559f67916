"""Rule provisioning: parse ``rules.yml`` and seed the rule store.

YAML example::

    version: 1
    rules:
      - rule_number: 1
        name: Socket Match
        description: CPU and motherboard must share a socket
        severity: error
        message_template: "CPU socket {cpuSocket} does not match motherboard socket {moboSocket}"
        rule_config:
          kind: equals
          left: cpu.socket
          right: motherboard.socket

Seeding only inserts rule numbers that are not stored yet.  Existing rows,
including their admin-tuned ``is_active`` and ``severity``, are left alone.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import yaml

from rigcheck.compat.errors import MisconfiguredRule, PersistenceError
from rigcheck.compat.predicates import parse_predicate
from rigcheck.compat.registry import VALID_SEVERITIES

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

SUPPORTED_SCHEMA_VERSIONS: frozenset[int] = frozenset({1})


@dataclass(frozen=True)
class RuleDefinition:
    """A rule as written in ``rules.yml``, before it has a database id."""

    rule_number: int
    name: str
    message_template: str
    rule_config: dict[str, object] = field(default_factory=dict)
    description: str = ""
    severity: str = "error"
    is_active: bool = True


def _parse_definition(idx: int, rule_data: object) -> RuleDefinition:
    if not isinstance(rule_data, dict):
        msg = f"rules.yml: rule at index {idx} must be a mapping"
        raise ValueError(msg)

    name = rule_data.get("name")
    if name is None or not isinstance(name, str) or not name.strip():
        msg = f"rules.yml: rule at index {idx} missing required 'name' field"
        raise ValueError(msg)

    rule_number = rule_data.get("rule_number")
    if isinstance(rule_number, bool) or not isinstance(rule_number, int) or rule_number < 1:
        msg = f"rules.yml: rule '{name}' must have a positive integer 'rule_number'"
        raise ValueError(msg)

    severity = str(rule_data.get("severity", "error"))
    if severity not in VALID_SEVERITIES:
        msg = (
            f"rules.yml: rule '{name}' has invalid severity '{severity}', "
            f"must be one of {sorted(VALID_SEVERITIES)}"
        )
        raise ValueError(msg)

    template = rule_data.get("message_template")
    if not isinstance(template, str) or not template.strip():
        msg = f"rules.yml: rule '{name}' missing required 'message_template' field"
        raise ValueError(msg)

    is_active = rule_data.get("is_active", True)
    if not isinstance(is_active, bool):
        msg = f"rules.yml: rule '{name}': 'is_active' must be true or false"
        raise ValueError(msg)

    config = rule_data.get("rule_config")
    try:
        parse_predicate(config, context=f"rules.yml: rule '{name}' rule_config")  # type: ignore[arg-type]
    except MisconfiguredRule as exc:
        raise ValueError(str(exc)) from exc

    return RuleDefinition(
        rule_number=rule_number,
        name=name.strip(),
        message_template=template,
        rule_config=dict(config),  # type: ignore[arg-type]
        description=str(rule_data.get("description", "")),
        severity=severity,
        is_active=is_active,
    )


def load_rule_definitions(rules_path: Path) -> list[RuleDefinition]:
    """Parse rules.yml and return validated definitions ordered by rule number.

    Raises ``ValueError`` on malformed YAML and on schema errors (missing
    version, duplicate rule numbers, invalid severities, unsupported
    predicate configs).
    """
    with rules_path.open("r", encoding="utf-8") as fh:
        try:
            data = yaml.safe_load(fh)
        except yaml.YAMLError as exc:
            msg = f"rules.yml: cannot parse {rules_path}: {exc}"
            raise ValueError(msg) from exc

    if not isinstance(data, dict):
        msg = "rules.yml must be a YAML mapping"
        raise ValueError(msg)

    version = data.get("version")
    if version is None:
        msg = "rules.yml: missing required 'version' field"
        raise ValueError(msg)
    if version not in SUPPORTED_SCHEMA_VERSIONS:
        expected = sorted(SUPPORTED_SCHEMA_VERSIONS)
        msg = f"rules.yml: unsupported version {version}, expected one of {expected}"
        raise ValueError(msg)

    rules_data = data.get("rules", [])
    if not isinstance(rules_data, list):
        msg = "rules.yml: 'rules' must be a list"
        raise ValueError(msg)

    seen_numbers: set[int] = set()
    definitions: list[RuleDefinition] = []
    for idx, rule_data in enumerate(rules_data):
        definition = _parse_definition(idx, rule_data)
        if definition.rule_number in seen_numbers:
            msg = f"rules.yml: Duplicate rule_number {definition.rule_number}"
            raise ValueError(msg)
        seen_numbers.add(definition.rule_number)
        definitions.append(definition)

    definitions.sort(key=lambda d: d.rule_number)
    return definitions


def seed_rules(conn: sqlite3.Connection, definitions: list[RuleDefinition]) -> int:
    """Insert definitions whose ``rule_number`` is not stored yet.

    Returns the number of rules inserted.  Raises :class:`PersistenceError`
    if the write fails; nothing is committed in that case.
    """
    inserted = 0
    try:
        with conn:
            for definition in definitions:
                cursor = conn.execute(
                    "INSERT INTO compatibility_rules"
                    " (rule_number, name, description, severity, is_active,"
                    " message_template, rule_config)"
                    " VALUES (?, ?, ?, ?, ?, ?, ?)"
                    " ON CONFLICT(rule_number) DO NOTHING",
                    (
                        definition.rule_number,
                        definition.name,
                        definition.description,
                        definition.severity,
                        int(definition.is_active),
                        definition.message_template,
                        json.dumps(definition.rule_config, sort_keys=True),
                    ),
                )
                if cursor.rowcount:
                    inserted += 1
                else:
                    logger.debug("Rule #%d already stored, skipping", definition.rule_number)
    except sqlite3.Error as exc:
        msg = f"Failed to seed rules: {exc}"
        raise PersistenceError(msg) from exc

    logger.info("Seeded %d of %d rules", inserted, len(definitions))
    return inserted
